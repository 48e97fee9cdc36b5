# guroosh/scheduler.py
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from motor.motor_asyncio import AsyncIOMotorDatabase
import traceback

from guroosh.settings import settings


class Scheduler:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.scheduler = AsyncIOScheduler(timezone="UTC")

    def start(self):
        # keep only one sweep if the previous one is still running
        self.scheduler.add_job(
            self.budget_alerts_job,
            CronTrigger(minute=settings.budget_alert_cron_minute),
            id="budget-alerts",
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        print(f"[Scheduler] Budget alert sweep scheduled (minute={settings.budget_alert_cron_minute})")

    def shutdown(self):
        if getattr(self.scheduler, "running", False):
            self.scheduler.shutdown(wait=False)

    async def budget_alerts_job(self):
        try:
            # lazy import keeps the scheduler importable without the service graph
            from guroosh.services.budgets import sweep_budget_alerts

            sent = await sweep_budget_alerts(self.db)
            if sent:
                print(f"[Scheduler] Budget alerts sent: {sent}")
        except Exception:
            traceback.print_exc()
