# guroosh/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from guroosh.settings import settings
from guroosh.db import connect_to_mongo, close_mongo_connection, ping
from guroosh.errors import install_error_handlers
from guroosh.ratelimit import limiter
from guroosh.scheduler import Scheduler

# routers
from guroosh.routes import (
    admin,
    advisors,
    auth,
    budgets,
    categories,
    dashboard,
    goals,
    investments,
    ledger,
    meetings,
    messages,
    notes,
    notifications,
    requests,
    settings as settings_routes,
    zakat,
)

VERSION = "1.0.0"


class HealthResponse(BaseModel):
    status: str
    env: str
    version: str
    db_connected: bool


# ---------------- lifespan ----------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.mongodb = await connect_to_mongo()
    app.state.scheduler = None
    if settings.scheduler_enabled:
        app.state.scheduler = Scheduler(app.state.mongodb)
        app.state.scheduler.start()

    try:
        yield
    finally:
        if app.state.scheduler:
            app.state.scheduler.shutdown()
        await close_mongo_connection()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Guroosh API",
        version=VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.limiter = limiter
    install_error_handlers(app)

    for router in (
        auth.router,
        advisors.router,
        requests.router,
        messages.router,
        notes.router,
        meetings.router,
        notifications.router,
        settings_routes.router,
        admin.router,
        categories.router,
        ledger.expenses,
        ledger.incomes,
        budgets.router,
        goals.router,
        investments.router,
        zakat.router,
        dashboard.router,
    ):
        app.include_router(router)

    # ---------------- health ----------------

    @app.get("/healthz", response_model=HealthResponse)
    async def healthz(request: Request):
        db_ok = await ping(request.app.state.mongodb)
        return HealthResponse(
            status="ok",
            env=settings.app_env,
            version=VERSION,
            db_connected=db_ok,
        )

    @app.get("/api/health")
    async def health():
        return {"status": "ok", "message": "Guroosh API is running"}

    return app


app = create_app()
