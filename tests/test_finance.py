# tests/test_finance.py
import datetime as dt

import pytest
from bson import ObjectId

from conftest import run
from guroosh.mongo_collections import BUDGETS, EXPENSES
from guroosh.scheduler import Scheduler
from guroosh.services import budgets as budgets_svc
from guroosh.services.budgets import MAX_PERCENTAGE, budget_state, budget_status, cycle_window, sweep_budget_alerts
from guroosh.services.mappers import utcnow


def _category(client, who, name="Food", type="expense"):
    res = client.post("/api/categories", headers=who["headers"], json={"name": name, "type": type})
    assert res.status_code == 201, res.text
    return res.json()["category"]["_id"]


def _expense(client, who, category_id, amount, **extra):
    body = {"categoryId": category_id, "amount": amount, "title": "Groceries"}
    body.update(extra)
    res = client.post("/api/expenses", headers=who["headers"], json=body)
    assert res.status_code == 201, res.text
    return res.json()["expense"]


# ---------------- categories ----------------

def test_category_unique_per_user_name_and_type(client, user, register):
    _category(client, user, "Food")
    for name in ("Food", "food", " FOOD "):
        res = client.post("/api/categories", headers=user["headers"], json={"name": name})
        assert res.status_code == 400
        assert res.json()["error"] == "Category already exists"

    _category(client, user, "Food", type="income")
    _category(client, register("Someone Else"), "Food")

    listed = client.get("/api/categories", params={"type": "expense"}, headers=user["headers"]).json()
    assert [c["name"] for c in listed["categories"]] == ["Food"]


def test_expense_needs_expense_category(client, user):
    salary = _category(client, user, "Salary", type="income")
    res = client.post("/api/expenses", headers=user["headers"],
                      json={"categoryId": salary, "amount": 5, "title": "x"})
    assert res.status_code == 400
    assert res.json()["error"] == "Category must be an expense category"

    res = client.post("/api/expenses", headers=user["headers"],
                      json={"categoryId": salary, "amount": -5, "title": "x"})
    assert res.status_code == 400


def test_expense_listing_filters(client, user):
    food = _category(client, user, "Food")
    fuel = _category(client, user, "Fuel")
    _expense(client, user, food, 10)
    _expense(client, user, fuel, 20)

    res = client.get("/api/expenses", params={"categoryId": food}, headers=user["headers"]).json()
    assert res["count"] == 1
    assert res["total"] == 10
    assert res["expenses"][0]["category"]["name"] == "Food"


# ---------------- budgets ----------------

@pytest.mark.parametrize("pct,threshold,state", [
    (0, 80, "ok"),
    (79.9, 80, "ok"),
    (80, 80, "warning"),
    (99.9, 80, "warning"),
    (100, 80, "exceeded"),
    (MAX_PERCENTAGE, 80, "exceeded"),
])
def test_budget_state(pct, threshold, state):
    assert budget_state(pct, threshold) == state


def test_cycle_window_rolls_forward():
    budget = {"period": "monthly", "startDate": dt.datetime(2024, 1, 1)}
    start, end = cycle_window(budget, now=dt.datetime(2024, 2, 15))
    assert start == dt.datetime(2024, 1, 31)
    assert end == dt.datetime(2024, 3, 1)

    custom = {"period": "custom", "startDate": dt.datetime(2024, 1, 1), "endDate": dt.datetime(2024, 1, 10)}
    assert cycle_window(custom, now=dt.datetime(2024, 5, 1)) == (dt.datetime(2024, 1, 1), dt.datetime(2024, 1, 10))


def test_budget_status_and_alerts(client, user):
    food = _category(client, user, "Food")
    res = client.post("/api/budgets", headers=user["headers"], json={"categoryId": food, "limit": 100})
    assert res.status_code == 201
    budget = res.json()["budget"]
    assert budget["status"]["state"] == "ok"

    dup = client.post("/api/budgets", headers=user["headers"], json={"categoryId": food, "limit": 50})
    assert dup.status_code == 400

    _expense(client, user, food, 95)
    alerts = client.get("/api/budgets/alerts", headers=user["headers"]).json()["alerts"]
    assert [a["state"] for a in alerts] == ["warning"]

    _expense(client, user, food, 10)
    _expense(client, user, food, 1)
    got = client.get(f"/api/budgets/{budget['_id']}", headers=user["headers"]).json()["budget"]
    assert got["status"]["spent"] == 106
    assert got["status"]["remaining"] == 0
    assert got["status"]["state"] == "exceeded"

    # one alert per escalation: warning, then exceeded, nothing for the third expense
    notes = client.get("/api/notifications", headers=user["headers"]).json()["notifications"]
    budget_notes = [n for n in notes if n["category"] == "budgetReminders"]
    assert sorted(n["title"] for n in budget_notes) == ["Budget Alert", "Budget Exceeded"]


def test_budget_percentage_is_capped(client, user):
    food = _category(client, user, "Food")
    client.post("/api/budgets", headers=user["headers"], json={"categoryId": food, "limit": 10})
    _expense(client, user, food, 5000)
    budgets = client.get("/api/budgets", headers=user["headers"]).json()["budgets"]
    assert budgets[0]["status"]["percentage"] == MAX_PERCENTAGE
    assert budgets[0]["categoryName"] == "Food"


def test_custom_budget_needs_end_date(client, user):
    food = _category(client, user, "Food")
    res = client.post("/api/budgets", headers=user["headers"],
                      json={"categoryId": food, "limit": 10, "period": "custom"})
    assert res.status_code == 400
    assert res.json()["error"] == "Custom budgets require an end date"


def test_expense_on_cycle_boundary_counts_once(db):
    user_id, category_id = ObjectId(), ObjectId()
    run(db[EXPENSES].insert_one(
        {"userId": user_id, "categoryId": category_id, "amount": 50.0, "date": dt.datetime(2024, 1, 8)}
    ))
    weekly = {"_id": ObjectId(), "userId": user_id, "categoryId": category_id,
              "limit": 100, "period": "weekly", "startDate": dt.datetime(2024, 1, 1)}
    assert run(budget_status(db, weekly, now=dt.datetime(2024, 1, 5)))["spent"] == 0
    assert run(budget_status(db, weekly, now=dt.datetime(2024, 1, 10)))["spent"] == 50

    # a custom budget includes its end date
    custom = dict(weekly, period="custom", endDate=dt.datetime(2024, 1, 8))
    assert run(budget_status(db, custom, now=dt.datetime(2024, 1, 5)))["spent"] == 50


def test_null_does_not_clear_budget_limit(client, user):
    food = _category(client, user, "Food")
    budget = client.post("/api/budgets", headers=user["headers"], json={"categoryId": food, "limit": 100}).json()["budget"]
    res = client.put(f"/api/budgets/{budget['_id']}", headers=user["headers"],
                     json={"limit": None, "period": None, "notes": "groceries only"})
    assert res.status_code == 200
    got = res.json()["budget"]
    assert got["limit"] == 100
    assert got["period"] == "monthly"
    assert got["notes"] == "groceries only"

    _expense(client, user, food, 50)
    got = client.get(f"/api/budgets/{budget['_id']}", headers=user["headers"]).json()["budget"]
    assert got["status"]["percentage"] == 50


def _budget_titles(client, who):
    notes = client.get("/api/notifications", headers=who["headers"]).json()["notifications"]
    return sorted(n["title"] for n in notes if n["category"] == "budgetReminders")


def test_sweep_alerts_once_per_escalation(client, db, user):
    food = _category(client, user, "Food")
    client.post("/api/budgets", headers=user["headers"], json={"categoryId": food, "limit": 100})

    def spend(amount):
        # straight to the collection so only the sweep can raise the alert
        run(db[EXPENSES].insert_one({
            "userId": ObjectId(user["id"]), "categoryId": ObjectId(food), "amount": amount, "date": utcnow(),
        }))

    spend(95.0)
    assert run(sweep_budget_alerts(db)) == 1
    assert run(sweep_budget_alerts(db)) == 0
    spend(10.0)
    assert run(sweep_budget_alerts(db)) == 1
    assert run(sweep_budget_alerts(db)) == 0
    assert _budget_titles(client, user) == ["Budget Alert", "Budget Exceeded"]


def test_scheduler_job_sends_alerts(client, db, user):
    food = _category(client, user, "Food")
    client.post("/api/budgets", headers=user["headers"], json={"categoryId": food, "limit": 100})
    run(db[EXPENSES].insert_one({
        "userId": ObjectId(user["id"]), "categoryId": ObjectId(food), "amount": 120.0, "date": utcnow(),
    }))
    run(Scheduler(db).budget_alerts_job())
    assert _budget_titles(client, user) == ["Budget Exceeded"]


def test_scheduler_job_keeps_running_after_errors(db, monkeypatch, capsys):
    async def failing_sweep(db):
        raise RuntimeError("mongo unavailable")

    monkeypatch.setattr(budgets_svc, "sweep_budget_alerts", failing_sweep)
    run(Scheduler(db).budget_alerts_job())
    assert "mongo unavailable" in capsys.readouterr().err


def test_moving_or_deleting_an_expense_rearms_alerts(client, db, user):
    food = _category(client, user, "Food")
    fun = _category(client, user, "Fun")
    budget_id = client.post("/api/budgets", headers=user["headers"],
                            json={"categoryId": food, "limit": 100}).json()["budget"]["_id"]

    expense = _expense(client, user, food, 95)
    client.put(f"/api/expenses/{expense['_id']}", headers=user["headers"], json={"categoryId": fun})
    budget = run(db[BUDGETS].find_one({"_id": ObjectId(budget_id)}))
    assert budget["lastAlertState"] == "ok"

    # back over the threshold in the same cycle: alerts again
    again = _expense(client, user, food, 96)
    assert _budget_titles(client, user) == ["Budget Alert", "Budget Alert"]

    client.delete(f"/api/expenses/{again['_id']}", headers=user["headers"])
    budget = run(db[BUDGETS].find_one({"_id": ObjectId(budget_id)}))
    assert budget["lastAlertState"] == "ok"


# ---------------- goals ----------------

def test_goal_progress_completes_at_target(client, user):
    res = client.post("/api/goals", headers=user["headers"], json={"name": "Car", "targetAmount": 1000})
    goal = res.json()["goal"]
    assert goal["status"] == "in-progress"
    url = f"/api/goals/{goal['_id']}/progress"

    assert client.patch(url, headers=user["headers"], json={}).json()["error"] == "Please provide an amount"
    assert client.patch(url, headers=user["headers"], json={"amount": -1}).json()["error"] == "Amount must be positive"

    goal = client.patch(url, headers=user["headers"], json={"amount": 400}).json()["goal"]
    assert goal["savedAmount"] == 400
    assert goal["status"] == "in-progress"
    assert goal["progress"] == 40

    goal = client.patch(url, headers=user["headers"], json={"amount": 600}).json()["goal"]
    assert goal["status"] == "completed"
    assert goal["progress"] == 100


def test_null_does_not_clear_goal_fields(client, user):
    goal = client.post("/api/goals", headers=user["headers"], json={
        "name": "Car", "targetAmount": 1000, "savedAmount": 100, "deadline": "2030-01-01T00:00:00",
    }).json()["goal"]
    res = client.put(f"/api/goals/{goal['_id']}", headers=user["headers"],
                     json={"targetAmount": None, "name": None, "deadline": None})
    assert res.status_code == 200
    got = res.json()["goal"]
    assert got["targetAmount"] == 1000
    assert got["name"] == "Car"
    assert got["deadline"] is None
    assert got["progress"] == 10


def test_goals_sorted_by_deadline(client, user):
    for name, deadline in (("Later", "2031-01-01T00:00:00"), ("None", None), ("Sooner", "2030-01-01T00:00:00")):
        client.post("/api/goals", headers=user["headers"],
                    json={"name": name, "targetAmount": 10, "deadline": deadline})
    names = [g["name"] for g in client.get("/api/goals", headers=user["headers"]).json()["goals"]]
    assert names == ["Sooner", "Later", "None"]


# ---------------- incomes & dashboard ----------------

def test_dashboard_overview(client, user):
    food = _category(client, user, "Food")
    client.post("/api/incomes", headers=user["headers"], json={"source": "Salary", "amount": 1000})
    _expense(client, user, food, 250)

    overview = client.get("/api/dashboard/overview", headers=user["headers"]).json()["overview"]
    assert overview["monthIncome"] == 1000
    assert overview["monthExpenses"] == 250
    assert overview["net"] == 750
    assert overview["savingsRate"] == 75
    assert overview["portfolio"]["investmentCount"] == 0

    rows = client.get("/api/dashboard/recent-transactions", headers=user["headers"]).json()["transactions"]
    assert {r["type"] for r in rows} == {"income", "expense"}
