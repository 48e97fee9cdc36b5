# tests/conftest.py
import asyncio
import itertools

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from guroosh.main import create_app
from guroosh.mongo_collections import USERS
from guroosh.ratelimit import limiter

PASSWORD = "Passw0rd!"
_seq = itertools.count(1)


def run(coro):
    """Drive a Motor-mock coroutine from sync test code."""
    return asyncio.run(coro)


@pytest.fixture(autouse=True)
def rate_limits_off(monkeypatch):
    """Fixtures register many users from one address; tests that check limits turn them back on."""
    limiter.reset()
    monkeypatch.setattr(limiter, "enabled", False)


@pytest.fixture
def db():
    return AsyncMongoMockClient()["guroosh_test"]


@pytest.fixture
def client(db):
    app = create_app()
    # no `with`: the lifespan would open a real Mongo connection and the scheduler
    app.state.mongodb = db
    return TestClient(app)


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(client):
    """Register a user and return {"id", "token", "headers", "email"}."""

    def _register(name: str = "Test User", user_type: str = "Regular User", **overrides):
        email = overrides.pop("email", f"user{next(_seq)}@example.com")
        body = {
            "fullName": name,
            "email": email,
            "password": PASSWORD,
            "phoneNumber": "0500000000",
            "address": "Riyadh",
            "employmentStatus": "Employed",
            "userType": user_type,
        }
        body.update(overrides)
        res = client.post("/api/auth/register", json=body)
        assert res.status_code == 201, res.text
        data = res.json()
        return {
            "id": data["user"]["id"],
            "token": data["token"],
            "headers": auth(data["token"]),
            "email": email,
        }

    return _register


@pytest.fixture
def make_admin(register, db):
    def _make_admin(name: str = "Admin"):
        admin = register(name)
        run(db[USERS].update_one({"_id": ObjectId(admin["id"])}, {"$set": {"role": "admin"}}))
        return admin

    return _make_admin


@pytest.fixture
def user(register):
    return register("Client One")


@pytest.fixture
def advisor(register):
    return register("Advisor One", user_type="Financial Advisor")
