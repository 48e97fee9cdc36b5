# tests/test_investments.py
import datetime as dt

import pytest

from guroosh.services.investments import (
    appreciated_price,
    current_price,
    summarize,
    trend_series,
)
from guroosh.services.zakat import GOLD_NISAB_GRAMS, ZAKAT_RATE, calculate_zakat, estimate_zakat, zakat_due

NOW = dt.datetime(2025, 6, 1, 12, 0)


def _invest(client, who, **body):
    res = client.post("/api/investments", headers=who["headers"], json=body)
    assert res.status_code == 201, res.text
    return res.json()["investment"]


# ---------------- valuation ----------------

def test_real_estate_appreciates_daily():
    bought = NOW - dt.timedelta(days=365)
    assert appreciated_price(500_000, bought, NOW) == round(500_000 * 1.0002 ** 365, 2)
    inv = {"category": "Real Estate", "buyPrice": 500_000, "currentPrice": 1, "purchaseDate": bought}
    assert current_price(inv, NOW) == round(500_000 * 1.0002 ** 365, 2)
    assert current_price({"category": "Stock", "currentPrice": 12.5}, NOW) == 12.5


def test_summarize_distribution():
    holdings = [
        {"category": "Stock", "amountOwned": 10, "buyPrice": 10, "currentPrice": 15},
        {"category": "Crypto", "amountOwned": 1, "buyPrice": 100, "currentPrice": 50},
    ]
    s = summarize(holdings, NOW)
    assert s["totalValue"] == 200
    assert s["totalInvested"] == 200
    assert s["gainLossPercentage"] == 0
    assert s["byCategory"]["Stock"]["percentage"] == 75
    assert s["byCategory"]["Crypto"]["count"] == 1
    assert summarize([], NOW)["gainLossPercentage"] == 0


@pytest.mark.parametrize("range_key,points", [
    ("day", 25), ("threeDays", 19), ("week", 8), ("month", 31), ("year", 53), ("fiveYears", 61),
])
def test_trend_point_counts(range_key, points):
    series = trend_series(range_key, 1200, 1000, now=NOW)
    assert len(series) == points
    assert all(p["y"] >= 0 for p in series)
    assert series[-1]["x"] == int((NOW - dt.datetime(1970, 1, 1)).total_seconds() * 1000)
    # no random noise: same input, same series
    assert series == trend_series(range_key, 1200, 1000, now=NOW)


def test_trend_all_time_span():
    series = trend_series("allTime", 1200, 1000, first_purchase=NOW - dt.timedelta(days=10), now=NOW)
    assert len(series) == 21
    series = trend_series("allTime", 1200, 1000, first_purchase=NOW - dt.timedelta(days=1000), now=NOW)
    assert len(series) == 101


# ---------------- API ----------------

def test_investment_validation(client, user):
    res = client.post("/api/investments", headers=user["headers"], json={"name": "X", "category": "Bonds"})
    assert res.json()["error"] == "Invalid investment category"

    res = client.post("/api/investments", headers=user["headers"],
                      json={"name": "AAPL", "category": "Stock", "currentPrice": 10})
    assert res.json()["error"] == "Please provide all required fields"

    res = client.post("/api/investments", headers=user["headers"], json={
        "name": "AAPL", "category": "Stock", "amountOwned": -1, "buyPrice": 1, "currentPrice": 1,
    })
    assert res.json()["error"] == "Amount and prices must be positive numbers"

    flat = _invest(client, user, name="Flat", category="Real Estate", currentPrice=900_000, amountOwned=3)
    assert flat["amountOwned"] == 1
    assert flat["buyPrice"] == 900_000


def test_portfolio_endpoints(client, user):
    _invest(client, user, name="AAPL", category="Stock", amountOwned=10, buyPrice=10, currentPrice=15)
    portfolio = client.get("/api/investments/portfolio", headers=user["headers"]).json()["portfolio"]
    assert portfolio["totalValue"] == 150
    assert portfolio["totalGainLoss"] == 50

    res = client.get("/api/investments/portfolio/trend", params={"range": "week"}, headers=user["headers"])
    assert len(res.json()["data"]) == 8
    bad = client.get("/api/investments/portfolio/trend", params={"range": "decade"}, headers=user["headers"])
    assert bad.status_code == 400


def test_investment_notification_respects_alert_settings(client, user):
    client.patch("/api/notifications/alert-settings", headers=user["headers"], json={"investmentUpdates": False})
    _invest(client, user, name="BTC", category="Crypto", amountOwned=1, buyPrice=100, currentPrice=100)
    listing = client.get("/api/notifications", headers=user["headers"]).json()
    assert listing["totalCount"] == 1
    assert listing["unreadCount"] == 0
    assert listing["notifications"][0]["type"] == "investment"

    client.patch("/api/notifications/alert-settings", headers=user["headers"], json={"investmentUpdates": True})
    _invest(client, user, name="ETH", category="Crypto", amountOwned=1, buyPrice=10, currentPrice=10)
    assert client.get("/api/notifications/unread-count", headers=user["headers"]).json()["unreadCount"] == 1


# ---------------- zakat ----------------

def test_zakat_due_is_two_and_a_half_percent():
    assert zakat_due(0) == 0
    assert zakat_due(1234.5) == 1234.5 * ZAKAT_RATE


def test_estimate_sums_selected_categories():
    holdings = [
        {"category": "Stock", "amountOwned": 10, "currentPrice": 123.45},
        {"category": "Gold", "amountOwned": 2, "currentPrice": 250},
    ]
    result = estimate_zakat(holdings, ["Stock"], price_per_gram=250, now=NOW)
    assert result["selectedTotal"] == pytest.approx(1234.5)
    assert result["zakatDue"] == pytest.approx(1234.5 * 0.025)
    assert result["nisabValue"] == GOLD_NISAB_GRAMS * 250
    assert estimate_zakat(holdings, [], now=NOW)["zakatDue"] == 0


def test_calculate_applies_exemptions():
    holdings = [
        {"name": "Tadawul Aramco", "category": "Stock", "amountOwned": 100, "currentPrice": 30,
         "purchaseDate": NOW - dt.timedelta(days=400)},
        {"name": "AAPL", "category": "Stock", "amountOwned": 10, "currentPrice": 100,
         "purchaseDate": NOW - dt.timedelta(days=400)},
        {"name": "Ring", "category": "Gold", "amountOwned": 10, "currentPrice": 250},
        {"name": "BTC", "category": "Crypto", "amountOwned": 1, "currentPrice": 30_000},
    ]
    result = calculate_zakat(holdings, price_per_gram=250, now=NOW)
    breakdown = result["categoryBreakdown"]
    assert breakdown["stocks"]["zakatable"] == 1000
    assert breakdown["gold"]["zakatable"] == 0
    assert breakdown["crypto"]["zakatable"] == 30_000
    assert result["totalZakatable"] == 31_000
    assert result["totalZakat"] == pytest.approx(31_000 * 0.025)
    assert result["meetsNisab"] is True


def test_zakat_endpoints(client, user):
    res = client.post("/api/zakat/calculate", headers=user["headers"], json={})
    assert res.status_code == 400

    _invest(client, user, name="AAPL", category="Stock", amountOwned=4, buyPrice=10, currentPrice=25)
    res = client.post("/api/zakat/estimate", headers=user["headers"], json={"categories": ["Stock"]})
    assert res.json()["data"]["zakatDue"] == 100.0 * 0.025

    res = client.post("/api/zakat/calculate", headers=user["headers"], json={"goldPricePerGram": 300})
    assert res.status_code == 200
    assert res.json()["data"]["goldNisabValue"] == 85 * 300

    gold = client.get("/api/zakat/gold-price", headers=user["headers"]).json()["data"]
    assert gold["nisabGrams"] == 85
    assert gold["currency"] == "SAR"
