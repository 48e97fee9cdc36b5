# tests/test_notifications_admin.py
from bson import ObjectId

from conftest import run
from guroosh.services.notifications import create_budget_notification, create_notification


def _notify(db, who, title="Hello", category=None):
    return run(create_notification(db, ObjectId(who["id"]), "info", title, "body", category=category))


# ---------------- notifications ----------------

def test_list_and_mark_read(client, db, user):
    first = _notify(db, user, "First")
    _notify(db, user, "Second")

    listing = client.get("/api/notifications", headers=user["headers"]).json()
    assert listing["totalCount"] == 2
    assert listing["unreadCount"] == 2

    res = client.put(f"/api/notifications/{first['_id']}/mark-read", headers=user["headers"])
    assert res.json()["notification"]["read"] is True
    unread = client.get("/api/notifications", params={"unreadOnly": True}, headers=user["headers"]).json()
    assert [n["title"] for n in unread["notifications"]] == ["Second"]

    res = client.put("/api/notifications/mark-all-read", headers=user["headers"])
    assert res.json()["updated"] == 1
    assert client.get("/api/notifications/unread-count", headers=user["headers"]).json()["unreadCount"] == 0


def test_notifications_are_private(client, db, user, register):
    other = register("Someone Else")
    note = _notify(db, other)
    res = client.put(f"/api/notifications/{note['_id']}/mark-read", headers=user["headers"])
    assert res.status_code == 404
    assert res.json()["error"] == "Notification not found"
    assert client.delete(f"/api/notifications/{note['_id']}", headers=user["headers"]).status_code == 404


def test_delete_and_clear(client, db, user):
    note = _notify(db, user)
    _notify(db, user)
    _notify(db, user)
    assert client.delete(f"/api/notifications/{note['_id']}", headers=user["headers"]).json()["success"] is True
    res = client.delete("/api/notifications", headers=user["headers"])
    assert res.json()["deleted"] == 2
    assert client.get("/api/notifications", headers=user["headers"]).json()["totalCount"] == 0


def test_latest_updates_limit(client, db, user):
    for i in range(4):
        _notify(db, user, f"n{i}")
    res = client.get("/api/notifications/latest-updates", params={"limit": 3}, headers=user["headers"])
    assert len(res.json()["updates"]) == 3


def test_budget_notification_wording(db, user):
    uid = ObjectId(user["id"])
    over = run(create_budget_notification(db, uid, ObjectId(), "Food", 112.5))
    assert over["title"] == "Budget Exceeded"
    assert over["type"] == "error"
    assert "by 12.5%" in over["message"]
    near = run(create_budget_notification(db, uid, ObjectId(), "Food", 95))
    assert near["title"] == "Budget Alert"
    assert near["type"] == "warning"


def test_muted_category_is_stored_read(client, db, user):
    client.patch("/api/notifications/alert-settings", headers=user["headers"], json={"budgetReminders": False})
    note = _notify(db, user, category="budgetReminders")
    assert note["read"] is True
    # categories not muted still arrive unread
    assert _notify(db, user, category="transactionAlerts")["read"] is False


# ---------------- settings ----------------

def test_settings_defaults_merge_and_reset(client, user):
    settings = client.get("/api/settings", headers=user["headers"]).json()["settings"]
    assert settings["preferences"]["currency"] == "SAR"
    assert settings["alertSettings"]["marketingEmails"] is False

    res = client.put("/api/settings", headers=user["headers"], json={
        "preferences": {"language": "ar"},
        "privacy": {"showEmail": True},
    })
    settings = res.json()["settings"]
    assert settings["preferences"] == {"currency": "SAR", "language": "ar", "dateFormat": "DD/MM/YYYY"}
    assert settings["privacy"]["showEmail"] is True

    bad = client.put("/api/settings", headers=user["headers"], json={"preferences": {"currency": "JPY"}})
    assert bad.status_code == 400

    settings = client.post("/api/settings/reset", headers=user["headers"]).json()["settings"]
    assert settings["preferences"]["language"] == "en"
    assert settings["privacy"]["showEmail"] is False


def test_alert_settings_endpoint(client, user):
    res = client.get("/api/notifications/alert-settings", headers=user["headers"])
    assert res.json()["alertSettings"]["investmentUpdates"] is True
    res = client.patch("/api/notifications/alert-settings", headers=user["headers"], json={"marketingEmails": True})
    assert res.json()["alertSettings"] == {
        "transactionAlerts": True,
        "budgetReminders": True,
        "investmentUpdates": True,
        "marketingEmails": True,
    }


# ---------------- admin ----------------

def test_admin_routes_need_admin(client, user):
    res = client.get("/api/admin/overview", headers=user["headers"])
    assert res.status_code == 403
    assert res.json()["error"] == "Access denied. Admin only."


def test_admin_overview_and_users(client, make_admin, user, advisor):
    admin = make_admin()
    overview = client.get("/api/admin/overview", headers=admin["headers"]).json()["overview"]
    assert overview["users"]["total"] == 3
    assert overview["users"]["admins"] == 1
    assert overview["advisors"]["total"] == 1

    res = client.get("/api/admin/users", params={"role": "advisor"}, headers=admin["headers"])
    assert [u["fullName"] for u in res.json()["users"]] == ["Advisor One"]
    res = client.get("/api/admin/users", params={"q": "client"}, headers=admin["headers"])
    assert [u["_id"] for u in res.json()["users"]] == [user["id"]]
    assert "password" not in res.json()["users"][0]


def test_deactivate_blocks_token(client, make_admin, user):
    admin = make_admin()
    res = client.patch(f"/api/admin/users/{user['id']}/status", headers=admin["headers"], json={"action": "deactivate"})
    assert res.json()["user"]["status"] == "inactive"

    res = client.get("/api/settings", headers=user["headers"])
    assert res.status_code == 403

    client.patch(f"/api/admin/users/{user['id']}/status", headers=admin["headers"], json={"action": "activate"})
    assert client.get("/api/settings", headers=user["headers"]).status_code == 200

    res = client.get("/api/admin/users", params={"status": "inactive"}, headers=admin["headers"])
    assert res.json()["count"] == 0


def test_admin_cannot_change_own_status(client, make_admin):
    admin = make_admin()
    res = client.patch(f"/api/admin/users/{admin['id']}/status", headers=admin["headers"], json={"action": "deactivate"})
    assert res.status_code == 400
    assert res.json()["error"] == "You cannot change your own account status"


def test_admin_unknown_user(client, make_admin):
    admin = make_admin()
    res = client.get(f"/api/admin/users/{ObjectId()}", headers=admin["headers"])
    assert res.status_code == 404


def test_broadcast_audiences(client, make_admin, register):
    admin = make_admin()
    clients = [register(f"Client {i}") for i in range(2)]

    res = client.post("/api/admin/notifications", headers=admin["headers"],
                      json={"title": "Hi", "message": "Advisors only", "audience": "advisors"})
    assert res.status_code == 404

    advisor = register("Advisor", user_type="Financial Advisor")
    res = client.post("/api/admin/notifications", headers=admin["headers"],
                      json={"title": "Hi", "message": "Advisors only", "audience": "advisors"})
    assert res.status_code == 201
    assert res.json()["data"] == {"successful": 1, "failed": 0}

    res = client.post("/api/admin/notifications", headers=admin["headers"],
                      json={"title": "Maintenance", "message": "Tonight", "audience": "clients", "type": "warning"})
    assert res.json()["data"]["successful"] == 2

    listing = client.get("/api/notifications", headers=clients[0]["headers"]).json()
    assert [n["title"] for n in listing["notifications"]] == ["Maintenance"]
    assert listing["notifications"][0]["metadata"]["broadcast"] is True
    assert client.get("/api/notifications", headers=advisor["headers"]).json()["totalCount"] == 1

    res = client.post("/api/admin/notifications", headers=admin["headers"], json={"message": "no title"})
    assert res.status_code == 400
    assert res.json()["error"] == "Title and message are required"


def test_admin_reset_password_issues_code(client, db, make_admin, user):
    from guroosh.mongo_collections import USERS

    admin = make_admin()
    res = client.post(f"/api/admin/users/{user['id']}/reset-password", headers=admin["headers"])
    assert res.status_code == 200
    doc = run(db[USERS].find_one({"_id": ObjectId(user["id"])}))
    assert doc.get("passwordResetCode")
