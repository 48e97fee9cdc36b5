# tests/test_requests.py
import datetime as dt

import pytest
from bson import ObjectId

from conftest import run
from guroosh.errors import ApiError
from guroosh.services.advice_requests import (
    ACCEPTED,
    CANCELLED,
    CLOSED,
    DECLINED,
    IN_PROGRESS,
    PENDING,
    TERMINAL,
    can_transition,
    normalize_status,
    set_status,
)


def _new_request(client, owner, **overrides):
    body = {"title": "Retirement plan", "topic": "Retirement", "description": "Where do I start?"}
    body.update(overrides)
    res = client.post("/api/requests", headers=owner["headers"], json=body)
    assert res.status_code == 201, res.text
    return res.json()["request"]


@pytest.mark.parametrize("current,new,allowed", [
    (PENDING, ACCEPTED, True),
    (PENDING, DECLINED, True),
    (PENDING, IN_PROGRESS, False),
    (ACCEPTED, IN_PROGRESS, True),
    (ACCEPTED, CLOSED, True),
    (IN_PROGRESS, PENDING, False),
    (CLOSED, IN_PROGRESS, False),
    (CANCELLED, ACCEPTED, False),
])
def test_transition_table(current, new, allowed):
    assert can_transition(current, new) is allowed


def test_terminal_states():
    assert set(TERMINAL) == {DECLINED, "Completed", CLOSED, CANCELLED}


def test_normalize_status():
    assert normalize_status("in progress") == IN_PROGRESS
    assert normalize_status(" CLOSED ") == CLOSED
    assert normalize_status("Accepted") is None


def test_create_requires_fields(client, user):
    res = client.post("/api/requests", headers=user["headers"], json={"title": "x"})
    assert res.status_code == 400
    assert res.json()["error"] == "Title, topic, and description are required"

    res = client.post("/api/requests", headers=user["headers"],
                      json={"title": "x", "topic": "Astrology", "description": "y"})
    assert res.status_code == 400
    assert res.json()["error"] == "Invalid topic"


def test_targeted_request_flow(client, user, advisor, register):
    other = register("Advisor Two", user_type="Financial Advisor")
    req = _new_request(client, user, preferredAdvisor=advisor["id"])
    assert req["status"] == PENDING
    rid = req["_id"]

    assert client.put(f"/api/requests/{rid}/accept", headers=other["headers"]).status_code == 403
    assert client.put(f"/api/requests/{rid}/accept", headers=user["headers"]).status_code == 403

    res = client.put(f"/api/requests/{rid}/accept", headers=advisor["headers"])
    assert res.status_code == 200
    assert res.json()["request"]["status"] == ACCEPTED

    res = client.put(f"/api/requests/{rid}/accept", headers=advisor["headers"])
    assert res.status_code == 400
    assert res.json()["error"] == "Request has already been processed"

    # first message moves the request along
    res = client.post(f"/api/messages/request/{rid}", headers=user["headers"], json={"content": "Hello"})
    assert res.status_code == 201
    assert res.json()["message"]["senderRole"] == "Client"
    got = client.get(f"/api/requests/{rid}", headers=user["headers"]).json()["request"]
    assert got["status"] == IN_PROGRESS
    assert got["client"]["address"] == "Riyadh"

    res = client.put(f"/api/requests/{rid}/status", headers=advisor["headers"], json={"newStatus": "closed"})
    assert res.status_code == 200
    assert res.json()["request"]["status"] == CLOSED

    res = client.post(f"/api/messages/request/{rid}", headers=advisor["headers"], json={"content": "one more"})
    assert res.status_code == 400
    assert res.json()["error"] == "Request is closed"

    res = client.put(f"/api/requests/{rid}/status", headers=user["headers"], json={"status": "In Progress"})
    assert res.status_code == 400
    assert res.json()["error"] == "Cannot change status from Closed to In Progress"

    assert client.get(f"/api/requests/{rid}", headers=other["headers"]).status_code == 403


def test_invalid_status_value(client, user, advisor):
    rid = _new_request(client, user, preferredAdvisor=advisor["id"])["_id"]
    res = client.put(f"/api/requests/{rid}/status", headers=user["headers"], json={"status": "Accepted"})
    assert res.status_code == 400
    assert res.json()["error"] == "Invalid status"


def test_open_request_decline_hides_it_from_that_advisor(client, user, advisor, register):
    other = register("Advisor Two", user_type="Financial Advisor")
    rid = _new_request(client, user)["_id"]

    def queue(who):
        return [r["_id"] for r in client.get("/api/requests", headers=who["headers"]).json()["requests"]]

    assert rid in queue(advisor)
    assert rid in queue(other)

    res = client.put(f"/api/requests/{rid}/decline", headers=other["headers"])
    assert res.status_code == 200
    assert res.json()["request"]["status"] == PENDING
    assert rid not in queue(other)
    assert rid in queue(advisor)

    assert client.put(f"/api/requests/{rid}/accept", headers=advisor["headers"]).status_code == 200
    assert rid in queue(advisor)


def test_targeted_decline_is_terminal(client, user, advisor):
    rid = _new_request(client, user, preferredAdvisor=advisor["id"])["_id"]
    res = client.put(f"/api/requests/{rid}/decline", headers=advisor["headers"])
    assert res.json()["request"]["status"] == DECLINED
    assert res.json()["request"]["advisor"] is None


def test_client_delete_cancels_and_hides(client, user, advisor):
    rid = _new_request(client, user, preferredAdvisor=advisor["id"])["_id"]
    res = client.delete(f"/api/requests/{rid}", headers=user["headers"])
    assert res.json()["request"]["status"] == CANCELLED
    listed = client.get("/api/requests", headers=user["headers"]).json()["requests"]
    assert rid not in [r["_id"] for r in listed]


def test_messages_read_and_delete(client, user, advisor):
    rid = _new_request(client, user, preferredAdvisor=advisor["id"])["_id"]
    client.put(f"/api/requests/{rid}/accept", headers=advisor["headers"])
    first = client.post(f"/api/messages/request/{rid}", headers=user["headers"], json={"content": "a"}).json()
    client.post(f"/api/messages/request/{rid}", headers=user["headers"], json={"content": "b"})

    assert client.get("/api/messages/unread-count", headers=advisor["headers"]).json()["unreadCount"] == 2
    thread = client.get(f"/api/messages/request/{rid}", headers=advisor["headers"]).json()["messages"]
    assert [m["content"] for m in thread] == ["a", "b"]

    client.put(f"/api/messages/request/{rid}/read", headers=advisor["headers"])
    assert client.get("/api/messages/unread-count", headers=advisor["headers"]).json()["unreadCount"] == 0

    mid = first["message"]["_id"]
    res = client.delete(f"/api/messages/{mid}", headers=advisor["headers"])
    assert res.status_code == 403
    assert res.json()["error"] == "You can only delete your own messages"
    assert client.delete(f"/api/messages/{mid}", headers=user["headers"]).status_code == 200

    empty = client.post(f"/api/messages/request/{rid}", headers=user["headers"], json={"content": "  "})
    assert empty.status_code == 400


def test_notes_are_advisor_private(client, user, advisor):
    rid = _new_request(client, user, preferredAdvisor=advisor["id"])["_id"]
    client.put(f"/api/requests/{rid}/accept", headers=advisor["headers"])

    assert client.post(f"/api/notes/request/{rid}", headers=user["headers"], json={"content": "x"}).status_code == 403

    res = client.post(f"/api/notes/request/{rid}", headers=advisor["headers"],
                      json={"title": "Risk profile", "content": "Prefers low RISK funds"})
    assert res.status_code == 201
    nid = res.json()["note"]["_id"]

    hits = client.get("/api/notes/search", params={"q": "risk"}, headers=advisor["headers"]).json()["notes"]
    assert [n["_id"] for n in hits] == [nid]
    assert client.get("/api/notes/search", headers=advisor["headers"]).status_code == 400

    res = client.put(f"/api/notes/{nid}", headers=advisor["headers"], json={"content": "updated"})
    assert res.json()["note"]["content"] == "updated"
    # null leaves a field alone
    res = client.put(f"/api/notes/{nid}", headers=advisor["headers"], json={"content": None, "title": None})
    assert res.json()["note"]["content"] == "updated"
    assert res.json()["note"]["title"] == "Risk profile"

    untitled = client.post(f"/api/notes/request/{rid}", headers=advisor["headers"], json={"content": "No title"})
    assert untitled.status_code == 201
    assert untitled.json()["note"]["title"] is None
    res = client.post(f"/api/notes/request/{rid}", headers=advisor["headers"], json={"title": "Only a title"})
    assert res.status_code == 400
    assert res.json()["error"] == "Note content is required"
    assert client.delete(f"/api/notes/{nid}", headers=advisor["headers"]).status_code == 200
    assert client.get(f"/api/notes/{nid}", headers=advisor["headers"]).status_code == 404


def test_meeting_lifecycle(client, user, advisor):
    rid = _new_request(client, user)["_id"]
    when = (dt.datetime.now(dt.timezone.utc) + dt.timedelta(days=2)).isoformat()

    res = client.post(f"/api/meetings/request/{rid}", headers=user["headers"], json={"dateTime": when})
    assert res.status_code == 400
    assert res.json()["error"] == "Cannot schedule meeting - no advisor assigned to this request"

    client.put(f"/api/requests/{rid}/accept", headers=advisor["headers"])
    past = (dt.datetime.now(dt.timezone.utc) - dt.timedelta(days=1)).isoformat()
    res = client.post(f"/api/meetings/request/{rid}", headers=user["headers"], json={"dateTime": past})
    assert res.json()["error"] == "Meeting date must be in the future"

    res = client.post(f"/api/meetings/request/{rid}", headers=user["headers"], json={"dateTime": when})
    assert res.status_code == 201
    meeting = res.json()["meeting"]
    assert meeting["status"] == "Scheduled"
    assert meeting["meetingType"] == "Video Call"
    assert meeting["duration"] == 60
    mid = meeting["_id"]

    upcoming = client.get("/api/meetings/upcoming", headers=advisor["headers"]).json()["meetings"]
    assert [m["_id"] for m in upcoming] == [mid]
    assert upcoming[0]["request"]["title"] == "Retirement plan"

    res = client.put(f"/api/meetings/{mid}", headers=user["headers"],
                     json={"title": None, "duration": None, "location": "Riyadh office"})
    assert res.json()["meeting"]["duration"] == 60
    assert res.json()["meeting"]["location"] == "Riyadh office"

    res = client.put(f"/api/meetings/{mid}/complete", headers=user["headers"])
    assert res.status_code == 403

    res = client.put(f"/api/meetings/{mid}/complete", headers=advisor["headers"], json={"notes": "done"})
    assert res.json()["meeting"]["status"] == "Completed"

    res = client.put(f"/api/meetings/{mid}/cancel", headers=user["headers"], json={"reason": "late"})
    assert res.status_code == 400
    assert res.json()["error"] == "Cannot cancel completed meetings"

    res = client.put(f"/api/meetings/{mid}", headers=user["headers"], json={"title": "new"})
    assert res.status_code == 400


def test_draft_is_for_the_assigned_advisor(client, user, advisor, register):
    other = register("Advisor Two", user_type="Financial Advisor")
    rid = _new_request(client, user, preferredAdvisor=advisor["id"])["_id"]
    client.put(f"/api/requests/{rid}/accept", headers=advisor["headers"])

    res = client.put(f"/api/requests/{rid}/draft", headers=advisor["headers"], json={"content": "Start with an emergency fund"})
    assert res.status_code == 200
    got = client.get(f"/api/requests/{rid}", headers=advisor["headers"]).json()["request"]
    assert got["draft"] == "Start with an emergency fund"

    for outsider in (other, user):
        res = client.put(f"/api/requests/{rid}/draft", headers=outsider["headers"], json={"content": "x"})
        assert res.status_code == 403


def test_client_history_for_advisor(client, user, advisor, register):
    other = register("Advisor Two", user_type="Financial Advisor")
    mine = _new_request(client, user, preferredAdvisor=advisor["id"])["_id"]
    theirs = _new_request(client, user, preferredAdvisor=other["id"])["_id"]
    client.put(f"/api/requests/{mine}/accept", headers=advisor["headers"])
    client.put(f"/api/requests/{theirs}/accept", headers=other["headers"])

    res = client.get(f"/api/requests/client/{user['id']}/history", headers=advisor["headers"])
    assert res.status_code == 200
    body = res.json()
    assert body["client"]["totalRequests"] == 1
    assert body["client"]["memberSince"]
    assert [r["_id"] for r in body["requests"]] == [mine]

    res = client.get(f"/api/requests/client/{user['id']}/history", headers=user["headers"])
    assert res.status_code == 403
    assert res.json()["error"] == "Only advisors can view client history"
    res = client.get(f"/api/requests/client/{ObjectId()}/history", headers=advisor["headers"])
    assert res.status_code == 404


def test_status_change_lost_race_is_409(client, db, user, advisor):
    rid = _new_request(client, user, preferredAdvisor=advisor["id"])["_id"]
    client.put(f"/api/requests/{rid}/accept", headers=advisor["headers"])

    # the caller read Pending, but the request has since been accepted
    with pytest.raises(ApiError) as err:
        run(set_status(db, ObjectId(rid), PENDING, CANCELLED))
    assert err.value.status_code == 409
    assert err.value.detail == "Request status changed, please reload"

    got = client.get(f"/api/requests/{rid}", headers=user["headers"]).json()["request"]
    assert got["status"] == ACCEPTED
