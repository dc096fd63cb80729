import uuid

import pytest

from cardmock.services.notification_service import NotificationService, EVENT_COMMENT, EVENT_MOCKUP_SHARED


@pytest.fixture
def seeded(db_session, user_factory):
    user = user_factory("reader@example.com")
    service = NotificationService(db_session)
    first = service.create_notification(user.id, EVENT_COMMENT, "New comment", "Ada commented")
    second = service.create_notification(user.id, EVENT_MOCKUP_SHARED, "Shared", "A mockup was shared")
    return user, first, second


def test_list_notifications(client, seeded, headers):
    user, _, _ = seeded
    body = client.get("/notifications/", headers=headers(user)).json()
    assert body["unread_count"] == 2
    assert body["total_count"] == 2
    assert {n["title"] for n in body["notifications"]} == {"New comment", "Shared"}


def test_mark_one_read(client, seeded, headers):
    user, first, _ = seeded
    resp = client.post(f"/notifications/{first.id}/read", headers=headers(user))
    assert resp.status_code == 204
    assert client.get("/notifications/unread-count", headers=headers(user)).json() == {"unread_count": 1}

    unread = client.get("/notifications/", params={"unread_only": True}, headers=headers(user)).json()
    assert [n["title"] for n in unread["notifications"]] == ["Shared"]


def test_cannot_read_someone_elses_notification(client, seeded, user_factory, headers):
    _, first, _ = seeded
    stranger = user_factory("stranger@example.com")
    assert client.post(f"/notifications/{first.id}/read", headers=headers(stranger)).status_code == 404
    assert client.post(f"/notifications/{uuid.uuid4()}/read", headers=headers(stranger)).status_code == 404


def test_mark_all_read(client, seeded, headers):
    user, _, _ = seeded
    assert client.post("/notifications/read-all", headers=headers(user)).json() == {"marked_read": 2}
    assert client.get("/notifications/unread-count", headers=headers(user)).json() == {"unread_count": 0}


def test_limit_is_bounded(client, seeded, headers):
    user, _, _ = seeded
    assert client.get("/notifications/", params={"limit": 0}, headers=headers(user)).status_code == 422
    body = client.get("/notifications/", params={"limit": 1}, headers=headers(user)).json()
    assert body["total_count"] == 1


def test_preferences_default_to_enabled(client, user_factory, headers):
    user = user_factory()
    prefs = client.get("/notifications/preferences", headers=headers(user)).json()["preferences"]
    assert prefs["comment"] == {"email_enabled": True, "in_app_enabled": True}
    assert "mockup_shared" in prefs


def test_partial_preference_update_keeps_other_channel(client, user_factory, headers):
    user = user_factory()
    resp = client.put("/notifications/preferences/comment", json={"email_enabled": False}, headers=headers(user))
    assert resp.status_code == 200
    assert resp.json()["email_enabled"] is False
    assert resp.json()["in_app_enabled"] is True

    resp = client.put("/notifications/preferences/comment", json={"in_app_enabled": False}, headers=headers(user))
    assert resp.json()["email_enabled"] is False
    assert resp.json()["in_app_enabled"] is False


def test_unknown_event_type_rejected(client, user_factory, headers):
    user = user_factory()
    resp = client.put("/notifications/preferences/birthday", json={"email_enabled": False}, headers=headers(user))
    assert resp.status_code == 400
    assert resp.json()["detail"].startswith("Invalid event type. Must be one of: approval_request")


def test_cleanup_requires_superadmin(client, db_session, user_factory, headers):
    user = user_factory()
    NotificationService(db_session).create_notification(user.id, EVENT_COMMENT, "Old", "gone", expires_days=-1)
    assert client.delete("/notifications/cleanup/expired", headers=headers(user)).status_code == 403

    root = user_factory("root@example.com", is_superadmin=True)
    resp = client.delete("/notifications/cleanup/expired", headers=headers(root))
    assert resp.json() == {"message": "Cleaned up 1 expired notifications"}


def test_requires_authentication(client):
    assert client.get("/notifications/").status_code == 401
