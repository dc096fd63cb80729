import base64
import time

import pytest

from cardmock.db import models
from cardmock.services import clerk_webhooks
from cardmock.services.clerk_webhooks import WebhookVerificationError, sign_payload, verify_svix_signature

SECRET = "whsec_" + base64.b64encode(b"clerk-test-secret").decode()


def _headers(body: bytes, ts: int = None, msg_id: str = "msg_1"):
    ts = ts if ts is not None else int(time.time())
    return {
        "svix-id": msg_id,
        "svix-timestamp": str(ts),
        "svix-signature": sign_payload(SECRET, msg_id, str(ts), body),
    }


def test_valid_signature_passes():
    body = b'{"type":"user.created"}'
    verify_svix_signature(SECRET, _headers(body), body)


def test_any_listed_signature_may_match():
    body = b"{}"
    headers = _headers(body)
    headers["svix-signature"] = "v1,bogus " + headers["svix-signature"]
    verify_svix_signature(SECRET, headers, body)


def test_tampered_body_rejected():
    body = b'{"type":"user.created"}'
    headers = _headers(body)
    with pytest.raises(WebhookVerificationError):
        verify_svix_signature(SECRET, headers, b'{"type":"user.deleted"}')


def test_missing_headers_rejected():
    with pytest.raises(WebhookVerificationError) as exc:
        verify_svix_signature(SECRET, {"svix-id": "x"}, b"{}")
    assert "Missing" in str(exc.value)


def test_stale_timestamp_rejected():
    body = b"{}"
    old = int(time.time()) - 3600
    with pytest.raises(WebhookVerificationError):
        verify_svix_signature(SECRET, _headers(body, ts=old), body)


def _user_event(user_id="user_1", email="jo@bank.example"):
    return {
        "type": "user.created",
        "data": {
            "id": user_id,
            "first_name": "Jo",
            "last_name": "Banks",
            "primary_email_address_id": "e1",
            "email_addresses": [{"id": "e1", "email_address": email}],
            "image_url": "https://img/jo.png",
        },
    }


def _membership_event(role="org:member", org_id="org_1", user_id="user_1", email="jo@bank.example"):
    return {
        "type": "organizationMembership.created",
        "data": {
            "role": role,
            "organization": {"id": org_id, "name": "Acme Cards", "slug": "acme"},
            "public_user_data": {"user_id": user_id, "identifier": email, "first_name": "Jo"},
        },
    }


def test_user_created_upserts_user(db_session):
    result = clerk_webhooks.dispatch_event(db_session, _user_event())
    assert result["handled"] is True
    user = db_session.query(models.User).filter_by(external_subject="user_1").one()
    assert user.email == "jo@bank.example"
    assert user.display_name == "Jo Banks"
    assert user.auth_provider == "clerk"


def test_membership_created_maps_role(db_session):
    result = clerk_webhooks.dispatch_event(db_session, _membership_event(role="org:admin"))
    assert result["result"]["role"] == "admin"
    org = db_session.query(models.Organization).filter_by(external_id="org_1").one()
    assert org.slug == "acme"


def test_client_membership_auto_assigns_by_domain(db_session, client_factory):
    org = models.Organization(name="Acme Cards", external_id="org_1")
    db_session.add(org)
    db_session.commit()
    bank = client_factory(org, name="Bank", email="contact@bank.example")

    result = clerk_webhooks.dispatch_event(db_session, _membership_event(role="org:client"))
    assert result["result"]["client_id"] == str(bank.id)


def test_client_membership_without_match_notifies_admins(db_session, user_factory, membership_factory):
    org = models.Organization(name="Acme Cards", external_id="org_1")
    db_session.add(org)
    db_session.commit()
    admin = user_factory("boss@acme.example")
    membership_factory(org, admin, role="admin")

    result = clerk_webhooks.dispatch_event(db_session, _membership_event(role="org:client"))
    assert result["result"]["client_id"] is None
    notes = db_session.query(models.Notification).filter_by(user_id=admin.id).all()
    assert [n.event_type for n in notes] == ["client_assignment_required"]


def test_membership_deleted_removes_membership(db_session):
    clerk_webhooks.dispatch_event(db_session, _membership_event())
    result = clerk_webhooks.dispatch_event(
        db_session,
        {"type": "organizationMembership.deleted", "data": _membership_event()["data"]},
    )
    assert result["result"] == {"removed": True}
    assert db_session.query(models.OrganizationMembership).count() == 0


def test_unknown_event_acknowledged(db_session):
    result = clerk_webhooks.dispatch_event(db_session, {"type": "session.created", "data": {}})
    assert result == {"received": True, "handled": False, "type": "session.created"}
