import base64
import hashlib
import hmac
import json
import time

import pytest

from cardmock.db import models
from cardmock.services.clerk_webhooks import sign_payload

CLERK_SECRET = "whsec_" + base64.b64encode(b"clerk-test-secret").decode()
CONNECT_SECRET = "connect-secret"


def _clerk_post(client, event, secret=CLERK_SECRET):
    body = json.dumps(event).encode()
    ts = str(int(time.time()))
    headers = {
        "svix-id": "msg_1",
        "svix-timestamp": ts,
        "svix-signature": sign_payload(secret, "msg_1", ts, body),
        "content-type": "application/json",
    }
    return client.post("/webhooks/clerk", content=body, headers=headers)


def _docusign_post(client, payload, secret=CONNECT_SECRET):
    body = json.dumps(payload).encode()
    signature = base64.b64encode(hmac.new(secret.encode(), body, hashlib.sha256).digest()).decode()
    return client.post(
        "/webhooks/docusign",
        content=body,
        headers={"X-DocuSign-Signature-1": signature, "content-type": "application/json"},
    )


class TestClerkWebhook:

    @pytest.fixture(autouse=True)
    def _secret(self, monkeypatch):
        monkeypatch.setenv("CLERK_WEBHOOK_SECRET", CLERK_SECRET)

    def test_user_created(self, client, db_session):
        event = {
            "type": "user.created",
            "data": {
                "id": "user_abc",
                "first_name": "Ada",
                "last_name": "Admin",
                "primary_email_address_id": "e1",
                "email_addresses": [{"id": "e1", "email_address": "Ada@Example.com"}],
            },
        }
        resp = _clerk_post(client, event)
        assert resp.status_code == 200
        assert resp.json() == {"received": True, "type": "user.created", "handled": True}

        user = db_session.query(models.User).filter_by(external_subject="user_abc").one()
        assert user.email == "ada@example.com"
        assert user.display_name == "Ada Admin"
        event_row = db_session.query(models.IntegrationEvent).one()
        assert (event_row.integration_type, event_row.event_type) == ("clerk", "user.created")

    def test_membership_for_client_role_auto_assigns(self, client, db_session, organization_factory, client_factory):
        org = organization_factory("Acme Cards")
        org.external_id = "org_1"
        db_session.commit()
        bank = client_factory(org, name="First Bank", email="ap@firstbank.example")

        event = {
            "type": "organizationMembership.created",
            "data": {
                "role": "org:client",
                "organization": {"id": "org_1", "name": "Acme Cards"},
                "public_user_data": {"user_id": "user_x", "identifier": "cfo@firstbank.example"},
            },
        }
        assert _clerk_post(client, event).status_code == 200

        db_session.expire_all()
        user = db_session.query(models.User).filter_by(email="cfo@firstbank.example").one()
        assignment = db_session.query(models.ClientUser).filter_by(user_id=user.id).one()
        assert assignment.client_id == bank.id

    def test_unknown_event_acknowledged(self, client):
        resp = _clerk_post(client, {"type": "session.created", "data": {}})
        assert resp.json()["handled"] is False

    @pytest.mark.parametrize("event", [{"type": ["user.created"]}, {"type": "user.created", "data": "oops"}])
    def test_malformed_event(self, client, event):
        resp = _clerk_post(client, event)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Malformed event payload"

    def test_bad_signature(self, client):
        other = "whsec_" + base64.b64encode(b"someone-else").decode()
        resp = _clerk_post(client, {"type": "user.created", "data": {}}, secret=other)
        assert resp.status_code == 400

    def test_missing_secret(self, client, monkeypatch):
        monkeypatch.delenv("CLERK_WEBHOOK_SECRET")
        resp = _clerk_post(client, {"type": "user.created", "data": {}})
        assert resp.status_code == 500
        assert resp.json()["detail"] == "Webhook secret not configured"


class TestDocuSignWebhook:

    @pytest.fixture
    def sent_document(self, db_session, org_admin, client_factory):
        _, org = org_admin
        bank = client_factory(org, name="First Bank")
        contract = models.Contract(
            organization_id=org.id,
            client_id=bank.id,
            contract_number="CONTRACT-000001",
            status="pending_signature",
            type="new",
        )
        db_session.add(contract)
        db_session.flush()
        document = models.ContractDocument(
            contract_id=contract.id,
            version_number=1,
            file_url="https://files.example/msa.pdf",
            file_name="MSA.pdf",
            is_current=True,
            docu_sign_envelope_id="env-123",
            docu_sign_status="sent",
        )
        db_session.add(document)
        db_session.commit()
        return contract, document

    @pytest.fixture(autouse=True)
    def _secret(self, monkeypatch):
        monkeypatch.setenv("DOCUSIGN_CONNECT_SECRET", CONNECT_SECRET)

    def test_completed_envelope_signs_contract(self, client, db_session, sent_document):
        contract, document = sent_document
        resp = _docusign_post(client, {"event": "envelope-completed", "data": {"envelopeId": "env-123"}})
        assert resp.status_code == 200
        assert resp.json() == {"message": "Webhook processed", "status": "signed"}

        db_session.expire_all()
        assert db_session.get(models.ContractDocument, document.id).docu_sign_status == "signed"
        signed = db_session.get(models.Contract, contract.id)
        assert signed.status == "signed"
        assert signed.signed_at is not None
        assert db_session.query(models.AuditLog).filter_by(action_type="contract_signed").count() == 1

    def test_declined_envelope_keeps_contract_status(self, client, db_session, sent_document):
        contract, document = sent_document
        resp = _docusign_post(client, {"event": "envelope-declined", "data": {"envelope_id": "env-123"}})
        assert resp.json()["status"] == "declined"
        db_session.expire_all()
        assert db_session.get(models.Contract, contract.id).status == "pending_signature"

    def test_invalid_signature(self, client, sent_document):
        resp = _docusign_post(client, {"event": "envelope-completed", "data": {"envelopeId": "env-123"}}, secret="wrong")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid webhook signature"

    def test_unknown_envelope(self, client):
        resp = _docusign_post(client, {"event": "envelope-completed", "data": {"envelopeId": "nope"}})
        assert resp.status_code == 404

    def test_envelope_id_required(self, client):
        resp = _docusign_post(client, {"event": "envelope-completed", "data": {}})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "envelope_id is required"

    @pytest.mark.parametrize(
        "payload, detail",
        [
            ({"event": "envelope-completed", "data": "oops"}, "data must be an object"),
            ({"event": "envelope-completed", "data": ["env-123"]}, "data must be an object"),
            ({"event": "envelope-completed", "data": {"envelopeId": 123}}, "envelope_id must be a string"),
            ({"event": {"name": "completed"}, "data": {"envelopeId": "env-123"}}, "event must be a string"),
        ],
    )
    def test_malformed_payload(self, client, sent_document, payload, detail):
        resp = _docusign_post(client, payload)
        assert resp.status_code == 400
        assert resp.json()["detail"] == detail
