from unittest.mock import MagicMock

import pytest

from cardmock.api.main import app
from cardmock.db import models
from cardmock.db.repositories import contracts as contract_repo
from cardmock.services.docusign_service import DocuSignError, get_docusign_service
from cardmock.utils.feature_flags import refresh_feature_flag_cache

DOCUMENT = {"file_url": "https://files.example/msa.pdf", "file_name": "MSA.pdf", "file_type": "application/pdf"}
SIGNERS = {"signers": [{"email": "cfo@bank.example", "name": "Casey"}]}


@pytest.fixture
def bank(org_admin, client_factory):
    _, org = org_admin
    return client_factory(org, name="First Bank")


@pytest.fixture
def docusign():
    service = MagicMock()
    service.create_envelope.return_value = {"envelopeId": "env-123", "status": "sent"}
    app.dependency_overrides[get_docusign_service] = lambda: service
    return service


def _create(client, headers, user, org, bank, **payload):
    resp = client.post("/contracts/", json={"client_id": str(bank.id), **payload}, headers=headers(user, org))
    assert resp.status_code == 201, resp.text
    return resp.json()["contract"]


class TestContracts:

    def test_numbers_are_sequential(self, client, org_admin, bank, headers):
        admin, org = org_admin
        first = _create(client, headers, admin, org, bank, title="Master agreement")
        second = _create(client, headers, admin, org, bank)
        assert first["contract_number"] == "CONTRACT-000001"
        assert second["contract_number"] == "CONTRACT-000002"
        assert first["status"] == "draft"
        assert first["type"] == "new"

    def test_manual_number_must_be_unique(self, client, org_admin, bank, headers):
        admin, org = org_admin
        _create(client, headers, admin, org, bank, contract_number="CONTRACT-000001")
        resp = client.post(
            "/contracts/",
            json={"client_id": str(bank.id), "contract_number": "CONTRACT-000001"},
            headers=headers(admin, org),
        )
        assert resp.status_code == 409
        assert resp.json()["detail"] == "Contract number CONTRACT-000001 already exists"

        generated = _create(client, headers, admin, org, bank)
        assert generated["contract_number"] == "CONTRACT-000002"

    def test_number_follows_highest_after_delete(self, client, org_admin, bank, headers):
        admin, org = org_admin
        first = _create(client, headers, admin, org, bank)
        _create(client, headers, admin, org, bank)
        _create(client, headers, admin, org, bank)
        assert client.delete(f"/contracts/{first['id']}", headers=headers(admin, org)).json() == {"success": True}

        assert _create(client, headers, admin, org, bank)["contract_number"] == "CONTRACT-000004"

    def test_taken_number_is_retried(self, client, org_admin, bank, headers, monkeypatch):
        admin, org = org_admin
        _create(client, headers, admin, org, bank)
        real_next = contract_repo.next_contract_number
        calls = []

        def stale_then_real(db, organization_id):
            calls.append(organization_id)
            return "CONTRACT-000001" if len(calls) == 1 else real_next(db, organization_id)

        monkeypatch.setattr(contract_repo, "next_contract_number", stale_then_real)
        assert _create(client, headers, admin, org, bank)["contract_number"] == "CONTRACT-000002"
        assert len(calls) == 2

    def test_create_validation(self, client, org_admin, bank, client_factory, headers):
        admin, org = org_admin
        resp = client.post("/contracts/", json={}, headers=headers(admin, org))
        assert resp.json()["detail"] == "client_id is required"

        other = client_factory(org, name="Other Bank")
        resp = client.post(
            "/contracts/",
            json={"client_id": str(bank.id), "start_date": "2026-06-01", "end_date": "2026-01-01"},
            headers=headers(admin, org),
        )
        assert resp.json()["detail"] == "end_date cannot be before start_date"

        resp = client.post("/contracts/", json={"client_id": str(bank.id), "type": "amendment"}, headers=headers(admin, org))
        assert resp.json()["detail"] == "Amendments require a parent contract"

        parent = _create(client, headers, admin, org, other)
        resp = client.post(
            "/contracts/",
            json={"client_id": str(bank.id), "type": "amendment", "parent_contract_id": parent["id"]},
            headers=headers(admin, org),
        )
        assert resp.json()["detail"] == "Parent contract belongs to a different client"

        assert client.post(
            "/contracts/", json={"client_id": str(bank.id), "status": "lost"}, headers=headers(admin, org)
        ).status_code == 422

    def test_amendment_links_parent(self, client, org_admin, bank, headers):
        admin, org = org_admin
        parent = _create(client, headers, admin, org, bank)
        amendment = _create(client, headers, admin, org, bank, type="amendment", parent_contract_id=parent["id"])
        assert amendment["parent_contract_id"] == parent["id"]

        assert client.delete(f"/contracts/{parent['id']}", headers=headers(admin, org)).json() == {"success": True}
        fetched = client.get(f"/contracts/{amendment['id']}", headers=headers(admin, org)).json()["contract"]
        assert fetched["parent_contract_id"] is None

    def test_list_filters(self, client, org_admin, bank, client_factory, headers):
        admin, org = org_admin
        other = client_factory(org, name="Other Bank")
        _create(client, headers, admin, org, bank, title="A")
        _create(client, headers, admin, org, other, title="B", type="renewal")

        by_client = client.get("/contracts/", params={"client_id": str(bank.id)}, headers=headers(admin, org)).json()
        assert [c["title"] for c in by_client["contracts"]] == ["A"]
        by_type = client.get("/contracts/", params={"type": "renewal"}, headers=headers(admin, org)).json()
        assert [c["title"] for c in by_type["contracts"]] == ["B"]

    def test_client_user_scoping(self, client, org_admin, org_client_user, client_factory, headers):
        admin, org = org_admin
        buyer, _, bank = org_client_user
        ours = _create(client, headers, admin, org, bank, title="Ours")
        theirs = _create(client, headers, admin, org, client_factory(org, name="Other Bank"), title="Theirs")

        listed = client.get("/contracts/", headers=headers(buyer, org)).json()["contracts"]
        assert [c["title"] for c in listed] == ["Ours"]
        assert client.get(f"/contracts/{ours['id']}", headers=headers(buyer, org)).status_code == 200
        resp = client.get(f"/contracts/{theirs['id']}", headers=headers(buyer, org))
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Access denied: Contract does not belong to your assigned client"

        resp = client.patch(f"/contracts/{ours['id']}", json={"title": "Mine"}, headers=headers(buyer, org))
        assert resp.status_code == 403

    def test_update(self, client, db_session, org_admin, bank, headers):
        admin, org = org_admin
        contract = _create(client, headers, admin, org, bank, start_date="2026-01-01")
        resp = client.patch(
            f"/contracts/{contract['id']}", json={"status": "expired", "end_date": "2026-12-31"}, headers=headers(admin, org)
        )
        assert resp.json()["contract"]["status"] == "expired"
        resp = client.patch(f"/contracts/{contract['id']}", json={"end_date": "2025-12-31"}, headers=headers(admin, org))
        assert resp.status_code == 400
        assert db_session.query(models.AuditLog).filter_by(action_type="contract_update").count() == 1

    def test_disabled_feature(self, client, org_admin, headers, monkeypatch):
        admin, org = org_admin
        monkeypatch.setenv("FEATURE_CONTRACTS_ENABLED", "off")
        refresh_feature_flag_cache()
        assert client.get("/contracts/", headers=headers(admin, org)).status_code == 404


class TestDocuments:

    def test_versions(self, client, org_admin, bank, headers):
        admin, org = org_admin
        contract = _create(client, headers, admin, org, bank)
        url = f"/contracts/{contract['id']}/documents"
        first = client.post(url, json=DOCUMENT, headers=headers(admin, org)).json()["document"]
        second = client.post(url, json={**DOCUMENT, "file_name": "MSA v2.pdf"}, headers=headers(admin, org)).json()["document"]
        assert (first["version_number"], second["version_number"]) == (1, 2)

        documents = client.get(url, headers=headers(admin, org)).json()["documents"]
        assert [(d["version_number"], d["is_current"]) for d in documents] == [(2, True), (1, False)]

        detail = client.get(f"/contracts/{contract['id']}", headers=headers(admin, org)).json()["contract"]
        assert detail["document_count"] == 2
        assert detail["current_document"]["file_name"] == "MSA v2.pdf"

    def test_send_for_signature(self, client, db_session, org_admin, bank, docusign, headers):
        admin, org = org_admin
        contract = _create(client, headers, admin, org, bank)
        document = client.post(
            f"/contracts/{contract['id']}/documents", json=DOCUMENT, headers=headers(admin, org)
        ).json()["document"]
        url = f"/contracts/{contract['id']}/documents/{document['id']}/send-for-signature"

        resp = client.post(url, json=SIGNERS, headers=headers(admin, org))
        assert resp.status_code == 200
        body = resp.json()
        assert body["envelope_id"] == "env-123"
        assert body["contract"]["status"] == "pending_signature"
        assert body["document"]["docu_sign_status"] == "sent"
        kwargs = docusign.create_envelope.call_args.kwargs
        assert kwargs["document_name"] == "MSA.pdf"
        assert kwargs["signers"] == [{"email": "cfo@bank.example", "name": "Casey"}]

        resp = client.post(url, json=SIGNERS, headers=headers(admin, org))
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Document has already been sent for signature"

    def test_send_requires_signers(self, client, org_admin, bank, docusign, headers):
        admin, org = org_admin
        contract = _create(client, headers, admin, org, bank)
        document = client.post(
            f"/contracts/{contract['id']}/documents", json=DOCUMENT, headers=headers(admin, org)
        ).json()["document"]
        url = f"/contracts/{contract['id']}/documents/{document['id']}/send-for-signature"
        assert client.post(url, json={"signers": []}, headers=headers(admin, org)).status_code == 422

    def test_signed_contract_cannot_be_resent(self, client, org_admin, bank, docusign, headers):
        admin, org = org_admin
        contract = _create(client, headers, admin, org, bank, status="signed")
        document = client.post(
            f"/contracts/{contract['id']}/documents", json=DOCUMENT, headers=headers(admin, org)
        ).json()["document"]
        resp = client.post(
            f"/contracts/{contract['id']}/documents/{document['id']}/send-for-signature", json=SIGNERS, headers=headers(admin, org)
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Cannot send a signed contract for signature"
        docusign.create_envelope.assert_not_called()

    def test_docusign_failure_is_audited(self, client, db_session, org_admin, bank, docusign, headers):
        admin, org = org_admin
        docusign.create_envelope.side_effect = DocuSignError(503, "DocuSign is not configured")
        contract = _create(client, headers, admin, org, bank)
        document = client.post(
            f"/contracts/{contract['id']}/documents", json=DOCUMENT, headers=headers(admin, org)
        ).json()["document"]

        resp = client.post(
            f"/contracts/{contract['id']}/documents/{document['id']}/send-for-signature", json=SIGNERS, headers=headers(admin, org)
        )
        assert resp.status_code == 503
        assert resp.json()["detail"] == "DocuSign is not configured"
        failed = db_session.query(models.AuditLog).filter_by(action_type="contract_send_for_signature").one()
        assert failed.status == "failure"

    def test_unknown_document(self, client, org_admin, bank, docusign, headers):
        admin, org = org_admin
        contract = _create(client, headers, admin, org, bank)
        resp = client.post(
            f"/contracts/{contract['id']}/documents/00000000-0000-0000-0000-000000000001/send-for-signature",
            json=SIGNERS,
            headers=headers(admin, org),
        )
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Document not found"
