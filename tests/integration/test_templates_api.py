import uuid

from cardmock.db import models


class TestTemplateTypes:

    def test_list_seeded_types(self, client, user_factory, headers):
        resp = client.get("/template-types/", headers=headers(user_factory()))
        assert resp.status_code == 200
        ids = {t["id"] for t in resp.json()["template_types"]}
        assert {"prepaid-cr80", "wallet-apple", "wallet-google"} <= ids

    def test_unknown_type(self, client, user_factory, headers):
        resp = client.get("/template-types/nope", headers=headers(user_factory()))
        assert resp.status_code == 404

    def test_analyze_exact_upload(self, client, user_factory, headers):
        resp = client.post(
            "/template-types/prepaid-cr80/analyze", json={"width": 1013, "height": 638}, headers=headers(user_factory())
        )
        body = resp.json()
        assert body["analysis"]["status"] == "exact"
        assert body["prompt"]["title"] == "Perfect Match"

    def test_analyze_small_upload(self, client, user_factory, headers):
        resp = client.post(
            "/template-types/prepaid-cr80/analyze", json={"width": 800, "height": 504}, headers=headers(user_factory())
        )
        body = resp.json()
        assert body["analysis"]["status"] == "too_small"
        assert body["analysis"]["quality_rating"] == "fair"
        assert body["prompt"]["title"] == "Small Image Warning"

    def test_analyze_rejects_zero_dimensions(self, client, user_factory, headers):
        resp = client.post(
            "/template-types/prepaid-cr80/analyze", json={"width": 0, "height": 100}, headers=headers(user_factory())
        )
        assert resp.status_code == 422


class TestTemplates:

    payload = {
        "template_name": "Gold Base",
        "template_url": "https://cdn.example/gold.png",
        "file_type": "image/png",
        "file_size": 1024,
    }

    def test_admin_creates_template_with_analysis(self, client, org_admin, headers):
        admin, org = org_admin
        resp = client.post(
            "/templates/",
            json={**self.payload, "original_width": 800, "original_height": 504},
            headers=headers(admin, org),
        )
        assert resp.status_code == 201
        template = resp.json()["template"]
        assert template["template_type_id"] == "prepaid-cr80"
        assert template["width"] == 1013
        assert template["height"] == 638
        assert template["upload_quality"] == "fair"
        assert template["scale_factor"] > 1.2

    def test_member_cannot_create(self, client, org_member, headers):
        member, org = org_member
        resp = client.post("/templates/", json=self.payload, headers=headers(member, org))
        assert resp.status_code == 403

    def test_rejects_non_image_and_oversize(self, client, org_admin, headers):
        admin, org = org_admin
        resp = client.post("/templates/", json={**self.payload, "file_type": "application/pdf"}, headers=headers(admin, org))
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Template file must be an image"

        resp = client.post("/templates/", json={**self.payload, "file_size": 11 * 1024 * 1024}, headers=headers(admin, org))
        assert resp.json()["detail"] == "Template file must be 10MB or smaller"

    def test_rejects_unknown_type(self, client, org_admin, headers):
        admin, org = org_admin
        resp = client.post("/templates/", json={**self.payload, "template_type_id": "cr79"}, headers=headers(admin, org))
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Unknown template type: cr79"

    def test_archive_hides_from_default_listing(self, client, db_session, org_admin, org_member, headers):
        admin, org = org_admin
        member, _ = org_member
        template = client.post("/templates/", json=self.payload, headers=headers(admin, org)).json()["template"]

        resp = client.patch(f"/templates/{template['id']}", json={"is_archived": True}, headers=headers(admin, org))
        assert resp.status_code == 200
        archived = resp.json()["template"]
        assert archived["is_archived"] is True
        assert archived["archived_by"] == str(admin.id)
        assert archived["archived_at"] is not None

        assert client.get("/templates/", headers=headers(member, org)).json()["templates"] == []
        listed = client.get("/templates/", params={"include_archived": True}, headers=headers(member, org)).json()
        assert [t["id"] for t in listed["templates"]] == [template["id"]]
        assert db_session.query(models.AuditLog).filter_by(action_type="template_archive").count() == 1

        resp = client.patch(f"/templates/{template['id']}", json={"is_archived": False}, headers=headers(admin, org))
        assert resp.json()["template"]["archived_at"] is None

    def test_filter_by_type(self, client, org_admin, headers):
        admin, org = org_admin
        client.post("/templates/", json=self.payload, headers=headers(admin, org))
        client.post("/templates/", json={**self.payload, "template_type_id": "wallet-apple"}, headers=headers(admin, org))

        resp = client.get("/templates/", params={"template_type_id": "wallet-apple"}, headers=headers(admin, org))
        assert [t["template_type_id"] for t in resp.json()["templates"]] == ["wallet-apple"]

    def test_delete_template(self, client, org_admin, headers):
        admin, org = org_admin
        template = client.post("/templates/", json=self.payload, headers=headers(admin, org)).json()["template"]
        assert client.delete(f"/templates/{template['id']}", headers=headers(admin, org)).json() == {"success": True}
        assert client.get(f"/templates/{template['id']}", headers=headers(admin, org)).status_code == 404

    def test_templates_scoped_to_organization(self, client, org_admin, headers):
        admin, org = org_admin
        assert client.get(f"/templates/{uuid.uuid4()}", headers=headers(admin, org)).status_code == 404
