from datetime import datetime, timedelta, UTC

import pytest

from cardmock.db import models
from cardmock.utils.feature_flags import refresh_feature_flag_cache


@pytest.fixture
def owned_mockup(org_member, mockup_factory):
    member, org = org_member
    return member, org, mockup_factory(org, name="Gold Card", created_by=member.id)


def _share(client, headers, user, org, mockup, **options):
    resp = client.post("/mockups/share", json={"mockupId": str(mockup.id), **options}, headers=headers(user, org))
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestShareLinks:

    def test_create_link(self, client, db_session, owned_mockup, headers):
        member, org, mockup = owned_mockup
        body = _share(client, headers, member, org, mockup, permissions="comment", expiresInDays=7, password="s3cret")
        link = body["share_link"]
        assert link["permissions"] == "comment"
        assert link["has_password"] is True
        assert link["expires_at"] is not None
        assert "password_hash" not in link
        assert body["url"].endswith(f"/public/share/{link['token']}")
        assert db_session.query(models.AuditLog).filter_by(action_type="share_link_create").count() == 1

    @pytest.mark.parametrize(
        "options, detail",
        [
            ({"permissions": "edit"}, "permissions must be one of: view, comment, approve"),
            ({"identityRequiredLevel": "always"}, "identityRequiredLevel must be one of: none, comment, approve"),
            ({"maxUses": 0}, "maxUses must be a positive integer"),
            ({"expiresInDays": "soon"}, "expiresInDays must be a positive integer"),
            ({"recipients": "a@b.example"}, "recipients must be a list of email addresses"),
            ({"password": 1234}, "password must be a string"),
            ({"message": ["hi"]}, "message must be a string"),
        ],
    )
    def test_create_validation(self, client, owned_mockup, headers, options, detail):
        member, org, mockup = owned_mockup
        resp = client.post("/mockups/share", json={"mockupId": str(mockup.id), **options}, headers=headers(member, org))
        assert resp.status_code == 400
        assert resp.json()["detail"] == detail

    def test_mockup_id_required(self, client, org_member, headers):
        member, org = org_member
        resp = client.post("/mockups/share", json={}, headers=headers(member, org))
        assert resp.json()["detail"] == "mockupId is required"

    def test_only_creator_or_admin_shares(self, client, owned_mockup, org_admin, user_factory, membership_factory, headers):
        _, org, mockup = owned_mockup
        admin, _ = org_admin
        other = user_factory("other@example.com")
        membership_factory(org, other, role="member")

        resp = client.post("/mockups/share", json={"mockupId": str(mockup.id)}, headers=headers(other, org))
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Only the mockup creator or an admin can share it"
        _share(client, headers, admin, org, mockup)

    def test_recipients_receive_email_log(self, client, db_session, owned_mockup, headers):
        member, org, mockup = owned_mockup
        _share(client, headers, member, org, mockup, recipients=["cfo@bank.example", "cfo@bank.example"])
        logs = db_session.query(models.EmailNotificationLog).filter_by(event_type="mockup_shared").all()
        assert [log.email_address for log in logs] == ["cfo@bank.example"]

    def test_list_and_deactivate(self, client, owned_mockup, headers):
        member, org, mockup = owned_mockup
        link = _share(client, headers, member, org, mockup)["share_link"]

        listed = client.get("/share-links", params={"mockup_id": str(mockup.id)}, headers=headers(member, org)).json()
        assert [s["id"] for s in listed["share_links"]] == [link["id"]]

        resp = client.delete(f"/share-links/{link['id']}", headers=headers(member, org))
        assert resp.json()["share_link"]["is_active"] is False
        assert client.get(f"/public/share/{link['token']}").status_code == 404

    def test_client_user_must_filter_by_mockup(self, client, org_client_user, headers):
        buyer, org, _ = org_client_user
        resp = client.get("/share-links", headers=headers(buyer, org))
        assert resp.status_code == 400
        assert resp.json()["detail"] == "mockup_id query parameter is required"

    def test_disabled_feature_hides_routes(self, client, owned_mockup, headers, monkeypatch):
        member, org, mockup = owned_mockup
        token = _share(client, headers, member, org, mockup)["share_link"]["token"]
        monkeypatch.setenv("FEATURE_PUBLIC_SHARING_ENABLED", "false")
        refresh_feature_flag_cache()

        assert client.post("/mockups/share", json={"mockupId": str(mockup.id)}, headers=headers(member, org)).status_code == 404
        assert client.get(f"/public/share/{token}").status_code == 404


class TestPublicReview:

    def test_view_counts_use(self, client, db_session, owned_mockup, headers):
        member, org, mockup = owned_mockup
        token = _share(client, headers, member, org, mockup)["share_link"]["token"]

        resp = client.get(f"/public/share/{token}")
        assert resp.status_code == 200
        body = resp.json()
        assert body["mockup"]["mockup_name"] == "Gold Card"
        assert body["link"]["permissions"] == "view"
        assert body["reviewer"] is None
        assert "organization_id" not in body["mockup"]

        db_session.expire_all()
        assert db_session.query(models.PublicShareLink).one().use_count == 1
        assert db_session.query(models.PublicShareAnalytics).count() == 1

    def test_unknown_token(self, client):
        resp = client.get("/public/share/does-not-exist")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Share link not found"

    def test_expired_link(self, client, db_session, owned_mockup, headers):
        member, org, mockup = owned_mockup
        token = _share(client, headers, member, org, mockup, expiresInDays=1)["share_link"]["token"]
        db_session.query(models.PublicShareLink).update({"expires_at": datetime.now(UTC) - timedelta(hours=1)})
        db_session.commit()

        resp = client.get(f"/public/share/{token}")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Share link has expired"

    def test_max_uses(self, client, owned_mockup, headers):
        member, org, mockup = owned_mockup
        token = _share(client, headers, member, org, mockup, maxUses=1)["share_link"]["token"]
        assert client.get(f"/public/share/{token}").status_code == 200
        resp = client.get(f"/public/share/{token}")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Share link has reached its maximum number of uses"

    def test_password_protected_link(self, client, owned_mockup, headers):
        member, org, mockup = owned_mockup
        token = _share(client, headers, member, org, mockup, permissions="comment", password="s3cret")["share_link"]["token"]

        body = client.get(f"/public/share/{token}").json()
        assert body["link"]["has_password"] is True
        assert body["mockup"] is None
        body = client.get(f"/public/share/{token}", headers={"X-Share-Password": "s3cret"}).json()
        assert body["mockup"]["mockup_name"] == "Gold Card"

        resp = client.post(f"/public/share/{token}/verify", json={"password": "nope"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid password"
        assert client.post(f"/public/share/{token}/verify", json={"password": "s3cret"}).json() == {"valid": True}

        resp = client.post(f"/public/share/{token}/comment", json={"comment_text": "Hi"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Password required"
        resp = client.post(
            f"/public/share/{token}/comment", json={"comment_text": "Hi"}, headers={"X-Share-Password": "s3cret"}
        )
        assert resp.status_code == 201

    def test_anonymous_comment_notifies_creator(self, client, db_session, owned_mockup, headers):
        member, org, mockup = owned_mockup
        token = _share(client, headers, member, org, mockup, permissions="comment")["share_link"]["token"]

        resp = client.post(f"/public/share/{token}/comment", json={"comment_text": " Love it ", "position_x": 0.5})
        assert resp.status_code == 201
        comment = resp.json()["comment"]
        assert comment["user_name"] == "Anonymous reviewer"
        assert comment["comment_text"] == "Love it"
        assert comment["user_id"] is None

        notes = db_session.query(models.Notification).filter_by(user_id=member.id, event_type="comment").all()
        assert len(notes) == 1

    def test_view_only_link_rejects_comments(self, client, owned_mockup, headers):
        member, org, mockup = owned_mockup
        token = _share(client, headers, member, org, mockup)["share_link"]["token"]
        resp = client.post(f"/public/share/{token}/comment", json={"comment_text": "Hi"})
        assert resp.status_code == 403
        assert resp.json()["detail"] == "This share link does not allow comments"

    def test_identity_required_for_comments(self, client, owned_mockup, headers):
        member, org, mockup = owned_mockup
        token = _share(
            client, headers, member, org, mockup, permissions="comment", identityRequiredLevel="comment"
        )["share_link"]["token"]

        resp = client.post(f"/public/share/{token}/comment", json={"comment_text": "Hi"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Reviewer identification required"

        session = client.post(
            f"/public/share/{token}/reviewer", json={"email": "CFO@Bank.example", "name": "Casey", "company": "First Bank"}
        ).json()
        assert session["reviewer"]["email"] == "cfo@bank.example"

        resp = client.post(
            f"/public/share/{token}/comment",
            json={"comment_text": "Hi"},
            headers={"X-Reviewer-Session": session["session_token"]},
        )
        assert resp.status_code == 201
        assert resp.json()["comment"]["user_name"] == "Casey"
        assert resp.json()["comment"]["public_reviewer_id"] == session["reviewer"]["id"]

    def test_reviewer_validation(self, client, owned_mockup, headers):
        member, org, mockup = owned_mockup
        token = _share(client, headers, member, org, mockup)["share_link"]["token"]
        assert client.post(f"/public/share/{token}/reviewer", json={"email": "nope", "name": "X"}).status_code == 422

    def test_public_approval(self, client, db_session, owned_mockup, headers):
        member, org, mockup = owned_mockup
        token = _share(client, headers, member, org, mockup, permissions="approve")["share_link"]["token"]

        resp = client.post(f"/public/share/{token}/approve", json={"status": "approved"})
        assert resp.status_code == 401

        session = client.post(
            f"/public/share/{token}/reviewer", json={"email": "cfo@bank.example", "name": "Casey"}
        ).json()
        reviewer_headers = {"X-Reviewer-Session": session["session_token"]}

        assert client.post(
            f"/public/share/{token}/approve", json={"status": "maybe"}, headers=reviewer_headers
        ).status_code == 422

        resp = client.post(
            f"/public/share/{token}/approve", json={"status": "approved", "notes": "Great"}, headers=reviewer_headers
        )
        assert resp.status_code == 201
        approval = resp.json()["approval"]
        assert approval["status"] == "approved"
        assert approval["reviewer_id"] == session["reviewer"]["id"]

        assert db_session.query(models.AuditLog).filter_by(action_type="public_approval").count() == 1
        notes = db_session.query(models.Notification).filter_by(user_id=member.id).all()
        assert [n.event_type for n in notes] == ["approval_received"]

        view = client.get(f"/public/share/{token}", headers=reviewer_headers).json()
        assert view["reviewer"]["name"] == "Casey"

    def test_comment_link_rejects_approvals(self, client, owned_mockup, headers):
        member, org, mockup = owned_mockup
        token = _share(client, headers, member, org, mockup, permissions="comment")["share_link"]["token"]
        resp = client.post(f"/public/share/{token}/approve", json={"status": "approved"})
        assert resp.status_code == 403
        assert resp.json()["detail"] == "This share link does not allow approvals"
