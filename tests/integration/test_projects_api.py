import uuid

from cardmock.db import models


class TestProjects:

    def test_member_creates_project_with_client(self, client, org_member, client_factory, workflow_factory, headers):
        member, org = org_member
        bank = client_factory(org, name="First Bank")
        workflow = workflow_factory(org)
        resp = client.post(
            "/projects/",
            json={"name": " Q3 Launch ", "client_id": str(bank.id), "workflow_id": str(workflow.id)},
            headers=headers(member, org),
        )
        assert resp.status_code == 201
        project = resp.json()["project"]
        assert project["name"] == "Q3 Launch"
        assert project["client_name"] == "First Bank"
        assert project["status"] == "active"
        assert project["color"] == "#3B82F6"

    def test_client_users_are_read_only(self, client, org_client_user, headers):
        buyer, org, _ = org_client_user
        resp = client.post("/projects/", json={"name": "Nope"}, headers=headers(buyer, org))
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Client users have read-only access"

    def test_validation(self, client, org_member, headers):
        member, org = org_member
        assert client.post("/projects/", json={"name": "P", "color": "blue"}, headers=headers(member, org)).status_code == 422
        resp = client.post("/projects/", json={"name": "P", "client_id": str(uuid.uuid4())}, headers=headers(member, org))
        assert resp.status_code == 400
        resp = client.post("/projects/", json={"name": "P", "workflow_id": str(uuid.uuid4())}, headers=headers(member, org))
        assert resp.status_code == 404

    def test_client_user_sees_only_own_projects(self, client, org_client_user, project_factory, client_factory, headers):
        buyer, org, bank = org_client_user
        ours = project_factory(org, name="Ours", client_record=bank)
        theirs = project_factory(org, name="Theirs", client_record=client_factory(org))
        project_factory(org, name="Internal")

        resp = client.get("/projects/", headers=headers(buyer, org))
        assert [p["name"] for p in resp.json()["projects"]] == ["Ours"]
        assert client.get(f"/projects/{ours.id}", headers=headers(buyer, org)).status_code == 200
        resp = client.get(f"/projects/{theirs.id}", headers=headers(buyer, org))
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Access denied: Project does not belong to your assigned client"

    def test_status_filter(self, client, org_member, headers):
        member, org = org_member
        client.post("/projects/", json={"name": "Live"}, headers=headers(member, org))
        client.post("/projects/", json={"name": "Done", "status": "completed"}, headers=headers(member, org))
        resp = client.get("/projects/", params={"status": "completed"}, headers=headers(member, org))
        assert [p["name"] for p in resp.json()["projects"]] == ["Done"]

    def test_detail_includes_previews_and_workflow(self, client, org_admin, project_factory, mockup_factory, workflow_factory, headers):
        admin, org = org_admin
        workflow = workflow_factory(org)
        project = project_factory(org, workflow=workflow)
        for i in range(5):
            mockup_factory(org, name=f"M{i}", project=project)

        body = client.get(f"/projects/{project.id}", headers=headers(admin, org)).json()["project"]
        assert body["mockup_count"] == 5
        assert len(body["mockup_previews"]) == 4
        assert body["workflow"]["stage_count"] == 2
        assert body["pending_review_count"] == 0

    def test_only_creator_or_admin_edits(self, client, org_member, org_admin, user_factory, membership_factory, headers):
        admin, org = org_admin
        member, _ = org_member
        other = user_factory("other@example.com")
        membership_factory(org, other, role="member")
        project = client.post("/projects/", json={"name": "Mine"}, headers=headers(member, org)).json()["project"]

        resp = client.patch(f"/projects/{project['id']}", json={"name": "Stolen"}, headers=headers(other, org))
        assert resp.status_code == 403
        assert resp.json()["detail"] == "You do not have permission to edit this project"

        resp = client.patch(f"/projects/{project['id']}", json={"status": "completed"}, headers=headers(admin, org))
        assert resp.json()["project"]["status"] == "completed"

    def test_clearing_client_clears_name(self, client, org_admin, client_factory, headers):
        admin, org = org_admin
        bank = client_factory(org, name="First Bank")
        project = client.post("/projects/", json={"name": "P", "client_id": str(bank.id)}, headers=headers(admin, org)).json()["project"]
        resp = client.patch(f"/projects/{project['id']}", json={"client_id": None}, headers=headers(admin, org))
        assert resp.json()["project"]["client_name"] is None

    def test_delete_detaches_mockups(self, client, db_session, org_admin, project_factory, mockup_factory, headers):
        admin, org = org_admin
        project = project_factory(org, created_by=admin.id)
        mockup = mockup_factory(org, project=project)

        resp = client.delete(f"/projects/{project.id}", headers=headers(admin, org))
        assert resp.json() == {"success": True, "detached_mockups": 1}
        db_session.expire_all()
        assert db_session.get(models.Mockup, mockup.id).project_id is None


class TestReviewers:

    def test_add_and_list_reviewers(self, client, org_admin, org_member, workflow_factory, project_factory, headers):
        admin, org = org_admin
        member, _ = org_member
        project = project_factory(org, workflow=workflow_factory(org))

        resp = client.post(
            f"/projects/{project.id}/reviewers",
            json={"stage_order": 1, "user_id": str(member.id), "user_name": "Mel Member"},
            headers=headers(admin, org),
        )
        assert resp.status_code == 201
        assert resp.json()["reviewer"]["user_email"] == "member@example.com"

        body = client.get(f"/projects/{project.id}/reviewers", headers=headers(admin, org)).json()
        assert [s["stage_name"] for s in body["stages"]] == ["Design Review", "Client Review"]
        assert [r["user_name"] for r in body["stages"][0]["reviewers"]] == ["Mel Member"]
        assert body["stages"][1]["reviewers"] == []

    def test_reviewer_rules(self, client, org_admin, org_member, user_factory, workflow_factory, project_factory, headers):
        admin, org = org_admin
        member, _ = org_member
        no_workflow = project_factory(org)
        payload = {"stage_order": 1, "user_id": str(member.id), "user_name": "Mel"}

        resp = client.post(f"/projects/{no_workflow.id}/reviewers", json=payload, headers=headers(admin, org))
        assert resp.json()["detail"] == "Project does not have a workflow assigned"

        project = project_factory(org, workflow=workflow_factory(org))
        resp = client.post(f"/projects/{project.id}/reviewers", json={**payload, "stage_order": 3}, headers=headers(admin, org))
        assert resp.json()["detail"] == "Stage 3 does not exist in this project's workflow"

        outsider = user_factory("outsider@example.com")
        resp = client.post(
            f"/projects/{project.id}/reviewers", json={**payload, "user_id": str(outsider.id)}, headers=headers(admin, org)
        )
        assert resp.json()["detail"] == "User is not a member of this organization"

        assert client.post(f"/projects/{project.id}/reviewers", json=payload, headers=headers(admin, org)).status_code == 201
        resp = client.post(f"/projects/{project.id}/reviewers", json=payload, headers=headers(admin, org))
        assert resp.status_code == 400
        assert resp.json()["detail"] == "User is already a reviewer for this stage"

    def test_remove_reviewer(self, client, org_admin, org_member, workflow_factory, project_factory, reviewer_factory, headers):
        admin, org = org_admin
        member, _ = org_member
        project = project_factory(org, workflow=workflow_factory(org))
        reviewer = reviewer_factory(project, 1, member)

        resp = client.delete(f"/projects/{project.id}/reviewers", headers=headers(admin, org))
        assert resp.status_code == 400

        resp = client.delete(f"/projects/{project.id}/reviewers", params={"reviewer_id": str(reviewer.id)}, headers=headers(admin, org))
        assert resp.json() == {"success": True}

        resp = client.delete(f"/projects/{project.id}/reviewers", params={"reviewer_id": str(reviewer.id)}, headers=headers(admin, org))
        assert resp.status_code == 404

    def test_workflow_change_clears_review_state(
        self, client, db_session, org_admin, org_member, workflow_factory, project_factory, mockup_factory, reviewer_factory, headers
    ):
        admin, org = org_admin
        member, _ = org_member
        project = project_factory(org, workflow=workflow_factory(org), created_by=admin.id)
        reviewer_factory(project, 1, member)
        resp = client.post(
            "/mockups/", json={"mockup_name": "Gold Card", "project_id": str(project.id)}, headers=headers(admin, org)
        )
        in_review = resp.json()["mockup"]
        assert client.post(f"/mockups/{in_review['id']}/approve", headers=headers(member, org)).status_code == 200
        signed_off = mockup_factory(org, name="Signed", project=project, status="final_approved")

        replacement = workflow_factory(org, stage_names=("Legal",))
        resp = client.patch(
            f"/projects/{project.id}", json={"workflow_id": str(replacement.id)}, headers=headers(admin, org)
        )
        assert resp.status_code == 200

        db_session.expire_all()
        assert db_session.query(models.MockupStageProgress).filter_by(project_id=project.id).count() == 0
        assert db_session.query(models.MockupStageUserApproval).filter_by(project_id=project.id).count() == 0
        assert db_session.query(models.ProjectStageReviewer).filter_by(project_id=project.id).count() == 0
        assert db_session.get(models.Mockup, uuid.UUID(in_review["id"])).status == "draft"
        assert db_session.get(models.Mockup, signed_off.id).status == "final_approved"
        body = client.get(f"/mockups/{in_review['id']}/stage-progress", headers=headers(admin, org)).json()
        assert body["progress"] == []
