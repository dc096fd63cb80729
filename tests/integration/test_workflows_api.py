import pytest

STAGES = [
    {"order": 1, "name": "Design Review", "color": "blue"},
    {"order": 2, "name": "Client Review", "color": "green"},
]


def test_admin_creates_workflow(client, org_admin, headers):
    admin, org = org_admin
    resp = client.post(
        "/workflows/",
        json={"name": " Standard ", "stages": STAGES, "is_default": True},
        headers=headers(admin, org),
    )
    assert resp.status_code == 201
    workflow = resp.json()["workflow"]
    assert workflow["name"] == "Standard"
    assert workflow["stage_count"] == 2
    assert workflow["project_count"] == 0
    assert workflow["is_default"] is True


def test_member_cannot_create(client, org_member, headers):
    member, org = org_member
    resp = client.post("/workflows/", json={"name": "W", "stages": STAGES}, headers=headers(member, org))
    assert resp.status_code == 403


@pytest.mark.parametrize(
    "stages, detail",
    [
        ([], "Workflow must have at least one stage"),
        ([{"order": 1, "name": " ", "color": "blue"}], "Stage 1 must have a name"),
        ([{"order": 2, "name": "A", "color": "blue"}], "Stage orders must be sequential starting from 1"),
        (
            [{"order": 1, "name": "A", "color": "teal"}],
            "Stage 1 has invalid color. Must be one of: yellow, green, blue, purple, red, orange, gray",
        ),
    ],
)
def test_stage_validation(client, org_admin, headers, stages, detail):
    admin, org = org_admin
    resp = client.post("/workflows/", json={"name": "W", "stages": stages}, headers=headers(admin, org))
    assert resp.status_code == 400
    assert resp.json()["detail"] == detail


def test_single_default_per_organization(client, org_admin, headers):
    admin, org = org_admin
    first = client.post("/workflows/", json={"name": "A", "stages": STAGES, "is_default": True}, headers=headers(admin, org)).json()
    client.post("/workflows/", json={"name": "B", "stages": STAGES, "is_default": True}, headers=headers(admin, org))

    resp = client.get(f"/workflows/{first['workflow']['id']}", headers=headers(admin, org))
    assert resp.json()["workflow"]["is_default"] is False


def test_archive_and_list(client, org_admin, headers):
    admin, org = org_admin
    workflow = client.post("/workflows/", json={"name": "Old", "stages": STAGES}, headers=headers(admin, org)).json()["workflow"]
    client.patch(f"/workflows/{workflow['id']}", json={"is_archived": True}, headers=headers(admin, org))

    assert client.get("/workflows/", headers=headers(admin, org)).json()["workflows"] == []
    listed = client.get("/workflows/", params={"include_archived": True}, headers=headers(admin, org)).json()["workflows"]
    assert [w["name"] for w in listed] == ["Old"]


def test_update_rejects_empty_name(client, org_admin, workflow_factory, headers):
    admin, org = org_admin
    workflow = workflow_factory(org)
    resp = client.patch(f"/workflows/{workflow.id}", json={"name": "  "}, headers=headers(admin, org))
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Workflow name cannot be empty"


def test_delete_blocked_while_in_use(client, org_admin, workflow_factory, project_factory, headers):
    admin, org = org_admin
    workflow = workflow_factory(org)
    project_factory(org, workflow=workflow)

    resp = client.delete(f"/workflows/{workflow.id}", headers=headers(admin, org))
    assert resp.status_code == 400
    assert resp.json()["detail"].startswith("Cannot delete workflow: 1 project(s) are using this workflow.")


def test_delete_unused_workflow(client, org_admin, workflow_factory, headers):
    admin, org = org_admin
    workflow = workflow_factory(org)
    assert client.delete(f"/workflows/{workflow.id}", headers=headers(admin, org)).json() == {"success": True}
    assert client.get(f"/workflows/{workflow.id}", headers=headers(admin, org)).status_code == 404


def test_non_string_fields_rejected(client, org_admin, workflow_factory, headers):
    admin, org = org_admin
    resp = client.post("/workflows/", json={"name": 5, "stages": STAGES}, headers=headers(admin, org))
    assert resp.status_code == 422
    resp = client.post(
        "/workflows/", json={"name": "W", "stages": [{"order": 1, "name": ["Design"]}]}, headers=headers(admin, org)
    )
    assert resp.status_code == 422

    workflow = workflow_factory(org)
    resp = client.patch(f"/workflows/{workflow.id}", json={"name": 5}, headers=headers(admin, org))
    assert resp.status_code == 422
