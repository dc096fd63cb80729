import uuid

from cardmock.db import models


def test_admin_creates_client(client, db_session, org_admin, headers):
    admin, org = org_admin
    resp = client.post("/clients/", json={"name": "  First Bank ", "email": "ops@bank.example"}, headers=headers(admin, org))
    assert resp.status_code == 201
    body = resp.json()["client"]
    assert body["name"] == "First Bank"
    assert body["created_by"] == str(admin.id)
    assert db_session.query(models.AuditLog).filter_by(action_type="client_create").count() == 1


def test_member_cannot_create_client(client, org_member, headers):
    member, org = org_member
    resp = client.post("/clients/", json={"name": "Bank"}, headers=headers(member, org))
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Admin access required"


def test_blank_name_rejected(client, org_admin, headers):
    admin, org = org_admin
    assert client.post("/clients/", json={"name": "   "}, headers=headers(admin, org)).status_code == 422


def test_parent_must_exist(client, org_admin, headers):
    admin, org = org_admin
    resp = client.post("/clients/", json={"name": "Sub", "parent_client_id": str(uuid.uuid4())}, headers=headers(admin, org))
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Parent client not found"


def test_children_listing(client, org_admin, client_factory, headers):
    admin, org = org_admin
    parent = client_factory(org, name="Holding")
    client_factory(org, name="Retail", parent=parent)
    client_factory(org, name="Unrelated")

    resp = client.get(f"/clients/{parent.id}/children", headers=headers(admin, org))
    assert [c["name"] for c in resp.json()["clients"]] == ["Retail"]


def test_cycles_rejected(client, org_admin, client_factory, headers):
    admin, org = org_admin
    top = client_factory(org, name="Top")
    mid = client_factory(org, name="Mid", parent=top)
    leaf = client_factory(org, name="Leaf", parent=mid)

    resp = client.patch(f"/clients/{top.id}", json={"parent_client_id": str(leaf.id)}, headers=headers(admin, org))
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Parent change would create a circular client hierarchy"

    resp = client.patch(f"/clients/{top.id}", json={"parent_client_id": str(top.id)}, headers=headers(admin, org))
    assert resp.json()["detail"] == "A client cannot be its own parent"


def test_delete_detaches_children(client, db_session, org_admin, client_factory, headers):
    admin, org = org_admin
    parent = client_factory(org, name="Holding")
    child = client_factory(org, name="Retail", parent=parent)

    resp = client.delete(f"/clients/{parent.id}", headers=headers(admin, org))
    assert resp.json() == {"success": True}
    db_session.expire_all()
    assert db_session.get(models.Client, child.id).parent_client_id is None
    assert db_session.get(models.Client, parent.id) is None


def test_client_user_sees_only_assigned_client(client, org_client_user, client_factory, headers):
    buyer, org, bank = org_client_user
    other = client_factory(org, name="Second Bank")

    resp = client.get("/clients/", headers=headers(buyer, org))
    assert [c["id"] for c in resp.json()["clients"]] == [str(bank.id)]

    resp = client.get(f"/clients/{other.id}", headers=headers(buyer, org))
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Access denied: Client does not belong to your assigned client"


def test_unassigned_client_user_sees_nothing(client, org_admin, user_factory, membership_factory, client_factory, headers):
    _, org = org_admin
    client_factory(org)
    loner = user_factory("loner@bank.example")
    membership_factory(org, loner, role="client")
    assert client.get("/clients/", headers=headers(loner, org)).json() == {"clients": []}


def test_assign_and_unassign_users(client, db_session, org_admin, user_factory, membership_factory, client_factory, headers):
    admin, org = org_admin
    bank = client_factory(org, name="First Bank")
    buyer = user_factory("buyer@bank.example")
    membership_factory(org, buyer, role="client")

    resp = client.post(f"/clients/{bank.id}/users", json={"user_id": str(buyer.id)}, headers=headers(admin, org))
    assert resp.status_code == 201

    users = client.get(f"/clients/{bank.id}/users", headers=headers(admin, org)).json()["users"]
    assert [u["email"] for u in users] == ["buyer@bank.example"]

    resp = client.delete(f"/clients/{bank.id}/users/{buyer.id}", headers=headers(admin, org))
    assert resp.json() == {"success": True}
    assert db_session.query(models.ClientUser).count() == 0

    resp = client.delete(f"/clients/{bank.id}/users/{buyer.id}", headers=headers(admin, org))
    assert resp.status_code == 404


def test_reassignment_replaces_previous(client, db_session, org_client_user, org_admin, client_factory, headers):
    admin, org = org_admin
    buyer, _, bank = org_client_user
    second = client_factory(org, name="Second Bank")

    client.post(f"/clients/{second.id}/users", json={"user_id": str(buyer.id)}, headers=headers(admin, org))
    db_session.expire_all()
    rows = db_session.query(models.ClientUser).filter_by(user_id=buyer.id).all()
    assert [r.client_id for r in rows] == [second.id]


def test_member_role_cannot_be_assigned(client, org_member, org_admin, client_factory, headers):
    admin, org = org_admin
    member, _ = org_member
    bank = client_factory(org)
    resp = client.post(f"/clients/{bank.id}/users", json={"user_id": str(member.id)}, headers=headers(admin, org))
    assert resp.status_code == 400


def test_clients_scoped_to_organization(client, org_admin, organization_factory, client_factory, headers):
    admin, org = org_admin
    foreign = client_factory(organization_factory("Other"), name="Elsewhere")
    assert client.get(f"/clients/{foreign.id}", headers=headers(admin, org)).status_code == 404
