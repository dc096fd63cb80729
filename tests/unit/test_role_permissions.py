import pytest

from cardmock.api.permissions import can_manage_org, is_member_of_org
from cardmock.utils.role_permissions import (
    ROLE_ADMIN,
    ROLE_CLIENT,
    ROLE_MEMBER,
    get_role_permissions,
    map_external_role,
    role_allows_manage,
    role_allows_write,
)


def test_role_permissions_table():
    assert get_role_permissions(ROLE_ADMIN) == {"can_read": True, "can_write": True}
    assert get_role_permissions(ROLE_MEMBER) == {"can_read": True, "can_write": True}
    assert get_role_permissions(ROLE_CLIENT) == {"can_read": True, "can_write": False}


def test_get_role_permissions_returns_copy():
    perms = get_role_permissions(ROLE_CLIENT)
    perms["can_write"] = True
    assert get_role_permissions(ROLE_CLIENT)["can_write"] is False


def test_unknown_role_rejected():
    with pytest.raises(ValueError):
        get_role_permissions("owner")


def test_write_and_manage_groups():
    assert role_allows_write(ROLE_MEMBER)
    assert not role_allows_write(ROLE_CLIENT)
    assert role_allows_manage(ROLE_ADMIN)
    assert not role_allows_manage(ROLE_MEMBER)


@pytest.mark.parametrize(
    "external, local",
    [("org:admin", "admin"), ("ORG:CLIENT", "client"), ("org:member", "member"), (None, "member"), ("weird", "member")],
)
def test_map_external_role(external, local):
    assert map_external_role(external) == local


def _context(role=None, superadmin=False, org_id="org-1"):
    memberships = {org_id: {"organization_id": org_id, "role": role}} if role else {}
    return {"is_superadmin": superadmin, "memberships_by_org": memberships}


def test_org_membership_checks():
    assert is_member_of_org("org-1", _context(ROLE_CLIENT)) is True
    assert is_member_of_org("org-2", _context(ROLE_CLIENT)) is False
    assert is_member_of_org("org-2", _context(superadmin=True)) is True
    assert is_member_of_org("org-1", None) is False


def test_org_management_checks():
    assert can_manage_org("org-1", _context(ROLE_ADMIN)) is True
    assert can_manage_org("org-1", _context(ROLE_MEMBER)) is False
    assert can_manage_org("org-2", _context(ROLE_ADMIN)) is False
    assert can_manage_org("org-9", _context(superadmin=True)) is True
