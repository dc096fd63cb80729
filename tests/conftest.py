import os

os.environ.setdefault("PYTEST_RUNNING", "1")
os.environ.setdefault("APP_BASE_URL", "http://localhost:3000")

import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from cardmock.db.database import SessionLocal, engine
from cardmock.db import models
from cardmock.api.main import app
from cardmock.services import transactional_email_service
from cardmock.services.template_analysis import TEMPLATE_TYPE_SEED
from cardmock.utils.feature_flags import refresh_feature_flag_cache
from cardmock.utils.role_permissions import get_role_permissions


@pytest.fixture(scope="session", autouse=True)
def create_schema_once():
    """Create all tables once per test session (SQLite in-memory lives as long as the process)."""
    try:
        models.Base.metadata.create_all(bind=engine)
    except OperationalError as e:
        pytest.exit(f"Failed to create test schema: {e}")
    yield
    models.Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_data():
    """Empty every table between tests and reseed the template types."""
    connection = engine.connect()
    trans = connection.begin()
    for table in reversed(models.Base.metadata.sorted_tables):
        connection.execute(table.delete())
    connection.execute(models.TemplateType.__table__.insert(), TEMPLATE_TYPE_SEED)
    trans.commit()
    connection.close()
    yield


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for var in (
        "DEV_MODE",
        "ADMIN_EMAILS",
        "CLERK_WEBHOOK_SECRET",
        "DOCUSIGN_CONNECT_SECRET",
        "FIGMA_ACCESS_TOKEN",
        "BRANDFETCH_API_KEY",
        "EMAIL_PROVIDER",
        "RESEND_API_KEY",
        "SENDGRID_API_KEY",
        "MAILGUN_API_KEY",
        "FEATURE_PUBLIC_SHARING_ENABLED",
        "FEATURE_FIGMA_IMPORT_ENABLED",
        "FEATURE_CONTRACTS_ENABLED",
    ):
        monkeypatch.delenv(var, raising=False)
    transactional_email_service.reset_transactional_email_service_for_tests()
    refresh_feature_flag_cache()
    yield
    refresh_feature_flag_cache()
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Backwards-compatible alias
@pytest.fixture
def db(db_session):
    return db_session


@pytest.fixture
def client():
    return TestClient(app)


def auth_headers(user, org=None) -> dict:
    """Proxy identity headers, optionally selecting the active organization."""
    headers = {
        "X-Auth-Request-Email": user.email,
        "X-Auth-Request-User": user.display_name or user.email,
    }
    if org is not None:
        headers["X-Organization-Id"] = str(org.id)
    return headers


@pytest.fixture
def headers():
    return auth_headers


@pytest.fixture
def user_factory(db_session: Session):
    def _create(email: str = None, is_superadmin: bool = False, display_name: str = None):
        email = email or f"user_{uuid.uuid4().hex[:8]}@example.com"
        user = models.User(email=email, display_name=display_name or email.split('@')[0], is_superadmin=is_superadmin)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _create


@pytest.fixture
def organization_factory(db_session: Session):
    def _create(name: str = None, created_by=None):
        org = models.Organization(name=name or f"Org {uuid.uuid4().hex[:6]}", created_by=created_by)
        db_session.add(org)
        db_session.commit()
        db_session.refresh(org)
        return org
    return _create


@pytest.fixture
def membership_factory(db_session: Session):
    def _create(org, user, role: str = 'admin'):
        perms = get_role_permissions(role)
        m = models.OrganizationMembership(
            organization_id=org.id,
            user_id=user.id,
            role=role,
            can_read=perms["can_read"],
            can_write=perms["can_write"],
        )
        db_session.add(m)
        db_session.commit()
        return m
    return _create


@pytest.fixture
def client_factory(db_session: Session):
    def _create(org, name: str = None, email: str = None, parent=None):
        c = models.Client(
            organization_id=org.id,
            name=name or f"Client {uuid.uuid4().hex[:6]}",
            email=email,
            parent_client_id=parent.id if parent else None,
        )
        db_session.add(c)
        db_session.commit()
        db_session.refresh(c)
        return c
    return _create


@pytest.fixture
def assign_client_user(db_session: Session):
    def _assign(org, user, client_record):
        a = models.ClientUser(organization_id=org.id, user_id=user.id, client_id=client_record.id)
        db_session.add(a)
        db_session.commit()
        return a
    return _assign


@pytest.fixture
def workflow_factory(db_session: Session):
    def _create(org, stage_names=("Design Review", "Client Review"), name: str = None, created_by=None):
        wf = models.Workflow(
            organization_id=org.id,
            name=name or f"Workflow {uuid.uuid4().hex[:6]}",
            stages=[{"order": i + 1, "name": n, "color": "blue"} for i, n in enumerate(stage_names)],
            created_by=created_by,
        )
        db_session.add(wf)
        db_session.commit()
        db_session.refresh(wf)
        return wf
    return _create


@pytest.fixture
def project_factory(db_session: Session):
    def _create(org, name: str = None, workflow=None, client_record=None, created_by=None):
        p = models.Project(
            organization_id=org.id,
            name=name or f"Project {uuid.uuid4().hex[:6]}",
            workflow_id=workflow.id if workflow else None,
            client_id=client_record.id if client_record else None,
            created_by=created_by,
        )
        db_session.add(p)
        db_session.commit()
        db_session.refresh(p)
        return p
    return _create


@pytest.fixture
def mockup_factory(db_session: Session):
    def _create(org, name: str = None, project=None, created_by=None, status: str = "draft"):
        m = models.Mockup(
            organization_id=org.id,
            mockup_name=name or f"Mockup {uuid.uuid4().hex[:6]}",
            project_id=project.id if project else None,
            mockup_image_url="https://cdn.example.com/mockup.png",
            created_by=created_by,
            status=status,
        )
        db_session.add(m)
        db_session.commit()
        db_session.refresh(m)
        return m
    return _create


@pytest.fixture
def reviewer_factory(db_session: Session):
    def _create(project, stage_order: int, user):
        r = models.ProjectStageReviewer(
            project_id=project.id,
            stage_order=stage_order,
            user_id=user.id,
            user_name=user.display_name or user.email,
            user_email=user.email,
        )
        db_session.add(r)
        db_session.commit()
        db_session.refresh(r)
        return r
    return _create


@pytest.fixture
def org_admin(user_factory, organization_factory, membership_factory):
    """An organization with an admin member."""
    user = user_factory("admin@example.com", display_name="Ada Admin")
    org = organization_factory("Acme Cards", created_by=user.id)
    membership_factory(org, user, role="admin")
    return user, org


@pytest.fixture
def org_member(org_admin, user_factory, membership_factory):
    _, org = org_admin
    user = user_factory("member@example.com", display_name="Mel Member")
    membership_factory(org, user, role="member")
    return user, org


@pytest.fixture
def org_client_user(org_admin, user_factory, membership_factory, client_factory, assign_client_user):
    """A client-role member assigned to a client; returns (user, org, client)."""
    _, org = org_admin
    user = user_factory("buyer@bank.example", display_name="Cleo Client")
    membership_factory(org, user, role="client")
    client_record = client_factory(org, name="First Bank")
    assign_client_user(org, user, client_record)
    return user, org, client_record
