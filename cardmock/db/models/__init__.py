"""
Domain-split SQLAlchemy models with a single import surface.

`from cardmock.db import models` exposes `Base`, `now_utc` and all ORM classes.
"""

from .base import Base, now_utc, as_utc  # re-export

from .users import User
from .organizations import Organization, OrganizationMembership
from .clients import Client, ClientUser
from .brands import Brand, LogoVariant, BrandColor, BrandFont
from .templates import TemplateType, Template
from .folders import Folder
from .workflows import Workflow
from .projects import Project, ProjectStageReviewer
from .mockups import Mockup, MockupStageProgress, MockupStageUserApproval, MockupComment
from .sharing import PublicShareLink, PublicReviewer, PublicShareAnalytics, PublicApproval
from .contracts import Contract, ContractDocument
from .integrations import IntegrationCredential, IntegrationEvent
from .notifications import UserNotificationPreference, Notification, EmailNotificationLog
from .audit import AuditLog

__all__ = [
    # base
    "Base",
    "now_utc",
    "as_utc",
    # users/orgs
    "User",
    "Organization",
    "OrganizationMembership",
    # clients
    "Client",
    "ClientUser",
    # brands
    "Brand",
    "LogoVariant",
    "BrandColor",
    "BrandFont",
    # templates/folders
    "TemplateType",
    "Template",
    "Folder",
    # workflows/projects
    "Workflow",
    "Project",
    "ProjectStageReviewer",
    # mockups
    "Mockup",
    "MockupStageProgress",
    "MockupStageUserApproval",
    "MockupComment",
    # sharing
    "PublicShareLink",
    "PublicReviewer",
    "PublicShareAnalytics",
    "PublicApproval",
    # contracts
    "Contract",
    "ContractDocument",
    # integrations
    "IntegrationCredential",
    "IntegrationEvent",
    # notifications/audit
    "UserNotificationPreference",
    "Notification",
    "EmailNotificationLog",
    "AuditLog",
]
