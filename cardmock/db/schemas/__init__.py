"""
Domain-split Pydantic schemas with a single import surface.

`from cardmock.db import schemas` exposes every request/response model.
"""

from .users import UserBase, UserCreate, User
from .organizations import (
    OrganizationBase,
    OrganizationCreate,
    OrganizationUpdate,
    Organization,
    OrganizationMemberCreate,
    OrganizationMemberUpdate,
    OrganizationMember,
)
from .clients import (
    ClientBase,
    ClientCreate,
    ClientUpdate,
    Client,
    ClientUserAssign,
    UserClientUpdate,
    ClientUser,
)
from .brands import (
    LogoVariantCreate,
    LogoVariant,
    BrandColorCreate,
    BrandColor,
    BrandFontCreate,
    BrandFont,
    BrandCreate,
    BrandUpdate,
    Brand,
)
from .templates import TemplateType, UploadAnalysisRequest, TemplateCreate, TemplateUpdate, Template
from .folders import FolderCreate, FolderUpdate, Folder
from .workflows import WorkflowStageIn, WorkflowCreate, WorkflowUpdate, Workflow
from .projects import ProjectCreate, ProjectUpdate, Project, StageReviewerCreate, StageReviewer
from .mockups import (
    MockupCreate,
    MockupUpdate,
    Mockup,
    MockupDuplicate,
    ReviewNotes,
    StageAction,
    StageProgress,
    StageUserApproval,
)
from .comments import CommentCreate, CommentUpdate, CommentResolve, Comment
from .notifications import (
    UserNotificationPreferenceUpdate,
    UserNotificationPreference,
    Notification,
    EmailNotificationLog,
    NotificationListResponse,
    NotificationPreferencesResponse,
)
from .sharing import (
    ShareLink,
    PublicReviewerCreate,
    PublicReviewer,
    PublicComment,
    PublicApprovalCreate,
    PublicApproval,
)
from .contracts import (
    ContractCreate,
    ContractUpdate,
    Contract,
    ContractDocumentCreate,
    ContractDocument,
    Signer,
    SendForSignature,
)
from .audits import AuditLogBase, AuditLogCreate, AuditLog
