"""
FastAPI app assembly: middleware and router wiring.
Includes the identity endpoint that spans several resource modules.
"""
import logging
import os
from typing import Optional

from fastapi import FastAPI, Header, Depends, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from sqlalchemy.orm import Session

# Configure logging
LOG_LEVEL_NAME = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.setLevel(LOG_LEVEL)
logger.info("app_startup: log_level=%s", LOG_LEVEL_NAME)


from cardmock.db.database import get_db
from cardmock.api.auth import resolve_identity_from_headers, get_or_create_user, get_user_memberships
from cardmock.api.audits import router as audits_router
from cardmock.api.brands import router as brands_router, brandfetch_router
from cardmock.api.clients import router as clients_router
from cardmock.api.comments import router as comments_router
from cardmock.api.contracts import router as contracts_router
from cardmock.api.folders import router as folders_router
from cardmock.api.integrations import router as integrations_router
from cardmock.api.mockups import router as mockups_router
from cardmock.api.notifications import router as notifications_router
from cardmock.api.orgs import router as orgs_router
from cardmock.api.projects import router as projects_router
from cardmock.api.reviews import router as reviews_router
from cardmock.api.sharing import router as sharing_router, public_router as public_share_router
from cardmock.api.templates import router as templates_router, types_router as template_types_router
from cardmock.api.users import router as users_router
from cardmock.api.webhooks import router as webhooks_router
from cardmock.api.workflows import router as workflows_router
from cardmock.utils.feature_flags import get_feature_flags
from cardmock.utils.role_permissions import ROLE_ADMIN, ROLE_CLIENT, get_role_permissions
from cardmock.utils.runtime import dev_mode_active

# Database schema is managed by Alembic migrations.

app = FastAPI(
    title="CardMock Service",
    description="API for brand assets, card templates, mockups and their approval workflows.",
    version="1.0.0",
)

# Avoid implicit trailing-slash redirects for predictable URLs
app.router.redirect_slashes = False

origins = [
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:8000",
]
extra_origins = os.getenv("CORS_ALLOWED_ORIGINS", "")
origins.extend(o.strip() for o in extra_origins.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes reachable without proxy identity headers
UNAUTHENTICATED_PREFIXES = ("/public/", "/webhooks/", "/health")


# Middleware: enforce read-only for unauthenticated requests
@app.middleware("http")
async def enforce_readonly_for_guests(request: Request, call_next):
    if request.method in ("POST", "PUT", "PATCH", "DELETE"):
        if os.getenv("DEV_MODE", "false").lower() == "true":
            return await call_next(request)
        path = request.url.path or ""
        if path.startswith(UNAUTHENTICATED_PREFIXES):
            return await call_next(request)
        h = request.headers
        user_present = (
            h.get("x-auth-request-user")
            or h.get("x-auth-request-email")
            or h.get("x-forwarded-user")
            or h.get("x-forwarded-email")
        )
        if not user_present:
            return JSONResponse(
                {"detail": "Guest mode is read-only. Sign in to perform changes."},
                status_code=status.HTTP_401_UNAUTHORIZED,
            )
    return await call_next(request)


def _active_membership(memberships, x_organization_id: Optional[str]):
    if x_organization_id:
        wanted = x_organization_id.strip()
        return next((m for m in memberships if m["organization_id"] == wanted), None)
    if len(memberships) == 1:
        return memberships[0]
    return None


@app.get("/user-info")
def get_user_info(
    x_auth_request_user: Optional[str] = Header(default=None),
    x_auth_request_email: Optional[str] = Header(default=None),
    x_forwarded_user: Optional[str] = Header(default=None),
    x_forwarded_email: Optional[str] = Header(default=None),
    x_organization_id: Optional[str] = Header(default=None, alias="X-Organization-Id"),
    db: Session = Depends(get_db),
):
    """
    Return authenticated user info, memberships and the active organization.
    - Dev mode (DEV_MODE=true): returns a stable dev user and ensures it exists.
    - Normal mode: reads headers set by the auth proxy and upserts the user.
    """
    try:
        is_dev_mode = dev_mode_active()
    except RuntimeError as exc:
        logger.error("DEV_MODE misconfiguration detected: %s", exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="DEV_MODE misconfigured")

    if is_dev_mode:
        name, email = "Development User", "dev@localhost"
    else:
        name, email = resolve_identity_from_headers(
            x_auth_request_user=x_auth_request_user,
            x_auth_request_email=x_auth_request_email,
            x_forwarded_user=x_forwarded_user,
            x_forwarded_email=x_forwarded_email,
        )
        if not name and not email:
            return JSONResponse({"authenticated": False}, status_code=status.HTTP_401_UNAUTHORIZED)
        if not email:
            return {"authenticated": True, "user": name or None, "email": None}

    user = get_or_create_user(db, email=email, display_name=name)
    memberships = get_user_memberships(db, user.id)

    active = _active_membership(memberships, x_organization_id)
    active_org = None
    assigned_client_id = None
    if active:
        role = active["role"]
        if role == ROLE_CLIENT:
            assigned_client_id = active["client_id"]
        active_org = {
            "organization_id": active["organization_id"],
            "name": active.get("organization_name"),
            "role": role,
            "is_admin": role == ROLE_ADMIN,
            "permissions": get_role_permissions(role),
        }

    return {
        "authenticated": True,
        "user_id": str(user.id),
        "email": user.email,
        "display_name": user.display_name,
        "image_url": user.image_url,
        "is_superadmin": bool(user.is_superadmin),
        "memberships": memberships,
        "active_organization": active_org,
        "assigned_client_id": assigned_client_id,
        "feature_flags": dict(get_feature_flags()),
    }


app.include_router(users_router)
app.include_router(orgs_router)
app.include_router(clients_router)
app.include_router(brands_router)
app.include_router(brandfetch_router)
app.include_router(template_types_router)
app.include_router(templates_router)
app.include_router(folders_router)
app.include_router(workflows_router)
app.include_router(projects_router)
app.include_router(sharing_router)
app.include_router(mockups_router)
app.include_router(comments_router)
app.include_router(reviews_router)
app.include_router(notifications_router, prefix="/notifications")
app.include_router(public_share_router)
app.include_router(contracts_router)
app.include_router(integrations_router)
app.include_router(webhooks_router)
app.include_router(audits_router)


@app.get("/health")
def health_check():
    return {"status": "ok", "service": "cardmock-service"}
