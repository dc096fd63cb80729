"""
Clerk webhook handling.

Clerk delivers webhooks through Svix. Verification follows the Svix scheme:
the signed content is ``"{svix-id}.{svix-timestamp}.{body}"``, the key is the
base64 payload of the ``whsec_`` secret, and ``svix-signature`` holds one or
more space separated ``v1,<base64 HMAC-SHA256>`` entries.

Handlers keep local users, organizations and memberships in step with Clerk
and auto-assign client-role users to a client by email domain.
"""
import base64
import binascii
import hashlib
import hmac
import logging
import time
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from cardmock.db import models
from cardmock.db.repositories import clients as client_repo
from cardmock.db.repositories import organizations as org_repo
from cardmock.utils.role_permissions import ROLE_ADMIN, ROLE_CLIENT, map_external_role

logger = logging.getLogger(__name__)

TIMESTAMP_TOLERANCE_SECONDS = 300


class WebhookVerificationError(Exception):
    pass


def _secret_bytes(secret: str) -> bytes:
    raw = secret[len('whsec_'):] if secret.startswith('whsec_') else secret
    try:
        return base64.b64decode(raw)
    except (binascii.Error, ValueError) as e:
        raise WebhookVerificationError("Webhook secret is not valid base64") from e


def sign_payload(secret: str, msg_id: str, timestamp: str, body: bytes) -> str:
    """Compute the ``v1,<sig>`` signature for a payload."""
    signed = f"{msg_id}.{timestamp}.".encode('utf-8') + body
    digest = hmac.new(_secret_bytes(secret), signed, hashlib.sha256).digest()
    return f"v1,{base64.b64encode(digest).decode('ascii')}"


def verify_svix_signature(
    secret: str,
    headers: Dict[str, Optional[str]],
    body: bytes,
    now: Optional[float] = None,
) -> None:
    """Raise WebhookVerificationError unless the Svix headers authenticate ``body``."""
    msg_id = headers.get('svix-id')
    timestamp = headers.get('svix-timestamp')
    signature_header = headers.get('svix-signature')
    if not msg_id or not timestamp or not signature_header:
        raise WebhookVerificationError("Missing svix headers")

    try:
        ts = int(timestamp)
    except ValueError as e:
        raise WebhookVerificationError("Invalid svix timestamp") from e
    current = time.time() if now is None else now
    if abs(current - ts) > TIMESTAMP_TOLERANCE_SECONDS:
        raise WebhookVerificationError("Webhook timestamp outside tolerance")

    expected = sign_payload(secret, msg_id, timestamp, body).split(',', 1)[1]
    for entry in signature_header.split():
        version, _, candidate = entry.partition(',')
        if version == 'v1' and hmac.compare_digest(candidate, expected):
            return
    raise WebhookVerificationError("Invalid webhook signature")


def _primary_email(data: Dict[str, Any]) -> Optional[str]:
    addresses = data.get('email_addresses') or []
    primary_id = data.get('primary_email_address_id')
    for entry in addresses:
        if entry.get('id') == primary_id and entry.get('email_address'):
            return entry['email_address'].strip().lower()
    if addresses and addresses[0].get('email_address'):
        return addresses[0]['email_address'].strip().lower()
    return None


def _full_name(first: Optional[str], last: Optional[str]) -> Optional[str]:
    name = f"{first or ''} {last or ''}".strip()
    return name or None


def upsert_user(
    db: Session,
    *,
    external_id: Optional[str],
    email: Optional[str],
    display_name: Optional[str] = None,
    image_url: Optional[str] = None,
) -> Optional[models.User]:
    user = None
    if external_id:
        user = db.query(models.User).filter(models.User.external_subject == external_id).first()
    if user is None and email:
        user = db.query(models.User).filter(models.User.email == email).first()
    if user is None:
        if not email:
            return None
        user = models.User(email=email, display_name=display_name or email.split('@')[0])
        db.add(user)
    if external_id:
        user.external_subject = external_id
    user.auth_provider = 'clerk'
    if email:
        user.email = email
    if display_name:
        user.display_name = display_name
    if image_url:
        user.image_url = image_url
    db.flush()
    return user


def upsert_organization(db: Session, data: Dict[str, Any]) -> Optional[models.Organization]:
    external_id = data.get('id')
    if not external_id:
        return None
    org = org_repo.get_organization_by_external_id(db, external_id)
    if org is None:
        org = models.Organization(name=data.get('name') or 'Organization', external_id=external_id)
        db.add(org)
    elif data.get('name'):
        org.name = data['name']
    slug = data.get('slug')
    if slug and slug != org.slug:
        taken = db.query(models.Organization.id).filter(models.Organization.slug == slug).first()
        if not taken:
            org.slug = slug
    db.flush()
    return org


def auto_assign_client(db: Session, organization: models.Organization, user: models.User) -> Optional[models.ClientUser]:
    """Assign a client-role user to the client whose email domain matches theirs.

    When no single client matches, admins receive a
    ``client_assignment_required`` notification instead.
    """
    existing = client_repo.get_assignment(db, organization.id, user.id)
    if existing:
        return existing
    domain = user.email.split('@', 1)[1].lower() if '@' in (user.email or '') else ''
    client = client_repo.find_client_by_email_domain(db, organization.id, domain)
    if client is not None:
        assignment = client_repo.assign_user(db, client, user.id, assigned_by=None)
        logger.info(f"Auto-assigned user {user.id} to client {client.id} in org {organization.id}")
        return assignment

    db.commit()
    admin_ids = org_repo.get_user_ids_with_role(db, organization.id, ROLE_ADMIN)
    if admin_ids:
        from cardmock.services.notification_service import get_notification_service
        get_notification_service(db).notify_client_assignment_required(
            admin_ids, organization.id, organization.name, user
        )
    logger.info(f"No client matched domain '{domain}' for user {user.id}; admins notified")
    return None


def handle_user_event(db: Session, data: Dict[str, Any]) -> Dict[str, Any]:
    user = upsert_user(
        db,
        external_id=data.get('id'),
        email=_primary_email(data),
        display_name=_full_name(data.get('first_name'), data.get('last_name')),
        image_url=data.get('image_url'),
    )
    db.commit()
    return {'user_id': str(user.id) if user else None}


def handle_organization_created(db: Session, data: Dict[str, Any]) -> Dict[str, Any]:
    org = upsert_organization(db, data)
    db.commit()
    return {'organization_id': str(org.id) if org else None}


def _membership_parties(db: Session, data: Dict[str, Any]):
    org = upsert_organization(db, data.get('organization') or {})
    public = data.get('public_user_data') or {}
    user = upsert_user(
        db,
        external_id=public.get('user_id'),
        email=(public.get('identifier') or '').strip().lower() or None,
        display_name=_full_name(public.get('first_name'), public.get('last_name')),
        image_url=public.get('image_url'),
    )
    return org, user


def handle_membership_upsert(db: Session, data: Dict[str, Any]) -> Dict[str, Any]:
    org, user = _membership_parties(db, data)
    if org is None or user is None:
        logger.warning("Membership event missing organization or user; ignored")
        db.rollback()
        return {'ignored': True}
    role = map_external_role(data.get('role'))
    membership, created = org_repo.upsert_membership(db, org.id, user.id, role)
    result: Dict[str, Any] = {
        'organization_id': str(org.id),
        'user_id': str(user.id),
        'role': membership.role,
        'created': created,
    }
    if role == ROLE_CLIENT:
        assignment = auto_assign_client(db, org, user)
        result['client_id'] = str(assignment.client_id) if assignment else None
    return result


def handle_membership_deleted(db: Session, data: Dict[str, Any]) -> Dict[str, Any]:
    org_external = (data.get('organization') or {}).get('id')
    user_external = (data.get('public_user_data') or {}).get('user_id')
    org = org_repo.get_organization_by_external_id(db, org_external) if org_external else None
    user = (
        db.query(models.User).filter(models.User.external_subject == user_external).first()
        if user_external else None
    )
    if org is None or user is None:
        return {'removed': False}
    membership = org_repo.get_membership(db, org.id, user.id)
    if membership is None:
        return {'removed': False}
    org_repo.remove_member(db, membership)
    return {'removed': True}


HANDLERS: Dict[str, Callable[[Session, Dict[str, Any]], Dict[str, Any]]] = {
    'user.created': handle_user_event,
    'user.updated': handle_user_event,
    'organization.created': handle_organization_created,
    'organization.updated': handle_organization_created,
    'organizationMembership.created': handle_membership_upsert,
    'organizationMembership.updated': handle_membership_upsert,
    'organizationMembership.deleted': handle_membership_deleted,
}


def dispatch_event(db: Session, event: Dict[str, Any]) -> Dict[str, Any]:
    """Route a verified Clerk event to its handler; unknown types are acknowledged."""
    event_type = event.get('type')
    handler = HANDLERS.get(event_type)
    if handler is None:
        logger.info(f"Unhandled Clerk webhook event type: {event_type}")
        return {'received': True, 'handled': False, 'type': event_type}
    result = handler(db, event.get('data') or {})
    logger.info(f"Processed Clerk webhook {event_type}")
    return {'received': True, 'handled': True, 'type': event_type, 'result': result}
