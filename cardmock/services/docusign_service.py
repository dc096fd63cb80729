"""
DocuSign eSignature REST adapter.

Creates envelopes for contract documents, maps Connect webhook events to
document statuses, and verifies Connect HMAC signatures.
"""
import base64
import hashlib
import hmac
import logging
import os
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'https://demo.docusign.net/restapi'

_EVENT_STATUS = {
    'envelope-signed': 'signed',
    'envelope-completed': 'signed',
    'envelope-declined': 'declined',
    'envelope-voided': 'voided',
    'envelope-delivered': 'delivered',
}


class DocuSignError(Exception):
    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


def status_for_event(event: Optional[str]) -> str:
    """Document status for a Connect event name; anything unrecognised counts as sent."""
    return _EVENT_STATUS.get((event or '').strip().lower(), 'sent')


def verify_connect_signature(body: bytes, signature: Optional[str], secret: str) -> bool:
    """``X-DocuSign-Signature-1`` is base64(HMAC-SHA256(secret, body))."""
    if not signature or not secret:
        return False
    digest = hmac.new(secret.encode('utf-8'), body, hashlib.sha256).digest()
    expected = base64.b64encode(digest).decode('ascii')
    return hmac.compare_digest(expected, signature.strip())


class DocuSignService:
    def __init__(
        self,
        base_url: Optional[str] = None,
        account_id: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.base_url = (base_url or os.getenv('DOCUSIGN_BASE_URL') or DEFAULT_BASE_URL).rstrip('/')
        self.account_id = account_id if account_id is not None else os.getenv('DOCUSIGN_ACCOUNT_ID', '')
        self.access_token = access_token if access_token is not None else os.getenv('DOCUSIGN_ACCESS_TOKEN', '')
        self.timeout = timeout

    def is_configured(self) -> bool:
        return bool(self.account_id and self.access_token)

    def _fetch_document(self, file_url: str) -> bytes:
        try:
            response = requests.get(file_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Could not download contract document {file_url}: {e}")
            raise DocuSignError(502, 'Failed to download contract document') from e
        return response.content

    def create_envelope(
        self,
        *,
        document_name: str,
        file_url: str,
        file_type: Optional[str],
        signers: List[Dict[str, str]],
        email_subject: Optional[str] = None,
        email_blurb: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create and send an envelope. Returns DocuSign's ``{envelopeId, status, ...}``."""
        if not self.is_configured():
            raise DocuSignError(503, 'DocuSign is not configured')
        if not signers:
            raise DocuSignError(400, 'At least one signer is required')

        content = self._fetch_document(file_url)
        extension = (file_type or '').rsplit('/', 1)[-1] or 'pdf'
        definition = {
            'emailSubject': email_subject or f"Please sign: {document_name}",
            'emailBlurb': email_blurb or 'Please review and sign this document.',
            'documents': [{
                'documentId': '1',
                'name': document_name,
                'fileExtension': extension,
                'documentBase64': base64.b64encode(content).decode('ascii'),
            }],
            'recipients': {
                'signers': [
                    {
                        'email': signer['email'],
                        'name': signer['name'],
                        'recipientId': str(index),
                        'routingOrder': str(index),
                        'tabs': {'signHereTabs': [
                            {'documentId': '1', 'pageNumber': '1', 'xPosition': '100', 'yPosition': '100'}
                        ]},
                    }
                    for index, signer in enumerate(signers, start=1)
                ],
            },
            'status': 'sent',
        }
        try:
            response = requests.post(
                f"{self.base_url}/v2.1/accounts/{self.account_id}/envelopes",
                json=definition,
                headers={'Authorization': f'Bearer {self.access_token}'},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"DocuSign envelope request failed: {e}")
            raise DocuSignError(502, 'Failed to reach DocuSign') from e
        if response.status_code == 401:
            raise DocuSignError(500, 'DocuSign credentials were rejected')
        if not response.ok:
            logger.error(f"DocuSign envelope creation failed ({response.status_code}): {response.text}")
            raise DocuSignError(502, f'DocuSign error: {response.status_code}')
        data = response.json()
        if not data.get('envelopeId'):
            raise DocuSignError(502, 'DocuSign did not return an envelope id')
        logger.info(f"Created DocuSign envelope {data['envelopeId']}")
        return data


def get_docusign_service() -> DocuSignService:
    return DocuSignService()
