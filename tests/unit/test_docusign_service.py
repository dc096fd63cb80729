import base64
import hashlib
import hmac
from unittest.mock import Mock, patch

import pytest

from cardmock.services.docusign_service import (
    DocuSignError,
    DocuSignService,
    status_for_event,
    verify_connect_signature,
)


@pytest.mark.parametrize(
    "event, status",
    [
        ("envelope-completed", "signed"),
        ("envelope-signed", "signed"),
        ("Envelope-Declined", "declined"),
        ("envelope-voided", "voided"),
        ("envelope-delivered", "delivered"),
        ("envelope-sent", "sent"),
        (None, "sent"),
    ],
)
def test_status_for_event(event, status):
    assert status_for_event(event) == status


def test_verify_connect_signature():
    body = b'{"event":"envelope-completed"}'
    good = base64.b64encode(hmac.new(b"connect-key", body, hashlib.sha256).digest()).decode()
    assert verify_connect_signature(body, good, "connect-key")
    assert not verify_connect_signature(body, good, "other-key")
    assert not verify_connect_signature(body, None, "connect-key")
    assert not verify_connect_signature(body + b" ", good, "connect-key")


def test_create_envelope_requires_configuration():
    service = DocuSignService(account_id="", access_token="")
    with pytest.raises(DocuSignError) as exc:
        service.create_envelope(
            document_name="MSA", file_url="https://files/msa.pdf", file_type="application/pdf",
            signers=[{"email": "a@b.com", "name": "A"}],
        )
    assert exc.value.status_code == 503


def test_create_envelope_requires_signers():
    service = DocuSignService(account_id="acc", access_token="tok")
    with pytest.raises(DocuSignError) as exc:
        service.create_envelope(document_name="MSA", file_url="u", file_type=None, signers=[])
    assert exc.value.status_code == 400


def test_create_envelope_posts_definition():
    download = Mock(content=b"%PDF-1.7")
    download.raise_for_status.return_value = None
    created = Mock(status_code=201, ok=True)
    created.json.return_value = {"envelopeId": "env-1", "status": "sent"}

    service = DocuSignService(base_url="https://ds.example/restapi", account_id="acc", access_token="tok")
    with patch("cardmock.services.docusign_service.requests.get", return_value=download), \
            patch("cardmock.services.docusign_service.requests.post", return_value=created) as post:
        result = service.create_envelope(
            document_name="MSA",
            file_url="https://files/msa.pdf",
            file_type="application/pdf",
            signers=[{"email": "signer@bank.example", "name": "Sam Signer"}],
        )

    assert result["envelopeId"] == "env-1"
    url = post.call_args.args[0]
    assert url == "https://ds.example/restapi/v2.1/accounts/acc/envelopes"
    definition = post.call_args.kwargs["json"]
    assert definition["status"] == "sent"
    assert definition["documents"][0]["fileExtension"] == "pdf"
    assert base64.b64decode(definition["documents"][0]["documentBase64"]) == b"%PDF-1.7"
    assert definition["recipients"]["signers"][0]["email"] == "signer@bank.example"
    assert post.call_args.kwargs["headers"]["Authorization"] == "Bearer tok"


def test_create_envelope_maps_rejected_credentials():
    download = Mock(content=b"pdf")
    rejected = Mock(status_code=401, ok=False, text="unauthorized")
    service = DocuSignService(account_id="acc", access_token="tok")
    with patch("cardmock.services.docusign_service.requests.get", return_value=download), \
            patch("cardmock.services.docusign_service.requests.post", return_value=rejected):
        with pytest.raises(DocuSignError) as exc:
            service.create_envelope(
                document_name="MSA", file_url="u", file_type=None, signers=[{"email": "a@b.c", "name": "A"}]
            )
    assert exc.value.status_code == 500
