import asyncio

import pytest

from cardmock.services.transactional_email_service import TransactionalEmailConfig, TransactionalEmailService

BASE_CONTEXT = {
    "app_name": "CardMock",
    "app_url": "http://localhost:3000",
    "title": "Heads up",
    "message": "Something happened",
    "action_url": "http://localhost:3000/mockups/m1",
    "action_text": "Open mockup",
    "recipient_name": "Rae",
    "mockup_name": "Gold Card",
    "project_name": "Launch",
    "stage_name": "Design Review",
}


@pytest.fixture
def email_service():
    return TransactionalEmailService()


@pytest.mark.parametrize(
    "template_name, extra, expected",
    [
        ("approval_request", {}, "Design Review"),
        ("approval_received", {"approver_name": "Ada", "approvals_received": 1, "approvals_required": 2}, "Ada"),
        ("changes_requested", {"reviewer_name": "Ada", "notes": "Bigger logo"}, "Bigger logo"),
        ("final_approval", {"approver_name": "Ada", "pending": False}, "Gold Card"),
        ("comment", {"commenter_name": "Mel", "comment_text": "Nice colors"}, "Nice colors"),
        ("mockup_shared", {"shared_by_name": "Ada", "share_url": "http://x/s/tok", "personal_message": "See this"}, "See this"),
        ("membership_added", {"user_name": "rae", "organization_name": "Acme Cards", "invited_by": "Ada", "role": "member", "dashboard_url": "http://x/dashboard"}, "Acme Cards"),
        ("client_assignment_required", {"organization_name": "Acme Cards", "client_user_email": "buyer@bank.example", "client_user_name": "buyer"}, "buyer@bank.example"),
        ("public_review", {"reviewer_name": "Pat", "reviewer_company": "First Bank", "approved": True, "notes": None}, "First Bank"),
    ],
)
def test_every_template_renders(email_service, template_name, extra, expected):
    html, text = email_service.render_template(template_name, {**BASE_CONTEXT, **extra})
    assert expected in html
    assert "CardMock" in html
    assert "http://localhost:3000/mockups/m1" in html
    assert "<" not in text
    assert expected in text


def test_html_is_autoescaped(email_service):
    html, _ = email_service.render_template(
        "comment", {**BASE_CONTEXT, "commenter_name": "Mel", "comment_text": "<script>x</script>"}
    )
    assert "<script>" not in html
    assert "&lt;script&gt;" in html


def test_unknown_template_raises(email_service):
    with pytest.raises(ValueError):
        email_service.render_template("does_not_exist", BASE_CONTEXT)


def test_unconfigured_service_reports_failure(email_service):
    assert email_service.is_configured() is False
    result = asyncio.run(
        email_service.send_email("a@b.example", "Hi", "<p>hi</p>")
    )
    assert result["success"] is False


def test_provider_settings_are_validated(monkeypatch):
    monkeypatch.setenv("EMAIL_PROVIDER", "mailgun")
    monkeypatch.delenv("MAILGUN_DOMAIN", raising=False)
    errors = TransactionalEmailConfig().validate()
    assert errors == ["MAILGUN_API_KEY is required for Mailgun provider", "MAILGUN_DOMAIN is required for Mailgun provider"]
    assert TransactionalEmailService(TransactionalEmailConfig()).is_configured() is False

    monkeypatch.setenv("MAILGUN_API_KEY", "key-1")
    monkeypatch.setenv("MAILGUN_DOMAIN", "mg.cardmock.app")
    assert TransactionalEmailConfig().validate() == []
