import pytest

from cardmock.utils.runtime import dev_mode_active
from cardmock.utils.urls import build_mockup_url, build_share_url, get_app_base_url


def test_dev_mode_active_false_when_disabled(monkeypatch):
    monkeypatch.delenv("DEV_MODE", raising=False)
    assert dev_mode_active() is False


def test_dev_mode_active_true_for_localhost(monkeypatch):
    monkeypatch.setenv("DEV_MODE", "true")
    monkeypatch.setenv("APP_BASE_URL", "http://localhost:3000")
    assert dev_mode_active() is True


def test_dev_mode_active_raises_for_remote_host(monkeypatch):
    monkeypatch.setenv("DEV_MODE", "true")
    monkeypatch.setenv("APP_BASE_URL", "https://app.cardmock.io")
    with pytest.raises(RuntimeError):
        dev_mode_active()


def test_dev_mode_extra_allowed_host(monkeypatch):
    monkeypatch.setenv("DEV_MODE", "true")
    monkeypatch.setenv("APP_BASE_URL", "http://cardmock.test:3000")
    monkeypatch.setenv("DEV_MODE_ALLOWED_HOSTS", "cardmock.test")
    assert dev_mode_active() is True


def test_app_base_url_precedence(monkeypatch):
    monkeypatch.setenv("APP_BASE_URL", "https://app.cardmock.io/")
    monkeypatch.setenv("APP_HOST", "ignored.example.com")
    assert get_app_base_url() == "https://app.cardmock.io"

    monkeypatch.delenv("APP_BASE_URL")
    assert get_app_base_url() == "https://ignored.example.com"

    monkeypatch.setenv("APP_HOST", "localhost:3000")
    assert get_app_base_url() == "http://localhost:3000"

    monkeypatch.delenv("APP_HOST")
    assert get_app_base_url() == "http://localhost:3000"


def test_link_builders(monkeypatch):
    monkeypatch.setenv("APP_BASE_URL", "https://app.cardmock.io")
    assert build_mockup_url("m1") == "https://app.cardmock.io/mockups/m1"
    assert build_share_url("tok") == "https://app.cardmock.io/public/share/tok"
