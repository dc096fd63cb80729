"""
URL utilities for building absolute links in emails and notifications.

Primary source: APP_BASE_URL (e.g., https://app.cardmock.io)
Fallback: APP_HOST (scheme added heuristically if missing).
"""
from __future__ import annotations

import os


def _add_scheme_if_missing(host: str) -> str:
    h = host.strip()
    if not h:
        return "http://localhost:3000"
    if h.startswith("http://") or h.startswith("https://"):
        return h
    lower = h.lower()
    if lower.startswith("localhost") or lower.startswith("127.0.0.1"):
        return f"http://{h}"
    return f"https://{h}"


def _strip_trailing_slash(url: str) -> str:
    return url[:-1] if url.endswith("/") else url


def get_app_base_url() -> str:
    """Return normalized base URL for the frontend application.

    Defaults to http://localhost:3000 if neither APP_BASE_URL nor APP_HOST is set.
    """
    base = os.getenv("APP_BASE_URL")
    if base and base.strip():
        return _strip_trailing_slash(base.strip())
    host = os.getenv("APP_HOST")
    if host and host.strip():
        return _strip_trailing_slash(_add_scheme_if_missing(host.strip()))
    return "http://localhost:3000"


def build_mockup_url(mockup_id) -> str:
    return f"{get_app_base_url()}/mockups/{mockup_id}"


def build_project_url(project_id) -> str:
    return f"{get_app_base_url()}/projects/{project_id}"


def build_share_url(token: str) -> str:
    return f"{get_app_base_url()}/public/share/{token}"
