"""Guards for DEV_MODE, which impersonates a local dev user on every request."""

import os
from typing import Optional, Set
from urllib.parse import urlparse

LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


def _env_true(name: str) -> bool:
    return os.getenv(name, "false").strip().lower() == "true"


def _base_url_host() -> Optional[str]:
    raw = (os.getenv("APP_BASE_URL") or "").strip()
    if not raw:
        return None
    if "://" not in raw:
        raw = f"http://{raw}"
    host = urlparse(raw).hostname
    return host.lower() if host else None


def dev_hosts() -> Set[str]:
    """Local hosts plus anything listed in DEV_MODE_ALLOWED_HOSTS."""
    hosts = set(LOCAL_HOSTS)
    for entry in os.getenv("DEV_MODE_ALLOWED_HOSTS", "").split(","):
        if entry.strip():
            hosts.add(entry.strip().lower())
    return hosts


def dev_mode_active() -> bool:
    """Whether DEV_MODE is on; RuntimeError if it is on for a non-local deployment.

    With APP_BASE_URL set, its host must be in :func:`dev_hosts`. Without it,
    ALLOW_DEV_MODE=true (or a running pytest session) is required.
    """
    if not _env_true("DEV_MODE"):
        return False

    host = _base_url_host()
    if host is not None:
        allowed = dev_hosts()
        if host not in allowed:
            raise RuntimeError(
                f"DEV_MODE=true is refused for APP_BASE_URL host '{host}'; allowed hosts: {sorted(allowed)}"
            )
        return True

    if not (_env_true("ALLOW_DEV_MODE") or os.getenv("PYTEST_CURRENT_TEST")):
        raise RuntimeError("DEV_MODE=true needs a localhost APP_BASE_URL or ALLOW_DEV_MODE=true")
    return True
