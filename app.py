"""
App assembly entry point.

Re-exports the FastAPI `app` from `cardmock.api.main` so deployments can run
`uvicorn app:app` from the service root.
"""

from cardmock.api.main import app  # noqa: F401
