"""
Per-domain repository modules for database access.

Route handlers and services import these modules directly, e.g.
``from cardmock.db.repositories import brands as brand_repo``.
"""
