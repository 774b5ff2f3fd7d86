"""Database URL helpers for Alembic migrations.

Extracted so they can be tested without triggering alembic.context at import time.
"""

from __future__ import annotations

import os

_DRIVER_PREFIX = "postgresql+psycopg2://"


def normalize_database_url(url: str) -> str:
    """Point a Postgres URL at the psycopg2 driver.

    Hosted providers hand out `postgres://` and `postgresql://` URLs; SQLAlchemy
    needs an explicit driver. Other URLs are returned unchanged.
    """
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return _DRIVER_PREFIX + url[len(prefix):]
    return url


def get_database_url() -> str:
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is required to run migrations")
    return normalize_database_url(url)
