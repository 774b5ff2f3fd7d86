"""Tests for migrations/env_helpers.py URL normalization."""

from __future__ import annotations

import os
import sys
from unittest.mock import patch

import pytest

# Make migrations.env_helpers importable without alembic context
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from migrations.env_helpers import get_database_url, normalize_database_url  # noqa: E402


class TestNormalizeDatabaseUrl:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("postgres://u:p@h:5432/db", "postgresql+psycopg2://u:p@h:5432/db"),
            ("postgresql://u:p@h/db", "postgresql+psycopg2://u:p@h/db"),
            ("postgresql+psycopg2://u:p@h/db", "postgresql+psycopg2://u:p@h/db"),
        ],
    )
    def test_driver_prefix(self, url, expected):
        assert normalize_database_url(url) == expected


class TestGetDatabaseUrl:
    def test_missing(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(RuntimeError, match="DATABASE_URL"):
                get_database_url()

    def test_from_env(self):
        with patch.dict(os.environ, {"DATABASE_URL": "postgres://u@h/db"}, clear=True):
            assert get_database_url() == "postgresql+psycopg2://u@h/db"
