"""Unit tests for settings validation and log context binding."""

import pytest
import structlog
from pydantic import ValidationError

from shiftwise.config import Settings
from shiftwise.core.logging_config import bound_log_context
from shiftwise.utils.logging_utils import redact_user_id


@pytest.mark.unit
class TestSettings:
    def test_backend_is_normalised(self):
        settings = Settings(DATABASE_URL="sqlite+aiosqlite:///:memory:", LOCAL_STORE_BACKEND=" Redis ")

        assert settings.LOCAL_STORE_BACKEND == "redis"

    def test_unknown_backend_is_rejected(self):
        with pytest.raises(ValidationError, match="LOCAL_STORE_BACKEND"):
            Settings(DATABASE_URL="sqlite+aiosqlite:///:memory:", LOCAL_STORE_BACKEND="s3")

    def test_sqlite_rejected_in_production(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")

        with pytest.raises(ValidationError, match="PostgreSQL"):
            Settings(DATABASE_URL="sqlite+aiosqlite:///:memory:")

    def test_postgres_allowed_in_production(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")

        settings = Settings(DATABASE_URL="postgresql+asyncpg://u:p@db/shiftwise")

        assert settings.DATABASE_URL.startswith("postgresql")


@pytest.mark.unit
class TestLogContext:
    def test_values_bound_only_inside_block(self):
        with bound_log_context(migration_run_id="run-1"):
            assert structlog.contextvars.get_contextvars()["migration_run_id"] == "run-1"

        assert "migration_run_id" not in structlog.contextvars.get_contextvars()

    def test_values_unbound_after_error(self):
        with pytest.raises(RuntimeError):
            with bound_log_context(user_id="abc"):
                raise RuntimeError("boom")

        assert "user_id" not in structlog.contextvars.get_contextvars()


@pytest.mark.unit
class TestRedactUserId:
    def test_keeps_prefix(self):
        assert redact_user_id("5f0c8a52-0c3e-4c1a-9a43-3b0f7b2d9e11") == "5f0c8a52…"

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing(self, value):
        assert redact_user_id(value) == "N/A"

    def test_short_values_unchanged(self):
        assert redact_user_id("abc") == "abc"
