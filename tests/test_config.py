"""Tests for settings loading and logging setup."""

from __future__ import annotations

import io
import logging
from collections.abc import Iterator
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from athena_mcp.config import PREVIEW_BASE_URL, load_settings
from athena_mcp.errors import ConfigurationError
from athena_mcp.logging_setup import AUDIT_LOGGER, PACKAGE_LOGGER, setup_logging

REQUIRED = {
    "ATHENA_CLIENT_ID": "test-client-id",
    "ATHENA_CLIENT_SECRET": "test-client-secret",
    "ATHENA_PRACTICE_ID": "195900",
}


class TestLoadSettings:
    def test_defaults(self) -> None:
        settings = load_settings(REQUIRED)

        assert settings.base_url == PREVIEW_BASE_URL
        assert settings.version == "v1"
        assert settings.environment == "development"
        assert settings.log_level == "info"
        assert settings.webhook_port == 3000
        assert settings.is_preview
        assert settings.api_base == f"{PREVIEW_BASE_URL}/v1/"

    def test_production_url(self) -> None:
        settings = load_settings(
            {**REQUIRED, "ATHENA_BASE_URL": "https://api.platform.athenahealth.com/"}
        )
        assert settings.base_url == "https://api.platform.athenahealth.com"
        assert not settings.is_preview

    def test_missing_credentials_name_env_vars(self) -> None:
        with pytest.raises(ConfigurationError) as excinfo:
            load_settings({"ATHENA_CLIENT_ID": "id"})

        problems = " ".join(excinfo.value.problems)
        assert "ATHENA_CLIENT_SECRET" in problems
        assert "ATHENA_PRACTICE_ID" in problems
        assert "ATHENA_CLIENT_ID" not in problems

    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("ATHENA_BASE_URL", "ftp://example.com"),
            ("APP_ENV", "staging"),
            ("LOG_LEVEL", "verbose"),
            ("WEBHOOK_PORT", "not-a-port"),
        ],
    )
    def test_malformed_values(self, name: str, value: str) -> None:
        with pytest.raises(ConfigurationError, match=name):
            load_settings({**REQUIRED, name: value})


@pytest.fixture
def restore_loggers() -> Iterator[None]:
    yield
    for name in (PACKAGE_LOGGER, AUDIT_LOGGER):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)


@pytest.mark.usefixtures("restore_loggers")
class TestSetupLogging:
    def test_writes_rotating_files(self, tmp_path: Path) -> None:
        settings = load_settings({**REQUIRED, "LOG_DIR": str(tmp_path), "LOG_BACKUP_COUNT": "3"})

        audit = setup_logging(settings, stream=io.StringIO())
        audit.record("PATIENT_SEARCH", {"email": "jane@example.org"})
        logging.getLogger("athena_mcp.test").error("boom")

        audit_handlers = logging.getLogger(AUDIT_LOGGER).handlers
        assert isinstance(audit_handlers[0], RotatingFileHandler)
        assert audit_handlers[0].backupCount == 30
        for handler in audit_handlers + logging.getLogger(PACKAGE_LOGGER).handlers:
            handler.flush()

        audit_text = (tmp_path / "audit.log").read_text()
        assert "PATIENT_SEARCH" in audit_text
        assert "jane@example.org" not in audit_text
        assert "boom" in (tmp_path / "error.log").read_text()
        assert "boom" in (tmp_path / "combined.log").read_text()

    def test_console_output_is_redacted(self, tmp_path: Path) -> None:
        stream = io.StringIO()
        setup_logging(load_settings({**REQUIRED, "LOG_DIR": str(tmp_path)}), stream=stream)

        logging.getLogger("athena_mcp.test").warning("lookup for %s", "555-123-4567")

        assert "555-123-4567" not in stream.getvalue()
        assert "[REDACTED]" in stream.getvalue()

    def test_second_call_does_not_stack_handlers(self, tmp_path: Path) -> None:
        settings = load_settings({**REQUIRED, "LOG_DIR": str(tmp_path)})
        setup_logging(settings, stream=io.StringIO())
        setup_logging(settings, stream=io.StringIO())

        assert len(logging.getLogger(PACKAGE_LOGGER).handlers) == 3
        assert len(logging.getLogger(AUDIT_LOGGER).handlers) == 1
