"""Configuration for the athenahealth adapter.

Loads settings from environment variables (via a .env file or the system
environment). Nothing is read at import time beyond the .env file, so the
package can be imported without any credentials, e.g. in CI or in tests.

At *startup* both entry points call load_settings(), which validates the
environment and raises ConfigurationError listing every problem at once.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError, field_validator

from athena_mcp.errors import ConfigurationError

# Load .env from the project root if it exists
_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(_env_path)

PREVIEW_BASE_URL = "https://api.preview.platform.athenahealth.com"

_ENVIRONMENTS = {"development", "production", "test"}
_LOG_LEVELS = {"error", "warn", "warning", "info", "debug"}


class Settings(BaseModel):
    """Validated process configuration. Immutable once loaded."""

    model_config = {"frozen": True}

    client_id: str
    client_secret: str
    practice_id: str
    base_url: str = PREVIEW_BASE_URL
    version: str = "v1"
    environment: str = "development"
    log_level: str = "info"
    log_dir: str = "logs"
    log_max_bytes: int = 10 * 1024 * 1024
    log_backup_count: int = 5
    webhook_host: str = "0.0.0.0"
    webhook_port: int = 3000

    @field_validator("client_id", "client_secret", "practice_id")
    @classmethod
    def _required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @field_validator("base_url")
    @classmethod
    def _http_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("must be a valid http(s) URL")
        return value.rstrip("/")

    @field_validator("environment")
    @classmethod
    def _known_environment(cls, value: str) -> str:
        value = value.lower()
        if value not in _ENVIRONMENTS:
            raise ValueError(f"must be one of {sorted(_ENVIRONMENTS)}")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.lower()
        if value not in _LOG_LEVELS:
            raise ValueError(f"must be one of {sorted(_LOG_LEVELS)}")
        return value

    @property
    def is_preview(self) -> bool:
        """True when the base URL points at the preview/sandbox tier."""
        return "preview" in self.base_url

    @property
    def api_base(self) -> str:
        return f"{self.base_url}/{self.version}/"


# Settings field -> (env var, default)
_ENV_FIELDS: dict[str, tuple[str, str]] = {
    "client_id": ("ATHENA_CLIENT_ID", ""),
    "client_secret": ("ATHENA_CLIENT_SECRET", ""),
    "practice_id": ("ATHENA_PRACTICE_ID", ""),
    "base_url": ("ATHENA_BASE_URL", PREVIEW_BASE_URL),
    "version": ("ATHENA_VERSION", "v1"),
    "environment": ("APP_ENV", "development"),
    "log_level": ("LOG_LEVEL", "info"),
    "log_dir": ("LOG_DIR", "logs"),
    "log_max_bytes": ("LOG_MAX_BYTES", str(10 * 1024 * 1024)),
    "log_backup_count": ("LOG_BACKUP_COUNT", "5"),
    "webhook_host": ("WEBHOOK_HOST", "0.0.0.0"),
    "webhook_port": ("WEBHOOK_PORT", "3000"),
}


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build and validate Settings from the environment.

    Args:
        environ: Mapping to read instead of os.environ (used by tests).

    Returns:
        The validated Settings.

    Raises:
        ConfigurationError: If a required value is missing or malformed.
    """
    env = os.environ if environ is None else environ
    raw = {field: env.get(name, default) for field, (name, default) in _ENV_FIELDS.items()}
    try:
        return Settings(**raw)
    except ValidationError as exc:
        problems = []
        for err in exc.errors():
            field = str(err["loc"][0]) if err["loc"] else "?"
            env_name = _ENV_FIELDS[field][0] if field in _ENV_FIELDS else field
            problems.append(f"{env_name}: {err['msg']}")
        raise ConfigurationError(
            "Invalid configuration. Please check your environment variables: "
            + "; ".join(problems),
            problems=problems,
        ) from exc
