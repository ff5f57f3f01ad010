"""Configuration management for the Observe client.

This module provides the validated, immutable configuration of an Observer
and a helper that builds one from environment variables.
"""

from __future__ import annotations

import os
from typing import Any, Dict
from urllib.parse import urlsplit

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_BATCH_TIME_MS = 5000
DEFAULT_BATCH_SIZE = 200
DEFAULT_SIZE_LIMIT_BYTES = 2_000_000
DEFAULT_TIMEOUT_SECONDS = 30.0


class ObserverConfig(BaseModel):
    """Configuration supplied once when an Observer is constructed."""

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True, extra="forbid")

    url: str = Field(..., min_length=1, description="Absolute URL of the collector endpoint")
    auth: str = Field(..., min_length=1, description="Contents of the Bearer authorization header")
    batch_time_ms: int = Field(default=DEFAULT_BATCH_TIME_MS, gt=0, description="Deferred flush interval while sending, in milliseconds")
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, gt=0, description="Queued record count that forces a flush while sending")
    size_limit_bytes: int = Field(default=DEFAULT_SIZE_LIMIT_BYTES, gt=0, description="Queued byte size above which a flush is forced while sending")
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0, description="HTTP request timeout")

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        """Require an absolute http(s) URL."""
        parts = urlsplit(value)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"url must be an absolute http(s) URL, got {value!r}")
        return value

    @property
    def batch_time_seconds(self) -> float:
        return self.batch_time_ms / 1000.0


# Environment variable suffix -> (config field, parser)
_ENV_FIELDS = {
    "URL": ("url", str),
    "AUTH": ("auth", str),
    "BATCH_TIME_MS": ("batch_time_ms", int),
    "BATCH_SIZE": ("batch_size", int),
    "SIZE_LIMIT_BYTES": ("size_limit_bytes", int),
    "TIMEOUT_SECONDS": ("timeout_seconds", float),
}


def load_config_from_env(prefix: str = "OBSERVE_", environ: Dict[str, str] | None = None, **overrides: Any) -> ObserverConfig:
    """Build an ObserverConfig from environment variables.

    Explicit keyword overrides win over the environment. Numeric values that
    do not parse are logged and skipped so the field keeps its default.

    Args:
        prefix: Environment variable prefix
        environ: Mapping to read instead of ``os.environ``
        **overrides: Config fields set explicitly

    Returns:
        Validated configuration
    """
    environ = os.environ if environ is None else environ
    params: Dict[str, Any] = {}

    for suffix, (field_name, parser) in _ENV_FIELDS.items():
        if raw := environ.get(f"{prefix}{suffix}"):
            try:
                params[field_name] = parser(raw)
            except ValueError:
                logger.warning(f"Invalid value for {prefix}{suffix}: {raw}")

    params.update(overrides)
    return ObserverConfig(**params)
