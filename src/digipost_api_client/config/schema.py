"""Configuration schema models for digipost-api-client.

This module defines Pydantic models for all configuration sections.
These models are used by the Settings class to validate and type-check
configuration loaded from YAML files and environment variables.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path  # noqa: TC003 - needed at runtime for Pydantic
from typing import Annotated, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)


__all__ = [
    "ConfigBaseModel",
    "DigipostConfig",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "ObservabilityConfig",
]


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class LogFormat(StrEnum):
    """Log output format.

    Attributes:
        LOGFMT: key=value lines (for machine parsing).
        CONSOLE: Human-readable console output with colors.
    """

    LOGFMT = "logfmt"
    CONSOLE = "console"


class LogLevel(StrEnum):
    """Log verbosity level.

    Attributes:
        DEBUG: Detailed debugging information, including canonical requests.
        INFO: General operational information.
        WARNING: Warning messages for potential issues.
        ERROR: Error messages for failures.
        CRITICAL: Critical errors.
    """

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# ---------------------------------------------------------------------------
# Base Configuration Model
# ---------------------------------------------------------------------------


class ConfigBaseModel(BaseModel):
    """Base model for all configuration sections.

    Uses stricter settings than API models to catch configuration typos:
    - extra="forbid" raises errors for unknown fields
    - validate_default=True ensures defaults are validated
    """

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        validate_default=True,
    )


# ---------------------------------------------------------------------------
# Digipost Connection
# ---------------------------------------------------------------------------


class DigipostConfig(ConfigBaseModel):
    """Digipost API connection configuration.

    The passphrase unlocks the PKCS#12 certificate. Either `passphrase` or
    `passphrase_file` may be provided; if both are set, `passphrase` takes
    precedence. Environment variable interpolation is supported in the
    `passphrase` field using ${VAR} syntax.
    An empty passphrase is only kept when `certificate_path` is set.

    Attributes:
        api_url: Base URL of the Digipost API.
        sender_id: Sender (organisation or broker) id.
        certificate_path: Path to the sender's PKCS#12 certificate.
        passphrase: Certificate passphrase (supports ${VAR} interpolation).
        passphrase_file: Path to a file containing the passphrase.
        timeout_seconds: Total timeout per request.
        connect_timeout_seconds: Timeout for establishing a connection.
        connect_retries: Retries for failed TCP connection attempts.
    """

    api_url: str = Field(
        default="https://api.digipost.no",
        description="Base URL of the Digipost API",
    )
    sender_id: Annotated[
        int | None,
        Field(gt=0, description="Sender (organisation or broker) id"),
    ] = None
    certificate_path: Path | None = Field(
        default=None,
        description="Path to the sender's PKCS#12 certificate",
    )
    passphrase: SecretStr | None = Field(
        default=None,
        description="Certificate passphrase (supports ${VAR} interpolation)",
    )
    passphrase_file: Path | None = Field(
        default=None,
        description="Path to file containing the certificate passphrase",
    )
    timeout_seconds: Annotated[
        float,
        Field(gt=0, description="Total timeout per request in seconds"),
    ] = 30.0
    connect_timeout_seconds: Annotated[
        float,
        Field(gt=0, description="Connection timeout in seconds"),
    ] = 10.0
    connect_retries: Annotated[
        int,
        Field(ge=0, le=10, description="Retries for failed TCP connects"),
    ] = 1

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Remove trailing slash from URL to avoid double slashes."""
        return v.rstrip("/")

    @model_validator(mode="after")
    def empty_passphrase_without_certificate_is_unset(self) -> Self:
        """Drop an empty passphrase unless a certificate is configured.

        An unset `${VAR}` interpolates to "", which must not hide the other
        passphrase sources. With `certificate_path` set, "" is kept so a
        PKCS#12 container exported without a password can be loaded.
        """
        if (
            self.certificate_path is None
            and self.passphrase is not None
            and not self.passphrase.get_secret_value()
        ):
            self.passphrase = None
        return self


# ---------------------------------------------------------------------------
# Observability
# ---------------------------------------------------------------------------


class LoggingConfig(ConfigBaseModel):
    """Logging configuration.

    Attributes:
        level: Log verbosity level.
        format: Log output format (logfmt or console).
    """

    level: LogLevel = Field(default=LogLevel.INFO)
    format: LogFormat = Field(default=LogFormat.LOGFMT)


class ObservabilityConfig(ConfigBaseModel):
    """Observability configuration.

    Attributes:
        logging: Logging configuration.
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
