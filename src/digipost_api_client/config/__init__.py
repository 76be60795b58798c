"""Configuration module for digipost-api-client.

This module provides configuration management using Pydantic settings with
support for YAML files and environment variable overrides. Configuration
values support ${VAR} and ${VAR:-default} syntax for environment variable
interpolation.

Example:
    >>> from digipost_api_client.config import load_settings
    >>>
    >>> settings = load_settings("config.yaml")
    >>> settings.digipost.sender_id
    123456
    >>> settings.digipost.passphrase.get_secret_value()
    'secret'

Example config.yaml:
    ```yaml
    digipost:
      sender_id: 123456
      certificate_path: /etc/digipost/certificate.p12
      passphrase: ${P12_PASSPHRASE}
    observability:
      logging:
        level: INFO
        format: logfmt
    ```
"""

from __future__ import annotations

from digipost_api_client.config.exceptions import (
    ConfigurationError,
    ConfigurationFileNotFoundError,
    ConfigurationValidationError,
)
from digipost_api_client.config.schema import (
    ConfigBaseModel,
    DigipostConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    ObservabilityConfig,
)
from digipost_api_client.config.settings import (
    PASSPHRASE_ENV_VAR,
    Settings,
    clear_settings_cache,
    find_config_file,
    get_settings,
    load_settings,
)


__all__ = [
    "PASSPHRASE_ENV_VAR",
    "ConfigBaseModel",
    "ConfigurationError",
    "ConfigurationFileNotFoundError",
    "ConfigurationValidationError",
    "DigipostConfig",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "ObservabilityConfig",
    "Settings",
    "clear_settings_cache",
    "find_config_file",
    "get_settings",
    "load_settings",
]
