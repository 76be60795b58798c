"""Settings management for digipost-api-client.

This module provides the main Settings class and functions for loading
configuration from YAML files and environment variables.

Example:
    >>> from digipost_api_client.config import load_settings
    >>> settings = load_settings()
    >>> print(settings.digipost.api_url)
    https://api.digipost.no
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import SecretStr, ValidationError, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from digipost_api_client.config.exceptions import (
    ConfigurationError,
    ConfigurationFileNotFoundError,
    ConfigurationValidationError,
)
from digipost_api_client.config.schema import DigipostConfig, ObservabilityConfig


if TYPE_CHECKING:
    from collections.abc import Sequence


__all__ = [
    "PASSPHRASE_ENV_VAR",
    "Settings",
    "clear_settings_cache",
    "find_config_file",
    "get_settings",
    "load_settings",
]


# ---------------------------------------------------------------------------
# Environment Variable Interpolation
# ---------------------------------------------------------------------------

# Pattern for ${VAR} and ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _interpolate_env_vars(value: object) -> object:
    """Recursively interpolate ${VAR} and ${VAR:-default} in strings.

    Args:
        value: Value to interpolate (string, dict, list, or other).

    Returns:
        Value with environment variables interpolated. Non-string values
        are returned unchanged, except dicts and lists which are processed
        recursively.

    Example:
        >>> os.environ["P12_PASSPHRASE"] = "secret123"
        >>> _interpolate_env_vars("${P12_PASSPHRASE}")
        'secret123'
        >>> _interpolate_env_vars("${MISSING:-default_value}")
        'default_value'
    """
    if isinstance(value, str):

        def replace(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default = match.group(2)  # May be None
            env_value = os.environ.get(var_name)
            if env_value is not None:
                return env_value
            if default is not None:
                return default
            return ""

        return _ENV_VAR_PATTERN.sub(replace, value)

    if isinstance(value, dict):
        return {k: _interpolate_env_vars(v) for k, v in value.items()}

    if isinstance(value, list):
        return [_interpolate_env_vars(item) for item in value]

    return value


# ---------------------------------------------------------------------------
# Custom YAML Settings Source with Interpolation
# ---------------------------------------------------------------------------


class _InterpolatingYamlConfigSettingsSource(YamlConfigSettingsSource):
    """YAML settings source with ${VAR} interpolation support.

    Extends the standard YamlConfigSettingsSource to perform environment
    variable interpolation on loaded YAML values before passing them to
    Pydantic for validation.
    """

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        yaml_file: Path | str | None = None,
    ) -> None:
        """Initialize the YAML settings source.

        Args:
            settings_cls: The Settings class being configured.
            yaml_file: Path to YAML file, or None to use model_config setting.
        """
        # Only pass yaml_file if explicitly provided, otherwise let parent
        # use the value from model_config['yaml_file']
        if yaml_file is not None:
            super().__init__(settings_cls, yaml_file=yaml_file)
        else:
            super().__init__(settings_cls)

    def _read_files(
        self,
        files: Path | str | Sequence[Path | str] | None,
    ) -> dict[str, Any]:
        """Read and parse YAML files with environment variable interpolation.

        Args:
            files: Path(s) to YAML file(s) to read.

        Returns:
            Dictionary of parsed YAML with interpolated environment variables.
        """
        raw_data = super()._read_files(files)
        interpolated = _interpolate_env_vars(raw_data)
        # Type narrowing: _interpolate_env_vars returns dict for dict input
        if not isinstance(interpolated, dict):  # pragma: no cover
            return {}
        return interpolated


# ---------------------------------------------------------------------------
# Settings Class
# ---------------------------------------------------------------------------

PASSPHRASE_ENV_VAR = "DIGIPOST_CERTIFICATE_PASSPHRASE"


class Settings(BaseSettings):
    """Client settings loaded from YAML file and environment variables.

    Settings are loaded in priority order (highest to lowest):
    1. Constructor arguments
    2. Environment variables (DIGIPOST_*, nested with ``__``)
    3. YAML configuration file
    4. Default values

    The YAML file supports ${VAR} and ${VAR:-default} syntax for
    environment variable interpolation.

    Attributes:
        digipost: Digipost API connection and certificate settings.
        observability: Logging settings.

    Example:
        >>> settings = load_settings("/etc/digipost/config.yaml")
        >>> settings.digipost.sender_id
        123456

        >>> # Environment override
        >>> # DIGIPOST_DIGIPOST__SENDER_ID=654321
    """

    model_config = SettingsConfigDict(
        yaml_file=None,  # No default file - search paths used instead
        yaml_file_encoding="utf-8",
        env_prefix="DIGIPOST_",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    # Search paths for config file (class variable, not a setting)
    CONFIG_SEARCH_PATHS: ClassVar[list[Path]] = [
        Path("config.yaml"),
        Path("config.yml"),
        Path.home() / ".config" / "digipost" / "config.yaml",
        Path("/etc/digipost/config.yaml"),
    ]

    # Override for yaml_file path (set by load_settings before instantiation)
    _yaml_file_override: ClassVar[Path | str | None] = None

    digipost: DigipostConfig = DigipostConfig()
    observability: ObservabilityConfig = ObservabilityConfig()

    @model_validator(mode="after")
    def resolve_passphrase(self) -> Settings:
        """Resolve the certificate passphrase from its possible sources.

        Resolution order:
        1. Direct passphrase value (if set)
        2. Passphrase file (if passphrase_file is set)
        3. DIGIPOST_CERTIFICATE_PASSPHRASE environment variable

        Returns:
            Self with resolved passphrase.

        Raises:
            ValueError: If passphrase_file is specified but does not exist.
        """
        if self.digipost.passphrase is not None:
            return self

        if self.digipost.passphrase_file:
            passphrase_path = self.digipost.passphrase_file
            if not passphrase_path.is_file():
                msg = f"Passphrase file not found: {passphrase_path}"
                raise ValueError(msg)
            object.__setattr__(
                self.digipost,
                "passphrase",
                SecretStr(passphrase_path.read_text().strip()),
            )
            return self

        env_passphrase = os.environ.get(PASSPHRASE_ENV_VAR)
        if env_passphrase:
            object.__setattr__(self.digipost, "passphrase", SecretStr(env_passphrase))

        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings source priority.

        Priority order (highest to lowest): constructor arguments,
        environment variables, YAML file (with interpolation), file secrets.
        dotenv is not used.

        Returns:
            Tuple of settings sources in priority order.
        """
        yaml_file = cls._yaml_file_override
        return (
            init_settings,
            env_settings,
            _InterpolatingYamlConfigSettingsSource(settings_cls, yaml_file=yaml_file),
            file_secret_settings,
        )


# ---------------------------------------------------------------------------
# Settings Loading Functions
# ---------------------------------------------------------------------------

_cached_settings: Settings | None = None


def find_config_file(config_path: Path | str | None = None) -> Path | None:
    """Find the configuration file.

    Args:
        config_path: Explicit path to config file, or None to search
            default locations.

    Returns:
        Path to config file if found, None otherwise.

    Example:
        >>> find_config_file()  # Searches default paths
        PosixPath('config.yaml')
        >>> find_config_file("/custom/path/config.yaml")
        PosixPath('/custom/path/config.yaml')
    """
    if config_path is not None:
        path = Path(config_path)
        if path.is_file():
            return path
        return None

    # Search standard locations
    for search_path in Settings.CONFIG_SEARCH_PATHS:
        if search_path.is_file():
            return search_path

    return None


def load_settings(
    config_path: Path | str | None = None,
    *,
    require_config_file: bool = False,
) -> Settings:
    """Load and validate application settings.

    Loads settings from YAML file and/or environment variables and resolves
    the certificate passphrase. The loaded settings are cached for subsequent
    calls to get_settings().

    Args:
        config_path: Path to YAML config file. If None, searches standard
            locations (./config.yaml, ./config.yml,
            ~/.config/digipost/config.yaml, /etc/digipost/config.yaml).
        require_config_file: If True, raise error when no config file found.
            If False (default), proceed with environment variables and defaults.

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationFileNotFoundError: When require_config_file=True and
            no config file is found.
        ConfigurationValidationError: When configuration validation fails.

    Example:
        >>> # Load from default locations or environment
        >>> settings = load_settings()

        >>> # Load from specific file
        >>> settings = load_settings("/path/to/config.yaml")

        >>> # Require a config file
        >>> settings = load_settings(require_config_file=True)
    """
    global _cached_settings  # noqa: PLW0603

    config_file = find_config_file(config_path)

    if config_file is None and require_config_file:
        raise ConfigurationFileNotFoundError(
            path=str(config_path) if config_path else None,
            searched_paths=(
                None
                if config_path
                else [str(p) for p in Settings.CONFIG_SEARCH_PATHS]
            ),
        )

    try:
        # Set the yaml_file override before creating Settings instance
        # This is read by settings_customise_sources()
        Settings._yaml_file_override = config_file  # noqa: SLF001

        try:
            settings = Settings()
        finally:
            # Reset override to avoid affecting future calls
            Settings._yaml_file_override = None  # noqa: SLF001

    except ConfigurationError:
        # Re-raise our own exceptions
        raise
    except ValidationError as exc:
        msg = f"Invalid configuration: {exc.error_count()} error(s)"
        raise ConfigurationValidationError(
            msg,
            errors=[dict(error) for error in exc.errors()],
        ) from exc
    except Exception as exc:
        msg = f"Failed to load configuration: {exc}"
        raise ConfigurationValidationError(msg) from exc
    else:
        _cached_settings = settings
        return settings


def get_settings() -> Settings:
    """Get the cached settings instance, loading if necessary.

    This function provides access to the singleton settings instance.
    If settings have not been loaded yet, they will be loaded with
    default options (searching standard config file locations).

    Returns:
        The cached Settings instance.

    Example:
        >>> settings = get_settings()
        >>> print(settings.digipost.api_url)
        https://api.digipost.no
    """
    global _cached_settings  # noqa: PLW0603

    if _cached_settings is None:
        _cached_settings = load_settings()

    return _cached_settings


def clear_settings_cache() -> None:
    """Clear the cached settings instance.

    This function is primarily useful for testing, allowing tests to
    start with a fresh settings state.

    Example:
        >>> clear_settings_cache()
        >>> # Next call to get_settings() will reload
    """
    global _cached_settings  # noqa: PLW0603
    _cached_settings = None
