"""Unit tests for the configuration module."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from cryptography.hazmat.primitives.serialization import NoEncryption, pkcs12
from pydantic import SecretStr, ValidationError

from digipost_api_client.config import (
    PASSPHRASE_ENV_VAR,
    ConfigurationError,
    ConfigurationFileNotFoundError,
    ConfigurationValidationError,
    DigipostConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    Settings,
    clear_settings_cache,
    find_config_file,
    get_settings,
    load_settings,
)
from digipost_api_client.digipost import DigipostClient
from digipost_api_client.security import KeyLoadError


if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path

    from cryptography import x509
    from cryptography.hazmat.primitives.asymmetric import rsa


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def clean_settings(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[None, None, None]:
    """Isolate each test from cached settings, the cwd, and the environment."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(PASSPHRASE_ENV_VAR, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def sample_config_yaml(tmp_path: Path) -> Path:
    """Create a sample configuration file."""
    config_file = tmp_path / "sample.yaml"
    config_file.write_text("""
digipost:
  api_url: "https://api.test.digipost.no/"
  sender_id: 123456
  certificate_path: "/etc/digipost/certificate.p12"
  passphrase: "yaml-passphrase"
  timeout_seconds: 12.5
  connect_retries: 3

observability:
  logging:
    level: DEBUG
    format: console
""")
    return config_file


@pytest.fixture
def config_with_interpolation(tmp_path: Path) -> Path:
    """Create a config file with environment variable interpolation."""
    config_file = tmp_path / "interpolated.yaml"
    config_file.write_text("""
digipost:
  api_url: "${TEST_DIGIPOST_URL:-https://api.digipost.no}"
  sender_id: 123456
  passphrase: "${TEST_P12_PASSPHRASE}"
""")
    return config_file


# ---------------------------------------------------------------------------
# Schema Validation Tests
# ---------------------------------------------------------------------------


class TestSchemaValidation:
    """Tests for configuration schema validation."""

    def test_log_enum_values(self) -> None:
        """Test LogFormat and LogLevel enum values."""
        assert LogFormat.LOGFMT == "logfmt"
        assert LogFormat.CONSOLE == "console"
        assert LogLevel.DEBUG == "DEBUG"
        assert LogLevel.CRITICAL == "CRITICAL"

    def test_digipost_config_defaults(self) -> None:
        """Test DigipostConfig default values."""
        config = DigipostConfig()

        assert config.api_url == "https://api.digipost.no"
        assert config.sender_id is None
        assert config.certificate_path is None
        assert config.passphrase is None
        assert config.timeout_seconds == 30.0
        assert config.connect_timeout_seconds == 10.0
        assert config.connect_retries == 1

    def test_api_url_strips_trailing_slash(self) -> None:
        """Test that trailing slash is stripped from the API URL."""
        config = DigipostConfig(api_url="https://api.test.digipost.no/")

        assert config.api_url == "https://api.test.digipost.no"

    @pytest.mark.parametrize("sender_id", [0, -5])
    def test_sender_id_must_be_positive(self, sender_id: int) -> None:
        """Test that non-positive sender ids are rejected."""
        with pytest.raises(ValidationError):
            DigipostConfig(sender_id=sender_id)

    def test_connect_retries_bounds(self) -> None:
        """Test connect_retries validation bounds."""
        assert DigipostConfig(connect_retries=0).connect_retries == 0
        with pytest.raises(ValidationError):
            DigipostConfig(connect_retries=11)
        with pytest.raises(ValidationError):
            DigipostConfig(connect_retries=-1)

    def test_timeouts_must_be_positive(self) -> None:
        """Test that zero timeouts are rejected."""
        with pytest.raises(ValidationError):
            DigipostConfig(timeout_seconds=0)
        with pytest.raises(ValidationError):
            DigipostConfig(connect_timeout_seconds=0)

    def test_empty_passphrase_is_unset(self) -> None:
        """Test that an empty passphrase without a certificate is not configured."""
        assert DigipostConfig(passphrase="").passphrase is None

    def test_empty_passphrase_kept_with_certificate(self, tmp_path: Path) -> None:
        """Test that an empty passphrase is kept for a configured certificate."""
        config = DigipostConfig(
            certificate_path=tmp_path / "certificate.p12",
            passphrase="",
        )

        assert config.passphrase is not None
        assert config.passphrase.get_secret_value() == ""

    def test_passphrase_is_secret(self) -> None:
        """Test that the passphrase is masked in repr."""
        config = DigipostConfig(passphrase="hunter2")

        assert isinstance(config.passphrase, SecretStr)
        assert "hunter2" not in repr(config)

    def test_config_forbids_extra_fields(self) -> None:
        """Test that unknown fields raise validation errors."""
        with pytest.raises(ValidationError) as exc_info:
            DigipostConfig(sender=123)  # type: ignore[call-arg]

        assert "extra" in str(exc_info.value).lower()

    def test_logging_level_validation(self) -> None:
        """Test that unknown log levels are rejected."""
        with pytest.raises(ValidationError):
            LoggingConfig(level="LOUD")  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Settings Loading Tests
# ---------------------------------------------------------------------------


class TestSettingsLoading:
    """Tests for load_settings function."""

    def test_load_settings_with_defaults(self) -> None:
        """Test loading settings with no config file."""
        settings = load_settings()

        assert settings.digipost.api_url == "https://api.digipost.no"
        assert settings.observability.logging.level == LogLevel.INFO
        assert settings.observability.logging.format == LogFormat.LOGFMT

    def test_load_settings_from_yaml(self, sample_config_yaml: Path) -> None:
        """Test loading settings from a YAML file."""
        settings = load_settings(sample_config_yaml)

        assert settings.digipost.api_url == "https://api.test.digipost.no"
        assert settings.digipost.sender_id == 123456
        assert str(settings.digipost.certificate_path) == (
            "/etc/digipost/certificate.p12"
        )
        assert settings.digipost.passphrase is not None
        assert settings.digipost.passphrase.get_secret_value() == "yaml-passphrase"
        assert settings.digipost.timeout_seconds == 12.5
        assert settings.digipost.connect_retries == 3
        assert settings.observability.logging.level == LogLevel.DEBUG
        assert settings.observability.logging.format == LogFormat.CONSOLE

    def test_load_settings_requires_file(self, tmp_path: Path) -> None:
        """Test that require_config_file raises for a missing file."""
        missing = tmp_path / "missing.yaml"

        with pytest.raises(ConfigurationFileNotFoundError) as exc_info:
            load_settings(missing, require_config_file=True)

        assert exc_info.value.path == str(missing)
        assert str(missing) in exc_info.value.message

    def test_load_settings_requires_any_file(self) -> None:
        """Test that searched paths are reported when nothing was given."""
        with pytest.raises(ConfigurationFileNotFoundError) as exc_info:
            load_settings(require_config_file=True)

        assert "config.yaml" in exc_info.value.searched_paths

    def test_load_settings_nonexistent_file_optional(self, tmp_path: Path) -> None:
        """Test that a missing optional file falls back to defaults."""
        settings = load_settings(tmp_path / "missing.yaml")

        assert settings.digipost.sender_id is None

    def test_invalid_yaml_value(self, tmp_path: Path) -> None:
        """Test that invalid values raise ConfigurationValidationError."""
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("""
digipost:
  sender_id: "not-a-number"
  unknown_key: true
""")

        with pytest.raises(ConfigurationValidationError) as exc_info:
            load_settings(config_file)

        assert "2 error(s)" in exc_info.value.message
        locations = [tuple(error["loc"]) for error in exc_info.value.errors]
        assert ("digipost", "sender_id") in locations
        assert ("digipost", "unknown_key") in locations


class TestEnvironmentVariableInterpolation:
    """Tests for ${VAR} interpolation in YAML files."""

    def test_interpolation_with_value(
        self,
        config_with_interpolation: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test interpolation when environment variable is set."""
        monkeypatch.setenv("TEST_DIGIPOST_URL", "https://api.test.digipost.no")
        monkeypatch.setenv("TEST_P12_PASSPHRASE", "from-env")

        settings = load_settings(config_with_interpolation)

        assert settings.digipost.api_url == "https://api.test.digipost.no"
        assert settings.digipost.passphrase is not None
        assert settings.digipost.passphrase.get_secret_value() == "from-env"

    def test_interpolation_with_default(
        self,
        config_with_interpolation: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test interpolation uses default when variable not set."""
        monkeypatch.delenv("TEST_DIGIPOST_URL", raising=False)
        monkeypatch.setenv("TEST_P12_PASSPHRASE", "from-env")

        settings = load_settings(config_with_interpolation)

        assert settings.digipost.api_url == "https://api.digipost.no"

    def test_missing_variable_leaves_passphrase_unset(
        self,
        config_with_interpolation: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that an empty interpolated passphrase is treated as unset."""
        monkeypatch.delenv("TEST_P12_PASSPHRASE", raising=False)

        settings = load_settings(config_with_interpolation)

        assert settings.digipost.passphrase is None


# ---------------------------------------------------------------------------
# Passphrase Resolution Tests
# ---------------------------------------------------------------------------


class TestPassphraseResolution:
    """Tests for passphrase and passphrase_file resolution."""

    def test_passphrase_from_file(self, tmp_path: Path) -> None:
        """Test that the passphrase is read from passphrase_file."""
        passphrase_file = tmp_path / "passphrase.txt"
        passphrase_file.write_text("secret-from-file\n")
        config_file = tmp_path / "config.yaml"
        config_file.write_text(f"""
digipost:
  passphrase_file: "{passphrase_file}"
""")

        settings = load_settings(config_file)

        assert settings.digipost.passphrase is not None
        assert settings.digipost.passphrase.get_secret_value() == "secret-from-file"

    def test_passphrase_file_not_found(self, tmp_path: Path) -> None:
        """Test error when passphrase_file doesn't exist."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("""
digipost:
  passphrase_file: "/nonexistent/passphrase.txt"
""")

        with pytest.raises(ConfigurationValidationError) as exc_info:
            load_settings(config_file)

        messages = " ".join(str(error["msg"]) for error in exc_info.value.errors)
        assert "Passphrase file not found" in messages

    def test_passphrase_takes_precedence_over_file(self, tmp_path: Path) -> None:
        """Test that a direct passphrase wins over passphrase_file."""
        passphrase_file = tmp_path / "passphrase.txt"
        passphrase_file.write_text("file-passphrase")
        config_file = tmp_path / "config.yaml"
        config_file.write_text(f"""
digipost:
  passphrase: "direct-passphrase"
  passphrase_file: "{passphrase_file}"
""")

        settings = load_settings(config_file)

        assert settings.digipost.passphrase is not None
        assert settings.digipost.passphrase.get_secret_value() == "direct-passphrase"

    def test_passphrase_env_fallback(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the passphrase environment variable fallback."""
        monkeypatch.setenv(PASSPHRASE_ENV_VAR, "env-fallback")

        settings = load_settings()

        assert settings.digipost.passphrase is not None
        assert settings.digipost.passphrase.get_secret_value() == "env-fallback"


class TestEnvironmentVariableOverrides:
    """Tests for DIGIPOST_* environment variable overrides."""

    def test_env_override_nested(
        self,
        sample_config_yaml: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that environment variables override YAML values."""
        monkeypatch.setenv("DIGIPOST_DIGIPOST__SENDER_ID", "654321")

        settings = load_settings(sample_config_yaml)

        assert settings.digipost.sender_id == 654321
        assert settings.digipost.connect_retries == 3

    def test_env_override_deeply_nested(
        self,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test overriding a value two levels deep."""
        monkeypatch.setenv("DIGIPOST_OBSERVABILITY__LOGGING__LEVEL", "WARNING")

        settings = load_settings()

        assert settings.observability.logging.level == LogLevel.WARNING


# ---------------------------------------------------------------------------
# Caching and Lookup Tests
# ---------------------------------------------------------------------------


class TestSettingsCaching:
    """Tests for settings caching behavior."""

    def test_get_settings_caches(self) -> None:
        """Test that get_settings returns the same instance."""
        assert get_settings() is get_settings()

    def test_clear_settings_cache(self) -> None:
        """Test that clearing the cache forces a reload."""
        first = get_settings()
        clear_settings_cache()

        assert get_settings() is not first

    def test_load_settings_updates_cache(self, sample_config_yaml: Path) -> None:
        """Test that load_settings replaces the cached instance."""
        settings = load_settings(sample_config_yaml)

        assert get_settings() is settings


class TestFindConfigFile:
    """Tests for find_config_file function."""

    def test_find_explicit_path(self, sample_config_yaml: Path) -> None:
        """Test finding an explicitly specified config file."""
        assert find_config_file(sample_config_yaml) == sample_config_yaml
        assert find_config_file(str(sample_config_yaml)) == sample_config_yaml

    def test_find_nonexistent_returns_none(self, tmp_path: Path) -> None:
        """Test that a nonexistent explicit path returns None."""
        assert find_config_file(tmp_path / "nope.yaml") is None

    def test_find_searches_default_paths(self, tmp_path: Path) -> None:
        """Test that ./config.yaml is found in the working directory."""
        (tmp_path / "config.yaml").write_text("digipost: {}\n")

        result = find_config_file()

        assert result is not None
        assert result.name == "config.yaml"


class TestExceptions:
    """Tests for configuration exceptions."""

    def test_hierarchy(self) -> None:
        """Test that all config errors share a base class."""
        assert issubclass(ConfigurationFileNotFoundError, ConfigurationError)
        assert issubclass(ConfigurationValidationError, ConfigurationError)

    def test_file_not_found_with_searched_paths(self) -> None:
        """Test the message when default locations were searched."""
        error = ConfigurationFileNotFoundError(searched_paths=["a.yaml", "b.yaml"])

        assert error.message == (
            "No Digipost client configuration in a.yaml, b.yaml; "
            "set DIGIPOST_* environment variables instead"
        )

    def test_file_not_found_without_paths(self) -> None:
        """Test the message with no path information."""
        assert ConfigurationFileNotFoundError().message == (
            "No Digipost client configuration found"
        )

    def test_validation_error_defaults(self) -> None:
        """Test that errors default to an empty list."""
        error = ConfigurationValidationError("bad")

        assert error.errors == []
        assert error.missing == []

    def test_missing_settings_message(self) -> None:
        """Test the error for settings a client cannot be built without."""
        error = ConfigurationValidationError.missing_settings(
            ["digipost.sender_id", "digipost.passphrase"]
        )

        assert error.message == (
            "Missing required settings: digipost.sender_id, digipost.passphrase"
        )
        assert error.missing == ["digipost.sender_id", "digipost.passphrase"]


# ---------------------------------------------------------------------------
# Client From Settings Tests
# ---------------------------------------------------------------------------


class TestClientFromSettings:
    """Tests for DigipostClient.from_settings."""

    async def test_from_settings(self, p12_file: Path, p12_passphrase: str) -> None:
        """Test building a client from complete settings."""
        settings = Settings(
            digipost=DigipostConfig(
                api_url="https://api.test.digipost.no",
                sender_id=123456,
                certificate_path=p12_file,
                passphrase=p12_passphrase,
            )
        )

        async with DigipostClient.from_settings(settings) as client:
            assert client.sender_id.id == 123456
            assert client.base_url == "https://api.test.digipost.no"

    def test_missing_settings(self) -> None:
        """Test that incomplete settings name every missing field."""
        settings = Settings(digipost=DigipostConfig(sender_id=123456))

        with pytest.raises(ConfigurationValidationError) as exc_info:
            DigipostClient.from_settings(settings)

        assert "digipost.certificate_path" in exc_info.value.message
        assert "digipost.passphrase" in exc_info.value.message
        assert "digipost.sender_id" not in exc_info.value.message
        assert exc_info.value.missing == [
            "digipost.certificate_path",
            "digipost.passphrase",
        ]

    async def test_certificate_without_password(
        self,
        tmp_path: Path,
        rsa_private_key: rsa.RSAPrivateKey,
        certificate: x509.Certificate,
    ) -> None:
        """Test loading a PKCS#12 container exported with an empty passphrase."""
        certificate_path = tmp_path / "unprotected.p12"
        certificate_path.write_bytes(
            pkcs12.serialize_key_and_certificates(
                b"digipost",
                rsa_private_key,
                certificate,
                None,
                NoEncryption(),
            )
        )
        config_file = tmp_path / "digipost.yaml"
        config_file.write_text(f"""
digipost:
  sender_id: 123456
  certificate_path: "{certificate_path}"
  passphrase: ""
""")

        settings = load_settings(config_file)

        async with DigipostClient.from_settings(settings) as client:
            assert client.sender_id.id == 123456

    def test_wrong_passphrase(self, p12_file: Path) -> None:
        """Test that a wrong passphrase surfaces as KeyLoadError."""
        settings = Settings(
            digipost=DigipostConfig(
                sender_id=123456,
                certificate_path=p12_file,
                passphrase="wrong",
            )
        )

        with pytest.raises(KeyLoadError):
            DigipostClient.from_settings(settings)
