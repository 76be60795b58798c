"""Errors raised while loading the client's sender and certificate settings."""

from __future__ import annotations

from typing import Self


__all__ = [
    "ConfigurationError",
    "ConfigurationFileNotFoundError",
    "ConfigurationValidationError",
]


class ConfigurationError(Exception):
    """A sender, certificate, or logging setting could not be loaded.

    Attributes:
        message: Text shown to the operator. Never contains the passphrase.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationFileNotFoundError(ConfigurationError):
    """No YAML file with Digipost client settings was found.

    Attributes:
        path: The file passed with ``--config``, or None when only the
            default locations were searched.
        searched_paths: Default locations that were tried.
    """

    def __init__(
        self,
        path: str | None = None,
        searched_paths: list[str] | None = None,
    ) -> None:
        self.path = path
        self.searched_paths = searched_paths or []

        if path:
            message = f"Configuration file not found: {path}"
        elif self.searched_paths:
            message = (
                "No Digipost client configuration in "
                f"{', '.join(self.searched_paths)}; "
                "set DIGIPOST_* environment variables instead"
            )
        else:
            message = "No Digipost client configuration found"

        super().__init__(message)


class ConfigurationValidationError(ConfigurationError):
    """Client settings are invalid or incomplete.

    Raised for schema errors in the YAML or environment (for example a
    non-numeric sender id) and when a client is built from settings that
    lack the sender id, the PKCS#12 certificate path, or its passphrase.

    Attributes:
        errors: Pydantic error details, empty for incomplete settings.
        missing: Dotted names of the settings that were not provided.
    """

    def __init__(
        self,
        message: str,
        errors: list[dict[str, object]] | None = None,
        missing: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.errors = errors or []
        self.missing = missing or []

    @classmethod
    def missing_settings(cls, names: list[str]) -> Self:
        """Build the error for settings a client cannot be created without.

        Args:
            names: Dotted setting names, e.g. ``digipost.sender_id``.
        """
        return cls(f"Missing required settings: {', '.join(names)}", missing=names)
