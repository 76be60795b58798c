"""Unit tests for the command line interface."""

from __future__ import annotations

import pathlib
from typing import TYPE_CHECKING, Any, BinaryIO
from uuid import UUID

import httpx
import pytest
import respx
from typer.testing import CliRunner

from digipost_api_client import __version__
from digipost_api_client.cli import app
from digipost_api_client.config import PASSPHRASE_ENV_VAR, clear_settings_cache


if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path


BATCH_UUID = UUID("7c9e6679-7425-40de-944b-e07fc1f90ae7")
DOC_UUID = "11111111-1111-4111-8111-111111111111"


@pytest.fixture(autouse=True)
def clean_environment(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[None, None, None]:
    """Run every command from an empty directory without a passphrase env var."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(PASSPHRASE_ENV_VAR, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def runner() -> CliRunner:
    """A CLI runner."""
    return CliRunner()


@pytest.fixture
def config_file(tmp_path: Path, p12_file: Path, p12_passphrase: str) -> Path:
    """A complete client configuration pointing at the test host."""
    path = tmp_path / "digipost.yaml"
    path.write_text(f"""
digipost:
  api_url: "http://digipost.test"
  sender_id: 123456
  certificate_path: "{p12_file}"
  passphrase: "{p12_passphrase}"
observability:
  logging:
    level: WARNING
""")
    return path


def _batch_json(status: str) -> dict[str, object]:
    return {"uuid": str(BATCH_UUID), "status": status, "count-digipost": 2}


# ---------------------------------------------------------------------------
# Global Options
# ---------------------------------------------------------------------------


class TestGlobalOptions:
    """Tests for the top-level callback."""

    def test_version(self, runner: CliRunner) -> None:
        """Test --version prints the package version."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"digipost-client version {__version__}" in result.output

    def test_verbose_and_quiet_are_exclusive(self, runner: CliRunner) -> None:
        """Test that -V and -q cannot be combined."""
        result = runner.invoke(app, ["-V", "-q", "batch", "info", str(BATCH_UUID)])

        assert result.exit_code == 1
        assert "mutually exclusive" in result.output

    def test_missing_config_file(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test that an explicit but missing config file is an error."""
        missing = tmp_path / "missing.yaml"

        result = runner.invoke(
            app,
            ["-c", str(missing), "batch", "info", str(BATCH_UUID)],
        )

        assert result.exit_code == 1
        assert "Configuration file not found" in result.output

    def test_incomplete_configuration(self, runner: CliRunner) -> None:
        """Test that missing client settings are reported."""
        result = runner.invoke(app, ["batch", "info", str(BATCH_UUID)])

        assert result.exit_code == 1
        assert "Missing required settings" in result.output


# ---------------------------------------------------------------------------
# Key Commands
# ---------------------------------------------------------------------------


class TestCheckKey:
    """Tests for check-key."""

    def test_key_loaded(
        self,
        runner: CliRunner,
        p12_file: Path,
        p12_passphrase: str,
    ) -> None:
        """Test loading a key with the passphrase option."""
        result = runner.invoke(
            app,
            ["check-key", str(p12_file), "--passphrase", p12_passphrase],
        )

        assert result.exit_code == 0
        assert "Key loaded: RSA 2048 bits" in result.output

    def test_passphrase_from_environment(
        self,
        runner: CliRunner,
        p12_file: Path,
        p12_passphrase: str,
    ) -> None:
        """Test that the passphrase is read from the environment."""
        result = runner.invoke(
            app,
            ["check-key", str(p12_file)],
            env={PASSPHRASE_ENV_VAR: p12_passphrase},
        )

        assert result.exit_code == 0
        assert "Key loaded" in result.output

    def test_wrong_passphrase(self, runner: CliRunner, p12_file: Path) -> None:
        """Test that a wrong passphrase exits with an error."""
        result = runner.invoke(
            app,
            ["check-key", str(p12_file), "--passphrase", "not-it"],
        )

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "not-it" not in result.output


# ---------------------------------------------------------------------------
# Batch Commands
# ---------------------------------------------------------------------------


class TestBatchCommands:
    """Tests for the batch sub-commands."""

    def test_info(self, runner: CliRunner, config_file: Path) -> None:
        """Test showing a batch."""
        with respx.mock(base_url="http://digipost.test") as router:
            router.get(f"/123456/batches/{BATCH_UUID}").mock(
                return_value=httpx.Response(200, json=_batch_json("CREATED"))
            )

            result = runner.invoke(
                app,
                ["-c", str(config_file), "batch", "info", str(BATCH_UUID)],
            )

        assert result.exit_code == 0, result.output
        assert f"Batch {BATCH_UUID}: CREATED" in result.output
        assert "digipost=2 print=0" in result.output

    def test_create_duplicate(self, runner: CliRunner, config_file: Path) -> None:
        """Test that a duplicate batch exits with an error."""
        with respx.mock(base_url="http://digipost.test") as router:
            router.post(f"/123456/batches/{BATCH_UUID}").mock(
                return_value=httpx.Response(409)
            )

            result = runner.invoke(
                app,
                ["-c", str(config_file), "batch", "create", str(BATCH_UUID)],
            )

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_cancel(self, runner: CliRunner, config_file: Path) -> None:
        """Test cancelling an open batch."""
        with respx.mock(base_url="http://digipost.test") as router:
            router.get(f"/123456/batches/{BATCH_UUID}").mock(
                return_value=httpx.Response(200, json=_batch_json("CREATED"))
            )
            delete_route = router.delete(f"/123456/batches/{BATCH_UUID}").mock(
                return_value=httpx.Response(204)
            )

            result = runner.invoke(
                app,
                ["-c", str(config_file), "batch", "cancel", str(BATCH_UUID)],
            )

        assert result.exit_code == 0, result.output
        assert delete_route.called
        assert "CANCELLED" in result.output

    def test_complete_terminal_batch(
        self,
        runner: CliRunner,
        config_file: Path,
    ) -> None:
        """Test that completing a finished batch exits with an error."""
        with respx.mock(base_url="http://digipost.test") as router:
            router.get(f"/123456/batches/{BATCH_UUID}").mock(
                return_value=httpx.Response(200, json=_batch_json("DONE"))
            )

            result = runner.invoke(
                app,
                ["-c", str(config_file), "batch", "complete", str(BATCH_UUID)],
            )

        assert result.exit_code == 1
        assert "Cannot complete batch" in result.output


# ---------------------------------------------------------------------------
# Archive Commands
# ---------------------------------------------------------------------------


class TestArchiveUpload:
    """Tests for archive upload."""

    def test_upload(
        self,
        runner: CliRunner,
        config_file: Path,
        tmp_path: Path,
    ) -> None:
        """Test uploading a file to a named archive."""
        report = tmp_path / "report.pdf"
        report.write_bytes(b"%PDF-1.4 report")

        with respx.mock(base_url="http://digipost.test") as router:
            route = router.post("/123456/archives").mock(
                return_value=httpx.Response(
                    200,
                    json={
                        "name": "invoices",
                        "documents": [
                            {
                                "uuid": DOC_UUID,
                                "file-name": "report.pdf",
                                "file-type": "pdf",
                            }
                        ],
                    },
                )
            )

            result = runner.invoke(
                app,
                [
                    "-c",
                    str(config_file),
                    "archive",
                    "upload",
                    str(report),
                    "--name",
                    "invoices",
                    "--reference-id",
                    "ref-1",
                ],
            )

        assert result.exit_code == 0, result.output
        body = route.calls.last.request.content
        assert b"%PDF-1.4 report" in body
        assert b'"referenceid": "ref-1"' in body
        assert b"application/pdf" in body
        assert "Archive: invoices" in result.output
        assert f"{DOC_UUID}  report.pdf" in result.output

    def test_upload_failure(
        self,
        runner: CliRunner,
        config_file: Path,
        tmp_path: Path,
    ) -> None:
        """Test that a rejected upload exits with an error."""
        report = tmp_path / "report.pdf"
        report.write_bytes(b"%PDF-1.4 report")

        with respx.mock(base_url="http://digipost.test") as router:
            router.post("/123456/archives").mock(return_value=httpx.Response(500))

            result = runner.invoke(
                app,
                ["-c", str(config_file), "archive", "upload", str(report)],
            )

        assert result.exit_code == 1
        assert "Failed to send archive 'default archive'" in result.output

    def test_unreadable_file_closes_opened_files(
        self,
        runner: CliRunner,
        config_file: Path,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that files already opened are closed when a later open fails."""
        report = tmp_path / "report.pdf"
        report.write_bytes(b"%PDF-1.4 report")
        broken = tmp_path / "broken.pdf"
        broken.write_bytes(b"%PDF-1.4 broken")
        opened: list[BinaryIO] = []
        real_open = pathlib.Path.open

        def fake_open(self: Path, *args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
            if self == broken:
                raise PermissionError(13, "Permission denied", str(self))
            handle = real_open(self, *args, **kwargs)
            if self == report:
                opened.append(handle)
            return handle

        monkeypatch.setattr(pathlib.Path, "open", fake_open)

        with respx.mock(
            base_url="http://digipost.test", assert_all_called=False
        ) as router:
            route = router.post("/123456/archives").mock(
                return_value=httpx.Response(200, json={"documents": []})
            )

            result = runner.invoke(
                app,
                ["-c", str(config_file), "archive", "upload", str(report), str(broken)],
            )

        assert result.exit_code == 1
        assert f"Permission denied: {broken}" in result.output
        assert not route.called
        assert len(opened) == 1
        assert opened[0].closed
