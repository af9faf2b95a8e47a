"""Tests for the command-line entry point."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from rcon_scheduler.__main__ import (
    DEFAULT_CONFIG_PATH,
    EXIT_CONFIG_ERROR,
    EXIT_RUNTIME_ERROR,
    EXIT_SUCCESS,
    async_main,
    main,
    parse_arguments,
)


@pytest.fixture
def config_file(tmp_path: Path, sample_config_data: dict[str, object]) -> Path:
    path = tmp_path / "config.json"
    _ = path.write_text(json.dumps(sample_config_data), encoding="utf-8")
    return path


@pytest.mark.unit
class TestParseArguments:
    """Test CLI argument parsing."""

    def test_defaults(self) -> None:
        """Test defaults when no arguments are given."""
        args = parse_arguments([])

        assert args.config == DEFAULT_CONFIG_PATH
        assert args.log_level is None
        assert args.log_dir is None
        assert args.no_file_log is False

    def test_overrides(self) -> None:
        """Test every option is parsed."""
        args = parse_arguments(
            ["-c", "/etc/rcon.yaml", "--log-level", "DEBUG", "--log-dir", "/var/log/rcon", "--no-file-log"]
        )

        assert args.config == Path("/etc/rcon.yaml")
        assert args.log_level == "DEBUG"
        assert args.log_dir == Path("/var/log/rcon")
        assert args.no_file_log is True

    def test_invalid_log_level(self) -> None:
        """Test unknown levels are rejected by argparse."""
        with pytest.raises(SystemExit):
            _ = parse_arguments(["--log-level", "LOUD"])


@pytest.mark.unit
class TestAsyncMain:
    """Test the async application lifecycle."""

    @pytest.mark.asyncio
    async def test_configures_logging_and_runs(self, config_file: Path, tmp_path: Path) -> None:
        """Test CLI overrides reach logging and the orchestrator runs."""
        with (
            patch("rcon_scheduler.__main__.configure_logging") as mock_logging,
            patch("rcon_scheduler.__main__.Orchestrator") as mock_orchestrator,
        ):
            mock_orchestrator.return_value.run = AsyncMock()

            await async_main(config_path=config_file, log_level="DEBUG", log_dir=tmp_path / "out")

        mock_logging.assert_called_once()
        kwargs = mock_logging.call_args.kwargs
        assert kwargs["log_level"] == "DEBUG"
        assert kwargs["log_dir"] == tmp_path / "out"
        assert kwargs["retention_days"] == 14
        mock_orchestrator.return_value.run.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_file_logging_disabled(self, config_file: Path) -> None:
        """Test --no-file-log passes no log directory."""
        with (
            patch("rcon_scheduler.__main__.configure_logging") as mock_logging,
            patch("rcon_scheduler.__main__.Orchestrator") as mock_orchestrator,
        ):
            mock_orchestrator.return_value.run = AsyncMock()

            await async_main(config_path=config_file, enable_file_log=False)

        assert mock_logging.call_args.kwargs["log_dir"] is None
        assert mock_logging.call_args.kwargs["log_level"] == "INFO"

    @pytest.mark.asyncio
    async def test_orchestrator_failure_propagates(self, config_file: Path) -> None:
        """Test runtime failures are logged and re-raised."""
        with (
            patch("rcon_scheduler.__main__.configure_logging"),
            patch("rcon_scheduler.__main__.Orchestrator") as mock_orchestrator,
        ):
            mock_orchestrator.return_value.run = AsyncMock(side_effect=RuntimeError("boom"))

            with pytest.raises(RuntimeError, match="boom"):
                await async_main(config_path=config_file)


@pytest.mark.unit
class TestMain:
    """Test exit codes."""

    def test_missing_config_exits_with_config_error(
        self,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Test a missing configuration file exits with status 1."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(tmp_path / "absent.json")])

        assert exc_info.value.code == EXIT_CONFIG_ERROR
        assert "Configuration error" in capsys.readouterr().err

    def test_clean_run_exits_zero(self, config_file: Path) -> None:
        """Test a clean shutdown exits with status 0."""
        with (
            patch("rcon_scheduler.__main__.async_main", new_callable=AsyncMock) as mock_main,
            pytest.raises(SystemExit) as exc_info,
        ):
            main(["--config", str(config_file), "--no-file-log"])

        assert exc_info.value.code == EXIT_SUCCESS
        mock_main.assert_awaited_once_with(
            config_path=config_file,
            log_level=None,
            log_dir=None,
            enable_file_log=False,
        )

    def test_unexpected_error_is_redacted(self, config_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test unexpected errors exit with status 1 without leaking secrets."""
        failing = AsyncMock(side_effect=OSError("lost ws://10.0.0.2:28016/hunter2"))

        with (
            patch("rcon_scheduler.__main__.async_main", failing),
            patch("rcon_scheduler.__main__.logging", MagicMock()),
            pytest.raises(SystemExit) as exc_info,
        ):
            main(["--config", str(config_file)])

        assert exc_info.value.code == EXIT_RUNTIME_ERROR
        err = capsys.readouterr().err
        assert "Unexpected error" in err
        assert "hunter2" not in err
