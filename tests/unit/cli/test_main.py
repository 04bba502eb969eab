"""Unit tests for the wchkdsk command line.

Option handling is tested with DeviceChecker mocked out; the end-to-end
tests run shell scripts standing in for the real checkers.
"""

from collections.abc import Callable, Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner
from wchkdsk import __version__
from wchkdsk.cli.main import app
from wchkdsk.core.check import CheckRequest
from wchkdsk.core.paths import get_config_path
from wchkdsk.models.filesystem import FilesystemType
from wchkdsk.models.status import SupervisorExitCode, Verdict

runner = CliRunner()


@pytest.fixture
def mock_checker() -> Iterator[MagicMock]:
    """Patch DeviceChecker so that every check succeeds."""
    with patch("wchkdsk.cli.main.DeviceChecker") as mock_cls:
        mock_cls.return_value.check.return_value = Verdict(SupervisorExitCode.SUCCESS, "ok")
        yield mock_cls


def _request(mock_cls: MagicMock) -> CheckRequest:
    return mock_cls.return_value.check.call_args.args[0]


def _write_config(body: str) -> Path:
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(body)
    return config_path


class TestOptions:
    """Tests for argument parsing."""

    def test_help(self) -> None:
        """-h shows the usage text."""
        result = runner.invoke(app, ["-h"])

        assert result.exit_code == 0
        assert "--fstype" in result.stdout

    def test_version(self) -> None:
        """-V prints the version and exits 0."""
        result = runner.invoke(app, ["-V"])

        assert result.exit_code == 0
        assert f"wchkdsk version : {__version__}" in result.stdout

    def test_missing_fstype(self, mock_checker: MagicMock) -> None:
        """-f is required."""
        result = runner.invoke(app, ["/dev/sdb1"])

        assert result.exit_code == SupervisorExitCode.SYNTAX_ERROR
        mock_checker.assert_not_called()

    def test_missing_device(self, mock_checker: MagicMock) -> None:
        """The device argument is required."""
        result = runner.invoke(app, ["-f", "fat"])

        assert result.exit_code == SupervisorExitCode.SYNTAX_ERROR
        mock_checker.assert_not_called()

    def test_unknown_fstype(self, mock_checker: MagicMock) -> None:
        """Filesystems outside the registry are a syntax error."""
        result = runner.invoke(app, ["-f", "ext4", "/dev/sdb1"])

        assert result.exit_code == SupervisorExitCode.SYNTAX_ERROR
        mock_checker.assert_not_called()

    def test_fstype_case_insensitive(self, mock_checker: MagicMock) -> None:
        """-f accepts upper case names."""
        result = runner.invoke(app, ["-f", "NTFS", "/dev/sdb1"])

        assert result.exit_code == 0
        assert _request(mock_checker).fstype == FilesystemType.NTFS

    def test_non_numeric_timeout(self, mock_checker: MagicMock) -> None:
        """-t abc is rejected before any checker runs."""
        result = runner.invoke(app, ["-f", "fat", "-t", "abc", "/dev/sdb1"])

        assert result.exit_code == SupervisorExitCode.SYNTAX_ERROR
        mock_checker.assert_not_called()

    def test_timeout_above_alarm_range(self, mock_checker: MagicMock) -> None:
        """-t beyond what the alarm accepts is rejected before any checker runs."""
        result = runner.invoke(app, ["-f", "fat", "-t", "3000000000", "/dev/sdb1"])

        assert result.exit_code == SupervisorExitCode.SYNTAX_ERROR
        mock_checker.assert_not_called()

    def test_negative_timeout(self, mock_checker: MagicMock) -> None:
        """-t -1 is rejected."""
        result = runner.invoke(app, ["-f", "fat", "-t", "-1", "/dev/sdb1"])

        assert result.exit_code == SupervisorExitCode.SYNTAX_ERROR
        mock_checker.assert_not_called()


class TestRequestBuilding:
    """Tests for translating options into a CheckRequest."""

    def test_auto_probes(self, mock_checker: MagicMock) -> None:
        """-a keeps the dirty probe."""
        runner.invoke(app, ["-f", "fat", "-a", "/dev/sdb1"])

        request = _request(mock_checker)
        assert request.device == "/dev/sdb1"
        assert not request.force
        assert not request.interactive

    def test_yes_forces(self, mock_checker: MagicMock) -> None:
        """-y skips the probe."""
        runner.invoke(app, ["-f", "exfat", "-y", "/dev/sdb1"])

        assert _request(mock_checker).force

    def test_yes_wins_over_auto(self, mock_checker: MagicMock) -> None:
        """With both -a and -y the probe is skipped."""
        runner.invoke(app, ["-f", "fat", "-a", "-y", "/dev/sdb1"])

        assert _request(mock_checker).force

    def test_interactive(self, mock_checker: MagicMock) -> None:
        """-r selects the interactive variant."""
        runner.invoke(app, ["-f", "fat", "-r", "/dev/sdb1"])

        assert _request(mock_checker).interactive

    def test_timeout_passed_through(self, mock_checker: MagicMock) -> None:
        """-t sets the run time limit."""
        runner.invoke(app, ["-f", "fat", "-t", "45", "/dev/sdb1"])

        assert _request(mock_checker).timeout_seconds == 45

    def test_no_timeout_by_default(self, mock_checker: MagicMock) -> None:
        """Without -t or config the runs are unlimited."""
        runner.invoke(app, ["-f", "fat", "/dev/sdb1"])

        assert _request(mock_checker).timeout_seconds == 0

    def test_config_timeout(self, mock_checker: MagicMock) -> None:
        """The configured timeout applies when -t is absent."""
        _write_config("timeout_seconds = 90\n")

        runner.invoke(app, ["-f", "fat", "/dev/sdb1"])

        assert _request(mock_checker).timeout_seconds == 90

    def test_explicit_zero_timeout_overrides_config(self, mock_checker: MagicMock) -> None:
        """-t 0 disables a configured timeout."""
        _write_config("timeout_seconds = 90\n")

        runner.invoke(app, ["-f", "fat", "-t", "0", "/dev/sdb1"])

        assert _request(mock_checker).timeout_seconds == 0

    def test_config_force_by_default(self, mock_checker: MagicMock) -> None:
        """force_by_default applies when neither -a nor -y is given."""
        _write_config("force_by_default = true\n")

        runner.invoke(app, ["-f", "fat", "/dev/sdb1"])

        assert _request(mock_checker).force

    def test_auto_overrides_force_by_default(self, mock_checker: MagicMock) -> None:
        """-a restores the probe when the config forces by default."""
        _write_config("force_by_default = true\n")

        runner.invoke(app, ["-f", "fat", "-a", "/dev/sdb1"])

        assert not _request(mock_checker).force

    def test_program_override(self, mock_checker: MagicMock) -> None:
        """The configured program replaces the registry default."""
        _write_config('[programs]\nfat = "fsck.vfat"\n')

        runner.invoke(app, ["-f", "fat", "/dev/sdb1"])

        spec = mock_checker.call_args.args[0]
        assert spec.program == "fsck.vfat"
        assert spec.repair_args == ("-afw",)

    def test_explicit_config_path(self, mock_checker: MagicMock, tmp_path: Path) -> None:
        """-c reads another config file."""
        config_file = tmp_path / "custom.toml"
        config_file.write_text("timeout_seconds = 12\n")

        runner.invoke(app, ["-f", "fat", "-c", str(config_file), "/dev/sdb1"])

        assert _request(mock_checker).timeout_seconds == 12

    def test_config_timeout_above_alarm_range(self, mock_checker: MagicMock) -> None:
        """A configured timeout beyond the alarm range is a config error."""
        _write_config("timeout_seconds = 3000000000\n")

        result = runner.invoke(app, ["-f", "fat", "/dev/sdb1"])

        assert result.exit_code == SupervisorExitCode.SYNTAX_ERROR
        mock_checker.assert_not_called()

    def test_invalid_config(self, mock_checker: MagicMock) -> None:
        """A broken config file exits 2 without running a checker."""
        _write_config("niceness = 99\n")

        result = runner.invoke(app, ["-f", "fat", "/dev/sdb1"])

        assert result.exit_code == SupervisorExitCode.SYNTAX_ERROR
        mock_checker.assert_not_called()


class TestExitCodes:
    """Tests for mapping verdicts to exit codes."""

    @pytest.mark.parametrize(
        "code",
        [
            SupervisorExitCode.FAILURE,
            SupervisorExitCode.NOT_SUPPORTED,
            SupervisorExitCode.READ_ONLY_DEVICE,
            SupervisorExitCode.USER_CANCEL,
            SupervisorExitCode.TIMEOUT,
        ],
    )
    def test_verdict_code_is_exit_code(
        self, mock_checker: MagicMock, code: SupervisorExitCode
    ) -> None:
        """The verdict code becomes the process exit code."""
        mock_checker.return_value.check.return_value = Verdict(code, "boom")

        result = runner.invoke(app, ["-f", "fat", "/dev/sdb1"])

        assert result.exit_code == int(code)

    def test_syntax_error_prints_usage(self, mock_checker: MagicMock) -> None:
        """A checker syntax error exits 2 and prints the usage text."""
        mock_checker.return_value.check.return_value = Verdict(
            SupervisorExitCode.SYNTAX_ERROR, "dosfsck reported a syntax error", show_usage=True
        )

        result = runner.invoke(app, ["-f", "fat", "/dev/sdb1"])

        assert result.exit_code == SupervisorExitCode.SYNTAX_ERROR
        assert "--fstype" in result.stdout


class TestEndToEnd:
    """Runs through the real supervisor with scripted checkers."""

    def test_clean_fat_volume(
        self, fake_checker: Callable[..., Path], foreign_image: Path, tmp_path: Path
    ) -> None:
        """A clean probe exits 0 without a repair run."""
        log = tmp_path / "calls.log"
        script = fake_checker(f'echo "$@" >> {log}\nexit 0')
        _write_config(f'[programs]\nfat = "{script}"\n')

        result = runner.invoke(app, ["-f", "fat", "-a", str(foreign_image)])

        assert result.exit_code == 0
        assert log.read_text().splitlines() == [f"-C {foreign_image}"]

    def test_dirty_fat_volume_repaired(
        self, fake_checker: Callable[..., Path], foreign_image: Path, tmp_path: Path
    ) -> None:
        """A dirty probe is followed by a repair run."""
        log = tmp_path / "calls.log"
        script = fake_checker(
            f'echo "$@" >> {log}\nif [ "$1" = "-C" ]; then exit 4; fi\nexit 1'
        )
        _write_config(f'[programs]\nfat = "{script}"\n')

        result = runner.invoke(app, ["-f", "fat", "-a", str(foreign_image)])

        assert result.exit_code == 0
        assert log.read_text().splitlines() == [
            f"-C {foreign_image}",
            f"-afw {foreign_image}",
        ]

    def test_forced_repair_with_errors_left(
        self, fake_checker: Callable[..., Path], foreign_image: Path
    ) -> None:
        """Errors left after repair exit 1."""
        script = fake_checker("exit 4")
        _write_config(f'[programs]\nfat = "{script}"\n')

        result = runner.invoke(app, ["-f", "fat", "-y", str(foreign_image)])

        assert result.exit_code == SupervisorExitCode.FAILURE

    def test_timeout(self, fake_checker: Callable[..., Path], foreign_image: Path) -> None:
        """A hanging checker is killed and the run exits 161."""
        script = fake_checker("exec sleep 30")
        _write_config(f'niceness = 0\n\n[programs]\nfat = "{script}"\n')

        result = runner.invoke(app, ["-f", "fat", "-y", "-t", "1", str(foreign_image)])

        assert result.exit_code == SupervisorExitCode.TIMEOUT

    def test_missing_checker_program(self, foreign_image: Path, tmp_path: Path) -> None:
        """A checker that cannot be started exits 1."""
        _write_config(f'[programs]\nfat = "{tmp_path / "no-such-fsck"}"\n')

        result = runner.invoke(app, ["-f", "fat", "-y", str(foreign_image)])

        assert result.exit_code == SupervisorExitCode.FAILURE

    def test_timeout_covers_probe_and_repair(
        self, fake_checker: Callable[..., Path], foreign_image: Path
    ) -> None:
        """Probe and repair each within -t but together beyond it exit 161."""
        script = fake_checker('if [ "$1" = "-C" ]; then sleep 1.2; exit 4; fi\nexec sleep 1.2')
        _write_config(f'niceness = 0\n\n[programs]\nfat = "{script}"\n')

        result = runner.invoke(app, ["-f", "fat", "-a", "-t", "2", str(foreign_image)])

        assert result.exit_code == SupervisorExitCode.TIMEOUT
