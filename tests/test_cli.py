"""Tests for CLI commands."""

import json
import shutil
import tempfile
from pathlib import Path

import pytest  # type: ignore[import-not-found]
from click.testing import CliRunner, Result  # type: ignore[import-not-found]

from work_log.cli.main import cli


@pytest.fixture  # type: ignore[misc]
def runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture  # type: ignore[misc]
def temp_dir() -> Path:
    """Create temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture  # type: ignore[misc]
def work(runner: CliRunner, temp_dir: Path, clock):
    """Invoke the CLI on a temporary log and config with a fixed clock."""

    def invoke(*args: str, **kwargs) -> Result:
        return runner.invoke(
            cli,
            [
                "--log-file",
                str(temp_dir / "work.log"),
                "--config",
                str(temp_dir / "config.yml"),
                *args,
            ],
            obj={"clock": clock},
            **kwargs,
        )

    return invoke


class TestCLICommands:
    """Test CLI commands."""

    def test_version(self, runner: CliRunner) -> None:
        """Test --version flag."""
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_help(self, runner: CliRunner) -> None:
        """Test --help flag."""
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "terminal time tracker" in result.output
        assert "since" in result.output

    def test_help_without_command(self, work) -> None:
        """Test that bare help shows the top-level help."""
        result = work("help")
        assert result.exit_code == 0
        assert "terminal time tracker" in result.output
        assert "between" in result.output

    def test_help_command(self, work) -> None:
        """Test help for a single command."""
        result = work("help", "start")
        assert result.exit_code == 0
        assert "Start working on PROJECT now" in result.output

    def test_help_unknown_command(self, work) -> None:
        """Test help for a command that does not exist."""
        result = work("help", "dance")
        assert result.exit_code == 2
        assert "No such command" in result.output

    def test_start_command(self, work, temp_dir: Path) -> None:
        """Test start command."""
        result = work("start", "website", "fixing", "the", "login")

        assert result.exit_code == 0
        assert "Started working on website" in result.output
        assert "Description: fixing the login" in result.output
        line = (temp_dir / "work.log").read_text(encoding="utf-8").strip()
        assert line.endswith(" Start website fixing the login")

    def test_on_is_an_alias_for_start(self, work) -> None:
        """Test the on alias."""
        result = work("on", "website")
        assert result.exit_code == 0
        assert "Started working on website" in result.output

    def test_start_when_already_working(self, work) -> None:
        """Test that starting twice is a user error."""
        work("start", "website")

        result = work("start", "docs")

        assert result.exit_code == 2
        assert "Already working on website" in result.output

    def test_stop_command(self, work, clock) -> None:
        """Test stop command."""
        work("start", "website")
        clock.advance(hours=1, minutes=5)

        result = work("stop")

        assert result.exit_code == 0
        assert "Stopped working on website" in result.output
        assert "Duration: 1h 5m" in result.output

    def test_stop_when_free(self, work) -> None:
        """Test that stopping without work in progress is a user error."""
        result = work("stop")

        assert result.exit_code == 2
        assert "no work in progress" in result.output

    def test_status_command_free(self, work) -> None:
        """Test status while free."""
        result = work("status")

        assert result.exit_code == 0
        assert "Free" in result.output

    def test_status_command_working(self, work, clock) -> None:
        """Test status while working."""
        work("start", "website", "login form")
        clock.advance(minutes=12)

        result = work("status")

        assert result.exit_code == 0
        assert "Working" in result.output
        assert "website" in result.output
        assert "12m 0s" in result.output
        assert "login form" in result.output

    def test_free_and_working(self, work) -> None:
        """Test the boolean commands before and after starting."""
        assert work("free").exit_code == 0
        assert work("working").exit_code == 1

        work("start", "website")

        assert work("free").exit_code == 1
        assert work("working").exit_code == 0

    def test_since_command(self, work) -> None:
        """Test starting work at an earlier time."""
        result = work("since", "9:15", "website", "standup")

        assert result.exit_code == 0
        assert "Working on website since 2024-01-02 09:15:00" in result.output
        assert work("working").exit_code == 0

    def test_since_with_stop(self, work) -> None:
        """Test logging work up to now with --stop."""
        result = work("since", "45m", "meeting", "--stop")

        assert result.exit_code == 0
        assert "Duration: 45m 0s" in result.output
        assert work("free").exit_code == 0

    def test_since_future_time(self, work) -> None:
        """Test that a start in the future is a user error."""
        result = work("since", "in 10 minutes", "website")

        assert result.exit_code == 2
        assert "in the future" in result.output

    def test_since_unparseable_time(self, work) -> None:
        """Test that a bad time expression is a user error."""
        result = work("since", "whenever", "website")

        assert result.exit_code == 2
        assert "Invalid time specifier" in result.output

    def test_until_command(self, work) -> None:
        """Test stopping the work in progress later."""
        work("start", "website")

        result = work("until", "in", "20", "minutes")

        assert result.exit_code == 0
        assert "Work stops at 2024-01-02 10:20:00" in result.output

    def test_for_is_an_alias_for_until(self, work) -> None:
        """Test the for alias."""
        work("start", "website")

        result = work("for", "17:00")

        assert result.exit_code == 0
        assert "Work stops at 2024-01-02 17:00:00" in result.output

    def test_between_command(self, work) -> None:
        """Test logging finished work."""
        result = work("between", "8:00 - 9:30", "website", "review")

        assert result.exit_code == 0
        assert "Logged 1h 30m on website" in result.output
        assert work("free").exit_code == 0

    def test_of_no_work(self, work) -> None:
        """Test that an empty summary exits with 1."""
        result = work("of", "today")

        assert result.exit_code == 1
        assert "No work done!" in result.output

    def test_of_today(self, work, clock) -> None:
        """Test the summary table."""
        work("between", "8:00 - 9:00", "website")
        work("start", "docs")
        clock.advance(minutes=30)

        result = work("of", "today")

        assert result.exit_code == 0
        assert "website" in result.output
        assert "docs" in result.output
        assert "Total: 1 hour and 30 minutes" in result.output

    def test_of_json(self, work) -> None:
        """Test JSON output."""
        work("between", "8:00 - 9:00", "website")

        result = work("of", "today", "--json")

        assert result.exit_code == 0
        assert json.loads(result.output) == {"website": {"No description": "1 hour"}}

    def test_of_csv_with_time_format(self, work) -> None:
        """Test CSV output with a time format."""
        work("between", "8:00 - 9:20", "website", "review")

        result = work("of", "today", "--csv", "-t", "m")

        assert result.exit_code == 0
        assert result.output == "Project,Description,Time Spent\nwebsite,review,80\n"

    def test_of_explicit_range(self, work) -> None:
        """Test a range given as several words."""
        work("between", "8:00 - 9:00", "website")

        result = work("of", "8:30", "-", "9:30", "--json", "-t", "minutes")

        assert result.exit_code == 0
        assert json.loads(result.output) == {"website": {"No description": "30"}}

    def test_of_time_format_from_config(self, work) -> None:
        """Test that the configured time format is the default."""
        work("config", "set", "display.time_format", "hours")
        work("between", "8:00 - 9:00", "website")

        result = work("of", "today", "--json")

        assert json.loads(result.output) == {"website": {"No description": "1"}}

    def test_of_unknown_interval(self, work) -> None:
        """Test that an unknown interval is a user error."""
        result = work("of", "fortnight")

        assert result.exit_code == 2
        assert "Unknown interval" in result.output

    def test_corrupt_log(self, work, temp_dir: Path) -> None:
        """Test that an unreadable log exits with 3."""
        (temp_dir / "work.log").write_text("not an event\n", encoding="utf-8")

        result = work("status")

        assert result.exit_code == 3
        assert "line 1" in result.output

    def test_invalid_config(self, work, temp_dir: Path) -> None:
        """Test that a broken config file is reported."""
        (temp_dir / "config.yml").write_text("- a\n- list\n", encoding="utf-8")

        result = work("status")

        assert result.exit_code == 2
        assert "Invalid configuration" in result.output

    def test_verbose_logs_to_stderr(self, work) -> None:
        """Test that --verbose shows debug logging."""
        result = work("--verbose", "start", "website")

        assert result.exit_code == 0
        assert "Started work on website" in result.output

    def test_no_color_flag(self, work) -> None:
        """Test --no-color flag."""
        result = work("--no-color", "status")
        assert result.exit_code == 0


@pytest.mark.posix
@pytest.mark.skipif(shutil.which("sh") is None, reason="needs a POSIX shell")
class TestWhileCommand:
    """Test the while command."""

    def test_while_success(self, work) -> None:
        """Test tracking work around a successful command."""
        result = work("while", "exit 0", "build", env={"SHELL": "sh"})

        assert result.exit_code == 0
        assert "Stopped working on build" in result.output
        assert work("free").exit_code == 0

    def test_while_failure(self, work) -> None:
        """Test that a failing command exits with 4 and still stops the work."""
        result = work("while", "exit 7", "build", env={"SHELL": "sh"})

        assert result.exit_code == 4
        assert "status 7" in result.output
        assert work("free").exit_code == 0

    def test_while_when_working(self, work) -> None:
        """Test that the command is refused while other work is in progress."""
        work("start", "website")

        result = work("while", "exit 0", "build", env={"SHELL": "sh"})

        assert result.exit_code == 2


class TestConfigCommands:
    """Test config subcommands."""

    def test_config_get(self, work) -> None:
        """Test reading a value."""
        result = work("config", "get", "general.week_start")

        assert result.exit_code == 0
        assert result.output.strip() == "monday"

    def test_config_get_missing(self, work) -> None:
        """Test reading a key that does not exist."""
        result = work("config", "get", "general.nothing")

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_config_set(self, work) -> None:
        """Test writing a value."""
        result = work("config", "set", "general.week_start", "sunday")

        assert result.exit_code == 0
        assert work("config", "get", "general.week_start").output.strip() == "sunday"

    def test_config_set_boolean(self, work) -> None:
        """Test that true/false are stored as booleans."""
        work("config", "set", "display.color", "false")

        result = work("config", "show", "--json")

        assert json.loads(result.output)["display"]["color"] is False

    def test_config_set_invalid(self, work) -> None:
        """Test that invalid values are rejected."""
        result = work("config", "set", "general.week_start", "friday")

        assert result.exit_code == 2
        assert "Invalid configuration" in result.output

    def test_config_show(self, work) -> None:
        """Test the configuration table."""
        result = work("config", "show")

        assert result.exit_code == 0
        assert "general.week_start" in result.output

    def test_config_reset(self, work, temp_dir: Path) -> None:
        """Test resetting with a backup of the old file."""
        work("config", "set", "general.week_start", "sunday")

        result = work("config", "reset", "--yes")

        assert result.exit_code == 0
        assert (temp_dir / "config.yml.backup").exists()
        assert work("config", "get", "general.week_start").output.strip() == "monday"

    def test_config_reset_broken_file(self, work, temp_dir: Path) -> None:
        """Test that a broken file can be reset."""
        (temp_dir / "config.yml").write_text("- a\n- list\n", encoding="utf-8")

        result = work("config", "reset", "--yes")

        assert result.exit_code == 0
        assert work("config", "get", "general.week_start").output.strip() == "monday"

    def test_config_path(self, work, temp_dir: Path) -> None:
        """Test showing the config file path."""
        result = work("config", "path")

        assert result.output.strip() == str(temp_dir / "config.yml")

    def test_week_start_from_config(self, work) -> None:
        """Test that the configured first day of the week is used."""
        work("config", "set", "general.week_start", "sunday")
        work("between", "2023-12-31 09:00 - 2023-12-31 10:00", "website")

        result = work("of", "week", "--json", "-t", "m")

        assert json.loads(result.output) == {"website": {"No description": "60"}}
