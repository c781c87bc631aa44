"""Main CLI application."""

import logging
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import NoReturn, Optional

import click  # type: ignore[import-not-found]
from rich.console import Console  # type: ignore[import-not-found]
from rich.markup import escape  # type: ignore[import-not-found]
from rich.panel import Panel  # type: ignore[import-not-found]

from work_log import __version__
from work_log.analysis.reports import ReportGenerator, TimeFormat, as_csv, as_json
from work_log.cli.config_commands import config, get_config_manager
from work_log.core.config import TIME_FORMATS
from work_log.core.errors import WorkLogError
from work_log.core.storage import LogStore
from work_log.core.tracker import WorkTracker

console = Console()
error_console = Console(stderr=True)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(ctx: click.Context, level_name: str) -> None:
    """Send work_log log records to stderr for the duration of the command."""
    package_logger = logging.getLogger("work_log")
    package_logger.setLevel(getattr(logging, level_name, logging.WARNING))

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(handler)
    ctx.call_on_close(lambda: package_logger.removeHandler(handler))


def fail(error: Exception) -> NoReturn:
    """Print an error and exit with the code that matches its kind."""
    error_console.print(f"[red]Error:[/red] {escape(str(error))}")
    sys.exit(getattr(error, "exit_code", 2))


def get_tracker(ctx: click.Context) -> WorkTracker:
    """Open the work log for this command and wrap it in a tracker.

    The log is closed again when the command's context is torn down.
    """
    config_mgr = get_config_manager(ctx)
    log_file = ctx.obj.get("log_file")
    path = Path(log_file).expanduser() if log_file else config_mgr.log_file
    store = ctx.with_resource(LogStore(path))
    return WorkTracker(
        store,
        clock=ctx.obj.get("clock"),
        week_start=config_mgr.get("general.week_start", "monday"),
    )


def format_duration(duration: timedelta) -> str:
    """Format a duration as e.g. ``1h 5m`` or ``42s``."""
    seconds = int(duration.total_seconds())
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60

    if hours > 0:
        return f"{hours}h {minutes}m"
    elif minutes > 0:
        return f"{minutes}m {secs}s"
    else:
        return f"{secs}s"


def format_datetime(dt: datetime) -> str:
    """Format datetime for display."""
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def join_description(words: tuple[str, ...]) -> Optional[str]:
    return " ".join(words) or None


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "-V", "--version")
@click.option(
    "--log-file",
    envvar="WORK_LOG_FILE",
    type=click.Path(dir_okay=False),
    help="Work log file (default from config: ~/.work-log/work.log)",
)
@click.option(
    "--config",
    "config_path",
    envvar="WORK_CONFIG",
    type=click.Path(dir_okay=False),
    help="Configuration file (default: ~/.work-log/config.yml)",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.pass_context
def cli(
    ctx: click.Context,
    log_file: Optional[str],
    config_path: Optional[str],
    verbose: bool,
    no_color: bool,
) -> None:
    """Work - terminal time tracker.

    Records when work on a project starts and stops in an append-only log,
    and sums up the time spent per project.
    """
    ctx.ensure_object(dict)
    ctx.obj["log_file"] = log_file
    ctx.obj["config_path"] = config_path

    if ctx.invoked_subcommand in (None, "config", "help"):
        return

    config_mgr = get_config_manager(ctx)
    setup_logging(ctx, "DEBUG" if verbose else config_mgr.get("advanced.log_level", "WARNING"))
    if no_color or not config_mgr.get("display.color", True):
        console.no_color = True
        error_console.no_color = True


@cli.command()
@click.argument("project")
@click.argument("description", nargs=-1)
@click.pass_context
def start(ctx: click.Context, project: str, description: tuple[str, ...]) -> None:
    """Start working on PROJECT now.

    Example:
        work start website fixing the login form
    """
    try:
        tracker = get_tracker(ctx)
        event = tracker.start(project, join_description(description))
    except (WorkLogError, ValueError) as e:
        fail(e)

    console.print(f"[green]✓[/green] Started working on {escape(project)}")
    if event.description:
        console.print(f"  Description: {escape(event.description)}")
    console.print(f"  Started: {format_datetime(event.timestamp)}")


@cli.command()
@click.pass_context
def stop(ctx: click.Context) -> None:
    """Stop the work in progress now.

    Example:
        work stop
    """
    try:
        tracker = get_tracker(ctx)
        started, stopped = tracker.stop()
    except WorkLogError as e:
        fail(e)

    console.print(f"[green]✓[/green] Stopped working on {escape(started.project or '')}")
    console.print(f"  Duration: {format_duration(stopped.timestamp - started.timestamp)}")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show what is being worked on.

    Example:
        work status
    """
    try:
        tracker = get_tracker(ctx)
        current = tracker.status()
    except WorkLogError as e:
        fail(e)

    if current is None:
        console.print("[yellow]Free[/yellow] - not working")
        return

    content = f"""[bold]{escape(current.project or "")}[/bold]

[dim]Started:[/dim] {format_datetime(current.timestamp)}
[dim]Elapsed:[/dim] {format_duration(tracker.elapsed(current))}"""
    if current.description:
        content += f"\n[dim]Description:[/dim] {escape(current.description)}"

    console.print(Panel(content, title="Working", border_style="green"))


@cli.command()
@click.pass_context
def free(ctx: click.Context) -> None:
    """Exit with 0 if no work is in progress, 1 otherwise."""
    try:
        working = get_tracker(ctx).is_working()
    except WorkLogError as e:
        fail(e)
    ctx.exit(1 if working else 0)


@cli.command()
@click.pass_context
def working(ctx: click.Context) -> None:
    """Exit with 0 if work is in progress, 1 otherwise."""
    try:
        working = get_tracker(ctx).is_working()
    except WorkLogError as e:
        fail(e)
    ctx.exit(0 if working else 1)


@cli.command()
@click.argument("interval", nargs=-1, required=True)
@click.option("--csv", "as_csv_output", is_flag=True, help="Output as CSV")
@click.option("--json", "as_json_output", is_flag=True, help="Output as JSON")
@click.option(
    "-t",
    "--time-format",
    type=click.Choice(TIME_FORMATS),
    help="Time format (default from config: human-readable)",
)
@click.option("-d", "--descriptions", is_flag=True, help="Break projects down by description")
@click.pass_context
def of(
    ctx: click.Context,
    interval: tuple[str, ...],
    as_csv_output: bool,
    as_json_output: bool,
    time_format: Optional[str],
    descriptions: bool,
) -> None:
    """Summarize the work done within INTERVAL.

    INTERVAL is one of today, yesterday, week, last-week, month, last-month,
    year, a range such as "9:00 - 12:30", or a single time meaning from
    then until now. Exits with 1 if no work was done.

    Examples:
        work of today
        work of week --csv
        work of 2024-01-01 - 2024-01-31 -t hours
    """
    interval_text = " ".join(interval)
    try:
        tracker = get_tracker(ctx)
        fmt = TimeFormat.from_name(
            time_format or get_config_manager(ctx).get("display.time_format", "human-readable")
        )
        resolved, summary = tracker.summary(interval_text)
    except (WorkLogError, ValueError) as e:
        fail(e)

    if not summary:
        console.print("No work done!")
        ctx.exit(1)

    if as_csv_output:
        click.echo(as_csv(summary, fmt), nl=False)
    elif as_json_output:
        click.echo(as_json(summary, fmt))
    else:
        ReportGenerator(console).summary_report(summary, resolved, fmt, descriptions)


@cli.command()
@click.argument("time")
@click.argument("project")
@click.argument("description", nargs=-1)
@click.option("--stop", "stop_now", is_flag=True, help="Also stop the work now")
@click.pass_context
def since(
    ctx: click.Context,
    time: str,
    project: str,
    description: tuple[str, ...],
    stop_now: bool,
) -> None:
    """Start working on PROJECT at an earlier TIME.

    Examples:
        work since 9:00 website
        work since "2 hours ago" website code review
        work since 45m meeting --stop
    """
    try:
        tracker = get_tracker(ctx)
        event = tracker.since(time, project, join_description(description), stop=stop_now)
    except (WorkLogError, ValueError) as e:
        fail(e)

    console.print(
        f"[green]✓[/green] Working on {escape(project)} since {format_datetime(event.timestamp)}"
    )
    if stop_now:
        console.print(f"  Duration: {format_duration(tracker.elapsed(event))}")


@cli.command()
@click.argument("time", nargs=-1, required=True)
@click.pass_context
def until(ctx: click.Context, time: tuple[str, ...]) -> None:
    """Stop the work in progress at a later TIME.

    Examples:
        work until 17:30
        work until in 20 minutes
    """
    try:
        tracker = get_tracker(ctx)
        event = tracker.until(" ".join(time))
    except WorkLogError as e:
        fail(e)

    console.print(f"[green]✓[/green] Work stops at {format_datetime(event.timestamp)}")


@cli.command()
@click.argument("time_range", metavar="RANGE")
@click.argument("project")
@click.argument("description", nargs=-1)
@click.pass_context
def between(
    ctx: click.Context, time_range: str, project: str, description: tuple[str, ...]
) -> None:
    """Log finished work on PROJECT within RANGE.

    Example:
        work between "9:00 - 10:30" website
    """
    try:
        tracker = get_tracker(ctx)
        started, stopped = tracker.between(time_range, project, join_description(description))
    except (WorkLogError, ValueError) as e:
        fail(e)

    console.print(
        f"[green]✓[/green] Logged {format_duration(stopped.timestamp - started.timestamp)} "
        f"on {escape(project)}"
    )
    console.print(
        f"  Time: {format_datetime(started.timestamp)} → {format_datetime(stopped.timestamp)}"
    )


@cli.command("while")
@click.argument("command")
@click.argument("project")
@click.argument("description", nargs=-1)
@click.pass_context
def while_(ctx: click.Context, command: str, project: str, description: tuple[str, ...]) -> None:
    """Work on PROJECT for as long as COMMAND runs.

    COMMAND runs through $SHELL. Work is stopped when it finishes, fails or
    is interrupted.

    Example:
        work while "make test" website
    """
    try:
        tracker = get_tracker(ctx)
        tracker.run_while(command, project, join_description(description))
    except (WorkLogError, ValueError) as e:
        fail(e)

    console.print(f"[green]✓[/green] Stopped working on {escape(project)}")


@cli.command("help")
@click.argument("command", required=False)
@click.pass_context
def help_(ctx: click.Context, command: Optional[str]) -> None:
    """Show help for the tool or for COMMAND."""
    parent = ctx.find_root()
    if command is None:
        click.echo(parent.get_help())
        return

    target = cli.get_command(parent, command)
    if target is None:
        fail(click.UsageError(f"No such command '{command}'"))
    with click.Context(target, info_name=command, parent=parent) as sub_ctx:
        click.echo(target.get_help(sub_ctx))


cli.add_command(config)
cli.add_command(start, "on")
cli.add_command(until, "for")


def main() -> None:
    """Console script entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
