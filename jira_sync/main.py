"""jira-sync CLI — all commands."""

import sys
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger
from rich import print as rprint
from rich.table import Table

from jira_sync.issues import IssueClient
from jira_sync.models import Outcome, OutcomeKind
from jira_sync.settings import get_settings
from jira_sync.transitions import TransitionEngine

app = typer.Typer(help="jira-sync: report automated test results to Jira", no_args_is_help=True)

ProfileOpt = Annotated[
    str | None,
    typer.Option("--profile", "-P", help="Profile name from ~/.config/jira-sync/config.toml"),
]
VerboseOpt = Annotated[bool, typer.Option("--verbose", "-v", help="Log every Jira request")]


# ---------------------------------------------------------------------------
# Client factory
# ---------------------------------------------------------------------------


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def get_client(profile: str | None = None) -> IssueClient:
    return IssueClient(get_settings(profile=profile).to_config())


def _report(outcome: Outcome) -> None:
    """Print the outcome and exit 1 unless it fully succeeded."""
    if outcome.ok:
        rprint(f"[green]✓[/green] {outcome.message}")
        return
    colour = "yellow" if outcome.kind is OutcomeKind.PARTIAL else "red"
    rprint(f"[{colour}]✗ {outcome.kind.value}:[/{colour}] {outcome.message}")
    raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("complete-story")
def complete_story(
    issue_key: Annotated[str, typer.Argument(help="Issue key (e.g. ECS-123)")],
    test_name: Annotated[str, typer.Argument(help="Name of the passing test")],
    execution_time_ms: Annotated[int, typer.Argument(help="Execution time in milliseconds", min=0)],
    profile: ProfileOpt = None,
    verbose: VerboseOpt = False,
) -> None:
    """Comment a passing run on the issue and move it to a done state."""
    _configure_logging(verbose)
    engine = TransitionEngine(get_client(profile))
    _report(engine.complete(issue_key, test_name, execution_time_ms))


@app.command("transition-issue")
def transition_issue(
    issue_key: Annotated[str, typer.Argument(help="Issue key (e.g. ECS-123)")],
    transition_name: Annotated[str, typer.Argument(help="Transition name, matched ignoring case")],
    profile: ProfileOpt = None,
    verbose: VerboseOpt = False,
) -> None:
    """Apply a named workflow transition to the issue."""
    _configure_logging(verbose)
    engine = TransitionEngine(get_client(profile))
    _report(engine.transition(issue_key, transition_name))


# Names used by existing test-suite launch scripts
app.command("completeStory", hidden=True)(complete_story)
app.command("transitionIssue", hidden=True)(transition_issue)


@app.command("check-issue")
def check_issue(
    issue_key: Annotated[str, typer.Argument(help="Issue key (e.g. ECS-123)")],
    profile: ProfileOpt = None,
    verbose: VerboseOpt = False,
) -> None:
    """Check that an issue exists and is visible with the configured credentials."""
    _configure_logging(verbose)
    _report(get_client(profile).check_exists(issue_key))


@app.command("get-story")
def get_story(
    issue_key: Annotated[str, typer.Argument(help="Issue key (e.g. ECS-123)")],
    profile: ProfileOpt = None,
    verbose: VerboseOpt = False,
) -> None:
    """Show a story and the acceptance criteria found in its description."""
    _configure_logging(verbose)
    story = get_client(profile).get_story(issue_key)
    if story is None:
        rprint(f"[red]Could not fetch {issue_key}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"{story.key}: {story.summary}")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Type", story.issue_type or "—")
    table.add_row("Status", story.status or "—")
    table.add_row("Priority", story.priority or "—")
    table.add_row("Description", story.description or "_No description provided._")
    rprint(table)

    if not story.acceptance_criteria:
        rprint("[dim]No acceptance criteria found.[/dim]")
        return
    rprint("[bold]Acceptance criteria[/bold]")
    for number, criterion in enumerate(story.acceptance_criteria, start=1):
        rprint(f"  {number}. {criterion}")


@app.command("report-result")
def report_result(
    issue_key: Annotated[str, typer.Argument(help="Issue key (e.g. ECS-123)")],
    summary: Annotated[str, typer.Argument(help="Test summary")],
    details: Annotated[str | None, typer.Option("--details", "-d", help="Failure details")] = None,
    failed: Annotated[bool, typer.Option("--failed", help="Report a failing run")] = False,
    attachment: Annotated[
        Path | None,
        typer.Option("--attachment", "-a", help="Screenshot to attach on failure"),
    ] = None,
    profile: ProfileOpt = None,
    verbose: VerboseOpt = False,
) -> None:
    """Comment a pass/fail test result on an existing issue."""
    _configure_logging(verbose)
    client = get_client(profile)
    _report(client.update_with_test_result(issue_key, summary, details, attachment, is_failed=failed))


@app.command("create-bug")
def create_bug(
    summary: Annotated[str, typer.Argument(help="Bug summary")],
    description: Annotated[str, typer.Argument(help="Bug description")] = "",
    attachment: Annotated[
        Path | None,
        typer.Option("--attachment", "-a", help="Screenshot to attach"),
    ] = None,
    profile: ProfileOpt = None,
    verbose: VerboseOpt = False,
) -> None:
    """Create a Bug in the configured project."""
    _configure_logging(verbose)
    outcome = get_client(profile).create_bug(summary, description, attachment)
    _report(outcome)


@app.command("config-show")
def config_show(profile: ProfileOpt = None) -> None:
    """Show resolved configuration (masks credentials)."""
    settings = get_settings(profile=profile)
    config = settings.to_config()

    def mask(val: str | None) -> str:
        if val is None:
            return "[dim](not set)[/dim]"
        if len(val) <= 5:
            return "***"
        return f"...{val[-5:]}"

    table = Table(title="jira-sync Configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("JIRA_BASE_URL", config.base_url or "[dim](not set)[/dim]")
    table.add_row("JIRA_EMAIL", config.email or "[dim](not set)[/dim]")
    table.add_row("JIRA_API_TOKEN", mask(config.api_token.get_secret_value() if config.api_token else None))
    table.add_row("PROJECT_KEY", config.project_key or "[dim](not set)[/dim]")
    table.add_row("PassComment", config.pass_template or "[dim](not set)[/dim]")
    table.add_row("FailedComment", config.fail_template or "[dim](not set)[/dim]")
    table.add_row("Version", config.version_label or "[dim](not set)[/dim]")
    table.add_row("Timeout", f"{config.timeout_sec:g}s")

    rprint(table)
