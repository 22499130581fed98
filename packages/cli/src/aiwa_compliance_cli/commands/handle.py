"""handle command — process one delivered webhook event."""

from __future__ import annotations

import json

import click
from github import GithubException
from rich.console import Console
from rich.markup import escape

from aiwa_compliance_core.handlers import SUPPORTED_EVENTS, EventOutcome, dispatch

console = Console()


def print_outcome(outcome: EventOutcome) -> None:
    """Print a short report of what an event led to."""
    where = f" for [cyan]{outcome.repo}[/cyan]" if outcome.repo else ""
    console.print(f"\n[bold]{outcome.event}[/bold]{where}")

    if outcome.config_error:
        console.print(f"  [red]Configuration error: {escape(outcome.config_error)}[/red]")
        return

    if outcome.violations:
        rules = ", ".join(v.rule.value for v in outcome.violations)
        console.print(f"  {len(outcome.violations)} violation(s): {rules}")

    verb = "Would perform" if outcome.shadow else "Performed"
    for item in outcome.performed:
        console.print(f"  [green]{verb}:[/green] {escape(item)}")
    for item in outcome.skipped:
        console.print(f"  [dim]Skipped: {escape(item)} already exists[/dim]")
    for item in outcome.failed:
        console.print(f"  [red]Failed:[/red] {escape(item)}")

    if not (outcome.performed or outcome.skipped or outcome.failed):
        console.print("  [green]Nothing to do.[/green]")


@click.command("handle")
@click.option(
    "--event",
    "event_name",
    required=True,
    envvar="GITHUB_EVENT_NAME",
    help=f"Webhook event name ({', '.join(SUPPORTED_EVENTS)}). Defaults to $GITHUB_EVENT_NAME.",
)
@click.option(
    "--payload",
    "payload_path",
    required=True,
    envvar="GITHUB_EVENT_PATH",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to the event payload JSON. Defaults to $GITHUB_EVENT_PATH.",
)
@click.option(
    "--shadow",
    "-s",
    is_flag=True,
    help="Dry-run mode: print the comments, files and issues without writing to GitHub.",
)
@click.pass_context
def handle_cmd(ctx, event_name: str, payload_path: str, shadow: bool):
    """Apply compliance rules to one GitHub event.

    Inside a GitHub Actions workflow both options are picked up from the
    runner environment, so `aiwa-compliance handle` needs no arguments.

    \b
    Required environment variables:
      GITHUB_TOKEN    (or GH_TOKEN) token with issues, pull-requests and contents write access
    """
    from aiwa_compliance_cli.auth import github_client

    try:
        with open(payload_path, encoding="utf-8") as f:
            payload = json.load(f)
    except json.JSONDecodeError as e:
        raise click.UsageError(f"Payload {payload_path} is not valid JSON: {e}")
    if not isinstance(payload, dict):
        raise click.UsageError(f"Payload {payload_path} must contain a JSON object.")

    gh = github_client()
    try:
        outcome = dispatch(event_name, payload, gh, ctx.obj["config"], shadow=shadow)
    except GithubException as e:
        raise click.ClickException(f"GitHub API error: {e}")
    print_outcome(outcome)

    if outcome.config_error:
        raise click.ClickException(f"Configuration error: {outcome.config_error}")
