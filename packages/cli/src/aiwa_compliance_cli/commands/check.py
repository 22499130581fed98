"""check command — evaluate an existing pull request without posting."""

from __future__ import annotations

import click
from github import GithubException
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from aiwa_compliance_core.config import ConfigurationError
from aiwa_compliance_core.evaluator import COMMIT_RULE_KINDS, evaluate, needs_comment_history
from aiwa_compliance_core.gh.client import get_pull, get_repo, list_bot_comments, list_commits
from aiwa_compliance_core.handlers import resolve_repo_config
from aiwa_compliance_core.models import EventKind, PullRequestSnapshot

console = Console()


@click.command("check")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option("--pr", "pr_number", type=int, required=True, help="Pull request number.")
@click.option(
    "--kind",
    type=click.Choice([k.value for k in EventKind]),
    default=EventKind.OPENED.value,
    show_default=True,
    help="Event kind to evaluate as; decides which rules apply.",
)
@click.pass_context
def check_cmd(ctx, repo: str, pr_number: int, kind: str):
    """Show which compliance rules a pull request currently breaks.

    Runs the same rules as `handle` against the live pull request, using the
    repository's own configuration, and prints the result. Nothing is posted.
    """
    from aiwa_compliance_cli.auth import github_client

    gh = github_client()
    try:
        this_repo = get_repo(gh, repo)
        pr = get_pull(this_repo, pr_number)
    except GithubException:
        raise click.UsageError(f"PR #{pr_number} not found in {repo}.")

    try:
        config = resolve_repo_config(gh, this_repo, ctx.obj["config"])
    except ConfigurationError as e:
        raise click.ClickException(f"Configuration error in {e.field}: {e.detail}")

    snapshot = PullRequestSnapshot(
        repo_full_name=repo,
        number=pr_number,
        branch_name=pr.head.ref,
        title=pr.title or "",
        body=pr.body or "",
        kind=EventKind(kind),
    )
    commits = []
    existing: list[str] = []
    try:
        if snapshot.kind in COMMIT_RULE_KINDS:
            commits = list_commits(pr)
        if needs_comment_history(snapshot, config):
            existing = list_bot_comments(this_repo, pr_number, config.bot_login)
    except GithubException as e:
        raise click.ClickException(f"GitHub API error: {e}")

    try:
        violations = evaluate(snapshot, commits, config, existing)
    except ConfigurationError as e:
        raise click.ClickException(f"Configuration error in {e.field}: {e.detail}")

    if not violations:
        console.print(f"[green]{repo}#{pr_number} follows all conventions checked on '{kind}'.[/green]")
        return

    table = Table(title=f"Violations — {repo}#{pr_number} ({kind})", show_header=True, header_style="bold cyan")
    table.add_column("Rule", style="bold", width=16)
    table.add_column("Comment that would be posted")
    for v in violations:
        table.add_row(f"[yellow]{v.rule.value}[/yellow]", escape(v.message))
    console.print(table)
