"""init command — write the repository configuration and an optional Actions workflow.

The configuration file is written to `.github/aiwa-compliance.yml`, the path
the bot reads from every repository. Existing keys in that file are kept.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
import yaml
from rich.console import Console

from aiwa_compliance_core.config import DEFAULTS, REPO_CONFIG_PATH, ConfigurationError, parse_config_text

console = Console()
logger = logging.getLogger(__name__)

ACTIONS_BOT_LOGIN = "github-actions[bot]"

_WORKFLOW_TEMPLATE = """\
name: AiWA Compliance

on:
  pull_request:
    types: [opened, reopened, synchronize, edited]

jobs:
  compliance:
    runs-on: ubuntu-latest
    permissions:
      contents: read
      issues: write
      pull-requests: write

    steps:
      - name: Set up Python
        uses: actions/setup-python@v5
        with:
          python-version: "3.12"

      - name: Install aiwa-compliancebot
        run: pip install "aiwa-compliancebot=={version}"

      - name: Check pull request conventions
        env:
          GITHUB_TOKEN: ${{{{ secrets.GITHUB_TOKEN }}}}
        run: aiwa-compliance handle
"""


@click.command("init")
@click.option(
    "--workflow/--no-workflow",
    default=None,
    help="Generate .github/workflows/aiwa-compliance.yml. Prompts when omitted.",
)
def init_cmd(workflow: bool | None):
    """Set up aiwa-compliance in the current repository.

    Writes the built-in defaults to .github/aiwa-compliance.yml so they can
    be tuned per repository, and optionally adds a GitHub Actions workflow
    that runs the pull request checks.
    """
    console.print("\n[bold cyan]aiwa-compliance init[/bold cyan] — repository setup\n")

    if workflow is None:
        workflow = click.confirm("Generate .github/workflows/aiwa-compliance.yml for GitHub Actions?", default=True)

    overrides: dict = {}
    if workflow:
        # Comments posted with the workflow's GITHUB_TOKEN are authored by the Actions bot.
        overrides["botLogin"] = ACTIONS_BOT_LOGIN

    path = _write_config(overrides)
    console.print(f"[green]Wrote {path}[/green]")

    if workflow:
        workflow_path = _write_workflow()
        console.print(f"[green]Created {workflow_path}[/green]")

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print(
        "Try it on an open pull request with: "
        "[bold]aiwa-compliance check --repo <owner/name> --pr <number>[/bold]"
    )


def _write_config(overrides: dict) -> Path:
    """Write the configuration file; values already present in it win over defaults."""
    path = Path(REPO_CONFIG_PATH)
    existing: dict = {}
    if path.exists():
        try:
            existing = parse_config_text(path.read_text(encoding="utf-8"), str(path))
        except ConfigurationError as e:
            raise click.UsageError(f"Cannot update {e.field}: {e.detail}")
    merged = {**DEFAULTS.to_dict(), **overrides, **existing}
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.safe_dump(merged, default_flow_style=False, sort_keys=False, allow_unicode=True),
        encoding="utf-8",
    )
    return path


def _get_version() -> str:
    """Read the installed aiwa-compliancebot version from package metadata."""
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("aiwa-compliancebot")
    except PackageNotFoundError:
        logger.debug("Package metadata unavailable; pinning workflow to 0.1.0")
        return "0.1.0"


def _write_workflow() -> Path:
    workflow_dir = Path(".github/workflows")
    workflow_dir.mkdir(parents=True, exist_ok=True)
    workflow_path = workflow_dir / "aiwa-compliance.yml"
    workflow_path.write_text(_WORKFLOW_TEMPLATE.format(version=_get_version()), encoding="utf-8")
    return workflow_path
