"""CLI entry point for aiwa-compliance.

Commands:
  handle  — process one delivered webhook event (Actions event file or saved delivery)
  check   — evaluate an existing pull request and print the violations, never posting
  init    — write the repository configuration file and an optional Actions workflow
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from aiwa_compliance_cli.commands.check import check_cmd
from aiwa_compliance_cli.commands.handle import handle_cmd
from aiwa_compliance_cli.commands.init import init_cmd


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("aiwa-compliancebot"),
    prog_name="aiwa-compliance",
)
@click.option(
    "--config",
    "config_path",
    default="aiwa-compliance.yml",
    show_default=True,
    help="Path to a local configuration file merged over the built-in defaults.",
    envvar="AIWA_COMPLIANCE_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output, including every action taken.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Enforce branch, commit and pull request conventions on GitHub repositories."""
    from aiwa_compliance_core.config import ConfigurationError, load_config

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        raise click.UsageError(f"Invalid configuration in {e.field}: {e.detail}")

    ctx.obj["config"] = config


main.add_command(handle_cmd)
main.add_command(check_cmd)
main.add_command(init_cmd)
