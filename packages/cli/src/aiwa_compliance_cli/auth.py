"""GitHub credentials for the commands that talk to the API.

The token comes from the first source that has one:
  GITHUB_TOKEN   exported by GitHub Actions for the workflow run
  GH_TOKEN       the variable the gh CLI and most CI runners honour
  gh auth token  a local GitHub CLI session
"""

from __future__ import annotations

import logging
import os
import subprocess

import click
from github import Github

from aiwa_compliance_core.gh.client import get_client

logger = logging.getLogger(__name__)

TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN")


def _gh_session_token() -> str | None:
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
            check=True,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired, subprocess.CalledProcessError) as e:
        logger.debug("No token from the gh CLI: %s", e)
        return None
    return result.stdout.strip() or None


def resolve_github_token() -> str | None:
    """Return a GitHub token, or None when no source provides one."""
    for var in TOKEN_ENV_VARS:
        token = os.environ.get(var, "").strip()
        if token:
            logger.debug("Using GitHub token from $%s", var)
            return token

    token = _gh_session_token()
    if token:
        logger.debug("Using GitHub token from the gh CLI session")
    return token


def github_client() -> Github:
    """Build the authenticated client shared by `handle` and `check`.

    Raises click.UsageError when no token can be found.
    """
    token = resolve_github_token()
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN or GH_TOKEN, or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )
    return get_client(token)
