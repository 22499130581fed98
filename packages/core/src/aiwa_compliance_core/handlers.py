"""Webhook event handlers.

Each handler turns one delivered payload into GitHub actions. Every write is
guarded on its own: a failed comment, file or issue is logged and recorded in
the returned EventOutcome, and the remaining actions still run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from github import Github, GithubException, UnknownObjectException
from rich.console import Console

from aiwa_compliance_core.config import REPO_CONFIG_PATH, ComplianceConfig, ConfigurationError, resolve_config
from aiwa_compliance_core.evaluator import COMMIT_RULE_KINDS, evaluate, needs_comment_history, text_length
from aiwa_compliance_core.gh.client import (
    create_file,
    create_issue,
    fetch_repo_overrides,
    get_pull,
    get_repo,
    list_bot_comments,
    list_commits,
    post_comment,
    probe_file,
)
from aiwa_compliance_core.models import EventKind, FileProbe, PullRequestSnapshot, RuleId, Violation

console = Console()
logger = logging.getLogger(__name__)

ORG_CONFIG_REPO = ".github"

_VIOLATION_LOG = {
    RuleId.BRANCH_NAMING: "Branch naming violation in %s#%d: %s",
    RuleId.COMMIT_MESSAGE: "Commit message violations in %s#%d: %s",
    RuleId.TITLE_TOO_SHORT: "PR title too short in %s#%d: %r",
    RuleId.BODY_TOO_SHORT: "PR body too short in %s#%d: %d character(s)",
}


@dataclass
class EventOutcome:
    """What one event led to: violations found and actions performed or failed.

    In shadow mode ``performed`` lists the actions that would have been taken.
    """

    event: str
    repo: str | None = None
    violations: list[Violation] = field(default_factory=list)
    performed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    config_error: str | None = None
    shadow: bool = False


def _attempt(outcome: EventOutcome, description: str, action: Callable, *args) -> bool:
    """Run one write action, recording success or failure without raising."""
    if outcome.shadow:
        console.print(f"[dim]Shadow mode: would {description}[/dim]")
        outcome.performed.append(description)
        return True
    try:
        action(*args)
    except Exception as e:
        logger.error("Failed to %s: %s", description, e)
        outcome.failed.append(f"{description}: {e}")
        return False
    logger.info("Done: %s", description)
    outcome.performed.append(description)
    return True


def resolve_repo_config(gh: Github, repo, base: ComplianceConfig) -> ComplianceConfig:
    """Return ``base`` merged with the repository's own configuration file.

    When the repository has no file, the owner's ``.github`` repository is
    consulted as an organisation-wide fallback. Fetch errors other than a
    404 are reported as ConfigurationError.
    """
    try:
        overrides = fetch_repo_overrides(repo)
        if not overrides and repo.name != ORG_CONFIG_REPO:
            try:
                org_repo = get_repo(gh, f"{repo.owner.login}/{ORG_CONFIG_REPO}")
            except UnknownObjectException:
                org_repo = None
            if org_repo is not None:
                overrides = fetch_repo_overrides(org_repo)
    except GithubException as e:
        raise ConfigurationError(REPO_CONFIG_PATH, f"could not be fetched from {repo.full_name}: {e}") from e
    return resolve_config(base, overrides)


def _log_violation(snapshot: PullRequestSnapshot, violation: Violation) -> None:
    if violation.rule is RuleId.BRANCH_NAMING:
        detail: object = snapshot.branch_name
    elif violation.rule is RuleId.COMMIT_MESSAGE:
        detail = ", ".join(violation.commit_refs)
    elif violation.rule is RuleId.TITLE_TOO_SHORT:
        detail = snapshot.title
    else:
        detail = text_length(snapshot.body)
    logger.warning(_VIOLATION_LOG[violation.rule], snapshot.repo_full_name, snapshot.number, detail)


def handle_pull_request(gh: Github, payload: dict, base: ComplianceConfig, shadow: bool = False) -> EventOutcome:
    action = payload.get("action")
    outcome = EventOutcome(event=f"pull_request.{action}", shadow=shadow)
    kind = EventKind.from_action(action)
    if kind is None:
        logger.debug("Ignoring pull_request action %r", action)
        return outcome

    snapshot = PullRequestSnapshot.from_payload(payload, kind)
    outcome.repo = snapshot.repo_full_name
    repo = get_repo(gh, snapshot.repo_full_name)
    config = resolve_repo_config(gh, repo, base)

    commits = []
    if kind in COMMIT_RULE_KINDS:
        try:
            commits = list_commits(get_pull(repo, snapshot.number))
        except Exception as e:
            logger.error("Failed to check commit messages in %s#%d: %s", snapshot.repo_full_name, snapshot.number, e)
            outcome.failed.append(f"list commits: {e}")

    existing: list[str] = []
    history_ok = True
    if needs_comment_history(snapshot, config):
        try:
            existing = list_bot_comments(repo, snapshot.number, config.bot_login)
        except Exception as e:
            logger.error("Failed to list comments on %s#%d: %s", snapshot.repo_full_name, snapshot.number, e)
            outcome.failed.append(f"list comments: {e}")
            history_ok = False

    violations = evaluate(snapshot, commits, config, existing)
    if not history_ok:
        # Without the comment history the duplicate check cannot run.
        violations = [v for v in violations if v.dedupe_marker is None]
    outcome.violations = violations

    for violation in violations:
        _log_violation(snapshot, violation)
        _attempt(
            outcome,
            f"comment on {violation.rule.value} violation in {snapshot.repo_full_name}#{snapshot.number}",
            post_comment,
            repo,
            snapshot.number,
            violation.message,
        )
    return outcome


def _ensure_file(repo, path: str, content: str, config: ComplianceConfig, outcome: EventOutcome) -> None:
    try:
        probe = probe_file(repo, path)
    except Exception as e:
        logger.error("Failed to ensure/create file %s in %s: %s", path, repo.full_name, e)
        outcome.failed.append(f"check {path}: {e}")
        return

    if probe is FileProbe.FOUND:
        logger.info("File %s already exists in %s.", path, repo.full_name)
        outcome.skipped.append(path)
        return

    _attempt(
        outcome,
        f"create {path} in {repo.full_name}",
        create_file,
        repo,
        path,
        content,
        f"docs: Add initial {path}",
        config.committer_name,
        config.committer_email,
    )


def handle_repository(gh: Github, payload: dict, base: ComplianceConfig, shadow: bool = False) -> EventOutcome:
    action = payload.get("action")
    full_name = payload["repository"]["full_name"]
    outcome = EventOutcome(event=f"repository.{action}", repo=full_name, shadow=shadow)
    if action != "created":
        logger.debug("Ignoring repository action %r", action)
        return outcome

    logger.info("Repository created: %s", full_name)
    repo = get_repo(gh, full_name)
    config = resolve_repo_config(gh, repo, base)

    for path, content in config.ensure_files.items():
        _ensure_file(repo, path, content, config, outcome)

    _attempt(
        outcome,
        f"create setup checklist issue in {full_name}",
        create_issue,
        repo,
        config.new_repo_issue_title,
        config.new_repo_issue_body,
    )
    return outcome


def handle_installation_repositories(
    gh: Github, payload: dict, base: ComplianceConfig, shadow: bool = False
) -> EventOutcome:
    action = payload.get("action")
    outcome = EventOutcome(event=f"installation_repositories.{action}", shadow=shadow)
    if action != "added":
        logger.debug("Ignoring installation_repositories action %r", action)
        return outcome

    account = payload.get("installation", {}).get("account", {}).get("login")
    logger.info("App installed on new repositories for %s", account)

    for added in payload.get("repositories_added") or []:
        full_name = added["full_name"]
        logger.info("New repo added to installation: %s", full_name)
        try:
            repo = get_repo(gh, full_name)
            config = resolve_repo_config(gh, repo, base)
        except (ConfigurationError, GithubException) as e:
            logger.error("Failed to create setup issue in %s: %s", full_name, e)
            outcome.failed.append(f"set up {full_name}: {e}")
            continue
        _attempt(
            outcome,
            f"create setup checklist issue in {full_name}",
            create_issue,
            repo,
            config.new_repo_issue_title,
            config.new_repo_issue_body,
        )
    return outcome


def handle_installation(gh: Github, payload: dict, base: ComplianceConfig, shadow: bool = False) -> EventOutcome:
    installation = payload.get("installation", {})
    account = installation.get("account", {}).get("login")
    logger.info("App installed by %s on %s %s", account, installation.get("target_type"), account)
    return EventOutcome(event=f"installation.{payload.get('action')}", shadow=shadow)


_HANDLERS: dict[str, Callable[..., EventOutcome]] = {
    "installation": handle_installation,
    "installation_repositories": handle_installation_repositories,
    "pull_request": handle_pull_request,
    "repository": handle_repository,
}

SUPPORTED_EVENTS = tuple(_HANDLERS)


def dispatch(event_name: str, payload: dict, gh: Github, base: ComplianceConfig, shadow: bool = False) -> EventOutcome:
    """Route a delivered event to its handler.

    A ConfigurationError aborts only this event: it is logged with the
    offending field and returned in ``EventOutcome.config_error``.
    """
    handler = _HANDLERS.get(event_name)
    if handler is None:
        logger.info("Ignoring unsupported event %r", event_name)
        return EventOutcome(event=event_name, shadow=shadow)

    try:
        return handler(gh, payload, base, shadow)
    except ConfigurationError as e:
        repo = (payload.get("repository") or {}).get("full_name")
        logger.error("Configuration error for %s (%s): %s", repo or event_name, e.field, e.detail)
        return EventOutcome(
            event=f"{event_name}.{payload.get('action')}",
            repo=repo,
            config_error=str(e),
            shadow=shadow,
        )
