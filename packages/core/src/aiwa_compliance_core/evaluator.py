"""Compliance rule evaluation.

``evaluate`` maps one pull request event and its configuration to the list
of violations the bot should report. It performs no I/O: commits and prior
bot comments are fetched by the caller and passed in.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence

from aiwa_compliance_core.config import ComplianceConfig, ConfigurationError
from aiwa_compliance_core.models import CommitRecord, EventKind, PullRequestSnapshot, RuleId, Violation
from aiwa_compliance_core.utils.template import render

logger = logging.getLogger(__name__)

COMMIT_RULE_KINDS = frozenset({EventKind.OPENED, EventKind.SYNCHRONIZE})
LENGTH_RULE_KINDS = frozenset({EventKind.OPENED, EventKind.EDITED})

COMMIT_HEADER = "⚠️ Some commit messages do not follow AiWA's conventions:"
COMMIT_TRAILER = "Please rebase and squash/fixup these commits."

TITLE_MARKER = "<!-- aiwa-compliance: title-too-short -->"
BODY_MARKER = "<!-- aiwa-compliance: body-too-short -->"

# Phrases carried by notices posted before the hidden markers existed.
_LEGACY_PHRASES = {
    TITLE_MARKER: "Pull Request title is too short",
    BODY_MARKER: "Pull Request body is too short",
}


def text_length(text: str) -> int:
    """Length in UTF-16 code units, so a character outside the BMP counts as two."""
    return len(text.encode("utf-16-le")) // 2


def _compile(key: str, pattern: str) -> re.Pattern:
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ConfigurationError(key, f"invalid regular expression {pattern!r}: {e}") from e


def has_prior_notice(existing_bot_comments: Iterable[str], marker: str) -> bool:
    """Return True if any earlier bot comment already carries ``marker``."""
    legacy = _LEGACY_PHRASES.get(marker)
    for body in existing_bot_comments:
        body = body or ""
        if marker in body or (legacy is not None and legacy in body):
            return True
    return False


def _check_branch(snapshot: PullRequestSnapshot, pattern: re.Pattern, config: ComplianceConfig) -> Violation | None:
    if pattern.search(snapshot.branch_name):
        return None
    return Violation(
        rule=RuleId.BRANCH_NAMING,
        message=render(config.branch_pattern_message, {"BRANCH_NAME": snapshot.branch_name}),
    )


def _check_commits(
    commits: Sequence[CommitRecord], pattern: re.Pattern, config: ComplianceConfig
) -> Violation | None:
    offending = [c for c in commits if not pattern.search(c.first_line)]
    if not offending:
        return None

    lines = [COMMIT_HEADER, ""]
    for commit in offending:
        bullet = render(
            config.commit_message_pattern_message,
            {"COMMIT_MESSAGE": commit.first_line, "COMMIT_SHA": commit.short_sha},
        )
        lines.append(f"- {bullet}")
    lines.extend(["", COMMIT_TRAILER])

    return Violation(
        rule=RuleId.COMMIT_MESSAGE,
        message="\n".join(lines),
        commit_refs=tuple(c.short_sha for c in offending),
    )


def _check_length(
    rule: RuleId,
    text: str,
    min_length: int,
    template: str,
    marker: str,
    kind: EventKind,
    existing_bot_comments: Sequence[str],
) -> Violation | None:
    if text_length(text) >= min_length:
        return None
    # An edit always re-posts so the thread reflects the latest state.
    if kind != EventKind.EDITED and has_prior_notice(existing_bot_comments, marker):
        logger.debug("Skipping %s notice: already posted", rule.value)
        return None
    message = render(template, {"MIN_LENGTH": min_length})
    return Violation(rule=rule, message=f"{message}\n{marker}", dedupe_marker=marker)


def needs_comment_history(snapshot: PullRequestSnapshot, config: ComplianceConfig) -> bool:
    """Return True when prior bot comments could change the evaluation result.

    Only an ``opened`` event with a short title or body consults them; every
    other kind either skips the length rules or always re-posts.
    """
    if snapshot.kind != EventKind.OPENED:
        return False
    return (
        text_length(snapshot.title) < config.pr_title_min_length
        or text_length(snapshot.body) < config.pr_body_min_length
    )


def evaluate(
    snapshot: PullRequestSnapshot,
    commits: Sequence[CommitRecord],
    config: ComplianceConfig,
    existing_bot_comments: Sequence[str] = (),
) -> list[Violation]:
    """Run every rule that applies to ``snapshot.kind`` and return the violations found.

    Violations come back in a fixed order: branch, commits, title, body.
    Raises ConfigurationError if either pattern fails to compile; no rule
    result is returned in that case.
    """
    branch_re = _compile("branchPattern", config.branch_pattern)
    commit_re = _compile("commitMessagePattern", config.commit_message_pattern)

    found: list[Violation | None] = [_check_branch(snapshot, branch_re, config)]

    if snapshot.kind in COMMIT_RULE_KINDS:
        found.append(_check_commits(commits, commit_re, config))

    if snapshot.kind in LENGTH_RULE_KINDS:
        found.append(
            _check_length(
                RuleId.TITLE_TOO_SHORT,
                snapshot.title,
                config.pr_title_min_length,
                config.pr_title_min_length_message,
                TITLE_MARKER,
                snapshot.kind,
                existing_bot_comments,
            )
        )
        found.append(
            _check_length(
                RuleId.BODY_TOO_SHORT,
                snapshot.body or "",
                config.pr_body_min_length,
                config.pr_body_min_length_message,
                BODY_MARKER,
                snapshot.kind,
                existing_bot_comments,
            )
        )

    return [v for v in found if v is not None]
