"""Compliance data models.

Everything here is a plain value built from a webhook payload or produced by
the evaluator. None of these types talk to GitHub.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

SHORT_SHA_LENGTH = 7


class EventKind(str, Enum):
    """The pull_request actions the bot reacts to."""

    OPENED = "opened"
    REOPENED = "reopened"
    SYNCHRONIZE = "synchronize"
    EDITED = "edited"

    @classmethod
    def from_action(cls, action: str | None) -> EventKind | None:
        """Return the kind for a payload ``action`` or None for actions the bot ignores."""
        try:
            return cls(action)
        except ValueError:
            return None


class RuleId(str, Enum):
    BRANCH_NAMING = "BranchNaming"
    COMMIT_MESSAGE = "CommitMessage"
    TITLE_TOO_SHORT = "TitleTooShort"
    BODY_TOO_SHORT = "BodyTooShort"


class FileProbe(Enum):
    """Outcome of checking whether a path exists on a repository's default branch."""

    FOUND = "found"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class PullRequestSnapshot:
    repo_full_name: str
    number: int
    branch_name: str
    title: str
    body: str
    kind: EventKind

    @classmethod
    def from_payload(cls, payload: dict, kind: EventKind) -> PullRequestSnapshot:
        """Build a snapshot from a ``pull_request`` webhook payload.

        A null body is stored as an empty string so length checks never see None.
        """
        pr = payload["pull_request"]
        return cls(
            repo_full_name=payload["repository"]["full_name"],
            number=pr["number"],
            branch_name=pr["head"]["ref"],
            title=pr.get("title") or "",
            body=pr.get("body") or "",
            kind=kind,
        )


@dataclass(frozen=True)
class CommitRecord:
    sha: str
    first_line: str

    @classmethod
    def from_message(cls, sha: str, message: str | None) -> CommitRecord:
        return cls(sha=sha, first_line=(message or "").split("\n", 1)[0])

    @property
    def short_sha(self) -> str:
        return self.sha[:SHORT_SHA_LENGTH]


@dataclass(frozen=True)
class Violation:
    """A single rule failure and the comment body that reports it.

    ``dedupe_marker`` is set only for rules whose notice is suppressed when
    an earlier bot comment already carries it. ``commit_refs`` lists the
    short SHAs aggregated into a CommitMessage notice.
    """

    rule: RuleId
    message: str
    dedupe_marker: str | None = None
    commit_refs: tuple[str, ...] = ()
