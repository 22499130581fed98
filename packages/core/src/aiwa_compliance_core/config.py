from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "aiwa-compliance.yml"
REPO_CONFIG_PATH = f".github/{CONFIG_FILENAME}"

DEFAULT_CONFIG: dict = {
    # aiwa/feature-name or aiwa/feature-name/sub-task
    "branchPattern": r"^aiwa\/[a-z0-9\-]+(\/.+)?$",
    "branchPatternMessage": (
        "⚠️ Branch name `%BRANCH_NAME%` does not follow AiWA's naming conventions. "
        "Please rename it to match `aiwa/feature-name` or `aiwa/type/feature-name` (e.g., `aiwa/feat/add-login`)."
    ),
    # Conventional Commits
    "commitMessagePattern": r"^(feat|fix|docs|style|refactor|perf|test|chore)(\([a-zA-Z0-9\-]+\))?: .{1,100}",
    "commitMessagePatternMessage": (
        "⚠️ Commit message `%COMMIT_MESSAGE%` (SHA: `%COMMIT_SHA%`) does not follow Conventional Commits format "
        "(e.g., `feat: add new login button`). See https://www.conventionalcommits.org/"
    ),
    "prTitleMinLength": 10,
    "prTitleMinLengthMessage": (
        "⚠️ Pull Request title is too short. Please provide a more descriptive title (min %MIN_LENGTH% characters)."
    ),
    "prBodyMinLength": 20,
    "prBodyMinLengthMessage": (
        "⚠️ Pull Request body is too short. Please provide a more detailed description of the changes "
        "(min %MIN_LENGTH% characters). Consider using a PR template."
    ),
    "ensureFiles": {
        "SECURITY.md": (
            "Please refer to our security policy at [link-to-your-org-security-policy].\n\n"
            "## Reporting a Vulnerability\n\n"
            "Please report suspected security vulnerabilities to `security@example.com` privately. "
            "Please do NOT create a public GitHub issue."
        ),
        "CODE_OF_CONDUCT.md": (
            "# Contributor Covenant Code of Conduct\n\n"
            "(Content from https://www.contributor-covenant.org/version/2/1/code_of_conduct/code_of_conduct.md "
            "or your own CoC)"
        ),
    },
    "newRepoIssueTitle": "🚀 New Repository Setup Checklist",
    "newRepoIssueBody": (
        "Welcome to your new repository! Please complete the following setup tasks:\n"
        "  - [ ] Configure branch protection rules.\n"
        "  - [ ] Add relevant repository topics/tags.\n"
        "  - [ ] Review and customize `SECURITY.md`.\n"
        "  - [ ] Review and customize `CODE_OF_CONDUCT.md`.\n"
        "  - [ ] Setup Dependabot if not already present (`.github/dependabot.yml`).\n"
        "  - [ ] Add a comprehensive `README.md`.\n"
        "  - [ ] Consider adding issue and PR templates (`.github/`)."
    ),
    "botLogin": "aiwa-compliancebot[bot]",
    "committerName": "AiWA ComplianceBot",
    "committerEmail": "bot@aiwa.example.com",
}

# YAML key -> ComplianceConfig attribute
_KEY_TO_ATTR: dict[str, str] = {
    "branchPattern": "branch_pattern",
    "branchPatternMessage": "branch_pattern_message",
    "commitMessagePattern": "commit_message_pattern",
    "commitMessagePatternMessage": "commit_message_pattern_message",
    "prTitleMinLength": "pr_title_min_length",
    "prTitleMinLengthMessage": "pr_title_min_length_message",
    "prBodyMinLength": "pr_body_min_length",
    "prBodyMinLengthMessage": "pr_body_min_length_message",
    "ensureFiles": "ensure_files",
    "newRepoIssueTitle": "new_repo_issue_title",
    "newRepoIssueBody": "new_repo_issue_body",
    "botLogin": "bot_login",
    "committerName": "committer_name",
    "committerEmail": "committer_email",
}
_INT_KEYS = {"prTitleMinLength", "prBodyMinLength"}


class ConfigurationError(Exception):
    """Raised when a configuration value cannot be used.

    ``field`` names the offending key (or the config source for YAML errors)
    so the log line points straight at what needs fixing.
    """

    def __init__(self, field: str, detail: str):
        super().__init__(f"{field}: {detail}")
        self.field = field
        self.detail = detail


@dataclass(frozen=True)
class ComplianceConfig:
    branch_pattern: str
    branch_pattern_message: str
    commit_message_pattern: str
    commit_message_pattern_message: str
    pr_title_min_length: int
    pr_title_min_length_message: str
    pr_body_min_length: int
    pr_body_min_length_message: str
    new_repo_issue_title: str
    new_repo_issue_body: str
    bot_login: str
    committer_name: str
    committer_email: str
    ensure_files: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def to_dict(self) -> dict:
        """Return the configuration keyed by its YAML names."""
        out: dict = {}
        for key, attr in _KEY_TO_ATTR.items():
            value = getattr(self, attr)
            out[key] = dict(value) if key == "ensureFiles" else value
        return out


def _check_value(key: str, value: Any) -> Any:
    if key in _INT_KEYS:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigurationError(key, f"expected a non-negative integer, got {value!r}")
        if value < 0:
            raise ConfigurationError(key, f"must be >= 0, got {value}")
        return value
    if key == "ensureFiles":
        if not isinstance(value, Mapping):
            raise ConfigurationError(key, f"expected a mapping of path to content, got {type(value).__name__}")
        for path, content in value.items():
            if not isinstance(path, str) or not isinstance(content, str):
                raise ConfigurationError(key, f"entry {path!r} must map a path string to content text")
        return MappingProxyType(dict(value))
    if not isinstance(value, str):
        raise ConfigurationError(key, f"expected a string, got {type(value).__name__}")
    return value


def resolve_config(base: ComplianceConfig, overrides: Optional[Mapping] = None) -> ComplianceConfig:
    """Merge ``overrides`` (YAML-keyed) over ``base`` and return a new config.

    Keys that are missing or null keep the base value. ``ensureFiles`` merges
    entry by entry; an entry set to null removes that file from the list.
    """
    if not overrides:
        return base

    changes: dict[str, Any] = {}
    for key, value in overrides.items():
        if key not in _KEY_TO_ATTR:
            logger.debug("Ignoring unknown configuration key %r", key)
            continue
        if value is None:
            continue
        if key == "ensureFiles" and isinstance(value, Mapping):
            merged = dict(base.ensure_files)
            for path, content in value.items():
                if content is None:
                    merged.pop(path, None)
                else:
                    merged[path] = content
            value = merged
        changes[_KEY_TO_ATTR[key]] = _check_value(key, value)

    return replace(base, **changes)


def parse_config_text(text: str, source: str) -> dict:
    """Parse YAML configuration text into a mapping of overrides.

    An empty document yields no overrides. ``source`` is used as the error
    field so broken files are reported by name.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(source, f"invalid YAML: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(source, f"expected a mapping at the top level, got {type(data).__name__}")
    return data


def _build_defaults() -> ComplianceConfig:
    values = {attr: _check_value(key, DEFAULT_CONFIG[key]) for key, attr in _KEY_TO_ATTR.items()}
    return ComplianceConfig(**values)


DEFAULTS = _build_defaults()


def load_config(config_path: str = CONFIG_FILENAME) -> ComplianceConfig:
    """
    Load the process-wide configuration by merging (in order of precedence):
      1. Built-in defaults
      2. The YAML file at ``config_path``, if it exists
    Per-repository overrides are merged on top of this for each event.
    """
    path = Path(config_path)
    if not path.exists():
        return DEFAULTS
    overrides = parse_config_text(path.read_text(encoding="utf-8"), str(path))
    return resolve_config(DEFAULTS, overrides)
