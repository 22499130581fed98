from __future__ import annotations

from itertools import islice

from github import Github, InputGitAuthor, UnknownObjectException

from aiwa_compliance_core.config import REPO_CONFIG_PATH, parse_config_text
from aiwa_compliance_core.models import CommitRecord, FileProbe

# One page of the pull request commits API; longer histories are not inspected.
COMMIT_PAGE_SIZE = 100


def get_client(token: str) -> Github:
    return Github(token, per_page=COMMIT_PAGE_SIZE)


def get_repo(gh: Github, repo_name: str):
    return gh.get_repo(repo_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def list_commits(pr) -> list[CommitRecord]:
    """Return the first page of commits on a pull request, first lines only."""
    return [CommitRecord.from_message(c.sha, c.commit.message) for c in islice(pr.get_commits(), COMMIT_PAGE_SIZE)]


def list_bot_comments(repo, issue_number: int, bot_login: str) -> list[str]:
    """Return the bodies of comments the bot itself left on an issue or pull request."""
    issue = repo.get_issue(issue_number)
    return [c.body or "" for c in issue.get_comments() if c.user is not None and c.user.login == bot_login]


def post_comment(repo, issue_number: int, body: str):
    return repo.get_issue(issue_number).create_comment(body)


def create_issue(repo, title: str, body: str):
    return repo.create_issue(title=title, body=body)


def probe_file(repo, path: str) -> FileProbe:
    """Report whether ``path`` exists on the default branch.

    Only a 404 maps to NOT_FOUND; any other GithubException propagates.
    """
    try:
        repo.get_contents(path)
    except UnknownObjectException:
        return FileProbe.NOT_FOUND
    return FileProbe.FOUND


def create_file(repo, path: str, content: str, message: str, name: str, email: str):
    """Commit a new file; PyGithub base64-encodes ``content`` for the contents API."""
    identity = InputGitAuthor(name, email)
    return repo.create_file(path, message, content, committer=identity, author=identity)


def fetch_repo_overrides(repo, path: str = REPO_CONFIG_PATH) -> dict:
    """Return the per-repository configuration overrides, or {} when the file is absent."""
    try:
        contents = repo.get_contents(path)
    except UnknownObjectException:
        return {}
    text = contents.decoded_content.decode("utf-8", errors="replace")
    return parse_config_text(text, f"{repo.full_name}:{path}")
