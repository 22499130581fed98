"""Tests for compliance rule evaluation."""

import pytest

from aiwa_compliance_core.config import DEFAULTS, ConfigurationError, resolve_config
from aiwa_compliance_core.evaluator import (
    BODY_MARKER,
    COMMIT_HEADER,
    COMMIT_TRAILER,
    TITLE_MARKER,
    evaluate,
    has_prior_notice,
    needs_comment_history,
    text_length,
)
from aiwa_compliance_core.models import CommitRecord, EventKind, PullRequestSnapshot, RuleId

GOOD_BRANCH = "aiwa/feat/login"
GOOD_TITLE = "Add login form validation"
GOOD_BODY = "This adds validation to the login form and covers it with tests."


def make_snapshot(kind=EventKind.OPENED, branch=GOOD_BRANCH, title=GOOD_TITLE, body=GOOD_BODY):
    return PullRequestSnapshot(
        repo_full_name="aiwa/app",
        number=7,
        branch_name=branch,
        title=title,
        body=body,
        kind=kind,
    )


def commit(message, sha="0123456789abcdef0123456789abcdef01234567"):
    return CommitRecord.from_message(sha, message)


def rules(violations):
    return [v.rule for v in violations]


# ---------------------------------------------------------------------------
# Branch naming
# ---------------------------------------------------------------------------


class TestBranchNaming:
    @pytest.mark.parametrize("branch", ["aiwa/feat/login", "aiwa/login", "aiwa/fix-123/sub/task"])
    def test_compliant_branch_has_no_violation(self, branch):
        assert evaluate(make_snapshot(branch=branch), [], DEFAULTS) == []

    @pytest.mark.parametrize("branch", ["feature-x", "main", "aiwa/", "AIWA/feat", "aiwa/Feat"])
    def test_non_compliant_branch_reported(self, branch):
        violations = evaluate(make_snapshot(branch=branch), [], DEFAULTS)
        assert rules(violations) == [RuleId.BRANCH_NAMING]

    def test_branch_name_substituted_verbatim(self):
        (violation,) = evaluate(make_snapshot(branch="feature-x"), [], DEFAULTS)
        assert "`feature-x`" in violation.message
        assert "%BRANCH_NAME%" not in violation.message
        assert violation.dedupe_marker is None

    @pytest.mark.parametrize("kind", list(EventKind))
    def test_checked_on_every_event_kind(self, kind):
        violations = evaluate(make_snapshot(kind=kind, branch="feature-x"), [], DEFAULTS)
        assert RuleId.BRANCH_NAMING in rules(violations)

    def test_repeated_synchronize_reports_again(self):
        """A non-compliant branch is reported on every sync; there is no dedup for this rule."""
        snapshot = make_snapshot(kind=EventKind.SYNCHRONIZE, branch="feature-x")
        first = evaluate(snapshot, [], DEFAULTS)
        second = evaluate(snapshot, [], DEFAULTS, existing_bot_comments=[first[0].message])
        assert rules(second) == [RuleId.BRANCH_NAMING]

    def test_custom_pattern_and_message(self):
        config = resolve_config(
            DEFAULTS, {"branchPattern": "^team/", "branchPatternMessage": "Rename %BRANCH_NAME% please"}
        )
        assert evaluate(make_snapshot(branch="team/x"), [], config) == []
        (violation,) = evaluate(make_snapshot(branch="aiwa/x"), [], config)
        assert violation.message == "Rename aiwa/x please"


# ---------------------------------------------------------------------------
# Commit messages
# ---------------------------------------------------------------------------


class TestCommitMessages:
    def test_all_compliant_commits_no_violation(self):
        commits = [commit("feat: add login"), commit("fix(auth): handle expired tokens")]
        assert evaluate(make_snapshot(), commits, DEFAULTS) == []

    def test_single_combined_violation_for_many_bad_commits(self):
        commits = [
            commit("wip", sha="a" * 40),
            commit("feat: fine", sha="b" * 40),
            commit("Update README.md", sha="c" * 40),
        ]
        violations = evaluate(make_snapshot(), commits, DEFAULTS)
        assert rules(violations) == [RuleId.COMMIT_MESSAGE]
        message = violations[0].message
        assert message.startswith(COMMIT_HEADER + "\n\n")
        assert message.endswith("\n\n" + COMMIT_TRAILER)
        bullets = [line for line in message.splitlines() if line.startswith("- ")]
        assert len(bullets) == 2
        assert "`wip`" in bullets[0] and "`aaaaaaa`" in bullets[0]
        assert "`Update README.md`" in bullets[1] and "`ccccccc`" in bullets[1]
        assert violations[0].commit_refs == ("aaaaaaa", "ccccccc")

    def test_sha_truncated_to_seven_characters(self):
        (violation,) = evaluate(make_snapshot(), [commit("oops", sha="1234567890" * 4)], DEFAULTS)
        assert "`1234567`" in violation.message
        assert "12345678" not in violation.message

    def test_only_first_line_is_checked(self):
        commits = [commit("feat: add login\n\nwip body that would not match")]
        assert evaluate(make_snapshot(), commits, DEFAULTS) == []

    def test_bad_first_line_with_good_body_still_reported(self):
        (violation,) = evaluate(make_snapshot(), [commit("wip\n\nfeat: real description")], DEFAULTS)
        assert "`wip`" in violation.message
        assert "real description" not in violation.message

    @pytest.mark.parametrize("kind", [EventKind.OPENED, EventKind.SYNCHRONIZE])
    def test_checked_on_opened_and_synchronize(self, kind):
        violations = evaluate(make_snapshot(kind=kind), [commit("wip")], DEFAULTS)
        assert rules(violations) == [RuleId.COMMIT_MESSAGE]

    @pytest.mark.parametrize("kind", [EventKind.REOPENED, EventKind.EDITED])
    def test_skipped_on_reopened_and_edited(self, kind):
        assert evaluate(make_snapshot(kind=kind), [commit("wip")], DEFAULTS) == []

    def test_no_commits_no_violation(self):
        assert evaluate(make_snapshot(kind=EventKind.SYNCHRONIZE), [], DEFAULTS) == []


# ---------------------------------------------------------------------------
# Title and body length
# ---------------------------------------------------------------------------


class TestTitleLength:
    def test_short_title_on_opened(self):
        (violation,) = evaluate(make_snapshot(title="Fix bug"), [], DEFAULTS)
        assert violation.rule is RuleId.TITLE_TOO_SHORT
        assert "(min 10 characters)" in violation.message
        assert "%MIN_LENGTH%" not in violation.message
        assert violation.dedupe_marker == TITLE_MARKER
        assert TITLE_MARKER in violation.message

    def test_title_at_minimum_is_fine(self):
        assert evaluate(make_snapshot(title="x" * 10), [], DEFAULTS) == []

    def test_emoji_counts_as_two_characters(self):
        # "\U0001f680 Add foo" is nine code points but ten UTF-16 units.
        assert evaluate(make_snapshot(title="\U0001f680 Add foo"), [], DEFAULTS) == []
        assert rules(evaluate(make_snapshot(title="\U0001f680 Add fo"), [], DEFAULTS)) == [RuleId.TITLE_TOO_SHORT]

    def test_opened_suppressed_when_prior_notice_exists(self):
        prior = evaluate(make_snapshot(title="Fix bug"), [], DEFAULTS)[0].message
        assert evaluate(make_snapshot(title="Fix bug"), [], DEFAULTS, [prior]) == []

    def test_opened_suppressed_by_legacy_notice_text(self):
        legacy = "⚠️ Pull Request title is too short. Please provide a more descriptive title (min 10 characters)."
        assert evaluate(make_snapshot(title="Fix bug"), [], DEFAULTS, [legacy]) == []

    def test_edited_reports_even_with_prior_notice(self):
        prior = evaluate(make_snapshot(title="Fix bug"), [], DEFAULTS)[0].message
        violations = evaluate(make_snapshot(kind=EventKind.EDITED, title="Fix bug"), [], DEFAULTS, [prior])
        assert rules(violations) == [RuleId.TITLE_TOO_SHORT]

    @pytest.mark.parametrize("kind", [EventKind.SYNCHRONIZE, EventKind.REOPENED])
    def test_not_evaluated_outside_opened_and_edited(self, kind):
        assert evaluate(make_snapshot(kind=kind, title="x", body=""), [], DEFAULTS) == []

    def test_zero_minimum_never_reports(self):
        config = resolve_config(DEFAULTS, {"prTitleMinLength": 0})
        assert evaluate(make_snapshot(title=""), [], config) == []


class TestBodyLength:
    def test_empty_body_reported_on_opened(self):
        snapshot = PullRequestSnapshot.from_payload(
            {
                "repository": {"full_name": "aiwa/app"},
                "pull_request": {"number": 1, "head": {"ref": GOOD_BRANCH}, "title": GOOD_TITLE, "body": None},
            },
            EventKind.OPENED,
        )
        (violation,) = evaluate(snapshot, [], DEFAULTS)
        assert violation.rule is RuleId.BODY_TOO_SHORT
        assert "(min 20 characters)" in violation.message
        assert violation.dedupe_marker == BODY_MARKER

    def test_title_notice_does_not_suppress_body_notice(self):
        title_notice = evaluate(make_snapshot(title="Fix bug"), [], DEFAULTS)[0].message
        violations = evaluate(make_snapshot(title="Fix bug", body="short"), [], DEFAULTS, [title_notice])
        assert rules(violations) == [RuleId.BODY_TOO_SHORT]

    def test_edited_reports_even_with_prior_notice(self):
        prior = evaluate(make_snapshot(body="short"), [], DEFAULTS)[0].message
        violations = evaluate(make_snapshot(kind=EventKind.EDITED, body="short"), [], DEFAULTS, [prior])
        assert rules(violations) == [RuleId.BODY_TOO_SHORT]


# ---------------------------------------------------------------------------
# Whole-evaluation behaviour
# ---------------------------------------------------------------------------


def test_violation_order_is_branch_commit_title_body():
    snapshot = make_snapshot(branch="feature-x", title="Fix", body="")
    violations = evaluate(snapshot, [commit("wip")], DEFAULTS)
    assert rules(violations) == [
        RuleId.BRANCH_NAMING,
        RuleId.COMMIT_MESSAGE,
        RuleId.TITLE_TOO_SHORT,
        RuleId.BODY_TOO_SHORT,
    ]


def test_same_input_gives_same_result():
    snapshot = make_snapshot(branch="feature-x", title="Fix", body="")
    commits = [commit("wip")]
    assert evaluate(snapshot, commits, DEFAULTS) == evaluate(snapshot, commits, DEFAULTS)


@pytest.mark.parametrize("key", ["branchPattern", "commitMessagePattern"])
def test_invalid_pattern_raises_configuration_error(key):
    config = resolve_config(DEFAULTS, {key: "(unclosed"})
    with pytest.raises(ConfigurationError) as exc:
        evaluate(make_snapshot(kind=EventKind.REOPENED), [], config)
    assert exc.value.field == key


def test_javascript_named_group_is_rejected():
    config = resolve_config(DEFAULTS, {"branchPattern": r"^aiwa/(?<topic>[a-z]+)$"})
    with pytest.raises(ConfigurationError) as exc:
        evaluate(make_snapshot(branch="aiwa/login"), [], config)
    assert exc.value.field == "branchPattern"


def test_python_named_group_is_accepted():
    config = resolve_config(DEFAULTS, {"branchPattern": r"^aiwa/(?P<topic>[a-z]+)$"})
    assert evaluate(make_snapshot(branch="aiwa/login"), [], config) == []


class TestNeedsCommentHistory:
    def test_true_for_opened_with_short_title(self):
        assert needs_comment_history(make_snapshot(title="Fix"), DEFAULTS) is True

    def test_true_for_opened_with_short_body(self):
        assert needs_comment_history(make_snapshot(body=""), DEFAULTS) is True

    def test_false_when_lengths_are_fine(self):
        assert needs_comment_history(make_snapshot(), DEFAULTS) is False

    def test_false_for_emoji_title_at_minimum(self):
        assert needs_comment_history(make_snapshot(title="\U0001f680 Add foo"), DEFAULTS) is False

    @pytest.mark.parametrize("kind", [EventKind.EDITED, EventKind.SYNCHRONIZE, EventKind.REOPENED])
    def test_false_for_other_kinds(self, kind):
        assert needs_comment_history(make_snapshot(kind=kind, title="Fix", body=""), DEFAULTS) is False


def test_has_prior_notice_handles_empty_bodies():
    assert has_prior_notice(["", None, "unrelated"], TITLE_MARKER) is False


@pytest.mark.parametrize(
    "text, expected",
    [("", 0), ("abc", 3), ("é", 1), ("\U0001f680", 2), ("\U0001f680 Add foo", 10)],
)
def test_text_length_counts_utf16_units(text, expected):
    assert text_length(text) == expected
