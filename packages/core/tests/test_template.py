"""Tests for %TOKEN% placeholder rendering."""

from aiwa_compliance_core.utils.template import render


def test_replaces_single_placeholder():
    assert render("Branch `%BRANCH_NAME%` is wrong", {"BRANCH_NAME": "feature-x"}) == "Branch `feature-x` is wrong"


def test_replaces_every_occurrence():
    assert render("%A% and %A%", {"A": "x"}) == "x and x"


def test_non_string_values_are_stringified():
    assert render("min %MIN_LENGTH% characters", {"MIN_LENGTH": 10}) == "min 10 characters"


def test_unknown_placeholder_left_untouched():
    assert render("%MISSING% stays", {"OTHER": "v"}) == "%MISSING% stays"


def test_substituted_value_is_not_rescanned():
    values = {"COMMIT_MESSAGE": "wip %COMMIT_SHA%", "COMMIT_SHA": "abc1234"}
    result = render("`%COMMIT_MESSAGE%` (%COMMIT_SHA%)", values)
    assert result == "`wip %COMMIT_SHA%` (abc1234)"


def test_template_without_placeholders_unchanged():
    assert render("plain text", {"A": "x"}) == "plain text"
