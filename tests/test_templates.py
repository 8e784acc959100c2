"""Tests for the workflow template library and LCS matching."""

import pytest
from pydantic import ValidationError

from flowmap.templates import (
    TEMPLATE_LIBRARY,
    WorkflowTemplate,
    compatibility,
    coverage,
    get_template,
    lcs_length,
    match_templates,
    top_matches,
)
from flowmap.types import Complexity, Phase

S, D, P, I = Phase.SHOW, Phase.DO, Phase.PROCESS, Phase.IDLE


class TestLCS:
    def test_classic_example(self):
        assert lcs_length("ABCBDAB", "BDCABA") == 4

    def test_empty(self):
        assert lcs_length([], [S, D]) == 0
        assert compatibility([], []) == 0.0

    def test_identical_is_one(self):
        seq = [S, D, P, S]
        assert compatibility(seq, list(seq)) == 1.0

    def test_disjoint_is_zero(self):
        assert compatibility([S, D], [P, I, P]) == 0.0

    def test_divides_by_longer_sequence(self):
        # LCS of (S, D, P, S) and (S, D) is 2; longer length is 4
        assert compatibility([S, D, P, S], [S, D]) == pytest.approx(0.5)
        assert compatibility([S, D], [S, D, P, S]) == pytest.approx(0.5)


class TestCoverage:
    def test_keywords_match_as_substrings(self):
        chat = get_template("chat")
        cov, missing = coverage(chat, ["send_message", "Back"])
        assert cov == pytest.approx(0.5)
        assert missing == ["chat", "reply"]

    def test_case_insensitive(self):
        auth = get_template("authentication")
        cov, missing = coverage(auth, ["LOGIN_button", "Logout", "Signup", "reset_password"])
        assert cov == 1.0
        assert missing == []


class TestMatching:
    def test_exact_sequence_is_top_match(self):
        matches = match_templates([S, D, P, S], ["send", "message"])
        assert matches[0].name == "chat"
        assert matches[0].compatibility == 1.0
        assert matches[0].matched

    def test_low_compatibility_is_not_matched(self):
        matches = {m.name: m for m in match_templates([P], [])}
        # 1 / 8 for the onboarding wizard
        assert matches["onboarding"].compatibility == pytest.approx(0.125)
        assert not matches["onboarding"].matched
        assert top_matches(matches.values()) == []

    def test_recommendation_for_high_compat_low_coverage(self):
        matches = {m.name: m for m in match_templates([S, D, P, S], ["open"])}
        chat = matches["chat"]
        assert chat.recommendation is not None
        assert "chat" in chat.recommendation
        assert "send" in chat.recommendation

    def test_no_recommendation_when_covered(self):
        matches = {m.name: m for m in match_templates([S, D, P, S], ["send_message", "reply"])}
        assert matches["chat"].recommendation is None

    def test_top_matches_limit(self):
        matches = match_templates([S, D, P, S, D, S], [])
        top = top_matches(matches, n=2)
        assert len(top) == 2
        assert top[0].compatibility >= top[1].compatibility


class TestLibrary:
    def test_library_is_frozen(self):
        chat = get_template("chat")
        with pytest.raises(ValidationError):
            chat.name = "renamed"

    def test_every_template_starts_with_show(self):
        for t in TEMPLATE_LIBRARY:
            assert t.sequence[0] == Phase.SHOW
            assert t.keywords
            assert isinstance(t.complexity, Complexity)

    def test_keywords_are_lowercased(self):
        t = WorkflowTemplate(name="x", sequence=(S,), keywords=["Upload"])
        assert t.keywords == frozenset({"upload"})

    def test_unknown_template(self):
        assert get_template("nope") is None
