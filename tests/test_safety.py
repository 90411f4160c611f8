import pytest

from cogs.chatgpt.safety import (
    BAD_WORDS_MESSAGE,
    TOO_LONG_MESSAGE,
    SafetyFilter,
    compile_denylist,
)


@pytest.fixture
def safety():
    return SafetyFilter()


@pytest.mark.parametrize("text", ["Nice COCK joke", "what a Pussy", "cunt.", "semen"])
def test_denied_terms_are_blocked(safety, text):
    assert safety.validate(text) == BAD_WORDS_MESSAGE


@pytest.mark.parametrize("text", ["Try a cocktail", "scum of the earth", "cucumber salad", "Shakespeare"])
def test_terms_inside_words_are_allowed(safety, text):
    assert safety.validate(text) == text


def test_denylist_takes_precedence_over_length(safety):
    text = "cock " + "a" * 2500
    assert safety.validate(text) == BAD_WORDS_MESSAGE


def test_length_boundary(safety):
    exact = "a" * 2000
    assert safety.validate(exact) == exact
    assert safety.validate("a" * 2001) == TOO_LONG_MESSAGE


def test_custom_denylist_supports_wildcards():
    safety = SafetyFilter(denylist=["b.d"])
    assert safety.contains_disallowed("that is B4D")
    assert safety.contains_disallowed("b@d!")
    assert not safety.contains_disallowed("b4dly written")
    assert not safety.contains_disallowed("cock")


def test_compiled_pattern_is_case_insensitive():
    pattern = compile_denylist(["spam"])
    assert pattern.search("SPAM and eggs")
    assert not pattern.search("spammer")
