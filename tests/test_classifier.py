import pytest

from focusmate.classifier import classify
from focusmate.rules import LetterGroup, RuleConfiguration

DEFAULT_GROUPS = RuleConfiguration.default().letter_groups


def _groups(**members):
    return {
        key: LetterGroup(key=key, members=frozenset(chars), color_key="soft-blue")
        for key, chars in members.items()
    }


def test_first_active_group_wins():
    groups = _groups(G1="bd", G2="bp")

    assert classify("b", groups, ["G2", "G1"], False).tag == "group:G2"
    assert classify("b", groups, ["G1", "G2"], False).tag == "group:G1"


def test_inactive_groups_are_not_considered():
    groups = _groups(G1="bd", G2="bp")

    assert classify("p", groups, ["G1"], False).tag == "none"


def test_unknown_keys_in_activation_order_are_skipped():
    tag = classify("d", DEFAULT_GROUPS, ["missing", "mirror_letters1"], False).tag

    assert tag == "group:mirror_letters1"


def test_group_match_takes_precedence_over_vowel():
    # "o" is both a vowel and a member of similar_shapes2.
    assert classify("o", DEFAULT_GROUPS, ["similar_shapes2"], True).tag == "group:similar_shapes2"
    assert classify("o", DEFAULT_GROUPS, [], True).tag == "vowel"


@pytest.mark.parametrize("char, expected", [("a", "vowel"), ("E", "vowel"), ("x", "none"), ("y", "none")])
def test_vowel_coloring(char, expected):
    assert classify(char, DEFAULT_GROUPS, [], True).tag == expected


def test_vowels_are_plain_when_coloring_is_off():
    assert classify("a", DEFAULT_GROUPS, [], False).tag == "none"


def test_comparison_is_case_insensitive():
    assert classify("B", DEFAULT_GROUPS, ["mirror_letters1"], False).tag == "group:mirror_letters1"


def test_only_ascii_is_lower_cased():
    assert classify("É", DEFAULT_GROUPS, [], True).tag == "none"


def test_digit_groups_are_supported():
    assert classify("6", DEFAULT_GROUPS, ["similar_numbers"], False).tag == "group:similar_numbers"
    assert classify("7", DEFAULT_GROUPS, ["similar_numbers"], False).tag == "none"


def test_classification_is_repeatable():
    order = ["mirror_letters1", "similar_shapes3", "thin_vertical2"]
    for char in "The quick brown fox, 69 bd!":
        first = classify(char, DEFAULT_GROUPS, order, True)
        assert classify(char, DEFAULT_GROUPS, order, True) == first
