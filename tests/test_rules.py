import json

import pytest

from focusmate.errors import ConfigurationError, ErrorCategory
from focusmate.policy import ErrorPolicy
from focusmate.rules import DEFAULT_RULES, RuleConfiguration, load_rules_file


def _minimal(**overrides):
    data = {
        "letter_groups": {"mirror": ["b", "d"]},
        "highlight_colors": {"mirror": "muted-green"},
        "vowel_color": "soft-blue",
    }
    data.update(overrides)
    return data


def test_default_rules_expose_all_groups():
    config = RuleConfiguration.default()

    assert list(config.letter_groups) == list(DEFAULT_RULES["confusing_letter_groups"])
    assert config.letter_groups["similar_numbers"].members == frozenset({"6", "9"})
    assert config.highlight_colors["mirror_letters1"] == "muted-green"
    assert config.vowel_color == "soft-blue"


def test_documented_shape_is_accepted():
    policy = ErrorPolicy()
    config = RuleConfiguration.from_mapping(_minimal(), policy=policy)

    assert config.letter_groups["mirror"].members == frozenset({"b", "d"})
    assert config.letter_groups["mirror"].color_key == "muted-green"
    assert policy.records == []


def test_group_members_are_lower_cased():
    config = RuleConfiguration.from_mapping(_minimal(letter_groups={"mirror": ["B", "D"]}))

    assert config.letter_groups["mirror"].members == frozenset({"b", "d"})


def test_malformed_groups_are_dropped_and_recorded():
    policy = ErrorPolicy()
    config = RuleConfiguration.from_mapping(
        {"letter_groups": {"good": ["b"], "bad": "bd", "empty": [], "weird": ["bb", 3]}},
        policy=policy,
    )

    assert list(config.letter_groups) == ["good"]
    assert policy.count(ErrorCategory.MALFORMED_CONFIGURATION) == 4
    # "good" has no highlight color and there is no vowel color either.
    assert policy.count(ErrorCategory.MISSING_COLOR_KEY) == 2


def test_partially_valid_group_keeps_usable_members():
    policy = ErrorPolicy()
    config = RuleConfiguration.from_mapping(
        _minimal(letter_groups={"mirror": ["b", "dd", "d"]}), policy=policy
    )

    assert config.letter_groups["mirror"].members == frozenset({"b", "d"})
    assert policy.count(ErrorCategory.MALFORMED_CONFIGURATION) == 1


@pytest.mark.parametrize("key", ["anchor", "Vowel", "has space", "dot.key"])
def test_unusable_group_keys_are_rejected(key):
    policy = ErrorPolicy()
    config = RuleConfiguration.from_mapping(_minimal(letter_groups={key: ["b"]}), policy=policy)

    assert key not in config.letter_groups
    assert policy.count(ErrorCategory.MALFORMED_CONFIGURATION) == 1


def test_missing_color_key_is_recorded_but_group_kept():
    policy = ErrorPolicy()
    config = RuleConfiguration.from_mapping(
        _minimal(highlight_colors={"mirror": "no-such-color"}), policy=policy
    )

    assert "mirror" in config.letter_groups
    assert policy.count(ErrorCategory.MISSING_COLOR_KEY) == 1


def test_hex_literal_color_keys_are_not_missing():
    policy = ErrorPolicy()
    RuleConfiguration.from_mapping(
        _minimal(highlight_colors={"mirror": "#123456"}, vowel_color="#abc"), policy=policy
    )

    assert policy.records == []


def test_malformed_bounds_fall_back_to_defaults():
    policy = ErrorPolicy()
    config = RuleConfiguration.from_mapping(
        _minimal(font_size={"min": 30, "max": 10}, line_spacing={"min": 1, "max": 2}),
        policy=policy,
    )

    assert config.bound("font_size").minimum == 12
    assert config.bound("font_size").maximum == 26
    assert config.bound("line_spacing").maximum == 2
    assert config.bound("line_spacing").recommended == 1
    assert policy.count(ErrorCategory.MALFORMED_CONFIGURATION) == 1


def test_non_mapping_root_is_rejected():
    with pytest.raises(ConfigurationError):
        RuleConfiguration.from_mapping(["not", "a", "mapping"])


def test_custom_palette_replaces_default():
    config = RuleConfiguration.from_mapping(
        _minimal(palette={"muted-green": "#000000", "soft-blue": "#111111"})
    )

    assert dict(config.palette) == {"muted-green": "#000000", "soft-blue": "#111111"}


def test_load_rules_file_reads_json(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps(_minimal()), encoding="utf-8")

    config = load_rules_file(path)

    assert list(config.letter_groups) == ["mirror"]


def test_load_rules_file_falls_back_on_bad_json(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text("{ not json", encoding="utf-8")
    policy = ErrorPolicy()

    config = load_rules_file(path, policy=policy)

    assert config == RuleConfiguration.default()
    assert policy.count(ErrorCategory.FILE_IO) == 1


def test_load_rules_file_falls_back_when_missing(tmp_path):
    policy = ErrorPolicy()

    config = load_rules_file(tmp_path / "missing.json", policy=policy)

    assert "mirror_letters1" in config.letter_groups
    assert policy.count(ErrorCategory.FILE_IO) == 1


def test_no_path_means_builtin_rules():
    assert load_rules_file(None) == RuleConfiguration.default()


def test_non_finite_bounds_are_malformed():
    policy = ErrorPolicy()
    config = RuleConfiguration.from_mapping(
        _minimal(font_size={"min": float("nan"), "max": 20}), policy=policy
    )

    bound = config.bound("font_size")
    assert (bound.minimum, bound.recommended, bound.maximum) == (12, 16, 26)
    assert policy.count(ErrorCategory.MALFORMED_CONFIGURATION) == 1


def test_clamp_maps_non_finite_to_recommended():
    bound = RuleConfiguration.default().bound("line_spacing")

    assert bound.clamp(float("nan")) == 1.5
    assert bound.clamp(float("-inf")) == 1.5
    assert bound.clamp(9) == 3.0


def test_unsafe_palette_values_are_dropped():
    policy = ErrorPolicy()
    config = RuleConfiguration.from_mapping(
        _minimal(palette={"muted-green": "#2D6A4F", "soft-blue": "red;}</style>"}), policy=policy
    )

    assert dict(config.palette) == {"muted-green": "#2D6A4F"}
    assert policy.count(ErrorCategory.MALFORMED_CONFIGURATION) == 1


def test_direct_construction_defaults_to_empty_preferences():
    config = RuleConfiguration(letter_groups={}, palette={}, vowel_color=None, bounds={})

    assert dict(config.default_preferences) == {}
    assert config.fonts == ()
