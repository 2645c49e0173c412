"""Rule configuration model: letter groups, palette and numeric bounds."""

from __future__ import annotations

import json
import logging
import math
import pathlib
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from .colors import DEFAULT_PALETTE, is_resolvable
from .errors import ConfigurationError, ErrorCategory
from .policy import ErrorPolicy, report

logger = logging.getLogger(__name__)

VOWELS = frozenset("aeiou")
NUMERIC_FIELDS = ("font_size", "line_spacing", "letter_spacing", "word_spacing")

# Class names already used by the stylesheet and document wrappers.
RESERVED_GROUP_KEYS = frozenset({"anchor", "vowel", "text", "plain"})
GROUP_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
# Hex literals, color names and rgb()/hsl() functions; nothing that can end a rule.
CSS_COLOR_PATTERN = re.compile(r"[#A-Za-z0-9(),.% -]+")

DEFAULT_RULES: Mapping[str, Any] = {
    "font": [
        "Arial", "Verdana", "Tahoma", "Century Gothic", "Trebuchet MS",
        "Calibri", "Open Sans", "Comic Sans MS", "OpenDyslexic", "Lexend",
    ],
    "font_size": {"min": 12, "recommended": 16, "max": 26},
    "letter_spacing": {"min": 0, "recommended": 0.1, "max": 0.5},
    "word_spacing": {"min": 0, "recommended": 0.2, "max": 1.0},
    "line_spacing": {"min": 1.0, "recommended": 1.5, "max": 3.0},
    "background_color": ["soft-cream", "off-white", "pastel-yellow", "light-blue", "light-peach"],
    "foreground_color": ["black", "dark-blue", "dark-brown"],
    "letter_highlighting": {
        "default_highlight_colors": {
            "vowels": "soft-blue",
            "mirror_letters1": "muted-green",
            "mirror_letters2": "warm-brown",
            "similar_shapes1": "soft-purple",
            "similar_shapes2": "soft-blue",
            "similar_shapes3": "muted-green",
            "thin_vertical1": "warm-brown",
            "thin_vertical2": "soft-purple",
            "tail_letters": "soft-blue",
            "similar_numbers": "muted-green",
        }
    },
    "confusing_letter_groups": {
        "mirror_letters1": ["b", "d"],
        "mirror_letters2": ["p", "q"],
        "similar_shapes1": ["m", "n"],
        "similar_shapes2": ["o", "u"],
        "similar_shapes3": ["c", "e"],
        "thin_vertical1": ["i", "j"],
        "thin_vertical2": ["l", "t"],
        "tail_letters": ["g", "y"],
        "similar_numbers": ["6", "9"],
    },
    "user_preferences": {
        "font": "Open Sans",
        "font_size": 16,
        "line_spacing": 1.5,
        "letter_spacing": 0.1,
        "word_spacing": 0.2,
        "background_color": "soft-cream",
        "text_color": "black",
        "active_modes": ["bold_starts"],
        "active_letter_groups": ["mirror_letters1"],
    },
}


def ascii_lower(char: str) -> str:
    """Lower-case ASCII letters only; everything else is returned as is."""

    if "A" <= char <= "Z":
        return chr(ord(char) + 32)
    return char


def is_number(value: Any) -> bool:
    """True for finite ints and floats; bools, NaN and infinities are rejected."""

    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


@dataclass(frozen=True)
class LetterGroup:
    """A named set of visually confusable characters."""

    key: str
    members: frozenset
    color_key: Optional[str] = None

    def __contains__(self, char: object) -> bool:
        return char in self.members


@dataclass(frozen=True)
class NumericBound:
    """Allowed range for a numeric preference."""

    minimum: float
    recommended: float
    maximum: float

    def clamp(self, value: float) -> float:
        if not math.isfinite(value):
            return self.recommended
        return min(max(value, self.minimum), self.maximum)

    def contains(self, value: float) -> bool:
        return self.minimum <= value <= self.maximum


@dataclass(frozen=True)
class RuleConfiguration:
    """Validated, immutable rule configuration."""

    letter_groups: Mapping[str, LetterGroup]
    palette: Mapping[str, str]
    vowel_color: Optional[str]
    bounds: Mapping[str, NumericBound]
    fonts: Tuple[str, ...] = ()
    background_colors: Tuple[str, ...] = ()
    foreground_colors: Tuple[str, ...] = ()
    default_preferences: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def highlight_colors(self) -> Dict[str, Optional[str]]:
        return {key: group.color_key for key, group in self.letter_groups.items()}

    def bound(self, name: str) -> NumericBound:
        return self.bounds[name]

    @classmethod
    def default(cls) -> "RuleConfiguration":
        return cls.from_mapping(DEFAULT_RULES)

    @classmethod
    def from_mapping(
        cls,
        data: Any,
        *,
        policy: Optional[ErrorPolicy] = None,
    ) -> "RuleConfiguration":
        """Validate a rules mapping, degrading malformed parts to defaults.

        Accepts both the documented shape (``letter_groups``,
        ``highlight_colors``, ``vowel_color``, ``palette``) and the rules-file
        shape (``confusing_letter_groups`` and
        ``letter_highlighting.default_highlight_colors``). Only a
        non-mapping root is rejected.
        """

        if not isinstance(data, Mapping):
            raise ConfigurationError("Rule configuration must be a mapping at the root.")

        palette = _parse_palette(data.get("palette"), policy)
        highlight = _highlight_colors(data)
        vowel_key = data.get("vowel_color", highlight.get("vowels"))
        if not isinstance(vowel_key, str):
            vowel_key = None
        if not is_resolvable(vowel_key, palette):
            report(
                policy,
                ErrorCategory.MISSING_COLOR_KEY,
                f"Vowel color {vowel_key!r} is not in the palette; the vowel fallback applies.",
            )

        raw_groups = data.get("letter_groups", data.get("confusing_letter_groups"))
        groups = _parse_groups(raw_groups, highlight, palette, policy)

        bounds = {
            name: _parse_bound(name, data.get(name), policy) for name in NUMERIC_FIELDS
        }

        defaults = data.get("user_preferences")
        if not isinstance(defaults, Mapping):
            defaults = DEFAULT_RULES["user_preferences"]

        return cls(
            letter_groups=MappingProxyType(groups),
            palette=MappingProxyType(dict(palette)),
            vowel_color=vowel_key,
            bounds=MappingProxyType(bounds),
            fonts=_string_tuple(data.get("font"), DEFAULT_RULES["font"]),
            background_colors=_string_tuple(
                data.get("background_color"), DEFAULT_RULES["background_color"]
            ),
            foreground_colors=_string_tuple(
                data.get("foreground_color"), DEFAULT_RULES["foreground_color"]
            ),
            default_preferences=MappingProxyType(dict(defaults)),
        )


def _highlight_colors(data: Mapping[str, Any]) -> Dict[str, str]:
    raw = data.get("highlight_colors")
    if raw is None:
        section = data.get("letter_highlighting")
        if isinstance(section, Mapping):
            raw = section.get("default_highlight_colors")
    if not isinstance(raw, Mapping):
        return {}
    return {key: value for key, value in raw.items() if isinstance(value, str)}


def _parse_palette(raw: Any, policy: Optional[ErrorPolicy]) -> Dict[str, str]:
    if raw is None:
        return dict(DEFAULT_PALETTE)
    if not isinstance(raw, Mapping):
        report(
            policy,
            ErrorCategory.MALFORMED_CONFIGURATION,
            "Palette is not a mapping; using the built-in palette.",
        )
        return dict(DEFAULT_PALETTE)
    palette: Dict[str, str] = {}
    for key, value in raw.items():
        if isinstance(key, str) and isinstance(value, str) and CSS_COLOR_PATTERN.fullmatch(value):
            palette[key] = value
        else:
            report(
                policy,
                ErrorCategory.MALFORMED_CONFIGURATION,
                f"Palette entry {key!r} is not a usable color value; entry ignored.",
            )
    return palette


def _parse_groups(
    raw: Any,
    highlight: Mapping[str, str],
    palette: Mapping[str, str],
    policy: Optional[ErrorPolicy],
) -> Dict[str, LetterGroup]:
    groups: Dict[str, LetterGroup] = {}
    if not isinstance(raw, Mapping):
        report(
            policy,
            ErrorCategory.MALFORMED_CONFIGURATION,
            "Letter groups are missing; no group highlighting is available.",
        )
        return groups

    for key, members in raw.items():
        if not isinstance(key, str) or not GROUP_KEY_PATTERN.match(key):
            report(
                policy,
                ErrorCategory.MALFORMED_CONFIGURATION,
                f"Letter group key {key!r} is not a valid identifier; group ignored.",
            )
            continue
        if key.lower() in RESERVED_GROUP_KEYS:
            report(
                policy,
                ErrorCategory.MALFORMED_CONFIGURATION,
                f"Letter group key {key!r} is reserved; group ignored.",
            )
            continue
        if isinstance(members, str) or not isinstance(members, (list, tuple)):
            report(
                policy,
                ErrorCategory.MALFORMED_CONFIGURATION,
                f"Letter group {key!r} is not a list of characters; group ignored.",
            )
            continue

        valid = [ascii_lower(m) for m in members if isinstance(m, str) and len(m) == 1]
        if len(valid) != len(members):
            report(
                policy,
                ErrorCategory.MALFORMED_CONFIGURATION,
                f"Letter group {key!r} contains entries that are not single characters.",
            )
        if not valid:
            report(
                policy,
                ErrorCategory.MALFORMED_CONFIGURATION,
                f"Letter group {key!r} has no usable characters; group ignored.",
            )
            continue

        color_key = highlight.get(key)
        if not is_resolvable(color_key, palette):
            report(
                policy,
                ErrorCategory.MISSING_COLOR_KEY,
                f"Highlight color for group {key!r} is not in the palette; "
                "the highlight fallback applies.",
            )
        groups[key] = LetterGroup(key=key, members=frozenset(valid), color_key=color_key)
    return groups


def _parse_bound(name: str, raw: Any, policy: Optional[ErrorPolicy]) -> NumericBound:
    fallback = DEFAULT_RULES[name]
    entry = raw if isinstance(raw, Mapping) else None
    low = entry.get("min") if entry else None
    high = entry.get("max") if entry else None
    if not (is_number(low) and is_number(high)) or low > high:
        if raw is not None:
            report(
                policy,
                ErrorCategory.MALFORMED_CONFIGURATION,
                f"Bounds for {name} are malformed; using the built-in range.",
            )
        else:
            logger.debug("No bounds for %s; using the built-in range.", name)
        low, high = fallback["min"], fallback["max"]
        entry = fallback
    recommended = entry.get("recommended")
    if not is_number(recommended):
        recommended = low
    recommended = min(max(recommended, low), high)
    return NumericBound(minimum=low, recommended=recommended, maximum=high)


def _string_tuple(raw: Any, fallback: Any) -> Tuple[str, ...]:
    if isinstance(raw, (list, tuple)) and all(isinstance(item, str) for item in raw):
        return tuple(raw)
    return tuple(fallback)


def load_rules_file(
    path: Optional[pathlib.Path],
    *,
    policy: Optional[ErrorPolicy] = None,
) -> RuleConfiguration:
    """Load a JSON rules file, falling back to the built-in rules."""

    if path is None:
        return RuleConfiguration.default()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return RuleConfiguration.from_mapping(data, policy=policy)
    except (OSError, ValueError, ConfigurationError) as exc:
        logger.warning("Using fallback config: %s could not be loaded (%s).", path, exc)
        report(
            policy,
            ErrorCategory.FILE_IO,
            f"Rules file {path} could not be loaded; using the built-in rules.",
            str(exc),
        )
        return RuleConfiguration.default()
