"""User preference values supplied to the engine."""

from __future__ import annotations

import dataclasses
import json
import logging
import pathlib
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Tuple

from .colors import is_color_literal
from .errors import ErrorCategory
from .policy import ErrorPolicy, report
from .rules import NUMERIC_FIELDS, RuleConfiguration, is_number

logger = logging.getLogger(__name__)

BOLD_STARTS = "bold_starts"
VOWEL_COLORING = "vowel_coloring"
KNOWN_MODES = (BOLD_STARTS, VOWEL_COLORING)


def _ordered_unique(items: Iterable[str]) -> Tuple[str, ...]:
    seen: dict[str, None] = {}
    for item in items:
        seen.setdefault(item, None)
    return tuple(seen)


@dataclass(frozen=True)
class Preferences:
    """Resolved user preferences; never mutated by the engine."""

    font: str = "Open Sans"
    font_size: float = 16
    line_spacing: float = 1.5
    letter_spacing: float = 0.1
    word_spacing: float = 0.2
    background_color: str = "soft-cream"
    text_color: str = "black"
    active_modes: Tuple[str, ...] = (BOLD_STARTS,)
    active_letter_groups: Tuple[str, ...] = ("mirror_letters1",)

    def has_mode(self, mode: str) -> bool:
        return mode in self.active_modes

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        *,
        base: Optional["Preferences"] = None,
        policy: Optional[ErrorPolicy] = None,
    ) -> "Preferences":
        """Build preferences from a mapping; invalid fields keep the base value."""

        base = base or cls()
        values: dict[str, Any] = {}

        for name in ("font", "background_color", "text_color"):
            raw = data.get(name)
            if raw is None:
                continue
            if isinstance(raw, str) and raw:
                values[name] = raw
            else:
                report(policy, ErrorCategory.ARGUMENT, f"Preference {name} must be a string; ignored.")

        for name in NUMERIC_FIELDS:
            raw = data.get(name)
            if raw is None:
                continue
            if is_number(raw):
                values[name] = raw
            else:
                report(policy, ErrorCategory.ARGUMENT, f"Preference {name} must be a finite number; ignored.")

        for name in ("active_modes", "active_letter_groups"):
            raw = data.get(name)
            if raw is None:
                continue
            if isinstance(raw, (list, tuple)) and all(isinstance(item, str) for item in raw):
                values[name] = _ordered_unique(raw)
            else:
                report(policy, ErrorCategory.ARGUMENT, f"Preference {name} must be a list of strings; ignored.")

        return dataclasses.replace(base, **values)

    def clamped(
        self,
        config: RuleConfiguration,
        *,
        policy: Optional[ErrorPolicy] = None,
    ) -> "Preferences":
        """Return a copy limited to what the configuration allows.

        Numbers are clamped to their bounds; a non-finite number becomes the
        recommended value. The font and color keys must be one of the
        configured options (colors may also be ``#rgb``/``#rrggbb``
        literals); anything else is replaced by the rules' default choice,
        or the first option when that default is not offered either.
        """

        values: dict[str, Any] = {}
        for name in NUMERIC_FIELDS:
            bound = config.bound(name)
            value = getattr(self, name)
            if not bound.contains(value):
                clamped = bound.clamp(value)
                report(
                    policy,
                    ErrorCategory.OUT_OF_RANGE_PREFERENCE,
                    f"Preference {name}={value} is outside "
                    f"[{bound.minimum}, {bound.maximum}]; using {clamped}.",
                )
                values[name] = clamped

        choices = (
            ("font", config.fonts, False),
            ("background_color", config.background_colors, True),
            ("text_color", config.foreground_colors, True),
        )
        for name, options, literal_ok in choices:
            value = getattr(self, name)
            if not options or value in options or (literal_ok and is_color_literal(value)):
                continue
            default = config.default_preferences.get(name)
            replacement = default if default in options else options[0]
            report(
                policy,
                ErrorCategory.ARGUMENT,
                f"Preference {name}={value!r} is not a configured option; using {replacement!r}.",
            )
            values[name] = replacement

        if not values:
            return self
        return dataclasses.replace(self, **values)

    def with_overrides(
        self,
        *,
        modes: Optional[Iterable[str]] = None,
        groups: Optional[Iterable[str]] = None,
    ) -> "Preferences":
        values: dict[str, Any] = {}
        if modes is not None:
            values["active_modes"] = _ordered_unique(modes)
        if groups is not None:
            values["active_letter_groups"] = _ordered_unique(groups)
        return dataclasses.replace(self, **values)


def default_preferences(
    config: RuleConfiguration,
    *,
    policy: Optional[ErrorPolicy] = None,
) -> Preferences:
    """Preferences described by the configuration's ``user_preferences``."""

    return Preferences.from_mapping(config.default_preferences, policy=policy)


def load_preferences_file(
    path: Optional[pathlib.Path],
    config: RuleConfiguration,
    *,
    policy: Optional[ErrorPolicy] = None,
) -> Preferences:
    """Read saved preferences, falling back to the configuration defaults."""

    defaults = default_preferences(config, policy=policy)
    if path is None:
        return defaults
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        report(
            policy,
            ErrorCategory.FILE_IO,
            f"Preferences file {path} could not be loaded; using defaults.",
            str(exc),
        )
        return defaults
    if isinstance(data, Mapping) and isinstance(data.get("focusMatePrefs"), Mapping):
        data = data["focusMatePrefs"]
    if not isinstance(data, Mapping):
        report(
            policy,
            ErrorCategory.FILE_IO,
            f"Preferences file {path} does not contain a mapping; using defaults.",
        )
        return defaults
    return Preferences.from_mapping(data, base=defaults, policy=policy)
