"""Word annotation: anchor-bold split plus per-character classification."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple

from . import colors
from .classifier import classify
from .preferences import BOLD_STARTS, VOWEL_COLORING, Preferences
from .rules import LetterGroup, RuleConfiguration
from .segmenter import segment_text
from .structures import AnnotatedRun, ClassKind, Classification, WordUnit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActiveRules:
    """The rule subset selected by one preference snapshot."""

    groups: Mapping[str, LetterGroup]
    activation_order: Tuple[str, ...]
    vowel_coloring: bool
    bold_starts: bool
    palette: Mapping[str, str]
    vowel_color_key: Optional[str] = None

    @classmethod
    def from_preferences(cls, config: RuleConfiguration, prefs: Preferences) -> "ActiveRules":
        order = []
        for key in prefs.active_letter_groups:
            if key in config.letter_groups:
                order.append(key)
            else:
                logger.debug("Active group %r is not configured; skipping it.", key)
        return cls(
            groups=config.letter_groups,
            activation_order=tuple(order),
            vowel_coloring=prefs.has_mode(VOWEL_COLORING),
            bold_starts=prefs.has_mode(BOLD_STARTS),
            palette=config.palette,
            vowel_color_key=config.vowel_color,
        )

    def classify(self, char: str) -> Classification:
        return classify(char, self.groups, self.activation_order, self.vowel_coloring)

    def color_for(self, classification: Classification) -> Optional[str]:
        if classification.kind is ClassKind.GROUP:
            group = self.groups[classification.group]
            return colors.highlight_color(group.color_key, self.palette)
        if classification.kind is ClassKind.VOWEL:
            return colors.vowel_color(self.vowel_color_key, self.palette)
        return None


def anchor_boundary(length: int) -> int:
    """Number of leading characters made anchor-bold for a word."""

    if length <= 1:
        return 0
    return math.ceil(length / 2)


def annotate_word(unit: WordUnit, rules: ActiveRules) -> WordUnit:
    """Annotate a word unit; whitespace units are returned unchanged."""

    if unit.is_whitespace:
        return unit

    word = unit.text
    boundary = anchor_boundary(len(word)) if rules.bold_starts else 0

    pending: List[Tuple[Classification, bool, List[str]]] = []
    for idx, char in enumerate(word):
        classification = rules.classify(char)
        bold = idx < boundary
        if pending and pending[-1][0] == classification and pending[-1][1] == bold:
            pending[-1][2].append(char)
        else:
            pending.append((classification, bold, [char]))

    runs = tuple(
        AnnotatedRun(
            text="".join(chars),
            classification=classification,
            color=rules.color_for(classification),
            bold=bold,
        )
        for classification, bold, chars in pending
    )
    return WordUnit(
        text=word,
        is_whitespace=False,
        runs=runs,
        anchor_applied=boundary > 0,
        anchor_boundary=boundary,
    )


def annotate(units: Sequence[WordUnit], rules: ActiveRules) -> List[WordUnit]:
    return [annotate_word(unit, rules) for unit in units]


def render(text: str, config: RuleConfiguration, prefs: Preferences) -> List[WordUnit]:
    """Segment and annotate ``text``; the shared core of every back end."""

    rules = ActiveRules.from_preferences(config, prefs)
    return annotate(segment_text(text), rules)
