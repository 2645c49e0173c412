"""Character classification against the active letter groups."""

from __future__ import annotations

from typing import Mapping, Sequence

from .rules import VOWELS, LetterGroup, ascii_lower
from .structures import NO_CLASS, VOWEL_CLASS, Classification, group_class


def classify(
    char: str,
    groups: Mapping[str, LetterGroup],
    activation_order: Sequence[str],
    vowel_coloring: bool,
) -> Classification:
    """Classify one character.

    The first group in ``activation_order`` containing the character wins;
    keys that name no configured group are skipped. Vowel coloring only
    applies when no active group matched. Comparison uses ASCII
    lower-casing; the caller keeps the original character for output.
    """

    lowered = ascii_lower(char)
    for key in activation_order:
        group = groups.get(key)
        if group is not None and lowered in group:
            return group_class(key)
    if vowel_coloring and lowered in VOWELS:
        return VOWEL_CLASS
    return NO_CLASS
