"""Text segmentation into whitespace runs and words."""

from __future__ import annotations

from typing import List

from .structures import WordUnit


def _tokenise_preserving_whitespace(text: str) -> List[str]:
    """Split text into maximal whitespace and non-whitespace runs."""

    tokens: List[str] = []
    idx = 0
    length = len(text)
    while idx < length:
        start = idx
        in_space = text[idx].isspace()
        while idx < length and text[idx].isspace() == in_space:
            idx += 1
        tokens.append(text[start:idx])
    return tokens


def segment_text(text: str) -> List[WordUnit]:
    """Segment text into word units without losing a single character."""

    if not text:
        return []
    return [
        WordUnit(text=token, is_whitespace=token[0].isspace())
        for token in _tokenise_preserving_whitespace(text)
    ]
