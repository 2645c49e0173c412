"""Color key resolution with fixed fallbacks per call site.

Every lookup goes through :func:`resolve`, which never raises. Each call site
uses one of the documented fallbacks below:

* ``HIGHLIGHT_FALLBACK`` for letter-group highlights,
* ``VOWEL_FALLBACK`` for vowel coloring,
* ``BACKGROUND_FALLBACK`` for the page background,
* ``TEXT_FALLBACK`` for the page text color.

A key missing from the palette that is already a literal hex color
(``#rgb`` or ``#rrggbb``) resolves to itself.
"""

from __future__ import annotations

import logging
import re
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

HIGHLIGHT_FALLBACK = "#2563eb"
VOWEL_FALLBACK = "#4E9FD1"
BACKGROUND_FALLBACK = "#FFFFFF"
TEXT_FALLBACK = "#1A1A1A"

HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

DEFAULT_PALETTE: Mapping[str, str] = {
    "soft-cream": "#FEF9E7",
    "off-white": "#FAF9F6",
    "pastel-yellow": "#FFEE8C",
    "light-blue": "#EBF5FB",
    "light-peach": "#FDF2E9",
    "black": "#1A1A1A",
    "dark-blue": "#00008B",
    "dark-brown": "#5D4037",
    "muted-green": "#2D6A4F",
    "warm-brown": "#A44A3F",
    "soft-purple": "#6D597A",
    "soft-blue": "#4E9FD1",
}


def is_color_literal(value: object) -> bool:
    return isinstance(value, str) and bool(HEX_COLOR_PATTERN.match(value))


def is_resolvable(key: Optional[str], palette: Mapping[str, str]) -> bool:
    return key is not None and (key in palette or is_color_literal(key))


def resolve(key: Optional[str], palette: Mapping[str, str], fallback: str) -> str:
    """Return the display value for ``key`` or ``fallback`` when unknown."""

    if key is not None:
        value = palette.get(key)
        if value:
            return value
        if is_color_literal(key):
            return key
    logger.debug("Color key %r not in palette; using %s.", key, fallback)
    return fallback


def highlight_color(key: Optional[str], palette: Mapping[str, str]) -> str:
    return resolve(key, palette, HIGHLIGHT_FALLBACK)


def vowel_color(key: Optional[str], palette: Mapping[str, str]) -> str:
    return resolve(key, palette, VOWEL_FALLBACK)


def background_color(key: Optional[str], palette: Mapping[str, str]) -> str:
    return resolve(key, palette, BACKGROUND_FALLBACK)


def text_color(key: Optional[str], palette: Mapping[str, str]) -> str:
    return resolve(key, palette, TEXT_FALLBACK)


def hex_to_rgb(value: str) -> Optional[tuple[int, int, int]]:
    """Convert ``#rgb``/``#rrggbb`` to an RGB triple, or ``None``."""

    if not is_color_literal(value):
        return None
    digits = value[1:]
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))
