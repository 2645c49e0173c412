"""Renderer back ends sharing one annotation pass.

The preview back end turns annotated word units into a :class:`PreviewNode`
tree that can be serialised to HTML or drawn by the preview window. The
in-place back end feeds the same units to setters supplied by document
handlers. :func:`build_stylesheet` produces the CSS injected next to
in-place annotations; its output only depends on the configuration and the
preferences.
"""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from . import colors
from .annotator import ActiveRules, annotate
from .errors import ErrorCategory
from .policy import ErrorPolicy
from .preferences import Preferences
from .rules import RuleConfiguration
from .segmenter import segment_text
from .structures import AnnotatedRun, ClassKind, PreviewNode, TextUnit, WordUnit, has_styling

logger = logging.getLogger(__name__)

CLASS_PREFIX = "focusmate-"
WRAPPER_CLASS = "focusmate-text"
ANCHOR_CLASS = "focusmate-anchor"
VOWEL_CLASS = "focusmate-vowel"
STYLE_ELEMENT_ID = "focusmate-injected-styles"
TYPOGRAPHY_SELECTORS = "p, span, li, h1, h2, h3, h4, h5, h6, div, blockquote"

SAMPLE_TEXT = (
    "FocusMate helps you read with clarity. Notice how b and d are highlighted, "
    "or how the vowels a, e, i, o, u can be colored. Bold anchors help your eyes "
    "stay on track."
)


def format_number(value: float) -> str:
    """Render a number without trailing zeros (``16``, ``1.5``, ``0.1``)."""

    return format(value, "g")


def group_class_name(key: str) -> str:
    return f"{CLASS_PREFIX}{key}"


def run_class_names(run: AnnotatedRun) -> List[str]:
    names: List[str] = []
    if run.bold:
        names.append(ANCHOR_CLASS)
    kind = run.classification.kind
    if kind is ClassKind.VOWEL:
        names.append(VOWEL_CLASS)
    elif kind is ClassKind.GROUP:
        names.append(group_class_name(run.classification.group))
    return names


# --- Preview back end -----------------------------------------------------


def container_style(config: RuleConfiguration, prefs: Preferences) -> List[tuple[str, str]]:
    return [
        ("background-color", colors.background_color(prefs.background_color, config.palette)),
        ("color", colors.text_color(prefs.text_color, config.palette)),
        ("font-family", prefs.font),
        ("font-size", f"{format_number(prefs.font_size)}px"),
        ("line-height", format_number(prefs.line_spacing)),
        ("letter-spacing", f"{format_number(prefs.letter_spacing)}em"),
        ("word-spacing", f"{format_number(prefs.word_spacing)}em"),
    ]


def _run_node(run: AnnotatedRun) -> PreviewNode:
    kind = run.classification.kind
    if kind is ClassKind.GROUP:
        return PreviewNode(
            tag="span",
            style=[("color", run.color), ("border-bottom", f"1px dashed {run.color}")],
            children=[PreviewNode(text=run.text)],
        )
    if kind is ClassKind.VOWEL:
        return PreviewNode(
            tag="span",
            style=[("color", run.color)],
            children=[PreviewNode(text=run.text)],
        )
    return PreviewNode(text=run.text)


def _word_node(unit: WordUnit) -> PreviewNode:
    word = PreviewNode(tag="span")
    anchor = [run for run in unit.runs if run.bold]
    rest = [run for run in unit.runs if not run.bold]
    if anchor:
        word.children.append(PreviewNode(tag="b", children=[_run_node(run) for run in anchor]))
    word.children.extend(_run_node(run) for run in rest)
    return word


def build_preview(
    units: Sequence[WordUnit],
    config: RuleConfiguration,
    prefs: Preferences,
) -> PreviewNode:
    """Build the preview tree for already annotated units."""

    prefs = prefs.clamped(config)
    root = PreviewNode(tag="div", style=container_style(config, prefs))
    for unit in units:
        if unit.is_whitespace:
            root.children.append(PreviewNode(text=unit.text))
        else:
            root.children.append(_word_node(unit))
    return root


def to_html(node: PreviewNode) -> str:
    """Serialise a preview tree to an HTML fragment."""

    if node.is_text:
        return html.escape(node.text, quote=False)
    attrs = ""
    if node.style:
        declarations = "; ".join(f"{prop}: {value}" for prop, value in node.style)
        attrs = f' style="{html.escape(declarations, quote=True)}"'
    inner = "".join(to_html(child) for child in node.children)
    return f"<{node.tag}{attrs}>{inner}</{node.tag}>"


# --- Stylesheet -----------------------------------------------------------


_CSS_STRING_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "<": "\\3c ",
    ">": "\\3e ",
    "\n": "\\a ",
    "\r": "\\d ",
    "\f": "\\c ",
}


def _css_string(value: str) -> str:
    """Escape text for a double-quoted CSS string inside a ``<style>`` element."""

    return "".join(_CSS_STRING_ESCAPES.get(char, char) for char in value)


def build_stylesheet(
    config: RuleConfiguration,
    prefs: Preferences,
    *,
    policy: Optional[ErrorPolicy] = None,
) -> str:
    """Generate the injected stylesheet; identical inputs give identical text."""

    prefs = prefs.clamped(config, policy=policy)
    palette = config.palette
    lines = [
        "/* FocusMate injected styles */",
        "body {",
        f"  background-color: {colors.background_color(prefs.background_color, palette)} !important;",
        f"  color: {colors.text_color(prefs.text_color, palette)} !important;",
        "}",
        f"{TYPOGRAPHY_SELECTORS} {{",
        f'  font-family: "{_css_string(prefs.font)}", sans-serif !important;',
        f"  font-size: {format_number(prefs.font_size)}px !important;",
        f"  line-height: {format_number(prefs.line_spacing)} !important;",
        f"  word-spacing: {format_number(prefs.word_spacing)}em !important;",
        f"  letter-spacing: {format_number(prefs.letter_spacing)}em !important;",
        "}",
        f".{ANCHOR_CLASS} {{",
        "  font-weight: bold !important;",
        "}",
        f".{VOWEL_CLASS} {{",
        f"  color: {colors.vowel_color(config.vowel_color, palette)} !important;",
        "}",
    ]
    for key, group in config.letter_groups.items():
        lines.extend(
            [
                f".{group_class_name(key)} {{",
                f"  color: {colors.highlight_color(group.color_key, palette)} !important;",
                "  font-weight: bold !important;",
                "  background-color: rgba(0,0,0,0.05);",
                "  border-radius: 2px;",
                "  padding: 0 1px;",
                "}",
            ]
        )
    return "\n".join(lines) + "\n"


# --- In-place back end ----------------------------------------------------


@dataclass
class ApplyReport:
    """Counters from one in-place pass."""

    total_units: int = 0
    annotated_units: int = 0
    unchanged_units: int = 0
    failed_units: int = 0


def apply_in_place(
    units: Sequence[TextUnit],
    config: RuleConfiguration,
    prefs: Preferences,
    *,
    policy: Optional[ErrorPolicy] = None,
) -> ApplyReport:
    """Annotate document text units through their setters.

    Units whose text needs no styling are left untouched. A failing setter
    only affects its own unit; the pass continues with the next one.
    """

    if policy is None:
        policy = ErrorPolicy()
    rules = ActiveRules.from_preferences(config, prefs)
    report = ApplyReport(total_units=len(units))

    for unit in units:
        words = annotate(segment_text(unit.original_text), rules)
        if not has_styling(words):
            report.unchanged_units += 1
            continue
        try:
            unit.setter(words)
        except Exception as exc:
            policy.handle_error(
                ErrorCategory.DOCUMENT,
                f"Could not annotate text at {unit.location}. Skipping this element.",
                str(exc),
            )
            report.failed_units += 1
            continue
        report.annotated_units += 1

    logger.debug(
        "In-place pass: %d units, %d annotated, %d unchanged, %d failed.",
        report.total_units,
        report.annotated_units,
        report.unchanged_units,
        report.failed_units,
    )
    return report
