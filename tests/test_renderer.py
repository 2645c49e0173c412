from focusmate.annotator import render
from focusmate.errors import ErrorCategory
from focusmate.policy import ErrorPolicy
from focusmate.preferences import Preferences
from focusmate.renderer import (
    apply_in_place,
    build_preview,
    build_stylesheet,
    container_style,
    format_number,
    to_html,
)
from focusmate.rules import RuleConfiguration
from focusmate.structures import TextUnit, units_text

CONFIG = RuleConfiguration.default()
GROUP_STYLE = "color: #2D6A4F; border-bottom: 1px dashed #2D6A4F"


def _prefs(modes=("bold_starts",), groups=("mirror_letters1",), **values):
    return Preferences(active_modes=tuple(modes), active_letter_groups=tuple(groups), **values)


def _recording_unit(text, sink, unit_id="u0"):
    return TextUnit(unit_id=unit_id, original_text=text, setter=sink.append, location=unit_id)


def _failing_unit(text, unit_id="bad"):
    def _setter(words):
        raise RuntimeError("node vanished")

    return TextUnit(unit_id=unit_id, original_text=text, setter=_setter, location=unit_id)


def test_format_number_drops_trailing_zeros():
    assert format_number(16) == "16"
    assert format_number(16.0) == "16"
    assert format_number(1.5) == "1.5"
    assert format_number(0.1) == "0.1"


def test_preview_marks_anchor_and_groups():
    prefs = _prefs()
    tree = build_preview(render("bed", CONFIG, prefs), CONFIG, prefs)

    assert tree.tag == "div"
    assert to_html(tree).endswith(
        f'<span><b><span style="{GROUP_STYLE}">b</span>e</b>'
        f'<span style="{GROUP_STYLE}">d</span></span></div>'
    )


def test_preview_keeps_text_and_whitespace():
    prefs = _prefs(modes=("bold_starts", "vowel_coloring"))
    text = "Notice how  b and d\nare highlighted."
    tree = build_preview(render(text, CONFIG, prefs), CONFIG, prefs)

    assert tree.plain_text() == text


def test_preview_vowels_carry_color_only():
    prefs = _prefs(modes=("vowel_coloring",), groups=())
    tree = build_preview(render("at", CONFIG, prefs), CONFIG, prefs)

    assert '<span><span style="color: #4E9FD1">a</span>t</span>' in to_html(tree)


def test_preview_escapes_markup():
    prefs = _prefs(modes=(), groups=())
    tree = build_preview(render("<b>&", CONFIG, prefs), CONFIG, prefs)

    assert "&lt;b&gt;&amp;" in to_html(tree)


def test_container_style_resolves_colors_and_typography():
    style = dict(container_style(CONFIG, _prefs()))

    assert style["background-color"] == "#FEF9E7"
    assert style["color"] == "#1A1A1A"
    assert style["font-size"] == "16px"
    assert style["line-height"] == "1.5"
    assert style["letter-spacing"] == "0.1em"
    assert style["word-spacing"] == "0.2em"


def test_preview_clamps_typography():
    prefs = _prefs(font_size=99)
    tree = build_preview(render("x", CONFIG, prefs), CONFIG, prefs)

    assert dict(tree.style)["font-size"] == "26px"


def test_stylesheet_layout():
    css = build_stylesheet(CONFIG, _prefs())
    lines = css.splitlines()

    assert lines[:5] == [
        "/* FocusMate injected styles */",
        "body {",
        "  background-color: #FEF9E7 !important;",
        "  color: #1A1A1A !important;",
        "}",
    ]
    assert '  font-family: "Open Sans", sans-serif !important;' in lines
    assert ".focusmate-anchor {" in lines
    assert "  color: #4E9FD1 !important;" in lines
    assert ".focusmate-mirror_letters1 {" in lines
    assert ".focusmate-similar_numbers {" in lines
    assert css.endswith("}\n")


def test_stylesheet_is_byte_stable():
    assert build_stylesheet(CONFIG, _prefs()) == build_stylesheet(CONFIG, _prefs())


def test_stylesheet_uses_highlight_fallback_for_missing_color():
    config = RuleConfiguration.from_mapping({"letter_groups": {"mirror": ["b"]}})
    css = build_stylesheet(config, _prefs())

    rule = css.split(".focusmate-mirror {\n", 1)[1]
    assert rule.startswith("  color: #2563eb !important;")


def test_apply_in_place_skips_units_without_styling():
    received = []
    units = [_recording_unit("xyz", received, "plain"), _recording_unit("bed", received, "styled")]

    report = apply_in_place(units, CONFIG, _prefs(modes=()))

    assert report.total_units == 2
    assert report.unchanged_units == 1
    assert report.annotated_units == 1
    assert len(received) == 1
    assert units_text(received[0]) == "bed"


def test_apply_in_place_isolates_failures():
    received = []
    policy = ErrorPolicy()
    units = [
        _recording_unit("bed", received, "first"),
        _failing_unit("bad"),
        _recording_unit("dab", received, "third"),
    ]

    report = apply_in_place(units, CONFIG, _prefs(), policy=policy)

    assert report.failed_units == 1
    assert report.annotated_units == 2
    assert [units_text(words) for words in received] == ["bed", "dab"]
    assert policy.count(ErrorCategory.DOCUMENT) == 1
    assert policy.records[0].message == "Could not annotate text at bad. Skipping this element."


def test_stylesheet_escapes_font_when_fonts_are_unrestricted():
    config = RuleConfiguration.from_mapping({"letter_groups": {}, "font": []})
    css = build_stylesheet(config, _prefs(font='Evil</style>\n"x'))

    assert "</style" not in css
    assert '  font-family: "Evil\\3c /style\\3e \\a \\"x", sans-serif !important;' in css.splitlines()


def test_stylesheet_replaces_non_finite_numbers():
    css = build_stylesheet(CONFIG, _prefs(font_size=float("nan"), line_spacing=float("inf")))

    assert "nan" not in css
    assert "inf" not in css
    assert "  font-size: 16px !important;" in css
    assert "  line-height: 1.5 !important;" in css
