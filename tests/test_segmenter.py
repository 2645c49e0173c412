import pytest

from focusmate.segmenter import segment_text
from focusmate.structures import units_text


@pytest.mark.parametrize(
    "text",
    [
        "",
        "  ",
        "bed",
        "hello  world\n",
        "\tleading tab",
        "trailing space  ",
        "line one\r\nline two",
        "a b",
    ],
)
def test_segmentation_is_lossless(text):
    assert units_text(segment_text(text)) == text


def test_empty_input_yields_no_units():
    assert segment_text("") == []


def test_two_spaces_form_one_whitespace_unit():
    units = segment_text("  ")

    assert len(units) == 1
    assert units[0].is_whitespace
    assert units[0].text == "  "
    assert units[0].runs == ()


def test_units_alternate_between_whitespace_and_words():
    units = segment_text(" hi  there\n")

    assert [unit.text for unit in units] == [" ", "hi", "  ", "there", "\n"]
    assert [unit.is_whitespace for unit in units] == [True, False, True, False, True]


def test_punctuation_stays_inside_words():
    units = segment_text("clarity. Notice")

    assert [unit.text for unit in units] == ["clarity.", " ", "Notice"]
