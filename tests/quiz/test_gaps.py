from __future__ import annotations

import pytest

from lesson_quiz.quiz import gaps
from lesson_quiz.quiz.gaps import (
    convert_single_brackets,
    count_gaps,
    extract_gap_answers,
    mask_gaps,
    parse_gap,
    strip_markup,
)


def test_parse_gap_marked_token_wins():
    parsed = parse_gap("blue*,azure,cyan")

    assert parsed.correct_option == "blue"
    assert parsed.options == ("blue", "azure", "cyan")
    assert parsed.marker_count == 1


def test_parse_gap_custom_separator():
    assert parse_gap("Paris / Lyon*", " / ").correct_option == "Lyon"


def test_parse_gap_strips_markup_from_options():
    parsed = parse_gap("<b>red</b>*,blue")

    assert parsed.correct_option == "red"
    assert parsed.options == ("red", "blue")


def test_parse_gap_defaults_to_first_option():
    assert parse_gap("cat, dog").correct_option == "cat"


def test_parse_gap_last_marker_wins():
    parsed = parse_gap("a*,b*,c")

    assert parsed.correct_option == "b"
    assert parsed.marker_count == 2


def test_parse_gap_marked_token_empty_after_cleaning():
    parsed = parse_gap("<i></i>*,kept")

    assert parsed.options == ("kept",)
    assert parsed.correct_option == "kept"


@pytest.mark.parametrize("body", ["", " , ", "*"])
def test_parse_gap_without_options(body):
    parsed = parse_gap(body)

    assert parsed.is_empty
    assert parsed.correct_option == ""


def test_parse_gap_blank_separator_falls_back_to_comma():
    assert parse_gap("x,y*", "").correct_option == "y"


def test_extract_gap_answers_in_order():
    text = "The sky is [[blue,azure]] and grass is [[green*,emerald]]."

    assert extract_gap_answers(text) == ["blue", "green"]


def test_extract_gap_answers_handles_missing_text():
    assert extract_gap_answers(None) == []
    assert extract_gap_answers("no gaps here") == []
    assert extract_gap_answers("empty [[]] gap") == [""]


def test_iter_gaps_reports_positions():
    text = "A [[x]] then [[y*,z]]"

    spans = list(gaps.iter_gaps(text))

    assert [span.index for span in spans] == [0, 1]
    assert text[spans[0].start:spans[0].end] == "[[x]]"
    assert spans[1].body == "y*,z"
    assert spans[1].parsed.correct_option == "y"


def test_count_gaps():
    assert count_gaps("[[a]] [[b]] [[c]]") == 3
    assert count_gaps("") == 0
    assert count_gaps(None) == 0


def test_mask_gaps_with_string_and_callable():
    text = "A [[x]] B [[y*,z]]"

    assert mask_gaps(text) == "A ____ B ____"
    assert mask_gaps(text, lambda n: f"<{n}>") == "A <1> B <2>"


def test_convert_single_brackets_keeps_existing_gaps():
    text = "The [cat] sat on [[the mat]]."

    assert convert_single_brackets(text) == "The [[cat]] sat on [[the mat]]."


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("a &amp; b", "a & b"),
        ("<em>bold</em> move", "bold move"),
        ("trailing <br", "trailing"),
        ("&nbsp;spaced&nbsp;", "spaced"),
        ("plain", "plain"),
    ],
)
def test_strip_markup(raw, expected):
    assert strip_markup(raw) == expected
