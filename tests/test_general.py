"""Tests for the general purpose matchers."""

from __future__ import annotations

import pytest

from inkmatch import MatchFailed, span
from inkmatch.general import (
    ColourKind,
    ValueKind,
    float_number,
    header_line,
    header_token,
    hex_colour,
    integer_number,
    number_or_colour,
    separated,
    ws0,
    ws1,
)

pytestmark = pytest.mark.unit


# =============================================================================
# Whitespace
# =============================================================================


def test_ws0_matches_nothing(flavour) -> None:
    m = ws0(flavour.lit("x"))
    assert m
    assert m.matched == flavour.lit("")


def test_ws0_matches_all_whitespace(flavour) -> None:
    m = ws0(flavour.lit(" \t\r\n x"))
    assert m.matched == flavour.lit(" \t\r\n ")
    assert m.rest == flavour.lit("x")


def test_ws1_requires_one(flavour) -> None:
    assert ws1(flavour.lit("x")).is_failed()
    assert ws1(flavour.lit(" x")).rest == flavour.lit("x")


# =============================================================================
# Numbers
# =============================================================================


@pytest.mark.parametrize(("text", "value", "rest"), [("-42 apples", -42, " apples"), ("7", 7, ""), ("007x", 7, "x")])
def test_integer_number(flavour, text: str, value: int, rest: str) -> None:
    m = integer_number(flavour.lit(text))
    assert int(m.matched.get()) == value
    assert m.rest == flavour.lit(rest)


@pytest.mark.parametrize("text", ["-", "x1", "", "- 1"])
def test_integer_number_rejects(text: str) -> None:
    assert integer_number(text).is_failed()


def test_integer_number_matched_covers_sign(check_partition) -> None:
    src = "-12,"
    m = integer_number(src)
    check_partition(src, m)
    assert m.matched.get_range() == (0, 3)


@pytest.mark.parametrize(
    ("text", "matched"),
    [
        ("1.5", "1.5"),
        ("-1.5e3", "-1.5e3"),
        ("1.e3", "1.e3"),
        ("1e3", "1e3"),
        ("1E+3", "1E+3"),
        (".5", ".5"),
        ("1.5.3", "1.5"),
        ("2.5e", "2.5"),
    ],
)
def test_float_number_accepts(flavour, text: str, matched: str) -> None:
    m = float_number(flavour.lit(text))
    assert m.matched == flavour.lit(matched)
    assert float(m.matched.get()) == float(matched)


@pytest.mark.parametrize("text", ["1", "1.", ".", "", "-", "e3", "abc"])
def test_float_number_rejects(flavour, text: str) -> None:
    assert float_number(flavour.lit(text)).is_failed()


# =============================================================================
# Colours
# =============================================================================


@pytest.mark.parametrize(
    ("text", "kind", "matched", "rest"),
    [
        ("#abc ", ColourKind.SHORT, "#abc", " "),
        ("#1a2b3c;", ColourKind.LONG, "#1a2b3c", ";"),
        ("#FFF", ColourKind.SHORT, "#FFF", ""),
    ],
)
def test_hex_colour(flavour, text: str, kind: ColourKind, matched: str, rest: str) -> None:
    m = hex_colour(flavour.lit(text))
    assert m.mapped is kind
    assert m.matched == flavour.lit(matched)
    assert m.rest == flavour.lit(rest)


@pytest.mark.parametrize("text", ["#12", "#1234", "#1234567", "123", "#ggg"])
def test_hex_colour_rejects(text: str) -> None:
    assert hex_colour(text).is_failed()


@pytest.mark.parametrize(
    ("text", "kind", "matched"),
    [
        ("#fff", ValueKind.COLOUR, "#fff"),
        ("123.456", ValueKind.FLOAT, "123.456"),
        ("42px", ValueKind.INTEGER, "42"),
        ("12e", ValueKind.INTEGER, "12"),
    ],
)
def test_number_or_colour(text: str, kind: ValueKind, matched: str) -> None:
    m = number_or_colour(text)
    assert m.mapped is kind
    assert m.matched == matched


def test_number_or_colour_rejects() -> None:
    assert number_or_colour("px").is_failed()


# =============================================================================
# Headers
# =============================================================================


def test_header_token() -> None:
    m = header_token("Content-Type: text/plain")
    assert m.matched == "Content-Type"
    assert header_token(": x").is_failed()


def test_header_line_crlf() -> None:
    src = b"Host: example.com\r\n\r\n"
    (name, value), rest = header_line(src).unwrap()
    assert name == b"Host"
    assert value == b"example.com"
    assert rest == b"\r\n"
    assert name.src is src and value.src is src


def test_header_line_strips_value(flavour) -> None:
    (name, value), rest = header_line(flavour.lit("X-A:\t  v  w \nnext")).take()
    assert name == flavour.lit("X-A")
    assert value == flavour.lit("v  w")
    assert rest == flavour.lit("next")


def test_header_line_empty_value() -> None:
    (name, value), rest = header_line("X-Empty:\n").take()
    assert value == ""
    assert rest == ""


@pytest.mark.parametrize("text", ["Host example.com\n", "Host: example.com", ": x\n"])
def test_header_line_rejects(text: str) -> None:
    assert header_line(text).is_failed()


# =============================================================================
# Lists
# =============================================================================


def test_separated_collects_items() -> None:
    src = "12,-34,56;"
    parts, rest = separated(src, 3, integer_number, ",").finalize()
    assert parts == ["12", "-34", "56"]
    assert rest == ";"
    assert all(p.src is src for p in parts)


def test_separated_zero_items() -> None:
    parts, rest = separated("12", 0, integer_number, ",").finalize()
    assert parts == []
    assert rest == "12"


def test_separated_fails_on_missing_item() -> None:
    with pytest.raises(MatchFailed):
        separated("12,34;", 3, integer_number, ",").finalize()


def test_separated_binary() -> None:
    parts, _ = separated(span(b"1|2"), 2, integer_number, b"|").finalize()
    assert parts == [b"1", b"2"]
