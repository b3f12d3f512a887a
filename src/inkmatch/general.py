"""
General purpose matchers, built out of the main combinators. Can also be used as examples.

They work on both text (`str`) and binary (`bytes`, `bytearray`, `memoryview`) input.
The matched part always covers everything the matcher consumed.
"""

from __future__ import annotations
from typing import Any, Callable, TypeVar

import enum

import inkmatch.const as const
from inkmatch.main import (
    Sliceable,
    Span,
    Match,
    MappedMatch,
    CollectingMatch,
    span,
    alternatives,
    mapped_alternatives,
    match_static,
    match_static_multiple,
    match_with,
    match_min_with,
    match_exact_with_mapped,
)

_V = TypeVar("_V")

Matcher = Callable[[Span], Match[Span, Span]]


def _is_binary(s: Span) -> bool:
    return isinstance(s.src, (bytes, bytearray, memoryview))

def _lit(s: Span, text: str) -> str | bytes:
    """Converts an ASCII literal to the kind of elements `s` holds."""
    return text.encode("ascii") if _is_binary(s) else text

def _cls(s: Span, text_class: frozenset[str], binary_class: frozenset[int]) -> Callable[[Any], bool]:
    return (binary_class if _is_binary(s) else text_class).__contains__

def _consumed(start: Span, result: Match[Any, Span]) -> Match[Span, Span]:
    """Replaces the matched part with everything consumed since `start`."""
    if not result:
        return Match.failed()
    _, rest = result.take()
    return Match(start.up_to(rest), rest)

def _consumed_mapped(start: Span, result: MappedMatch[Any, Span, _V]) -> MappedMatch[Span, Span, _V]:
    return result.transform_full(lambda _, rest, mapped: MappedMatch((start.up_to(rest), mapped), rest))


# whitespace

def ws0(seq: Sliceable) -> Match[Span, Span]:
    """Matches zero or more whitespaces."""
    s = span(seq)
    return match_with(s, _cls(s, const.WHITESPACES, const.WHITESPACES_BYTES))

def ws1(seq: Sliceable) -> Match[Span, Span]:
    """Matches one or more whitespaces."""
    s = span(seq)
    return match_min_with(s, 1, _cls(s, const.WHITESPACES, const.WHITESPACES_BYTES))


# numbers

def integer_number(seq: Sliceable) -> Match[Span, Span]:
    """
    Matches an optionally negative decimal integer.

    ```
    int(integer_number("-42 apples").unwrap()[0].get())     # -42
    ```
    """
    s = span(seq)
    digit = _cls(s, const.DECIMAL, const.DECIMAL_BYTES)
    result = (
        s.into_match()
        .optional(lambda _, rest: match_static(rest, _lit(s, "-")))
        .match_min_with(1, digit)
    )
    return _consumed(s, result)

def _exponent(seq: Sliceable) -> Match[Span, Span]:
    s = span(seq)
    return (
        match_static_multiple(s, (_lit(s, "e"), _lit(s, "E")))
        .unmap()
        .optional(lambda _, rest: match_static_multiple(rest, (_lit(s, "-"), _lit(s, "+"))).unmap())
        .match_min_with(1, _cls(s, const.DECIMAL, const.DECIMAL_BYTES))
    )

def _fraction(seq: Sliceable) -> Match[Span, Span]:
    # after the dot: digits with an optional exponent, or just an exponent
    s = span(seq)
    digit = _cls(s, const.DECIMAL, const.DECIMAL_BYTES)
    return (
        alternatives(s)
        .add_path(lambda s: s.match_min_with(1, digit).optional(lambda _, rest: _exponent(rest)))
        .add_path(_exponent)
        .finalize()
    )

def float_number(seq: Sliceable) -> Match[Span, Span]:
    """
    Matches a decimal floating point number. A dot or an exponent is required.

    Accepts `1.5`, `-1.5e3`, `1.e3`, `1e3` and `.5`. Rejects `1`, `1.` and `.`.
    """
    s = span(seq)
    digit = _cls(s, const.DECIMAL, const.DECIMAL_BYTES)
    dot = _lit(s, ".")
    result = (
        s.into_match()
        .optional(lambda _, rest: match_static(rest, _lit(s, "-")))
        .alternatives()
        .add_path(lambda m: m.match_min_with(1, digit).match_static(dot).transform(lambda _, rest: _fraction(rest)))
        .add_path(lambda m: m.match_min_with(1, digit).transform(lambda _, rest: _exponent(rest)))
        .add_path(lambda m: m.match_static(dot).match_min_with(1, digit).optional(lambda _, rest: _exponent(rest)))
        .finalize()
    )
    return _consumed(s, result)


# colours

class ColourKind(enum.Enum):
    SHORT = 3
    """`#rgb`"""
    LONG = 6
    """`#rrggbb`"""

def hex_colour(seq: Sliceable) -> MappedMatch[Span, Span, ColourKind]:
    """
    Matches a `#rgb` or `#rrggbb` hex colour.

    The attached value tells which form matched.
    """
    s = span(seq)
    hexdigit = _cls(s, const.HEXADECIMAL, const.HEXADECIMAL_BYTES)
    result = (
        s.match_static(_lit(s, "#"))
        .match_exact_with_mapped(3, hexdigit, ColourKind.SHORT)
        .optional(lambda _, rest: match_exact_with_mapped(rest, 3, hexdigit, ColourKind.LONG))
        .assert_(lambda _, rest: not match_min_with(rest, 1, hexdigit))
    )
    return _consumed_mapped(s, result)


class ValueKind(enum.Enum):
    COLOUR = "colour"
    FLOAT = "float"
    INTEGER = "integer"

def number_or_colour(seq: Sliceable) -> MappedMatch[Span, Span, ValueKind]:
    """
    Matches a hex colour, a float or an integer, in that order.

    ```
    m = number_or_colour("12.5px")
    m.mapped    # ValueKind.FLOAT
    ```
    """
    return (
        mapped_alternatives(span(seq))
        .add_path(lambda s: hex_colour(s).transform_mapped(lambda _: ValueKind.COLOUR))
        .add_path(lambda s: float_number(s).map(ValueKind.FLOAT))
        .add_path(lambda s: integer_number(s).map(ValueKind.INTEGER))
        .finalize()
    )


# headers

def header_token(seq: Sliceable) -> Match[Span, Span]:
    """Matches an HTTP token, like a header name. (At least one token character.)"""
    s = span(seq)
    return match_min_with(s, 1, _cls(s, const.TOKEN, const.TOKEN_BYTES))

def _rstrip(s: Span, predicate: Callable[[Any], bool]) -> Span:
    end = len(s)
    while end > 0 and predicate(s[end - 1]):
        end -= 1
    return s[:end]

def header_line(seq: Sliceable) -> Match[tuple[Span, Span], Span]:
    """
    Matches a `Name: value` header line, terminated by CRLF or LF.

    The matched part is a `(name, value)` pair. Whitespace around the value is left out.

    ```
    (name, value), rest = header_line(b"Host: example.com\\r\\n\\r\\n").unwrap()
    name == b"Host"             # True
    value == b"example.com"     # True
    ```
    """
    s = span(seq)
    blank = _cls(s, frozenset(" \t"), frozenset(b" \t"))
    eol = _cls(s, frozenset("\r\n"), frozenset(b"\r\n"))
    chain = (
        header_token(s)
        .discarding(lambda _, rest: match_static(rest, _lit(s, ":")))
        .discarding(lambda _, rest: match_with(rest, blank))
        .into_collecting()
        .single(lambda _, rest: match_with(rest, lambda e: not eol(e)))
        .discarding(lambda _, rest: match_static_multiple(rest, (_lit(s, "\r\n"), _lit(s, "\n"))))
    )
    if not chain:
        return Match.failed()
    (name, value), rest = chain.finalize()
    return Match((name, _rstrip(value, blank)), rest)


# lists

def separated(seq: Sliceable, count: int, item: Matcher, separator: Sliceable) -> CollectingMatch[Span, Span]:
    """
    Matches exactly `count` items with a separator between each of them.

    The separators aren't collected.

    ```
    parts, rest = separated("12,34,56;", 3, integer_number, ",").finalize()
    # parts: <Span '12'>, <Span '34'>, <Span '56'>    rest: ';'
    ```
    """
    s = span(seq)
    if count <= 0:
        return s.into_match().into_collecting()
    return (
        item(s)
        .into_collecting()
        .repeat(count - 1, lambda _, rest: match_static(rest, separator).transform(lambda _, rest: item(rest)))
    )
