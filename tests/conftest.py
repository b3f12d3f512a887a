"""Pytest configuration and fixtures.

Provides a parametrized `flavour` fixture so the same test runs against text
and binary input, and a partition check shared by the matcher tests.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any

import pytest

from inkmatch import const
from inkmatch.main import Match, Span

# =============================================================================
# Input Flavours
# =============================================================================


@dataclass(frozen=True)
class Flavour:
    """Builds inputs and element predicates for one kind of sequence.

    Indexing `bytes` yields integers, so binary predicates test against the
    `_BYTES` classes in `inkmatch.const`.
    """

    binary: bool

    def lit(self, text: str) -> str | bytes:
        return text.encode("ascii") if self.binary else text

    def digit(self, element: Any) -> bool:
        return element in (const.DECIMAL_BYTES if self.binary else const.DECIMAL)

    def space(self, element: Any) -> bool:
        return element in (const.WHITESPACES_BYTES if self.binary else const.WHITESPACES)

    def hexdigit(self, element: Any) -> bool:
        return element in (const.HEXADECIMAL_BYTES if self.binary else const.HEXADECIMAL)


@pytest.fixture(params=[False, True], ids=["text", "binary"])
def flavour(request) -> Flavour:
    """Runs the test once with `str` input and once with `bytes` input."""
    return Flavour(binary=request.param)


# =============================================================================
# Assertions
# =============================================================================


def _check_partition(original: Any, result: Match[Span, Span]) -> None:
    matched, rest = result.take()
    assert matched.src is original
    assert rest.src is original
    assert matched.end == rest.start
    assert matched.get() + rest.get() == original[matched.start :]


@pytest.fixture
def check_partition():
    """Asserts that a match splits its input into adjacent views of the same source."""
    return _check_partition


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture
def debug_log(caplog):
    """Captures the debug records of the matching core."""
    caplog.set_level(logging.DEBUG, logger="inkmatch.main")
    return caplog
