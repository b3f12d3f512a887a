"""Tests for alternation trees."""

from __future__ import annotations

import enum

import pytest

from inkmatch import (
    CollectingMatch,
    MappedMatch,
    Match,
    alternatives,
    into_match,
    mapped_alternatives,
    match_exact_with,
    match_static,
    match_static_mapped,
    span,
)

pytestmark = pytest.mark.unit


def _digit(c: str) -> bool:
    return c.isdigit()


def _recording(calls: list[str], name: str, result):
    def branch(start):
        calls.append(name)
        return result(start)

    return branch


def test_first_success_short_circuits() -> None:
    """Branches after the first success are never called."""
    calls: list[str] = []
    tree = (
        alternatives(span("abc"))
        .add_path(_recording(calls, "A", lambda s: match_static(s, "x")))
        .add_path(_recording(calls, "B", lambda s: match_static(s, "ab")))
        .add_path(_recording(calls, "C", lambda s: match_static(s, "a")))
    )
    assert tree.is_matched()
    assert tree.finalize() == match_static("abc", "ab")
    assert calls == ["A", "B"]


def test_earliest_branch_wins_over_longer_match() -> None:
    m = (
        alternatives(span("abc"))
        .add_path(lambda s: match_static(s, "a"))
        .add_path(lambda s: match_static(s, "abc"))
        .finalize()
    )
    assert m.matched == "a"


def test_all_branches_failing_fails() -> None:
    calls: list[str] = []
    tree = (
        alternatives(span("abc"))
        .add_path(_recording(calls, "A", lambda s: match_static(s, "x")))
        .add_path(_recording(calls, "B", lambda s: match_static(s, "y")))
    )
    assert not tree.is_matched()
    assert tree.finalize().is_failed()
    assert calls == ["A", "B"]


def test_empty_tree_fails() -> None:
    assert alternatives(span("abc")).finalize().is_failed()


def test_branches_receive_same_start() -> None:
    start = match_static("#123456", "#")
    seen = []
    (
        start.alternatives()
        .add_path(lambda m: seen.append(m) or Match.failed())
        .add_path_ref(lambda m: seen.append(m) or Match.failed())
        .finalize()
    )
    assert seen == [start, start]
    assert seen[0] is start and seen[1] is start


@pytest.mark.parametrize(("src", "ok"), [("#123456", True), ("#012340", False)])
def test_nested_chain(src: str, ok: bool) -> None:
    m = (
        match_static(src, "#")
        .alternatives()
        .add_path(lambda m: m.match_static("00"))
        .add_path(lambda m: m.match_static("12").match_exact_with(4, _digit))
        .add_path(lambda m: m.match_static("01").match_static("2341"))
        .add_path(lambda m: m.match_static("0").match_exact_with(5, str.isalpha))
        .finalize()
    )
    assert bool(m) is ok


def test_bare_sequence_branch_counts_as_success() -> None:
    m = alternatives(span("ab")).add_path(lambda s: s[1:]).finalize()
    assert m
    assert m.matched is None
    assert m.rest == "b"


def test_winner_is_logged(debug_log) -> None:
    (
        alternatives(span("ab"))
        .add_path(lambda s: match_static(s, "x"))
        .add_path(lambda s: match_static(s, "a"))
        .add_path(lambda s: match_static(s, "ab"))
        .finalize()
    )
    assert "Alternative 1 of 3 matched" in [r.getMessage() for r in debug_log.records]


def test_failure_is_logged(debug_log) -> None:
    alternatives(span("ab")).add_path(lambda s: match_static(s, "x")).finalize()
    assert "No alternative matched out of 1" in [r.getMessage() for r in debug_log.records]


# =============================================================================
# Mapped
# =============================================================================


class Kind(enum.Enum):
    HASH = enum.auto()
    BANG = enum.auto()
    DIGITS = enum.auto()


@pytest.mark.parametrize(
    ("src", "kind"),
    [("#1", Kind.HASH), ("!1", Kind.BANG), ("12", Kind.DIGITS)],
)
def test_mapped_branch_value_tells_winner(src: str, kind: Kind) -> None:
    m = (
        mapped_alternatives(span(src))
        .add_path(lambda s: match_static_mapped(s, "#", Kind.HASH))
        .add_path(lambda s: match_static_mapped(s, "!", Kind.BANG))
        .add_path(lambda s: match_exact_with(s, 2, _digit).map(Kind.DIGITS))
        .finalize()
    )
    assert type(m) is MappedMatch
    assert m.mapped is kind


def test_mapped_failure() -> None:
    m = (
        into_match("x")
        .mapped_alternatives()
        .add_path(lambda m: m.match_static_mapped("#", Kind.HASH))
        .add_path_ref(lambda m: m.match_static_mapped("!", Kind.BANG))
        .finalize()
    )
    assert type(m) is MappedMatch
    assert m.is_failed()


def test_mapped_branch_must_return_mapped_match() -> None:
    with pytest.raises(TypeError):
        mapped_alternatives(span("a")).add_path(lambda s: match_static(s, "a"))


def test_mapped_short_circuits() -> None:
    calls: list[str] = []
    (
        mapped_alternatives(span("#"))
        .add_path(_recording(calls, "A", lambda s: match_static_mapped(s, "#", Kind.HASH)))
        .add_path(_recording(calls, "B", lambda s: match_static_mapped(s, "#", Kind.BANG)))
        .finalize()
    )
    assert calls == ["A"]


@pytest.mark.parametrize("tree", [alternatives, mapped_alternatives])
def test_failed_collecting_start_never_calls_branches(tree) -> None:
    calls = []
    m = tree(CollectingMatch.failed()).add_path(lambda s: calls.append(s) or span("x")).finalize()
    assert m.is_failed()
    assert calls == []
