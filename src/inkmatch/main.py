"""
The implementations of the main classes.
"""

from __future__ import annotations
from typing import overload, Any, Self, TypeVar, Generic, SupportsIndex, Final, Callable, Protocol

from collections.abc import Iterator, Iterable, Sequence
import logging
import operator
import traceback


log = logging.getLogger(__name__)


_T = TypeVar("_T")
_U = TypeVar("_U")
_V = TypeVar("_V")
_MatchedT = TypeVar("_MatchedT")
_RestT = TypeVar("_RestT")
_MappedT = TypeVar("_MappedT")
_PayloadT = TypeVar("_PayloadT")



class Sliceable(Protocol):
    """
    The minimal contract a matchable sequence has to satisfy.

    `str`, `bytes`, `bytearray`, `memoryview`, `list` and `tuple` all satisfy it.
    """
    def __len__(self) -> int: ...
    def __getitem__(self, key: Any) -> Any: ...

Predicate = Callable[[Any], Any]
"""A per-element test. The return value is cast to a boolean."""


def _as_count(value: SupportsIndex) -> int:
    """Normalizes a count argument. Negative counts are rejected instead of wrapping around."""
    count = operator.index(value)
    if count < 0:
        raise ValueError(f"Expected a non-negative count, got {count}.")
    return count


def _kind(value: object) -> str:
    if isinstance(value, str):
        return "text"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "binary"
    return "sequence"


class Span:
    """
    A read-only view of `src[start:end]`.

    Slicing a span returns another span over the same source, so matching never copies the input.

    ```
    s = Span("#123456")
    s[1:4]          # <Span 1..4 '123'>
    s[1:4] == "123" # True
    s[1:4].get()    # '123'
    ```
    """
    def __init__(self, src: Sliceable, start: int = 0, end: int | None = None) -> None:
        """
        `src`: The sequence that's being viewed.
        `start`, `end`: The bounds of the view within `src`. `end` defaults to the length of `src`.
        """
        if isinstance(src, Span):
            raise TypeError("Use `span()` or slice the span to view another span.")
        if end is None:
            end = len(src)
        if not 0 <= start <= end <= len(src):
            raise ValueError(f"Invalid span bounds {start}..{end} for a source of length {len(src)}.")
        self.src: Final[Sliceable] = src
        """The sequence that's being viewed."""
        self.start: Final[int] = start
        """The starting position (inclusive) within `src`."""
        self.end: Final[int] = end
        """The ending position (exclusive) within `src`."""

    def __len__(self) -> int:
        return self.end - self.start

    @overload
    def __getitem__(self, key: SupportsIndex) -> Any: ...
    @overload
    def __getitem__(self, key: slice) -> Span: ...

    def __getitem__(self, key: SupportsIndex | slice) -> Any:
        if isinstance(key, slice):
            start, stop, step = key.indices(len(self))
            if step != 1:
                raise ValueError("Spans can only be sliced with a step of 1.")
            stop = max(start, stop)
            return Span(self.src, self.start + start, self.start + stop)
        index = operator.index(key)
        if index < 0:
            index += len(self)
        if not 0 <= index < len(self):
            raise IndexError("Span index out of range.")
        return self.src[self.start + index]

    def __iter__(self) -> Iterator[Any]:
        for i in range(self.start, self.end):
            yield self.src[i]

    def split_at(self, index: int) -> tuple[Span, Span]:
        """Splits the span into a prefix of `index` elements and the suffix after it."""
        index = max(0, min(index, len(self)))
        return (Span(self.src, self.start, self.start + index), Span(self.src, self.start + index, self.end))

    def get_range(self) -> tuple[int, int]:
        return (self.start, self.end)

    def get(self) -> Any:
        """Materializes the viewed slice. This is the only operation that copies."""
        return self.src[self.start : self.end]

    def up_to(self, other: Span) -> Span:
        """
        Returns the span from the start of this span to the start of `other`.

        Used to recover everything consumed between two points of a chain:
        ```
        start = span("-123 rest")
        _, rest = match_integer(start).unwrap()
        start.up_to(rest)   # <Span 0..4 '-123'>
        ```
        """
        if other.src is not self.src:
            raise ValueError("The spans don't view the same source.")
        if other.start < self.start:
            raise ValueError("The other span starts before this one.")
        return Span(self.src, self.start, other.start)

    def startswith(self, pattern: Sliceable) -> bool:
        """Whether the span starts with the given elements."""
        if len(pattern) > len(self):
            return False
        # fast paths for text and binary sources, no copying
        if isinstance(self.src, str) and isinstance(pattern, str):
            return self.src.startswith(pattern, self.start, self.end)
        if isinstance(self.src, (bytes, bytearray)) and isinstance(pattern, (bytes, bytearray)):
            return self.src.startswith(pattern, self.start, self.end)
        # mismatched kinds (e.g. `bytes` against `str`) never compare equal element-wise
        return all(a == b for a, b in zip(self, pattern))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, (Span, Sequence, memoryview)):
            return NotImplemented
        # like the builtins, text only equals text and bytes only equal bytes
        if _kind(self.src) != _kind(other.src if isinstance(other, Span) else other):
            return False
        return len(self) == len(other) and self.startswith(other)

    def __hash__(self) -> int:
        # equal spans are of the same kind, so they normalize to the same value
        kind = _kind(self.src)
        if kind == "text":
            return hash(self.get())
        if kind == "binary":
            return hash(bytes(self.get()))
        return hash(tuple(self))

    def __repr__(self) -> str:
        return f"<Span {self.start}..{self.end} {self.get()!r}>"

    # matchers

    def into_match(self) -> Match[Any, Span]:
        """Same as `into_match()`."""
        return Match(None, self)

    def match_static(self, pattern: Sliceable, *, partial: bool = False) -> Match[Span, Span]:
        """Same as `match_static()`."""
        return match_static(self, pattern, partial=partial)

    def match_static_mapped(self, pattern: Sliceable, value: _V, *, partial: bool = False) -> MappedMatch[Span, Span, _V]:
        """Same as `match_static_mapped()`."""
        return match_static_mapped(self, pattern, value, partial=partial)

    def match_static_multiple(self, patterns: Iterable[Sliceable], *, partial: bool = False) -> MappedMatch[Span, Span, int]:
        """Same as `match_static_multiple()`."""
        return match_static_multiple(self, patterns, partial=partial)

    def match_with(self, predicate: Predicate) -> Match[Span, Span]:
        """Same as `match_with()`."""
        return match_with(self, predicate)

    def match_with_mapped(self, predicate: Predicate, value: _V) -> MappedMatch[Span, Span, _V]:
        """Same as `match_with_mapped()`."""
        return match_with_mapped(self, predicate, value)

    def match_min_with(self, minimum: SupportsIndex, predicate: Predicate) -> Match[Span, Span]:
        """Same as `match_min_with()`."""
        return match_min_with(self, minimum, predicate)

    def match_max_with(self, maximum: SupportsIndex, predicate: Predicate) -> Match[Span, Span]:
        """Same as `match_max_with()`."""
        return match_max_with(self, maximum, predicate)

    def match_min_max_with(self, minimum: SupportsIndex, maximum: SupportsIndex, predicate: Predicate) -> Match[Span, Span]:
        """Same as `match_min_max_with()`."""
        return match_min_max_with(self, minimum, maximum, predicate)

    def match_exact_with(self, count: SupportsIndex, predicate: Predicate) -> Match[Span, Span]:
        """Same as `match_exact_with()`."""
        return match_exact_with(self, count, predicate)

    def match_min_with_mapped(self, minimum: SupportsIndex, predicate: Predicate, value: _V) -> MappedMatch[Span, Span, _V]:
        """Same as `match_min_with_mapped()`."""
        return match_min_with_mapped(self, minimum, predicate, value)

    def match_max_with_mapped(self, maximum: SupportsIndex, predicate: Predicate, value: _V) -> MappedMatch[Span, Span, _V]:
        """Same as `match_max_with_mapped()`."""
        return match_max_with_mapped(self, maximum, predicate, value)

    def match_min_max_with_mapped(self, minimum: SupportsIndex, maximum: SupportsIndex, predicate: Predicate, value: _V) -> MappedMatch[Span, Span, _V]:
        """Same as `match_min_max_with_mapped()`."""
        return match_min_max_with_mapped(self, minimum, maximum, predicate, value)

    def match_exact_with_mapped(self, count: SupportsIndex, predicate: Predicate, value: _V) -> MappedMatch[Span, Span, _V]:
        """Same as `match_exact_with_mapped()`."""
        return match_exact_with_mapped(self, count, predicate, value)

    def alternatives(self) -> AlternativesMatch[Span]:
        """Same as `alternatives()`."""
        return AlternativesMatch(self)

    def mapped_alternatives(self) -> MappedAlternativesMatch[Span]:
        """Same as `mapped_alternatives()`."""
        return MappedAlternativesMatch(self)


def span(value: Sliceable) -> Span:
    """Views the whole sequence as a `Span`. Spans are returned as-is."""
    if isinstance(value, Span):
        return value
    return Span(value)



class MatchFailed(Exception):
    """
    The only recoverable matching error. Carries no payload.

    Raised by `take()` and `finalize()` when the result has failed.
    """

class UnwrapError(Exception):
    """
    Raised by `unwrap()` and `expect()` when called on a failed result.

    Only meant for call sites where failure is known to be impossible. Has a note pointing at the caller.
    """

def _unwrap_error(msg: str | None) -> UnwrapError:
    # [-1] is this function, [-2] the accessor, [-3] its caller
    caller = traceback.extract_stack(limit=3)[0]
    log.debug("Unwrapped a failed match at %s:%s", caller.filename, caller.lineno)
    err = UnwrapError(msg if msg is not None else "Called `unwrap()` on a failed match.")
    err.add_note(f"Called at {caller.filename}:{caller.lineno}")
    return err

def _rest_of(value: object) -> Any:
    """The rest of a step function's return value, whatever kind of result it is."""
    if isinstance(value, (_MatchBase, CollectingMatch)):
        return value._rest
    return span(value)  # type: ignore[arg-type]



class _MatchBase(Generic[_PayloadT, _RestT]):
    """
    Shared implementation of `Match` and `MappedMatch`.

    The payload is whatever a successful step carries besides the rest. (`matched`, or `(matched, mapped)`)
    """
    def __init__(self, payload: _PayloadT | None, rest: _RestT) -> None:
        self._payload: _PayloadT | None = payload
        self._rest: _RestT | None = rest

    @classmethod
    def failed(cls) -> Self:
        """Constructs the failed result."""
        result = cls.__new__(cls)
        result._payload = None
        result._rest = None
        return result

    @classmethod
    def coerce(cls, value: object) -> Self:
        """
        Converts a step function's return value into a result of this type.

        A bare sequence becomes a result with only a "rest" part.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, _MatchBase):
            raise TypeError(f"Expected a {cls.__name__}, got a {type(value).__name__}.")
        return cls(None, span(value))  # type: ignore[arg-type]

    def is_failed(self) -> bool:
        """Whether the match failed. The opposite of `__bool__()`."""
        return self._rest is None

    def __bool__(self) -> bool:
        """Whether the match succeeded. The opposite of `is_failed()`."""
        return self._rest is not None

    @property
    def rest(self) -> _RestT | None:
        """The unconsumed remainder. `None` if the match failed."""
        return self._rest

    def take(self) -> tuple[_PayloadT | None, _RestT]:
        """Returns the parts of the result. Raises `MatchFailed` if the match failed."""
        if self._rest is None:
            raise MatchFailed()
        return (self._payload, self._rest)

    def unwrap(self) -> tuple[_PayloadT | None, _RestT]:
        """Same as `take()`, but raises `UnwrapError` instead. For results that can't fail."""
        if self._rest is None:
            raise _unwrap_error(None)
        return (self._payload, self._rest)

    def expect(self, msg: str) -> tuple[_PayloadT | None, _RestT]:
        """Same as `unwrap()` with a custom error message."""
        if self._rest is None:
            raise _unwrap_error(msg)
        return (self._payload, self._rest)

    def clear(self) -> Self:
        """Drops the matched part while keeping the rest."""
        if self._rest is None:
            return self
        return type(self)(None, self._rest)

    def assert_(self, predicate: Callable[[_PayloadT | None, _RestT], Any]) -> Self:
        """
        Fails the match if the predicate doesn't hold.

        Failed results pass through without calling the predicate.
        """
        if self._rest is None:
            return self
        if predicate(self._payload, self._rest):
            return self
        return self.failed()

    def execute(self, f: Callable[[_PayloadT | None, _RestT], Any]) -> Self:
        """
        Calls the function for its side effects if the match succeeded.

        Returns the result unchanged.
        """
        if self._rest is not None:
            f(self._payload, self._rest)
        return self

    def discarding(self, f: Callable[[_PayloadT | None, _RestT], Any]) -> Self:
        """
        Keeps the matched part while adopting the rest of the result returned by `f`.

        Used to consume filler, like separators, without touching the matched part:
        ```
        match_exact_with(s, 2, str.isdigit).discarding(lambda _, rest: match_with(rest, str.isspace))
        ```

        `f` can return any kind of result, or a bare sequence. Fails if `f`'s result fails.
        """
        if self._rest is None:
            return self
        rest = _rest_of(f(self._payload, self._rest))
        if rest is None:
            return self.failed()
        return type(self)(self._payload, rest)

    def discarding_ref(self, f: Callable[[_PayloadT | None, _RestT], Any]) -> Self:
        """Same as `discarding()`."""
        return self.discarding(f)

    def optional(self, f: Callable[[_PayloadT | None, _RestT], Any]) -> Self:
        """
        Attempts to extend the match with `f`.

        If `f`'s result fails, the original result is returned unchanged. Otherwise `f`'s result is returned.

        A failed result stays failed.
        """
        if self._rest is None:
            return self
        result = self.coerce(f(self._payload, self._rest))
        if result._rest is None:
            return self
        return result

    def optional_ref(self, f: Callable[[_PayloadT | None, _RestT], Any]) -> Self:
        """Same as `optional()`."""
        return self.optional(f)

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        assert isinstance(other, _MatchBase)
        return self._payload == other._payload and self._rest == other._rest

    __hash__ = None  # type: ignore[assignment]

    # chaining: every matcher applies to the rest

    def match_static(self, pattern: Sliceable, *, partial: bool = False) -> Match[Span, Span]:
        """Matches the rest with `match_static()`."""
        if self._rest is None:
            return Match.failed()
        return match_static(self._rest, pattern, partial=partial)  # type: ignore[arg-type]

    def match_static_mapped(self, pattern: Sliceable, value: _V, *, partial: bool = False) -> MappedMatch[Span, Span, _V]:
        """Matches the rest with `match_static_mapped()`."""
        if self._rest is None:
            return MappedMatch.failed()
        return match_static_mapped(self._rest, pattern, value, partial=partial)  # type: ignore[arg-type]

    def match_static_multiple(self, patterns: Iterable[Sliceable], *, partial: bool = False) -> MappedMatch[Span, Span, int]:
        """Matches the rest with `match_static_multiple()`."""
        if self._rest is None:
            return MappedMatch.failed()
        return match_static_multiple(self._rest, patterns, partial=partial)  # type: ignore[arg-type]

    def match_with(self, predicate: Predicate) -> Match[Span, Span]:
        """Matches the rest with `match_with()`."""
        if self._rest is None:
            return Match.failed()
        return match_with(self._rest, predicate)  # type: ignore[arg-type]

    def match_with_mapped(self, predicate: Predicate, value: _V) -> MappedMatch[Span, Span, _V]:
        """Matches the rest with `match_with_mapped()`."""
        if self._rest is None:
            return MappedMatch.failed()
        return match_with_mapped(self._rest, predicate, value)  # type: ignore[arg-type]

    def match_min_with(self, minimum: SupportsIndex, predicate: Predicate) -> Match[Span, Span]:
        """Matches the rest with `match_min_with()`."""
        if self._rest is None:
            return Match.failed()
        return match_min_with(self._rest, minimum, predicate)  # type: ignore[arg-type]

    def match_max_with(self, maximum: SupportsIndex, predicate: Predicate) -> Match[Span, Span]:
        """Matches the rest with `match_max_with()`."""
        if self._rest is None:
            return Match.failed()
        return match_max_with(self._rest, maximum, predicate)  # type: ignore[arg-type]

    def match_min_max_with(self, minimum: SupportsIndex, maximum: SupportsIndex, predicate: Predicate) -> Match[Span, Span]:
        """Matches the rest with `match_min_max_with()`."""
        if self._rest is None:
            return Match.failed()
        return match_min_max_with(self._rest, minimum, maximum, predicate)  # type: ignore[arg-type]

    def match_exact_with(self, count: SupportsIndex, predicate: Predicate) -> Match[Span, Span]:
        """Matches the rest with `match_exact_with()`."""
        if self._rest is None:
            return Match.failed()
        return match_exact_with(self._rest, count, predicate)  # type: ignore[arg-type]

    def match_min_with_mapped(self, minimum: SupportsIndex, predicate: Predicate, value: _V) -> MappedMatch[Span, Span, _V]:
        """Matches the rest with `match_min_with_mapped()`."""
        if self._rest is None:
            return MappedMatch.failed()
        return match_min_with_mapped(self._rest, minimum, predicate, value)  # type: ignore[arg-type]

    def match_max_with_mapped(self, maximum: SupportsIndex, predicate: Predicate, value: _V) -> MappedMatch[Span, Span, _V]:
        """Matches the rest with `match_max_with_mapped()`."""
        if self._rest is None:
            return MappedMatch.failed()
        return match_max_with_mapped(self._rest, maximum, predicate, value)  # type: ignore[arg-type]

    def match_min_max_with_mapped(self, minimum: SupportsIndex, maximum: SupportsIndex, predicate: Predicate, value: _V) -> MappedMatch[Span, Span, _V]:
        """Matches the rest with `match_min_max_with_mapped()`."""
        if self._rest is None:
            return MappedMatch.failed()
        return match_min_max_with_mapped(self._rest, minimum, maximum, predicate, value)  # type: ignore[arg-type]

    def match_exact_with_mapped(self, count: SupportsIndex, predicate: Predicate, value: _V) -> MappedMatch[Span, Span, _V]:
        """Matches the rest with `match_exact_with_mapped()`."""
        if self._rest is None:
            return MappedMatch.failed()
        return match_exact_with_mapped(self._rest, count, predicate, value)  # type: ignore[arg-type]

    def alternatives(self) -> AlternativesMatch[Self]:
        """
        Starts an alternation tree with this result as the shared starting point.

        Branches usually chain matchers onto it, which apply to the rest.
        """
        return AlternativesMatch(self)

    def mapped_alternatives(self) -> MappedAlternativesMatch[Self]:
        """Same as `alternatives()`, but the branches return `MappedMatch`es."""
        return MappedAlternativesMatch(self)


class Match(_MatchBase[_MatchedT, _RestT]):
    """
    The result of a matching step: an optional "matched" part and the "rest".

    A failed match has neither.

    ```
    m = match_static("#123", "#").match_exact_with(3, str.isdigit)
    if m:
        matched, rest = m.take()    # <Span 1..4 '123'>, <Span 4..4 ''>
    else:
        ... # failed
    ```

    Chaining onto a failed match is a no-op that returns another failed match.
    """
    def __init__(self, matched: _MatchedT | None, rest: _RestT) -> None:
        """
        Constructs a successful match. Use `Match.failed()` for failures.

        `matched` can be `None` when nothing was consumed.
        """
        super().__init__(matched, rest)

    @property
    def matched(self) -> _MatchedT | None:
        """The consumed part. `None` if the match failed or didn't produce one."""
        return self._payload

    def transform(self, f: Callable[[_MatchedT | None, _RestT], Any]) -> Match[Any, Any]:
        """
        Replaces the result with the one returned by `f`. Only called if the match succeeded.

        `f` can return a `Match`, or a bare sequence, which becomes the rest of a match with no matched part.
        """
        if self._rest is None:
            return Match.failed()
        return Match.coerce(f(self._payload, self._rest))

    def transform_full(self, f: Callable[[_MatchedT, _RestT], Any]) -> Match[Any, Any]:
        """Same as `transform()`, but fails if there's no matched part."""
        if self._rest is None or self._payload is None:
            return Match.failed()
        return Match.coerce(f(self._payload, self._rest))

    def transform_matched(self, f: Callable[[_MatchedT], _T]) -> Match[_T, _RestT]:
        """Applies the function to the matched part, if any."""
        if self._rest is None:
            return Match.failed()
        if self._payload is None:
            return Match(None, self._rest)
        return Match(f(self._payload), self._rest)

    def transform_rest(self, f: Callable[[_RestT], _U]) -> Match[_MatchedT, _U]:
        """Applies the function to the rest."""
        if self._rest is None:
            return Match.failed()
        return Match(self._payload, f(self._rest))

    def map(self, value: _V) -> MappedMatch[_MatchedT, _RestT, _V]:
        """
        Attaches a value to the match.

        The value is only kept if there's a matched part.
        """
        if self._rest is None:
            return MappedMatch.failed()
        if self._payload is None:
            return MappedMatch(None, self._rest)
        return MappedMatch((self._payload, value), self._rest)

    def into_collecting(self) -> CollectingMatch[_MatchedT, _RestT]:
        """Same as `into_collecting()`."""
        return CollectingMatch.from_match(self)

    def __repr__(self) -> str:
        if self._rest is None:
            return "<Match failed>"
        return f"<Match {self._payload!r} | {self._rest!r}>"


class MappedMatch(_MatchBase[tuple[_MatchedT, _MappedT], _RestT]):
    """
    A `Match` that also carries a caller supplied value next to its matched part.

    Used to tell which alternative matched without inspecting the matched part again.

    ```
    m = match_min_with_mapped("123", 1, str.isdigit, "integer")
    m.mapped    # 'integer'
    ```
    """
    def __init__(self, matched: tuple[_MatchedT, _MappedT] | None, rest: _RestT) -> None:
        """
        Constructs a successful match. Use `MappedMatch.failed()` for failures.

        `matched` is a `(matched, mapped)` pair, or `None` when nothing was consumed.
        """
        super().__init__(matched, rest)

    @property
    def matched(self) -> _MatchedT | None:
        """The consumed part. `None` if the match failed or didn't produce one."""
        if self._payload is None:
            return None
        return self._payload[0]

    @property
    def mapped(self) -> _MappedT | None:
        """The attached value. `None` if the match failed or didn't produce a matched part."""
        if self._payload is None:
            return None
        return self._payload[1]

    def transform(self, f: Callable[[tuple[_MatchedT, _MappedT] | None, _RestT], Any]) -> MappedMatch[Any, Any, Any]:
        """
        Replaces the result with the one returned by `f`. Only called if the match succeeded.

        `f` receives the `(matched, mapped)` pair (or `None`) and the rest.
        """
        if self._rest is None:
            return MappedMatch.failed()
        return MappedMatch.coerce(f(self._payload, self._rest))

    def transform_full(self, f: Callable[[_MatchedT, _RestT, _MappedT], Any]) -> MappedMatch[Any, Any, Any]:
        """
        Same as `transform()`, but fails if there's no matched part.

        `f` receives `(matched, rest, mapped)`.
        """
        if self._rest is None or self._payload is None:
            return MappedMatch.failed()
        matched, mapped = self._payload
        return MappedMatch.coerce(f(matched, self._rest, mapped))

    def transform_matched(self, f: Callable[[_MatchedT], _T]) -> MappedMatch[_T, _RestT, _MappedT]:
        """Applies the function to the matched part, if any."""
        if self._rest is None:
            return MappedMatch.failed()
        if self._payload is None:
            return MappedMatch(None, self._rest)
        matched, mapped = self._payload
        return MappedMatch((f(matched), mapped), self._rest)

    def transform_rest(self, f: Callable[[_RestT], _U]) -> MappedMatch[_MatchedT, _U, _MappedT]:
        """Applies the function to the rest."""
        if self._rest is None:
            return MappedMatch.failed()
        return MappedMatch(self._payload, f(self._rest))

    def transform_mapped(self, f: Callable[[_MappedT], _T]) -> MappedMatch[_MatchedT, _RestT, _T]:
        """Applies the function to the attached value, if any."""
        if self._rest is None:
            return MappedMatch.failed()
        if self._payload is None:
            return MappedMatch(None, self._rest)
        matched, mapped = self._payload
        return MappedMatch((matched, f(mapped)), self._rest)

    def unmap(self, f: Callable[[_MappedT], Any] | None = None) -> Match[_MatchedT, _RestT]:
        """
        Separates the attached value from the match.

        If there's a value, it's passed to `f`.
        """
        if self._rest is None:
            return Match.failed()
        if self._payload is None:
            return Match(None, self._rest)
        matched, mapped = self._payload
        if f is not None:
            f(mapped)
        return Match(matched, self._rest)

    def into_collecting(self, f: Callable[[_MappedT], Any] | None = None) -> CollectingMatch[_MatchedT, _RestT]:
        """Unmaps (see `unmap()`) and converts into a `CollectingMatch`."""
        return CollectingMatch.from_match(self.unmap(f))

    def __repr__(self) -> str:
        if self._rest is None:
            return "<MappedMatch failed>"
        if self._payload is None:
            return f"<MappedMatch None | {self._rest!r}>"
        return f"<MappedMatch {self._payload[0]!r} {{{self._payload[1]!r}}} | {self._rest!r}>"


def into_match(value: Sliceable) -> Match[Any, Span]:
    """Wraps a sequence into a successful `Match` that hasn't consumed anything."""
    return Match(None, span(value))



class CollectingMatch(Generic[_MatchedT, _RestT]):
    """
    Repeatedly applies matching steps to the rest, collecting the matched parts.

    ```
    r = (
        match_static("#123456", "#")
        .into_collecting()
        .repeat(3, lambda last, rest: match_exact_with(rest, 2, str.isdigit))
    )
    parts, rest = r.finalize()  # ['#', '12', '34', '56'] (as spans), ''
    ```

    A single failing step fails the whole chain and drops everything collected so far.
    """
    def __init__(self, matches: list[_MatchedT], rest: _RestT) -> None:
        self._matches: list[_MatchedT] = matches
        self._rest: _RestT | None = rest

    @classmethod
    def failed(cls) -> Self:
        """Constructs the failed chain."""
        result = cls.__new__(cls)
        result._matches = []
        result._rest = None
        return result

    @classmethod
    def from_match(cls, match: Match[_MatchedT, _RestT]) -> CollectingMatch[_MatchedT, _RestT]:
        """Starts a chain from a match. Its matched part, if any, is the first collected item."""
        matched, rest = match._payload, match._rest
        if rest is None:
            return cls.failed()
        return cls([] if matched is None else [matched], rest)

    def is_failed(self) -> bool:
        """Whether any step failed. The opposite of `__bool__()`."""
        return self._rest is None

    def __bool__(self) -> bool:
        """Whether every step succeeded. The opposite of `is_failed()`."""
        return self._rest is not None

    @property
    def matches(self) -> tuple[_MatchedT, ...]:
        """The collected parts so far. Empty if the chain failed."""
        return tuple(self._matches)

    @property
    def rest(self) -> _RestT | None:
        """The unconsumed remainder. `None` if the chain failed."""
        return self._rest

    def _last(self) -> _MatchedT | None:
        return self._matches[-1] if self._matches else None

    def finalize(self) -> tuple[list[_MatchedT], _RestT]:
        """Returns the collected parts and the final rest. Raises `MatchFailed` if any step failed."""
        if self._rest is None:
            raise MatchFailed()
        return (list(self._matches), self._rest)

    def unwrap(self) -> tuple[list[_MatchedT], _RestT]:
        """Same as `finalize()`, but raises `UnwrapError` instead. For chains that can't fail."""
        if self._rest is None:
            raise _unwrap_error(None)
        return (list(self._matches), self._rest)

    def expect(self, msg: str) -> tuple[list[_MatchedT], _RestT]:
        """Same as `unwrap()` with a custom error message."""
        if self._rest is None:
            raise _unwrap_error(msg)
        return (list(self._matches), self._rest)

    def assert_(self, predicate: Callable[[_MatchedT | None, _RestT], Any]) -> Self:
        """Fails the chain if the predicate doesn't hold for the last collected part and the rest."""
        if self._rest is None:
            return self
        if predicate(self._last(), self._rest):
            return self
        return self.failed()

    def execute(self, f: Callable[[_MatchedT | None, _RestT], Any]) -> Self:
        """Calls the function with the last collected part and the rest, for side effects only."""
        if self._rest is not None:
            f(self._last(), self._rest)
        return self

    def single(self, f: Callable[[_MatchedT | None, _RestT], Any]) -> Self:
        """
        Applies one matching step to the rest.

        `f` receives the last collected part (or `None`) and the rest, and returns a `Match`.
        On success its matched part, if any, is collected and its rest adopted.
        """
        if self._rest is None:
            return self
        result = Match.coerce(f(self._last(), self._rest))
        if result._rest is None:
            log.debug("Collecting match failed after %d collected parts", len(self._matches))
            return self.failed()
        matches = list(self._matches)
        if result._payload is not None:
            matches.append(result._payload)
        return type(self)(matches, result._rest)

    def repeat(self, count: SupportsIndex, f: Callable[[_MatchedT | None, _RestT], Any]) -> Self:
        """
        Applies `single(f)` exactly `count` times.

        Stops at the first failing step, which fails the whole chain.
        """
        result = self
        for _ in range(_as_count(count)):
            if result._rest is None:
                break
            result = result.single(f)
        return result

    def discarding(self, f: Callable[[_MatchedT | None, _RestT], Any]) -> Self:
        """
        Adopts the rest of `f`'s result without collecting its matched part.

        Used to consume filler between repeated items. Fails if `f`'s result fails.
        """
        if self._rest is None:
            return self
        rest = _rest_of(f(self._last(), self._rest))
        if rest is None:
            return self.failed()
        return type(self)(list(self._matches), rest)

    def discarding_ref(self, f: Callable[[_MatchedT | None, _RestT], Any]) -> Self:
        """Same as `discarding()`."""
        return self.discarding(f)

    def optional(self, f: Callable[[_MatchedT | None, _RestT], Any]) -> Self:
        """
        Same as `single()`, but if the step fails, the chain is returned unchanged.

        A failed chain stays failed.
        """
        if self._rest is None:
            return self
        result = self.single(f)
        if result._rest is None:
            return self
        return result

    def optional_ref(self, f: Callable[[_MatchedT | None, _RestT], Any]) -> Self:
        """Same as `optional()`."""
        return self.optional(f)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CollectingMatch):
            return NotImplemented
        return self._matches == other._matches and self._rest == other._rest

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        if self._rest is None:
            return "<CollectingMatch failed>"
        return f"<CollectingMatch {self._matches!r} | {self._rest!r}>"


def into_collecting(match: Match[_MatchedT, _RestT]) -> CollectingMatch[_MatchedT, _RestT]:
    """Starts a collecting chain from the match. See `CollectingMatch`.

    A `MappedMatch` is unmapped first, so only its matched part is collected.
    """
    return match.into_collecting()



class AlternativesMatch(Generic[_T]):
    """
    Tries branches against the same starting point, keeping the first one that matches.

    ```
    m = (
        alternatives(s)
        .add_path(lambda s: match_static(s, "!"))
        .add_path(lambda s: match_static(s, "#"))
        .finalize()
    )
    ```

    Once a branch matched, the functions of the branches after it are never called.
    """
    def __init__(self, previous: _T) -> None:
        """Create using `alternatives()` instead."""
        self.previous: Final[_T] = previous
        """The starting point that's passed to every branch."""
        self._matched: Match[Any, Any] = Match.failed()
        self._paths: int = 0
        self._winner: int | None = None
        self._skip: bool = isinstance(previous, (_MatchBase, CollectingMatch)) and previous.is_failed()

    def is_matched(self) -> bool:
        """Whether any of the branches added so far has matched."""
        return self._winner is not None

    def add_path(self, f: Callable[[_T], Any]) -> Self:
        """
        Adds a branch. `f` is called with the starting point, unless an earlier branch already matched.

        `f` returns a `Match` (or a bare sequence, see `Match.coerce()`).
        """
        if self._winner is None and not self._skip:
            result = Match.coerce(f(self.previous))
            if result:
                self._matched = result
                self._winner = self._paths
        self._paths += 1
        return self

    def add_path_ref(self, f: Callable[[_T], Any]) -> Self:
        """Same as `add_path()`."""
        return self.add_path(f)

    def finalize(self) -> Match[Any, Any]:
        """Returns the first matching branch's result, or a failed match if none matched."""
        if self._winner is None:
            log.debug("No alternative matched out of %d", self._paths)
        else:
            log.debug("Alternative %d of %d matched", self._winner, self._paths)
        return self._matched


class MappedAlternativesMatch(Generic[_T]):
    """
    Same as `AlternativesMatch`, but the branches return `MappedMatch`es.

    The attached value tells the caller which branch matched.
    """
    def __init__(self, previous: _T) -> None:
        """Create using `mapped_alternatives()` instead."""
        self.previous: Final[_T] = previous
        """The starting point that's passed to every branch."""
        self._matched: MappedMatch[Any, Any, Any] = MappedMatch.failed()
        self._paths: int = 0
        self._winner: int | None = None
        self._skip: bool = isinstance(previous, (_MatchBase, CollectingMatch)) and previous.is_failed()

    def is_matched(self) -> bool:
        """Whether any of the branches added so far has matched."""
        return self._winner is not None

    def add_path(self, f: Callable[[_T], Any]) -> Self:
        """Adds a branch. `f` is called with the starting point, unless an earlier branch already matched."""
        if self._winner is None and not self._skip:
            result = MappedMatch.coerce(f(self.previous))
            if result:
                self._matched = result
                self._winner = self._paths
        self._paths += 1
        return self

    def add_path_ref(self, f: Callable[[_T], Any]) -> Self:
        """Same as `add_path()`."""
        return self.add_path(f)

    def finalize(self) -> MappedMatch[Any, Any, Any]:
        """Returns the first matching branch's result, or a failed match if none matched."""
        if self._winner is None:
            log.debug("No mapped alternative matched out of %d", self._paths)
        else:
            log.debug("Mapped alternative %d of %d matched", self._winner, self._paths)
        return self._matched


def alternatives(start: _T) -> AlternativesMatch[_T]:
    """
    Starts an alternation tree. See `AlternativesMatch`.

    `start` is passed to every branch as-is. Raw sequences aren't converted, so use a `Span` or a `Match` to chain.
    """
    return AlternativesMatch(start)

def mapped_alternatives(start: _T) -> MappedAlternativesMatch[_T]:
    """Starts a mapped alternation tree. See `MappedAlternativesMatch`."""
    return MappedAlternativesMatch(start)



def match_static(seq: Sliceable, pattern: Sliceable, *, partial: bool = False) -> Match[Span, Span]:
    """
    Matches a fixed prefix.

    An empty pattern always matches, consuming nothing.

    `partial`: If true, a pattern longer than the input matches as long as the input is a prefix of it.
    (`match_static("ab", "abc", partial=True)` matches `"ab"`.)
    """
    s = span(seq)
    if len(pattern) == 0:
        return Match(s[:0], s)
    if partial:
        n = min(len(s), len(pattern))
        pattern = pattern[:n]
    elif len(pattern) > len(s):
        return Match.failed()
    if not s.startswith(pattern):
        return Match.failed()
    matched, rest = s.split_at(len(pattern))
    return Match(matched, rest)

def match_static_mapped(seq: Sliceable, pattern: Sliceable, value: _V, *, partial: bool = False) -> MappedMatch[Span, Span, _V]:
    """`match_static()` with a value attached. See `Match.map()`."""
    return match_static(seq, pattern, partial=partial).map(value)

def match_static_multiple(seq: Sliceable, patterns: Iterable[Sliceable], *, partial: bool = False) -> MappedMatch[Span, Span, int]:
    """
    Attempts to match any of the given patterns, starting from the first.

    The attached value is the index of the pattern that matched.
    """
    s = span(seq)
    for i, pattern in enumerate(patterns):
        result = match_static(s, pattern, partial=partial)
        if result:
            return result.map(i)
    return MappedMatch.failed()

def _scan(s: Span, predicate: Predicate, limit: int | None = None) -> Match[Span, Span]:
    end = len(s) if limit is None else min(limit, len(s))
    for i in range(end):
        if not predicate(s.src[s.start + i]):
            return Match(*s.split_at(i))
    return Match(*s.split_at(end))

def match_with(seq: Sliceable, predicate: Predicate) -> Match[Span, Span]:
    """
    Matches the longest prefix whose elements all satisfy the predicate.

    Never fails. The matched part can be empty.
    """
    return _scan(span(seq), predicate)

def match_with_mapped(seq: Sliceable, predicate: Predicate, value: _V) -> MappedMatch[Span, Span, _V]:
    """`match_with()` with a value attached. See `Match.map()`."""
    return match_with(seq, predicate).map(value)

def match_min_with(seq: Sliceable, minimum: SupportsIndex, predicate: Predicate) -> Match[Span, Span]:
    """Same as `match_with()`, but fails if fewer than `minimum` elements matched."""
    minimum = _as_count(minimum)
    s = span(seq)
    if len(s) < minimum:
        return Match.failed()
    result = _scan(s, predicate)
    if len(result.matched) < minimum:
        return Match.failed()
    return result

def match_max_with(seq: Sliceable, maximum: SupportsIndex, predicate: Predicate) -> Match[Span, Span]:
    """Same as `match_with()`, but stops after `maximum` elements. Never fails."""
    return _scan(span(seq), predicate, _as_count(maximum))

def match_min_max_with(seq: Sliceable, minimum: SupportsIndex, maximum: SupportsIndex, predicate: Predicate) -> Match[Span, Span]:
    """
    Matches between `minimum` and `maximum` elements that satisfy the predicate, as many as possible.

    Fails if `maximum < minimum`.
    """
    minimum = _as_count(minimum)
    maximum = _as_count(maximum)
    s = span(seq)
    if maximum < minimum or len(s) < minimum:
        return Match.failed()
    if len(s) <= maximum:
        return match_min_with(s, minimum, predicate)
    result = _scan(s, predicate, maximum)
    if len(result.matched) < minimum:
        return Match.failed()
    return result

def match_exact_with(seq: Sliceable, count: SupportsIndex, predicate: Predicate) -> Match[Span, Span]:
    """Matches exactly `count` elements that satisfy the predicate."""
    count = _as_count(count)
    return match_min_max_with(seq, count, count, predicate)

def match_min_with_mapped(seq: Sliceable, minimum: SupportsIndex, predicate: Predicate, value: _V) -> MappedMatch[Span, Span, _V]:
    """`match_min_with()` with a value attached. See `Match.map()`."""
    return match_min_with(seq, minimum, predicate).map(value)

def match_max_with_mapped(seq: Sliceable, maximum: SupportsIndex, predicate: Predicate, value: _V) -> MappedMatch[Span, Span, _V]:
    """`match_max_with()` with a value attached. See `Match.map()`."""
    return match_max_with(seq, maximum, predicate).map(value)

def match_min_max_with_mapped(seq: Sliceable, minimum: SupportsIndex, maximum: SupportsIndex, predicate: Predicate, value: _V) -> MappedMatch[Span, Span, _V]:
    """`match_min_max_with()` with a value attached. See `Match.map()`."""
    return match_min_max_with(seq, minimum, maximum, predicate).map(value)

def match_exact_with_mapped(seq: Sliceable, count: SupportsIndex, predicate: Predicate, value: _V) -> MappedMatch[Span, Span, _V]:
    """`match_exact_with()` with a value attached. See `Match.map()`."""
    return match_exact_with(seq, count, predicate).map(value)
