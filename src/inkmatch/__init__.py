"""
Library to simplify writing parsers manually, one matching step at a time.

Every step returns a result holding the "matched" part and the "rest". Both are `Span`s: views of the input, never copies.

See the objects for more explanations.

See the `inkmatch.general` module for general purpose matchers you can use as examples.

Defining matchers:
```
def hex_byte(s: Sliceable) -> Match[Span, Span]:
    return match_static(s, "0x").match_exact_with(2, const.HEXADECIMAL.__contains__)
```

Using matchers:
```
m = hex_byte("0x1f, 0x20")

if m:
    matched, rest = m.take()    # <Span 2..4 '1f'>, <Span 4..10 ', 0x20'>
else:
    ... # failed
```

Combinators:
```
alternatives(s).add_path(foo).add_path(bar).finalize()     # first match wins
m.into_collecting().repeat(3, lambda last, rest: foo(rest)) # collects the matched parts
m.discarding(lambda matched, rest: ws0(rest))               # consumes filler, keeps the matched part
m.optional(lambda matched, rest: foo(rest))                 # reverts if `foo` fails
```
"""

import inkmatch.const as const
import inkmatch.main
from inkmatch.main import (
    Sliceable,
    Predicate,
    Span,
    span,
    MatchFailed,
    UnwrapError,
    Match,
    MappedMatch,
    CollectingMatch,
    AlternativesMatch,
    MappedAlternativesMatch,
    into_match,
    into_collecting,
    alternatives,
    mapped_alternatives,
    match_static,
    match_static_mapped,
    match_static_multiple,
    match_with,
    match_with_mapped,
    match_min_with,
    match_max_with,
    match_min_max_with,
    match_exact_with,
    match_min_with_mapped,
    match_max_with_mapped,
    match_min_max_with_mapped,
    match_exact_with_mapped,
)
import inkmatch.general as general
