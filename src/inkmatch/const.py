"""
General use constants.

The `str` classes hold one-character strings. The `_BYTES` classes hold the integers you get when indexing `bytes`.

Use them as predicates with `__contains__`:
```
match_with(s, const.DECIMAL.__contains__)
match_with(b, const.DECIMAL_BYTES.__contains__)
```
"""

from __future__ import annotations
from typing import Final

WHITESPACES: Final[frozenset[str]] = frozenset({" ", "\t", "\n", "\r", "\f"})
BINARY: Final[frozenset[str]] = frozenset("01")
OCTAL: Final[frozenset[str]] = frozenset("01234567")
DECIMAL: Final[frozenset[str]] = frozenset("0123456789")
HEXADECIMAL: Final[frozenset[str]] = DECIMAL | frozenset("abcdefABCDEF")
ALPHABETIC: Final[frozenset[str]] = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ")
ALNUM: Final[frozenset[str]] = ALPHABETIC | DECIMAL
TOKEN: Final[frozenset[str]] = ALNUM | frozenset("!#$%&'*+-.^_`|~")
"""Characters allowed in an HTTP token (RFC 9110), like header names."""

WHITESPACES_BYTES: Final[frozenset[int]] = frozenset(b" \t\n\r\f")
BINARY_BYTES: Final[frozenset[int]] = frozenset(b"01")
OCTAL_BYTES: Final[frozenset[int]] = frozenset(b"01234567")
DECIMAL_BYTES: Final[frozenset[int]] = frozenset(b"0123456789")
HEXADECIMAL_BYTES: Final[frozenset[int]] = DECIMAL_BYTES | frozenset(b"abcdefABCDEF")
ALPHABETIC_BYTES: Final[frozenset[int]] = frozenset(b"abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ")
ALNUM_BYTES: Final[frozenset[int]] = ALPHABETIC_BYTES | DECIMAL_BYTES
TOKEN_BYTES: Final[frozenset[int]] = ALNUM_BYTES | frozenset(b"!#$%&'*+-.^_`|~")
