"""Goldilocks field GF(p) and hashing into it.

Uses the galois library for field arithmetic. State vectors crossing module
boundaries are plain lists of canonical ints in [0, p).
"""

from __future__ import annotations

import hashlib
from typing import Iterable

import galois

from . import constants

FF = galois.GF(constants.GOLDILOCKS_PRIME)
"""Base field GF(p) - Goldilocks prime field."""


def to_field(value: int) -> int:
    """Reduce an arbitrary int (possibly negative) to its canonical field representative."""
    return int(FF(value % constants.GOLDILOCKS_PRIME))


def add(a: int, b: int) -> int:
    return int(FF(a) + FF(b))


def sub(a: int, b: int) -> int:
    return int(FF(a) - FF(b))


def mul(a: int, b: int) -> int:
    return int(FF(a) * FF(b))


def inv(a: int) -> int:
    """Multiplicative inverse; zero has none and maps to zero."""
    if a == 0:
        return 0
    return int(FF(1) / FF(a))


def hash_to_field(domain: bytes, *parts: bytes | int | str | Iterable[int]) -> int:
    """Hash a domain tag plus parts into a field element via SHA-256.

    Ints are encoded as 8-byte big-endian field elements, strings as UTF-8,
    and iterables of ints element by element with a length prefix.
    """
    h = hashlib.sha256()
    h.update(len(domain).to_bytes(4, "big"))
    h.update(domain)
    for part in parts:
        if isinstance(part, bytes):
            h.update(b"b" + len(part).to_bytes(4, "big") + part)
        elif isinstance(part, str):
            raw = part.encode("utf-8")
            h.update(b"s" + len(raw).to_bytes(4, "big") + raw)
        elif isinstance(part, int):
            h.update(b"i" + to_field(part).to_bytes(8, "big"))
        else:
            values = [to_field(v) for v in part]
            h.update(b"v" + len(values).to_bytes(4, "big"))
            for v in values:
                h.update(v.to_bytes(8, "big"))
    return int.from_bytes(h.digest(), "big") % constants.GOLDILOCKS_PRIME
