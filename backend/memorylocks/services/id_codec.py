"""
Memory Locks API — Lock ID Obfuscation
=======================================

What:  Turns sequential lock ids into short, non-guessable strings for the
       public album links printed on each physical lock (and back).
How:   hashids, keyed by HASHIDS_SALT with a minimum length of
       HASHIDS_MIN_LENGTH. The encoding is reversible only with the same
       salt, so rotating the salt invalidates every printed link.

Usage:
    >>> encode_id(7)
    'k5Rj9B'
    >>> decode_id("k5Rj9B")
    7
    >>> decode_id("not-a-lock")   # None, never raises
"""

import re
from functools import lru_cache
from typing import Optional

from hashids import Hashids

from memorylocks.config import settings
from memorylocks.exceptions import ValidationError


@lru_cache(maxsize=8)
def _hashids(salt: str, min_length: int) -> Hashids:
    return Hashids(salt=salt, min_length=min_length)


def _codec() -> Hashids:
    return _hashids(settings.hashids_salt, settings.hashids_min_length)


def encode_id(lock_id: int) -> str:
    """Encode a positive integer id. Raises ValidationError for ids below 1."""
    if not isinstance(lock_id, int) or isinstance(lock_id, bool) or lock_id < 1:
        raise ValidationError(f"Cannot encode invalid id: {lock_id!r}", field="id")
    return _codec().encode(lock_id)


def decode_id(hashed: Optional[str]) -> Optional[int]:
    """Decode an obfuscated id, or return None if it was not produced by encode_id."""
    if not hashed or not isinstance(hashed, str):
        return None
    decoded = _codec().decode(hashed)
    if len(decoded) != 1 or decoded[0] < 1:
        return None
    # hashids accepts some non-canonical spellings; only the canonical one counts
    if _codec().encode(decoded[0]) != hashed:
        return None
    return decoded[0]


def is_hashed_id(value: Optional[str]) -> bool:
    """True when value looks like an obfuscated id and actually decodes."""
    if not value:
        return False
    pattern = rf"^[a-zA-Z0-9]{{{settings.hashids_min_length},}}$"
    if not re.match(pattern, value):
        return False
    return decode_id(value) is not None
