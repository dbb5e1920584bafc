"""Pedersen commitments over Ed25519.

    C = blind * G + amount * H

G is the Ed25519 base point and H a hash-derived generator with no known
discrete log relative to G. Commitments add homomorphically::

    commit(a1, b1) + commit(a2, b2) == commit(a1 + a2, b1 + b2)

which is what the conservation check of a partial release relies on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from .config import validate_amount
from .crypto import (
    generator_h,
    point_add,
    point_sub,
    scalar_add,
    scalar_base,
    scalar_from_int,
    scalar_mult,
    scalar_random,
    scalar_sub,
    validate_point,
    validate_scalar,
)
from .errors import CryptoFailure, InvalidArgument, InvalidScalar
from .keys import KeySource, derive_scalar

Blinding = Union[bytes, KeySource]


def resolve_blind(blind: Blinding) -> bytes:
    """Turn raw bytes or a key source into a validated scalar."""
    if isinstance(blind, (bytes, bytearray)):
        return validate_scalar(blind, "blind")
    return derive_scalar(blind)


def commit(amount: int, blind: Blinding) -> bytes:
    """Commit to ``amount`` under ``blind``; returns a 32-byte point."""
    validate_amount(amount)
    blind = resolve_blind(blind)
    point = scalar_base(blind)
    if amount == 0:
        return point
    return point_add(point, scalar_mult(scalar_from_int(amount), generator_h()))


def add_commitments(*commitments: bytes) -> bytes:
    if not commitments:
        raise InvalidArgument("Nothing to add", check="commitments")
    total = validate_point(commitments[0], "commitment")
    for c in commitments[1:]:
        total = point_add(total, c)
    return total


def subtract_commitments(a: bytes, b: bytes) -> bytes:
    return point_sub(a, b)


def verify_conservation(original: bytes, parts: Iterable[bytes]) -> bool:
    """True if the parts combine homomorphically to ``original``."""
    parts = list(parts)
    try:
        return add_commitments(*parts) == validate_point(original, "original")
    except (CryptoFailure, InvalidArgument):
        return False


@dataclass(frozen=True)
class BlindingShares:
    """Two shares whose scalar sum is the original blinding factor."""

    first: bytes = field(repr=False)
    second: bytes = field(repr=False)

    def __iter__(self):
        return iter((self.first, self.second))


def split(blind: bytes, share: Optional[bytes] = None) -> BlindingShares:
    """Split ``blind`` into two shares.

    With ``share`` the first share is fixed and the second is
    ``blind - share``; otherwise the first share is random.
    """
    blind = validate_scalar(blind, "blind")
    first = scalar_random() if share is None else validate_scalar(share, "share")
    second = scalar_sub(blind, first)
    if int.from_bytes(second, "little") == 0:
        raise InvalidScalar("Share equals the blinding factor", check="split")
    return BlindingShares(first, second)


def combine(shares: BlindingShares) -> bytes:
    """Reconstruct the blinding factor from its shares."""
    return scalar_add(shares.first, shares.second)
