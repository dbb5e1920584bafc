"""Signatures under a commitment's opening.

A signature proves knowledge of ``(blind, amount)`` with
``C = blind*G + amount*H`` for a specific message, revealing neither:

    R  = k1*G + k2*H
    e  = Hs(R || C || message)
    s1 = k1 + e*blind
    s2 = k2 + e*amount

Verification checks ``s1*G + s2*H == R + e*C``. With ``amount = 0`` the
commitment is ``blind*G`` and this is a plain signature under the blinding
factor.

An excess proof is the blinding-only form: ``R = k*G``, ``s2 = 0``, checked
as ``s1*G == R + e*E``. It shows ``E`` has no ``H`` component, so a coin
whose commitment differs from its predecessor's by ``E`` holds the same
amount.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Union

from .commitment import Blinding, commit, resolve_blind
from .config import validate_amount
from .crypto import (
    POINT_SIZE,
    SCALAR_SIZE,
    generator_h,
    hash_to_scalar,
    point_add,
    scalar_add,
    scalar_base,
    scalar_from_int,
    scalar_mul,
    scalar_mult,
    scalar_random,
    validate_scalar,
)
from .errors import CoinError, InvalidArgument

DOMAIN_SIGNATURE = b"coincore/signature/v1"
DOMAIN_EXCESS = b"coincore/excess/v1"

SIGNATURE_SIZE = POINT_SIZE + 2 * SCALAR_SIZE

ZERO_SCALAR = bytes(SCALAR_SIZE)


def _message_bytes(message: Union[str, bytes]) -> bytes:
    if isinstance(message, str):
        message = message.encode("utf-8")
    if not message:
        raise InvalidArgument("Message cannot be empty", check="message")
    return bytes(message)


def _challenge(nonce: bytes, commitment: bytes, message: bytes, domain: bytes = DOMAIN_SIGNATURE) -> bytes:
    return hash_to_scalar(domain, nonce, commitment, message)


@dataclass(frozen=True)
class Signature:
    nonce: bytes
    blind_response: bytes
    amount_response: bytes

    def to_bytes(self) -> bytes:
        return self.nonce + self.blind_response + self.amount_response

    @classmethod
    def from_bytes(cls, data: bytes) -> Signature:
        if len(data) != SIGNATURE_SIZE:
            raise InvalidArgument(
                f"Signature must be {SIGNATURE_SIZE} bytes, got {len(data)}", check="signature"
            )
        return cls(
            nonce=data[:POINT_SIZE],
            blind_response=data[POINT_SIZE:POINT_SIZE + SCALAR_SIZE],
            amount_response=data[POINT_SIZE + SCALAR_SIZE:],
        )

    def to_str(self) -> str:
        return base64.b64encode(self.to_bytes()).decode("ascii")

    @classmethod
    def from_str(cls, data: str) -> Signature:
        return cls.from_bytes(base64.b64decode(data))


def sign(message: Union[str, bytes], blind: Blinding, amount: int = 0) -> Signature:
    """Sign ``message`` under the opening of ``commit(amount, blind)``.

    ``blind`` may be the raw scalar or a key source; a
    :class:`~coincore.keys.PasswordSource` derives the coin's blinding
    factor first.
    """
    msg = _message_bytes(message)
    validate_amount(amount)
    blind = resolve_blind(blind)
    commitment = commit(amount, blind)

    k1 = scalar_random()
    k2 = scalar_random()
    nonce = point_add(scalar_base(k1), scalar_mult(k2, generator_h()))
    e = _challenge(nonce, commitment, msg)

    s1 = scalar_add(k1, scalar_mul(e, blind))
    s2 = scalar_add(k2, scalar_mul(e, scalar_from_int(amount)))
    return Signature(nonce, s1, s2)


def verify_signature(signature: Signature, commitment: bytes, message: Union[str, bytes]) -> bool:
    """Verify ``signature`` over ``message`` against ``commitment``."""
    if signature is None:
        return False
    try:
        msg = _message_bytes(message)
        e = _challenge(signature.nonce, commitment, msg)
        lhs = point_add(
            scalar_base(signature.blind_response),
            scalar_mult(signature.amount_response, generator_h()),
        )
        rhs = point_add(signature.nonce, scalar_mult(e, commitment))
        return lhs == rhs
    except CoinError:
        return False


def sign_excess(message: Union[str, bytes], excess: bytes) -> Signature:
    """Prove ``excess*G`` carries no amount, over ``message``."""
    msg = _message_bytes(message)
    excess = validate_scalar(excess, "excess")
    point = scalar_base(excess)

    k = scalar_random()
    nonce = scalar_base(k)
    e = _challenge(nonce, point, msg, DOMAIN_EXCESS)
    return Signature(nonce, scalar_add(k, scalar_mul(e, excess)), ZERO_SCALAR)


def verify_excess(signature: Signature, excess: bytes, message: Union[str, bytes]) -> bool:
    """Verify an excess proof against the point ``excess``."""
    if signature is None or signature.amount_response != ZERO_SCALAR:
        return False
    try:
        msg = _message_bytes(message)
        e = _challenge(signature.nonce, excess, msg, DOMAIN_EXCESS)
        lhs = scalar_base(signature.blind_response)
        rhs = point_add(signature.nonce, scalar_mult(e, excess))
        return lhs == rhs
    except CoinError:
        return False
