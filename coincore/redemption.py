"""Redemption keys — the capsule a recipient uses to take over a released coin."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional

from .coin import Coin
from .crypto import hash_state, sealed_decrypt, sealed_encrypt, short_hash
from .errors import InvalidArgument
from .signature import Signature, verify_signature


@dataclass(frozen=True)
class RedemptionKey:
    """Opening of a released commitment plus routing data.

    Carries the revealed blinding factor, so it travels sealed to the
    recipient's box key and is consumed by exactly one swap.
    """

    version: int
    stamp: str
    commitment: bytes
    amount: int
    blind: bytes = field(repr=False)
    memo: Optional[str] = None
    next_hint: bytes = b""
    address: Optional[str] = None
    signature: Optional[Signature] = None

    def message(self) -> bytes:
        """Digest of the public fields, the message the sender signs."""
        return hash_state({
            "version": self.version,
            "stamp": self.stamp,
            "commitment": self.commitment.hex(),
            "amount": self.amount,
            "memo": self.memo,
            "next_hint": self.next_hint.hex(),
            "address": self.address,
        })

    def matches(self, coin: Coin) -> bool:
        return (
            self.version == coin.version
            and self.stamp == coin.stamp
            and self.commitment == coin.commitment
        )

    def routing_tag(self, routing_key: bytes) -> bytes:
        """8-byte tag a relay can match to its recipient without unsealing.

        Sender and recipient share the 16-byte ``routing_key``.
        """
        return short_hash(self.message(), routing_key)

    @property
    def signed(self) -> bool:
        return self.signature is not None and verify_signature(
            self.signature, self.commitment, self.message()
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "version": self.version,
            "stamp": self.stamp,
            "commitment": self.commitment.hex(),
            "amount": self.amount,
            "blind": self.blind.hex(),
            "memo": self.memo,
            "next_hint": self.next_hint.hex(),
            "address": self.address,
        }
        if self.signature is not None:
            d["signature"] = self.signature.to_str()
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RedemptionKey:
        signature = data.get("signature")
        return cls(
            version=data["version"],
            stamp=data["stamp"],
            commitment=bytes.fromhex(data["commitment"]),
            amount=data["amount"],
            blind=bytes.fromhex(data["blind"]),
            memo=data.get("memo"),
            next_hint=bytes.fromhex(data.get("next_hint", "")),
            address=data.get("address"),
            signature=Signature.from_str(signature) if signature else None,
        )

    def seal(self, public_key: bytes) -> bytes:
        """Encrypt the capsule to the recipient's box public key."""
        payload = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        return sealed_encrypt(payload, public_key)

    @classmethod
    def unseal(cls, cipher: bytes, private_key: bytes) -> RedemptionKey:
        plain = sealed_decrypt(cipher, private_key)
        try:
            data = json.loads(plain.decode("utf-8"))
            return cls.from_dict(data)
        except (ValueError, KeyError, TypeError) as e:
            raise InvalidArgument(
                f"Malformed redemption key ({type(e).__name__})", check="redemption_key"
            )


@dataclass(frozen=True)
class Release:
    """Outcome of a full release: the public coin and its redemption key."""

    coin: Coin
    key: RedemptionKey
