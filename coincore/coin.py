"""Coin — the confidential value unit."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional

from .crypto import hash_state
from .signature import Signature


class CoinState(str, Enum):
    BUILT = "built"
    DERIVED = "derived"
    RELEASED = "released"
    SWAPPED = "swapped"


@dataclass(frozen=True)
class Coin:
    """A commitment to a hidden amount, linked into a hash chain.

    The chain rule: a coin at ``version + 1`` carries ``successor_hash ==
    hash_coin(predecessor)`` and a ``hint`` whose hash equals the
    predecessor's ``hash_image``.
    """

    # Identity
    version: int
    stamp: str

    # Pedersen commitment (32-byte point)
    commitment: bytes

    # Hash chain
    hint: bytes = b""  # hash of this version's ratchet secret
    hash_image: bytes = b""  # hash of the next version's hint
    successor_hash: bytes = b""  # hash_coin() of the coin this one succeeds

    proof: Optional[Signature] = None
    state: CoinState = CoinState.BUILT

    @property
    def digest(self) -> bytes:
        return hash_coin(self)

    @property
    def spendable(self) -> bool:
        return self.state in (CoinState.BUILT, CoinState.DERIVED)

    def with_state(self, state: CoinState) -> Coin:
        return replace(self, state=state)

    def to_dict(self) -> dict[str, Any]:
        """Serialize coin to a dictionary."""
        d: dict[str, Any] = {
            "version": self.version,
            "stamp": self.stamp,
            "commitment": self.commitment.hex(),
            "hint": self.hint.hex(),
            "hash_image": self.hash_image.hex(),
            "successor_hash": self.successor_hash.hex(),
            "state": self.state.value,
        }
        if self.proof is not None:
            d["proof"] = self.proof.to_str()
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Coin:
        """Deserialize coin from a dictionary."""
        proof = data.get("proof")
        return cls(
            version=data["version"],
            stamp=data["stamp"],
            commitment=bytes.fromhex(data["commitment"]),
            hint=bytes.fromhex(data.get("hint", "")),
            hash_image=bytes.fromhex(data.get("hash_image", "")),
            successor_hash=bytes.fromhex(data.get("successor_hash", "")),
            proof=Signature.from_str(proof) if proof else None,
            state=CoinState(data.get("state", CoinState.BUILT.value)),
        )


def hash_coin(coin: Coin) -> bytes:
    """Canonical digest of a coin's public identity (version, stamp, commitment)."""
    return hash_state({
        "version": coin.version,
        "stamp": coin.stamp,
        "commitment": coin.commitment.hex(),
    })
