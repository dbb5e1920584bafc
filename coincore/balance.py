"""Balance proof — conservation of value across a split commitment.

A partial release turns one commitment into two. BalanceProof records
all three and checks the homomorphic sum:

    Before:  C            = commit(100, b)
    After:   C_spent      = commit(40,  b - b')
             C_remainder  = commit(60,  b')

    C_spent + C_remainder == C

Nothing about the amounts is revealed; anyone holding the three points
can verify the proof.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .commitment import verify_conservation
from .crypto import hash_state


@dataclass
class BalanceProof:
    """Cryptographic proof that a split conserves value.

    Usage::

        proof = BalanceProof(
            before=coin.commitment,
            after=[spent.commitment, remainder.commitment],
            memo="rent",
        )

        proof.balanced   # True if the parts sum to the original
        proof.digest     # hash over all three commitments
        proof.valid      # digest matches and balanced
    """

    before: bytes
    after: list[bytes] = field(default_factory=list)
    memo: Optional[str] = None

    # Computed on init
    digest: str = ""

    def __post_init__(self) -> None:
        self.digest = self._compute_digest()

    def _compute_digest(self) -> str:
        return hash_state({
            "before": self.before.hex(),
            "after": [c.hex() for c in self.after],
            "memo": self.memo,
        }).hex()

    @property
    def balanced(self) -> bool:
        """Check that the parts sum to the original commitment."""
        if not self.after:
            return False
        return verify_conservation(self.before, self.after)

    @property
    def valid(self) -> bool:
        """Recompute the digest and check conservation."""
        return self.digest == self._compute_digest() and self.balanced

    def to_dict(self) -> dict:
        """Serialize proof to a dictionary."""
        return {
            "before": self.before.hex(),
            "after": [c.hex() for c in self.after],
            "memo": self.memo,
            "digest": self.digest,
            "balanced": self.balanced,
        }

    @classmethod
    def from_dict(cls, data: dict) -> BalanceProof:
        """Deserialize proof from a dictionary."""
        return cls(
            before=bytes.fromhex(data["before"]),
            after=[bytes.fromhex(c) for c in data["after"]],
            memo=data.get("memo"),
        )

    @staticmethod
    def verify_proof(proof_dict: dict) -> bool:
        """Verify a balance proof from its dict representation.

        The digest is recomputed and compared against the stored one, so a
        tampered commitment or memo is caught even if it still balances.
        """
        proof = BalanceProof.from_dict(proof_dict)
        return proof.digest == proof_dict.get("digest") and proof.balanced
