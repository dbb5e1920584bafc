"""CoinChain — the ordered versions of one coin with verification."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .balance import BalanceProof
from .coin import Coin
from .errors import ChainMismatch, CoinStateError, InvalidArgument
from .lifecycle import Keys, derive_coin, verify_coin


@dataclass
class CoinChain:
    """Versions of one coin on a single stamp.

    The fundamental rule: ``verify_coin(coins[N], coins[N-1]) == 0``.
    """

    stamp: str
    coins: list[Coin] = field(default_factory=list)

    @classmethod
    def start(cls, coin: Coin) -> CoinChain:
        return cls(stamp=coin.stamp, coins=[coin])

    @property
    def length(self) -> int:
        return len(self.coins)

    @property
    def head(self) -> Optional[Coin]:
        """Latest version, or None for an empty chain."""
        if not self.coins:
            return None
        return self.coins[-1]

    @property
    def root(self) -> Optional[Coin]:
        if not self.coins:
            return None
        return self.coins[0]

    def append(self, coin: Coin, balance: Optional[BalanceProof] = None) -> Coin:
        """Append a successor of the head. Raises ChainMismatch if it does not link.

        A partial-release remainder needs the release's ``balance`` proof.
        """
        if coin.stamp != self.stamp:
            raise ChainMismatch("Coin belongs to another stamp", check="stamp",
                                version=coin.version, stamp=coin.stamp)
        if self.coins:
            verify_coin(coin, self.coins[-1], balance=balance)
        self.coins.append(coin)
        return coin

    def advance(self, keys: Keys) -> Coin:
        """Derive the head's successor and append it."""
        if not self.coins:
            raise CoinStateError("Cannot advance an empty chain", check="head", stamp=self.stamp)
        return self.append(derive_coin(self.coins[-1], keys))

    def verify(self) -> tuple[bool, Optional[int]]:
        """Verify every link. Returns (valid, break_index)."""
        for i in range(1, len(self.coins)):
            try:
                verify_coin(self.coins[i], self.coins[i - 1])
            except ChainMismatch:
                return False, i
        return True, None

    def find(self, version: int) -> Optional[Coin]:
        """Get the coin at ``version``."""
        for coin in self.coins:
            if coin.version == version:
                return coin
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "stamp": self.stamp,
            "coins": [c.to_dict() for c in self.coins],
            "length": self.length,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CoinChain:
        if "stamp" not in data:
            raise InvalidArgument("Chain data has no stamp", check="stamp")
        return cls(
            stamp=data["stamp"],
            coins=[Coin.from_dict(c) for c in data.get("coins", [])],
        )

    def __len__(self) -> int:
        return self.length

    def __getitem__(self, index: int) -> Coin:
        return self.coins[index]

    def __iter__(self):
        return iter(self.coins)
