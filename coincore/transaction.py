"""Transaction intents handed in by the orchestration layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .config import validate_amount
from .errors import InvalidArgument


@dataclass(frozen=True)
class TransactionIntent:
    """Amount, destination and memo of one payment."""

    amount: int
    destination: str
    memo: Optional[str] = None

    def __post_init__(self) -> None:
        validate_amount(self.amount, allow_zero=False)
        if not self.destination:
            raise InvalidArgument("Destination cannot be empty", check="destination")

    def to_dict(self) -> dict[str, Any]:
        return {"amount": self.amount, "destination": self.destination, "memo": self.memo}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TransactionIntent:
        return cls(amount=data["amount"], destination=data["destination"], memo=data.get("memo"))
