"""Per-operation configuration.

A :class:`CoinConfig` is an immutable value built for one logical coin
operation and passed into each lifecycle call. Changing a field means
building a new value with one of the ``with_*`` helpers, so concurrent
operations never share mutable state.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Optional, Protocol, Union

import nacl.pwhash

from .errors import InvalidAmount, InvalidPassword, InvalidStamp

# Argon2id cost used by the wallet (32 MiB, 4 passes)
DEFAULT_OPSLIMIT = 4
DEFAULT_MEMLIMIT = 33554432

# Fixed domain salt; derivation must be reproducible from the password alone
DEFAULT_SALT = b"coincore.stretch"

MAX_AMOUNT = 2**64 - 1

Password = Union[str, bytes]


@dataclass(frozen=True)
class StretchParams:
    """Argon2id work factors for password stretching."""

    opslimit: int = DEFAULT_OPSLIMIT
    memlimit: int = DEFAULT_MEMLIMIT
    salt: bytes = DEFAULT_SALT

    def __post_init__(self) -> None:
        if self.opslimit < nacl.pwhash.argon2id.OPSLIMIT_MIN:
            raise ValueError(f"opslimit below Argon2id minimum: {self.opslimit}")
        if self.memlimit < nacl.pwhash.argon2id.MEMLIMIT_MIN:
            raise ValueError(f"memlimit below Argon2id minimum: {self.memlimit}")
        if len(self.salt) != nacl.pwhash.argon2id.SALTBYTES:
            raise ValueError(f"salt must be {nacl.pwhash.argon2id.SALTBYTES} bytes")

    @classmethod
    def from_env(cls) -> StretchParams:
        """Read ``COINCORE_OPSLIMIT`` / ``COINCORE_MEMLIMIT``, falling back to defaults."""
        return cls(
            opslimit=int(os.environ.get("COINCORE_OPSLIMIT", DEFAULT_OPSLIMIT)),
            memlimit=int(os.environ.get("COINCORE_MEMLIMIT", DEFAULT_MEMLIMIT)),
        )


def validate_amount(amount: int, name: str = "amount", allow_zero: bool = True) -> int:
    """Amounts are integers in the smallest unit, ``0 <= amount < 2**64``."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"{name} must be an integer, got {type(amount).__name__}", check=name)
    if amount < 0 or amount > MAX_AMOUNT:
        raise InvalidAmount(f"{name} out of range: {amount}", check=name)
    if amount == 0 and not allow_zero:
        raise InvalidAmount(f"{name} must be positive, got 0", check=name)
    return amount


def require_password(password: Optional[Password]) -> Password:
    if password is None or len(password) == 0:
        raise InvalidPassword("Password cannot be null or empty", check="password")
    return password


def require_stamp(stamp: Optional[str], version: Optional[int] = None) -> str:
    if not stamp:
        raise InvalidStamp("Stamp cannot be null or empty", check="stamp", version=version)
    return stamp


class SecretStore(Protocol):
    """Vault collaborator that unlocks the wallet secret."""

    def unlock(self, identifier: str, password: Password) -> bytes:
        ...


@dataclass(frozen=True)
class CoinConfig:
    """Ambient parameters for one coin operation.

    ``output`` is the amount a coin holds and ``input`` the part of it being
    spent; ``change`` is what remains.
    """

    password: Optional[Password] = field(default=None, repr=False)
    stamp: Optional[str] = None
    version: int = 0
    input: Optional[int] = None
    output: Optional[int] = None
    stretch: StretchParams = field(default_factory=StretchParams)

    @property
    def change(self) -> Optional[int]:
        if self.input is None or self.output is None:
            return None
        return self.output - self.input

    def with_password(self, password: Password) -> CoinConfig:
        return replace(self, password=password)

    def with_stamp(self, stamp: str) -> CoinConfig:
        return replace(self, stamp=stamp)

    def with_version(self, version: int) -> CoinConfig:
        return replace(self, version=version)

    def with_amounts(self, input: Optional[int] = None, output: Optional[int] = None) -> CoinConfig:
        return replace(self, input=input, output=output)

    def require_password(self) -> Password:
        return require_password(self.password)

    def require_stamp(self) -> str:
        return require_stamp(self.stamp, self.version)

    @classmethod
    def unlock(
        cls,
        store: SecretStore,
        identifier: str,
        password: Password,
        **kwargs,
    ) -> CoinConfig:
        """Build a config whose chain secret is the wallet blob from ``store``."""
        require_password(password)
        secret = store.unlock(identifier, password)
        if not secret:
            raise InvalidPassword("Secret store returned no wallet secret", check="unlock")
        return cls(password=bytes(secret), **kwargs)
