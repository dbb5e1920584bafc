"""Deterministic key derivation.

Key material comes from one of three sources:

    PasswordSource(password, version, stamp)   # coin chain keys
    AmountSource(amount, key)                  # material bound to an amount
    RandomSource()                             # one-time nonces

Password-derived keys are ``KeyedHash("{version} {stamp} {purpose}")``
under the Argon2id-stretched password. The stretched password only lives
inside a :class:`Keyring` block and is zeroed when the block exits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Union

from .config import (
    CoinConfig,
    Password,
    StretchParams,
    require_password,
    require_stamp,
    validate_amount,
)
from .crypto import (
    HASH_SIZE,
    HASH_SIZE_MAX,
    hash_bytes,
    keyed_hash,
    random_bytes,
    scalar_random,
    scalar_reduce,
    scalar_to_int,
    stretch_password,
    wipe,
)
from .errors import CoinStateError, CryptoFailure, InvalidArgument

logger = logging.getLogger(__name__)

PURPOSE_BLIND = "blind"
PURPOSE_RATCHET = "ratchet"


def _check_version(version: int) -> int:
    if isinstance(version, bool) or not isinstance(version, int) or version < 0:
        raise InvalidArgument(f"Version must be a non-negative integer, got {version!r}",
                              check="version")
    return version


class Keyring:
    """Stretched password held for the duration of a ``with`` block.

    Usage::

        with Keyring(password, stretch) as ring:
            blind = ring.blind(version, stamp)
            hint = ring.hint(version, stamp)
    """

    def __init__(self, password: Password, stretch: Optional[StretchParams] = None) -> None:
        self._password = require_password(password)
        self._stretch = stretch or StretchParams()
        self._key: Optional[bytearray] = None

    @classmethod
    def from_config(cls, config: CoinConfig) -> Keyring:
        return cls(config.require_password(), config.stretch)

    def __enter__(self) -> Keyring:
        self._key = stretch_password(
            self._password,
            self._stretch.salt,
            self._stretch.opslimit,
            self._stretch.memlimit,
        )
        return self

    def __exit__(self, *exc) -> None:
        if self._key is not None:
            wipe(self._key)
            self._key = None
        self._password = None

    @property
    def unlocked(self) -> bool:
        return self._key is not None

    def derive(self, version: int, stamp: str, purpose: str = PURPOSE_BLIND,
               size: int = HASH_SIZE) -> bytes:
        """Derive ``size`` bytes for ``(version, stamp, purpose)``."""
        if self._key is None:
            raise CoinStateError("Keyring is locked", check="keyring")
        _check_version(version)
        require_stamp(stamp, version)
        return keyed_hash(f"{version} {stamp} {purpose}", bytes(self._key), size)

    def blind(self, version: int, stamp: str) -> bytes:
        """Blinding factor of coin ``version`` on chain ``stamp``."""
        return _reduce_nonzero(self.derive(version, stamp, PURPOSE_BLIND, HASH_SIZE_MAX))

    def ratchet(self, version: int, stamp: str) -> bytes:
        """Hash-chain secret of coin ``version``. Never leaves the keyring owner."""
        return self.derive(version, stamp, PURPOSE_RATCHET)

    def hint(self, version: int, stamp: str) -> bytes:
        """Public one-way image of the ratchet secret."""
        return hash_bytes(self.ratchet(version, stamp))

    def hash_image(self, version: int, stamp: str) -> bytes:
        """Image a successor's hint must hash to."""
        return hash_bytes(self.hint(version + 1, stamp))


@dataclass(frozen=True)
class PasswordSource:
    password: Password = field(repr=False)
    version: int
    stamp: str
    purpose: str = PURPOSE_BLIND
    stretch: StretchParams = field(default_factory=StretchParams)

    @classmethod
    def from_config(cls, config: CoinConfig, purpose: str = PURPOSE_BLIND) -> PasswordSource:
        return cls(config.password, config.version, config.stamp, purpose, config.stretch)


@dataclass(frozen=True)
class AmountSource:
    """Material bound to an amount, optionally keyed by a chain secret."""

    amount: int
    key: Optional[bytes] = field(default=None, repr=False)


@dataclass(frozen=True)
class RandomSource:
    pass


KeySource = Union[PasswordSource, AmountSource, RandomSource]


def derive_key(source: KeySource, size: int = HASH_SIZE) -> bytes:
    """Derive ``size`` bytes of key material from ``source``.

    Password and amount sources are deterministic; the random source draws
    fresh bytes on every call.
    """
    if isinstance(source, PasswordSource):
        require_password(source.password)
        require_stamp(source.stamp, source.version)
        _check_version(source.version)
        with Keyring(source.password, source.stretch) as ring:
            return ring.derive(source.version, source.stamp, source.purpose, size)

    if isinstance(source, AmountSource):
        validate_amount(source.amount)
        message = f"amount {source.amount}"
        if source.key is not None:
            return keyed_hash(message, source.key, size)
        return hash_bytes(message, size)

    if isinstance(source, RandomSource):
        return random_bytes(size)

    raise InvalidArgument(f"Unknown key source: {type(source).__name__}", check="source")


def derive_scalar(source: KeySource) -> bytes:
    """Derive a non-zero scalar from ``source``."""
    if isinstance(source, RandomSource):
        return scalar_random()
    return _reduce_nonzero(derive_key(source, HASH_SIZE_MAX))


def _reduce_nonzero(wide: bytes) -> bytes:
    scalar = scalar_reduce(wide)
    if scalar_to_int(scalar) == 0:
        raise CryptoFailure("Derived scalar is zero", check="derive_scalar")
    return scalar
