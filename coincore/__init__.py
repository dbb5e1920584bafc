"""coincore — confidential coin commitments and lifecycle on Ed25519 via libsodium."""

from .balance import BalanceProof
from .chain import CoinChain
from .coin import Coin, CoinState, hash_coin
from .commitment import (
    BlindingShares,
    add_commitments,
    combine,
    commit,
    split,
    subtract_commitments,
    verify_conservation,
)
from .config import CoinConfig, SecretStore, StretchParams
from .errors import (
    ChainMismatch,
    CoinError,
    CoinStateError,
    CryptoFailure,
    InvalidAmount,
    InvalidArgument,
    InvalidPassword,
    InvalidPoint,
    InvalidScalar,
    InvalidStamp,
    SwapAborted,
)
from .keys import AmountSource, Keyring, PasswordSource, RandomSource, derive_key, derive_scalar
from .lifecycle import (
    PartialRelease,
    build,
    coin_swap,
    derive_coin,
    hot_release,
    make_multiple_coins,
    make_single_coin,
    new_stamp,
    partial_release,
    swap_partial_one,
    verify_coin,
    verify_proof,
)
from .redact import redact_state
from .redemption import RedemptionKey, Release
from .signature import Signature, sign, sign_excess, verify_excess, verify_signature
from .transaction import TransactionIntent

__version__ = "1.0.0"

__all__ = [
    "Coin",
    "CoinState",
    "CoinChain",
    "CoinConfig",
    "StretchParams",
    "SecretStore",
    "TransactionIntent",
    "RedemptionKey",
    "Release",
    "PartialRelease",
    "BalanceProof",
    "BlindingShares",
    "Signature",
    "Keyring",
    "PasswordSource",
    "AmountSource",
    "RandomSource",
    "derive_key",
    "derive_scalar",
    "commit",
    "add_commitments",
    "subtract_commitments",
    "verify_conservation",
    "split",
    "combine",
    "sign",
    "sign_excess",
    "verify_signature",
    "verify_excess",
    "hash_coin",
    "build",
    "new_stamp",
    "make_single_coin",
    "make_multiple_coins",
    "derive_coin",
    "hot_release",
    "partial_release",
    "coin_swap",
    "swap_partial_one",
    "verify_coin",
    "verify_proof",
    "redact_state",
    "CoinError",
    "InvalidArgument",
    "InvalidPassword",
    "InvalidStamp",
    "InvalidAmount",
    "CryptoFailure",
    "InvalidScalar",
    "InvalidPoint",
    "ChainMismatch",
    "SwapAborted",
    "CoinStateError",
]
