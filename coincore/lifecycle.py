"""Coin lifecycle: build, issue, derive, release, swap and verify.

States move ``built -> derived(n) -> released | swapped``. Every function
returns new coin values and leaves its inputs untouched, so a failed swap
or release has nothing to roll back.

Per-version key material comes from a :class:`~coincore.keys.Keyring`:

    blind(v)       blinding factor of version v
    hint(v)        H(ratchet(v)), published on coin v
    hash_image(v)  H(hint(v + 1)), published on coin v

A successor proves its place in the chain by publishing a hint that
hashes to its predecessor's image, and that it holds the same amount
with an excess proof over the difference of the two commitments.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Iterable, Iterator, Optional, Union

from .balance import BalanceProof
from .coin import Coin, CoinState, hash_coin
from .commitment import commit, split
from .config import CoinConfig, validate_amount
from .crypto import (
    hash_bytes,
    point_add,
    point_sub,
    random_bytes,
    scalar_base,
    scalar_random,
    scalar_sub,
)
from .errors import (
    ChainMismatch,
    CoinError,
    CoinStateError,
    CryptoFailure,
    InvalidAmount,
    InvalidArgument,
    SwapAborted,
)
from .keys import AmountSource, Keyring, derive_key
from .redemption import RedemptionKey, Release
from .signature import sign, sign_excess, verify_excess, verify_signature
from .transaction import TransactionIntent

logger = logging.getLogger(__name__)

STAMP_BYTES = 16

Keys = Union[CoinConfig, Keyring]


@dataclass(frozen=True)
class PartialRelease:
    """Outcome of a partial release.

    ``spent`` is the fragment handed to the recipient, ``remainder`` the
    change coin that continues the sender's chain, and ``proof`` shows the
    two commitments sum to the ``original``.
    """

    original: Coin
    spent: Coin
    remainder: Coin
    key: RedemptionKey
    proof: BalanceProof


def new_stamp() -> str:
    """Fresh random chain stamp."""
    return random_bytes(STAMP_BYTES).hex()


@contextmanager
def _unlocked(keys: Keys) -> Iterator[Keyring]:
    if isinstance(keys, Keyring):
        if not keys.unlocked:
            raise CoinStateError("Keyring is locked", check="keyring")
        yield keys
        return
    with Keyring.from_config(keys) as ring:
        yield ring


def _require_memo(memo: Optional[str]) -> str:
    if not memo:
        raise InvalidArgument("Memo cannot be null or empty", check="memo")
    return memo


def _issue(ring: Keyring, version: int, stamp: str, amount: int) -> Coin:
    blind = ring.blind(version, stamp)
    coin = Coin(
        version=version,
        stamp=stamp,
        commitment=commit(amount, blind),
        hint=ring.hint(version, stamp),
        hash_image=ring.hash_image(version, stamp),
    )
    return replace(coin, proof=sign(hash_coin(coin), blind, amount))


def verify_proof(coin: Coin, predecessor: Optional[Coin] = None) -> bool:
    """Check a coin's proof.

    Without a predecessor the proof must be a signature under the coin's
    own opening (issued coins, released coins, remainders). With one it
    must be an excess proof over ``C - C_predecessor``, showing the amount
    was carried over unchanged (derived and swapped coins).
    """
    if coin.proof is None:
        return False
    message = hash_coin(coin)
    if predecessor is None:
        return verify_signature(coin.proof, coin.commitment, message)
    try:
        excess = point_sub(coin.commitment, predecessor.commitment)
    except CoinError:
        return False
    return verify_excess(coin.proof, excess, message)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

def build() -> Coin:
    """Placeholder coin: version 0, fresh stamp, zero amount under a random blind."""
    coin = Coin(version=0, stamp=new_stamp(), commitment=commit(0, scalar_random()))
    logger.debug("Built placeholder coin on stamp %s", coin.stamp)
    return coin


def make_single_coin(intent: TransactionIntent, config: CoinConfig) -> Coin:
    """Issue one coin committing to ``intent.amount``.

    Keys come from ``(version=0, stamp, password)``; the configured stamp is
    used if set, otherwise a fresh one.
    """
    stamp = config.stamp or new_stamp()
    with Keyring.from_config(config) as ring:
        coin = _issue(ring, 0, stamp, intent.amount)
    logger.debug("Issued coin v0 on stamp %s", stamp)
    return coin


def make_multiple_coins(
    intents: Iterable[TransactionIntent], config: CoinConfig
) -> list[Coin]:
    """Issue one coin per intent, each on its own fresh stamp."""
    intents = list(intents)
    if not intents:
        raise InvalidArgument("No transaction intents given", check="intents")
    with Keyring.from_config(config) as ring:
        coins = [_issue(ring, 0, new_stamp(), intent.amount) for intent in intents]
    logger.debug("Issued %d coins", len(coins))
    return coins


# ---------------------------------------------------------------------------
# Derivation
# ---------------------------------------------------------------------------

def derive_coin(coin: Coin, keys: Keys) -> Coin:
    """Advance ``coin`` to ``version + 1`` on the same stamp.

    The commitment is re-blinded, ``C' = C + (b_{v+1} - b_v)*G``, so the
    amount is carried over without being known. ``keys`` is either a config
    holding the password or an already unlocked keyring, and must be the
    keys the coin was issued under.
    """
    if not coin.spendable:
        raise CoinStateError(
            f"Cannot derive a {coin.state.value} coin",
            check="state", version=coin.version, stamp=coin.stamp,
        )
    version = coin.version + 1
    with _unlocked(keys) as ring:
        if ring.hash_image(coin.version, coin.stamp) != coin.hash_image:
            raise _mismatch("Coin was not issued under these keys", "owner", coin)
        excess = scalar_sub(ring.blind(version, coin.stamp), ring.blind(coin.version, coin.stamp))
        successor = Coin(
            version=version,
            stamp=coin.stamp,
            commitment=point_add(coin.commitment, scalar_base(excess)),
            hint=ring.hint(version, coin.stamp),
            hash_image=ring.hash_image(version, coin.stamp),
            successor_hash=hash_coin(coin),
            state=CoinState.DERIVED,
        )
        successor = replace(successor, proof=sign_excess(hash_coin(successor), excess))
    logger.debug("Derived coin v%d on stamp %s", version, coin.stamp)
    return successor


# ---------------------------------------------------------------------------
# Release
# ---------------------------------------------------------------------------

def _sign_key(key: RedemptionKey) -> RedemptionKey:
    return replace(key, signature=sign(key.message(), key.blind, key.amount))


def _released(ring: Keyring, version: int, stamp: str, amount: int, blind: bytes,
              coin: Optional[Coin]) -> Coin:
    released = Coin(
        version=version,
        stamp=stamp,
        commitment=commit(amount, blind),
        hint=ring.hint(version, stamp),
        hash_image=ring.hash_image(version, stamp),
        state=CoinState.RELEASED,
    )
    if coin is not None:
        if not coin.spendable:
            raise CoinStateError(f"Cannot release a {coin.state.value} coin",
                                 check="state", version=coin.version, stamp=coin.stamp)
        if hash_coin(coin) != hash_coin(released):
            raise InvalidArgument("Coin does not match the configured version, stamp and amount",
                                  check="coin", version=coin.version, stamp=coin.stamp)
        # Same digest, so the live coin's proof still holds for the copy
        return replace(released, successor_hash=coin.successor_hash, proof=coin.proof)
    return replace(released, proof=sign(hash_coin(released), blind, amount))


def hot_release(
    config: CoinConfig,
    memo: str,
    address: Optional[str] = None,
    coin: Optional[Coin] = None,
) -> Release:
    """Fully release the coin at ``(config.version, config.stamp)``.

    ``config.output`` is the coin's amount. The blinding factor is revealed
    in the redemption key; the returned coin is marked released and may not
    be derived again. Passing the live ``coin`` keeps its chain link on the
    released copy.
    """
    _require_memo(memo)
    config.require_password()
    stamp = config.require_stamp()
    if config.output is None:
        raise InvalidAmount("Release amount (output) is not set", check="output",
                            version=config.version, stamp=stamp)
    amount = validate_amount(config.output, "output")
    version = config.version

    with Keyring.from_config(config) as ring:
        blind = ring.blind(version, stamp)
        released = _released(ring, version, stamp, amount, blind, coin)
        key = _sign_key(RedemptionKey(
            version=version,
            stamp=stamp,
            commitment=released.commitment,
            amount=amount,
            blind=blind,
            memo=memo,
            next_hint=ring.hint(version + 1, stamp),
            address=address,
        ))

    logger.debug("Released coin v%d on stamp %s", version, stamp)
    return Release(coin=released, key=key)


def partial_release(
    config: CoinConfig,
    memo: str,
    address: Optional[str] = None,
    coin: Optional[Coin] = None,
) -> PartialRelease:
    """Release ``config.input`` out of a coin holding ``config.output``.

    The spent fragment commits to the input under ``b_v - b_{v+1}`` and the
    remainder coin (version ``v + 1``) to the change under ``b_{v+1}``, so
    the two commitments sum to the original. The fragment's stamp is bound
    to the spent amount and the chain's ratchet secret. As with
    :func:`hot_release`, passing the live ``coin`` keeps its chain link.
    """
    _require_memo(memo)
    config.require_password()
    stamp = config.require_stamp()
    version = config.version
    if config.output is None or config.input is None:
        raise InvalidAmount("Partial release needs both input and output", check="amounts",
                            version=version, stamp=stamp)
    amount = validate_amount(config.output, "output")
    spent = validate_amount(config.input, "input", allow_zero=False)
    if spent > amount:
        raise InvalidAmount(f"Cannot release {spent} out of {amount}", check="input",
                            version=version, stamp=stamp)
    change = config.change

    with Keyring.from_config(config) as ring:
        blind = ring.blind(version, stamp)
        shares = split(blind, share=ring.blind(version + 1, stamp))
        remainder_blind, spent_blind = shares

        original = _released(ring, version, stamp, amount, blind, coin)

        remainder = Coin(
            version=version + 1,
            stamp=stamp,
            commitment=commit(change, remainder_blind),
            hint=ring.hint(version + 1, stamp),
            hash_image=ring.hash_image(version + 1, stamp),
            successor_hash=hash_coin(original),
            state=CoinState.DERIVED,
        )
        remainder = replace(remainder, proof=sign(hash_coin(remainder), remainder_blind, change))

        branch_key = derive_key(AmountSource(spent, key=ring.ratchet(version, stamp)))
        fragment = Coin(
            version=0,
            stamp=branch_key[:STAMP_BYTES].hex(),
            commitment=commit(spent, spent_blind),
            hint=hash_bytes(branch_key),
            successor_hash=hash_coin(original),
            state=CoinState.RELEASED,
        )
        fragment = replace(fragment, proof=sign(hash_coin(fragment), spent_blind, spent))

        proof = BalanceProof(
            before=original.commitment,
            after=[fragment.commitment, remainder.commitment],
            memo=memo,
        )
        if not proof.balanced:
            raise CryptoFailure("Partial release does not conserve value",
                                check="conservation", version=version, stamp=stamp)

        key = _sign_key(RedemptionKey(
            version=fragment.version,
            stamp=fragment.stamp,
            commitment=fragment.commitment,
            amount=spent,
            blind=spent_blind,
            memo=memo,
            address=address,
        ))

    logger.debug("Partially released coin v%d on stamp %s", version, stamp)
    return PartialRelease(
        original=original, spent=fragment, remainder=remainder, key=key, proof=proof
    )


# ---------------------------------------------------------------------------
# Swap
# ---------------------------------------------------------------------------

def _abort(message: str, check: str, coin: Coin, **context) -> SwapAborted:
    logger.warning("Swap aborted on v%d stamp %s: %s", coin.version, coin.stamp, check)
    return SwapAborted(message, check=check, version=coin.version, stamp=coin.stamp, **context)


def _check_redemption(coin: Coin, key: RedemptionKey) -> None:
    """Every check on the counterpart's data, run before anything is built.

    The sender's contribution is ``C = commit(amount, sender_blind)``: the
    key must name this coin, carry a valid sender signature over it, and
    open it.
    """
    if coin.state == CoinState.SWAPPED:
        raise _abort("Coin has already been redeemed", "consumed", coin)
    if not key.matches(coin):
        raise _abort("Redemption key does not belong to this coin", "key_mismatch", coin,
                     key_version=key.version, key_stamp=key.stamp)
    if not key.signed:
        raise _abort("Sender signature does not verify", "sender_signature", coin)
    try:
        opened = commit(key.amount, key.blind)
    except CoinError:
        raise _abort("Redemption key does not open the commitment", "opening", coin)
    if opened != coin.commitment:
        raise _abort("Redemption key does not open the commitment", "opening", coin)


def _redeem(ring: Keyring, coin: Coin, key: RedemptionKey, version: int, stamp: str,
            hint: bytes) -> Coin:
    """Move ``coin``'s value under the receiver's blinding factor.

    The sender's share is the revealed blind and the receiver's share the
    difference to its own blind, so the joint commitment ``C + share*G``
    commits to the same amount under the receiver's blind. The receiver
    signs its share as an excess proof, which is what :func:`verify_coin`
    checks against the released coin.
    """
    try:
        shares = split(ring.blind(version, stamp), share=key.blind)
    except CoinError:
        raise _abort("Blinding shares could not be combined", "shares", coin)

    issued = Coin(
        version=version,
        stamp=stamp,
        commitment=point_add(coin.commitment, scalar_base(shares.second)),
        hint=hint,
        hash_image=ring.hash_image(version, stamp),
        successor_hash=hash_coin(coin),
        state=CoinState.DERIVED,
    )
    return replace(issued, proof=sign_excess(hash_coin(issued), shares.second))


def coin_swap(config: CoinConfig, coin: Coin, key: RedemptionKey) -> tuple[Coin, Coin]:
    """Redeem a fully released coin into the receiver's keys.

    Returns ``(redeemed, issued)``: the released coin marked swapped, and
    its successor on the same stamp under the receiver's blinding factor.
    Raises :class:`SwapAborted` if the key does not match, open or carry a
    valid sender signature; all of that is checked before any key material
    is derived, and neither input is changed.
    """
    _check_redemption(coin, key)
    version = coin.version + 1
    with Keyring.from_config(config) as ring:
        hint = key.next_hint or ring.hint(version, coin.stamp)
        issued = _redeem(ring, coin, key, version, coin.stamp, hint)
    logger.debug("Swapped coin v%d on stamp %s", coin.version, coin.stamp)
    return coin.with_state(CoinState.SWAPPED), issued


def swap_partial_one(config: CoinConfig, coin: Coin, key: RedemptionKey) -> Coin:
    """Redeem the spent fragment of a partial release.

    The fragment has no chain of its own, so the issued coin starts a new
    chain (version 0) on the configured stamp or a fresh one.
    """
    _check_redemption(coin, key)
    stamp = config.stamp or new_stamp()
    with Keyring.from_config(config) as ring:
        issued = _redeem(ring, coin, key, 0, stamp, ring.hint(0, stamp))
    logger.debug("Redeemed fragment %s into stamp %s", coin.stamp, stamp)
    return issued


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------

def _mismatch(message: str, check: str, coin: Coin, **context) -> ChainMismatch:
    logger.warning("Chain mismatch at v%d stamp %s: %s", coin.version, coin.stamp, check)
    return ChainMismatch(message, check=check, version=coin.version, stamp=coin.stamp, **context)


def _splits_from(balance: BalanceProof, current: Coin, terminal: Coin) -> bool:
    """True if ``terminal`` is the remainder of a balanced split of ``current``."""
    return (
        balance.valid
        and balance.before == current.commitment
        and terminal.commitment in balance.after
        and verify_proof(terminal)
    )


def verify_coin(
    terminal: Coin,
    current: Coin,
    keys: Optional[Keys] = None,
    balance: Optional[BalanceProof] = None,
) -> int:
    """Check that ``current`` is an ancestor of ``terminal``.

    Returns the number of missing intermediate links: 0 if ``current`` is
    the immediate predecessor. Raises :class:`ChainMismatch` if the two
    cannot be reconciled.

    An immediate successor must carry the chain link (successor digest and
    a hint matching ``current``'s image) and an excess proof showing its
    amount equals ``current``'s. The remainder of a partial release holds
    less, so it is accepted only with the release's ``balance`` proof.

    A non-adjacent ancestor can only be confirmed by the chain owner:
    ``keys`` is required, and every intermediate version is rebuilt from
    ``current`` to recompute the successor digest and commitment.
    """
    if terminal.stamp != current.stamp:
        raise _mismatch("Coins are on different stamps", "stamp", terminal,
                        predecessor=current.version)
    gap = terminal.version - current.version
    if gap <= 0:
        raise _mismatch(
            f"Version v{terminal.version} does not advance on v{current.version}",
            "version", terminal, predecessor=current.version,
        )
    if not terminal.hint or not current.hash_image:
        raise _mismatch("Coin carries no chain link", "hash_image", terminal,
                        predecessor=current.version)

    if gap == 1:
        if terminal.successor_hash != hash_coin(current):
            raise _mismatch("Successor digest does not match", "successor_hash", terminal,
                            predecessor=current.version)
        if hash_bytes(terminal.hint) != current.hash_image:
            raise _mismatch("Hint does not match predecessor image", "hash_image", terminal,
                            predecessor=current.version)
        if not verify_proof(terminal, current) and not (
            balance is not None and _splits_from(balance, current, terminal)
        ):
            raise _mismatch("Commitment is not bound to its predecessor", "commitment",
                            terminal, predecessor=current.version)
        return 0

    if keys is None:
        raise _mismatch("Gap of %d versions needs keys to verify" % (gap - 1), "gap", terminal,
                        predecessor=current.version)

    stamp = current.stamp
    with _unlocked(keys) as ring:
        if hash_bytes(ring.hint(current.version + 1, stamp)) != current.hash_image:
            raise _mismatch("Chain keys do not match predecessor image", "hash_image", terminal,
                            predecessor=current.version)
        if ring.hint(terminal.version, stamp) != terminal.hint:
            raise _mismatch("Re-derived hint does not match", "hint", terminal,
                            predecessor=current.version)
        base = ring.blind(current.version, stamp)
        link = current
        for version in range(current.version + 1, terminal.version + 1):
            excess = scalar_sub(ring.blind(version, stamp), base)
            predecessor = link
            link = Coin(
                version=version,
                stamp=stamp,
                commitment=point_add(current.commitment, scalar_base(excess)),
            )

    if terminal.successor_hash != hash_coin(predecessor):
        raise _mismatch("Successor digest does not match the re-derived chain",
                        "successor_hash", terminal, predecessor=current.version)
    if terminal.commitment != link.commitment:
        raise _mismatch("Commitment does not match the re-derived chain", "commitment",
                        terminal, predecessor=current.version)
    return gap - 1
