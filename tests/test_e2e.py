"""End-to-end tests for the coin lifecycle.

Two wallets issue, derive, release and swap coins with each other, and
the resulting chains are checked link by link.
"""

from __future__ import annotations

from dataclasses import replace

import pytest

from coincore import (
    ChainMismatch,
    CoinChain,
    CoinConfig,
    CoinState,
    CoinStateError,
    Keyring,
    RedemptionKey,
    SwapAborted,
    TransactionIntent,
    add_commitments,
    coin_swap,
    commit,
    derive_coin,
    hot_release,
    make_single_coin,
    partial_release,
    swap_partial_one,
    verify_coin,
)
from coincore.crypto import generate_box_keypair


# ────────────────────────────────────────────────────────────────────────────
# 1. Derive v0 -> v1 and verify the link
# ────────────────────────────────────────────────────────────────────────────

class TestDeriveAndVerify:
    def test_immediate_predecessor(self, fast):
        config = CoinConfig(password="p", stamp="s1", stretch=fast)
        v0 = make_single_coin(TransactionIntent(100, "addr"), config)
        v1 = derive_coin(v0, config)

        assert verify_coin(v1, v0) == 0

        with pytest.raises(ChainMismatch):
            verify_coin(v1, replace(v0, stamp="s2"))


# ────────────────────────────────────────────────────────────────────────────
# 2. Partial release of 40 out of 100
# ────────────────────────────────────────────────────────────────────────────

class TestPartialReleaseFlow:
    def test_fragment_and_change(self, alice, bob):
        v0 = make_single_coin(TransactionIntent(100, "bob"), alice)
        result = partial_release(alice.with_amounts(input=40, output=100), "coffee", coin=v0)

        with Keyring.from_config(alice) as ring:
            assert result.remainder.commitment == commit(60, ring.blind(1, "s-alice"))
        assert add_commitments(result.spent.commitment, result.remainder.commitment) == v0.commitment
        assert verify_coin(result.remainder, v0, balance=result.proof) == 0

        # Bob takes the 40 into a chain of his own
        private_key, public_key = generate_box_keypair()
        key = RedemptionKey.unseal(result.key.seal(public_key), private_key)
        mine = swap_partial_one(bob, result.spent, key)
        with Keyring.from_config(bob) as ring:
            assert mine.commitment == commit(40, ring.blind(0, "s-bob"))

        # Alice keeps spending the change
        v2 = derive_coin(result.remainder, alice)
        assert verify_coin(v2, result.remainder) == 0

    def test_released_original_cannot_be_derived(self, alice):
        result = partial_release(alice.with_amounts(input=40, output=100), "coffee")
        with pytest.raises(CoinStateError):
            derive_coin(result.original, alice)


# ────────────────────────────────────────────────────────────────────────────
# 3. Two-sided swap
# ────────────────────────────────────────────────────────────────────────────

class TestTwoSidedSwap:
    @pytest.fixture
    def releases(self, alice, bob):
        a0 = make_single_coin(TransactionIntent(100, "bob"), alice)
        b0 = make_single_coin(TransactionIntent(70, "alice"), bob)
        a = hot_release(alice.with_amounts(output=100), "for bob", coin=a0)
        b = hot_release(bob.with_amounts(output=70), "for alice", coin=b0)
        return a, b

    def test_both_sides_redeem(self, alice, bob, releases):
        a, b = releases
        a_spent, bob_coin = coin_swap(bob, a.coin, a.key)
        b_spent, alice_coin = coin_swap(alice, b.coin, b.key)

        assert a.key.signed and b.key.signed
        assert verify_coin(bob_coin, a_spent) == 0
        assert verify_coin(alice_coin, b_spent) == 0
        assert a_spent.state == b_spent.state == CoinState.SWAPPED

        with Keyring.from_config(bob) as ring:
            assert bob_coin.commitment == commit(100, ring.blind(1, "s-alice"))
        with Keyring.from_config(alice) as ring:
            assert alice_coin.commitment == commit(70, ring.blind(1, "s-bob"))

    def test_unrelated_key_aborts(self, bob, releases):
        a, b = releases
        before = (a.coin, b.coin)
        with pytest.raises(SwapAborted):
            coin_swap(bob, a.coin, b.key)
        assert (a.coin, b.coin) == before
        assert a.coin.state == b.coin.state == CoinState.RELEASED

        # The correct key still works afterwards
        _, issued = coin_swap(bob, a.coin, a.key)
        assert verify_coin(issued, a.coin) == 0


# ────────────────────────────────────────────────────────────────────────────
# 4. Long chain with a gap
# ────────────────────────────────────────────────────────────────────────────

class TestLongChain:
    def test_twenty_versions(self, alice):
        chain = CoinChain.start(make_single_coin(TransactionIntent(100, "addr"), alice))
        with Keyring.from_config(alice) as ring:
            for _ in range(19):
                chain.advance(ring)

            assert chain.verify() == (True, None)
            assert verify_coin(chain[19], chain[0], ring) == 18
            assert verify_coin(chain[10], chain[5], ring) == 4

        with pytest.raises(ChainMismatch) as exc:
            verify_coin(chain[19], chain[0])
        assert exc.value.check == "gap"

    def test_gap_with_wrong_keys(self, alice):
        chain = CoinChain.start(make_single_coin(TransactionIntent(100, "addr"), alice))
        chain.advance(alice)
        chain.advance(alice)
        with pytest.raises(ChainMismatch):
            verify_coin(chain[2], chain[0], alice.with_password("wrong"))
