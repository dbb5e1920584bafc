"""Tests for key derivation."""

import pytest

from coincore import (
    AmountSource,
    CoinConfig,
    InvalidPassword,
    InvalidStamp,
    Keyring,
    PasswordSource,
    RandomSource,
    derive_key,
    derive_scalar,
)
from coincore.errors import CoinStateError, InvalidArgument


class TestPasswordSource:
    def test_deterministic(self, fast):
        a = derive_key(PasswordSource("p", 0, "s1", stretch=fast))
        b = derive_key(PasswordSource("p", 0, "s1", stretch=fast))
        assert a == b
        assert len(a) == 32

    def test_each_input_changes_output(self, fast):
        base = derive_key(PasswordSource("p", 0, "s1", stretch=fast))
        assert derive_key(PasswordSource("q", 0, "s1", stretch=fast)) != base
        assert derive_key(PasswordSource("p", 1, "s1", stretch=fast)) != base
        assert derive_key(PasswordSource("p", 0, "s2", stretch=fast)) != base
        assert derive_key(PasswordSource("p", 0, "s1", purpose="ratchet", stretch=fast)) != base

    def test_output_length(self, fast):
        assert len(derive_key(PasswordSource("p", 0, "s1", stretch=fast), 64)) == 64

    def test_empty_password(self, fast):
        with pytest.raises(InvalidPassword):
            derive_key(PasswordSource("", 0, "s1", stretch=fast))

    def test_empty_stamp(self, fast):
        with pytest.raises(InvalidStamp):
            derive_key(PasswordSource("p", 0, "", stretch=fast))

    def test_negative_version(self, fast):
        with pytest.raises(InvalidArgument):
            derive_key(PasswordSource("p", -1, "s1", stretch=fast))

    def test_from_config(self, alice):
        source = PasswordSource.from_config(alice.with_version(3))
        assert source.version == 3
        assert source.stamp == "s-alice"
        assert "alice-password" not in repr(source)


class TestAmountSource:
    def test_deterministic(self):
        assert derive_key(AmountSource(60)) == derive_key(AmountSource(60))

    def test_bound_to_amount(self):
        assert derive_key(AmountSource(60)) != derive_key(AmountSource(61))

    def test_keyed_differs(self):
        assert derive_key(AmountSource(60, key=b"k" * 32)) != derive_key(AmountSource(60))

    def test_negative_amount(self):
        with pytest.raises(InvalidArgument):
            derive_key(AmountSource(-1))


class TestRandomSource:
    def test_fresh_each_call(self):
        assert derive_key(RandomSource()) != derive_key(RandomSource())

    def test_scalar(self):
        assert len(derive_scalar(RandomSource())) == 32


class TestKeyring:
    def test_matches_password_source(self, alice):
        with Keyring.from_config(alice) as ring:
            derived = ring.derive(0, "s-alice")
        assert derived == derive_key(PasswordSource.from_config(alice))

    def test_blind_matches_derive_scalar(self, alice):
        with Keyring.from_config(alice) as ring:
            blind = ring.blind(2, "s-alice")
        assert blind == derive_scalar(PasswordSource.from_config(alice.with_version(2)))

    def test_locked_after_exit(self, alice):
        ring = Keyring.from_config(alice)
        with ring:
            assert ring.unlocked
        assert not ring.unlocked
        with pytest.raises(CoinStateError):
            ring.blind(0, "s-alice")

    def test_wiped_on_error(self, alice):
        ring = Keyring.from_config(alice)
        with pytest.raises(RuntimeError):
            with ring:
                raise RuntimeError("cancelled")
        assert not ring.unlocked

    def test_hash_image_links_hints(self, alice):
        from coincore.crypto import hash_bytes

        with Keyring.from_config(alice) as ring:
            assert ring.hash_image(4, "s") == hash_bytes(ring.hint(5, "s"))

    def test_requires_password(self):
        with pytest.raises(InvalidPassword):
            Keyring.from_config(CoinConfig())
