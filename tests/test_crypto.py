"""Tests for the primitive crypto layer."""

import pytest

from coincore.crypto import (
    CURVE_ORDER,
    generate_box_keypair,
    generator_g,
    generator_h,
    hash_bytes,
    hash_password,
    hash_state,
    is_valid_point,
    keyed_hash,
    point_add,
    point_sub,
    random_bytes,
    scalar_base,
    scalar_from_int,
    scalar_mult,
    scalar_random,
    sealed_decrypt,
    sealed_encrypt,
    sensitive,
    short_hash,
    stretch_password,
    validate_scalar,
    verify_password,
)
from coincore.errors import CryptoFailure, InvalidArgument, InvalidPoint, InvalidScalar


class TestHash:
    def test_deterministic(self):
        assert hash_bytes(b"coin") == hash_bytes("coin")

    def test_default_length(self):
        assert len(hash_bytes(b"coin")) == 32

    def test_custom_length(self):
        assert len(hash_bytes(b"coin", 64)) == 64

    def test_empty_message_rejected(self):
        with pytest.raises(InvalidArgument):
            hash_bytes(b"")

    def test_length_out_of_range(self):
        with pytest.raises(InvalidArgument):
            hash_bytes(b"coin", 8)
        with pytest.raises(InvalidArgument):
            hash_bytes(b"coin", 65)

    def test_keyed_differs_from_unkeyed(self):
        assert keyed_hash(b"coin", b"k" * 32) != hash_bytes(b"coin")

    def test_keyed_depends_on_key(self):
        assert keyed_hash(b"coin", b"a" * 32) != keyed_hash(b"coin", b"b" * 32)

    def test_keyed_empty_key_rejected(self):
        with pytest.raises(InvalidArgument):
            keyed_hash(b"coin", b"")

    def test_short_hash(self):
        tag = short_hash(b"coin", b"k" * 16)
        assert len(tag) == 8
        assert tag == short_hash("coin", b"k" * 16)
        assert tag != short_hash(b"coin", b"j" * 16)

    def test_short_hash_key_length(self):
        with pytest.raises(InvalidArgument):
            short_hash(b"coin", b"k" * 32)

    def test_hash_state_ignores_key_order(self):
        assert hash_state({"b": 2, "a": 1}) == hash_state({"a": 1, "b": 2})


class TestCurve:
    def test_generators_are_valid_and_distinct(self):
        assert is_valid_point(generator_g())
        assert is_valid_point(generator_h())
        assert generator_g() != generator_h()

    def test_generator_h_is_stable(self):
        assert generator_h() == generator_h()

    def test_zero_scalar_rejected(self):
        with pytest.raises(InvalidScalar):
            scalar_base(b"\x00" * 32)

    def test_unreduced_scalar_rejected(self):
        with pytest.raises(InvalidScalar):
            scalar_base(CURVE_ORDER.to_bytes(32, "little"))

    def test_short_scalar_rejected(self):
        with pytest.raises(InvalidScalar):
            scalar_base(b"\x01" * 31)

    def test_identity_point_rejected(self):
        identity = (1).to_bytes(32, "little")
        with pytest.raises(InvalidPoint):
            scalar_mult(scalar_random(), identity)

    def test_wrong_length_point_rejected(self):
        with pytest.raises(InvalidPoint):
            scalar_mult(scalar_random(), b"\x01" * 31)

    def test_invalid_errors_are_crypto_failures(self):
        with pytest.raises(CryptoFailure):
            scalar_base(b"\x00" * 32)

    def test_scalar_mult_matches_base(self):
        s = scalar_random()
        assert scalar_mult(s, generator_g()) == scalar_base(s)

    def test_add_then_sub(self):
        p = scalar_base(scalar_random())
        q = scalar_base(scalar_random())
        assert point_sub(point_add(p, q), q) == p

    def test_linearity(self):
        two = scalar_base(scalar_from_int(2))
        one = scalar_base(scalar_from_int(1))
        assert point_add(one, one) == two


class TestPasswords:
    def test_stretch_deterministic(self, fast):
        a = stretch_password("pw", fast.salt, fast.opslimit, fast.memlimit)
        b = stretch_password("pw", fast.salt, fast.opslimit, fast.memlimit)
        assert a == b
        assert len(a) == 32
        assert isinstance(a, bytearray)

    def test_stretch_rejects_empty(self, fast):
        with pytest.raises(InvalidArgument):
            stretch_password("", fast.salt, fast.opslimit, fast.memlimit)

    def test_stretch_rejects_bad_salt(self, fast):
        with pytest.raises(InvalidArgument):
            stretch_password("pw", b"short", fast.opslimit, fast.memlimit)

    def test_hash_and_verify(self, fast):
        stored = hash_password("hunter2", fast.opslimit, fast.memlimit)
        assert verify_password(stored, "hunter2")
        assert not verify_password(stored, "hunter3")


class TestSealedBox:
    def test_roundtrip(self):
        sk, pk = generate_box_keypair()
        cipher = sealed_encrypt("redeem me", pk)
        assert sealed_decrypt(cipher, sk) == b"redeem me"

    def test_padded_to_block(self):
        _, pk = generate_box_keypair()
        assert len(sealed_encrypt("a", pk)) == len(sealed_encrypt("abcdefghij", pk))

    def test_wrong_key_fails(self):
        _, pk = generate_box_keypair()
        other_sk, _ = generate_box_keypair()
        with pytest.raises(CryptoFailure):
            sealed_decrypt(sealed_encrypt("secret", pk), other_sk)

    def test_empty_message_rejected(self):
        _, pk = generate_box_keypair()
        with pytest.raises(InvalidArgument):
            sealed_encrypt("", pk)


class TestRandomAndBuffers:
    def test_random_bytes(self):
        assert len(random_bytes(24)) == 24
        assert random_bytes() != random_bytes()

    def test_scalar_random_is_reduced(self):
        scalars = {scalar_random() for _ in range(32)}
        assert len(scalars) == 32
        for scalar in scalars:
            assert validate_scalar(scalar) == scalar

    def test_random_bytes_rejects_zero(self):
        with pytest.raises(InvalidArgument):
            random_bytes(0)

    def test_sensitive_wipes_on_error(self):
        buf = bytearray(b"secret")
        with pytest.raises(RuntimeError):
            with sensitive(buf):
                raise RuntimeError("boom")
        assert buf == bytearray(6)
