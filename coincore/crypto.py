"""Primitive crypto layer: hashing, Ed25519 group arithmetic, stretching, sealing.

All functions are stateless and operate on byte strings. Inputs are
validated before libsodium is called; libsodium failures surface as
:class:`~coincore.errors.CryptoFailure`.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator, Union

import nacl.bindings
import nacl.encoding
import nacl.exceptions
import nacl.hash
import nacl.public
import nacl.pwhash
import nacl.utils

from .errors import CryptoFailure, InvalidArgument, InvalidPoint, InvalidScalar

# Ed25519 prime subgroup order
CURVE_ORDER = 2**252 + 27742317777372353535851937790883648493

POINT_SIZE = 32
SCALAR_SIZE = 32
HASH_SIZE = 32
HASH_SIZE_MIN = nacl.hash.BLAKE2B_BYTES_MIN
HASH_SIZE_MAX = nacl.hash.BLAKE2B_BYTES_MAX
PAD_BLOCK = 32

# Nothing-up-my-sleeve seed for the amount generator H
H_GENERATOR_SEED = b"coincore/pedersen/H/v1"

Message = Union[str, bytes, bytearray]


def _to_bytes(message: Message, name: str = "message") -> bytes:
    if message is None:
        raise InvalidArgument(f"{name} cannot be None", check=name)
    if isinstance(message, str):
        message = message.encode("utf-8")
    if not isinstance(message, (bytes, bytearray)):
        raise InvalidArgument(
            f"{name} must be str or bytes, got {type(message).__name__}", check=name
        )
    if len(message) == 0:
        raise InvalidArgument(f"{name} cannot be empty", check=name)
    return bytes(message)


def _check_size(size: int) -> None:
    if not HASH_SIZE_MIN <= size <= HASH_SIZE_MAX:
        raise InvalidArgument(
            f"Output length must be between {HASH_SIZE_MIN} and {HASH_SIZE_MAX}, got {size}",
            check="output_length",
        )


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------

def hash_bytes(message: Message, size: int = HASH_SIZE) -> bytes:
    """Unkeyed BLAKE2b digest of ``message``."""
    data = _to_bytes(message)
    _check_size(size)
    return nacl.hash.blake2b(data, digest_size=size, encoder=nacl.encoding.RawEncoder)


def keyed_hash(message: Message, key: bytes, size: int = HASH_SIZE) -> bytes:
    """Keyed BLAKE2b digest of ``message`` under ``key``."""
    data = _to_bytes(message)
    _check_size(size)
    if not key or len(key) > nacl.hash.BLAKE2B_KEYBYTES_MAX:
        raise InvalidArgument(
            f"Hash key must be 1..{nacl.hash.BLAKE2B_KEYBYTES_MAX} bytes", check="hash_key"
        )
    return nacl.hash.blake2b(
        data, digest_size=size, key=bytes(key), encoder=nacl.encoding.RawEncoder
    )


def short_hash(message: Message, key: bytes) -> bytes:
    """8-byte keyed SipHash-2-4 tag of ``message``; ``key`` is 16 bytes."""
    data = _to_bytes(message)
    if not key or len(key) != nacl.hash.SIPHASH_KEYBYTES:
        raise InvalidArgument(
            f"Short hash key must be {nacl.hash.SIPHASH_KEYBYTES} bytes", check="short_hash_key"
        )
    return nacl.hash.siphash24(data, key=bytes(key), encoder=nacl.encoding.RawEncoder)


def hash_state(state: dict, size: int = HASH_SIZE) -> bytes:
    """Hash a dict of public fields.

    Uses canonical JSON (sorted keys, compact separators) for determinism.
    """
    canonical = json.dumps(state, sort_keys=True, separators=(",", ":"))
    return hash_bytes(canonical.encode("utf-8"), size)


def hash_to_scalar(*parts: bytes) -> bytes:
    """Reduce a 64-byte BLAKE2b digest of ``parts`` to a scalar mod L."""
    digest = hash_bytes(b"".join(parts), HASH_SIZE_MAX)
    return nacl.bindings.crypto_core_ed25519_scalar_reduce(digest)


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------

def scalar_from_int(value: int) -> bytes:
    return (value % CURVE_ORDER).to_bytes(SCALAR_SIZE, "little")


def scalar_to_int(scalar: bytes) -> int:
    return int.from_bytes(scalar, "little")


def validate_scalar(scalar: bytes, name: str = "scalar") -> bytes:
    """Reject scalars that are the wrong length, zero, or not reduced mod L."""
    if not isinstance(scalar, (bytes, bytearray)) or len(scalar) != SCALAR_SIZE:
        raise InvalidScalar(f"{name} must be {SCALAR_SIZE} bytes", check=name)
    value = scalar_to_int(scalar)
    if value == 0:
        raise InvalidScalar(f"{name} is zero", check=name)
    if value >= CURVE_ORDER:
        raise InvalidScalar(f"{name} is not reduced modulo the group order", check=name)
    return bytes(scalar)


def scalar_reduce(wide: bytes) -> bytes:
    """Reduce a 64-byte value to a scalar mod L."""
    if len(wide) != 64:
        raise InvalidArgument("Scalar reduction needs 64 bytes", check="scalar_reduce")
    return nacl.bindings.crypto_core_ed25519_scalar_reduce(bytes(wide))


def scalar_add(a: bytes, b: bytes) -> bytes:
    return nacl.bindings.crypto_core_ed25519_scalar_add(bytes(a), bytes(b))


def scalar_sub(a: bytes, b: bytes) -> bytes:
    return nacl.bindings.crypto_core_ed25519_scalar_sub(bytes(a), bytes(b))


def scalar_mul(a: bytes, b: bytes) -> bytes:
    return nacl.bindings.crypto_core_ed25519_scalar_mul(bytes(a), bytes(b))


def scalar_random() -> bytes:
    """Uniform non-zero scalar, reduced from 64 random bytes."""
    while True:
        scalar = nacl.bindings.crypto_core_ed25519_scalar_reduce(nacl.utils.random(64))
        if scalar_to_int(scalar) != 0:
            return scalar


# ---------------------------------------------------------------------------
# Points
# ---------------------------------------------------------------------------

def is_valid_point(point: bytes) -> bool:
    """True if ``point`` encodes a prime-order Ed25519 point (not the identity)."""
    if not isinstance(point, (bytes, bytearray)) or len(point) != POINT_SIZE:
        return False
    return nacl.bindings.crypto_core_ed25519_is_valid_point(bytes(point))


def validate_point(point: bytes, name: str = "point") -> bytes:
    if not isinstance(point, (bytes, bytearray)) or len(point) != POINT_SIZE:
        raise InvalidPoint(f"{name} must be {POINT_SIZE} bytes", check=name)
    if not nacl.bindings.crypto_core_ed25519_is_valid_point(bytes(point)):
        raise InvalidPoint(f"{name} is not a valid curve point", check=name)
    return bytes(point)


def scalar_base(scalar: bytes) -> bytes:
    """``scalar * G`` for the Ed25519 base point."""
    scalar = validate_scalar(scalar)
    try:
        return nacl.bindings.crypto_scalarmult_ed25519_base_noclamp(scalar)
    except nacl.exceptions.CryptoError as e:
        raise CryptoFailure(f"Base point multiplication failed: {e}", check="scalar_base")


def scalar_mult(scalar: bytes, point: bytes) -> bytes:
    """``scalar * point``."""
    scalar = validate_scalar(scalar)
    point = validate_point(point)
    try:
        return nacl.bindings.crypto_scalarmult_ed25519_noclamp(scalar, point)
    except nacl.exceptions.CryptoError as e:
        raise CryptoFailure(f"Scalar multiplication failed: {e}", check="scalar_mult")


def point_add(p: bytes, q: bytes) -> bytes:
    p = validate_point(p, "p")
    q = validate_point(q, "q")
    try:
        return nacl.bindings.crypto_core_ed25519_add(p, q)
    except nacl.exceptions.CryptoError as e:
        raise CryptoFailure(f"Point addition failed: {e}", check="point_add")


def point_sub(p: bytes, q: bytes) -> bytes:
    p = validate_point(p, "p")
    q = validate_point(q, "q")
    try:
        return nacl.bindings.crypto_core_ed25519_sub(p, q)
    except nacl.exceptions.CryptoError as e:
        raise CryptoFailure(f"Point subtraction failed: {e}", check="point_sub")


@lru_cache(maxsize=1)
def generator_g() -> bytes:
    """The Ed25519 base point."""
    return scalar_base(scalar_from_int(1))


@lru_cache(maxsize=1)
def generator_h() -> bytes:
    """Amount generator with no known discrete log relative to G.

    Try-and-increment: hash the seed with a counter until libsodium accepts
    the digest as a prime-order point.
    """
    for counter in range(1 << 16):
        candidate = hash_bytes(H_GENERATOR_SEED + counter.to_bytes(4, "little"))
        if is_valid_point(candidate):
            return candidate
    raise CryptoFailure("Hash to point failed", check="generator_h")


# ---------------------------------------------------------------------------
# Password stretching
# ---------------------------------------------------------------------------

def stretch_password(
    password: Message,
    salt: bytes,
    opslimit: int,
    memlimit: int,
    size: int = HASH_SIZE,
) -> bytearray:
    """Argon2id stretch of ``password``.

    Returns a ``bytearray`` so the caller can wipe it after use.
    """
    data = bytearray(_to_bytes(password, "password"))
    try:
        if len(salt) != nacl.pwhash.argon2id.SALTBYTES:
            raise InvalidArgument(
                f"Salt must be {nacl.pwhash.argon2id.SALTBYTES} bytes", check="salt"
            )
        key = nacl.pwhash.argon2id.kdf(
            size, bytes(data), salt, opslimit=opslimit, memlimit=memlimit
        )
        return bytearray(key)
    except nacl.exceptions.CryptoError as e:
        raise CryptoFailure(f"Password stretching failed: {e}", check="stretch")
    finally:
        wipe(data)


def hash_password(password: Message, opslimit: int, memlimit: int) -> bytes:
    """Argon2id verification string for ``password``."""
    data = bytearray(_to_bytes(password, "password"))
    try:
        return nacl.pwhash.argon2id.str(bytes(data), opslimit=opslimit, memlimit=memlimit)
    finally:
        wipe(data)


def verify_password(password_hash: bytes, password: Message) -> bool:
    """Check ``password`` against an Argon2 verification string."""
    if not password_hash:
        raise InvalidArgument("Password hash cannot be empty", check="password_hash")
    data = bytearray(_to_bytes(password, "password"))
    try:
        return nacl.pwhash.verify(password_hash, bytes(data))
    except nacl.exceptions.InvalidkeyError:
        return False
    finally:
        wipe(data)


# ---------------------------------------------------------------------------
# Randomness and sealed boxes
# ---------------------------------------------------------------------------

def random_bytes(n: int = 32) -> bytes:
    if n <= 0:
        raise InvalidArgument(f"Byte count must be positive, got {n}", check="random_bytes")
    return nacl.utils.random(n)


def generate_box_keypair() -> tuple[bytes, bytes]:
    """Curve25519 keypair for sealed boxes.

    Returns (private_key_bytes, public_key_bytes), both 32 bytes.
    """
    sk = nacl.public.PrivateKey.generate()
    return bytes(sk), bytes(sk.public_key)


def sealed_encrypt(message: Message, public_key: bytes) -> bytes:
    """Anonymous public-key encryption, padded to a 32-byte block."""
    data = _to_bytes(message)
    if not public_key or len(public_key) != nacl.public.PublicKey.SIZE:
        raise InvalidArgument("Recipient public key must be 32 bytes", check="public_key")
    padded = nacl.bindings.sodium_pad(data, PAD_BLOCK)
    return nacl.public.SealedBox(nacl.public.PublicKey(bytes(public_key))).encrypt(padded)


def sealed_decrypt(cipher: bytes, private_key: bytes) -> bytes:
    if not cipher:
        raise InvalidArgument("Cipher text cannot be empty", check="cipher")
    if not private_key or len(private_key) != nacl.public.PrivateKey.SIZE:
        raise InvalidArgument("Private key must be 32 bytes", check="private_key")
    try:
        padded = nacl.public.SealedBox(nacl.public.PrivateKey(bytes(private_key))).decrypt(
            bytes(cipher)
        )
        return nacl.bindings.sodium_unpad(padded, PAD_BLOCK)
    except nacl.exceptions.CryptoError as e:
        raise CryptoFailure(f"Sealed box could not be opened: {e}", check="sealed_decrypt")


# ---------------------------------------------------------------------------
# Sensitive buffers
# ---------------------------------------------------------------------------

def wipe(buffer: bytearray) -> None:
    """Overwrite a mutable buffer with zeros."""
    for i in range(len(buffer)):
        buffer[i] = 0


@contextmanager
def sensitive(*buffers: bytearray) -> Iterator[tuple[bytearray, ...]]:
    """Zero every buffer on exit, whether the block returns or raises."""
    try:
        yield buffers
    finally:
        for buffer in buffers:
            wipe(buffer)
