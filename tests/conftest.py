import nacl.pwhash
import pytest

from coincore import CoinConfig, StretchParams


@pytest.fixture(scope="session")
def fast():
    """Cheapest Argon2id cost libsodium accepts."""
    return StretchParams(
        opslimit=nacl.pwhash.argon2id.OPSLIMIT_MIN,
        memlimit=nacl.pwhash.argon2id.MEMLIMIT_MIN,
    )


@pytest.fixture
def alice(fast):
    return CoinConfig(password="alice-password", stamp="s-alice", stretch=fast)


@pytest.fixture
def bob(fast):
    return CoinConfig(password="bob-password", stamp="s-bob", stretch=fast)
