"""Secret material must never reach error context or log output."""

from coincore.crypto import scalar_random
from coincore.errors import ChainMismatch, CoinError, InvalidArgument, InvalidScalar, SwapAborted
from coincore.redact import REDACTED, redact_state


class TestRedactKeys:
    def test_password(self):
        assert redact_state({"password": "hunter2"})["password"] == REDACTED

    def test_blind(self):
        assert redact_state({"receiver_blind": "x"})["receiver_blind"] == REDACTED

    def test_share(self):
        assert redact_state({"first_share": "x"})["first_share"] == REDACTED

    def test_private_key(self):
        assert redact_state({"private_key": "x"})["private_key"] == REDACTED

    def test_bare_key(self):
        assert redact_state({"key": "x"})["key"] == REDACTED

    def test_public_fields_kept(self):
        state = {"version": 3, "stamp": "s1", "memo": "rent"}
        assert redact_state(state) == state


class TestRedactValues:
    def test_scalar_hex(self):
        blob = scalar_random().hex()
        result = redact_state({"note": f"opened with {blob}"})
        assert blob not in result["note"]
        assert REDACTED in result["note"]

    def test_argon2_hash(self):
        result = redact_state({"note": "stored $argon2id$v=19$m=8,t=1,p=1$abc$def"})
        assert "$argon2id$" not in result["note"]

    def test_assignment(self):
        result = redact_state({"note": "retry with password=hunter2"})
        assert "hunter2" not in result["note"]

    def test_raw_bytes(self):
        assert redact_state({"data": b"\x01\x02"})["data"] == REDACTED

    def test_nested(self):
        result = redact_state({"outer": [{"secret": "x"}, ("blind=abc",)]})
        assert result["outer"][0]["secret"] == REDACTED
        assert "abc" not in result["outer"][1][0]


class TestErrorContext:
    def test_context_redacted(self):
        blind = scalar_random()
        err = SwapAborted("Opening failed", check="opening", version=1, stamp="s1", blind=blind)
        assert err.context["blind"] == REDACTED
        assert blind.hex() not in str(err.to_dict())

    def test_to_dict(self):
        err = ChainMismatch("Hint does not match", check="hash_image", version=4, stamp="s1")
        d = err.to_dict()
        assert d["error"] == "ChainMismatch"
        assert d["check"] == "hash_image"
        assert d["version"] == 4
        assert d["stamp"] == "s1"

    def test_hierarchy(self):
        assert issubclass(InvalidArgument, ValueError)
        assert issubclass(InvalidScalar, InvalidArgument)
        assert issubclass(SwapAborted, CoinError)
