"""
tests/test_envelope.py

Envelope construction and strict canonical-only parsing.
"""

import pytest

from vax.core.envelope import ActionEnvelope, build_envelope, parse_envelope
from vax.core.exceptions import EncodingError, InvalidInput

from tests.conftest import FIXED_TS


EXPECTED = (
    b'{"action_type":"purchase","sdto":{"amount":500,"name":"alice"},'
    b'"timestamp":1700000000000}'
)


class TestBuildEnvelope:

    def test_exact_bytes(self):
        sae = build_envelope("purchase", {"name": "alice", "amount": 500.0}, timestamp=FIXED_TS)
        assert sae == EXPECTED

    def test_field_order_does_not_matter(self):
        a = build_envelope("t", {"b": 1, "a": 2}, timestamp=1)
        b = build_envelope("t", {"a": 2, "b": 1}, timestamp=1)
        assert a == b

    def test_timestamps_distinguish_identical_content(self):
        a = build_envelope("t", {"a": 1}, timestamp=1)
        b = build_envelope("t", {"a": 1}, timestamp=2)
        assert a != b

    def test_clock_default(self, monkeypatch):
        monkeypatch.setattr("vax.core.envelope.envelope_timestamp", lambda: 123)
        assert parse_envelope(build_envelope("t", {})).timestamp == 123

    @pytest.mark.parametrize("action_type", ["", None, 5])
    def test_bad_action_type(self, action_type):
        with pytest.raises(InvalidInput):
            build_envelope(action_type, {}, timestamp=1)

    @pytest.mark.parametrize("timestamp", [-1, 1.5, True, "1"])
    def test_bad_timestamp(self, timestamp):
        with pytest.raises(InvalidInput):
            build_envelope("t", {}, timestamp=timestamp)

    def test_fields_must_be_mapping(self):
        with pytest.raises(InvalidInput):
            build_envelope("t", ["a"], timestamp=1)

    def test_unencodable_field(self):
        with pytest.raises(EncodingError):
            build_envelope("t", {"x": float("nan")}, timestamp=1)


class TestParseEnvelope:

    def test_round_trip(self):
        env = parse_envelope(EXPECTED)
        assert env == ActionEnvelope(
            action_type= "purchase",
            timestamp=   FIXED_TS,
            fields=      {"amount": 500, "name": "alice"},
        )
        assert env.to_bytes() == EXPECTED

    @pytest.mark.parametrize("raw", [
        b'{"action_type": "purchase","sdto":{},"timestamp":1}',
        b'{"sdto":{},"action_type":"purchase","timestamp":1}',
        b'{"action_type":"purchase","sdto":{"a":1.0},"timestamp":1}',
        b'{"action_type":"caf\xc3\xa9","sdto":{},"timestamp":1}',
        EXPECTED + b"\n",
    ])
    def test_non_canonical_rejected(self, raw):
        with pytest.raises(InvalidInput):
            parse_envelope(raw)

    @pytest.mark.parametrize("raw", [
        b'{"action_type":"t","extra":1,"sdto":{},"timestamp":1}',
        b'{"action_type":"t","sdto":{}}',
        b'{"action_type":"","sdto":{},"timestamp":1}',
        b'{"action_type":"t","sdto":[],"timestamp":1}',
        b'{"action_type":"t","sdto":{},"timestamp":-1}',
        b'{"action_type":"t","sdto":{},"timestamp":1.5}',
        b'{"action_type":"t","sdto":{},"timestamp":true}',
        b'["action_type"]',
        b"not json",
        b"",
    ])
    def test_structurally_invalid_rejected(self, raw):
        with pytest.raises(InvalidInput):
            parse_envelope(raw)

    def test_str_rejected(self):
        with pytest.raises(InvalidInput):
            parse_envelope(EXPECTED.decode())
