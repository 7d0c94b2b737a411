"""
tests/test_chain.py

Hash chain engine: genesis, link identifiers, continuity, full-history walk.
"""

import dataclasses
import hashlib

import pytest

from vax.core.chain import (
    GENESIS_SALT_SIZE,
    ActorIdentity,
    ChainLink,
    chain_id,
    from_hex,
    generate_genesis_salt,
    genesis_id,
    ids_equal,
    to_hex,
    verify_continuity,
    verify_links,
)
from vax.core.exceptions import InvalidInput, InvalidPrevSAI, SAIMismatch

from tests.conftest import ACTOR_ID, VECTOR_GENESIS, VECTOR_SALT, ZERO_SAI


def make_chain(genesis: bytes, n: int):
    """Helper: n linked ChainLinks with distinct envelope bytes."""
    links = []
    prev  = genesis
    for i in range(n):
        link = ChainLink.create(prev, b'{"i":%d}' % i)
        links.append(link)
        prev = link.id
    return links


# ─────────────────────────────────────────────────────────────
# GENESIS
# ─────────────────────────────────────────────────────────────

class TestGenesis:

    def test_fixed_vector(self):
        """Every implementation must reproduce this value byte-for-byte."""
        assert genesis_id(ACTOR_ID, VECTOR_SALT).hex() == VECTOR_GENESIS

    def test_formula(self):
        expected = hashlib.sha256(b"VAX-GENESIS" + ACTOR_ID.encode() + VECTOR_SALT).digest()
        assert genesis_id(ACTOR_ID, VECTOR_SALT) == expected

    def test_accepts_actor_identity(self):
        actor = ActorIdentity("user123", "device456")
        assert genesis_id(actor, VECTOR_SALT).hex() == VECTOR_GENESIS

    @pytest.mark.parametrize("salt", [b"", bytes(15), bytes(17), "a1" * 16])
    def test_salt_must_be_16_bytes(self, salt):
        with pytest.raises(InvalidInput):
            genesis_id(ACTOR_ID, salt)

    def test_different_salts_give_different_genesis(self):
        assert genesis_id(ACTOR_ID, bytes(16)) != genesis_id(ACTOR_ID, VECTOR_SALT)

    def test_generated_salt(self):
        a, b = generate_genesis_salt(), generate_genesis_salt()
        assert len(a) == GENESIS_SALT_SIZE
        assert a != b


class TestActorIdentity:

    def test_actor_id_rendering(self):
        assert ActorIdentity("u", "d").actor_id == "u:d"
        assert str(ActorIdentity("u", "d")) == "u:d"

    def test_parse(self):
        actor = ActorIdentity.parse(ACTOR_ID)
        assert actor.user_id == "user123"
        assert actor.device_id == "device456"

    @pytest.mark.parametrize("text", ["nodevice", ":device", "user:"])
    def test_parse_rejects_malformed(self, text):
        with pytest.raises(InvalidInput):
            ActorIdentity.parse(text)


# ─────────────────────────────────────────────────────────────
# LINK IDENTIFIERS
# ─────────────────────────────────────────────────────────────

class TestChainId:

    def test_formula(self):
        env = b'{"a":1}'
        inner = hashlib.sha256(env).digest()
        expected = hashlib.sha256(b"VAX-SAI" + ZERO_SAI + inner).digest()
        assert chain_id(ZERO_SAI, env) == expected

    def test_deterministic(self):
        assert chain_id(ZERO_SAI, b"x") == chain_id(ZERO_SAI, b"x")

    def test_different_envelopes_differ(self):
        assert chain_id(ZERO_SAI, b'{"a":1}') != chain_id(ZERO_SAI, b'{"a":2}')

    def test_different_prev_differ(self):
        other = bytes([1]) + bytes(31)
        assert chain_id(ZERO_SAI, b"x") != chain_id(other, b"x")

    @pytest.mark.parametrize("prev", [bytes(31), bytes(33), b""])
    def test_prev_must_be_32_bytes(self, prev):
        with pytest.raises(InvalidInput):
            chain_id(prev, b"x")

    def test_empty_envelope_rejected(self):
        with pytest.raises(InvalidInput):
            chain_id(ZERO_SAI, b"")

    def test_str_envelope_rejected(self):
        with pytest.raises(InvalidInput):
            chain_id(ZERO_SAI, '{"a":1}')


class TestContinuity:

    def test_matching_passes(self):
        verify_continuity(ZERO_SAI, bytes(32))

    def test_mismatch_raises(self):
        other = bytes(31) + b"\x01"
        with pytest.raises(InvalidPrevSAI) as exc_info:
            verify_continuity(ZERO_SAI, other)
        assert exc_info.value.kind == "invalid_prev_sai"

    def test_wrong_size_is_invalid_input(self):
        with pytest.raises(InvalidInput):
            verify_continuity(ZERO_SAI, bytes(16))

    def test_ids_equal(self):
        assert ids_equal(ZERO_SAI, bytes(32))
        assert not ids_equal(ZERO_SAI, bytes(31))
        assert not ids_equal(ZERO_SAI, b"\x01" + bytes(31))


class TestHex:

    def test_round_trip(self):
        assert from_hex(to_hex(VECTOR_SALT)) == VECTOR_SALT

    def test_size_enforced(self):
        assert from_hex("00" * 32, 32) == ZERO_SAI
        with pytest.raises(InvalidInput):
            from_hex("00" * 31, 32)

    @pytest.mark.parametrize("text", ["abc", "zz", "0x00"])
    def test_malformed(self, text):
        with pytest.raises(InvalidInput):
            from_hex(text)


# ─────────────────────────────────────────────────────────────
# HISTORY
# ─────────────────────────────────────────────────────────────

class TestChainLinks:

    def test_create_computes_id(self):
        link = ChainLink.create(ZERO_SAI, b"x")
        assert link.id == chain_id(ZERO_SAI, b"x")
        assert link.verify()

    def test_tampered_envelope_fails_verify(self):
        link = ChainLink.create(ZERO_SAI, b'{"amount":500}')
        forged = dataclasses.replace(link, envelope_bytes=b'{"amount":900}')
        assert not forged.verify()

    def test_to_dict(self):
        link = ChainLink.create(ZERO_SAI, b'{"a":1}')
        assert link.to_dict() == {
            "prev_id":  "00" * 32,
            "envelope": '{"a":1}',
            "id":       link.id.hex(),
        }

    def test_walk_returns_head(self):
        genesis = genesis_id(ACTOR_ID, VECTOR_SALT)
        links = make_chain(genesis, 5)
        assert verify_links(genesis, links) == links[-1].id

    def test_empty_history_head_is_genesis(self):
        genesis = genesis_id(ACTOR_ID, VECTOR_SALT)
        assert verify_links(genesis, []) == genesis

    def test_reordering_detected(self):
        genesis = genesis_id(ACTOR_ID, VECTOR_SALT)
        links = make_chain(genesis, 4)
        links[1], links[2] = links[2], links[1]
        with pytest.raises(InvalidPrevSAI) as exc_info:
            verify_links(genesis, links)
        assert exc_info.value.details["position"] == 1

    def test_deletion_detected(self):
        genesis = genesis_id(ACTOR_ID, VECTOR_SALT)
        links = make_chain(genesis, 4)
        del links[2]
        with pytest.raises(InvalidPrevSAI):
            verify_links(genesis, links)

    def test_tampering_detected(self):
        genesis = genesis_id(ACTOR_ID, VECTOR_SALT)
        links = make_chain(genesis, 3)
        links[1] = dataclasses.replace(links[1], envelope_bytes=b'{"i":99}')
        with pytest.raises(SAIMismatch) as exc_info:
            verify_links(genesis, links)
        assert exc_info.value.details["position"] == 1

    def test_wrong_genesis_detected(self):
        genesis = genesis_id(ACTOR_ID, VECTOR_SALT)
        links = make_chain(genesis, 2)
        with pytest.raises(InvalidPrevSAI):
            verify_links(genesis_id(ACTOR_ID, bytes(16)), links)
