"""
tests/test_head_concurrency.py

Caller-held chain heads and the per-actor verify-then-advance section.

Run:
    pytest tests/test_head_concurrency.py -v --tb=short
"""

import threading

import pytest

from vax.core.chain import ActorIdentity, chain_id, genesis_id
from vax.core.envelope import build_envelope
from vax.core.exceptions import InvalidInput
from vax.ledger import ChainHead, HeadRegistry

from tests.conftest import ACTOR_ID, FIXED_TS, VECTOR_SALT


@pytest.fixture
def head(purchase_schema):
    return ChainHead.genesis(ACTOR_ID, VECTOR_SALT, purchase_schema)


@pytest.fixture
def registry(head):
    reg = HeadRegistry()
    reg.register(head)
    return reg


def make_sae(i: int) -> bytes:
    return build_envelope("purchase", {"name": f"n{i}", "amount": i}, timestamp=FIXED_TS + i)


class TestChainHead:

    def test_genesis_head(self, head):
        assert head.last_id == genesis_id(ACTOR_ID, VECTOR_SALT)
        assert head.counter == 0
        assert head.genesis_sai == head.last_id

    def test_accepts_actor_identity(self, purchase_schema):
        h = ChainHead.genesis(ActorIdentity("user123", "device456"), VECTOR_SALT, purchase_schema)
        assert h.actor_id == ACTOR_ID

    def test_advance_returns_new_record(self, head):
        new_id = b"\x05" * 32
        moved = head.advance(new_id)
        assert moved.last_id == new_id
        assert moved.counter == 1
        assert head.last_id == genesis_id(ACTOR_ID, VECTOR_SALT)
        assert moved.genesis_sai == head.genesis_sai

    def test_advance_requires_32_bytes(self, head):
        with pytest.raises(InvalidInput):
            head.advance(b"short")

    def test_to_dict(self, head):
        data = head.to_dict()
        assert data["actor_id"] == ACTOR_ID
        assert data["last_id"] == head.last_id.hex()
        assert data["schema"]["type"] == "object"


class TestHeadRegistry:

    def test_register_and_get(self, registry, head):
        assert registry.get(ACTOR_ID) == head
        assert ACTOR_ID in registry
        assert len(registry) == 1

    def test_duplicate_register_rejected(self, registry, head):
        with pytest.raises(InvalidInput):
            registry.register(head)

    def test_unknown_actor(self, registry):
        with pytest.raises(InvalidInput):
            registry.get("ghost:device")
        with pytest.raises(InvalidInput):
            registry.submit("ghost:device", bytes(32), b"x", bytes(32))

    def test_submit_advances_on_admission(self, registry, head):
        sae = make_sae(1)
        sai = chain_id(head.last_id, sae)
        result = registry.submit(ACTOR_ID, head.last_id, sae, sai)
        assert result.admitted
        assert registry.get(ACTOR_ID).last_id == sai
        assert registry.get(ACTOR_ID).counter == 1

    def test_rejection_leaves_head_untouched(self, registry, head):
        sae = make_sae(1)
        result = registry.submit(ACTOR_ID, head.last_id, sae, bytes(32))
        assert result.kind == "sai_mismatch"
        assert registry.get(ACTOR_ID) == head
        assert registry.history(ACTOR_ID) == []

    def test_replay_of_admitted_action_rejected(self, registry, head):
        sae = make_sae(1)
        sai = chain_id(head.last_id, sae)
        assert registry.submit(ACTOR_ID, head.last_id, sae, sai).admitted
        replay = registry.submit(ACTOR_ID, head.last_id, sae, sai)
        assert replay.kind == "invalid_prev_sai"

    def test_history_verifies(self, registry, head):
        prev = head.last_id
        for i in range(5):
            sae = make_sae(i)
            sai = chain_id(prev, sae)
            assert registry.submit(ACTOR_ID, prev, sae, sai).admitted
            prev = sai
        assert len(registry.history(ACTOR_ID)) == 5
        assert registry.verify_history(ACTOR_ID) == prev


class TestConcurrency:

    def test_racing_submissions_admit_exactly_one(self, registry, head):
        """Many threads building on the same head: exactly one wins."""
        n = 16
        barrier = threading.Barrier(n)
        results = []
        lock = threading.Lock()

        def submit(i):
            sae = make_sae(i)
            sai = chain_id(head.last_id, sae)
            barrier.wait()
            result = registry.submit(ACTOR_ID, head.last_id, sae, sai)
            with lock:
                results.append(result)

        threads = [threading.Thread(target=submit, args=(i,)) for i in range(n)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        admitted = [r for r in results if r.admitted]
        rejected = [r for r in results if not r.admitted]
        assert len(results) == n
        assert len(admitted) == 1
        assert all(r.kind == "invalid_prev_sai" for r in rejected)
        assert registry.get(ACTOR_ID).last_id == admitted[0].sai
        assert registry.verify_history(ACTOR_ID) == admitted[0].sai

    def test_actors_do_not_block_each_other(self, purchase_schema):
        registry = HeadRegistry()
        actors = [f"user{i}:device" for i in range(8)]
        for actor in actors:
            registry.register(ChainHead.genesis(actor, VECTOR_SALT, purchase_schema))
        errors = []

        def run(actor):
            prev = registry.get(actor).last_id
            for i in range(10):
                sae = make_sae(i)
                sai = chain_id(prev, sae)
                if not registry.submit(actor, prev, sae, sai).admitted:
                    errors.append(actor)
                prev = sai

        threads = [threading.Thread(target=run, args=(a,)) for a in actors]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        for actor in actors:
            assert registry.get(actor).counter == 10
            registry.verify_history(actor)
