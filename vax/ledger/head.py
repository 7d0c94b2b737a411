"""
vax/ledger/head.py

Caller-held chain state.

The verifier is stateless; whoever calls it owns, per actor:
    genesis_salt  — generated once, kept for the actor's lifetime
    last_id       — the current chain head (starts at the genesis SAI)
    schema        — the ActionSchema submissions are validated against

HeadRegistry is the in-memory reference for that contract. submit() must,
in this exact order:
  1. Acquire the actor's lock
  2. Run admit() against the current head
  3. On ADMITTED, record the ChainLink and advance the head
  4. Release the lock and return the VerificationResult

Two submissions racing on the same prev_id therefore admit exactly one;
the loser is rejected as invalid_prev_sai. Single process only. Durable
storage is left to the caller.
"""

import logging
import threading
from dataclasses import dataclass, replace
from typing import Dict, List, Mapping

from vax.core.chain import (
    GENESIS_SALT_SIZE,
    SAI_SIZE,
    ActorIdentity,
    ChainLink,
    genesis_id,
    require_size,
    verify_links,
)
from vax.core.exceptions import InvalidInput
from vax.core.verification import VerificationResult, admit
from vax.sdto.field_spec import ActionSchema, parse_schema


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainHead:
    """One actor's chain position. advance() returns a new record."""

    actor_id:     str
    genesis_salt: bytes
    last_id:      bytes
    schema:       ActionSchema
    counter:      int = 0

    @classmethod
    def genesis(cls, actor, genesis_salt: bytes, schema: Mapping) -> "ChainHead":
        actor_id = actor.actor_id if isinstance(actor, ActorIdentity) else actor
        salt = require_size("genesis_salt", genesis_salt, GENESIS_SALT_SIZE)
        return cls(
            actor_id=     actor_id,
            genesis_salt= salt,
            last_id=      genesis_id(actor_id, salt),
            schema=       parse_schema(schema),
        )

    @property
    def genesis_sai(self) -> bytes:
        return genesis_id(self.actor_id, self.genesis_salt)

    def advance(self, new_id: bytes) -> "ChainHead":
        return replace(
            self,
            last_id= require_size("new_id", new_id, SAI_SIZE),
            counter= self.counter + 1,
        )

    def to_dict(self) -> dict:
        return {
            "actor_id":     self.actor_id,
            "genesis_salt": self.genesis_salt.hex(),
            "last_id":      self.last_id.hex(),
            "counter":      self.counter,
            "schema":       self.schema.to_transport(),
        }


class HeadRegistry:
    """
    In-memory chain heads keyed by actor_id, with one lock per actor.
    Admitted links are kept so a history can be re-walked with verify_history().
    """

    def __init__(self) -> None:
        self._registry_lock: threading.Lock             = threading.Lock()
        self._locks:         Dict[str, threading.Lock]  = {}
        self._heads:         Dict[str, ChainHead]       = {}
        self._links:         Dict[str, List[ChainLink]] = {}

    def register(self, head: ChainHead) -> ChainHead:
        """Add a new actor. Raises InvalidInput if the actor is already known."""
        with self._registry_lock:
            if head.actor_id in self._heads:
                raise InvalidInput(
                    "actor already registered", details={"actor_id": head.actor_id}
                )
            self._locks[head.actor_id] = threading.Lock()
            self._heads[head.actor_id] = head
            self._links[head.actor_id] = []
        logger.info("registered actor %s at ...%s", head.actor_id, head.last_id.hex()[-12:])
        return head

    def _lock_for(self, actor_id: str) -> threading.Lock:
        with self._registry_lock:
            try:
                return self._locks[actor_id]
            except KeyError:
                raise InvalidInput(
                    "unknown actor", details={"actor_id": actor_id}
                ) from None

    def get(self, actor_id: str) -> ChainHead:
        with self._lock_for(actor_id):
            return self._heads[actor_id]

    def __contains__(self, actor_id: str) -> bool:
        with self._registry_lock:
            return actor_id in self._heads

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._heads)

    def submit(
        self,
        actor_id:        str,
        claimed_prev_id: bytes,
        envelope_bytes:  bytes,
        claimed_id:      bytes,
    ) -> VerificationResult:
        """Verify-then-advance for one actor, atomically."""
        with self._lock_for(actor_id):
            head = self._heads[actor_id]
            result = admit(
                head.last_id, claimed_prev_id, envelope_bytes, claimed_id, head.schema
            )
            if result.admitted:
                self._links[actor_id].append(ChainLink(
                    prev_id=        head.last_id,
                    envelope_bytes= bytes(envelope_bytes),
                    id=             result.sai,
                ))
                self._heads[actor_id] = head.advance(result.sai)
            return result

    def history(self, actor_id: str) -> List[ChainLink]:
        with self._lock_for(actor_id):
            return list(self._links[actor_id])

    def verify_history(self, actor_id: str) -> bytes:
        """Re-walk the actor's admitted links from genesis; returns the head."""
        with self._lock_for(actor_id):
            head  = self._heads[actor_id]
            links = list(self._links[actor_id])
        return verify_links(head.genesis_sai, links)
