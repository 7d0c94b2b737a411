"""
vax/core/gi.py

Entropy-bearing chain mode.

A separate verification path for deployments that share a per-session
secret k_chain between actor and verifier. Each action carries an
actor-scoped 16-bit counter, and the link digest mixes in a per-action
value gi derived from that counter:

    gi_n  = HMAC-SHA256(k_chain, "VAX-GI" || uint16_be(counter_n))
    SAI_n = SHA256("VAX-SAI" || SAI_{n-1} || SHA256(envelope_bytes) || gi_n)

Identifiers produced here are NOT interchangeable with vax.core.chain.chain_id;
a history uses one mode for its whole lifetime.

ChainSession models the actor side of one connection:

    CONNECTED → SYNCED → PROPOSING → COMMITTED
                                   → REJECTED
    COMMITTED → PROPOSING          (next action)
    SYNCED | COMMITTED | REJECTED → SYNCED  (resync with the verifier)
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from vax.core.chain import (
    SAI_LABEL,
    SAI_SIZE,
    genesis_id,
    ids_equal,
    require_size,
    verify_continuity,
)
from vax.core.envelope import ActionEnvelope, parse_envelope
from vax.core.exceptions import (
    CounterOverflow,
    InvalidCounter,
    InvalidInput,
    SAIMismatch,
    VaxError,
    is_security_event,
)
from vax.sdto.field_spec import parse_schema
from vax.sdto.validation import validate_data


logger          = logging.getLogger(__name__)
security_logger = logging.getLogger("vax.security")


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────

K_CHAIN_SIZE = 32
GI_SIZE      = 32
COUNTER_MAX  = 0xFFFF

GI_LABEL = b"VAX-GI"


# ─────────────────────────────────────────────────────────────
# Primitives
# ─────────────────────────────────────────────────────────────

def _require_counter(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"{name} must be an int, got {type(value).__name__}")
    if not 0 <= value <= COUNTER_MAX:
        raise InvalidInput(f"{name} must be within 0..{COUNTER_MAX}, got {value}")
    return value


def compute_gi(k_chain: bytes, counter: int) -> bytes:
    """Per-action entropy value for `counter` under the session secret."""
    key = require_size("k_chain", k_chain, K_CHAIN_SIZE)
    counter = _require_counter("counter", counter)
    return hmac.new(key, GI_LABEL + counter.to_bytes(2, "big"), hashlib.sha256).digest()


def chain_id_with_gi(prev_id: bytes, envelope_bytes: bytes, gi: bytes) -> bytes:
    prev = require_size("prev_id", prev_id, SAI_SIZE)
    gi   = require_size("gi", gi, GI_SIZE)
    if not isinstance(envelope_bytes, (bytes, bytearray, memoryview)):
        raise InvalidInput(
            f"envelope_bytes must be bytes, got {type(envelope_bytes).__name__}"
        )
    if len(envelope_bytes) == 0:
        raise InvalidInput("envelope_bytes cannot be empty")

    inner = hashlib.sha256(bytes(envelope_bytes)).digest()
    return hashlib.sha256(SAI_LABEL + prev + inner + gi).digest()


def verify_counter(expected_counter: int, counter: int) -> None:
    """
    Raises:
        InvalidInput    — either value outside 0..COUNTER_MAX
        CounterOverflow — expected_counter is already COUNTER_MAX
        InvalidCounter  — counter is not expected_counter + 1
    """
    expected = _require_counter("expected_counter", expected_counter)
    submitted = _require_counter("counter", counter)
    if expected == COUNTER_MAX:
        raise CounterOverflow(
            "actor counter exhausted",
            details={"counter": expected},
        )
    if submitted != expected + 1:
        raise InvalidCounter(
            "counter is not the next value",
            details={"expected": expected + 1, "claimed": submitted},
        )


# ─────────────────────────────────────────────────────────────
# Verification
# ─────────────────────────────────────────────────────────────

def verify_action_with_gi(
    k_chain:          bytes,
    expected_counter: int,
    expected_prev_id: bytes,
    counter:          int,
    prev_id:          bytes,
    envelope_bytes:   bytes,
    claimed_id:       bytes,
    schema:           Mapping,
) -> ActionEnvelope:
    """
    Verify one submission in entropy-bearing mode.

    Order: counter, continuity, canonical parse, schema, gi + SAI recompute.

    Raises:
        InvalidInput, InvalidCounter, CounterOverflow, InvalidPrevSAI,
        ValidationFailed, SAIMismatch
    """
    try:
        key     = require_size("k_chain", k_chain, K_CHAIN_SIZE)
        claimed = require_size("claimed_id", claimed_id, SAI_SIZE)
        rules   = parse_schema(schema)

        verify_counter(expected_counter, counter)
        verify_continuity(expected_prev_id, prev_id)
        envelope = parse_envelope(envelope_bytes)
        validate_data(envelope.fields, rules)

        recomputed = chain_id_with_gi(prev_id, envelope_bytes, compute_gi(key, counter))
        if not ids_equal(recomputed, claimed):
            raise SAIMismatch(
                "claimed SAI does not match recomputed SAI",
                details={"counter": counter},
            )
    except VaxError as exc:
        if is_security_event(exc):
            security_logger.warning(
                "chain integrity rejection kind=%s mode=gi: %s", exc.kind, exc
            )
        else:
            logger.info("action rejected kind=%s mode=gi: %s", exc.kind, exc)
        raise
    return envelope


# ─────────────────────────────────────────────────────────────
# Actor-side session
# ─────────────────────────────────────────────────────────────

class SessionState(str, Enum):
    CONNECTED = "connected"
    SYNCED    = "synced"
    PROPOSING = "proposing"
    COMMITTED = "committed"
    REJECTED  = "rejected"


_TRANSITIONS = {
    SessionState.CONNECTED: {SessionState.SYNCED},
    SessionState.SYNCED:    {SessionState.PROPOSING, SessionState.SYNCED},
    SessionState.PROPOSING: {SessionState.COMMITTED, SessionState.REJECTED},
    SessionState.COMMITTED: {SessionState.PROPOSING, SessionState.SYNCED},
    SessionState.REJECTED:  {SessionState.SYNCED},
}


@dataclass(frozen=True)
class Proposal:
    """What the actor submits for one action."""

    counter:        int
    prev_id:        bytes
    envelope_bytes: bytes
    id:             bytes

    def to_dict(self) -> dict:
        return {
            "counter":  self.counter,
            "prev_id":  self.prev_id.hex(),
            "envelope": self.envelope_bytes.decode("ascii"),
            "id":       self.id.hex(),
        }


class ChainSession:
    """
    Actor-side chain state for one connection in entropy-bearing mode.

    A fresh session sits at (counter 0, genesis SAI) and must be synced
    before proposing, either with those values or with the verifier's view.
    """

    def __init__(self, actor_id: str, k_chain: bytes, genesis_salt: bytes):
        self.actor_id = actor_id
        self._k_chain = require_size("k_chain", k_chain, K_CHAIN_SIZE)
        self.genesis  = genesis_id(actor_id, genesis_salt)
        self.counter: int   = 0
        self.prev_id: bytes = self.genesis
        self.state          = SessionState.CONNECTED
        self._pending: Optional[Proposal] = None

    def _move(self, target: SessionState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidInput(
                f"illegal session transition {self.state.value} -> {target.value}"
            )
        logger.debug("session %s: %s -> %s", self.actor_id, self.state.value, target.value)
        self.state = target

    def sync(self, counter: Optional[int] = None, prev_id: Optional[bytes] = None) -> None:
        """Adopt the verifier's (counter, prev_id); defaults to the genesis position."""
        counter = 0 if counter is None else _require_counter("counter", counter)
        prev    = self.genesis if prev_id is None else require_size("prev_id", prev_id, SAI_SIZE)
        self._move(SessionState.SYNCED)
        self.counter  = counter
        self.prev_id  = prev
        self._pending = None

    def propose(self, envelope_bytes: bytes) -> Proposal:
        if SessionState.PROPOSING not in _TRANSITIONS[self.state]:
            raise InvalidInput(f"cannot propose while {self.state.value}")
        if self.counter >= COUNTER_MAX:
            raise CounterOverflow(
                "actor counter exhausted", details={"counter": self.counter}
            )
        parse_envelope(envelope_bytes)

        counter = self.counter + 1
        link_id = chain_id_with_gi(
            self.prev_id, envelope_bytes, compute_gi(self._k_chain, counter)
        )
        self._move(SessionState.PROPOSING)
        self._pending = Proposal(
            counter=        counter,
            prev_id=        self.prev_id,
            envelope_bytes= bytes(envelope_bytes),
            id=             link_id,
        )
        return self._pending

    def commit(self) -> bytes:
        """Verifier accepted the pending proposal; advance and return the new head."""
        self._move(SessionState.COMMITTED)
        pending, self._pending = self._pending, None
        self.counter = pending.counter
        self.prev_id = pending.id
        return self.prev_id

    def reject(self) -> None:
        """Verifier refused the pending proposal; state is unchanged until resync."""
        self._move(SessionState.REJECTED)
        self._pending = None

    @property
    def pending(self) -> Optional[Proposal]:
        return self._pending

    def __repr__(self) -> str:
        return (
            f"ChainSession({self.actor_id!r}, state={self.state.value}, "
            f"counter={self.counter})"
        )
