"""
vax/core/chain.py

VAX Hash Chain Engine

Aligned to the cross-language VAX chain contract.

CONTRACT 1 — Genesis
    SAI_0 = SHA256("VAX-GENESIS" || utf8(actor_id) || genesis_salt)
    genesis_salt is exactly 16 bytes, generated once per actor and
    persisted by the caller for the actor's lifetime.

CONTRACT 2 — Chain link
    SAI_n = SHA256("VAX-SAI" || SAI_{n-1} || SHA256(envelope_bytes))
    The inner digest fixes the outer input at 7 + 32 + 32 bytes no matter
    how large the envelope is, and separates content hashing from link hashing.
    SAI_n is a pure function of (SAI_{n-1}, envelope_bytes).

CONTRACT 3 — Comparison
    Every identifier comparison is length-checked and constant-time
    (hmac.compare_digest).

This module holds no state. The actor's chain head lives with the caller
(see vax.ledger.head).
"""

import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from typing import Iterable, Optional

from vax.core.exceptions import InvalidInput, InvalidPrevSAI, SAIMismatch


logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────

SAI_SIZE          = 32
GENESIS_SALT_SIZE = 16

GENESIS_LABEL = b"VAX-GENESIS"
SAI_LABEL     = b"VAX-SAI"


# ─────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────

def require_size(name: str, value: bytes, size: int) -> bytes:
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise InvalidInput(
            f"{name} must be bytes, got {type(value).__name__}"
        )
    value = bytes(value)
    if len(value) != size:
        raise InvalidInput(
            f"{name} must be {size} bytes, got {len(value)}"
        )
    return value


def to_hex(data: bytes) -> str:
    """Lowercase hex of raw bytes."""
    return bytes(data).hex()


def from_hex(text: str, size: Optional[int] = None) -> bytes:
    """
    Decode a hex string, optionally enforcing the decoded length.
    Raises InvalidInput on odd length, non-hex characters, or size mismatch.
    """
    try:
        data = bytes.fromhex(text)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"not a valid hex string: {text!r}") from exc
    if size is not None and len(data) != size:
        raise InvalidInput(
            f"hex value must decode to {size} bytes, got {len(data)}"
        )
    return data


def generate_genesis_salt() -> bytes:
    """Generate a fresh 16-byte genesis salt (CSPRNG)."""
    return secrets.token_bytes(GENESIS_SALT_SIZE)


# ─────────────────────────────────────────────────────────────
# Actor identity
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ActorIdentity:
    """One (user, device) pair. Owns exactly one linear history."""

    user_id:   str
    device_id: str

    def __post_init__(self):
        for name in ("user_id", "device_id"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                raise InvalidInput(f"{name} must be a non-empty string")

    @property
    def actor_id(self) -> str:
        return f"{self.user_id}:{self.device_id}"

    @classmethod
    def parse(cls, actor_id: str) -> "ActorIdentity":
        user_id, sep, device_id = actor_id.partition(":")
        if not sep:
            raise InvalidInput(
                f"actor_id must look like 'user:device', got {actor_id!r}"
            )
        return cls(user_id=user_id, device_id=device_id)

    def __str__(self) -> str:
        return self.actor_id


# ─────────────────────────────────────────────────────────────
# Identifier computation
# ─────────────────────────────────────────────────────────────

def genesis_id(actor_id, genesis_salt: bytes) -> bytes:
    """
    Compute the genesis SAI for an actor.

    Args:
        actor_id:     actor identifier string (or ActorIdentity),
                      e.g. "user123:device456"
        genesis_salt: exactly 16 bytes

    Raises:
        InvalidInput — salt is not 16 bytes, or actor_id is not a string
    """
    if isinstance(actor_id, ActorIdentity):
        actor_id = actor_id.actor_id
    if not isinstance(actor_id, str):
        raise InvalidInput(
            f"actor_id must be str, got {type(actor_id).__name__}"
        )
    salt = require_size("genesis_salt", genesis_salt, GENESIS_SALT_SIZE)
    return hashlib.sha256(
        GENESIS_LABEL + actor_id.encode("utf-8") + salt
    ).digest()


def chain_id(prev_id: bytes, envelope_bytes: bytes) -> bytes:
    """
    Compute the SAI that links envelope_bytes to prev_id.

    Raises:
        InvalidInput — prev_id is not 32 bytes, or envelope_bytes is empty
    """
    prev = require_size("prev_id", prev_id, SAI_SIZE)
    if not isinstance(envelope_bytes, (bytes, bytearray, memoryview)):
        raise InvalidInput(
            f"envelope_bytes must be bytes, got {type(envelope_bytes).__name__}"
        )
    if len(envelope_bytes) == 0:
        raise InvalidInput("envelope_bytes cannot be empty")

    inner = hashlib.sha256(bytes(envelope_bytes)).digest()
    return hashlib.sha256(SAI_LABEL + prev + inner).digest()


def ids_equal(a: bytes, b: bytes) -> bool:
    """Length-checked, constant-time identifier comparison."""
    return len(a) == len(b) and hmac.compare_digest(bytes(a), bytes(b))


def verify_continuity(expected_prev_id: bytes, claimed_prev_id: bytes) -> None:
    """
    Check that a submission builds on the actor's current chain head.

    Raises:
        InvalidInput   — either argument is not 32 bytes
        InvalidPrevSAI — the two identifiers differ
    """
    expected = require_size("expected_prev_id", expected_prev_id, SAI_SIZE)
    claimed  = require_size("claimed_prev_id", claimed_prev_id, SAI_SIZE)
    if not hmac.compare_digest(expected, claimed):
        raise InvalidPrevSAI(
            "claimed prev SAI does not match the chain head",
            details={
                "expected": "..." + expected.hex()[-12:],
                "claimed":  "..." + claimed.hex()[-12:],
            },
        )


# ─────────────────────────────────────────────────────────────
# ChainLink
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ChainLink:
    """
    One admitted history entry: (prev_id, envelope_bytes, id).
    Immutable once admitted. Never edited, never deleted.
    """

    prev_id:        bytes
    envelope_bytes: bytes
    id:             bytes

    @classmethod
    def create(cls, prev_id: bytes, envelope_bytes: bytes) -> "ChainLink":
        """THE constructor for new links: id is always computed, never supplied."""
        link_id = chain_id(prev_id, envelope_bytes)
        return cls(
            prev_id=        bytes(prev_id),
            envelope_bytes= bytes(envelope_bytes),
            id=             link_id,
        )

    def verify(self) -> bool:
        """True if id is the correct SAI for (prev_id, envelope_bytes)."""
        try:
            return ids_equal(self.id, chain_id(self.prev_id, self.envelope_bytes))
        except InvalidInput:
            return False

    def to_dict(self) -> dict:
        return {
            "prev_id":        self.prev_id.hex(),
            "envelope":       self.envelope_bytes.decode("ascii", errors="replace"),
            "id":             self.id.hex(),
        }


def verify_links(genesis: bytes, links: Iterable[ChainLink]) -> bytes:
    """
    Walk a full actor history starting at its genesis SAI.

    Each link must continue from the previous id and carry a correct id.
    Returns the final chain head. Raises on the first broken link:
        InvalidPrevSAI — link does not continue from its predecessor
        SAIMismatch    — link id does not match its contents
    """
    head = require_size("genesis", genesis, SAI_SIZE)
    for position, link in enumerate(links):
        try:
            verify_continuity(head, link.prev_id)
        except InvalidPrevSAI as exc:
            exc.details["position"] = position
            raise
        if not link.verify():
            raise SAIMismatch(
                "link id does not match its contents",
                details={"position": position},
            )
        head = link.id
    logger.debug("verified history ending at ...%s", head.hex()[-12:])
    return head
