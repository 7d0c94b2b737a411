"""
vax/core/verification.py

VAX Verification — admission of one submitted action.

Pipeline (fail fast, no retries, no side effects):

    RECEIVED
      → PARSED               parse_envelope()      InvalidInput
      → CONTINUITY_CHECKED   verify_continuity()   InvalidPrevSAI
      → SCHEMA_VALIDATED     validate_data()       ValidationFailed
      → HASH_VERIFIED        chain_id() compare    SAIMismatch
      → ADMITTED
    any step → REJECTED(kind)

verify_action() raises the typed error of the failing step.
admit() runs the same pipeline and returns a VerificationResult instead.

Neither touches the actor's chain head. Advancing it after ADMITTED is the
caller's job, inside a per-actor critical section (see vax.ledger.head).

InvalidPrevSAI and SAIMismatch are logged on the "vax.security" logger;
schema rejections are ordinary INFO events on this module's logger.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional

from vax.core.chain import SAI_SIZE, chain_id, ids_equal, require_size, verify_continuity
from vax.core.envelope import ActionEnvelope, parse_envelope
from vax.core.exceptions import (
    SAIMismatch,
    ValidationFailed,
    VaxError,
    is_security_event,
)
from vax.core.time import report_timestamp
from vax.sdto.field_spec import parse_schema
from vax.sdto.validation import validate_data


logger          = logging.getLogger(__name__)
security_logger = logging.getLogger("vax.security")


# ─────────────────────────────────────────────────────────────
# Stages
# ─────────────────────────────────────────────────────────────

class VerificationStage(str, Enum):
    RECEIVED           = "received"
    PARSED             = "parsed"
    CONTINUITY_CHECKED = "continuity_checked"
    SCHEMA_VALIDATED   = "schema_validated"
    HASH_VERIFIED      = "hash_verified"
    ADMITTED           = "admitted"
    REJECTED           = "rejected"


# ─────────────────────────────────────────────────────────────
# Result Type
# ─────────────────────────────────────────────────────────────

@dataclass
class VerificationResult:
    admitted:     bool
    stage:        VerificationStage
    reached:      VerificationStage
    kind:         str = ""
    reason:       str = ""
    errors:       List[str] = field(default_factory=list)
    field_errors: Dict[str, List[str]] = field(default_factory=dict)
    envelope:     Optional[ActionEnvelope] = None
    sai:          Optional[bytes] = None

    def __post_init__(self):
        self.verified_at = report_timestamp()

    def __bool__(self) -> bool:
        return self.admitted

    def __repr__(self) -> str:
        if self.admitted:
            return f"VerificationResult(ADMITTED, sai={self.sai.hex()[:16]}...)"
        return f"VerificationResult(REJECTED, {self.kind}, reached={self.reached.value})"

    @classmethod
    def rejected(cls, error: VaxError, reached: VerificationStage) -> "VerificationResult":
        return cls(
            admitted=     False,
            stage=        VerificationStage.REJECTED,
            reached=      reached,
            kind=         error.kind,
            reason=       str(error),
            errors=       list(getattr(error, "errors", [])),
            field_errors= dict(getattr(error, "field_errors", {})),
        )

    def to_dict(self) -> dict:
        return {
            "admitted":     self.admitted,
            "stage":        self.stage.value,
            "reached":      self.reached.value,
            "kind":         self.kind,
            "reason":       self.reason,
            "errors":       self.errors,
            "field_errors": self.field_errors,
            "envelope":     self.envelope.to_dict() if self.envelope else None,
            "sai":          self.sai.hex() if self.sai else None,
            "verified_at":  self.verified_at,
        }


# ─────────────────────────────────────────────────────────────
# Pipeline
# ─────────────────────────────────────────────────────────────

class _Pipeline:
    """One verification run. `reached` is the last stage passed."""

    def __init__(self) -> None:
        self.reached = VerificationStage.RECEIVED

    def run(
        self,
        expected_prev_id: bytes,
        claimed_prev_id:  bytes,
        envelope_bytes:   bytes,
        claimed_id:       bytes,
        schema:           Mapping,
    ) -> ActionEnvelope:
        try:
            return self._run(
                expected_prev_id, claimed_prev_id, envelope_bytes, claimed_id, schema
            )
        except VaxError as exc:
            _log_rejection(exc, self.reached)
            raise

    def _run(self, expected_prev_id, claimed_prev_id, envelope_bytes, claimed_id, schema):
        # Step 1: fixed-size inputs
        expected = require_size("expected_prev_id", expected_prev_id, SAI_SIZE)
        claimed_prev = require_size("claimed_prev_id", claimed_prev_id, SAI_SIZE)
        claimed = require_size("claimed_id", claimed_id, SAI_SIZE)
        rules = parse_schema(schema)

        # Step 2: strict, canonical-only parse
        envelope = parse_envelope(envelope_bytes)
        self.reached = VerificationStage.PARSED

        # Step 3: builds on the current head
        verify_continuity(expected, claimed_prev)
        self.reached = VerificationStage.CONTINUITY_CHECKED

        # Step 4: field rules
        validate_data(envelope.fields, rules)
        self.reached = VerificationStage.SCHEMA_VALIDATED

        # Step 5: independent recomputation
        recomputed = chain_id(claimed_prev, envelope_bytes)
        if not ids_equal(recomputed, claimed):
            raise SAIMismatch(
                "claimed SAI does not match recomputed SAI",
                details={
                    "expected": "..." + recomputed.hex()[-12:],
                    "claimed":  "..." + claimed.hex()[-12:],
                },
            )
        self.reached = VerificationStage.HASH_VERIFIED
        return envelope


def _log_rejection(error: VaxError, reached: VerificationStage) -> None:
    if is_security_event(error):
        security_logger.warning(
            "chain integrity rejection kind=%s after=%s: %s",
            error.kind, reached.value, error,
        )
    elif isinstance(error, ValidationFailed):
        logger.info(
            "action rejected kind=%s after=%s: %d violation(s)",
            error.kind, reached.value, len(error.errors),
        )
    else:
        logger.info(
            "action rejected kind=%s after=%s: %s", error.kind, reached.value, error
        )


# ─────────────────────────────────────────────────────────────
# Primary Verification Entrypoints
# ─────────────────────────────────────────────────────────────

def verify_action(
    expected_prev_id: bytes,
    claimed_prev_id:  bytes,
    envelope_bytes:   bytes,
    claimed_id:       bytes,
    schema:           Mapping,
) -> ActionEnvelope:
    """
    Verify one submitted action against the actor's current head.

    Args:
        expected_prev_id: the actor's chain head, held by the caller
        claimed_prev_id:  prev SAI the submitter built on
        envelope_bytes:   canonical SAE bytes
        claimed_id:       SAI computed by the submitter
        schema:           ActionSchema (or transport map) for the action

    Returns:
        The parsed ActionEnvelope, for the caller to optionally sign and persist.

    Raises:
        InvalidInput, InvalidPrevSAI, ValidationFailed, SAIMismatch
    """
    return _Pipeline().run(
        expected_prev_id, claimed_prev_id, envelope_bytes, claimed_id, schema
    )


def admit(
    expected_prev_id: bytes,
    claimed_prev_id:  bytes,
    envelope_bytes:   bytes,
    claimed_id:       bytes,
    schema:           Mapping,
) -> VerificationResult:
    """
    Same pipeline as verify_action(), reported as a VerificationResult.
    Never raises for VAX errors; the result carries the rejection kind.
    """
    pipeline = _Pipeline()
    try:
        envelope = pipeline.run(
            expected_prev_id, claimed_prev_id, envelope_bytes, claimed_id, schema
        )
    except VaxError as exc:
        return VerificationResult.rejected(exc, pipeline.reached)

    return VerificationResult(
        admitted= True,
        stage=    VerificationStage.ADMITTED,
        reached=  VerificationStage.ADMITTED,
        envelope= envelope,
        sai=      bytes(claimed_id),
    )
