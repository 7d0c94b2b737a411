"""
vax/__init__.py

VAX: verifiable action chains.

Every accepted action is a canonical envelope, validated against a
published schema, and linked to the actor's previous action by a
SHA-256 Semantic Action Identifier (SAI). Any party holding the bytes
can recompute the chain and detect insertion, deletion, reordering or
tampering.

    sae = ActionBuilder("purchase", schema).set("amount", 500.0).finalize()
    sai = chain_id(prev_sai, sae)
    verify_action(head, prev_sai, sae, sai, schema)
"""

__version__ = "0.1.0"

from vax.core.canonical import canonical_hash, encode, encode_text, is_canonical
from vax.core.chain import (
    ActorIdentity,
    ChainLink,
    chain_id,
    generate_genesis_salt,
    genesis_id,
    verify_continuity,
    verify_links,
)
from vax.core.envelope import ActionEnvelope, build_envelope, parse_envelope
from vax.core.exceptions import (
    EncodingError,
    InvalidInput,
    InvalidPrevSAI,
    SAIMismatch,
    ValidationFailed,
    VaxError,
)
from vax.core.verification import VerificationResult, VerificationStage, admit, verify_action
from vax.ledger.head import ChainHead, HeadRegistry
from vax.sdto import ActionBuilder, ActionSchema, FieldSpec, SchemaBuilder, validate_data

__all__ = [
    # Encoding
    "encode",
    "encode_text",
    "canonical_hash",
    "is_canonical",
    # Schema
    "SchemaBuilder",
    "ActionBuilder",
    "ActionSchema",
    "FieldSpec",
    "validate_data",
    # Envelope
    "ActionEnvelope",
    "build_envelope",
    "parse_envelope",
    # Chain
    "ActorIdentity",
    "ChainLink",
    "genesis_id",
    "chain_id",
    "generate_genesis_salt",
    "verify_continuity",
    "verify_links",
    # Verification
    "verify_action",
    "admit",
    "VerificationResult",
    "VerificationStage",
    "ChainHead",
    "HeadRegistry",
    # Errors
    "VaxError",
    "InvalidInput",
    "InvalidPrevSAI",
    "SAIMismatch",
    "ValidationFailed",
    "EncodingError",
]
