"""
vax/core/envelope.py

Semantic Action Envelope (SAE)

An envelope only ever exists as canonical bytes:

    {"action_type":"<type>","sdto":{<validated fields>},"timestamp":<ms>}

build_envelope()  — the only producer of envelope bytes
parse_envelope()  — the only consumer; rejects anything that is not
                    already in canonical form

The validated field map travels under the "sdto" key, which is the key
every VAX implementation emits. Nothing here validates field values;
callers hand in an SDTO that already passed the schema validator.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, Optional

from vax.core.canonical import encode, parse_text
from vax.core.exceptions import EncodingError, InvalidInput
from vax.core.time import envelope_timestamp


ACTION_TYPE_KEY = "action_type"
FIELDS_KEY      = "sdto"
TIMESTAMP_KEY   = "timestamp"

ENVELOPE_KEYS = frozenset({ACTION_TYPE_KEY, FIELDS_KEY, TIMESTAMP_KEY})


@dataclass(frozen=True)
class ActionEnvelope:
    """Decoded view of one envelope. The bytes remain the source of truth."""

    action_type: str
    timestamp:   int
    fields:      Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            ACTION_TYPE_KEY: self.action_type,
            FIELDS_KEY:      dict(self.fields),
            TIMESTAMP_KEY:   self.timestamp,
        }

    def to_bytes(self) -> bytes:
        return encode(self.to_dict())

    @classmethod
    def from_dict(cls, data: Any) -> "ActionEnvelope":
        """
        Structural check of a decoded envelope.
        Raises InvalidInput naming the first structural problem.
        """
        if not isinstance(data, Mapping):
            raise InvalidInput(
                f"envelope must be an object, got {type(data).__name__}"
            )
        keys = set(data)
        if keys != ENVELOPE_KEYS:
            raise InvalidInput(
                "envelope keys mismatch",
                details={
                    "missing":    ",".join(sorted(ENVELOPE_KEYS - keys)) or "-",
                    "unexpected": ",".join(sorted(str(k) for k in keys - ENVELOPE_KEYS)) or "-",
                },
            )

        action_type = data[ACTION_TYPE_KEY]
        timestamp   = data[TIMESTAMP_KEY]
        fields      = data[FIELDS_KEY]

        if not isinstance(action_type, str) or not action_type:
            raise InvalidInput("action_type must be a non-empty string")
        if isinstance(timestamp, bool) or not isinstance(timestamp, int) or timestamp < 0:
            raise InvalidInput(
                f"timestamp must be a non-negative integer, got {timestamp!r}"
            )
        if not isinstance(fields, Mapping):
            raise InvalidInput(
                f"{FIELDS_KEY} must be an object, got {type(fields).__name__}"
            )
        return cls(action_type=action_type, timestamp=timestamp, fields=dict(fields))


def build_envelope(
    action_type:      str,
    validated_fields: Mapping,
    timestamp:        Optional[int] = None,
) -> bytes:
    """
    Compose and canonicalize one envelope.

    timestamp defaults to the wall clock (ms). Two content-identical
    actions built at different instants therefore get different bytes,
    and different chain identifiers.

    Raises:
        InvalidInput  — bad action_type / fields / timestamp
        EncodingError — a field value cannot be canonicalized
    """
    envelope = ActionEnvelope.from_dict({
        ACTION_TYPE_KEY: action_type,
        FIELDS_KEY:      validated_fields,
        TIMESTAMP_KEY:   envelope_timestamp() if timestamp is None else timestamp,
    })
    return envelope.to_bytes()


def parse_envelope(envelope_bytes: bytes) -> ActionEnvelope:
    """
    Decode envelope bytes received from another party.

    The bytes must parse under the strict VAX-JCS grammar AND already be
    canonical; re-encoding must reproduce them exactly. Anything else is
    rejected as InvalidInput, since a non-canonical envelope could hash
    differently in another implementation.
    """
    if not isinstance(envelope_bytes, (bytes, bytearray, memoryview)):
        raise InvalidInput(
            f"envelope_bytes must be bytes, got {type(envelope_bytes).__name__}"
        )
    data = bytes(envelope_bytes)
    if not data:
        raise InvalidInput("envelope_bytes cannot be empty")

    try:
        value = parse_text(data)
        canonical = encode(value)
    except EncodingError as exc:
        raise InvalidInput(f"envelope is not valid VAX-JCS: {exc}") from exc

    if canonical != data:
        raise InvalidInput("envelope bytes are not in canonical form")
    return ActionEnvelope.from_dict(value)
