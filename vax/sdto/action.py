"""
vax/sdto/action.py

Consumer-side fluent action construction.

    sae = (ActionBuilder("purchase", schema)
           .set("name", "alice")
           .set("amount", 500.0)
           .finalize())

set() validates eagerly but never raises: problems are collected and
reported together by finalize(), so one pass gives the full diagnosis.
"""

import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Tuple

from vax.core.envelope import build_envelope
from vax.core.exceptions import InvalidInput, ValidationFailed
from vax.sdto.field_spec import parse_schema
from vax.sdto.validation import (
    check_value,
    field_error,
    group_by_field,
    missing_field,
    unknown_field,
)


logger = logging.getLogger(__name__)


class ActionBuilder:
    """
    Builds one validated action for `action_type` under `schema`.

    The schema is any mapping accepted by parse_schema(): an ActionSchema,
    a dict of FieldSpec, or a received transport map.
    """

    def __init__(self, action_type: str, schema: Mapping):
        if not isinstance(action_type, str) or not action_type:
            raise InvalidInput("action_type must be a non-empty string")
        self.action_type = action_type
        self.schema      = parse_schema(schema)
        self._data:       Dict[str, Any]        = {}
        self._violations: List[Tuple[str, str]] = []

    # ── Accumulation ──────────────────────────────────────────

    def set(self, key: str, value: Any) -> "ActionBuilder":
        spec = self.schema.get(key)
        if spec is None:
            self._violations.append((str(key), unknown_field(key)))
            return self

        problem = check_value(value, spec)
        if problem:
            self._violations.append((key, field_error(key, problem)))
            return self

        self._data[key] = value
        return self

    def update(self, fields: Mapping) -> "ActionBuilder":
        """set() every item of `fields`, in iteration order."""
        for key, value in fields.items():
            self.set(key, value)
        return self

    @property
    def errors(self) -> List[str]:
        """Messages collected so far (copy)."""
        return [message for _, message in self._violations]

    @property
    def data(self) -> Dict[str, Any]:
        """Successfully set fields so far (copy)."""
        return dict(self._data)

    # ── Output ────────────────────────────────────────────────

    def finalize(self, timestamp: Optional[int] = None) -> bytes:
        """
        Produce the canonical envelope bytes.

        Every schema field must have been set successfully. Raises
        ValidationFailed carrying all collected messages otherwise; no
        envelope is produced in that case.
        """
        violations = list(self._violations)
        for key in self.schema:
            if key not in self._data:
                violations.append((key, missing_field(key)))

        if violations:
            logger.debug(
                "action %s rejected with %d violation(s)",
                self.action_type, len(violations),
            )
            raise ValidationFailed(
                [message for _, message in violations],
                field_errors=group_by_field(violations),
                details={"action_type": self.action_type},
            )

        return build_envelope(self.action_type, self._data, timestamp=timestamp)

    def __repr__(self) -> str:
        return (
            f"ActionBuilder({self.action_type!r}, set={sorted(self._data)}, "
            f"errors={len(self._violations)})"
        )


def new_action(action_type: str, schema: Mapping) -> ActionBuilder:
    return ActionBuilder(action_type, schema)
