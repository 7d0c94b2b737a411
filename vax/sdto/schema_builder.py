"""
vax/sdto/schema_builder.py

Provider-side fluent schema construction.

    schema = (SchemaBuilder()
              .set_string_length("name", "1", "50")
              .set_number_range("amount", "0", "1000000")
              .set_enum("status", ["pending", "done"])
              .build())

Every setter returns the builder. build() snapshots the current rules
into an immutable ActionSchema.
"""

from typing import Any, Dict, Iterable

from vax.core.exceptions import InvalidInput
from vax.sdto.field_spec import (
    SUPPORTED_SIGN_TYPES,
    ActionSchema,
    FieldSpec,
    FieldType,
    normalize_bound,
)


def _check_name(field: str) -> str:
    if not isinstance(field, str) or not field:
        raise InvalidInput(f"field name must be a non-empty string, got {field!r}")
    return field


def _check_strings(field: str, values: Iterable[str]) -> tuple:
    if isinstance(values, str):
        raise InvalidInput(f"field {field}: enum must be a list of strings, not a str")
    items = tuple(values)
    if not items:
        raise InvalidInput(f"field {field}: enum must not be empty")
    for item in items:
        if not isinstance(item, str):
            raise InvalidInput(
                f"field {field}: enum members must be str, got {item!r}"
            )
    return items


class SchemaBuilder:
    """Accumulates (field, FieldSpec) pairs. Setting a field twice replaces it."""

    def __init__(self) -> None:
        self._fields: Dict[str, FieldSpec] = {}

    def set_string_length(self, field: str, min: Any, max: Any) -> "SchemaBuilder":
        """String field whose length must lie in [min, max]."""
        self._fields[_check_name(field)] = FieldSpec(
            type= FieldType.STRING,
            min=  normalize_bound(min),
            max=  normalize_bound(max),
        )
        return self

    def set_number_range(self, field: str, min: Any, max: Any) -> "SchemaBuilder":
        """Number field whose value must lie in [min, max], both inclusive."""
        self._fields[_check_name(field)] = FieldSpec(
            type= FieldType.NUMBER,
            min=  normalize_bound(min),
            max=  normalize_bound(max),
        )
        return self

    def set_enum(self, field: str, values: Iterable[str]) -> "SchemaBuilder":
        """String field restricted to one of `values`."""
        self._fields[_check_name(field)] = FieldSpec(
            type= FieldType.STRING,
            enum= _check_strings(field, values),
        )
        return self

    def set_sign(self, field: str, sign_type: str) -> "SchemaBuilder":
        """Signature-carrying field produced with one algorithm."""
        return self.set_sign_multi(field, [sign_type])

    def set_sign_multi(self, field: str, sign_types: Iterable[str]) -> "SchemaBuilder":
        """Signature-carrying field; any of `sign_types` is acceptable."""
        types = _check_strings(field, sign_types)
        for sign_type in types:
            if sign_type not in SUPPORTED_SIGN_TYPES:
                raise InvalidInput(
                    f"field {field}: unsupported sign type {sign_type!r}",
                    details={"supported": ",".join(SUPPORTED_SIGN_TYPES)},
                )
        self._fields[_check_name(field)] = FieldSpec(
            type= FieldType.SIGN,
            enum= types,
        )
        return self

    def build(self) -> ActionSchema:
        """Snapshot the current rules."""
        return ActionSchema(self._fields)

    def to_transport(self) -> Dict[str, Any]:
        """Wrapped transport form: {"type": "object", "properties": {...}}."""
        return self.build().to_transport()
