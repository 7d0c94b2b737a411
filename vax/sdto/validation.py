"""
vax/sdto/validation.py

Value checks shared by the incremental ActionBuilder and the batch
validate_data(). Both paths go through check_value(), which is what keeps
them in agreement: a field map passes validate_data() iff setting the same
fields on an ActionBuilder and calling finalize() succeeds.

Numeric comparisons are exact. A number is compared as the decimal it
canonically encodes to (0.1 is compared as 0.1, not as the binary value
0.1000000000000000055...), and bounds are parsed with Decimal. No bound
ever goes through float.
"""

from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from vax.core.canonical import encode
from vax.core.exceptions import EncodingError, ValidationFailed
from vax.sdto.field_spec import FieldSpec, FieldType, parse_bound, parse_schema


# ─────────────────────────────────────────────────────────────
# Message helpers
# ─────────────────────────────────────────────────────────────

def unknown_field(key: Any) -> str:
    return f"unknown field: {key}"


def missing_field(key: str) -> str:
    return f"missing field: {key}"


def field_error(key: str, message: str) -> str:
    return f"field {key}: {message}"


# ─────────────────────────────────────────────────────────────
# Per-value checks
# ─────────────────────────────────────────────────────────────

def _encodable(value: Any) -> Optional[str]:
    try:
        encode(value)
    except EncodingError as exc:
        return f"value cannot be canonicalized: {exc}"
    return None


def _check_bounds(measured: Decimal, spec: FieldSpec, what: str) -> Optional[str]:
    if spec.min is not None:
        low = parse_bound(spec.min)
        if low is None:
            return f"invalid min bound {spec.min!r}"
        if measured < low:
            return f"{what} {measured} < min {spec.min}"
    if spec.max is not None:
        high = parse_bound(spec.max)
        if high is None:
            return f"invalid max bound {spec.max!r}"
        if measured > high:
            return f"{what} {measured} > max {spec.max}"
    return None


def _check_string(value: Any, spec: FieldSpec) -> Optional[str]:
    if not isinstance(value, str):
        return "expected string"
    problem = _encodable(value)
    if problem:
        return problem
    if spec.enum:
        if value not in spec.enum:
            return f"value {value!r} not in enum"
        return None
    return _check_bounds(Decimal(len(value)), spec, "string length")


def _check_number(value: Any, spec: FieldSpec) -> Optional[str]:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return "expected number"
    try:
        canonical = encode(value)
    except EncodingError as exc:
        return f"value cannot be canonicalized: {exc}"
    return _check_bounds(Decimal(canonical.decode("ascii")), spec, "number")


def _check_sign(value: Any, spec: FieldSpec) -> Optional[str]:
    if not isinstance(value, str):
        return "sign field expects string value"
    if not value:
        return "sign value cannot be empty"
    return _encodable(value)


_CHECKS = {
    FieldType.STRING: _check_string,
    FieldType.NUMBER: _check_number,
    FieldType.SIGN:   _check_sign,
}


def check_value(value: Any, spec: FieldSpec) -> Optional[str]:
    """Return a violation message for `value` under `spec`, or None if it passes."""
    check = _CHECKS.get(spec.type)
    if check is None:
        return f"unknown type {spec.type!r}"
    return check(value, spec)


# ─────────────────────────────────────────────────────────────
# Batch validation
# ─────────────────────────────────────────────────────────────

def collect_violations(
    data: Mapping,
    schema: Mapping,
) -> List[Tuple[str, str]]:
    """
    All (field, message) violations of a complete field map.

    Schema fields come first in schema order (missing or invalid),
    followed by fields the schema does not define.
    """
    violations: List[Tuple[str, str]] = []
    schema = parse_schema(schema)
    for key, spec in schema.items():
        if key not in data:
            violations.append((key, missing_field(key)))
            continue
        problem = check_value(data[key], spec)
        if problem:
            violations.append((key, field_error(key, problem)))
    for key in data:
        if key not in schema:
            violations.append((str(key), unknown_field(key)))
    return violations


def check_data(data: Mapping, schema: Mapping) -> List[str]:
    """validate_data() without raising: the list of messages, empty when valid."""
    if not isinstance(data, Mapping):
        return [f"fields must be an object, got {type(data).__name__}"]
    return [message for _, message in collect_violations(data, schema)]


def group_by_field(violations: List[Tuple[str, str]]) -> Dict[str, List[str]]:
    grouped: Dict[str, List[str]] = {}
    for key, message in violations:
        grouped.setdefault(key, []).append(message)
    return grouped


def validate_data(data: Mapping, schema: Mapping) -> None:
    """
    Batch-validate a finished field map against a schema.

    Reports every problem at once: missing fields, unknown extra fields,
    and type / range / enum violations.

    Raises:
        ValidationFailed — with .errors (all messages) and .field_errors
    """
    if not isinstance(data, Mapping):
        raise ValidationFailed(
            [f"fields must be an object, got {type(data).__name__}"]
        )
    violations = collect_violations(data, schema)
    if violations:
        raise ValidationFailed(
            [message for _, message in violations],
            field_errors=group_by_field(violations),
        )
