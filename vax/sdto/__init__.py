"""
vax.sdto — Schema-Driven Typed Objects.

Providers publish schemas with SchemaBuilder; consumers build actions
with ActionBuilder; verifiers re-check finished maps with validate_data.
"""

from vax.sdto.action import ActionBuilder, new_action
from vax.sdto.field_spec import (
    SUPPORTED_SIGN_TYPES,
    ActionSchema,
    FieldSpec,
    FieldType,
    parse_schema,
    schema_to_transport,
)
from vax.sdto.schema_builder import SchemaBuilder
from vax.sdto.validation import check_data, check_value, validate_data

__all__ = [
    "ActionBuilder",
    "ActionSchema",
    "FieldSpec",
    "FieldType",
    "SchemaBuilder",
    "SUPPORTED_SIGN_TYPES",
    "check_data",
    "check_value",
    "new_action",
    "parse_schema",
    "schema_to_transport",
    "validate_data",
]
