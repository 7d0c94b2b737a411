"""
VAX Exception Hierarchy

All exceptions inherit from VaxError for easy catching.
Every class carries a stable `kind` string so rejections can be reported
in structured form (logs, JSON output, transport replies).
"""

from typing import Dict, Iterable, List


class VaxError(Exception):
    """Base exception for all VAX errors"""

    kind = "vax_error"

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class InvalidInput(VaxError):
    """Raised when an argument is malformed or has the wrong size"""
    kind = "invalid_input"


class InvalidPrevSAI(VaxError):
    """Raised when the claimed previous SAI is not the actor's chain head"""
    kind = "invalid_prev_sai"


class SAIMismatch(VaxError):
    """Raised when a recomputed SAI disagrees with the claimed one"""
    kind = "sai_mismatch"


class ValidationFailed(VaxError):
    """
    Raised when field values violate an action schema.

    Carries every collected message, not just the first one.
    """
    kind = "validation_failed"

    def __init__(
        self,
        errors: Iterable[str],
        field_errors: Dict[str, List[str]] = None,
        details: dict = None,
    ):
        self.errors: List[str] = list(errors)
        self.field_errors: Dict[str, List[str]] = field_errors or {}
        super().__init__("; ".join(self.errors) or "validation failed", details)


class EncodingError(VaxError):
    """Raised when a value cannot be canonicalized"""
    kind = "encoding_error"


class UnsupportedType(EncodingError):
    """Raised for values outside the canonical value space"""
    pass


class InvalidNumber(EncodingError):
    """Raised for NaN, Infinity and numbers outside the plain-decimal window"""
    pass


class InvalidString(EncodingError):
    """Raised for lone surrogates and duplicate object keys"""
    pass


class ParseError(EncodingError):
    """Raised when canonical source text is malformed or uses a forbidden literal"""
    pass


class InvalidCounter(VaxError):
    """Raised when a submitted counter is not exactly last + 1"""
    kind = "invalid_counter"


class CounterOverflow(VaxError):
    """Raised when the actor counter would exceed its 16-bit range"""
    kind = "counter_overflow"


SECURITY_KINDS = frozenset({
    InvalidPrevSAI.kind,
    SAIMismatch.kind,
    InvalidCounter.kind,
})


def is_security_event(error: VaxError) -> bool:
    """Chain-integrity rejections are logged apart from ordinary validation failures."""
    return error.kind in SECURITY_KINDS
