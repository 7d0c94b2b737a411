"""
VAX: Canonical Encoding — VAX-JCS

This is the ONLY canonicalization permitted in VAX.
All envelope construction, hashing, and chain computation MUST use this module.

VAX-JCS is a strict, ASCII-only profile of canonical JSON:

    numbers  — plain decimal only: no exponent, no leading zeros,
               no trailing fractional zeros, -0 normalized to 0.
               NaN / Infinity rejected. Magnitude window 1e-12 <= |x| < 1e21.
    strings  — printable ASCII literal, the seven short escapes,
               everything else as lowercase \\uXXXX UTF-16 code units.
    objects  — keys sorted byte-wise by their escaped text (quotes excluded),
               no duplicates.
    arrays   — order preserved.

Output bytes are a pure function of the logical value. Two independent
implementations that follow these rules produce byte-identical output,
which is what makes the bytes usable as hash input.
"""

import hashlib
import json
import math
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, List, Tuple, Union

from vax.core.exceptions import (
    EncodingError,
    InvalidNumber,
    InvalidString,
    ParseError,
    UnsupportedType,
)


# ─────────────────────────────────────────────────────────────
# Number window
# ─────────────────────────────────────────────────────────────

# Decimal exponent of the shortest representation d.ddd x 10^e.
# Outside this window a value would need scientific notation in the
# JavaScript reference, so every implementation rejects it.
MAX_EXPONENT = 20
MIN_EXPONENT = -12

_INT_LIMIT = 10 ** (MAX_EXPONENT + 1)

_SHORT_ESCAPES = {
    '"':  '\\"',
    "\\": "\\\\",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}

CanonicalValue = Union[None, bool, int, float, Decimal, str, list, tuple, dict]


# ─────────────────────────────────────────────────────────────
# Encoding
# ─────────────────────────────────────────────────────────────

def encode(value: Any) -> bytes:
    """
    Encode a value to VAX-JCS canonical bytes.

    Accepts None, bool, int, float, Decimal, str, list/tuple and
    str-keyed mappings, nested arbitrarily.

    Raises:
        UnsupportedType — value (or a nested value / key) outside that space
        InvalidNumber   — NaN, Infinity, or outside the decimal window
        InvalidString   — lone surrogate, or two keys with the same encoding
    """
    out: List[str] = []
    _write_value(out, value)
    return "".join(out).encode("ascii")


def canonical_hash(value: Any) -> str:
    """
    SHA-256 of the canonical form.

    Returns:
        Lowercase hex-encoded SHA-256 digest (64 characters).
    """
    return hashlib.sha256(encode(value)).hexdigest()


def _write_value(out: List[str], value: Any) -> None:
    if value is None:
        out.append("null")
    elif isinstance(value, bool):
        out.append("true" if value else "false")
    elif isinstance(value, str):
        out.append(encode_string(value))
    elif isinstance(value, int):
        out.append(_format_int(value))
    elif isinstance(value, float):
        out.append(_format_float(value))
    elif isinstance(value, Decimal):
        out.append(_format_decimal(value))
    elif isinstance(value, Mapping):
        _write_object(out, value)
    elif isinstance(value, (list, tuple)):
        _write_array(out, value)
    else:
        raise UnsupportedType(
            f"unsupported type in canonical encoder: {type(value).__name__}"
        )


def _write_object(out: List[str], obj: Mapping) -> None:
    entries: List[Tuple[str, Any]] = []
    for key, item in obj.items():
        if not isinstance(key, str):
            raise UnsupportedType(
                f"object keys must be str, got {type(key).__name__}"
            )
        entries.append((encode_string(key), item))

    # Order on the key body; the closing quote must not take part.
    entries.sort(key=lambda entry: entry[0][1:-1])

    out.append("{")
    for i, (encoded_key, item) in enumerate(entries):
        if i > 0:
            if encoded_key == entries[i - 1][0]:
                raise InvalidString(
                    "duplicate object key after encoding",
                    details={"key": encoded_key},
                )
            out.append(",")
        out.append(encoded_key)
        out.append(":")
        _write_value(out, item)
    out.append("}")


def _write_array(out: List[str], items) -> None:
    out.append("[")
    for i, item in enumerate(items):
        if i > 0:
            out.append(",")
        _write_value(out, item)
    out.append("]")


# ── Strings ───────────────────────────────────────────────────

def encode_string(text: str) -> str:
    """
    Encode one string, quotes included.

    Non-ASCII code points become UTF-16 code-unit escapes; astral code
    points become a high/low surrogate escape pair. A str that already
    holds a correctly ordered surrogate pair encodes the same way.
    Unpaired surrogates raise InvalidString.
    """
    out = ['"']
    i = 0
    length = len(text)
    while i < length:
        ch = text[i]
        code = ord(ch)
        if ch in _SHORT_ESCAPES:
            out.append(_SHORT_ESCAPES[ch])
        elif code < 0x20:
            out.append(f"\\u{code:04x}")
        elif code < 0x7F:
            out.append(ch)
        elif 0xD800 <= code <= 0xDBFF:
            low = ord(text[i + 1]) if i + 1 < length else 0
            if not 0xDC00 <= low <= 0xDFFF:
                raise InvalidString(
                    "unpaired high surrogate", details={"position": i}
                )
            out.append(f"\\u{code:04x}\\u{low:04x}")
            i += 1
        elif 0xDC00 <= code <= 0xDFFF:
            raise InvalidString(
                "unpaired low surrogate", details={"position": i}
            )
        elif code <= 0xFFFF:
            out.append(f"\\u{code:04x}")
        else:
            offset = code - 0x10000
            high = 0xD800 + (offset >> 10)
            low = 0xDC00 + (offset & 0x3FF)
            out.append(f"\\u{high:04x}\\u{low:04x}")
        i += 1
    out.append('"')
    return "".join(out)


# ── Numbers ───────────────────────────────────────────────────

def _format_int(value: int) -> str:
    if abs(value) >= _INT_LIMIT:
        raise InvalidNumber(
            "integer too large for VAX-JCS (would use scientific notation)",
            details={"digits": len(str(abs(int(value))))},
        )
    return str(int(value))


def _format_float(value: float) -> str:
    if math.isnan(value):
        raise InvalidNumber("NaN is not allowed in VAX-JCS")
    if math.isinf(value):
        raise InvalidNumber("Infinity is not allowed in VAX-JCS")
    if value == 0:
        # Covers -0.0
        return "0"
    # repr() yields the shortest digits that round-trip, which is the
    # same digit string every other reference implementation uses.
    return _plain_decimal(Decimal(repr(value)))


def _format_decimal(value: Decimal) -> str:
    if not value.is_finite():
        raise InvalidNumber(f"non-finite Decimal is not allowed: {value}")
    if value == 0:
        return "0"
    if value == value.to_integral_value():
        return _format_int(int(value))
    # Non-integral decimals go through binary64 so that Decimal("0.1"),
    # 0.1 and the text literal 0.1 can never encode differently.
    return _format_float(float(value))


def _plain_decimal(value: Decimal) -> str:
    """Render a finite, non-zero Decimal positionally, trailing zeros stripped."""
    sign, digits, exponent = value.as_tuple()
    digits = list(digits)
    while len(digits) > 1 and digits[-1] == 0:
        digits.pop()
        exponent += 1

    adjusted = len(digits) - 1 + exponent
    if adjusted > MAX_EXPONENT or adjusted < MIN_EXPONENT:
        raise InvalidNumber(
            "number too large/small for VAX-JCS (would use scientific notation)",
            details={"exponent": adjusted},
        )

    text = "".join(str(d) for d in digits)
    if exponent >= 0:
        text = text + "0" * exponent
    else:
        point = len(text) + exponent
        if point > 0:
            text = f"{text[:point]}.{text[point:]}"
        else:
            text = "0." + "0" * (-point) + text

    return ("-" if sign else "") + text


# ─────────────────────────────────────────────────────────────
# Parsing
# ─────────────────────────────────────────────────────────────

def _parse_int_literal(literal: str) -> int:
    if len(literal.lstrip("-")) > MAX_EXPONENT + 1:
        raise InvalidNumber(
            f"integer literal too large for VAX-JCS: {literal[:32]}..."
        )
    return int(literal)


def _parse_float_literal(literal: str) -> float:
    if "e" in literal or "E" in literal:
        raise ParseError(f"non-decimal number not allowed: {literal}")
    value = float(literal)
    if math.isinf(value):
        raise InvalidNumber(f"number overflows binary64: {literal[:32]}")
    return value


def _reject_constant(literal: str) -> Any:
    raise ParseError(f"{literal} is not allowed in VAX-JCS")


def _unique_object(pairs: List[Tuple[str, Any]]) -> dict:
    obj: dict = {}
    for key, value in pairs:
        if key in obj:
            raise ParseError("duplicate object key", details={"key": key})
        obj[key] = value
    return obj


def parse_text(raw: Union[bytes, bytearray, memoryview, str]) -> Any:
    """
    Strictly parse JSON text into a canonical value.

    Rejects (ParseError): invalid UTF-8, malformed JSON, exponent literals,
    leading zeros, NaN / Infinity, duplicate keys.
    Integer literals parse to exact int; fractional literals to float.
    """
    if isinstance(raw, (bytes, bytearray, memoryview)):
        try:
            text = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(
                "input is not valid UTF-8", details={"offset": exc.start}
            ) from exc
    elif isinstance(raw, str):
        text = raw
    else:
        raise UnsupportedType(
            f"parse_text expects bytes or str, got {type(raw).__name__}"
        )

    try:
        return json.loads(
            text,
            parse_int=_parse_int_literal,
            parse_float=_parse_float_literal,
            parse_constant=_reject_constant,
            object_pairs_hook=_unique_object,
        )
    except json.JSONDecodeError as exc:
        raise ParseError(
            f"malformed JSON text: {exc.msg}",
            details={"line": exc.lineno, "column": exc.colno},
        ) from exc


def encode_text(raw: Union[bytes, bytearray, memoryview, str]) -> bytes:
    """Parse JSON text, then re-encode it canonically."""
    return encode(parse_text(raw))


def is_canonical(raw: Union[bytes, str]) -> bool:
    """True iff `raw` is already exactly its own canonical encoding."""
    data = raw.encode("utf-8") if isinstance(raw, str) else bytes(raw)
    try:
        return encode_text(data) == data
    except EncodingError:
        return False
