"""
vax/core/time.py

THE ONLY WALL-CLOCK READS IN VAX.

Envelope wire format: integer milliseconds since the Unix epoch (UTC).
Report format:        YYYY-MM-DDTHH:MM:SS.mmmZ (verification results).

Every module that needs a timestamp imports it from here.
Reading the clock is the one deliberate source of non-determinism in the
pipeline: it makes two content-identical actions distinct in the history.
"""

from datetime import datetime, timezone


def envelope_timestamp() -> int:
    """Return current UTC time as integer milliseconds since the epoch."""
    now = datetime.now(timezone.utc)
    return int(now.timestamp() * 1000)


def report_timestamp() -> str:
    """
    Return current UTC time for verification reports.
    Format: YYYY-MM-DDTHH:MM:SS.mmmZ  (exactly 3 fractional digits, Z suffix)
    """
    now = datetime.now(timezone.utc)
    ms  = now.microsecond // 1000
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms:03d}Z"
