"""
vax/core/crypto.py

Optional Ed25519 attestation of admitted envelopes.

Signatures sit beside an admitted action; they never enter the SAI, so a
history verifies the same with or without them. A verifier that admitted
an envelope may sign its canonical bytes, and anyone holding the 64-char
public key hex can check the attestation offline.

Wire form of a signature: base64url, no padding (86 chars). Padded input
is accepted on verification.
"""

import base64

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from vax.core.envelope import parse_envelope
from vax.core.exceptions import InvalidInput


SEED_SIZE       = 32
PUBLIC_KEY_SIZE = 32
SIGNATURE_SIZE  = 64


def _decode_signature(signature_b64: str) -> bytes:
    padded = signature_b64 + "=" * (-len(signature_b64) % 4)
    return base64.urlsafe_b64decode(padded)


class Ed25519Signer:
    """Holds one Ed25519 private key used to attest envelopes."""

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self.public_key_hex: str = (
            private_key.public_key()
            .public_bytes(Encoding.Raw, PublicFormat.Raw)
            .hex()
        )

    @classmethod
    def generate(cls) -> "Ed25519Signer":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_private_bytes(cls, seed: bytes) -> "Ed25519Signer":
        """Deterministic signer from a 32-byte seed. Raises InvalidInput otherwise."""
        if not isinstance(seed, (bytes, bytearray)) or len(seed) != SEED_SIZE:
            raise InvalidInput(
                f"Ed25519 seed must be {SEED_SIZE} bytes",
                details={"got": len(seed) if isinstance(seed, (bytes, bytearray)) else None},
            )
        return cls(Ed25519PrivateKey.from_private_bytes(bytes(seed)))

    def sign(self, data: bytes) -> str:
        raw = self._private_key.sign(bytes(data))
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")

    @staticmethod
    def verify_detached(data: bytes, signature_b64: str, public_key_hex: str) -> bool:
        """True only for a valid signature over data; any malformed input is False."""
        if not isinstance(signature_b64, str) or not isinstance(public_key_hex, str):
            return False
        try:
            raw_key = bytes.fromhex(public_key_hex)
            raw_sig = _decode_signature(signature_b64)
            if len(raw_key) != PUBLIC_KEY_SIZE or len(raw_sig) != SIGNATURE_SIZE:
                return False
            public_key = Ed25519PublicKey.from_public_bytes(raw_key)
        except ValueError:
            return False
        try:
            public_key.verify(raw_sig, bytes(data))
        except InvalidSignature:
            return False
        return True

    def __repr__(self) -> str:
        return f"Ed25519Signer(public_key_hex={self.public_key_hex[:16]}...)"


def sign_envelope(envelope_bytes: bytes, signer: Ed25519Signer) -> str:
    """
    Attest canonical envelope bytes.
    Raises InvalidInput if the bytes are not a canonical envelope.
    """
    parse_envelope(envelope_bytes)
    return signer.sign(envelope_bytes)
