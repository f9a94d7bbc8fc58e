"""
Sealed Age crypto — age decryption over a pool of X25519 key Secrets.

Public API:
    decrypt(ciphertext, candidates)  → (plaintext bytes, key secret name)
    KeyCandidate.from_secret(secret) → candidate with a parse-identity capability
    unframe(ciphertext)              → binary age envelope (armor / binary / base64)
"""

from __future__ import annotations

from sealedage.crypto.armor import Framing, decode_armor, is_armored, unframe
from sealedage.crypto.decrypt import decrypt
from sealedage.crypto.identity import (
    IdentityParseError,
    KeyCandidate,
    MissingPrivateKey,
    parse_identities,
)

__all__ = [
    "Framing",
    "IdentityParseError",
    "KeyCandidate",
    "MissingPrivateKey",
    "decode_armor",
    "decrypt",
    "is_armored",
    "parse_identities",
    "unframe",
]
