"""
Root-level shared test fixtures.

Inherited by tests/ and the package-local test suites (sealedage/crypto/tests).
Provides fresh age identities and a sealing helper so tests never depend on
checked-in key material.
"""

from __future__ import annotations

import base64

import pyrage
import pytest
from pyrage import x25519

from sealedage.constants import ARMOR_COLUMNS, ARMOR_FOOTER, ARMOR_HEADER


def _armor(data: bytes) -> str:
    """Wrap a binary age envelope in ASCII armor."""
    b64 = base64.b64encode(data).decode("ascii")
    lines = [b64[i : i + ARMOR_COLUMNS] for i in range(0, len(b64), ARMOR_COLUMNS)]
    return "\n".join([ARMOR_HEADER, *lines, ARMOR_FOOTER]) + "\n"


def _key_file(identity: x25519.Identity) -> bytes:
    """Render an identity the way age-keygen writes it."""
    return (
        "# created: 2025-01-01T00:00:00Z\n"
        f"# public key: {identity.to_public()}\n"
        f"{identity}\n"
    ).encode("ascii")


@pytest.fixture
def armor():
    return _armor


@pytest.fixture
def key_file():
    return _key_file


@pytest.fixture
def make_identity():
    """Factory for fresh X25519 identities."""
    return x25519.Identity.generate


@pytest.fixture
def seal():
    """Encrypt plaintext to identities; framing is 'armored', 'binary' or 'base64'."""

    def _seal(plaintext: bytes | str, *identities: x25519.Identity, framing: str = "armored") -> str:
        if isinstance(plaintext, str):
            plaintext = plaintext.encode("utf-8")
        envelope = pyrage.encrypt(plaintext, [i.to_public() for i in identities])
        if framing == "armored":
            return _armor(envelope)
        if framing == "base64":
            return base64.b64encode(envelope).decode("ascii")
        return envelope.decode("utf-8", "surrogateescape")

    return _seal


@pytest.fixture
def clean_env(monkeypatch):
    """Remove operator env vars that leak between tests."""
    for key in [
        "SEALEDAGE_KEY_NAMESPACE",
        "SEALEDAGE_KEY_LABEL_KEY",
        "SEALEDAGE_KEY_LABEL_VALUE",
        "SEALEDAGE_REQUEUE_SECONDS",
        "SEALEDAGE_NAMESPACES",
        "SEALEDAGE_LIVENESS_ENDPOINT",
        "SEALEDAGE_STANDALONE",
        "SEALEDAGE_LOG_LEVEL",
    ]:
        monkeypatch.delenv(key, raising=False)
