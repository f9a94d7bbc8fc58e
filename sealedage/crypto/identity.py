"""
Key candidates — age X25519 identities read from key Secrets.

The ``private`` field holds an age key file: one AGE-SECRET-KEY-1... per
line, with ``#`` comments and blank lines ignored (the age-keygen layout).
"""

from __future__ import annotations

from dataclasses import dataclass, field

import pyrage
from pyrage import x25519

from sealedage.constants import PRIVATE_KEY_FIELD
from sealedage.errors import SealedAgeError
from sealedage.models import Secret


class MissingPrivateKey(SealedAgeError):
    """The key Secret has no private-key field."""


class IdentityParseError(SealedAgeError):
    """The private-key field does not hold a usable age identity."""


def parse_identities(text: str) -> list[x25519.Identity]:
    """Parse every identity line of an age key file."""
    identities: list[x25519.Identity] = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        try:
            identities.append(x25519.Identity.from_str(line))
        except pyrage.IdentityError as e:
            raise IdentityParseError(str(e)) from e
    if not identities:
        raise IdentityParseError("no identities found")
    return identities


@dataclass(frozen=True)
class KeyCandidate:
    """Read-only view of one key-pool entry."""

    name: str
    data: dict[str, bytes] = field(default_factory=dict)

    @classmethod
    def from_secret(cls, secret: Secret) -> KeyCandidate:
        return cls(name=secret.name, data=dict(secret.data))

    @property
    def private(self) -> bytes | None:
        return self.data.get(PRIVATE_KEY_FIELD)

    def identities(self) -> list[x25519.Identity]:
        """Parse the private-key field. Raises MissingPrivateKey or IdentityParseError."""
        raw = self.private
        if raw is None:
            raise MissingPrivateKey(f"missing '{PRIVATE_KEY_FIELD}' field in key secret {self.name}")
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise IdentityParseError(f"key secret {self.name} is not valid UTF-8") from e
        return parse_identities(text)
