"""
age decryption against a pool of candidate keys.

Each candidate is tried in the order given. Decryption is self-verifying
(a wrong key fails the header MAC), so the first key that decrypts without
error wins. Per-key failures are logged at DEBUG and never fatal.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

import pyrage

from sealedage.crypto.armor import unframe
from sealedage.crypto.identity import IdentityParseError, KeyCandidate, MissingPrivateKey
from sealedage.errors import ArmorError, NoKeySucceeded

logger = logging.getLogger(__name__)


def decrypt(
    ciphertext: str,
    candidates: Iterable[KeyCandidate],
    *,
    recipients: Sequence[str] = (),
) -> tuple[bytes, str]:
    """Decrypt one ciphertext. Returns (plaintext, name of the key secret used).

    ``recipients`` is only echoed in debug logs as a hint.
    Raises NoKeySucceeded when every candidate fails.
    """
    try:
        envelope, framing = unframe(ciphertext)
    except ArmorError as e:
        logger.debug("Malformed armor: %s", e)
        raise NoKeySucceeded(f"failed to decrypt with any available key: {e}") from e

    tried = 0
    for candidate in candidates:
        try:
            identities = candidate.identities()
        except MissingPrivateKey:
            logger.debug("Key secret %s has no private field, skipping", candidate.name)
            continue
        except IdentityParseError as e:
            logger.debug("Failed to parse private identity in %s: %s", candidate.name, e)
            continue

        tried += 1
        try:
            plaintext = pyrage.decrypt(envelope, identities)
        except pyrage.DecryptError as e:
            logger.debug(
                "Decryption failed with key %s (%s framing): %s, recipients hint: %s",
                candidate.name,
                framing,
                e,
                list(recipients),
            )
            continue
        return plaintext, candidate.name

    raise NoKeySucceeded(f"failed to decrypt with any available key ({tried} usable)")
