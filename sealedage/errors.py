"""
Exception hierarchy for the SealedAge operator.

Only the empty key pool is handled locally (as a requeue request, not an
exception). Everything below propagates to the scheduler, which owns retry.
"""

from __future__ import annotations


class SealedAgeError(Exception):
    """Base class for all operator errors."""


class StoreError(SealedAgeError):
    """A call against the backing object store failed."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class NotFoundError(StoreError):
    """The requested object does not exist."""


class ConflictError(StoreError):
    """The write lost an optimistic-concurrency race."""


class ResolutionError(SealedAgeError):
    """Listing the key pool failed."""


class ArmorError(SealedAgeError):
    """ASCII armor is present but malformed."""


class NoKeySucceeded(SealedAgeError):
    """No candidate key decrypted the ciphertext."""


class DecryptionFailure(SealedAgeError):
    """A field of encryptedData could not be decrypted with any key."""

    def __init__(self, field: str, cause: NoKeySucceeded | None = None) -> None:
        super().__init__(f"decrypt {field}: {cause or 'failed to decrypt with any available key'}")
        self.field = field
        self.cause = cause


class StoreWriteError(SealedAgeError):
    """Creating or updating the derived Secret failed."""


class OwnershipConflict(SealedAgeError):
    """The derived Secret is already controlled by another owner."""


class InvalidResourceError(SealedAgeError):
    """The SealedAge object does not match the expected schema."""


class ReconcileCancelled(SealedAgeError):
    """The caller cancelled the reconciliation between two calls."""
