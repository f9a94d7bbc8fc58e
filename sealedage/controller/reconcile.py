"""
Reconciliation Engine — one SealedAge in, one Secret out.

Load → ResolveKeys → DecryptAll → Materialize → ReportStatus.

An empty key pool is the only condition handled here with a fixed-delay
requeue; every other failure propagates to the scheduler for backoff retry.
The status write at the end is best-effort and never fails the attempt.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from sealedage.constants import COND_READY, REASON_DECRYPTED
from sealedage.controller.conditions import set_condition
from sealedage.controller.keys import KeyResolver
from sealedage.controller.materialize import SecretMaterializer
from sealedage.crypto.decrypt import decrypt
from sealedage.errors import (
    DecryptionFailure,
    NoKeySucceeded,
    NotFoundError,
    ReconcileCancelled,
    StoreError,
)
from sealedage.models import ReconcileResult, SealedAge, StatusOutcome

if TYPE_CHECKING:
    from sealedage.config import OperatorConfig
    from sealedage.crypto.identity import KeyCandidate
    from sealedage.kube.store import ObjectStore

logger = logging.getLogger(__name__)


def _checkpoint(stop: threading.Event | None) -> None:
    if stop is not None and stop.is_set():
        raise ReconcileCancelled("reconciliation cancelled")


def decrypt_all(
    sealed: SealedAge,
    candidates: list[KeyCandidate],
    *,
    stop: threading.Event | None = None,
) -> dict[str, bytes]:
    """Decrypt every encryptedData field in field-name order.

    Raises DecryptionFailure naming the first field no key could decrypt;
    nothing decrypted so far is returned in that case.
    """
    plain: dict[str, bytes] = {}
    for field in sorted(sealed.spec.encrypted_data):
        _checkpoint(stop)
        try:
            value, key_used = decrypt(
                sealed.spec.encrypted_data[field],
                candidates,
                recipients=sealed.spec.recipients,
            )
        except NoKeySucceeded as e:
            logger.error("Failed to decrypt field %s of %s: %s", field, sealed.key, e)
            raise DecryptionFailure(field, e) from e
        logger.info("Decrypted field %s of %s with key secret %s", field, sealed.key, key_used)
        plain[field] = value
    return plain


class SealedAgeReconciler:
    """Reconciles SealedAge objects. Holds no per-object state between calls."""

    def __init__(self, store: ObjectStore, config: OperatorConfig) -> None:
        self.store = store
        self.config = config
        self.resolver = KeyResolver(store)
        self.materializer = SecretMaterializer(store)

    def reconcile(
        self,
        namespace: str,
        name: str,
        *,
        stop: threading.Event | None = None,
    ) -> ReconcileResult:
        """Run one reconciliation attempt for namespace/name."""
        key = f"{namespace}/{name}"

        # 1. Load
        _checkpoint(stop)
        sealed = self.store.get_sealed_age(namespace, name)
        if sealed is None:
            logger.debug("SealedAge %s not found, nothing to do", key)
            return ReconcileResult()
        if sealed.deleting:
            # Cascade deletion of the Secret is in progress; do not recreate it
            logger.debug("SealedAge %s is being deleted, nothing to do", key)
            return ReconcileResult()

        # 2. Resolve keys
        _checkpoint(stop)
        pool = self.config.key_pool
        candidates = self.resolver.resolve(pool)
        if not candidates:
            logger.info(
                "No age keys found in %s (%s), will retry in %ss",
                pool.namespace,
                pool.selector,
                self.config.requeue_after_seconds,
            )
            return ReconcileResult(requeue_after=self.config.requeue_after_seconds)

        # 3. Decrypt every field, all or nothing
        plain = decrypt_all(sealed, candidates, stop=stop)

        # 4. Materialize
        _checkpoint(stop)
        secret = self.materializer.materialize(sealed, sealed.spec.secret_type, plain)

        # 5. Report status
        _checkpoint(stop)
        outcome = self.report_status(sealed)

        logger.info("Reconciliation completed for %s (secret %s)", key, secret.key)
        return ReconcileResult(secret_name=secret.name, status=outcome)

    def report_status(self, sealed: SealedAge) -> StatusOutcome:
        """Write observedGeneration, secretName and Ready. Never raises StoreError."""
        sealed.status.observed_generation = sealed.generation
        sealed.status.secret_name = sealed.name
        sealed.status.conditions = set_condition(
            sealed.status.conditions,
            COND_READY,
            True,
            REASON_DECRYPTED,
            f"Secret {sealed.name} is up to date",
            sealed.generation,
        )
        try:
            self.store.update_sealed_age_status(sealed)
        except NotFoundError:
            # Deleted before the status write
            return StatusOutcome.SKIPPED
        except StoreError as e:
            logger.warning("Non-fatal: failed to update status of %s: %s", sealed.key, e)
            return StatusOutcome.FAILED
        return StatusOutcome.WRITTEN
