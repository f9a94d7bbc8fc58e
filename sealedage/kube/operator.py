"""
kopf wiring — the scheduler side of the operator.

kopf owns watching, queueing and retries. Every entry point reconciles
under a per-object lock held in the memo, since kopf only serializes
handlers within one resource kind. The handlers translate between kopf
and SealedAgeReconciler:

- a requeue request becomes KeysNotReady (a TemporaryError) with the requested
  delay, reported at INFO rather than as an error
- schema and ownership problems become kopf.PermanentError
- every other operator error becomes kopf.TemporaryError with exponential backoff

Runs as: sealedage run   (or: kopf run -m sealedage.kube.operator)
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import kopf

from sealedage.config import OperatorConfig, get_config
from sealedage.constants import (
    API_GROUP,
    API_VERSION,
    KIND_SEALED_AGE,
    LABEL_MANAGED_BY,
    MANAGED_BY,
    PLURAL_SEALED_AGE,
    REASON_DECRYPTED,
)
from sealedage.controller.reconcile import SealedAgeReconciler
from sealedage.errors import (
    InvalidResourceError,
    OwnershipConflict,
    ReconcileCancelled,
    SealedAgeError,
)
from sealedage.kube.store import KubernetesStore, load_kube_config
from sealedage.models import ReconcileResult

logger = logging.getLogger(__name__)

# Exponential backoff for failed reconciliations: 2s, 4s, 8s ... capped
RETRY_BASE_DELAY = 2.0
RETRY_MAX_DELAY = 300.0


def backoff_delay(retry: int) -> float:
    return min(RETRY_BASE_DELAY * (2 ** max(retry, 0)), RETRY_MAX_DELAY)


# kopf reports a TemporaryError as "<handler> failed temporarily: <message>"
KEYS_NOT_READY = "no age keys available yet"


class KeysNotReady(kopf.TemporaryError):
    """The key pool is empty; retried after the configured fixed delay."""


class RequeueLogFilter(logging.Filter):
    """Downgrade kopf's report of an empty-pool requeue to INFO.

    Installed on kopf's per-object logger, so the record also falls below
    the event posting level and no Error event is posted.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno > logging.INFO and KEYS_NOT_READY in record.getMessage():
            record.levelno = logging.INFO
            record.levelname = logging.getLevelName(logging.INFO)
        return True


class ObjectLocks:
    """One lock per SealedAge identity, shared by every handler that reconciles it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def for_key(self, key: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(key, threading.Lock())


def build_reconciler(config: OperatorConfig) -> SealedAgeReconciler:
    load_kube_config()
    return SealedAgeReconciler(KubernetesStore(), config)


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, memo: kopf.Memo, **_: Any) -> None:
    """Configure kopf and build the reconciler into the memo."""
    # Keep kopf's bookkeeping out of .status, which the reconciler owns
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage()
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage()
    settings.posting.level = logging.WARNING
    objects_logger = logging.getLogger("kopf.objects")
    if not any(isinstance(f, RequeueLogFilter) for f in objects_logger.filters):
        objects_logger.addFilter(RequeueLogFilter())

    config = memo.get("config") or get_config()
    memo.config = config
    memo.stop = threading.Event()
    memo.locks = ObjectLocks()
    memo.reconciler = build_reconciler(config)
    logger.info(
        "SealedAge operator configured: key pool %s (%s), requeue %ss",
        config.key_pool.namespace,
        config.key_pool.selector,
        config.requeue_after_seconds,
    )


@kopf.on.cleanup()
def shutdown(memo: kopf.Memo, **_: Any) -> None:
    stop = memo.get("stop")
    if stop is not None:
        stop.set()


def run_reconcile(memo: kopf.Memo, namespace: str, name: str, retry: int = 0) -> ReconcileResult:
    """Reconcile one object and translate the outcome for kopf.

    Holds the object's lock, so the SealedAge handlers and the Secret watcher
    never reconcile the same object concurrently.
    """
    reconciler: SealedAgeReconciler = memo.reconciler
    locks: ObjectLocks = memo.setdefault("locks", ObjectLocks())
    try:
        with locks.for_key(f"{namespace}/{name}"):
            result = reconciler.reconcile(namespace, name, stop=memo.get("stop"))
    except (InvalidResourceError, OwnershipConflict) as e:
        raise kopf.PermanentError(str(e)) from e
    except ReconcileCancelled as e:
        raise kopf.TemporaryError(str(e), delay=RETRY_BASE_DELAY) from e
    except SealedAgeError as e:
        raise kopf.TemporaryError(str(e), delay=backoff_delay(retry)) from e

    if result.requeue:
        raise KeysNotReady(KEYS_NOT_READY, delay=result.requeue_after)
    return result


@kopf.on.resume(API_GROUP, API_VERSION, PLURAL_SEALED_AGE)
@kopf.on.create(API_GROUP, API_VERSION, PLURAL_SEALED_AGE)
@kopf.on.update(API_GROUP, API_VERSION, PLURAL_SEALED_AGE)
def reconcile_sealed_age(
    name: str,
    namespace: str,
    body: kopf.Body,
    memo: kopf.Memo,
    retry: int,
    **_: Any,
) -> None:
    """Handle SealedAge create/update/resume."""
    result = run_reconcile(memo, namespace, name, retry)
    if result.secret_name:
        kopf.info(
            body,
            reason=REASON_DECRYPTED,
            message=f"Secret {result.secret_name} materialized",
        )


def owner_name(body: kopf.Body) -> str | None:
    """Name of the controlling SealedAge of a Secret, if any."""
    for ref in body.get("metadata", {}).get("ownerReferences") or []:
        if ref.get("kind") == KIND_SEALED_AGE and ref.get("controller"):
            return ref.get("name")
    return None


@kopf.on.event("", "v1", "secrets", labels={LABEL_MANAGED_BY: MANAGED_BY})
def owned_secret_changed(event: kopf.RawEvent, body: kopf.Body, memo: kopf.Memo, **_: Any) -> None:
    """Re-reconcile the owner when a materialized Secret is edited or deleted."""
    if event.get("type") not in ("MODIFIED", "DELETED"):
        return
    owner = owner_name(body)
    if owner is None:
        return
    namespace = body.get("metadata", {}).get("namespace", "")
    try:
        run_reconcile(memo, namespace, owner)
    except KeysNotReady:
        logger.info("Secret %s/%s changed but no age keys are available yet", namespace, owner)
    except (kopf.TemporaryError, kopf.PermanentError) as e:
        # Event handlers are not retried; the owner's own handlers will be
        logger.warning("Re-reconcile of %s/%s after Secret change failed: %s", namespace, owner, e)
