"""
Key Resolver — lists the age key Secrets for a key pool.

The pool is re-read on every reconciliation; nothing is cached here.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sealedage.crypto.identity import KeyCandidate
from sealedage.errors import ResolutionError, StoreError

if TYPE_CHECKING:
    from sealedage.config import KeyPoolConfig
    from sealedage.kube.store import ObjectStore

logger = logging.getLogger(__name__)


class KeyResolver:
    """Resolves the current candidate keys from the object store."""

    def __init__(self, store: ObjectStore) -> None:
        self.store = store

    def resolve(self, pool: KeyPoolConfig) -> list[KeyCandidate]:
        """Return the key candidates in store order.

        An empty list is a normal result. Raises ResolutionError only when
        the listing call itself fails.
        """
        try:
            secrets = self.store.list_secrets(pool.namespace, pool.labels)
        except StoreError as e:
            logger.error(
                "Failed to list key secrets in %s (%s): %s", pool.namespace, pool.selector, e
            )
            raise ResolutionError(
                f"failed to list key secrets in {pool.namespace} ({pool.selector}): {e}"
            ) from e
        return [KeyCandidate.from_secret(s) for s in secrets]
