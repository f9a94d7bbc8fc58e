"""
Secret Materializer — creates or updates the plaintext Secret for a SealedAge.

The Secret shares its owner's name and namespace. Existing data keys that
are not being written survive (merge, never replace). Exactly one write
happens per call: create when the Secret is absent, update otherwise.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from sealedage.constants import LABEL_MANAGED_BY, MANAGED_BY
from sealedage.errors import OwnershipConflict, StoreError, StoreWriteError
from sealedage.models import OwnerReference, SealedAge, Secret

if TYPE_CHECKING:
    from sealedage.kube.store import ObjectStore

logger = logging.getLogger(__name__)


def set_controller_reference(secret: Secret, owner: OwnerReference) -> None:
    """Make ``owner`` the controlling owner of ``secret``.

    Raises OwnershipConflict if a different object already controls it.
    """
    for ref in secret.owner_references:
        if ref.controller and ref.uid != owner.uid:
            raise OwnershipConflict(
                f"Secret {secret.key} is already owned by {ref.kind}/{ref.name}"
            )
    secret.owner_references = [
        ref for ref in secret.owner_references if ref.uid != owner.uid
    ] + [owner]


class SecretMaterializer:
    def __init__(self, store: ObjectStore) -> None:
        self.store = store

    def materialize(
        self,
        owner: SealedAge,
        target_type: str,
        fields: Mapping[str, bytes],
    ) -> Secret:
        """Write ``fields`` into the owner's Secret and return what was written."""
        try:
            existing = self.store.get_secret(owner.namespace, owner.name)
        except StoreError as e:
            raise StoreWriteError(f"failed to read Secret {owner.key}: {e}") from e

        if existing is None:
            secret = Secret(name=owner.name, namespace=owner.namespace)
        else:
            secret = existing

        secret.data = {**secret.data, **fields}
        secret.type = target_type
        secret.labels = {**secret.labels, LABEL_MANAGED_BY: MANAGED_BY}
        set_controller_reference(secret, owner.owner_reference())

        try:
            if existing is None:
                written = self.store.create_secret(secret)
                logger.info("Created Secret %s (%d fields)", secret.key, len(secret.data))
            else:
                written = self.store.update_secret(secret)
                logger.info("Updated Secret %s (%d fields)", secret.key, len(secret.data))
        except StoreError as e:
            raise StoreWriteError(f"failed to write Secret {secret.key}: {e}") from e
        return written
