"""
Object store — the Kubernetes API as seen by the reconciler.

KubernetesStore wraps CoreV1Api (Secrets) and CustomObjectsApi (SealedAge).
Secret data is base64 on the wire and raw bytes everywhere else; the
conversion happens only here.

Usage:
    from sealedage.kube.store import KubernetesStore, load_kube_config

    load_kube_config()
    store = KubernetesStore()
    sealed = store.get_sealed_age("default", "db-credentials")
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Mapping
from typing import Protocol

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from sealedage.constants import API_GROUP, API_VERSION, PLURAL_SEALED_AGE, SECRET_TYPE_OPAQUE
from sealedage.errors import ConflictError, NotFoundError, StoreError
from sealedage.models import OwnerReference, SealedAge, Secret

logger = logging.getLogger(__name__)


class ObjectStore(Protocol):
    """Operations the reconciler needs from the cluster."""

    def get_sealed_age(self, namespace: str, name: str) -> SealedAge | None: ...

    def list_secrets(self, namespace: str, labels: Mapping[str, str]) -> list[Secret]: ...

    def get_secret(self, namespace: str, name: str) -> Secret | None: ...

    def create_secret(self, secret: Secret) -> Secret: ...

    def update_secret(self, secret: Secret) -> Secret: ...

    def update_sealed_age_status(self, sealed: SealedAge) -> None: ...


def load_kube_config() -> None:
    """Load in-cluster credentials, falling back to the local kubeconfig."""
    try:
        config.load_incluster_config()
        logger.info("Using in-cluster Kubernetes configuration")
    except config.ConfigException:
        config.load_kube_config()
        logger.info("Using local kubeconfig")


def _translate(e: ApiException, what: str) -> StoreError:
    message = f"{what}: {e.status} {e.reason}"
    if e.status == 404:
        return NotFoundError(message, status=e.status)
    if e.status == 409:
        return ConflictError(message, status=e.status)
    return StoreError(message, status=e.status)


def secret_from_v1(obj: client.V1Secret) -> Secret:
    meta = obj.metadata
    return Secret(
        name=meta.name,
        namespace=meta.namespace,
        type=obj.type or SECRET_TYPE_OPAQUE,
        data={k: base64.b64decode(v) for k, v in (obj.data or {}).items()},
        labels=dict(meta.labels or {}),
        annotations=dict(meta.annotations or {}),
        owner_references=[
            OwnerReference(
                api_version=ref.api_version,
                kind=ref.kind,
                name=ref.name,
                uid=ref.uid,
                controller=bool(ref.controller),
                block_owner_deletion=bool(ref.block_owner_deletion),
            )
            for ref in meta.owner_references or []
        ],
        finalizers=list(meta.finalizers or []),
        immutable=obj.immutable,
        resource_version=meta.resource_version or "",
    )


def secret_to_v1(secret: Secret) -> client.V1Secret:
    owner_references = [
        client.V1OwnerReference(
            api_version=ref.api_version,
            kind=ref.kind,
            name=ref.name,
            uid=ref.uid,
            controller=ref.controller,
            block_owner_deletion=ref.block_owner_deletion,
        )
        for ref in secret.owner_references
    ]
    return client.V1Secret(
        api_version="v1",
        kind="Secret",
        metadata=client.V1ObjectMeta(
            name=secret.name,
            namespace=secret.namespace,
            labels=secret.labels or None,
            annotations=secret.annotations or None,
            owner_references=owner_references or None,
            finalizers=secret.finalizers or None,
            resource_version=secret.resource_version or None,
        ),
        type=secret.type,
        immutable=secret.immutable,
        data={k: base64.b64encode(v).decode("ascii") for k, v in secret.data.items()},
    )


class KubernetesStore:
    """ObjectStore backed by the Kubernetes Python client."""

    def __init__(
        self,
        core_api: client.CoreV1Api | None = None,
        custom_api: client.CustomObjectsApi | None = None,
    ) -> None:
        self.core = core_api or client.CoreV1Api()
        self.custom = custom_api or client.CustomObjectsApi()

    def get_sealed_age(self, namespace: str, name: str) -> SealedAge | None:
        try:
            body = self.custom.get_namespaced_custom_object(
                group=API_GROUP,
                version=API_VERSION,
                namespace=namespace,
                plural=PLURAL_SEALED_AGE,
                name=name,
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise _translate(e, f"get SealedAge {namespace}/{name}") from e
        return SealedAge.from_body(body)

    def list_secrets(self, namespace: str, labels: Mapping[str, str]) -> list[Secret]:
        selector = ",".join(f"{k}={v}" for k, v in labels.items())
        try:
            result = self.core.list_namespaced_secret(namespace, label_selector=selector)
        except ApiException as e:
            raise _translate(e, f"list Secrets in {namespace} ({selector})") from e
        return [secret_from_v1(item) for item in result.items or []]

    def get_secret(self, namespace: str, name: str) -> Secret | None:
        try:
            obj = self.core.read_namespaced_secret(name, namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            raise _translate(e, f"get Secret {namespace}/{name}") from e
        return secret_from_v1(obj)

    def create_secret(self, secret: Secret) -> Secret:
        try:
            obj = self.core.create_namespaced_secret(secret.namespace, secret_to_v1(secret))
        except ApiException as e:
            raise _translate(e, f"create Secret {secret.key}") from e
        return secret_from_v1(obj)

    def update_secret(self, secret: Secret) -> Secret:
        try:
            obj = self.core.replace_namespaced_secret(
                secret.name, secret.namespace, secret_to_v1(secret)
            )
        except ApiException as e:
            raise _translate(e, f"update Secret {secret.key}") from e
        return secret_from_v1(obj)

    def update_sealed_age_status(self, sealed: SealedAge) -> None:
        """Merge-patch the status subresource; the conditions list is replaced whole."""
        try:
            self.custom.patch_namespaced_custom_object_status(
                group=API_GROUP,
                version=API_VERSION,
                namespace=sealed.namespace,
                plural=PLURAL_SEALED_AGE,
                name=sealed.name,
                body={"status": sealed.status_body()},
            )
        except ApiException as e:
            raise _translate(e, f"update status of SealedAge {sealed.key}") from e
