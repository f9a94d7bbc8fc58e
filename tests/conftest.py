"""
Test fixtures for the reconciliation suites.

FakeStore is an in-memory ObjectStore: it keeps SealedAge objects and
Secrets, records every call, bumps resourceVersion only on real changes
(like the API server) and can be told to fail any operation.
"""

from __future__ import annotations

import copy
import dataclasses
from typing import Any

import pytest

from sealedage.config import KeyPoolConfig, OperatorConfig
from sealedage.constants import API_GROUP_VERSION, KIND_SEALED_AGE, PRIVATE_KEY_FIELD
from sealedage.errors import ConflictError, NotFoundError, StoreError
from sealedage.models import SealedAge, Secret

# make_identity, seal and key_file are inherited from the root conftest.py


class FakeStore:
    def __init__(self) -> None:
        self.sealed: dict[tuple[str, str], SealedAge] = {}
        self.secrets: dict[tuple[str, str], Secret] = {}
        self.calls: list[str] = []
        self.fail: dict[str, StoreError] = {}
        self._version = 0

    def _call(self, op: str) -> None:
        self.calls.append(op)
        if op in self.fail:
            raise self.fail[op]

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def writes(self) -> list[str]:
        return [c for c in self.calls if c in ("create_secret", "update_secret")]

    # -- seeding helpers --

    def add_sealed(self, body: dict[str, Any]) -> SealedAge:
        sealed = SealedAge.from_body(body)
        self.sealed[(sealed.namespace, sealed.name)] = sealed
        return sealed

    def add_secret(self, secret: Secret) -> Secret:
        secret = copy.deepcopy(secret)
        secret.resource_version = self._next_version()
        self.secrets[(secret.namespace, secret.name)] = secret
        return secret

    # -- ObjectStore --

    def get_sealed_age(self, namespace: str, name: str) -> SealedAge | None:
        self._call("get_sealed_age")
        sealed = self.sealed.get((namespace, name))
        return sealed.model_copy(deep=True) if sealed is not None else None

    def list_secrets(self, namespace: str, labels: dict[str, str]) -> list[Secret]:
        self._call("list_secrets")
        return [
            copy.deepcopy(s)
            for (ns, _), s in self.secrets.items()
            if ns == namespace and all(s.labels.get(k) == v for k, v in labels.items())
        ]

    def get_secret(self, namespace: str, name: str) -> Secret | None:
        self._call("get_secret")
        secret = self.secrets.get((namespace, name))
        return copy.deepcopy(secret) if secret is not None else None

    def create_secret(self, secret: Secret) -> Secret:
        self._call("create_secret")
        if (secret.namespace, secret.name) in self.secrets:
            raise ConflictError(f"Secret {secret.key} already exists", status=409)
        return copy.deepcopy(self.add_secret(secret))

    def update_secret(self, secret: Secret) -> Secret:
        self._call("update_secret")
        current = self.secrets.get((secret.namespace, secret.name))
        if current is None:
            raise NotFoundError(f"Secret {secret.key} not found", status=404)
        if current.resource_version != secret.resource_version:
            raise ConflictError(f"Secret {secret.key} was modified", status=409)
        stored = copy.deepcopy(secret)
        if dataclasses.replace(stored, resource_version="") != dataclasses.replace(
            current, resource_version=""
        ):
            stored.resource_version = self._next_version()
        self.secrets[(secret.namespace, secret.name)] = stored
        return copy.deepcopy(stored)

    def update_sealed_age_status(self, sealed: SealedAge) -> None:
        self._call("update_sealed_age_status")
        current = self.sealed.get((sealed.namespace, sealed.name))
        if current is None:
            raise NotFoundError(f"SealedAge {sealed.key} not found", status=404)
        current.status = sealed.status.model_copy(deep=True)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def config() -> OperatorConfig:
    return OperatorConfig(
        key_pool=KeyPoolConfig(namespace="sealed-age-system", label_key="app", label_value="age-key"),
        requeue_after_seconds=30.0,
    )


@pytest.fixture
def add_key(store, key_file):
    """Put an age key Secret into the key pool and return its name."""

    def _add(name: str, identity=None, *, data: dict[str, bytes] | None = None, labels=None) -> str:
        if data is None:
            data = {PRIVATE_KEY_FIELD: key_file(identity)}
        store.add_secret(
            Secret(
                name=name,
                namespace="sealed-age-system",
                data=data,
                labels=labels if labels is not None else {"app": "age-key"},
            )
        )
        return name

    return _add


@pytest.fixture
def sealed_body():
    """Factory for raw SealedAge API objects."""

    def _body(
        encrypted_data: dict[str, str],
        *,
        name: str = "db-credentials",
        namespace: str = "apps",
        generation: int = 1,
        secret_type: str | None = None,
        recipients: list[str] | None = None,
    ) -> dict[str, Any]:
        spec: dict[str, Any] = {"encryptedData": encrypted_data}
        if secret_type is not None:
            spec["template"] = {"type": secret_type}
        if recipients is not None:
            spec["recipients"] = recipients
        return {
            "apiVersion": API_GROUP_VERSION,
            "kind": KIND_SEALED_AGE,
            "metadata": {
                "name": name,
                "namespace": namespace,
                "uid": f"uid-{name}",
                "generation": generation,
                "resourceVersion": "1",
            },
            "spec": spec,
        }

    return _body
