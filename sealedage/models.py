"""
Data models for the SealedAge operator.

API resources (SealedAge and its spec/status) are Pydantic models so the
camelCase wire shape and validation live in one place. Objects the operator
builds itself (Secret, OwnerReference, results) are plain dataclasses.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from sealedage.constants import API_GROUP_VERSION, KIND_SEALED_AGE, SECRET_TYPE_OPAQUE
from sealedage.errors import InvalidResourceError


class _ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SealedAgeTemplate(_ApiModel):
    """Secret template settings (only the type is used)."""

    type: str = ""


class SealedAgeSpec(_ApiModel):
    encrypted_data: dict[str, str] = Field(alias="encryptedData")
    template: SealedAgeTemplate = Field(default_factory=SealedAgeTemplate)
    # Informational only; never used to pick keys
    recipients: list[str] = Field(default_factory=list)
    # Declared but not enforced
    restore_on_delete: bool | None = Field(default=None, alias="restoreOnDelete")

    @property
    def secret_type(self) -> str:
        return self.template.type or SECRET_TYPE_OPAQUE


class Condition(_ApiModel):
    """A metav1.Condition entry."""

    type: str
    status: str
    reason: str
    message: str = ""
    last_transition_time: str = Field(alias="lastTransitionTime")
    observed_generation: int = Field(default=0, alias="observedGeneration")


class SealedAgeStatus(_ApiModel):
    observed_generation: int = Field(default=0, alias="observedGeneration")
    secret_name: str = Field(default="", alias="secretName")
    conditions: list[Condition] = Field(default_factory=list)


class SealedAge(_ApiModel):
    """A SealedAge object as read from the cluster."""

    name: str
    namespace: str
    uid: str = ""
    generation: int = 0
    resource_version: str = ""
    deleting: bool = False
    spec: SealedAgeSpec
    status: SealedAgeStatus = Field(default_factory=SealedAgeStatus)

    @classmethod
    def from_body(cls, body: Mapping[str, Any]) -> SealedAge:
        """Build from a raw API object dict. Raises InvalidResourceError on schema mismatch."""
        meta = body.get("metadata") or {}
        try:
            return cls(
                name=meta.get("name", ""),
                namespace=meta.get("namespace", ""),
                uid=meta.get("uid", ""),
                generation=meta.get("generation") or 0,
                resource_version=meta.get("resourceVersion", ""),
                deleting=bool(meta.get("deletionTimestamp")),
                spec=body.get("spec") or {},
                status=body.get("status") or {},
            )
        except ValidationError as e:
            raise InvalidResourceError(
                f"SealedAge {meta.get('namespace')}/{meta.get('name')} is invalid: {e}"
            ) from e

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    def owner_reference(self) -> OwnerReference:
        """Controller reference tying a Secret's lifecycle to this object."""
        return OwnerReference(
            api_version=API_GROUP_VERSION,
            kind=KIND_SEALED_AGE,
            name=self.name,
            uid=self.uid,
        )

    def status_body(self) -> dict[str, Any]:
        """Return the status block in wire (camelCase) form."""
        return self.status.model_dump(by_alias=True)


@dataclass(frozen=True)
class OwnerReference:
    """Weak link from a Secret to its owner; enforced by the cluster's garbage collector."""

    api_version: str
    kind: str
    name: str
    uid: str
    controller: bool = True
    block_owner_deletion: bool = True


@dataclass
class Secret:
    """A namespaced Secret with decoded (raw bytes) data."""

    name: str
    namespace: str
    type: str = SECRET_TYPE_OPAQUE
    data: dict[str, bytes] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    owner_references: list[OwnerReference] = field(default_factory=list)
    finalizers: list[str] = field(default_factory=list)
    immutable: bool | None = None
    resource_version: str = ""

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"


class StatusOutcome(StrEnum):
    """Result of the best-effort status write after a successful materialization."""

    WRITTEN = "written"
    FAILED = "failed"
    SKIPPED = "skipped"  # owner deleted mid-run
    NOT_ATTEMPTED = "not_attempted"


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of one reconciliation attempt.

    A result (as opposed to an exception) always means the primary action is
    done or deliberately deferred. ``status`` only reports on the secondary
    status write and never turns a success into a failure.
    """

    requeue_after: float | None = None
    secret_name: str = ""
    status: StatusOutcome = StatusOutcome.NOT_ATTEMPTED

    @property
    def requeue(self) -> bool:
        return self.requeue_after is not None

    @property
    def status_failed(self) -> bool:
        return self.status == StatusOutcome.FAILED
