"""SealedAge reconciliation: key resolution, materialization, status reporting."""

from __future__ import annotations

from sealedage.controller.keys import KeyResolver
from sealedage.controller.materialize import SecretMaterializer
from sealedage.controller.reconcile import SealedAgeReconciler

__all__ = ["KeyResolver", "SealedAgeReconciler", "SecretMaterializer"]
