"""
Centralized configuration for the SealedAge operator.

All configuration is loaded from environment variables with sensible defaults.
CLI flags in sealedage.cli override individual values with dataclasses.replace.

Usage:
    from sealedage.config import get_config
    cfg = get_config()
    print(cfg.key_pool.namespace)   # "sealed-age-system"
    print(cfg.key_pool.selector)    # "app=age-key"
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from sealedage.constants import DEFAULT_REQUEUE_SECONDS


@dataclass(frozen=True)
class KeyPoolConfig:
    """Where the age key Secrets live and how they are labelled."""

    namespace: str = "sealed-age-system"
    label_key: str = "app"
    label_value: str = "age-key"

    @property
    def labels(self) -> dict[str, str]:
        """Return the label selector as a mapping."""
        return {self.label_key: self.label_value}

    @property
    def selector(self) -> str:
        """Return a Kubernetes label selector string."""
        return f"{self.label_key}={self.label_value}"


@dataclass(frozen=True)
class OperatorConfig:
    """Top-level operator configuration."""

    key_pool: KeyPoolConfig = field(default_factory=KeyPoolConfig)

    # Retry delay when no key Secrets exist yet
    requeue_after_seconds: float = DEFAULT_REQUEUE_SECONDS

    # Watch scope (empty = cluster-wide)
    namespaces: tuple[str, ...] = ()

    # kopf runtime
    liveness_endpoint: str = ""
    standalone: bool = True
    log_level: str = "INFO"

    @property
    def clusterwide(self) -> bool:
        return not self.namespaces


# Singleton
_config: OperatorConfig | None = None


def get_config() -> OperatorConfig:
    """Get or create the singleton config from environment variables."""
    global _config
    if _config is not None:
        return _config
    _config = _load_from_env()
    return _config


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _load_from_env() -> OperatorConfig:
    """Load configuration from environment variables."""
    key_pool = KeyPoolConfig(
        namespace=os.environ.get("SEALEDAGE_KEY_NAMESPACE", "sealed-age-system"),
        label_key=os.environ.get("SEALEDAGE_KEY_LABEL_KEY", "app"),
        label_value=os.environ.get("SEALEDAGE_KEY_LABEL_VALUE", "age-key"),
    )

    raw_namespaces = os.environ.get("SEALEDAGE_NAMESPACES", "")
    namespaces = tuple(ns.strip() for ns in raw_namespaces.split(",") if ns.strip())

    return OperatorConfig(
        key_pool=key_pool,
        requeue_after_seconds=float(
            os.environ.get("SEALEDAGE_REQUEUE_SECONDS", str(DEFAULT_REQUEUE_SECONDS))
        ),
        namespaces=namespaces,
        liveness_endpoint=os.environ.get("SEALEDAGE_LIVENESS_ENDPOINT", ""),
        standalone=_parse_bool(os.environ.get("SEALEDAGE_STANDALONE", "true")),
        log_level=os.environ.get("SEALEDAGE_LOG_LEVEL", "INFO").upper(),
    )


def reset_config() -> None:
    """Reset the singleton config (for testing)."""
    global _config
    _config = None
