"""Status condition helpers (metav1.Condition semantics)."""

from __future__ import annotations

from datetime import UTC, datetime

from sealedage.models import Condition


def now_rfc3339() -> str:
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def set_condition(
    conditions: list[Condition],
    type_: str,
    status: bool,
    reason: str,
    message: str,
    generation: int,
) -> list[Condition]:
    """Return a new list with ``type_`` set.

    lastTransitionTime only moves when the status value changes.
    """
    status_str = "True" if status else "False"
    previous = next((c for c in conditions if c.type == type_), None)
    if previous is not None and previous.status == status_str:
        transition = previous.last_transition_time
    else:
        transition = now_rfc3339()

    updated = Condition(
        type=type_,
        status=status_str,
        reason=reason,
        message=message,
        last_transition_time=transition,
        observed_generation=generation,
    )
    return [c for c in conditions if c.type != type_] + [updated]
