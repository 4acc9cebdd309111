from __future__ import annotations

from enum import Enum
from typing import Callable, TypeVar

F = TypeVar("F", bound=Callable)


class UpdatePolicy(str, Enum):
    """How an operation reconciles local state with a remote call.

    - CONFIRM_THEN_APPLY: local state changes only after the gateway confirms.
    - APPLY_THEN_RECONCILE: local state changes before the call; the outcome
      is appended afterwards and nothing is rolled back.
    """

    CONFIRM_THEN_APPLY = "confirm_then_apply"
    APPLY_THEN_RECONCILE = "apply_then_reconcile"


def update_policy(policy: UpdatePolicy) -> Callable[[F], F]:
    """Tag an operation with the update policy it follows."""

    def decorator(func: F) -> F:
        func.update_policy = policy  # type: ignore[attr-defined]
        return func

    return decorator
