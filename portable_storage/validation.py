"""Argument validation helpers shared by folder and file handles.

Every check here runs before any storage primitive is invoked, so a rejected
call never has side effects.

Example:
    >>> validate_not_empty("report.txt", "desired_name")
    >>> validate_policy(CollisionPolicy.FAIL_IF_EXISTS)
    >>> validate_relocation_policy(CollisionPolicy.OPEN_IF_EXISTS, "move")  # raises

"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .interfaces import (
    CollisionPolicy,
    FileAccess,
    OperationCancelledError,
    ValidationError,
)

if TYPE_CHECKING:
    from .interfaces import CancellationSignal


def validate_not_empty(value: Any, argument: str) -> None:
    """Validate that a required string argument is present and non-empty.

    Args:
        value: Value supplied by the caller
        argument: Parameter name used in the error message

    Raises:
        ValidationError: If value is None, not a string, or empty.

    """
    if not isinstance(value, str) or value == "":
        raise ValidationError.empty_argument(argument)


def validate_policy(policy: Any) -> CollisionPolicy:
    """Validate that ``policy`` is a CollisionPolicy member."""
    if not isinstance(policy, CollisionPolicy):
        raise ValidationError.unrecognized_policy(policy)
    return policy


def validate_relocation_policy(policy: Any, operation: str) -> CollisionPolicy:
    """Validate a policy for rename, move or copy.

    Raises:
        ValidationError: If policy is unrecognized or OPEN_IF_EXISTS.

    """
    policy = validate_policy(policy)
    if policy is CollisionPolicy.OPEN_IF_EXISTS:
        raise ValidationError.policy_not_allowed(policy, operation)
    return policy


def validate_access(access: Any) -> FileAccess:
    """Validate that ``access`` is a FileAccess member."""
    if not isinstance(access, FileAccess):
        raise ValidationError.unrecognized_access(access)
    return access


def raise_if_cancelled(cancel_event: CancellationSignal | None) -> None:
    """Raise OperationCancelledError when the signal has been set."""
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledError
