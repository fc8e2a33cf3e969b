"""Orchestration models - ServiceError, Result, ExecutionContext, WorkflowResult."""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")
Out = TypeVar("Out")


class ErrorKind(str, Enum):
    """Closed set of failure categories a caller can branch on."""

    NOT_FOUND = "not_found"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    VALIDATION_FAILED = "validation_failed"
    CONFLICT = "conflict"
    STEP_FAILED = "step_failed"
    UNKNOWN = "unknown"


class ActorKind(str, Enum):
    """Who is acting: the owning principal or delegated staff."""

    OWNER = "owner"
    STAFF = "staff"


@dataclass(frozen=True)
class ServiceError:
    """Structured error carried by a failed Result."""

    kind: ErrorKind
    message: str
    details: Mapping[str, Any] = field(default_factory=dict)

    def with_details(self, **extra: Any) -> "ServiceError":
        """Return a copy with ``extra`` merged into details."""
        return replace(self, details={**self.details, **extra})


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful step outcome."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def is_err(self) -> bool:
        return False


@dataclass(frozen=True)
class Err:
    """Failed step outcome."""

    error: ServiceError

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_err(self) -> bool:
        return True


Result = Ok[T] | Err


def ok(value: T = None) -> Ok[T]:
    """Wrap a value as a successful Result."""
    return Ok(value)


def err(kind: ErrorKind, message: str, **details: Any) -> Err:
    """Build a failed Result.

    Args:
        kind: Error category
        message: Human readable message
        **details: Extra structured details

    Returns:
        Err wrapping a ServiceError
    """
    return Err(ServiceError(kind=kind, message=message, details=details))


@dataclass(frozen=True)
class ExecutionContext:
    """Immutable per-invocation context passed to every step."""

    actor_id: str
    actor_kind: ActorKind
    scope_id: str
    idempotency_key: str | None = None
    metadata: Mapping[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class WorkflowResult(Generic[Out]):
    """Terminal outcome of a workflow execution.

    ``failed_steps`` lists optional steps that failed without aborting the run.
    ``compensated_steps`` and ``rollback_failures`` are diagnostic only and
    never influence ``success`` or ``errors``.
    """

    success: bool
    workflow_id: str
    data: Out | None = None
    errors: tuple[ServiceError, ...] = ()
    failed_steps: tuple[str, ...] = ()
    steps_completed: int = 0
    steps_total: int = 0
    compensated_steps: tuple[str, ...] = ()
    rollback_failures: tuple[str, ...] = ()
    audit_event_ids: tuple[str, ...] = ()
    notification_ids: tuple[str, ...] = ()

    @property
    def error(self) -> ServiceError | None:
        """Primary error of a failed run."""
        return self.errors[0] if self.errors else None

    @property
    def partial(self) -> bool:
        """True when the run succeeded but some optional steps failed."""
        return self.success and bool(self.failed_steps)
