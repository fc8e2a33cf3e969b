"""Workflow definitions - Step, StepResults, WorkflowDefinition."""

from collections.abc import Awaitable, Callable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from core.infrastructure.logging import get_logger

from .models import ExecutionContext, Result

if TYPE_CHECKING:
    from core.domain.audit import AuditEvent
    from core.domain.notifications import NotificationPayload

In = TypeVar("In")
Out = TypeVar("Out")

logger = get_logger(__name__)


class _StepFailedMarker:
    """Placeholder stored for an optional step that failed."""

    _instance: "_StepFailedMarker | None" = None

    def __new__(cls) -> "_StepFailedMarker":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "STEP_FAILED"

    def __bool__(self) -> bool:
        return False


STEP_FAILED = _StepFailedMarker()


class WorkflowDefinitionError(ValueError):
    """Raised when a workflow definition is structurally invalid."""


class StepResults(Mapping[str, Any]):
    """Read-only view over the values produced by earlier steps.

    Failed optional steps hold the ``STEP_FAILED`` marker; ``get`` hides it
    behind the supplied default so derivations can read defensively.
    """

    def __init__(self, values: Mapping[str, Any]) -> None:
        self._values = MappingProxyType(values) if isinstance(values, dict) else values

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def get(self, name: str, default: Any = None) -> Any:
        value = self._values.get(name, STEP_FAILED)
        return default if value is STEP_FAILED else value

    def require(self, name: str) -> Any:
        """Return the value of a step that must have succeeded.

        Raises:
            KeyError: If the step did not run or failed
        """
        value = self._values.get(name, STEP_FAILED)
        if value is STEP_FAILED:
            raise KeyError(f"Step '{name}' has no result")
        return value

    def succeeded(self, name: str) -> bool:
        return name in self._values and self._values[name] is not STEP_FAILED

    def failed(self, name: str) -> bool:
        return self._values.get(name) is STEP_FAILED

    def as_dict(self) -> dict[str, Any]:
        """Copy of successful step values."""
        return {k: v for k, v in self._values.items() if v is not STEP_FAILED}


# Type aliases for step callables
StepExecutor = Callable[[ExecutionContext, Any, StepResults], Awaitable[Result]]
StepRollback = Callable[[ExecutionContext, Any, Any], Awaitable[Result | None]]


@dataclass(frozen=True)
class Step:
    """A single named unit of work in a workflow.

    ``name`` is the key under which the produced value is stored.
    Steps without ``rollback`` are never compensated.
    """

    name: str
    execute: StepExecutor
    rollback: StepRollback | None = None
    optional: bool = False

    @property
    def compensable(self) -> bool:
        return self.rollback is not None


@dataclass
class WorkflowDefinition(Generic[In, Out]):
    """Ordered steps plus the audit, notification and output derivations."""

    name: str
    steps: list[Step]
    build_output: Callable[[StepResults], Out]
    audit_events: Callable[[ExecutionContext, In, StepResults], list["AuditEvent"]] | None = None
    notifications: (
        Callable[[ExecutionContext, In, StepResults], list["NotificationPayload"]] | None
    ) = None
    warnings: list[str] = field(default_factory=list, init=False)

    def __post_init__(self) -> None:
        self.warnings = self.validate()
        for warning in self.warnings:
            logger.warning(f"Workflow '{self.name}': {warning}")

    def validate(self) -> list[str]:
        """Check the definition and return ordering warnings.

        Raises:
            WorkflowDefinitionError: On an empty step list or duplicate step names
        """
        if not self.steps:
            raise WorkflowDefinitionError(f"Workflow '{self.name}' has no steps")

        seen: set[str] = set()
        for step in self.steps:
            if step.name in seen:
                raise WorkflowDefinitionError(
                    f"Workflow '{self.name}' has duplicate step name '{step.name}'"
                )
            seen.add(step.name)

        # Optional steps without compensation stay committed if a later required step aborts
        warnings: list[str] = []
        for index, step in enumerate(self.steps):
            if not step.optional or step.compensable:
                continue
            later_required = [s.name for s in self.steps[index + 1 :] if not s.optional]
            if later_required:
                warnings.append(
                    f"optional step '{step.name}' has no rollback and precedes "
                    f"required step(s) {', '.join(later_required)}"
                )
        return warnings

    @property
    def step_names(self) -> list[str]:
        return [step.name for step in self.steps]
