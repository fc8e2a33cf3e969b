"""Helpers shared by the lifecycle workflows."""

from decimal import Decimal
from typing import Any, Mapping, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from core.infrastructure.logging import get_logger
from orchestration.models import ErrorKind, ServiceError, WorkflowResult
from orchestration.orchestrator import new_workflow_id

M = TypeVar("M", bound=BaseModel)

logger = get_logger(__name__)


def parse_input(model: Type[M], data: Union[M, Mapping[str, Any]]) -> M:
    """Validate raw workflow input into ``model``.

    Raises:
        pydantic.ValidationError: If the data does not fit the model
    """
    if isinstance(data, model):
        return data
    return model.model_validate(data)


def rejected_input(workflow_name: str, steps_total: int, exc: ValidationError) -> WorkflowResult[Any]:
    """Failed result for input rejected before any step ran."""
    workflow_id = new_workflow_id()
    logger.warning(f"[{workflow_id}] Rejected input for {workflow_name}: {exc.error_count()} error(s)")
    return WorkflowResult(
        success=False,
        workflow_id=workflow_id,
        errors=(
            ServiceError(
                kind=ErrorKind.VALIDATION_FAILED,
                message=f"Invalid {workflow_name} input",
                details={"errors": exc.errors(include_url=False)},
            ),
        ),
        steps_total=steps_total,
    )


def format_amount(amount: Decimal) -> str:
    return f"{amount:,.2f}"
