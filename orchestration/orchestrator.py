"""Workflow engine - runs saga workflows with compensation, idempotency and eventing."""

import asyncio
import functools
import uuid
from collections.abc import Coroutine
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, TypeVar

from core.application.interfaces import IAuditSink, INotificationDispatcher
from core.infrastructure.logging import get_logger

from .bus import EventBusProtocol
from .events import Event, EventMetadata
from .idempotency import IdempotencyCache, cache_key, utc_now
from .models import Err, ErrorKind, ExecutionContext, Ok, ServiceError, WorkflowResult
from .workflow import STEP_FAILED, Step, StepResults, WorkflowDefinition

In = TypeVar("In")
Out = TypeVar("Out")


@dataclass(frozen=True)
class _CommittedStep:
    """A compensable step that succeeded, with the value it produced."""

    step: Step
    value: Any


def new_workflow_id() -> str:
    return f"wf_{uuid.uuid4().hex[:12]}"


class WorkflowEngine:
    """Executes workflow definitions step by step.

    Steps run sequentially in a task owned by the engine. A failing
    required step triggers reverse-order compensation of already committed
    steps; a failing optional step is recorded and skipped. Audit and
    notification side effects run only after success and never change the
    outcome.
    """

    def __init__(
        self,
        audit_sink: IAuditSink | None = None,
        notification_dispatcher: INotificationDispatcher | None = None,
        idempotency_cache: IdempotencyCache | None = None,
        event_bus: EventBusProtocol | None = None,
        idempotency_ttl: timedelta | None = None,
        serialize_in_flight: bool = True,
    ) -> None:
        """Initialize the engine.

        Args:
            audit_sink: Where audit events of successful runs are recorded
            notification_dispatcher: Where notifications of successful runs are sent
            idempotency_cache: Cache consulted for keyed executions
            event_bus: Optional bus receiving lifecycle events
            idempotency_ttl: TTL for cache entries (cache default when None)
            serialize_in_flight: Make concurrent callers with the same new key
                wait for the first caller instead of executing again
        """
        self._audit_sink = audit_sink
        self._notification_dispatcher = notification_dispatcher
        self._idempotency_cache = idempotency_cache
        self._event_bus = event_bus
        self._idempotency_ttl = idempotency_ttl
        self._serialize_in_flight = serialize_in_flight
        self._in_flight: dict[str, asyncio.Task[WorkflowResult]] = {}
        self._tasks: set[asyncio.Task[WorkflowResult]] = set()
        self._logger = get_logger("orchestration.engine")

    async def execute(
        self,
        definition: WorkflowDefinition[In, Out],
        input_: In,
        context: ExecutionContext,
        *,
        skip_audit: bool = False,
        skip_notifications: bool = False,
    ) -> WorkflowResult[Out]:
        """Execute a workflow.

        The run happens in a task of its own. Cancelling the caller (for
        example through ``asyncio.wait_for``) stops the wait, not the run:
        the workflow still finishes or compensates, and a keyed result is
        cached for the retry.

        Args:
            definition: Workflow to run
            input_: Workflow input handed to every step
            context: Immutable execution context
            skip_audit: Do not derive or record audit events
            skip_notifications: Do not derive or send notifications

        Returns:
            WorkflowResult; a cached result is returned unchanged for a repeated key
        """
        if context.idempotency_key is None or self._idempotency_cache is None:
            task = self._spawn(
                self._run(definition, input_, context, skip_audit, skip_notifications)
            )
            return await asyncio.shield(task)

        key = cache_key(definition.name, context.scope_id, context.idempotency_key)
        loop = asyncio.get_running_loop()

        pending = self._in_flight.get(key)
        if pending is not None and pending.get_loop() is loop:
            self._logger.info(f"Waiting for in-flight execution of {key}")
            return await asyncio.shield(pending)

        # Registered before any await so a concurrent caller sees it
        task = self._spawn(
            self._run_keyed(key, definition, input_, context, skip_audit, skip_notifications)
        )
        if self._serialize_in_flight:
            self._in_flight[key] = task
            task.add_done_callback(functools.partial(self._release_key, key))
        return await asyncio.shield(task)

    async def drain(self) -> None:
        """Wait until every run started by this engine has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _spawn(self, coro: Coroutine[Any, Any, WorkflowResult]) -> asyncio.Task[WorkflowResult]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        # Mark retrieved; callers still awaiting re-raise it themselves
        exc = task.exception()
        if exc is not None:
            self._logger.debug(f"Workflow task ended with {type(exc).__name__}: {exc}")

    def _release_key(self, key: str, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    async def _run_keyed(
        self,
        key: str,
        definition: WorkflowDefinition[In, Out],
        input_: In,
        context: ExecutionContext,
        skip_audit: bool,
        skip_notifications: bool,
    ) -> WorkflowResult[Out]:
        cached = await self._idempotency_cache.get(key)
        if cached is not None:
            self._logger.info(
                f"[{cached.workflow_id}] Returning cached result for {key} "
                f"(success={cached.success})"
            )
            return cached

        result = await self._run(definition, input_, context, skip_audit, skip_notifications)
        await self._idempotency_cache.put(key, result, self._idempotency_ttl)
        return result

    async def _run(
        self,
        definition: WorkflowDefinition[In, Out],
        input_: In,
        context: ExecutionContext,
        skip_audit: bool,
        skip_notifications: bool,
    ) -> WorkflowResult[Out]:
        workflow_id = new_workflow_id()
        results: dict[str, Any] = {}
        view = StepResults(results)
        committed: list[_CommittedStep] = []
        failed_steps: list[str] = []
        steps_completed = 0

        self._logger.info(
            f"[{workflow_id}] Starting workflow {definition.name} "
            f"({len(definition.steps)} steps, scope={context.scope_id})"
        )
        await self._publish(
            "workflow.started",
            workflow_id,
            definition,
            context,
            {"step_count": len(definition.steps)},
        )

        for step in definition.steps:
            outcome = await self._execute_step(workflow_id, step, context, input_, view)

            if isinstance(outcome, Ok):
                results[step.name] = outcome.value
                steps_completed += 1
                if step.compensable:
                    committed.append(_CommittedStep(step=step, value=outcome.value))
                await self._publish(
                    "workflow.step.succeeded", workflow_id, definition, context, {"step_name": step.name}
                )
                continue

            error = outcome.error.with_details(step=step.name)
            await self._publish(
                "workflow.step.failed",
                workflow_id,
                definition,
                context,
                {"step_name": step.name, "optional": step.optional, "error_kind": error.kind.value},
            )

            if step.optional:
                self._logger.warning(
                    f"[{workflow_id}] Optional step '{step.name}' failed "
                    f"({error.kind.value}: {error.message}), continuing"
                )
                results[step.name] = STEP_FAILED
                failed_steps.append(step.name)
                continue

            self._logger.error(
                f"[{workflow_id}] Required step '{step.name}' failed "
                f"({error.kind.value}: {error.message}), rolling back"
            )
            compensated, rollback_failures = await self._compensate(
                workflow_id, definition, context, input_, committed
            )
            result = WorkflowResult(
                success=False,
                workflow_id=workflow_id,
                errors=(error,),
                failed_steps=tuple(failed_steps),
                steps_completed=steps_completed,
                steps_total=len(definition.steps),
                compensated_steps=tuple(compensated),
                rollback_failures=tuple(rollback_failures),
            )
            await self._publish(
                "workflow.finished",
                workflow_id,
                definition,
                context,
                {"success": False, "failed_step": step.name, "error_kind": error.kind.value},
            )
            return result

        audit_ids: list[str] = []
        if not skip_audit:
            audit_ids = await self._record_audit(workflow_id, definition, context, input_, view)

        notification_ids: list[str] = []
        if not skip_notifications:
            notification_ids = await self._dispatch_notifications(
                workflow_id, definition, context, input_, view
            )

        data = definition.build_output(view)

        result = WorkflowResult(
            success=True,
            workflow_id=workflow_id,
            data=data,
            failed_steps=tuple(failed_steps),
            steps_completed=steps_completed,
            steps_total=len(definition.steps),
            audit_event_ids=tuple(audit_ids),
            notification_ids=tuple(notification_ids),
        )

        self._logger.info(
            f"[{workflow_id}] Completed workflow {definition.name} "
            f"({steps_completed}/{len(definition.steps)} steps, "
            f"failed optional: {failed_steps or 'none'})"
        )
        await self._publish(
            "workflow.finished",
            workflow_id,
            definition,
            context,
            {"success": True, "failed_steps": list(failed_steps)},
        )
        return result

    async def _execute_step(
        self,
        workflow_id: str,
        step: Step,
        context: ExecutionContext,
        input_: Any,
        results: StepResults,
    ) -> Ok[Any] | Err:
        """Run one step, converting a raised exception into an Err."""
        self._logger.debug(f"[{workflow_id}] Executing step '{step.name}'")
        try:
            outcome = await step.execute(context, input_, results)
        except Exception as exc:
            self._logger.error(
                f"[{workflow_id}] Step '{step.name}' raised {type(exc).__name__}: {exc}",
                exc_info=True,
            )
            return Err(
                ServiceError(
                    kind=ErrorKind.STEP_FAILED,
                    message=f'Step "{step.name}" failed with exception',
                    details={"exception": repr(exc)},
                )
            )

        if not isinstance(outcome, (Ok, Err)):
            return Err(
                ServiceError(
                    kind=ErrorKind.STEP_FAILED,
                    message=f'Step "{step.name}" returned {type(outcome).__name__}, expected a Result',
                )
            )
        return outcome

    async def _compensate(
        self,
        workflow_id: str,
        definition: WorkflowDefinition,
        context: ExecutionContext,
        input_: Any,
        committed: list[_CommittedStep],
    ) -> tuple[list[str], list[str]]:
        """Roll back committed steps in reverse order.

        Every rollback runs even if an earlier one fails.

        Returns:
            (compensated step names, step names whose rollback failed)
        """
        compensated: list[str] = []
        failures: list[str] = []

        for entry in reversed(committed):
            name = entry.step.name
            try:
                outcome = await entry.step.rollback(context, input_, entry.value)
            except Exception as exc:
                self._logger.error(
                    f"[{workflow_id}] Rollback failed for '{name}': {exc}", exc_info=True
                )
                failures.append(name)
                await self._publish(
                    "workflow.rollback.failed", workflow_id, definition, context,
                    {"step_name": name, "error": repr(exc)},
                )
                continue

            if isinstance(outcome, Err):
                self._logger.error(
                    f"[{workflow_id}] Rollback failed for '{name}': "
                    f"{outcome.error.kind.value}: {outcome.error.message}"
                )
                failures.append(name)
                await self._publish(
                    "workflow.rollback.failed", workflow_id, definition, context,
                    {"step_name": name, "error": outcome.error.message},
                )
                continue

            self._logger.info(f"[{workflow_id}] Rolled back step '{name}'")
            compensated.append(name)
            await self._publish(
                "workflow.step.rolled_back", workflow_id, definition, context, {"step_name": name}
            )

        return compensated, failures

    async def _record_audit(
        self,
        workflow_id: str,
        definition: WorkflowDefinition,
        context: ExecutionContext,
        input_: Any,
        results: StepResults,
    ) -> list[str]:
        if definition.audit_events is None or self._audit_sink is None:
            return []
        try:
            events = definition.audit_events(context, input_, results)
            if not events:
                return []
            ids = await self._audit_sink.record(events)
            self._logger.info(f"[{workflow_id}] Recorded {len(events)} audit event(s)")
            return list(ids or [])
        except Exception as exc:
            self._logger.error(
                f"[{workflow_id}] Audit recording failed for {definition.name}: {exc}",
                exc_info=True,
            )
            return []

    async def _dispatch_notifications(
        self,
        workflow_id: str,
        definition: WorkflowDefinition,
        context: ExecutionContext,
        input_: Any,
        results: StepResults,
    ) -> list[str]:
        if definition.notifications is None or self._notification_dispatcher is None:
            return []
        try:
            payloads = definition.notifications(context, input_, results)
            if not payloads:
                return []
            ids = await self._notification_dispatcher.send(payloads)
            self._logger.info(f"[{workflow_id}] Dispatched {len(payloads)} notification(s)")
            return list(ids or [])
        except Exception as exc:
            self._logger.error(
                f"[{workflow_id}] Notification dispatch failed for {definition.name}: {exc}",
                exc_info=True,
            )
            return []

    async def _publish(
        self,
        name: str,
        workflow_id: str,
        definition: WorkflowDefinition,
        context: ExecutionContext,
        payload: dict[str, object],
    ) -> None:
        """Publish a lifecycle event; failures never affect the run."""
        if self._event_bus is None:
            return
        metadata = EventMetadata(
            workflow_id=workflow_id,
            workflow_name=definition.name,
            scope_id=context.scope_id,
            actor_id=context.actor_id,
            timestamp=utc_now(),
        )
        try:
            await self._event_bus.publish(Event(name=name, payload=payload, metadata=metadata))
        except Exception as exc:
            self._logger.warning(f"[{workflow_id}] Failed to publish {name}: {exc}")
