"""Orchestration layer - saga workflow engine with idempotency and eventing."""

from typing import TYPE_CHECKING

from .models import (
    ActorKind,
    Err,
    ErrorKind,
    ExecutionContext,
    Ok,
    Result,
    ServiceError,
    WorkflowResult,
    err,
    ok,
)
from .bus import EventBusProtocol, InMemoryEventBus
from .events import Event, EventMetadata
from .idempotency import IdempotencyCache, IdempotencyEntry, InMemoryIdempotencyCache
from .orchestrator import WorkflowEngine
from .workflow import STEP_FAILED, Step, StepResults, WorkflowDefinition, WorkflowDefinitionError

if TYPE_CHECKING:
    from core.application.interfaces import IAuditSink, INotificationDispatcher
    from core.settings import AppSettings

__all__ = [
    "ActorKind",
    "Err",
    "ErrorKind",
    "Event",
    "EventBusProtocol",
    "EventMetadata",
    "ExecutionContext",
    "IdempotencyCache",
    "IdempotencyEntry",
    "InMemoryEventBus",
    "InMemoryIdempotencyCache",
    "Ok",
    "Result",
    "STEP_FAILED",
    "ServiceError",
    "Step",
    "StepResults",
    "WorkflowDefinition",
    "WorkflowDefinitionError",
    "WorkflowEngine",
    "WorkflowResult",
    "create_workflow_engine",
    "err",
    "ok",
]


def create_workflow_engine(
    settings: "AppSettings | None" = None,
    audit_sink: "IAuditSink | None" = None,
    notification_dispatcher: "INotificationDispatcher | None" = None,
    event_bus: EventBusProtocol | None = None,
) -> WorkflowEngine:
    """Create an engine wired from application settings.

    Args:
        settings: Application settings (loaded from the environment when None)
        audit_sink: Audit sink (built from WORKFLOW_AUDIT_STORE when None)
        notification_dispatcher: Dispatcher (enabled Slack/Telegram channels,
            otherwise the logging mock, when None)
        event_bus: Lifecycle event bus (a new in-memory bus when None)

    Returns:
        WorkflowEngine with a process-wide in-memory idempotency cache
    """
    from core.infrastructure.logging import configure_logging
    from core.settings import get_app_settings

    settings = settings or get_app_settings()
    configure_logging(settings.workflow.log_level)

    if audit_sink is None:
        audit_sink = _default_audit_sink(settings)
    if notification_dispatcher is None:
        notification_dispatcher = _default_dispatcher(settings)

    return WorkflowEngine(
        audit_sink=audit_sink,
        notification_dispatcher=notification_dispatcher,
        idempotency_cache=InMemoryIdempotencyCache(ttl=settings.workflow.idempotency_ttl),
        event_bus=event_bus or InMemoryEventBus(),
        idempotency_ttl=settings.workflow.idempotency_ttl,
        serialize_in_flight=settings.workflow.serialize_in_flight,
    )


def _default_audit_sink(settings: "AppSettings") -> "IAuditSink":
    if settings.workflow.audit_store == "database":
        from core.infrastructure.database.audit_store import SqlAlchemyAuditSink
        from core.infrastructure.database.config import create_engine, create_session_factory

        engine = create_engine(settings.database)
        return SqlAlchemyAuditSink(create_session_factory(engine), engine=engine)

    from core.infrastructure.adapters.audit import InMemoryAuditSink

    return InMemoryAuditSink()


def _default_dispatcher(settings: "AppSettings") -> "INotificationDispatcher":
    from core.infrastructure.adapters.notifications.composite_notification_service import (
        CompositeNotificationDispatcher,
    )
    from core.infrastructure.adapters.notifications.mock_notification_service import (
        MockNotificationDispatcher,
    )

    channels: list = []
    if settings.slack.enabled:
        from core.infrastructure.adapters.notifications.slack_notification_service import (
            SlackNotificationDispatcher,
        )

        channels.append(SlackNotificationDispatcher(settings.slack))
    if settings.telegram.enabled:
        from core.infrastructure.adapters.notifications.telegram_notification_service import (
            TelegramNotificationDispatcher,
        )

        channels.append(TelegramNotificationDispatcher(settings.telegram))

    if not channels:
        return MockNotificationDispatcher()
    if len(channels) == 1:
        return channels[0]
    return CompositeNotificationDispatcher(channels)
