from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel, ConfigDict

from core.infrastructure.database.config import DatabaseSettings
from core.settings.modules.integrations_settings import SlackSettings, TelegramSettings
from core.settings.modules.workflow_settings import WorkflowSettings


class IntegrationsSettings(BaseModel):
    """Aggregates notification channel settings as nested objects."""

    model_config = ConfigDict(extra="ignore")

    slack: SlackSettings
    telegram: TelegramSettings


class AppSettings(BaseModel):
    """Application settings aggregator."""

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="ignore")

    workflow: WorkflowSettings
    database: DatabaseSettings
    integrations: IntegrationsSettings

    @property
    def slack(self) -> SlackSettings:
        return self.integrations.slack

    @property
    def telegram(self) -> TelegramSettings:
        return self.integrations.telegram


@lru_cache()
def get_app_settings() -> AppSettings:
    return AppSettings(
        workflow=WorkflowSettings(),
        database=DatabaseSettings(),
        integrations=IntegrationsSettings(
            slack=SlackSettings(),
            telegram=TelegramSettings(),
        ),
    )
