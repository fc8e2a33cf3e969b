# Settings package
from core.settings.modules import (
    AppSettings,
    get_app_settings,
    IntegrationsSettings,
    SlackSettings,
    TelegramSettings,
    WorkflowSettings,
)

__all__ = [
    "get_app_settings",
    "AppSettings",
    "IntegrationsSettings",
    "SlackSettings",
    "TelegramSettings",
    "WorkflowSettings",
]
