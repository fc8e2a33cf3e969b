# Settings modules
from .app_settings import AppSettings, get_app_settings, IntegrationsSettings
from .integrations_settings import SlackSettings, TelegramSettings
from .workflow_settings import WorkflowSettings

__all__ = [
    "AppSettings",
    "get_app_settings",
    "IntegrationsSettings",
    "SlackSettings",
    "TelegramSettings",
    "WorkflowSettings",
]
