from __future__ import annotations

from typing import Literal

from pydantic import Field

from core.settings.base import HostelflowBaseSettings


class TelegramSettings(HostelflowBaseSettings):
    """
    Telegram notification channel settings.
    Loaded from .env file with exact variable name matching.
    """

    enabled: bool = Field(False, alias="HOSTELFLOW_TELEGRAM_ENABLED")
    token: str = Field("", alias="TELEGRAM_BOT_TOKEN")
    chat_id: str = Field("", alias="TELEGRAM_CHAT_ID")
    prefix: str = Field("[HOSTELFLOW]", alias="HOSTELFLOW_TELEGRAM_PREFIX")
    min_priority: Literal["low", "normal", "high"] = Field(
        "normal", alias="HOSTELFLOW_TELEGRAM_MIN_PRIORITY"
    )
    api_base_url: str = Field("https://api.telegram.org", alias="TELEGRAM_API_BASE_URL")


class SlackSettings(HostelflowBaseSettings):
    """
    Slack notification channel settings.
    Loaded from .env file with exact variable name matching.
    """

    enabled: bool = Field(False, alias="HOSTELFLOW_SLACK_ENABLED")
    webhook_url: str = Field("", alias="SLACK_WEBHOOK_URL")
    prefix: str = Field("[HOSTELFLOW]", alias="HOSTELFLOW_SLACK_PREFIX")
