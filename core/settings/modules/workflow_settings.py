from __future__ import annotations

from datetime import timedelta
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import SettingsConfigDict

from core.settings.base import HostelflowBaseSettings


class WorkflowSettings(HostelflowBaseSettings):
    """
    Workflow engine settings.

    Loaded from WORKFLOW_* environment variables or .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="WORKFLOW_",
        extra="ignore",
    )

    idempotency_ttl_seconds: float = Field(300.0, gt=0)
    serialize_in_flight: bool = True
    # "database" keeps the audit trail in DB_DATABASE_URL
    audit_store: Literal["memory", "database"] = "memory"
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return value

    @property
    def idempotency_ttl(self) -> timedelta:
        return timedelta(seconds=self.idempotency_ttl_seconds)
