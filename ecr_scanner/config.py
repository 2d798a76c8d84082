"""Runtime settings, read once at startup from AWS_ECR_SCANNER_* environment variables.

Field names are the dotted configuration keys with `.` replaced by `_`,
e.g. `web.port` → `web_port` → AWS_ECR_SCANNER_WEB_PORT.
"""

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ecr_scanner.consts import (
    DEFAULT_CRON_SCHEDULE,
    DEFAULT_LOG_FORMAT,
    DEFAULT_LOG_LEVEL,
    DEFAULT_METRICS_PATH,
    DEFAULT_SCAN_CONCURRENCY,
    DEFAULT_WEB_HOST,
    DEFAULT_WEB_PORT,
    ENV_PREFIX,
)


class Settings(BaseSettings):
    """Runtime configuration for the scan trigger service."""

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, case_sensitive=False, extra="ignore")

    # Logging
    log_format: str = Field(DEFAULT_LOG_FORMAT, description="json, logfmt or text.")
    log_level: str = Field(DEFAULT_LOG_LEVEL, description="debug, info, warn, error or fatal.")

    # Scheduler
    cron_schedule: str = Field(
        DEFAULT_CRON_SCHEDULE,
        description="Six-field cron expression, seconds first.",
    )
    cron_allow_overlap: bool = Field(
        False,
        description="Start a cycle even if the previous one is still running.",
    )

    # Metrics endpoint
    web_host: str = DEFAULT_WEB_HOST
    web_port: int = Field(DEFAULT_WEB_PORT, ge=0, le=65535)
    metrics_path: str = DEFAULT_METRICS_PATH

    # Scan dispatch
    scan_concurrency: int = Field(
        DEFAULT_SCAN_CONCURRENCY,
        ge=1,
        description="Maximum concurrent StartImageScan requests.",
    )

    # AWS
    aws_region: str | None = Field(default=None, description="None = boto3 default resolution.")
    aws_registry_id: str | None = Field(default=None, description="None = caller's account.")

    @field_validator("log_format", "log_level")
    @classmethod
    def _lowercase(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("metrics_path")
    @classmethod
    def _leading_slash(cls, value: str) -> str:
        value = value.strip()
        return value if value.startswith("/") else f"/{value}"

    @field_validator("aws_region", "aws_registry_id")
    @classmethod
    def _blank_is_unset(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value

    def dotted(self) -> dict[str, Any]:
        """Render settings under their dotted keys, e.g. {'web.port': 2112}."""
        return {name.replace("_", ".", 1): value for name, value in self.model_dump().items()}


def load_settings(**overrides: Any) -> Settings:
    """Read settings from the environment, with optional explicit overrides."""
    return Settings(**overrides)
