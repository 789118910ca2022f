from typing import Literal
import logging

from croniter import croniter
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class CustomSettings(BaseSettings):
    """Application settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    radiko_area_id: str = "JP13"  # Tokyo
    station_list_url_template: str = "http://radiko.jp/v3/station/list/{area_id}.xml"
    weekly_schedule_url_template: str = "http://radiko.jp/v3/program/station/weekly/{station_id}.xml"

    http_timeout_sec: float = 30.0
    fetch_max_attempts: int = 1  # Single attempt, no retry
    fetch_backoff_initial_sec: float = 1.0
    fetch_backoff_multiplier: float = 2.0
    fetch_backoff_max_sec: float = 30.0

    harvest_cron: str = "0 5 * * *"  # Daily at 5 AM UTC
    harvest_misfire_grace_sec: int = 3600  # Allow 1 hour to run missed jobs
    harvest_schedule_enabled: bool = True

    storage_backend: Literal["sqlite", "filesystem", "memory"] = "sqlite"
    database_path: str = "./data/artifacts.db"
    storage_root: str = "./data/artifacts"
    publish_mode: Literal["direct", "staged"] = "direct"

    server_host: str = "0.0.0.0"
    server_port: int = 8000

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("radiko_area_id")
    @classmethod
    def validate_area_id(cls, value: str) -> str:
        """Area ids look like JP1..JP47."""
        normalized = value.strip().upper()
        if not normalized.startswith("JP") or not normalized[2:].isdigit():
            raise ValueError(f"radiko_area_id must look like 'JP13', got '{value}'")
        return normalized

    @field_validator("station_list_url_template", "weekly_schedule_url_template")
    @classmethod
    def validate_http_url(cls, value: str, info) -> str:
        """Validate upstream URLs are HTTP/HTTPS."""
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError(f"{info.field_name} must be HTTP/HTTPS: {value}")
        return value

    @field_validator("weekly_schedule_url_template")
    @classmethod
    def validate_schedule_placeholder(cls, value: str) -> str:
        if "{station_id}" not in value:
            raise ValueError("weekly_schedule_url_template must contain '{station_id}'")
        return value

    @field_validator("http_timeout_sec", "fetch_backoff_initial_sec", "fetch_backoff_max_sec")
    @classmethod
    def validate_positive_floats(cls, value: float, info) -> float:
        """Ensure timing settings are positive."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("fetch_backoff_multiplier")
    @classmethod
    def validate_backoff_multiplier(cls, value: float) -> float:
        """Ensure the backoff multiplier is at least 1."""
        if value < 1:
            raise ValueError("fetch_backoff_multiplier must be >= 1")
        return value

    @field_validator("fetch_max_attempts")
    @classmethod
    def validate_max_attempts(cls, value: int) -> int:
        if value < 1:
            raise ValueError("fetch_max_attempts must be >= 1")
        return value

    @field_validator("harvest_misfire_grace_sec")
    @classmethod
    def validate_misfire_grace(cls, value: int) -> int:
        """Validate scheduler misfire grace period (seconds)."""
        if value < 0:
            raise ValueError("harvest_misfire_grace_sec must be >= 0")
        return value

    @field_validator("harvest_cron")
    @classmethod
    def validate_cron_expression(cls, value: str) -> str:
        """Validate cron expression is valid."""
        try:
            croniter(value)
            return value
        except (ValueError, KeyError) as exc:
            raise ValueError(f"Invalid cron expression '{value}': {exc}") from exc

    @field_validator("server_port")
    @classmethod
    def validate_server_port(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError(f"server_port must be between 1 and 65535, got {value}")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        normalized = value.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @model_validator(mode="after")
    def validate_backoff_range(self):
        """Ensure max backoff is not lower than initial backoff."""
        if self.fetch_backoff_max_sec < self.fetch_backoff_initial_sec:
            raise ValueError("fetch_backoff_max_sec must be >= fetch_backoff_initial_sec")
        return self

    @property
    def station_list_url(self) -> str:
        return self.station_list_url_template.format(area_id=self.radiko_area_id)

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  Station List: %s", self.station_list_url)
        logger.info("  Weekly Schedule: %s", self.weekly_schedule_url_template)
        logger.info("  HTTP Timeout: %ss", self.http_timeout_sec)
        logger.info(
            "  Fetch Attempts: %s (backoff initial=%.1fs multiplier=%.1f max=%.1fs)",
            self.fetch_max_attempts,
            self.fetch_backoff_initial_sec,
            self.fetch_backoff_multiplier,
            self.fetch_backoff_max_sec,
        )
        logger.info(
            "  Harvest Schedule: %s (%s)",
            self.harvest_cron,
            "enabled" if self.harvest_schedule_enabled else "disabled",
        )
        logger.info("  Harvest Misfire Grace: %ss", self.harvest_misfire_grace_sec)
        logger.info("  Storage Backend: %s", self.storage_backend)
        logger.info("  Publish Mode: %s", self.publish_mode)
        logger.info("  Read Server: %s:%s", self.server_host, self.server_port)


settings = CustomSettings()


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
