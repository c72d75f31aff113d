"""Configuration settings for the caretaker scheduler."""

from pathlib import Path
from zoneinfo import ZoneInfo

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from caretaker.time_utils import get_local_timezone


class Settings(BaseSettings):
    """Scheduler configuration."""

    # Storage
    tasks_path: Path = Path("scheduled_tasks.json")

    # Engine settings
    check_interval: float = 30.0  # Seconds between poll cycles
    timezone: str | None = None  # IANA name, None = system timezone

    # Host settings
    log_level: str = "INFO"
    seed_default_tasks: bool = False  # Register the quick templates as built-in tasks
    auto_start_scheduler: bool = True

    model_config = SettingsConfigDict(env_prefix="CARETAKER_")

    @field_validator("check_interval")
    @classmethod
    def _positive_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("check_interval must be positive")
        return v

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, v: str | None) -> str | None:
        if v:
            get_local_timezone(v)
        return v or None

    def get_timezone(self) -> ZoneInfo:
        """Resolve the configured timezone."""
        return get_local_timezone(self.timezone)
