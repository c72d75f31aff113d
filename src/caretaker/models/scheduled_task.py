"""Scheduled task model for automatic maintenance execution."""

import time as _time
import uuid
from datetime import datetime
from datetime import time as dt_time
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field, model_validator


class Weekday(str, Enum):
    MONDAY = "mon"
    TUESDAY = "tue"
    WEDNESDAY = "wed"
    THURSDAY = "thu"
    FRIDAY = "fri"
    SATURDAY = "sat"
    SUNDAY = "sun"

    @property
    def index(self) -> int:
        """Day number matching ``datetime.weekday()`` (Monday is 0)."""
        return list(Weekday).index(self)

    @classmethod
    def from_index(cls, index: int) -> "Weekday":
        return list(cls)[index % 7]


# Schedule rules


class OnStartup(BaseModel):
    """Run once, at the first check after the task is created."""

    kind: Literal["on_startup"] = "on_startup"


class Interval(BaseModel):
    kind: Literal["interval"] = "interval"
    minutes: int = Field(gt=0)


class Daily(BaseModel):
    kind: Literal["daily"] = "daily"
    time: dt_time


class Weekly(BaseModel):
    kind: Literal["weekly"] = "weekly"
    weekday: Weekday
    time: dt_time


class OnCondition(BaseModel):
    """Run whenever the action reports it has meaningful work to do."""

    kind: Literal["on_condition"] = "on_condition"


ScheduleRule = Annotated[
    OnStartup | Interval | Daily | Weekly | OnCondition,
    Field(discriminator="kind"),
]


# Task types


class DiskCleaningOptions(BaseModel):
    """Cleaning options forwarded verbatim to the disk action."""

    clean_temp_files: bool = True
    clean_browser_cache: bool = True
    clean_thumbnails: bool = True
    clean_recycle_bin: bool = False
    clean_system_cache: bool = False
    clean_windows_logs: bool = False
    clean_downloads: bool = False
    parallel_processing: bool = True
    dry_run: bool = False
    skip_files_in_use: bool = True
    preserve_recent_days: int | None = None


class CleanMemory(BaseModel):
    kind: Literal["clean_memory"] = "clean_memory"
    threshold_percent: int = Field(ge=0, le=100)


class CleanDisk(BaseModel):
    kind: Literal["clean_disk"] = "clean_disk"
    threshold_mb: int = Field(ge=0)
    options: DiskCleaningOptions = Field(default_factory=DiskCleaningOptions)


class SecurityToggle(BaseModel):
    kind: Literal["security_toggle"] = "security_toggle"
    enable: bool


TaskType = Annotated[
    CleanMemory | CleanDisk | SecurityToggle,
    Field(discriminator="kind"),
]


def new_task_id() -> str:
    """Generate a task id derived from the creation time."""
    return f"task_{int(_time.time())}_{uuid.uuid4().hex[:8]}"


class ScheduledTask(BaseModel):
    """A maintenance action together with the rule that decides when it runs."""

    id: str
    name: str
    description: str = ""
    task_type: TaskType
    schedule: ScheduleRule
    enabled: bool = True
    last_run: datetime | None = None
    next_run: datetime | None = None  # Owned by the store, recomputed on every write
    run_count: int = Field(default=0, ge=0)
    success_count: int = Field(default=0, ge=0)
    last_error: str | None = None

    @model_validator(mode="after")
    def _check_counters(self) -> "ScheduledTask":
        if self.success_count > self.run_count:
            raise ValueError(
                f"success_count ({self.success_count}) exceeds run_count ({self.run_count})"
            )
        return self

    @classmethod
    def create(
        cls,
        name: str,
        task_type: CleanMemory | CleanDisk | SecurityToggle,
        schedule: OnStartup | Interval | Daily | Weekly | OnCondition,
        description: str = "",
        enabled: bool = True,
    ) -> "ScheduledTask":
        """Create a new task with a fresh id and empty history."""
        return cls(
            id=new_task_id(),
            name=name,
            description=description,
            task_type=task_type,
            schedule=schedule,
            enabled=enabled,
        )

    @property
    def success_rate(self) -> float:
        if self.run_count == 0:
            return 0.0
        return self.success_count / self.run_count

    def clone(self) -> "ScheduledTask":
        return self.model_copy(deep=True)
