from .scheduled_task import (
    CleanDisk,
    CleanMemory,
    Daily,
    DiskCleaningOptions,
    Interval,
    OnCondition,
    OnStartup,
    ScheduledTask,
    ScheduleRule,
    SecurityToggle,
    TaskType,
    Weekday,
    Weekly,
    new_task_id,
)

__all__ = [
    # Schedule rules
    "OnStartup",
    "Interval",
    "Daily",
    "Weekly",
    "OnCondition",
    "ScheduleRule",
    "Weekday",
    # Task types
    "CleanMemory",
    "CleanDisk",
    "DiskCleaningOptions",
    "SecurityToggle",
    "TaskType",
    # Domain model
    "ScheduledTask",
    "new_task_id",
]
