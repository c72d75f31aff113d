"""Quick task templates offered to users, also usable as built-in tasks."""

from datetime import time

from caretaker.models import (
    CleanDisk,
    CleanMemory,
    Daily,
    OnCondition,
    ScheduledTask,
    SecurityToggle,
    Weekday,
    Weekly,
    new_task_id,
)

MEMORY_CLEANUP_TASK_ID = "ram_cleanup_threshold"
DISK_CLEANUP_TASK_ID = "disk_cleanup_daily"
SECURITY_DISABLE_TASK_ID = "security_disable_weekly"


def default_memory_cleanup_task() -> ScheduledTask:
    return ScheduledTask(
        id=MEMORY_CLEANUP_TASK_ID,
        name="RAM Cleanup (Threshold)",
        description="Automatically clean RAM when usage exceeds 85%",
        task_type=CleanMemory(threshold_percent=85),
        schedule=OnCondition(),
    )


def default_disk_cleanup_task() -> ScheduledTask:
    return ScheduledTask(
        id=DISK_CLEANUP_TASK_ID,
        name="Daily Disk Cleanup",
        description="Clean temporary files and cache daily at 2:00 AM",
        task_type=CleanDisk(threshold_mb=100),
        schedule=Daily(time=time(2, 0, 0)),
    )


def default_security_disable_task() -> ScheduledTask:
    return ScheduledTask(
        id=SECURITY_DISABLE_TASK_ID,
        name="Weekly Security Disable",
        description="Disable real-time security protection every Monday at 9:00 AM",
        task_type=SecurityToggle(enable=False),
        schedule=Weekly(weekday=Weekday.MONDAY, time=time(9, 0, 0)),
        enabled=False,
    )


TEMPLATES = {
    "memory": default_memory_cleanup_task,
    "disk": default_disk_cleanup_task,
    "security": default_security_disable_task,
}


def default_tasks() -> list[ScheduledTask]:
    return [factory() for factory in TEMPLATES.values()]


def from_template(name: str) -> ScheduledTask:
    """Instantiate a template as a new user task with its own id."""
    try:
        factory = TEMPLATES[name]
    except KeyError:
        raise ValueError(f"Unknown template: {name}") from None
    return factory().model_copy(update={"id": new_task_id()})
