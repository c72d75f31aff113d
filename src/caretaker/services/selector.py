"""Due-task selection for one poll cycle."""

import logging
from datetime import datetime

from caretaker.actions import BYTES_PER_MB, ActionSet
from caretaker.models import (
    CleanDisk,
    CleanMemory,
    OnCondition,
    ScheduledTask,
    SecurityToggle,
)
from caretaker.services.schedule import is_due
from caretaker.services.store import TaskStore

logger = logging.getLogger(__name__)


class ConditionChecker:
    """Asks each action whether running it now would do meaningful work."""

    def __init__(self, actions: ActionSet) -> None:
        self._actions = actions

    async def is_met(self, task: ScheduledTask) -> bool:
        task_type = task.task_type

        if isinstance(task_type, CleanMemory):
            usage = await self._actions.memory.current_usage_percent()
            return usage >= task_type.threshold_percent

        if isinstance(task_type, CleanDisk):
            try:
                reclaimable = await self._actions.disk.scan(task_type.options)
            except Exception as e:
                logger.warning(f"Disk scan failed for condition check of {task.id}: {e}")
                return False
            return reclaimable // BYTES_PER_MB >= task_type.threshold_mb

        if isinstance(task_type, SecurityToggle):
            # Toggling is manual or calendar-triggered only
            return False

        raise TypeError(f"Unknown task type: {task_type!r}")


class DueTaskSelector:
    """Picks the tasks that are due from a point-in-time snapshot of the store."""

    def __init__(self, store: TaskStore, checker: ConditionChecker) -> None:
        self._store = store
        self._checker = checker

    async def pending(self, now: datetime) -> list[ScheduledTask]:
        """Return the enabled tasks that are due at *now*, in store order."""
        due: list[ScheduledTask] = []
        # Snapshot first: condition checks can be slow and must not hold the store
        for task in self._store.list():
            if not task.enabled:
                continue

            condition_met = False
            if isinstance(task.schedule, OnCondition):
                try:
                    condition_met = await self._checker.is_met(task)
                except Exception as e:
                    logger.warning(f"Condition check failed for task {task.id}: {e}")
                    condition_met = False

            if is_due(task, now, condition_met):
                due.append(task)

        if due:
            logger.info(f"Found {len(due)} due scheduled tasks")
        return due
