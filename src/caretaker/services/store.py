"""Task store: the single owner of scheduled task records and their file."""

import json
import logging
import os
import threading
from collections.abc import Callable, Iterable
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from caretaker.models import ScheduledTask
from caretaker.services.schedule import calculate_next_run
from caretaker.time_utils import local_now

logger = logging.getLogger(__name__)


class TaskStore:
    """In-memory map of task id -> task, persisted as one JSON snapshot.

    Every mutation rewrites the whole file. Callers always receive copies;
    the lock is held only for a snapshot copy or a single record update.
    """

    def __init__(
        self,
        storage_path: Path | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._storage_path = storage_path or Path("scheduled_tasks.json")
        self._clock = clock or local_now
        self._tasks: dict[str, ScheduledTask] = {}
        self._lock = threading.Lock()

    @property
    def storage_path(self) -> Path:
        return self._storage_path

    def now(self) -> datetime:
        return self._clock()

    def register_builtin(self, tasks: Iterable[ScheduledTask]) -> None:
        """Add built-in tasks without persisting.

        Call before load(): records from the file overlay these, and built-ins
        missing from the file are kept.
        """
        now = self._clock()
        with self._lock:
            for task in tasks:
                record = task.clone()
                record.next_run = calculate_next_run(record.schedule, now)
                self._tasks[record.id] = record

    def load(self) -> int:
        """Overlay tasks from storage onto the in-memory map.

        A missing or corrupt file means no tasks yet. Returns the number of
        records loaded.
        """
        if not self._storage_path.exists():
            logger.info("No scheduled tasks file found, starting fresh")
            return 0
        try:
            data = json.loads(self._storage_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read scheduled tasks from {self._storage_path}: {e}")
            return 0
        if not isinstance(data, dict):
            logger.error(
                f"Ignoring scheduled tasks file {self._storage_path}: expected an object"
            )
            return 0

        loaded: list[ScheduledTask] = []
        for task_id, item in data.items():
            try:
                task = ScheduledTask.model_validate(item)
            except ValidationError as e:
                logger.warning(f"Skipping invalid scheduled task {task_id}: {e}")
                continue
            if task.id != task_id:
                logger.warning(
                    f"Scheduled task key {task_id} does not match id {task.id}, using key"
                )
                task.id = task_id
            loaded.append(task)

        # Stored next_run values are stale after the app was closed
        now = self._clock()
        with self._lock:
            for task in loaded:
                self._tasks[task.id] = task
            for task in self._tasks.values():
                task.next_run = calculate_next_run(task.schedule, now)

        logger.info(f"Loaded {len(loaded)} scheduled tasks from {self._storage_path}")
        return len(loaded)

    def save(self) -> None:
        """Rewrite the storage file atomically. Raises OSError on failure."""
        with self._lock:
            self._write_locked()

    def _write_locked(self) -> None:
        data = {
            task_id: task.model_dump(mode="json")
            for task_id, task in self._tasks.items()
        }
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._storage_path.with_suffix(self._storage_path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp, self._storage_path)

    def _persist_locked(self, action: str) -> bool:
        try:
            self._write_locked()
        except OSError as e:
            logger.error(f"Failed to save scheduled tasks after {action}: {e}")
            return False
        return True

    def add(self, task: ScheduledTask) -> ScheduledTask:
        """Insert a task (replacing any task with the same id)."""
        record = task.clone()
        record.next_run = calculate_next_run(record.schedule, self._clock())
        with self._lock:
            self._tasks[record.id] = record
            self._persist_locked(f"adding {record.id}")
            result = record.clone()
        logger.info(f"Added scheduled task: {record.id} ({record.name})")
        return result

    def update(self, task: ScheduledTask) -> ScheduledTask | None:
        """Replace a task's editable fields, keeping its run history.

        Returns None if the task does not exist.
        """
        now = self._clock()
        with self._lock:
            existing = self._tasks.get(task.id)
            if existing is None:
                logger.warning(f"Cannot update unknown scheduled task: {task.id}")
                return None
            record = task.model_copy(
                deep=True,
                update={
                    "last_run": existing.last_run,
                    "run_count": existing.run_count,
                    "success_count": existing.success_count,
                    "last_error": existing.last_error,
                    "next_run": calculate_next_run(task.schedule, now),
                },
            )
            self._tasks[record.id] = record
            self._persist_locked(f"updating {record.id}")
            result = record.clone()
        logger.info(f"Updated scheduled task: {record.id}")
        return result

    def set_enabled(self, task_id: str, enabled: bool) -> ScheduledTask | None:
        now = self._clock()
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None
            task.enabled = enabled
            task.next_run = calculate_next_run(task.schedule, now)
            self._persist_locked(f"toggling {task_id}")
            result = task.clone()
        logger.info(f"Toggled scheduled task {task_id}: enabled={enabled}")
        return result

    def remove(self, task_id: str) -> bool:
        with self._lock:
            if task_id not in self._tasks:
                return False
            del self._tasks[task_id]
            self._persist_locked(f"removing {task_id}")
        logger.info(f"Deleted scheduled task: {task_id}")
        return True

    def get(self, task_id: str) -> ScheduledTask | None:
        with self._lock:
            task = self._tasks.get(task_id)
            return task.clone() if task else None

    def list(self) -> list[ScheduledTask]:
        """Snapshot of all tasks in insertion order."""
        with self._lock:
            return [task.clone() for task in self._tasks.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    def mark_completed(
        self, task_id: str, success: bool, error: str | None = None
    ) -> ScheduledTask | None:
        """Record one execution and schedule the next one.

        ``next_run`` is computed from the completion time, not from the
        previous slot, so missed slots do not pile up.
        """
        now = self._clock()
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                logger.warning(f"Completed task {task_id} no longer exists, result dropped")
                return None
            task.last_run = now
            task.run_count += 1
            if success:
                task.success_count += 1
                task.last_error = None
            else:
                task.last_error = error
            task.next_run = calculate_next_run(task.schedule, now)
            self._persist_locked(f"completing {task_id}")
            result = task.clone()

        logger.info(
            f"Task '{result.name}' completed. Stats: "
            f"{result.success_count}/{result.run_count} successes"
        )
        return result
