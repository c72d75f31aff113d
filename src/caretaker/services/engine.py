"""Scheduler engine: drives poll cycles and executes due tasks."""

import asyncio
import logging
import threading
from datetime import datetime

from caretaker.actions import ActionSet
from caretaker.models import ScheduledTask
from caretaker.services.executor import ExecutionOutcome, execute_task
from caretaker.services.selector import ConditionChecker, DueTaskSelector
from caretaker.services.store import TaskStore
from caretaker.time_utils import to_utc

logger = logging.getLogger(__name__)


class SchedulerEngine:
    """Runs due maintenance tasks, one poll cycle at a time.

    Two ways to drive it:
    - ``await engine.run()`` owns the loop and sleeps ``check_interval``
      between cycles until ``stop()`` is called.
    - A host with its own periodic tick (a GUI frame loop) calls ``start()``
      once and then ``tick()`` / ``poll()`` as often as it likes; the engine
      rate-limits itself to one cycle per ``check_interval``.

    Within a cycle due tasks run sequentially, and each task's bookkeeping is
    written before the next task starts.
    """

    def __init__(
        self,
        store: TaskStore,
        actions: ActionSet,
        check_interval: float = 30.0,
        selector: DueTaskSelector | None = None,
    ) -> None:
        self._store = store
        self._actions = actions
        self._selector = selector or DueTaskSelector(store, ConditionChecker(actions))
        self._check_interval = check_interval
        self._running = False
        self._stop_requested = False
        self._last_checked: datetime | None = None
        self._cycle_guard = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._wake: asyncio.Event | None = None

    @property
    def store(self) -> TaskStore:
        return self._store

    @property
    def check_interval(self) -> float:
        return self._check_interval

    @property
    def last_checked(self) -> datetime | None:
        return self._last_checked

    # Lifecycle

    def start(self) -> None:
        """Mark the scheduler as running so host ticks execute cycles."""
        self._stop_requested = False
        self._running = True
        logger.info("Scheduler engine started")

    def stop(self) -> None:
        """Stop before the next sleep or the next due task.

        A task already executing runs to completion and its result is recorded.
        Safe to call from any thread.
        """
        self._stop_requested = True
        self._running = False
        if self._loop is not None and self._wake is not None:
            try:
                self._loop.call_soon_threadsafe(self._wake.set)
            except RuntimeError:
                # Loop already closed
                pass
        logger.info("Scheduler engine stopped")

    def is_running(self) -> bool:
        return self._running

    async def run(self) -> None:
        """Standalone loop: run a cycle, sleep, repeat until stopped.

        A ``stop()`` issued before the loop begins is honoured; call
        ``start()`` first to re-arm a stopped engine.
        """
        if self._stop_requested:
            logger.info("Stop requested before the scheduler loop started")
            return
        self._loop = asyncio.get_running_loop()
        self._wake = asyncio.Event()
        self._running = True
        logger.info("Scheduler engine started")
        try:
            while self._running:
                try:
                    await self.run_cycle()
                except Exception as e:
                    logger.exception(f"Scheduler error: {e}")
                if not self._running:
                    break
                try:
                    await asyncio.wait_for(self._wake.wait(), timeout=self._check_interval)
                except TimeoutError:
                    pass
        finally:
            self._running = False
            self._wake = None
            self._loop = None

    # Poll cycles

    def _should_check(self, now: datetime) -> bool:
        if not self._running:
            return False
        if self._last_checked is None:
            return True
        elapsed = (to_utc(now) - to_utc(self._last_checked)).total_seconds()
        return elapsed >= self._check_interval

    async def tick(self, now: datetime | None = None) -> list[ExecutionOutcome] | None:
        """Host-driven entry point; returns None when no cycle was due."""
        now = now or self._store.now()
        if not self._should_check(now):
            return None
        return await self.run_cycle(now)

    def poll(self, now: datetime | None = None) -> list[ExecutionOutcome] | None:
        """Blocking ``tick`` for hosts without a running event loop."""
        now = now or self._store.now()
        if not self._should_check(now):
            return None
        return asyncio.run(self.run_cycle(now))

    async def run_cycle(self, now: datetime | None = None) -> list[ExecutionOutcome]:
        """Select due tasks and execute them one after another.

        Overlapping calls are no-ops: only one cycle is ever in flight.
        """
        if not self._cycle_guard.acquire(blocking=False):
            logger.debug("Poll cycle already in progress, skipping")
            return []
        try:
            now = now or self._store.now()
            self._last_checked = now
            logger.debug("Checking for scheduled tasks to execute...")

            outcomes: list[ExecutionOutcome] = []
            for task in await self._selector.pending(now):
                if self._stop_requested:
                    logger.info("Stop requested, leaving remaining due tasks for later")
                    break
                outcomes.append(await self._execute_and_record(task))
            return outcomes
        finally:
            self._cycle_guard.release()

    async def _execute_and_record(self, task: ScheduledTask) -> ExecutionOutcome:
        outcome = await execute_task(task, self._actions)
        self._store.mark_completed(task.id, outcome.success, outcome.error)
        return outcome

    async def run_task_now(self, task_id: str) -> ExecutionOutcome | None:
        """Execute one task immediately, outside the schedule.

        Returns None for unknown tasks, and while a poll cycle is in flight.
        """
        if not self._cycle_guard.acquire(blocking=False):
            logger.warning(f"Poll cycle in progress, not running task {task_id} now")
            return None
        try:
            task = self._store.get(task_id)
            if task is None:
                return None
            return await self._execute_and_record(task)
        finally:
            self._cycle_guard.release()

    # Task management for hosts

    def add_task(self, task: ScheduledTask) -> ScheduledTask:
        return self._store.add(task)

    def update_task(self, task: ScheduledTask) -> ScheduledTask | None:
        return self._store.update(task)

    def remove_task(self, task_id: str) -> bool:
        return self._store.remove(task_id)

    def set_task_enabled(self, task_id: str, enabled: bool) -> ScheduledTask | None:
        return self._store.set_enabled(task_id, enabled)

    def get_task(self, task_id: str) -> ScheduledTask | None:
        return self._store.get(task_id)

    def list_tasks(self) -> list[ScheduledTask]:
        return self._store.list()
