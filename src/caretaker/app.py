"""Scheduler engine factory: wires settings, store and actions together."""

import logging
from functools import partial

from caretaker.actions import ActionSet, dry_run_actions
from caretaker.config import Settings
from caretaker.services import SchedulerEngine, TaskStore
from caretaker.templates import default_tasks
from caretaker.time_utils import local_now

logger = logging.getLogger(__name__)


def create_engine(
    settings: Settings | None = None,
    actions: ActionSet | None = None,
) -> SchedulerEngine:
    """Create a scheduler engine with its task store loaded from disk."""
    settings = settings or Settings()
    tz = settings.get_timezone()

    store = TaskStore(settings.tasks_path, clock=partial(local_now, tz))
    if settings.seed_default_tasks:
        store.register_builtin(default_tasks())
    store.load()

    if actions is None:
        logger.warning("No platform actions configured, running with dry-run actions")
        actions = dry_run_actions()

    return SchedulerEngine(store, actions, check_interval=settings.check_interval)
