from .schedule import calculate_next_run, is_due
from .store import TaskStore
from .selector import ConditionChecker, DueTaskSelector
from .executor import ExecutionOutcome, execute_task
from .engine import SchedulerEngine

__all__ = [
    "calculate_next_run",
    "is_due",
    "TaskStore",
    "ConditionChecker",
    "DueTaskSelector",
    "ExecutionOutcome",
    "execute_task",
    "SchedulerEngine",
]
