"""Dispatch of a scheduled task to its maintenance action."""

import logging
from dataclasses import dataclass

from caretaker.actions import BYTES_PER_MB, ActionSet
from caretaker.models import CleanDisk, CleanMemory, ScheduledTask, SecurityToggle

logger = logging.getLogger(__name__)


@dataclass
class ExecutionOutcome:
    """What happened when one task ran."""

    task_id: str
    task_name: str
    success: bool
    message: str = ""
    error: str | None = None


async def run_action(task: ScheduledTask, actions: ActionSet) -> str:
    """Run the action behind *task* and return a summary message.

    Threshold tasks re-check their threshold here even when they were
    selected as due, and report a skip instead of cleaning.
    Action failures propagate to the caller.
    """
    task_type = task.task_type

    if isinstance(task_type, CleanMemory):
        usage = await actions.memory.current_usage_percent()
        threshold = task_type.threshold_percent
        if usage < threshold:
            message = f"RAM usage {usage}% is below threshold {threshold}%, skipping cleanup"
            logger.info(message)
            return message
        logger.info(f"RAM usage {usage}% exceeds threshold {threshold}%, cleaning...")
        summary = await actions.memory.clean()
        return (
            f"RAM cleaning completed. Freed: {summary.freed_bytes} bytes "
            f"({usage}% usage exceeded threshold {threshold}%)"
        )

    if isinstance(task_type, CleanDisk):
        reclaimable = await actions.disk.scan(task_type.options)
        potential_mb = reclaimable // BYTES_PER_MB
        threshold = task_type.threshold_mb
        if potential_mb < threshold:
            message = (
                f"Potential disk cleanup {potential_mb} MB is below threshold "
                f"{threshold} MB, skipping cleanup"
            )
            logger.info(message)
            return message
        logger.info(
            f"Potential disk cleanup {potential_mb} MB exceeds threshold {threshold} MB, cleaning..."
        )
        summary = await actions.disk.clean(task_type.options)
        for category, freed in summary.details.items():
            logger.info(f"- {category}: {freed // BYTES_PER_MB} MB")
        return (
            f"Disk cleaning completed. Freed: {summary.freed_mb} MB "
            f"(potential {potential_mb} MB exceeded threshold {threshold} MB)"
        )

    if isinstance(task_type, SecurityToggle):
        if task_type.enable:
            await actions.security.enable()
            return "Security protection enabled successfully"
        await actions.security.disable()
        return "Security protection disabled successfully"

    raise TypeError(f"Unknown task type: {task_type!r}")


async def execute_task(task: ScheduledTask, actions: ActionSet) -> ExecutionOutcome:
    """Run *task*, turning any action failure into a failed outcome."""
    logger.info(f"Executing scheduled task: {task.name} ({task.id})")
    try:
        message = await run_action(task, actions)
    except Exception as e:
        error = str(e) or type(e).__name__
        logger.error(f"Task failed: {task.name} - {error}")
        return ExecutionOutcome(
            task_id=task.id, task_name=task.name, success=False, error=error
        )

    logger.info(f"Task completed successfully: {task.name}")
    return ExecutionOutcome(
        task_id=task.id, task_name=task.name, success=True, message=message
    )
