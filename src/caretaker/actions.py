"""Ports for the maintenance actions the engine triggers.

The engine only depends on these Protocols. Platform hosts inject concrete
implementations (working-set trimming, cache scanning, security service
control); the dry-run set below lets the engine run without any of them.
"""

import logging
from dataclasses import dataclass, field
from typing import Protocol

from caretaker.models import DiskCleaningOptions

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024


class ActionError(Exception):
    """Raised by an action implementation when it cannot complete."""


@dataclass
class CleanupSummary:
    """Result of a cleaning action."""

    freed_bytes: int = 0
    details: dict[str, int] = field(default_factory=dict)

    @property
    def freed_mb(self) -> int:
        return self.freed_bytes // BYTES_PER_MB


class MemoryAction(Protocol):
    async def current_usage_percent(self) -> int: ...

    async def clean(self) -> CleanupSummary: ...


class DiskAction(Protocol):
    async def scan(self, options: DiskCleaningOptions) -> int:
        """Return the number of reclaimable bytes."""
        ...

    async def clean(self, options: DiskCleaningOptions) -> CleanupSummary: ...


class SecurityToggleAction(Protocol):
    async def enable(self) -> None: ...

    async def disable(self) -> None: ...


@dataclass
class ActionSet:
    """The collaborators the engine dispatches to, one per task type."""

    memory: MemoryAction
    disk: DiskAction
    security: SecurityToggleAction


class DryRunMemoryAction:
    """Reports zero usage so threshold tasks never fire."""

    async def current_usage_percent(self) -> int:
        return 0

    async def clean(self) -> CleanupSummary:
        logger.info("[dry-run] Memory cleanup requested")
        return CleanupSummary()


class DryRunDiskAction:
    async def scan(self, options: DiskCleaningOptions) -> int:
        logger.info(f"[dry-run] Disk scan requested: {options.model_dump()}")
        return 0

    async def clean(self, options: DiskCleaningOptions) -> CleanupSummary:
        logger.info("[dry-run] Disk cleanup requested")
        return CleanupSummary()


class DryRunSecurityToggleAction:
    async def enable(self) -> None:
        logger.info("[dry-run] Security protection enable requested")

    async def disable(self) -> None:
        logger.info("[dry-run] Security protection disable requested")


def dry_run_actions() -> ActionSet:
    """Action set that only logs, for hosts without platform actions."""
    return ActionSet(
        memory=DryRunMemoryAction(),
        disk=DryRunDiskAction(),
        security=DryRunSecurityToggleAction(),
    )
