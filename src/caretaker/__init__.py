"""Caretaker - scheduling and execution engine for system maintenance tasks."""

import logging

from caretaker.app import create_engine
from caretaker.config import Settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

__all__ = ["Settings", "create_engine"]
