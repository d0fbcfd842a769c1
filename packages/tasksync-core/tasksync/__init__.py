"""
Tasksync Core Library

Offline-first task management client: a local mutation log replayed against
the task service whenever it is reachable.
"""

__version__ = "0.1.0"

from tasksync.config import TasksyncConfig, load_config
from tasksync.db import CacheAdapter, get_adapter
from tasksync.services import TaskStore

__all__ = [
    "load_config",
    "TasksyncConfig",
    "get_adapter",
    "CacheAdapter",
    "TaskStore",
]
