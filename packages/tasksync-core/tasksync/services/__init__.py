"""
Offline-first services for Tasksync.
"""

from tasksync.services.auth import AuthService
from tasksync.services.pending_log import PendingLog
from tasksync.services.projection import TaskProjection
from tasksync.services.sync import SyncEngine
from tasksync.services.tasks import TaskStore

__all__ = [
    "TaskStore",
    "SyncEngine",
    "PendingLog",
    "TaskProjection",
    "AuthService",
]
