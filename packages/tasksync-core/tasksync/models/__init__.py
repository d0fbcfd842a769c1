"""
Core data models for Tasksync.
"""

from tasksync.models.pending_op import PendingOperation
from tasksync.models.session import AuthSession
from tasksync.models.task import Task

__all__ = [
    "Task",
    "PendingOperation",
    "AuthSession",
]
