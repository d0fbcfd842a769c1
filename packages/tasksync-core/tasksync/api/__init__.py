"""
Remote task service client and failure classification.
"""

from tasksync.api.client import AuthApi, TaskApi
from tasksync.api.errors import (
    PermanentError,
    RemoteError,
    RetryableClientError,
    TransientInfraError,
    classify,
)

__all__ = [
    "TaskApi",
    "AuthApi",
    "RemoteError",
    "PermanentError",
    "RetryableClientError",
    "TransientInfraError",
    "classify",
]
