"""
Local cache layer: durable key-value storage for offline state.
"""

from tasksync.db.factory import close_adapter, get_adapter, init_adapter
from tasksync.db.interface import CacheAdapter

__all__ = [
    "CacheAdapter",
    "get_adapter",
    "init_adapter",
    "close_adapter",
]
