"""
In-process cache adapter.

Keeps JSON-encoded copies so callers never share mutable state with the
cache, matching what a round trip through SQLite would give them.
Nothing survives the process.
"""

import json
from typing import Any, Dict, List

from tasksync.db.interface import CacheAdapter


class MemoryCache(CacheAdapter):
    """Ephemeral key-value cache."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return json.loads(self._data[key])

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def keys(self) -> List[str]:
        return sorted(self._data)

    @property
    def is_durable(self) -> bool:
        return False
