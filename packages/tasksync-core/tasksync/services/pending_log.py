"""
Pending-operation log.

FIFO queue of mutations the server has not confirmed. Persisted to the
local cache on every change so queued work survives restarts.
"""

import logging
from typing import Optional

from tasksync.db.interface import PENDING_OPS_KEY, CacheAdapter
from tasksync.models.pending_op import PendingOperation

logger = logging.getLogger(__name__)


class PendingLog:
    """
    Ordered log of pending operations.

    Only the head is ever inspected or removed; entries are never reordered.
    """

    def __init__(self, cache: CacheAdapter):
        self._cache = cache
        self._ops: list[PendingOperation] = []

    def __len__(self) -> int:
        return len(self._ops)

    def __iter__(self):
        return iter(list(self._ops))

    @property
    def is_empty(self) -> bool:
        return not self._ops

    async def load(self) -> None:
        """Restore the log from the cache, skipping unreadable entries."""
        raw = await self._cache.get(PENDING_OPS_KEY, [])
        ops = []
        for entry in raw:
            try:
                ops.append(PendingOperation.from_dict(entry))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping unreadable pending operation {entry!r}: {e}")
        self._ops = ops
        if ops:
            logger.info(f"Restored {len(ops)} pending operations")

    async def save(self) -> None:
        await self._cache.set(PENDING_OPS_KEY, [op.to_dict() for op in self._ops])

    async def append(self, op: PendingOperation) -> None:
        self._ops.append(op)
        await self.save()
        logger.debug(f"Queued {op.describe()} ({len(self._ops)} pending)")

    def peek_front(self) -> Optional[PendingOperation]:
        return self._ops[0] if self._ops else None

    async def remove_front(self) -> Optional[PendingOperation]:
        if not self._ops:
            return None
        op = self._ops.pop(0)
        await self.save()
        return op

    def rewrite_ids(self, old_id: str, new_id: str) -> int:
        """
        Rewrite references to a temp id in every entry behind the head.

        In memory only; the caller persists with save().

        Returns:
            Number of entries rewritten
        """
        count = sum(1 for op in self._ops[1:] if op.remap(old_id, new_id))
        if count:
            logger.debug(f"Remapped {old_id} -> {new_id} in {count} queued operations")
        return count

    async def remap(self, old_id: str, new_id: str) -> int:
        """Rewrite references to a temp id behind the head and persist."""
        count = self.rewrite_ids(old_id, new_id)
        if count:
            await self.save()
        return count

    def has_queued_for(self, task_id: str) -> bool:
        """Check if any entry behind the head still targets task_id."""
        return any(op.references(task_id) for op in self._ops[1:])

    def queued_deletes(self) -> set[str]:
        """Ids of tasks with a delete still waiting in the log."""
        return {op.task_id for op in self._ops if op.kind == "delete"}

    async def clear(self) -> None:
        """Forget every queued operation, in memory and in the cache."""
        self._ops = []
        await self._cache.delete(PENDING_OPS_KEY)

    def to_list(self) -> list[dict]:
        return [op.to_dict() for op in self._ops]
