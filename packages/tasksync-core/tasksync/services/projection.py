"""
Task view projection.

The merged list of server-confirmed and locally pending tasks shown to the
user, plus the user's sort preference. Both are mirrored to the local cache.
"""

import logging
from typing import Iterable, Optional

from tasksync.db.interface import SORT_KEY, TASKS_KEY, CacheAdapter
from tasksync.models.task import SORT_MODES, Task

logger = logging.getLogger(__name__)

# manual -> desc -> asc -> manual
_NEXT_SORT = {"manual": "desc", "desc": "asc", "asc": "manual"}


class TaskProjection:
    """In-memory task list keyed by current task id."""

    def __init__(self, cache: CacheAdapter):
        self._cache = cache
        self.tasks: list[Task] = []
        self.sort_mode = "manual"
        # temp id -> server id, for callers still holding a temp id
        self._aliases: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self.tasks)

    async def load(self) -> None:
        """Restore tasks and sort preference from the cache."""
        raw = await self._cache.get(TASKS_KEY, [])
        self.tasks = [Task.from_dict(row) for row in raw]

        saved_sort = await self._cache.get(SORT_KEY)
        if saved_sort in SORT_MODES:
            self.sort_mode = saved_sort

        logger.debug(f"Restored {len(self.tasks)} cached tasks (sort={self.sort_mode})")

    async def save(self) -> None:
        await self._cache.set(TASKS_KEY, [t.to_dict() for t in self.tasks])

    def find(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def resolve(self, task_id: str) -> str:
        """Map a confirmed temp id to its server id; other ids pass through."""
        return self._aliases.get(task_id, task_id)

    def ids(self) -> list[str]:
        return [t.id for t in self.tasks]

    def next_order(self) -> int:
        return max((t.order or 0 for t in self.tasks), default=0) + 1

    async def add(self, task: Task) -> None:
        self.tasks.append(task)
        await self.save()

    async def remove(self, task_id: str) -> bool:
        before = len(self.tasks)
        self.tasks = [t for t in self.tasks if t.id != task_id]
        removed = len(self.tasks) != before
        if removed:
            await self.save()
        return removed

    def swap_id(self, temp_id: str, real_id: str, created_by: str = "") -> Optional[Task]:
        """
        Swap a temp id for the server id once a create is confirmed.

        In memory only; the caller persists with save().

        Returns:
            The remapped task, or None if it was deleted locally meanwhile
        """
        self._aliases[temp_id] = real_id

        task = self.find(temp_id)
        if task is None:
            return None

        # A fetch that raced the create may already hold the server copy
        self.tasks = [t for t in self.tasks if t.id != real_id]

        task.id = real_id
        task.is_temp = False
        task.sync_status = "synced"
        if created_by:
            task.created_by = created_by
        return task

    async def replace_id(self, temp_id: str, real_id: str, created_by: str = "") -> Optional[Task]:
        """Swap a temp id for the server id and persist."""
        task = self.swap_id(temp_id, real_id, created_by)
        if task is not None:
            await self.save()
        return task

    async def mark_synced(self, task_ids: Iterable[str]) -> None:
        wanted = set(task_ids)
        for task in self.tasks:
            if task.id in wanted:
                task.sync_status = "synced"
        await self.save()

    async def mark_error(self, task_ids: Iterable[str]) -> None:
        wanted = set(task_ids)
        for task in self.tasks:
            if task.id in wanted:
                task.sync_status = "error"
        await self.save()

    async def merge_fetched(self, server_tasks: list[Task], deleted_ids: Iterable[str] = ()) -> None:
        """
        Merge a fresh server listing with local state.

        Server tasks go in first, tagged synced, except those named in
        deleted_ids (deletes still queued locally). Every locally pending
        task is then laid over them, replacing the server copy with the same
        id or being added when the server does not know it yet.
        """
        skip = set(deleted_ids)
        merged: dict[str, Task] = {}

        for task in server_tasks:
            if task.id in skip:
                continue
            task.sync_status = "synced"
            merged[task.id] = task

        for task in self.tasks:
            if task.is_pending:
                merged[task.id] = task

        self.tasks = list(merged.values())
        await self.save()

    def sort_locally(self) -> None:
        """Order the list by the current sort preference."""
        if self.sort_mode == "manual":
            self.tasks.sort(key=lambda t: t.order or 0)
        else:
            # Server ids are issued monotonically, so id order is creation order
            self.tasks.sort(key=lambda t: t.id, reverse=self.sort_mode == "desc")

    async def reorder(self, task_ids: list[str]) -> list[dict]:
        """
        Apply a manual ordering.

        Tasks named in task_ids come first in that order; any others keep
        their relative order after them. Returns the reorder payload.
        """
        by_id = {t.id: t for t in self.tasks}
        unknown = [i for i in task_ids if i not in by_id]
        if unknown:
            raise ValueError(f"Unknown task ids: {', '.join(unknown)}")

        named = set(task_ids)
        ordered = [by_id[i] for i in task_ids] + [t for t in self.tasks if t.id not in named]

        payload = []
        for position, task in enumerate(ordered, start=1):
            task.order = position
            payload.append({"id": task.id, "order": position})

        self.tasks = ordered
        await self.save()
        return payload

    async def set_sort_mode(self, mode: str) -> None:
        if mode not in SORT_MODES:
            raise ValueError(f"Invalid sort mode. Must be one of: {', '.join(SORT_MODES)}")

        self.sort_mode = mode
        self.sort_locally()
        await self._cache.set(SORT_KEY, mode)
        await self.save()

    async def toggle_sort_mode(self) -> str:
        await self.set_sort_mode(_NEXT_SORT[self.sort_mode])
        return self.sort_mode

    async def clear(self) -> None:
        """Drop every task, in memory and in the cache. The sort preference stays."""
        self.tasks = []
        self._aliases = {}
        await self._cache.delete(TASKS_KEY)

    def to_list(self) -> list[dict]:
        return [t.to_dict() for t in self.tasks]
