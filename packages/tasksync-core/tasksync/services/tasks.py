"""
Task Store for Tasksync.

Offline-first task operations. Every user action updates the local
projection immediately, queues the mutation, and asks the sync engine to
push it. Fetches fall back to the cached list when the server is away.
"""

import logging
from typing import Awaitable, Callable, Optional
from uuid import uuid4

from tasksync.api.client import AuthApi, TaskApi
from tasksync.api.errors import RemoteError
from tasksync.db.interface import CacheAdapter
from tasksync.models.pending_op import PendingOperation
from tasksync.models.session import AuthSession
from tasksync.models.task import TASK_STATUSES, UPDATABLE_FIELDS, Task, normalize_status
from tasksync.services.auth import AuthService
from tasksync.services.connectivity import ConnectivityMonitor
from tasksync.services.pending_log import PendingLog
from tasksync.services.projection import TaskProjection
from tasksync.services.sync import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY, SyncEngine

logger = logging.getLogger(__name__)

OFFLINE_NO_CACHE = "Offline mode (No cached tasks)"
OFFLINE_OR_ERROR = "Offline mode or Error"


class TaskStore:
    """
    Offline-first facade over the projection, the pending log and the sync engine.

    Args:
        cache: Local cache adapter
        api: Task endpoints client (shares `session` for its bearer token)
        session: Auth session
        auth_api: Optional auth endpoints client; enables login/register
        retry_delay: Seconds before a halted drain is retried
        max_retries: Soft failures tolerated per operation
        probe_interval: Seconds between connectivity probes (None disables the monitor)
    """

    def __init__(
        self,
        cache: CacheAdapter,
        api: TaskApi,
        session: Optional[AuthSession] = None,
        auth_api: Optional[AuthApi] = None,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        max_retries: int = DEFAULT_MAX_RETRIES,
        probe_interval: Optional[float] = None,
    ):
        self.cache = cache
        self.api = api
        self.session = session or api.session
        self.api.session = self.session

        self.log = PendingLog(cache)
        self.projection = TaskProjection(cache)
        self.engine = SyncEngine(
            self.log,
            self.projection,
            api,
            self.session,
            retry_delay=retry_delay,
            max_retries=max_retries,
        )

        self.auth_api = auth_api
        self.auth: Optional[AuthService] = None
        if auth_api is not None:
            auth_api.session = self.session
            self.auth = AuthService(auth_api, cache, self.session)

        self.monitor: Optional[ConnectivityMonitor] = None
        if probe_interval:
            self.monitor = ConnectivityMonitor(api, self.engine.notify_online, probe_interval)

        self.loading = False
        self.offline = False
        self.error: Optional[str] = None

    @classmethod
    def from_config(cls, config=None, cache: Optional[CacheAdapter] = None) -> "TaskStore":
        """
        Build a store from configuration.

        Args:
            config: Optional TasksyncConfig. If not provided, uses the cached config.
            cache: Optional CacheAdapter. If not provided, uses the global adapter.
        """
        if config is None:
            from tasksync.config import get_config
            config = get_config()
        if cache is None:
            from tasksync.db import get_adapter
            cache = get_adapter(config)

        session = AuthSession()
        return cls(
            cache=cache,
            api=TaskApi(config.api.base_url, session, timeout=config.api.request_timeout),
            session=session,
            auth_api=AuthApi(config.api.base_url, session, timeout=config.api.request_timeout),
            retry_delay=config.sync.retry_delay,
            max_retries=config.sync.max_retries,
            probe_interval=config.connectivity.probe_interval if config.connectivity.enabled else None,
        )

    @property
    def tasks(self) -> list[Task]:
        return self.projection.tasks

    @property
    def sort_mode(self) -> str:
        return self.projection.sort_mode

    async def load(self) -> None:
        """Restore session, tasks, sort preference and pending log from the cache."""
        await self.cache.connect()
        if self.auth is not None:
            await self.auth.load()
        await self.projection.load()
        await self.log.load()

    def start(self) -> None:
        """Start watching connectivity (needs a running event loop)."""
        if self.monitor is not None:
            self.monitor.start()

    async def close(self) -> None:
        if self.monitor is not None:
            await self.monitor.stop()
        await self.engine.close()
        await self.api.close()
        if self.auth_api is not None:
            await self.auth_api.close()

    # ---------------------------------------------------------------- fetch

    async def fetch_tasks(self) -> list[Task]:
        """Fetch the user's tasks, merge them with local state and push the backlog."""
        return await self._fetch(self.api.list_mine, OFFLINE_NO_CACHE)

    async def fetch_all_tasks(self) -> list[Task]:
        """Admin view: every user's tasks."""
        return await self._fetch(self.api.list_all, OFFLINE_OR_ERROR)

    async def _fetch(
        self,
        loader: Callable[[str], Awaitable[list[Task]]],
        empty_message: str,
    ) -> list[Task]:
        if not self.session.is_authenticated:
            return self.tasks

        self.loading = True
        self.error = None

        try:
            try:
                fetched = await loader(self.projection.sort_mode)
            except RemoteError as e:
                logger.warning(f"Server unavailable, using cache: {e}")
                if self.projection.tasks:
                    self.offline = True
                    self.projection.sort_locally()
                    await self.projection.save()
                else:
                    self.error = empty_message
                return self.tasks

            self.offline = False
            await self.projection.merge_fetched(
                [normalize_status(t) for t in fetched],
                deleted_ids=self.log.queued_deletes(),
            )
        finally:
            self.loading = False

        await self.engine.drain()
        return self.tasks

    # -------------------------------------------------------------- mutations

    async def create_task(
        self,
        title: str,
        description: str = "",
        due_date: Optional[str] = None,
    ) -> Optional[Task]:
        """
        Create a task locally and queue it for the server.

        Returns:
            The new task (with a temp id until the server confirms it), or
            None when nobody is signed in
        """
        if not self.session.is_authenticated:
            return None
        if not title:
            raise ValueError("Title is required")

        temp_id = str(uuid4())
        task = Task(
            id=temp_id,
            title=title,
            description=description,
            completed=False,
            status="pending",
            created_by=self.session.user_id,
            due_date=due_date,
            order=self.projection.next_order(),
            is_temp=True,
            sync_status="pending",
        )

        await self.projection.add(task)
        await self.log.append(PendingOperation.create(temp_id, title, description, due_date))

        await self.engine.drain()
        return task

    async def update_task(self, task_id: str, **fields) -> Optional[Task]:
        """
        Apply a partial update locally and queue it.

        Returns:
            The updated task, or None if the task is unknown or nobody is signed in
        """
        if not self.session.is_authenticated:
            return None

        unknown = [k for k in fields if k not in UPDATABLE_FIELDS]
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(unknown)}")
        if fields.get("status") is not None and fields["status"] not in TASK_STATUSES:
            raise ValueError(f"Invalid status. Must be one of: {', '.join(TASK_STATUSES)}")

        task = self.projection.find(self.projection.resolve(task_id))
        if task is None or not fields:
            return task

        task.apply(fields)
        task.sync_status = "pending"
        await self.projection.save()
        await self.log.append(PendingOperation.update(task.id, fields))

        await self.engine.drain()
        return task

    async def delete_task(self, task_id: str) -> bool:
        """
        Remove a task locally and queue the delete.

        Returns:
            True if the task was known and has been queued for deletion
        """
        if not self.session.is_authenticated:
            return False

        task_id = self.projection.resolve(task_id)
        if not await self.projection.remove(task_id):
            return False
        await self.log.append(PendingOperation.delete(task_id))

        await self.engine.drain()
        return True

    async def reorder_tasks(self, task_ids: list[str]) -> list[Task]:
        """
        Apply a manual ordering (task_ids first, in that order) and queue it.

        Switches the sort preference to manual; asc/desc ignore task order.

        Raises:
            ValueError: If task_ids names an unknown task
        """
        if not self.session.is_authenticated:
            return self.tasks

        task_ids = [self.projection.resolve(i) for i in task_ids]
        payload = await self.projection.reorder(task_ids)
        if self.projection.sort_mode != "manual":
            await self.projection.set_sort_mode("manual")
        for task in self.tasks:
            task.sync_status = "pending"
        await self.projection.save()
        await self.log.append(PendingOperation.reorder(payload))

        await self.engine.drain()
        return self.tasks

    # ------------------------------------------------------------------ auth

    async def logout(self) -> None:
        """
        Sign out and forget the signed-in user's tasks and queued work.

        The cache is shared by whoever signs in next, so nothing queued by
        this user may survive into their session.
        """
        await self.engine.close()
        if self.auth is not None:
            await self.auth.logout()
        else:
            self.session.clear()
        await self.log.clear()
        await self.projection.clear()
        self.offline = False
        self.error = None

    # ---------------------------------------------------------------- sorting

    async def set_sort_mode(self, mode: str) -> str:
        await self.projection.set_sort_mode(mode)
        return self.sort_mode

    async def toggle_sort_mode(self) -> str:
        return await self.projection.toggle_sort_mode()

    # ------------------------------------------------------------------- sync

    async def sync_now(self) -> dict:
        """Drain the pending log immediately and report the outcome."""
        await self.engine.drain()
        return self.status()

    def status(self) -> dict:
        return {
            "tasks": len(self.tasks),
            "pending_operations": len(self.log),
            "processing": self.engine.processing,
            "retry_scheduled": self.engine.pending_retry,
            "loading": self.loading,
            "offline": self.offline,
            "error": self.error,
            "sort": self.sort_mode,
            "session": self.session.to_dict(),
        }
