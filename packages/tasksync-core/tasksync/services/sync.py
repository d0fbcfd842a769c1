"""
Reconciliation engine for Tasksync.

Replays the pending-operation log against the remote task service, front to
back, one drain at a time:

- create: the server id replaces the temp id in the projection and in every
  operation still queued behind it, before any of them is sent
- update: the returned task is merged into the projection
- delete: nothing further; the task was already removed locally
- reorder: the reordered tasks are marked synced

Failures are classified (see tasksync.api.errors). Permanent failures and
exhausted retries drop the operation and move on. Anything else halts the
drain with the operation still at the head and schedules a single retry of
the whole drain.
"""

import asyncio
import logging
from typing import Optional

from tasksync.api.client import TaskApi
from tasksync.api.errors import PermanentError, RetryableClientError, classify
from tasksync.models.pending_op import PendingOperation
from tasksync.models.session import AuthSession
from tasksync.services.pending_log import PendingLog
from tasksync.services.projection import TaskProjection

logger = logging.getLogger(__name__)

DEFAULT_RETRY_DELAY = 10.0
DEFAULT_MAX_RETRIES = 3


class SyncEngine:
    """
    Drains the pending-operation log against the remote service.

    Args:
        log: Pending-operation log
        projection: Task view projection
        api: Remote task service client
        session: Auth session; nothing is sent without a token
        retry_delay: Seconds before a halted drain is retried
        max_retries: Soft failures tolerated per operation before it is dropped
    """

    def __init__(
        self,
        log: PendingLog,
        projection: TaskProjection,
        api: TaskApi,
        session: AuthSession,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        self.log = log
        self.projection = projection
        self.api = api
        self.session = session
        self.retry_delay = retry_delay
        self.max_retries = max_retries

        self._processing = False
        self._retry_handle: Optional[asyncio.TimerHandle] = None
        self._background: set[asyncio.Task] = set()

    @property
    def processing(self) -> bool:
        """True while a drain pass is running."""
        return self._processing

    @property
    def pending_retry(self) -> bool:
        """True while a deferred retry is scheduled."""
        return self._retry_handle is not None

    async def drain(self) -> None:
        """
        Replay queued operations until the log is empty or a failure halts it.

        Safe to call at any time: returns immediately when another drain is
        running, the log is empty, or there is no authenticated session.
        Never raises.
        """
        if not self.session.is_authenticated:
            return
        if self._processing:
            return
        if self.log.is_empty:
            return

        self._cancel_retry()
        self._processing = True

        try:
            while not self.log.is_empty:
                op = self.log.peek_front()

                try:
                    result = await self._send(op)
                except Exception as e:
                    if await self._handle_failure(op, e):
                        continue
                    self._schedule_retry()
                    return

                await self._apply(op, result)
                await self.log.remove_front()
                logger.debug(f"Synced {op.describe()}")

            logger.info("Pending operations drained")
        except Exception:
            # Local bookkeeping failed (e.g. the cache); keep the log and try later
            logger.exception("Drain aborted by an unexpected error")
            self._schedule_retry()
        finally:
            self._processing = False

    async def _send(self, op: PendingOperation):
        if op.kind == "create":
            payload = op.payload or {}
            return await self.api.create(
                payload.get("title", ""),
                payload.get("description", ""),
                payload.get("due_date"),
            )
        if op.kind == "update":
            return await self.api.update(op.task_id, op.payload or {})
        if op.kind == "delete":
            return await self.api.delete(op.task_id)
        return await self.api.reorder(op.payload or [])

    async def _apply(self, op: PendingOperation, result) -> None:
        """Fold a confirmed operation into the projection."""
        if op.kind == "create":
            real_id = result.id
            # Projection and log switch ids together, before anything yields
            task = self.projection.swap_id(op.temp_id, real_id, result.created_by)
            self.log.rewrite_ids(op.temp_id, real_id)
            if task is not None and self.log.has_queued_for(real_id):
                task.sync_status = "pending"

            await self.log.save()
            await self.projection.save()
            logger.info(f"Created task {real_id} (was {op.temp_id})")

        elif op.kind == "update":
            task = self.projection.find(op.task_id)
            # Later queued edits to the same task win until they are confirmed
            if task is not None and not self.log.has_queued_for(op.task_id):
                task.apply({
                    "title": result.title,
                    "description": result.description,
                    "completed": result.completed,
                    "status": result.status or task.status,
                    "due_date": result.due_date,
                    "order": result.order,
                })
                task.sync_status = "synced"
                await self.projection.save()

        elif op.kind == "reorder":
            settled = [i for i in op.reorder_ids if not self.log.has_queued_for(i)]
            await self.projection.mark_synced(settled)

    async def _handle_failure(self, op: PendingOperation, exc: Exception) -> bool:
        """
        Classify a failed replay.

        Returns:
            True if the operation was dropped and the drain should continue,
            False if the drain should halt and retry later
        """
        failure = classify(exc)

        if isinstance(failure, PermanentError):
            logger.error(f"Sync of {op.describe()} failed permanently ({exc}); dropping it")
            await self._drop(op)
            return True

        if isinstance(failure, RetryableClientError):
            op.retries += 1
            if op.retries >= self.max_retries:
                logger.error(f"Sync of {op.describe()} failed {op.retries} times ({exc}); dropping it")
                await self._drop(op)
                return True
            await self.log.save()

        logger.warning(f"Sync of {op.describe()} failed ({exc}); retrying in {self.retry_delay:g}s")
        return False

    async def _drop(self, op: PendingOperation) -> None:
        await self.log.remove_front()
        affected = op.reorder_ids or [op.temp_id or op.task_id]
        await self.projection.mark_error(affected)

    def _schedule_retry(self) -> None:
        self._cancel_retry()
        loop = asyncio.get_running_loop()
        self._retry_handle = loop.call_later(self.retry_delay, self._on_retry_timer)

    def _cancel_retry(self) -> None:
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None

    def _on_retry_timer(self) -> None:
        self._retry_handle = None
        self.trigger()

    def trigger(self) -> asyncio.Task:
        """Start a drain in the background and return its task."""
        task = asyncio.ensure_future(self.drain())
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def notify_online(self) -> asyncio.Task:
        """Connectivity came back: push whatever is queued."""
        logger.info("Connection restored; draining pending operations")
        return self.trigger()

    async def close(self) -> None:
        """Cancel the retry timer and any background drain."""
        self._cancel_retry()
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
