"""
Integration tests for the tasksync stack.

These tests verify the real pieces work together:
- TaskApi/AuthApi speaking HTTP (served by an in-process fake REST backend)
- SQLite cache persistence
- Offline queueing, reconnection and replay
"""

import json
import tempfile
from pathlib import Path

import httpx
import pytest


class FakeBackend:
    """Minimal REST backend with the task service's routes."""

    def __init__(self):
        self.up = True
        self.tasks: dict[str, dict] = {}
        self._next_id = 1

    def handler(self, request: httpx.Request) -> httpx.Response:
        if not self.up:
            raise httpx.ConnectError("connection refused", request=request)

        path = request.url.path.removeprefix("/api")
        body = json.loads(request.content) if request.content else None

        if path == "/health":
            return httpx.Response(200, json={"status": "ok"})
        if path == "/auth/login":
            return httpx.Response(200, json={"token": "tok", "user": {"_id": "u1", "username": "alice"}})
        if request.headers.get("Authorization") != "Bearer tok":
            return httpx.Response(401, json={"message": "Unauthorized"})

        if path == "/task" and request.method == "POST":
            task_id = f"{self._next_id:024x}"
            self._next_id += 1
            row = {
                "_id": task_id,
                "title": body["title"],
                "description": body["description"],
                "completed": False,
                "createBy": "u1",
                "order": len(self.tasks) + 1,
            }
            self.tasks[task_id] = row
            return httpx.Response(201, json=row)

        if path == "/task" and request.method == "GET":
            rows = sorted(self.tasks.values(), key=lambda r: r["order"])
            return httpx.Response(200, json=rows)

        if path == "/task/reorder":
            for item in body["tasks"]:
                if item["_id"] not in self.tasks:
                    return httpx.Response(400, json={"message": "Invalid tasks data"})
                self.tasks[item["_id"]]["order"] = item["order"]
            return httpx.Response(200, json={"message": "Tasks reordered successfully"})

        task_id = path.removeprefix("/task/")
        if task_id not in self.tasks:
            return httpx.Response(404, json={"message": "Task not found"})
        if request.method == "PUT":
            self.tasks[task_id].update(body)
            return httpx.Response(200, json=self.tasks[task_id])
        if request.method == "DELETE":
            del self.tasks[task_id]
            return httpx.Response(200, json={"message": "Task deleted successfully"})

        return httpx.Response(405)


@pytest.fixture
def backend():
    return FakeBackend()


def build_store(backend, db_path):
    from tasksync.api.client import AuthApi, TaskApi
    from tasksync.db.sqlite import SQLiteCache
    from tasksync.models.session import AuthSession
    from tasksync.services.tasks import TaskStore

    session = AuthSession()
    transport = httpx.MockTransport(backend.handler)
    return TaskStore(
        cache=SQLiteCache(db_path),
        api=TaskApi("http://tasks.test/api", session, transport=transport),
        session=session,
        auth_api=AuthApi("http://tasks.test/api", session, transport=transport),
    )


class TestOfflineRoundTrip:
    """Work done offline reaches the server after reconnecting."""

    @pytest.mark.asyncio
    async def test_offline_edits_survive_restart_and_sync(self, backend):
        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = str(Path(tmpdir) / "cache.db")

            store = build_store(backend, db_path)
            await store.load()
            await store.auth.login("alice@example.com", "pw")

            online_task = await store.create_task("Online")
            assert online_task.id in backend.tasks

            backend.up = False
            offline_task = await store.create_task("Offline")
            await store.update_task(offline_task.id, title="Offline, renamed")
            await store.reorder_tasks([offline_task.id, online_task.id])
            await store.update_task(online_task.id, description="edited while offline")

            assert len(store.log) == 4
            assert store.engine.pending_retry is True

            await store.close()
            await store.cache.close()

            # Restart: session and backlog come back from SQLite
            backend.up = True
            store = build_store(backend, db_path)
            await store.load()

            assert store.session.is_authenticated
            assert len(store.log) == 4

            await store.fetch_tasks()

            assert store.log.is_empty
            assert [r["title"] for r in sorted(backend.tasks.values(), key=lambda r: r["order"])] == [
                "Offline, renamed",
                "Online",
            ]
            assert backend.tasks[online_task.id]["description"] == "edited while offline"
            assert [t.title for t in sorted(store.tasks, key=lambda t: t.order)] == ["Offline, renamed", "Online"]
            assert all(t.sync_status == "synced" for t in store.tasks)

            await store.close()
            await store.cache.close()

    @pytest.mark.asyncio
    async def test_server_side_delete_is_dropped(self, backend):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = build_store(backend, str(Path(tmpdir) / "cache.db"))
            await store.load()
            await store.auth.login("alice@example.com", "pw")

            task = await store.create_task("Doomed")
            del backend.tasks[task.id]

            await store.update_task(task.id, title="Too late")

            assert store.log.is_empty
            assert task.sync_status == "error"
            assert store.engine.pending_retry is False

            await store.close()
            await store.cache.close()

    @pytest.mark.asyncio
    async def test_cached_list_when_backend_down(self, backend):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = build_store(backend, str(Path(tmpdir) / "cache.db"))
            await store.load()
            await store.auth.login("alice@example.com", "pw")
            await store.create_task("Cached")

            backend.up = False
            tasks = await store.fetch_tasks()

            assert [t.title for t in tasks] == ["Cached"]
            assert store.offline is True
            assert store.error is None

            await store.close()
            await store.cache.close()
