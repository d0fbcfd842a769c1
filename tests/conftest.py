"""
Pytest configuration and fixtures for tasksync tests.
"""

import asyncio
import sys
from pathlib import Path

import pytest

# Configure pytest-asyncio
pytest_plugins = ["pytest_asyncio"]

# Add packages to path for testing
packages_dir = Path(__file__).parent.parent / "packages"
sys.path.insert(0, str(packages_dir / "tasksync-core"))
sys.path.insert(0, str(packages_dir / "tasksync-mcp"))

from tasksync.api.errors import RemoteError  # noqa: E402
from tasksync.models.session import AuthSession  # noqa: E402
from tasksync.models.task import Task  # noqa: E402


class FakeTaskApi:
    """
    In-memory stand-in for the remote task service.

    - Issues monotonically increasing 24-hex-digit ids, like the real server
    - Records every call for assertions
    - Raises scripted failures (optionally only for one operation kind)
    - Can hold calls at a gate to simulate a slow network
    """

    def __init__(self):
        self.session = AuthSession()
        self.tasks: dict[str, dict] = {}
        self.calls: list[tuple] = []
        self.failures: list[dict] = []
        self.online = True
        self.gate: asyncio.Event | None = None
        self._next_id = 1

    def fail(self, exc: Exception, times: int = 1, kind: str | None = None) -> None:
        self.failures.append({"exc": exc, "times": times, "kind": kind})

    def calls_of(self, kind: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == kind]

    def seed(self, title: str, **fields) -> Task:
        task_id = f"{self._next_id:024x}"
        self._next_id += 1
        row = {
            "id": task_id,
            "title": title,
            "description": fields.get("description", ""),
            "completed": fields.get("completed", False),
            "status": fields.get("status", "pending"),
            "created_by": "user-1",
            "due_date": fields.get("due_date"),
            "order": fields.get("order", len(self.tasks) + 1),
        }
        self.tasks[task_id] = row
        return Task.from_dict(dict(row))

    async def _call(self, kind: str, *args) -> None:
        self.calls.append((kind, *args))
        if self.gate is not None:
            await self.gate.wait()
        for failure in self.failures:
            if failure["kind"] in (None, kind) and failure["times"] > 0:
                failure["times"] -= 1
                raise failure["exc"]

    async def create(self, title, description="", due_date=None) -> Task:
        await self._call("create", title)
        return self.seed(title, description=description, due_date=due_date)

    async def update(self, task_id, fields) -> Task:
        await self._call("update", task_id, dict(fields))
        if task_id not in self.tasks:
            raise RemoteError("Task not found", status=404)
        self.tasks[task_id].update(fields)
        return Task.from_dict(dict(self.tasks[task_id]))

    async def delete(self, task_id) -> dict:
        await self._call("delete", task_id)
        if task_id not in self.tasks:
            raise RemoteError("Task not found", status=404)
        del self.tasks[task_id]
        return {"message": "Task deleted successfully"}

    async def reorder(self, items) -> dict:
        await self._call("reorder", [dict(i) for i in items])
        if any(i["id"] not in self.tasks for i in items):
            raise RemoteError("Invalid tasks data", status=400)
        for item in items:
            self.tasks[item["id"]]["order"] = item["order"]
        return {"message": "Tasks reordered successfully"}

    async def list_mine(self, sort="manual") -> list[Task]:
        await self._call("list", sort)
        rows = list(self.tasks.values())
        if sort == "manual":
            rows.sort(key=lambda r: r["order"])
        else:
            rows.sort(key=lambda r: r["id"], reverse=sort == "desc")
        return [Task.from_dict(dict(r)) for r in rows]

    async def list_all(self, sort="manual") -> list[Task]:
        return await self.list_mine(sort)

    async def health(self) -> bool:
        return self.online

    async def close(self) -> None:
        pass


@pytest.fixture
def fake_api():
    """A fake remote task service."""
    return FakeTaskApi()


@pytest.fixture
def memory_cache():
    from tasksync.db.memory import MemoryCache

    return MemoryCache()


@pytest.fixture
def session():
    """A signed-in session."""
    return AuthSession(token="test-token", user={"_id": "user-1", "username": "alice", "role": "user"})


@pytest.fixture
async def store(memory_cache, fake_api, session):
    """A TaskStore wired to the fake service and an in-memory cache."""
    from tasksync.services.tasks import TaskStore

    store = TaskStore(cache=memory_cache, api=fake_api, session=session, retry_delay=10.0)
    await store.load()
    yield store
    await store.close()


@pytest.fixture
def sample_task_data():
    """Sample task payload as the server returns it."""
    return {
        "_id": "65a1f0c2e4b0a1b2c3d4e5f6",
        "title": "Test Task",
        "description": "A test task description",
        "completed": False,
        "createBy": "user-1",
        "dueDate": "2026-11-01T00:00:00.000Z",
        "order": 1,
    }
