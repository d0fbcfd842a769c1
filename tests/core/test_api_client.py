"""
Tests for the REST client and failure classification.

Uses httpx.MockTransport to avoid actual network calls.
"""

import json

import httpx
import pytest


def make_api(handler, token="test-token", cls=None):
    from tasksync.api.client import TaskApi
    from tasksync.models.session import AuthSession

    cls = cls or TaskApi
    return cls(
        "http://tasks.test/api",
        AuthSession(token=token, user={"_id": "user-1"}),
        transport=httpx.MockTransport(handler),
    )


class TestTaskApi:
    """Tests for TaskApi requests and responses."""

    @pytest.mark.asyncio
    async def test_create_sends_wire_payload(self, sample_task_data):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json=sample_task_data)

        api = make_api(handler)
        task = await api.create("Test Task", "desc", "2026-11-01")
        await api.close()

        assert seen["method"] == "POST"
        assert seen["path"] == "/api/task"
        assert seen["auth"] == "Bearer test-token"
        assert seen["body"] == {"title": "Test Task", "description": "desc", "dueDate": "2026-11-01"}
        assert task.id == sample_task_data["_id"]

    @pytest.mark.asyncio
    async def test_update_translates_fields(self, sample_task_data):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={**sample_task_data, "title": "Renamed"})

        api = make_api(handler)
        task = await api.update("abc", {"title": "Renamed", "due_date": None})
        await api.close()

        assert seen["path"] == "/api/task/abc"
        assert seen["body"] == {"title": "Renamed", "dueDate": None}
        assert task.title == "Renamed"

    @pytest.mark.asyncio
    async def test_reorder_body(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"message": "Tasks reordered successfully"})

        api = make_api(handler)
        await api.reorder([{"id": "a", "order": 1}, {"id": "b", "order": 2}])
        await api.close()

        assert seen["path"] == "/api/task/reorder"
        assert seen["body"] == {"tasks": [{"_id": "a", "order": 1}, {"_id": "b", "order": 2}]}

    @pytest.mark.asyncio
    async def test_list_passes_sort(self, sample_task_data):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["sort"] = request.url.params.get("sort")
            return httpx.Response(200, json=[sample_task_data])

        api = make_api(handler)
        tasks = await api.list_all("desc")
        await api.close()

        assert seen == {"path": "/api/task/all", "sort": "desc"}
        assert [t.id for t in tasks] == [sample_task_data["_id"]]

    @pytest.mark.asyncio
    async def test_list_rejects_unknown_sort(self):
        api = make_api(lambda request: httpx.Response(200, json=[]))

        with pytest.raises(ValueError):
            await api.list_mine("random")

        await api.close()


class TestRemoteErrors:
    """Tests for how failures surface."""

    @pytest.mark.asyncio
    async def test_error_status_and_message(self):
        from tasksync.api.errors import RemoteError

        api = make_api(lambda request: httpx.Response(404, json={"message": "Task not found"}))

        with pytest.raises(RemoteError) as exc:
            await api.delete("missing")
        await api.close()

        assert exc.value.status == 404
        assert exc.value.message == "Task not found"

    @pytest.mark.asyncio
    async def test_connect_error_is_offline(self):
        from tasksync.api.errors import RemoteError

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        api = make_api(handler)

        with pytest.raises(RemoteError) as exc:
            await api.list_mine()
        await api.close()

        assert exc.value.offline is True
        assert exc.value.status is None

    @pytest.mark.asyncio
    async def test_timeout_is_flagged(self):
        from tasksync.api.errors import RemoteError

        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        api = make_api(handler)

        with pytest.raises(RemoteError) as exc:
            await api.update("a", {"title": "x"})
        await api.close()

        assert exc.value.timeout is True

    @pytest.mark.asyncio
    async def test_task_body_without_id_is_rejected(self):
        """A task without a server id must never pass for a confirmed one."""
        from tasksync.api.errors import RemoteError, RetryableClientError, classify

        api = make_api(lambda request: httpx.Response(201, json={"title": "No id"}))

        with pytest.raises(RemoteError) as exc:
            await api.create("No id")
        await api.close()

        assert exc.value.status is None
        assert isinstance(classify(exc.value), RetryableClientError)

    @pytest.mark.asyncio
    async def test_health(self):
        api = make_api(lambda request: httpx.Response(200, json={"status": "ok"}))
        assert await api.health() is True
        await api.close()

        api = make_api(lambda request: httpx.Response(503, text="down"))
        assert await api.health() is False
        await api.close()


class TestAuthApi:
    @pytest.mark.asyncio
    async def test_login_sends_no_token(self):
        from tasksync.api.client import AuthApi

        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            seen["path"] = request.url.path
            return httpx.Response(200, json={"token": "t", "user": {"_id": "u1"}})

        api = make_api(handler, cls=AuthApi)
        result = await api.login("a@example.com", "pw")
        await api.close()

        assert seen == {"auth": None, "path": "/api/auth/login"}
        assert result["token"] == "t"

    @pytest.mark.asyncio
    async def test_update_profile_is_multipart(self):
        from tasksync.api.client import AuthApi

        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["type"] = request.headers.get("Content-Type")
            seen["body"] = request.content
            return httpx.Response(200, json={"user": {"_id": "user-1", "username": "alice2"}})

        api = make_api(handler, cls=AuthApi)
        result = await api.update_profile("alice2", last_name="Liddell")
        await api.close()

        assert seen["method"] == "PUT"
        assert seen["path"] == "/api/auth/profile"
        assert seen["type"].startswith("multipart/form-data")
        assert b'name="username"' in seen["body"]
        assert b"alice2" in seen["body"]
        assert b'name="lastName"' in seen["body"]
        assert b'name="firstName"' not in seen["body"]
        assert result["user"]["username"] == "alice2"

    @pytest.mark.asyncio
    async def test_update_password_body(self):
        from tasksync.api.client import AuthApi

        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"message": "Password updated successfully"})

        api = make_api(handler, cls=AuthApi)
        await api.update_password("old", "new")
        await api.close()

        assert seen == {"path": "/api/auth/password", "body": {"currentPassword": "old", "newPassword": "new"}}

    @pytest.mark.asyncio
    async def test_user_admin_routes(self):
        from tasksync.api.client import AuthApi

        seen = []

        def handler(request):
            seen.append((request.method, request.url.path))
            if request.method == "DELETE":
                return httpx.Response(200, json={"message": "User deleted successfully"})
            if request.url.path.endswith("/users"):
                return httpx.Response(200, json={"users": [{"_id": "u1"}, {"_id": "u2"}]})
            return httpx.Response(200, json={"user": {"_id": "u2"}})

        api = make_api(handler, cls=AuthApi)
        users = await api.list_users()
        user = await api.get_user("u2")
        await api.delete_user("u2")
        await api.close()

        assert [u["_id"] for u in users] == ["u1", "u2"]
        assert user == {"_id": "u2"}
        assert seen == [
            ("GET", "/api/users"),
            ("GET", "/api/users/u2"),
            ("DELETE", "/api/users/u2"),
        ]


class TestClassify:
    """Tests for classify()."""

    @pytest.mark.parametrize("status", [400, 404])
    def test_permanent(self, status):
        from tasksync.api.errors import PermanentError, RemoteError, classify

        assert isinstance(classify(RemoteError("x", status=status)), PermanentError)

    @pytest.mark.parametrize(
        "kwargs",
        [{"status": 500}, {"status": 503}, {"offline": True}, {"timeout": True}],
    )
    def test_transient(self, kwargs):
        from tasksync.api.errors import RemoteError, TransientInfraError, classify

        assert isinstance(classify(RemoteError("x", **kwargs)), TransientInfraError)

    @pytest.mark.parametrize(
        "exc_factory",
        [
            lambda RemoteError: RemoteError("conflict", status=409),
            lambda RemoteError: RemoteError("unauthorized", status=401),
            lambda RemoteError: RemoteError("bad json"),
            lambda RemoteError: KeyError("_id"),
        ],
    )
    def test_soft(self, exc_factory):
        from tasksync.api.errors import RemoteError, RetryableClientError, classify

        failure = classify(exc_factory(RemoteError))

        assert isinstance(failure, RetryableClientError)
        assert failure.cause is not None
