"""
REST client for the task service.

Thin async wrappers around the auth and task endpoints. Transport failures
and error responses surface as RemoteError so callers can classify them.
"""

import logging
from typing import Any, Optional

import httpx

from tasksync.api.errors import RemoteError
from tasksync.models.session import AuthSession
from tasksync.models.task import SORT_MODES, Task, to_wire_fields

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3000/api"
DEFAULT_TIMEOUT = 15.0


class ApiClient:
    """
    Shared HTTP plumbing for the task service.

    Args:
        base_url: API root, e.g. http://localhost:3000/api
        session: Auth session supplying the bearer token
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[AuthSession] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or AuthSession()
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _headers(self, auth: bool) -> dict:
        headers = {}
        if auth and self.session.token:
            headers["Authorization"] = f"Bearer {self.session.token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[dict] = None,
        files: Optional[dict] = None,
        auth: bool = True,
    ) -> Any:
        """
        Send a request and decode the JSON body.

        Raises:
            RemoteError: On timeout, transport failure, error status or
                undecodable body
        """
        try:
            response = await self.client.request(
                method,
                path,
                json=json,
                params=params,
                files=files,
                headers=self._headers(auth),
            )
        except httpx.TimeoutException as e:
            raise RemoteError(f"{method} {path} timed out", timeout=True) from e
        except httpx.TransportError as e:
            raise RemoteError(f"{method} {path} failed: {e}", offline=True) from e

        if response.is_error:
            raise RemoteError(
                _error_message(response) or f"{method} {path} failed",
                status=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise RemoteError(f"{method} {path} returned invalid JSON: {e}") from e


def _error_message(response: httpx.Response) -> Optional[str]:
    """Extract the server's message from an error body, if any."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("message")
    return None


def _task_from(data: Any) -> Task:
    """Build a Task from a server body, which must carry the server id."""
    if not isinstance(data, dict) or not (data.get("_id") or data.get("id")):
        raise RemoteError(f"Task response without an id: {data!r}")
    return Task.from_dict(data)


def _check_sort(sort: str) -> str:
    if sort not in SORT_MODES:
        raise ValueError(f"Invalid sort mode. Must be one of: {', '.join(SORT_MODES)}")
    return sort


class TaskApi(ApiClient):
    """Task endpoints."""

    async def create(self, title: str, description: str = "", due_date: Optional[str] = None) -> Task:
        """Create a task; returns it with its server id."""
        body = {"title": title, "description": description}
        if due_date:
            body["dueDate"] = due_date
        data = await self.request("POST", "/task", json=body)
        return _task_from(data)

    async def update(self, task_id: str, fields: dict) -> Task:
        """Apply a partial update; returns the updated task."""
        data = await self.request("PUT", f"/task/{task_id}", json=to_wire_fields(fields))
        return _task_from(data)

    async def delete(self, task_id: str) -> dict:
        return await self.request("DELETE", f"/task/{task_id}")

    async def reorder(self, items: list[dict]) -> dict:
        """
        Persist a manual ordering.

        Args:
            items: [{"id": ..., "order": ...}, ...]
        """
        body = {"tasks": [{"_id": item["id"], "order": item["order"]} for item in items]}
        return await self.request("PUT", "/task/reorder", json=body)

    async def list_mine(self, sort: str = "manual") -> list[Task]:
        data = await self.request("GET", "/task", params={"sort": _check_sort(sort)})
        return [_task_from(row) for row in data]

    async def list_all(self, sort: str = "manual") -> list[Task]:
        """All users' tasks (admin only)."""
        data = await self.request("GET", "/task/all", params={"sort": _check_sort(sort)})
        return [_task_from(row) for row in data]

    async def health(self) -> bool:
        """Probe the service; True when it answers."""
        try:
            await self.request("GET", "/health", auth=False)
        except RemoteError as e:
            logger.debug(f"Health probe failed: {e}")
            return False
        return True


class AuthApi(ApiClient):
    """Auth endpoints."""

    async def register(self, email: str, password: str, username: str) -> dict:
        """Returns {"token": ..., "user": {...}}."""
        return await self.request(
            "POST",
            "/auth/register",
            json={"email": email, "password": password, "username": username},
            auth=False,
        )

    async def login(self, email: str, password: str) -> dict:
        """Returns {"token": ..., "user": {...}}."""
        return await self.request(
            "POST",
            "/auth/login",
            json={"email": email, "password": password},
            auth=False,
        )

    async def update_profile(
        self,
        username: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> dict:
        """
        Update the signed-in user's profile.

        Sent as multipart form data, like the avatar upload form. Returns
        {"user": {...}}.
        """
        form = {"username": username}
        if first_name is not None:
            form["firstName"] = first_name
        if last_name is not None:
            form["lastName"] = last_name
        files = {name: (None, value.encode()) for name, value in form.items()}
        return await self.request("PUT", "/auth/profile", files=files)

    async def update_password(self, current_password: str, new_password: str) -> dict:
        return await self.request(
            "PUT",
            "/auth/password",
            json={"currentPassword": current_password, "newPassword": new_password},
        )

    async def list_users(self) -> list[dict]:
        """All user accounts (admin only)."""
        data = await self.request("GET", "/users")
        return data.get("users", [])

    async def get_user(self, user_id: str) -> dict:
        data = await self.request("GET", f"/users/{user_id}")
        return data.get("user", {})

    async def delete_user(self, user_id: str) -> dict:
        return await self.request("DELETE", f"/users/{user_id}")
