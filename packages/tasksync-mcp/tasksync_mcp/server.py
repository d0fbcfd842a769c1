"""
Tasksync MCP Server

Offline-first task management exposed as MCP tools. Every mutation is
applied locally first and pushed to the task service when it is reachable.
"""

import asyncio
import json
import logging
from typing import Optional, List

from mcp.server.fastmcp import FastMCP

from tasksync.api.errors import RemoteError

# Initialize FastMCP server
mcp = FastMCP("tasksync")

logger = logging.getLogger(__name__)

# Global state
_store = None


async def ensure_initialized():
    """Ensure the task store is built and restored from the cache."""
    global _store
    if _store is not None:
        return _store

    from tasksync.config import load_config
    from tasksync.db import init_adapter
    from tasksync.services import TaskStore

    config = load_config()
    cache = await init_adapter(config)

    store = TaskStore.from_config(config, cache=cache)
    await store.load()
    store.start()

    _store = store
    logger.info("Tasksync initialized")
    return _store


async def shutdown():
    """Stop background work and release the cache."""
    global _store
    from tasksync.db import close_adapter

    if _store is not None:
        await _store.close()
        _store = None
    await close_adapter()


def _task_list(store) -> dict:
    return {
        "tasks": [t.to_dict() for t in store.tasks],
        "count": len(store.tasks),
        "sort": store.sort_mode,
        "offline": store.offline,
        "error": store.error,
        "pending_operations": len(store.log),
    }


# =============================================================================
# HEALTH / AUTH TOOLS
# =============================================================================

@mcp.tool()
async def tasksync_health() -> dict:
    """
    Report whether the task service is reachable and what is still queued.

    Returns:
        Reachability plus sync status
    """
    store = await ensure_initialized()
    online = await store.api.health()
    if online and store.offline:
        await store.engine.drain()

    return {"online": online, **store.status()}


@mcp.tool()
async def auth_login(email: str, password: str) -> dict:
    """
    Log in to the task service.

    Args:
        email: Account email
        password: Account password

    Returns:
        Session summary
    """
    store = await ensure_initialized()
    try:
        session = await store.auth.login(email, password)
    except RemoteError as e:
        return {"error": f"Login failed: {e.message}"}

    await store.fetch_tasks()
    return session.to_dict()


@mcp.tool()
async def auth_register(email: str, password: str, username: str) -> dict:
    """
    Create an account and log in with it.

    Args:
        email: Account email
        password: Account password
        username: Display name

    Returns:
        Session summary
    """
    store = await ensure_initialized()
    try:
        session = await store.auth.register(email, password, username)
    except RemoteError as e:
        return {"error": f"Registration failed: {e.message}"}

    return session.to_dict()


@mcp.tool()
async def auth_logout() -> dict:
    """Log out; cached tasks and queued changes of this user are discarded."""
    store = await ensure_initialized()
    await store.logout()
    return {"success": True}


@mcp.tool()
async def auth_update_profile(
    username: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> dict:
    """
    Update your profile.

    Args:
        username: New username (required)
        first_name: New first name
        last_name: New last name

    Returns:
        Updated user record
    """
    store = await ensure_initialized()
    try:
        user = await store.auth.update_profile(username, first_name, last_name)
    except ValueError as e:
        return {"error": str(e)}
    except RemoteError as e:
        return {"error": f"Profile update failed: {e.message}"}

    if user is None:
        return {"error": "Not logged in"}
    return {"user": user}


@mcp.tool()
async def auth_update_password(current_password: str, new_password: str) -> dict:
    """
    Change your password.

    Args:
        current_password: Current password
        new_password: New password
    """
    store = await ensure_initialized()
    try:
        changed = await store.auth.update_password(current_password, new_password)
    except RemoteError as e:
        return {"error": f"Password update failed: {e.message}"}

    if not changed:
        return {"error": "Not logged in"}
    return {"success": True}


# =============================================================================
# ADMIN TOOLS
# =============================================================================

@mcp.tool()
async def user_list() -> dict:
    """List all user accounts (admin only)."""
    store = await ensure_initialized()
    try:
        users = await store.auth.list_users()
    except PermissionError as e:
        return {"error": str(e)}
    except RemoteError as e:
        return {"error": f"Failed to fetch users: {e.message}"}
    return {"users": users, "count": len(users)}


@mcp.tool()
async def user_get(user_id: str) -> dict:
    """
    Show one user account (admin only).

    Args:
        user_id: User id
    """
    store = await ensure_initialized()
    try:
        user = await store.auth.get_user(user_id)
    except PermissionError as e:
        return {"error": str(e)}
    except RemoteError as e:
        return {"error": f"Failed to fetch user: {e.message}"}
    return {"user": user}


@mcp.tool()
async def user_delete(user_id: str) -> dict:
    """
    Delete a user account (admin only; not your own).

    Args:
        user_id: User id
    """
    store = await ensure_initialized()
    try:
        await store.auth.delete_user(user_id)
    except (PermissionError, ValueError) as e:
        return {"error": str(e)}
    except RemoteError as e:
        return {"error": f"Failed to delete user: {e.message}"}
    return {"success": True, "user_id": user_id}


# =============================================================================
# TASK TOOLS
# =============================================================================

@mcp.tool()
async def task_list() -> dict:
    """
    List your tasks.

    Fetches from the server when reachable; otherwise returns the cached list
    in the current sort order.

    Returns:
        Tasks with their sync status
    """
    store = await ensure_initialized()
    if not store.session.is_authenticated:
        return {"error": "Not logged in"}

    await store.fetch_tasks()
    return _task_list(store)


@mcp.tool()
async def task_list_all() -> dict:
    """
    List every user's tasks (admin only).

    Returns:
        Tasks with their sync status
    """
    store = await ensure_initialized()
    if not store.session.is_admin:
        return {"error": "Admin access required"}

    await store.fetch_all_tasks()
    return _task_list(store)


@mcp.tool()
async def task_create(
    title: str,
    description: str = "",
    due_date: Optional[str] = None,
) -> dict:
    """
    Create a new task.

    Args:
        title: Task title
        description: Task description
        due_date: Optional due date (ISO 8601)

    Returns:
        Created task (temp id and sync_status "pending" until the server confirms it)
    """
    store = await ensure_initialized()
    try:
        task = await store.create_task(title, description, due_date)
    except ValueError as e:
        return {"error": str(e)}

    if task is None:
        return {"error": "Not logged in"}
    return task.to_dict()


@mcp.tool()
async def task_update(
    task_id: str,
    title: Optional[str] = None,
    description: Optional[str] = None,
    completed: Optional[bool] = None,
    status: Optional[str] = None,
    due_date: Optional[str] = None,
) -> dict:
    """
    Update an existing task.

    Args:
        task_id: Task id (temp ids are fine)
        title: New title
        description: New description
        completed: New completion flag
        status: New status (pending, in_progress, completed)
        due_date: New due date

    Returns:
        Updated task details
    """
    store = await ensure_initialized()

    fields = {
        "title": title,
        "description": description,
        "completed": completed,
        "status": status,
        "due_date": due_date,
    }
    fields = {k: v for k, v in fields.items() if v is not None}

    try:
        task = await store.update_task(task_id, **fields)
    except ValueError as e:
        return {"error": str(e)}

    if task is None:
        return {"error": f"Task not found: {task_id}"}
    return task.to_dict()


@mcp.tool()
async def task_delete(task_id: str) -> dict:
    """
    Delete a task.

    Args:
        task_id: Task id

    Returns:
        Whether the delete was queued
    """
    store = await ensure_initialized()
    if not await store.delete_task(task_id):
        return {"error": f"Task not found: {task_id}"}
    return {"success": True, "task_id": task_id}


@mcp.tool()
async def task_reorder(task_ids: List[str]) -> dict:
    """
    Set the manual order of tasks.

    Args:
        task_ids: Task ids in the desired order; unlisted tasks follow.
            Switches the sort preference to manual.

    Returns:
        Tasks in their new order
    """
    store = await ensure_initialized()
    try:
        await store.reorder_tasks(task_ids)
    except ValueError as e:
        return {"error": str(e)}
    return _task_list(store)


@mcp.tool()
async def task_sort(mode: Optional[str] = None) -> dict:
    """
    Change the sort preference.

    Args:
        mode: manual, asc or desc. Omit to cycle manual -> desc -> asc.

    Returns:
        Tasks in the new order
    """
    store = await ensure_initialized()
    try:
        if mode is None:
            await store.toggle_sort_mode()
        else:
            await store.set_sort_mode(mode)
    except ValueError as e:
        return {"error": str(e)}
    return _task_list(store)


# =============================================================================
# SYNC TOOLS
# =============================================================================

@mcp.tool()
async def sync_now() -> dict:
    """Push queued changes to the server now."""
    store = await ensure_initialized()
    return await store.sync_now()


@mcp.tool()
async def sync_status() -> dict:
    """
    Show the sync state.

    Returns:
        Counts, flags and the queued operations
    """
    store = await ensure_initialized()
    return {**store.status(), "queue": store.log.to_list()}


# =============================================================================
# CLI ENTRY POINT
# =============================================================================

def main():
    """Main entry point for tasksync-mcp command."""
    import argparse

    parser = argparse.ArgumentParser(description="Tasksync MCP Server")
    parser.add_argument("command", nargs="?", default="serve", help="Command to run (serve, sync, status)")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.command in ("sync", "status"):
        async def do_sync():
            store = await ensure_initialized()
            try:
                if args.command == "sync":
                    await store.engine.drain()
                print(json.dumps(store.status(), indent=2))
            finally:
                await shutdown()

        asyncio.run(do_sync())
    else:
        # Start MCP server
        mcp.run()


if __name__ == "__main__":
    main()
