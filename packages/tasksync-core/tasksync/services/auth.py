"""
Auth Service for Tasksync.

Signs the user in or out and mirrors the session to the local cache so a
restart keeps the user logged in (and the pending log drainable).
"""

import logging
from typing import Optional

from tasksync.api.client import AuthApi
from tasksync.db.interface import PENDING_OPS_KEY, TASKS_KEY, TOKEN_KEY, USER_KEY, CacheAdapter
from tasksync.models.session import AuthSession

logger = logging.getLogger(__name__)


class AuthService:
    """
    Service for the signed-in session.

    Args:
        api: Auth endpoints client
        cache: Local cache for the token and user record
        session: Shared session object (the task client reads its token)
    """

    def __init__(self, api: AuthApi, cache: CacheAdapter, session: AuthSession):
        self.api = api
        self._cache = cache
        self.session = session

    async def load(self) -> AuthSession:
        """Restore the session saved by a previous run, if any."""
        token = await self._cache.get(TOKEN_KEY)
        if token:
            self.session.set(token, await self._cache.get(USER_KEY, {}))
            logger.debug(f"Restored session for user {self.session.user_id}")
        return self.session

    async def _store(self, response: dict) -> AuthSession:
        token = response.get("token")
        if not token:
            raise ValueError("Auth response did not include a token")

        self.session.set(token, response.get("user"))
        await self._cache.set(TOKEN_KEY, token)
        await self._cache.set(USER_KEY, self.session.user)
        return self.session

    async def login(self, email: str, password: str) -> AuthSession:
        """
        Log in and persist the session.

        Raises:
            RemoteError: If the server rejects the credentials or is unreachable
        """
        session = await self._store(await self.api.login(email, password))
        logger.info(f"Logged in as {session.user.get('username') or email}")
        return session

    async def register(self, email: str, password: str, username: str) -> AuthSession:
        """Create an account and sign in with it."""
        session = await self._store(await self.api.register(email, password, username))
        logger.info(f"Registered {username}")
        return session

    async def logout(self) -> None:
        """Clear the session along with the cached tasks and queued operations."""
        self.session.clear()
        for key in (TOKEN_KEY, USER_KEY, TASKS_KEY, PENDING_OPS_KEY):
            await self._cache.delete(key)
        logger.info("Logged out")

    # ----------------------------------------------------------------- profile

    async def update_profile(
        self,
        username: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> Optional[dict]:
        """
        Update the signed-in user's profile and the cached user record.

        Returns:
            The updated user, or None when nobody is signed in

        Raises:
            ValueError: If username is empty
            RemoteError: If the server rejects the change or is unreachable
        """
        if not self.session.is_authenticated:
            return None
        if not username:
            raise ValueError("Username is required")

        response = await self.api.update_profile(username, first_name, last_name)
        updated = response.get("user") or {}

        user = dict(self.session.user)
        for key in ("username", "avatar", "firstName", "lastName"):
            if key in updated:
                user[key] = updated[key]
        self.session.set(self.session.token, user)
        await self._cache.set(USER_KEY, user)

        logger.info(f"Updated profile for {username}")
        return user

    async def update_password(self, current_password: str, new_password: str) -> bool:
        """
        Change the signed-in user's password.

        Returns:
            True once the server accepts it, False when nobody is signed in
        """
        if not self.session.is_authenticated:
            return False
        await self.api.update_password(current_password, new_password)
        logger.info("Password updated")
        return True

    # ------------------------------------------------------------------- admin

    def _require_admin(self) -> None:
        if not self.session.is_admin:
            raise PermissionError("Admin access required")

    async def list_users(self) -> list[dict]:
        """All user accounts (admin only)."""
        self._require_admin()
        return await self.api.list_users()

    async def get_user(self, user_id: str) -> dict:
        """One user account (admin only)."""
        self._require_admin()
        return await self.api.get_user(user_id)

    async def delete_user(self, user_id: str) -> None:
        """
        Delete a user account (admin only).

        Raises:
            ValueError: If user_id is the signed-in admin
        """
        self._require_admin()
        if user_id == self.session.user_id:
            raise ValueError("Cannot delete your own account")
        await self.api.delete_user(user_id)
        logger.info(f"Deleted user {user_id}")
