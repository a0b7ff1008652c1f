"""
Sign-in, verification and logout flows.

Every flow that returns credentials persists them through the token
coordinator and caches the returned user before reporting success.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Mapping, Optional, TypeVar

from liftsync.clients.http_transport import HttpTransport, TransportError
from liftsync.core.errors import CacheError
from liftsync.core.result import Failure, Result, Success
from liftsync.schemas import (
    CredentialPair,
    LoginOrCheckpointResponse,
    SocialSignInResponse,
    User,
    VerifyAccountResponse,
)
from liftsync.services.request_executor import ApiRequest, AuthenticatedRequestExecutor
from liftsync.services.session_events import SessionEventBus
from liftsync.services.sync_repository import SyncRepository
from liftsync.services.token_coordinator import TokenCoordinator

logger = logging.getLogger(__name__)

R = TypeVar("R", LoginOrCheckpointResponse, VerifyAccountResponse, SocialSignInResponse)


class AuthService:
    LOGIN_PATH = "login/"
    VERIFY_PATH = "verify-account/"
    CREATE_ACCOUNT_PATH = "create-account/"
    SOCIAL_SIGN_IN_PATH = "social-signin/"
    LOGOUT_PATH = "logout/"

    def __init__(
        self,
        executor: AuthenticatedRequestExecutor,
        transport: HttpTransport,
        tokens: TokenCoordinator,
        repository: SyncRepository,
        events: SessionEventBus,
    ) -> None:
        self._executor = executor
        self._transport = transport
        self._tokens = tokens
        self._repository = repository
        self._events = events

    async def login(self, username: str, password: str) -> Result[LoginOrCheckpointResponse]:
        """Sign in with username and password.

        An unverified account comes back with the ``verify_code`` checkpoint and
        no tokens; the caller continues with :meth:`verify_account`.
        """
        result = await self._executor.send_public(
            ApiRequest(
                path=self.LOGIN_PATH,
                method="POST",
                json={"username": username, "password": password},
                response_model=LoginOrCheckpointResponse,
            )
        )
        return self._establish(result)

    async def verify_account(self, email: str, code: str) -> Result[VerifyAccountResponse]:
        result = await self._executor.send_public(
            ApiRequest(
                path=self.VERIFY_PATH,
                method="POST",
                json={"email": email, "code": code},
                response_model=VerifyAccountResponse,
            )
        )
        return self._establish(result)

    async def create_account(
        self, username: str, email: str, password1: str, password2: str
    ) -> Result[None]:
        """Register an account; the server emails a verification code."""
        return await self._executor.send_public(
            ApiRequest(
                path=self.CREATE_ACCOUNT_PATH,
                method="POST",
                json={
                    "username": username,
                    "email": email,
                    "password1": password1,
                    "password2": password2,
                },
            )
        )

    async def social_sign_in(
        self, provider: str, payload: Mapping[str, Any]
    ) -> Result[SocialSignInResponse]:
        """Exchange a provider identity token (Apple, Google) for a session.

        ``payload`` is whatever the provider SDK produced (``id_token`` and,
        where available, ``access_token`` or names); ``provider`` is added to it.
        """
        body = {**payload, "provider": provider}
        result = await self._executor.send_public(
            ApiRequest(
                path=self.SOCIAL_SIGN_IN_PATH,
                method="POST",
                json=body,
                response_model=SocialSignInResponse,
            )
        )
        return self._establish(result)

    async def logout(self) -> Result[None]:
        """End the session locally, telling the server on a best-effort basis.

        Local teardown happens regardless of the server call: credentials are
        cleared, the cache is wiped once any running sync finishes, and
        logout subscribers are notified.
        """
        access, refresh = self._tokens.get_pair_values()
        if refresh is not None:
            await self._revoke(access, refresh)

        token_error: Optional[sqlite3.Error] = None
        try:
            self._tokens.clear()
        except sqlite3.Error as exc:
            logger.critical("Failed to clear stored credentials on logout: %s", exc)
            token_error = exc
        cleared = await self._repository.clear_local_data()
        self._events.emit_logged_out()
        if token_error is not None:
            return Failure(CacheError(token_error))
        return cleared

    async def _revoke(self, access: Optional[str], refresh: str) -> None:
        headers = {"Authorization": f"Bearer {access}"} if access else None
        try:
            response = await self._transport.send(
                "POST", self.LOGOUT_PATH, headers=headers, json={"refresh": refresh}
            )
        except TransportError as exc:
            logger.warning("Server logout failed; continuing locally: %s", exc)
            return
        if not response.is_success:
            logger.warning("Server logout returned %s; continuing locally", response.status_code)

    def _establish(self, result: Result[R]) -> Result[R]:
        if not result.ok:
            return result
        response = result.value
        tokens: Optional[CredentialPair] = response.tokens
        user: User = response.user
        if tokens is not None:
            try:
                self._tokens.save(tokens)
            except sqlite3.Error as exc:
                logger.error("Could not persist credentials after sign-in: %s", exc)
                return Failure(CacheError(exc))
        cached = self._repository.upsert_user(user)
        if not cached.ok:
            logger.error("Signed in but could not cache user %s: %s", user.id, cached.error)
        return Success(response)


__all__ = ["AuthService"]
