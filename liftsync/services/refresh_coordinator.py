"""
Single-flight refresh of the access credential.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from typing import List, Optional

from pydantic import ValidationError

from liftsync.clients.http_transport import HttpTransport, TransportError
from liftsync.core.errors import NoRefreshToken, RefreshTokenExpired, TokenRefreshFailed
from liftsync.core.result import Failure, Result, Success
from liftsync.schemas import CredentialPair
from liftsync.services.session_events import SessionEventBus, SessionExpiryReason
from liftsync.services.token_coordinator import TokenCoordinator

logger = logging.getLogger(__name__)

RefreshOutcome = Result[CredentialPair]


class RefreshCoordinator:
    """Run at most one refresh call at a time and fan its outcome out to every waiter.

    State lives on the event loop that drives the client; callers arriving
    while a refresh is in flight are queued and resolved in arrival order
    with the same outcome.
    """

    def __init__(
        self,
        transport: HttpTransport,
        tokens: TokenCoordinator,
        events: SessionEventBus,
        *,
        refresh_path: str = "token/refresh/",
    ) -> None:
        self._transport = transport
        self._tokens = tokens
        self._events = events
        self._refresh_path = refresh_path
        self._is_refreshing = False
        self._pending: List[asyncio.Future] = []
        self._task: Optional[asyncio.Task] = None

    @property
    def is_refreshing(self) -> bool:
        return self._is_refreshing

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def refresh(self) -> RefreshOutcome:
        """Wait for the in-flight refresh, starting one if none is running."""
        waiter = asyncio.get_running_loop().create_future()
        self._pending.append(waiter)
        if not self._is_refreshing:
            self._is_refreshing = True
            # The refresh runs in its own task so a cancelled caller cannot
            # strand the callers queued behind it.
            self._task = asyncio.ensure_future(self._run())
        return await waiter

    async def _run(self) -> None:
        try:
            outcome = await self._perform_refresh()
        except Exception:  # pylint: disable=broad-except
            logger.exception("Unexpected error while refreshing credentials")
            outcome = Failure(TokenRefreshFailed())
        self._resolve(outcome)

    def _resolve(self, outcome: RefreshOutcome) -> None:
        waiters, self._pending = self._pending, []
        self._is_refreshing = False
        self._task = None
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(outcome)

    async def _perform_refresh(self) -> RefreshOutcome:
        refresh_token = self._tokens.get_refresh()
        if refresh_token is None:
            logger.warning("No refresh token available for refresh")
            return Failure(NoRefreshToken())

        logger.info("Attempting to refresh access token...")
        try:
            response = await self._transport.send(
                "POST", self._refresh_path, json={"refresh": refresh_token}
            )
        except TransportError as exc:
            logger.error("Token refresh failed before a response: %s", exc)
            return Failure(TokenRefreshFailed())

        if response.status_code == 401:
            logger.warning("Refresh token rejected; ending session")
            try:
                self._tokens.clear()
            except sqlite3.Error:
                logger.exception("Could not clear rejected credentials")
            self._events.emit_session_expired(SessionExpiryReason.REFRESH_TOKEN_EXPIRED)
            return Failure(RefreshTokenExpired())

        if not response.is_success:
            logger.error("Token refresh failed with status %s", response.status_code)
            return Failure(TokenRefreshFailed())

        try:
            pair = CredentialPair.model_validate_json(response.content)
        except ValidationError as exc:
            logger.error("Token refresh returned an unexpected payload: %s", exc)
            return Failure(TokenRefreshFailed())

        try:
            self._tokens.save(pair)
        except sqlite3.Error:
            logger.exception("Could not persist refreshed credentials")
            return Failure(TokenRefreshFailed())

        logger.info("Successfully refreshed access token")
        return Success(pair)


__all__ = ["RefreshCoordinator", "RefreshOutcome"]
