"""Broadcast channel for session expiry and logout."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class SessionExpiryReason(str, Enum):
    REFRESH_TOKEN_EXPIRED = "refresh_token_expired"


SessionListener = Callable[[Optional[SessionExpiryReason]], None]
LogoutListener = Callable[[], None]


class SessionEventBus:
    """Injectable, multi-subscriber event bus shared by the client process.

    The presentation layer subscribes to ``session_expired`` to send the user
    back to sign-in, and to ``logged_out`` to reset its own state.
    """

    def __init__(self) -> None:
        self._expiry_listeners: List[SessionListener] = []
        self._logout_listeners: List[LogoutListener] = []

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a session-expired listener; returns an unsubscribe callable."""
        return self._add(self._expiry_listeners, listener)

    def subscribe_logout(self, listener: LogoutListener) -> Callable[[], None]:
        return self._add(self._logout_listeners, listener)

    def emit_session_expired(
        self, reason: Optional[SessionExpiryReason] = SessionExpiryReason.REFRESH_TOKEN_EXPIRED
    ) -> None:
        logger.warning("Session expired (%s); notifying %d subscriber(s)",
                       reason.value if reason else "unspecified", len(self._expiry_listeners))
        for listener in list(self._expiry_listeners):
            try:
                listener(reason)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Session-expired listener %r failed", listener)

    def emit_logged_out(self) -> None:
        logger.info("Logged out; notifying %d subscriber(s)", len(self._logout_listeners))
        for listener in list(self._logout_listeners):
            try:
                listener()
            except Exception:  # pylint: disable=broad-except
                logger.exception("Logout listener %r failed", listener)

    @staticmethod
    def _add(listeners: list, listener) -> Callable[[], None]:
        listeners.append(listener)

        def unsubscribe() -> None:
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe


__all__ = ["SessionEventBus", "SessionExpiryReason"]
