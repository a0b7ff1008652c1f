"""
Entrypoint for embedding the client core in an application.
"""

from __future__ import annotations

from typing import Optional

import httpx

from liftsync.core.config import AppSettings, get_settings
from liftsync.core.logging import configure_logging
from liftsync.dependencies import Container
from liftsync.services import SessionEventBus


def create_client(
    settings: Optional[AppSettings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    notifier: Optional[SessionEventBus] = None,
) -> Container:
    """Factory for a fully wired client."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    return Container(settings, transport=transport, notifier=notifier)


__all__ = ["create_client"]
