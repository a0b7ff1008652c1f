"""
Composition root wiring the client core together.

Every object is built lazily from the settings handed in, once per
container, so tests and embedding applications can hold several
independent graphs side by side.
"""

from __future__ import annotations

from functools import cached_property
from typing import Optional

import httpx

from liftsync.clients import HttpTransport, SQLiteEntityCache, SQLiteStore
from liftsync.core.config import AppSettings
from liftsync.services import (
    AuthenticatedRequestExecutor,
    AuthService,
    CredentialStore,
    MembershipService,
    ProfileService,
    RefreshCoordinator,
    SessionEventBus,
    SyncRepository,
    TokenCoordinator,
)


class Container:
    def __init__(
        self,
        settings: AppSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        notifier: Optional[SessionEventBus] = None,
    ) -> None:
        self.settings = settings
        self._httpx_transport = transport
        self.notifier = notifier or SessionEventBus()

    @cached_property
    def credential_store(self) -> CredentialStore:
        secret = self.settings.security.credential_secret
        if not secret:
            raise RuntimeError(
                "LIFTSYNC_CREDENTIAL_SECRET must be set to store credentials."
            )
        return CredentialStore(
            SQLiteStore(self.settings.storage.credential_db_path), secret=secret
        )

    @cached_property
    def tokens(self) -> TokenCoordinator:
        return TokenCoordinator(self.credential_store)

    @cached_property
    def transport(self) -> HttpTransport:
        return HttpTransport(self.settings.api, transport=self._httpx_transport)

    @cached_property
    def refresher(self) -> RefreshCoordinator:
        return RefreshCoordinator(
            self.transport,
            self.tokens,
            self.notifier,
            refresh_path=self.settings.api.refresh_path,
        )

    @cached_property
    def executor(self) -> AuthenticatedRequestExecutor:
        return AuthenticatedRequestExecutor(self.transport, self.tokens, self.refresher)

    @cached_property
    def cache(self) -> SQLiteEntityCache:
        return SQLiteEntityCache(self.settings.storage.cache_db_path)

    @cached_property
    def repository(self) -> SyncRepository:
        return SyncRepository(
            self.executor, self.cache, max_pages=self.settings.sync.max_pages
        )

    @cached_property
    def auth(self) -> AuthService:
        return AuthService(
            self.executor, self.transport, self.tokens, self.repository, self.notifier
        )

    @cached_property
    def profile(self) -> ProfileService:
        return ProfileService(
            self.executor, self.repository, paths=self.settings.api.profile_paths
        )

    @cached_property
    def membership(self) -> MembershipService:
        return MembershipService(self.executor)

    async def aclose(self) -> None:
        """Close the HTTP client if it was ever created."""
        if "transport" in self.__dict__:
            await self.transport.aclose()


__all__ = ["Container"]
