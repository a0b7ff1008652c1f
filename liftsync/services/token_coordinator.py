"""
Owner of the credential pair lifecycle.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from liftsync.schemas import CredentialPair
from liftsync.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)


class TokenCoordinator:
    """Read, persist and clear the access/refresh pair.

    The pair is always written and removed as a unit; nothing is cached in
    memory so the store remains the single source of truth.
    """

    ACCESS_KEY = "access_token"
    REFRESH_KEY = "refresh_token"

    def __init__(self, store: CredentialStore) -> None:
        self._store = store
        self._lock = threading.RLock()

    def get_access(self) -> Optional[str]:
        return self.get_pair_values()[0]

    def get_refresh(self) -> Optional[str]:
        return self.get_pair_values()[1]

    def get_pair_values(self) -> tuple[Optional[str], Optional[str]]:
        """Both credentials from one read; a half-present pair reads as absent."""
        with self._lock:
            values = self._store.get_many([self.ACCESS_KEY, self.REFRESH_KEY])
        access = values.get(self.ACCESS_KEY)
        refresh = values.get(self.REFRESH_KEY)
        if (access is None) != (refresh is None):
            logger.warning("Found a partial credential pair; treating as signed out")
            return None, None
        return access, refresh

    def has_credentials(self) -> bool:
        return self.get_access() is not None

    def save(self, pair: CredentialPair) -> None:
        with self._lock:
            self._store.put_many(
                {self.REFRESH_KEY: pair.refresh, self.ACCESS_KEY: pair.access}
            )
        logger.debug("Persisted new credential pair")

    def clear(self) -> None:
        with self._lock:
            self._store.delete_many([self.ACCESS_KEY, self.REFRESH_KEY])
        logger.info("Cleared stored credentials")


__all__ = ["TokenCoordinator"]
