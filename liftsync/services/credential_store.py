"""Encrypted at-rest storage for the access and refresh credentials."""

from __future__ import annotations

import base64
import hashlib
import logging
import sqlite3
from typing import Iterable, Mapping, Optional

from cryptography.fernet import Fernet, InvalidToken

from liftsync.clients.sqlite_store import SQLiteStore

logger = logging.getLogger(__name__)

_SEPARATOR = "\x00"


class CredentialStore:
    """Durable key/value store whose values are encrypted before hitting disk.

    Each value is sealed together with the key it is stored under, so a
    ciphertext copied to another key does not decrypt there. Reads fail
    closed: storage or decryption problems are logged and reported as a
    missing value, which callers treat like "never logged in".
    """

    def __init__(self, store: SQLiteStore, *, secret: str) -> None:
        if not secret:
            raise ValueError("A credential secret is required to open the store.")
        self._store = store
        self._fernet = Fernet(base64.urlsafe_b64encode(hashlib.sha256(secret.encode()).digest()))

    def _seal(self, key: str, value: str) -> str:
        return self._fernet.encrypt(f"{key}{_SEPARATOR}{value}".encode()).decode("ascii")

    def _open(self, key: str, sealed: str) -> Optional[str]:
        try:
            bound_key, _, value = self._fernet.decrypt(sealed.encode("ascii")).decode().partition(
                _SEPARATOR
            )
        except (InvalidToken, UnicodeError):
            logger.error("Stored credential %r could not be decrypted", key)
            return None
        if bound_key != key:
            logger.error("Stored credential %r was sealed for %r; ignoring it", key, bound_key)
            return None
        return value

    def get(self, key: str) -> Optional[str]:
        return self.get_many([key]).get(key)

    def get_many(self, keys: Iterable[str]) -> dict[str, str]:
        try:
            sealed = self._store.get_many(keys)
        except sqlite3.Error:
            logger.exception("Credential store read failed; treating as absent")
            return {}
        values: dict[str, str] = {}
        for key, ciphertext in sealed.items():
            value = self._open(key, ciphertext)
            if value is not None:
                values[key] = value
        return values

    def put(self, key: str, value: str) -> None:
        self.put_many({key: value})

    def put_many(self, items: Mapping[str, str]) -> None:
        self._store.put_many({key: self._seal(key, value) for key, value in items.items()})

    def delete(self, key: str) -> None:
        self._store.delete_many([key])

    def delete_many(self, keys: Iterable[str]) -> None:
        self._store.delete_many(keys)


__all__ = ["CredentialStore"]
