"""Thin asynchronous HTTP transport over ``httpx``."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import httpx

from liftsync.core.config import ApiSettings

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Raised when no HTTP response could be obtained (DNS, connect, timeout)."""

    def __init__(self, underlying: httpx.HTTPError) -> None:
        self.underlying = underlying
        super().__init__(str(underlying) or type(underlying).__name__)


@dataclass(frozen=True, slots=True)
class TransportResponse:
    status_code: int
    content: bytes

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


class HttpTransport:
    """Send requests relative to the configured API base URL."""

    def __init__(
        self,
        settings: ApiSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=httpx.Timeout(settings.timeout_seconds),
            transport=transport,
        )

    async def send(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        data: Optional[Mapping[str, Any]] = None,
        files: Optional[Mapping[str, Any]] = None,
    ) -> TransportResponse:
        try:
            response = await self._client.request(
                method,
                path.lstrip("/"),
                headers=headers,
                params=params,
                json=json,
                data=data,
                files=files,
            )
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed before a response: %s", method, path, exc)
            raise TransportError(exc) from exc
        return TransportResponse(status_code=response.status_code, content=response.content)

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["HttpTransport", "TransportError", "TransportResponse"]
