"""
Authenticated request execution with automatic refresh and a single replay.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Generic, Mapping, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from liftsync.clients.http_transport import HttpTransport, TransportError, TransportResponse
from liftsync.core.errors import ApiError, RequestFailed, TokenRefreshFailed, Unauthorized
from liftsync.core.result import Failure, Result, Success
from liftsync.schemas import APIErrorEnvelope
from liftsync.services.refresh_coordinator import RefreshCoordinator
from liftsync.services.token_coordinator import TokenCoordinator

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ApiRequest(Generic[T]):
    """Description of one API call.

    ``path`` is relative to the configured base URL. ``response_model`` is any
    type pydantic can validate; ``None`` means the body is ignored. File
    parts must be in-memory so the request can be replayed after a refresh.
    """

    path: str
    method: str = "GET"
    params: Optional[Mapping[str, Any]] = None
    json: Any = None
    data: Optional[Mapping[str, Any]] = None
    files: Optional[Mapping[str, Any]] = None
    headers: Optional[Mapping[str, str]] = None
    response_model: Any = None


@lru_cache(maxsize=None)
def _adapter(response_model: Any) -> TypeAdapter:
    return TypeAdapter(response_model)


def _failure_from_body(
    response: TransportResponse, underlying: Optional[BaseException]
) -> Failure:
    try:
        envelope = APIErrorEnvelope.model_validate_json(response.content)
    except ValidationError:
        return Failure(RequestFailed(underlying, status_code=response.status_code))
    detail = envelope.error
    return Failure(ApiError(detail.code, detail.message, detail.field))


def decode_response(response: TransportResponse, response_model: Any) -> Result[Any]:
    """Map an HTTP response onto a success value or a failure kind."""
    if not response.is_success:
        return _failure_from_body(response, None)
    if response_model is None:
        return Success(None)
    try:
        return Success(_adapter(response_model).validate_json(response.content))
    except ValidationError as exc:
        logger.debug("Response body did not match %r", response_model)
        return _failure_from_body(response, exc)


class AuthenticatedRequestExecutor:
    """Issue API calls carrying the current bearer credential."""

    def __init__(
        self,
        transport: HttpTransport,
        tokens: TokenCoordinator,
        refresher: RefreshCoordinator,
    ) -> None:
        self._transport = transport
        self._tokens = tokens
        self._refresher = refresher

    async def request(self, call: ApiRequest[T]) -> Result[T]:
        """Send ``call``; on 401 refresh once and replay it once."""
        return await self._execute(call, allow_refresh=True)

    async def send_public(self, call: ApiRequest[T]) -> Result[T]:
        """Send ``call`` without credentials (login, sign-up, verification)."""
        try:
            response = await self._send(call, call.headers)
        except TransportError as exc:
            return Failure(RequestFailed(exc.underlying))
        return decode_response(response, call.response_model)

    async def _execute(self, call: ApiRequest[T], *, allow_refresh: bool) -> Result[T]:
        access = self._tokens.get_access()
        if access is None:
            return Failure(Unauthorized())

        headers = dict(call.headers or {})
        headers["Authorization"] = f"Bearer {access}"
        try:
            response = await self._send(call, headers)
        except TransportError as exc:
            return Failure(RequestFailed(exc.underlying))

        if response.status_code == 401:
            if not allow_refresh:
                logger.warning(
                    "%s %s rejected again after a successful refresh",
                    call.method,
                    call.path,
                )
                return Failure(TokenRefreshFailed())
            logger.info("%s %s returned 401; refreshing credentials", call.method, call.path)
            outcome = await self._refresher.refresh()
            if not outcome.ok:
                return outcome
            return await self._execute(call, allow_refresh=False)

        return decode_response(response, call.response_model)

    async def _send(
        self, call: ApiRequest[Any], headers: Optional[Mapping[str, str]]
    ) -> TransportResponse:
        return await self._transport.send(
            call.method,
            call.path,
            headers=headers,
            params=call.params,
            json=call.json,
            data=call.data,
            files=call.files,
        )


__all__ = ["AuthenticatedRequestExecutor", "ApiRequest", "decode_response"]
