try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import asyncio
from typing import Optional

import httpx
import pytest
from pydantic import BaseModel

from conftest import FakeBackend, bearer, body
from liftsync.core.errors import (
    ApiError,
    RefreshTokenExpired,
    RequestFailed,
    TokenRefreshFailed,
    Unauthorized,
)
from liftsync.dependencies import Container
from liftsync.services import ApiRequest, SessionExpiryReason


class Profile(BaseModel):
    id: int
    username: str


PROFILE = ApiRequest(path="profile/", response_model=Profile)

NEW_PAIR = {"access": "new-access", "refresh": "new-refresh"}


def _profile_for(token: str):
    def handler(request: httpx.Request) -> httpx.Response:
        if bearer(request) == token:
            return httpx.Response(200, json={"id": 1, "username": "lifter"})
        return httpx.Response(401, json={"detail": "expired"})

    return handler


@pytest.mark.asyncio
async def test_request_without_credentials_is_unauthorized(
    container: Container, backend: FakeBackend
) -> None:
    result = await container.executor.request(PROFILE)

    assert not result.ok
    assert isinstance(result.error, Unauthorized)
    assert result.error.requires_reauthentication
    assert backend.requests == []


@pytest.mark.asyncio
async def test_request_decodes_success(signed_in: Container, backend: FakeBackend) -> None:
    backend.route("GET", "profile/", _profile_for("old-access"))

    result = await signed_in.executor.request(PROFILE)

    assert result.ok
    assert result.value == Profile(id=1, username="lifter")
    assert bearer(backend.requests[0]) == "old-access"


@pytest.mark.asyncio
async def test_401_refreshes_and_replays_with_new_credential(
    signed_in: Container, backend: FakeBackend
) -> None:
    backend.route("GET", "profile/", _profile_for("new-access"))
    backend.route("POST", "token/refresh/", httpx.Response(200, json=NEW_PAIR))

    result = await signed_in.executor.request(PROFILE)

    assert result.ok
    assert [bearer(r) for r in backend.calls("GET", "profile/")] == ["old-access", "new-access"]
    refresh_calls = backend.calls("POST", "token/refresh/")
    assert len(refresh_calls) == 1
    assert body(refresh_calls[0]) == {"refresh": "old-refresh"}
    assert signed_in.tokens.get_pair_values() == ("new-access", "new-refresh")


@pytest.mark.asyncio
async def test_second_401_after_refresh_does_not_loop(
    signed_in: Container, backend: FakeBackend
) -> None:
    backend.route("GET", "profile/", httpx.Response(401, json={"detail": "nope"}))
    backend.route("POST", "token/refresh/", httpx.Response(200, json=NEW_PAIR))

    result = await signed_in.executor.request(PROFILE)

    assert not result.ok
    assert isinstance(result.error, TokenRefreshFailed)
    assert len(backend.calls("GET", "profile/")) == 2
    assert len(backend.calls("POST", "token/refresh/")) == 1


@pytest.mark.asyncio
async def test_concurrent_401s_share_one_refresh(
    signed_in: Container, backend: FakeBackend
) -> None:
    async def slow_refresh(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(0.05)
        return httpx.Response(200, json=NEW_PAIR)

    backend.route("GET", "profile/", _profile_for("new-access"))
    backend.route("POST", "token/refresh/", slow_refresh)

    results = await asyncio.gather(
        *(signed_in.executor.request(PROFILE) for _ in range(3))
    )

    assert all(result.ok for result in results)
    assert len(backend.calls("POST", "token/refresh/")) == 1
    assert not signed_in.refresher.is_refreshing
    assert signed_in.refresher.pending_count == 0


@pytest.mark.asyncio
async def test_rejected_refresh_token_ends_session(
    signed_in: Container, backend: FakeBackend
) -> None:
    reasons: list[Optional[SessionExpiryReason]] = []
    signed_in.notifier.subscribe(reasons.append)
    backend.route("GET", "profile/", httpx.Response(401, json={"detail": "expired"}))
    async def rejecting_refresh(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(0.05)
        return httpx.Response(401, json={"detail": "bad refresh"})

    backend.route("POST", "token/refresh/", rejecting_refresh)

    results = await asyncio.gather(
        signed_in.executor.request(PROFILE), signed_in.executor.request(PROFILE)
    )

    for result in results:
        assert isinstance(result.error, RefreshTokenExpired)
        assert isinstance(result.error, TokenRefreshFailed)
    assert reasons == [SessionExpiryReason.REFRESH_TOKEN_EXPIRED]
    assert signed_in.tokens.get_pair_values() == (None, None)

    followup = await signed_in.executor.request(PROFILE)
    assert isinstance(followup.error, Unauthorized)


@pytest.mark.asyncio
async def test_transient_refresh_failure_keeps_credentials(
    signed_in: Container, backend: FakeBackend
) -> None:
    backend.route("GET", "profile/", httpx.Response(401, json={"detail": "expired"}))
    backend.route("POST", "token/refresh/", httpx.Response(503, text="maintenance"))

    result = await signed_in.executor.request(PROFILE)

    assert type(result.error) is TokenRefreshFailed
    assert signed_in.tokens.get_pair_values() == ("old-access", "old-refresh")


@pytest.mark.asyncio
async def test_error_envelope_becomes_api_error(
    signed_in: Container, backend: FakeBackend
) -> None:
    backend.route(
        "GET",
        "profile/",
        httpx.Response(
            400,
            json={"error": {"message": "Username taken", "code": "duplicate", "field": "username"}},
        ),
    )

    result = await signed_in.executor.request(PROFILE)

    assert isinstance(result.error, ApiError)
    assert result.error.code == "duplicate"
    assert result.error.field == "username"
    assert result.error.message == "Username taken"


@pytest.mark.asyncio
async def test_unstructured_server_error_is_request_failed(
    signed_in: Container, backend: FakeBackend
) -> None:
    backend.route("GET", "profile/", httpx.Response(502, text="<html>Bad gateway</html>"))

    result = await signed_in.executor.request(PROFILE)

    assert isinstance(result.error, RequestFailed)
    assert result.error.status_code == 502


@pytest.mark.asyncio
async def test_unexpected_success_body_is_request_failed(
    signed_in: Container, backend: FakeBackend
) -> None:
    backend.route("GET", "profile/", httpx.Response(200, json={"unexpected": True}))

    result = await signed_in.executor.request(PROFILE)

    assert isinstance(result.error, RequestFailed)


@pytest.mark.asyncio
async def test_transport_error_is_request_failed(
    signed_in: Container, backend: FakeBackend
) -> None:
    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    backend.route("GET", "profile/", unreachable)

    result = await signed_in.executor.request(PROFILE)

    assert isinstance(result.error, RequestFailed)
    assert isinstance(result.error.underlying, httpx.ConnectError)


@pytest.mark.asyncio
async def test_unwrap_raises_carried_error(container: Container) -> None:
    result = await container.executor.request(PROFILE)

    with pytest.raises(Unauthorized):
        result.unwrap()
