"""Pytest configuration shared across the suite."""

from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import inspect
import json
from pathlib import Path
from typing import Any, Awaitable, Callable, Union

import httpx
import pytest

from liftsync.core.config import ApiSettings, AppSettings, SecuritySettings, StorageSettings
from liftsync.dependencies import Container
from liftsync.schemas import CredentialPair

BASE_URL = "https://api.test/api/"

Handler = Callable[[httpx.Request], Union[httpx.Response, Awaitable[httpx.Response]]]


class FakeBackend:
    """Route table for ``httpx.MockTransport`` that records every request.

    A route is either a fixed list of responses (the last one repeats) or a
    callable taking the request.
    """

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], Any] = {}
        self.requests: list[httpx.Request] = []

    def route(self, method: str, path: str, *responses: httpx.Response | Handler) -> None:
        if len(responses) == 1 and callable(responses[0]):
            self._routes[(method, path)] = responses[0]
        else:
            self._routes[(method, path)] = list(responses)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if request.method == method and self._relative(request) == path
        ]

    @staticmethod
    def _relative(request: httpx.Request) -> str:
        return request.url.path.removeprefix("/api/")

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self._routes.get((request.method, self._relative(request)))
        if route is None:
            return httpx.Response(404, json={"detail": "not found"})
        if callable(route):
            response = route(request)
            if inspect.isawaitable(response):
                response = await response
            return response
        return route.pop(0) if len(route) > 1 else route[0]


def bearer(request: httpx.Request) -> str | None:
    header = request.headers.get("Authorization")
    return header.removeprefix("Bearer ") if header else None


def body(request: httpx.Request) -> Any:
    return json.loads(request.content)


def video_payload(
    video_id: int,
    *,
    expires_at: str = "2099-01-01T00:00:00Z",
    uploaded_at: str = "2024-05-01T10:00:00Z",
    url_suffix: str = "v1",
) -> dict:
    return {
        "id": video_id,
        "signed_video_url": f"https://cdn.test/videos/{video_id}.mp4?sig={url_suffix}",
        "signed_thumbnail_url": f"https://cdn.test/thumbs/{video_id}.jpg?sig={url_suffix}",
        "video_expires_at": expires_at,
        "thumbnail_expires_at": expires_at,
        "original_filename": f"squat-{video_id}.mp4",
        "file_size": 1024 * video_id,
        "duration": 12.5,
        "uploaded_at": uploaded_at,
    }


def analysis_payload(
    analysis_id: int,
    *,
    video: dict | None = None,
    created_at: str = "2024-05-01T10:05:00Z",
    lift_score: float = 82.0,
) -> dict:
    return {
        "id": analysis_id,
        "video": video or video_payload(analysis_id * 10),
        "analysis_data": {"reps": 5, "bar_path": [0.1, 0.2], "notes": None},
        "icon": "figure.strengthtraining.traditional",
        "sport": "Back Squat",
        "sport_category": "powerlifting",
        "lift_score": lift_score,
        "confidence": 0.9,
        "overall_analysis": "Solid depth, slight knee cave.",
        "strengths": [{"title": "Depth", "analysis": "Consistently below parallel."}],
        "areas_for_improvement": [
            {
                "title": "Knee tracking",
                "analysis": "Knees drift inward on the ascent.",
                "actionable_tips": ["Push knees out"],
                "corrective_drills": ["Banded squats"],
            }
        ],
        "metrics_catalog": ["depth", "bar_path"],
        "created_at": created_at,
    }


def user_payload(user_id: int = 7, **overrides: Any) -> dict:
    payload = {
        "id": user_id,
        "app_account_token": "6f1c2b8e-3c1d-4d8f-9a55-0f5a3d9e2b11",
        "username": "lifter",
        "email": "lifter@example.com",
        "first_name": "Sam",
        "last_name": "Rivera",
        "birthday": "1994-03-12",
        "height": 180.0,
        "weight": 82.5,
        "is_metric": True,
        "workout_days_per_week": "3-4",
        "experience": "intermediate",
        "gender": "nonbinary",
    }
    payload.update(overrides)
    return payload


def delta_payload(entities: list[dict], sync_timestamp: str, *, has_more: bool = False) -> dict:
    return {"analyses": entities, "sync_timestamp": sync_timestamp, "has_more": has_more}


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    return AppSettings(
        api=ApiSettings(base_url=BASE_URL),
        security=SecuritySettings(credential_secret="test-secret"),
        storage=StorageSettings(
            credential_db_path=str(tmp_path / "credentials.sqlite3"),
            cache_db_path=str(tmp_path / "cache.sqlite3"),
        ),
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def container(settings: AppSettings, backend: FakeBackend) -> Container:
    return Container(settings, transport=httpx.MockTransport(backend.handler))


@pytest.fixture
def signed_in(container: Container) -> Container:
    """Container with a stored credential pair ``old-access``/``old-refresh``."""
    container.tokens.save(CredentialPair(access="old-access", refresh="old-refresh"))
    return container
