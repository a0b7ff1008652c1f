try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest
from pydantic import ValidationError

from liftsync.core.config import ApiSettings, SyncSettings
from liftsync.dependencies import Container
from liftsync.main import create_client


def test_base_url_gains_trailing_slash() -> None:
    settings = ApiSettings(base_url="https://api.example.com/api")

    assert settings.base_url == "https://api.example.com/api/"
    assert settings.refresh_path == "token/refresh/"


def test_base_url_must_be_http() -> None:
    with pytest.raises(ValidationError):
        ApiSettings(base_url="ftp://api.example.com")


def test_env_aliases_are_read(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LIFTSYNC_HTTP_TIMEOUT", "5")
    monkeypatch.setenv("LIFTSYNC_SYNC_MAX_PAGES", "3")

    assert ApiSettings().timeout_seconds == 5.0
    assert SyncSettings().max_pages == 3


def test_container_requires_credential_secret(settings) -> None:
    settings.security.credential_secret = None
    container = Container(settings)

    with pytest.raises(RuntimeError):
        container.tokens


@pytest.mark.asyncio
async def test_create_client_wires_shared_instances(settings) -> None:
    client = create_client(settings)

    assert client.auth is client.auth
    assert client.repository is client.repository
    await client.aclose()
