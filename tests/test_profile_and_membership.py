try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from datetime import date

import httpx
import pytest

from conftest import FakeBackend, body, user_payload
from liftsync.core.errors import ApiError
from liftsync.dependencies import Container
from liftsync.schemas import AttachPayload, User
from liftsync.services import ProfileService


@pytest.fixture
def onboarded(signed_in: Container) -> Container:
    signed_in.repository.upsert_user(User.model_validate(user_payload()))
    return signed_in


@pytest.mark.asyncio
async def test_set_name_updates_cache_after_server_confirms(
    onboarded: Container, backend: FakeBackend
) -> None:
    backend.route("POST", "set-name/", httpx.Response(200, json={"detail": "ok"}))

    result = await onboarded.profile.set_name("Alex", "Kim")

    assert result.ok
    assert body(backend.requests[0]) == {"firstName": "Alex", "lastName": "Kim"}
    user = onboarded.repository.current_user()
    assert (user.first_name, user.last_name) == ("Alex", "Kim")
    assert user.email == "lifter@example.com"


@pytest.mark.asyncio
async def test_rejected_profile_write_leaves_cache_untouched(
    onboarded: Container, backend: FakeBackend
) -> None:
    backend.route(
        "POST",
        "set-name/",
        httpx.Response(400, json={"error": {"message": "Too long", "code": "invalid", "field": "firstName"}}),
    )

    result = await onboarded.profile.set_name("A" * 300, "Kim")

    assert isinstance(result.error, ApiError)
    assert onboarded.repository.current_user().first_name == "Sam"


@pytest.mark.asyncio
async def test_set_birthday_sends_iso_date(onboarded: Container, backend: FakeBackend) -> None:
    backend.route("POST", "set-birthday/", httpx.Response(200, json={}))

    await onboarded.profile.set_birthday(date(1990, 7, 4))

    assert body(backend.requests[0]) == {"birthday": "1990-07-04"}
    assert onboarded.repository.current_user().birthday == date(1990, 7, 4)


@pytest.mark.asyncio
async def test_set_body_metrics(onboarded: Container, backend: FakeBackend) -> None:
    backend.route("POST", "set-body-metrics/", httpx.Response(200, json={}))

    await onboarded.profile.set_body_metrics(height=70.0, weight=185.0, is_metric=False)

    user = onboarded.repository.current_user()
    assert (user.height, user.weight, user.is_metric) == (70.0, 185.0, False)


@pytest.mark.asyncio
async def test_profile_paths_can_be_overridden_from_settings(
    onboarded: Container, backend: FakeBackend
) -> None:
    onboarded.settings.api.profile_paths = {"gender": "profile/gender/"}
    backend.route("POST", "profile/gender/", httpx.Response(200, json={}))

    result = await onboarded.profile.set_gender("female")

    assert result.ok
    assert backend.requests[0].url.path.endswith("/profile/gender/")
    assert onboarded.repository.current_user().gender == "female"


def test_unknown_profile_path_override_is_rejected(onboarded: Container) -> None:
    with pytest.raises(ValueError):
        ProfileService(onboarded.executor, onboarded.repository, paths={"avatar": "set-avatar/"})


@pytest.mark.asyncio
async def test_attach_subscription_sends_empty_token_when_missing(
    signed_in: Container, backend: FakeBackend
) -> None:
    backend.route(
        "POST",
        "membership/attach-subscription/",
        httpx.Response(
            200,
            json={
                "success": True,
                "message": "Membership activated",
                "membership": {
                    "status": "active",
                    "days_remaining": 30,
                    "monthly_allowance": 120.0,
                    "minutes_remaining": 120.0,
                },
            },
        ),
    )

    result = await signed_in.membership.attach_subscription(
        AttachPayload(product_id="pro.monthly", jws="header.payload.sig")
    )

    assert result.value.membership.status == "active"
    assert body(backend.requests[0]) == {
        "product_id": "pro.monthly",
        "jws": "header.payload.sig",
        "app_account_token": "",
    }


@pytest.mark.asyncio
async def test_membership_status_and_allowance(
    signed_in: Container, backend: FakeBackend
) -> None:
    backend.route(
        "GET",
        "membership/status/",
        httpx.Response(
            200,
            json={
                "is_member": False,
                "membership": None,
                "monthly_usage": {"minutes_used": 3.0, "minutes_allowed": 5.0, "minutes_remaining": 2.0},
            },
        ),
    )
    backend.route(
        "GET",
        "membership/analysis-allowance/",
        httpx.Response(200, json={"can_analyze": False, "reason": "limit", "upgrade_required": True}),
    )

    status = await signed_in.membership.membership_status()
    allowance = await signed_in.membership.check_analysis_allowance()

    assert status.value.monthly_usage.minutes_remaining == 2.0
    assert allowance.value.upgrade_required is True


@pytest.mark.asyncio
async def test_restore_purchase(signed_in: Container, backend: FakeBackend) -> None:
    backend.route(
        "POST",
        "membership/restore-purchase/",
        httpx.Response(200, json={"success": False, "message": "No purchase found"}),
    )

    result = await signed_in.membership.restore_purchase()

    assert result.ok
    assert not result.value.success
