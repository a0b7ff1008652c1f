"""Onboarding and profile updates for the signed-in user."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Mapping, Optional

from liftsync.core.result import Result, Success
from liftsync.models.cache import CachedUser
from liftsync.services.request_executor import ApiRequest, AuthenticatedRequestExecutor
from liftsync.services.sync_repository import SyncRepository

logger = logging.getLogger(__name__)


class ProfileService:
    """Server-confirmed profile writes mirrored into the local cache.

    The cache is only touched after the server accepts a change. A local
    write failing at that point is logged and does not turn the call into a
    failure, since the next sign-in returns the server copy anyway.
    """

    # Only set-name/ and set-birthday/ are confirmed server routes; the rest
    # follow the same naming and can be overridden per deployment.
    DEFAULT_PATHS: Mapping[str, str] = {
        "name": "set-name/",
        "birthday": "set-birthday/",
        "experience": "set-experience/",
        "workout_days": "set-workout-days/",
        "gender": "set-gender/",
        "body_metrics": "set-body-metrics/",
    }

    def __init__(
        self,
        executor: AuthenticatedRequestExecutor,
        repository: SyncRepository,
        *,
        paths: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._executor = executor
        self._repository = repository
        unknown = set(paths or {}) - set(self.DEFAULT_PATHS)
        if unknown:
            raise ValueError(f"Unknown profile endpoints: {sorted(unknown)}")
        self._paths = {**self.DEFAULT_PATHS, **(paths or {})}

    async def set_name(self, first_name: str, last_name: str) -> Result[Optional[CachedUser]]:
        return await self._update(
            self._paths["name"],
            {"firstName": first_name, "lastName": last_name},
            first_name=first_name,
            last_name=last_name,
        )

    async def set_birthday(self, birthday: date) -> Result[Optional[CachedUser]]:
        return await self._update(
            self._paths["birthday"],
            {"birthday": birthday.strftime("%Y-%m-%d")},
            birthday=birthday,
        )

    async def set_experience(self, experience: str) -> Result[Optional[CachedUser]]:
        return await self._update(
            self._paths["experience"], {"experience": experience}, experience=experience
        )

    async def set_workout_days_per_week(self, days: str) -> Result[Optional[CachedUser]]:
        return await self._update(
            self._paths["workout_days"],
            {"workout_days_per_week": days},
            workout_days_per_week=days,
        )

    async def set_gender(self, gender: str) -> Result[Optional[CachedUser]]:
        return await self._update(self._paths["gender"], {"gender": gender}, gender=gender)

    async def set_body_metrics(
        self, *, height: float, weight: float, is_metric: bool
    ) -> Result[Optional[CachedUser]]:
        return await self._update(
            self._paths["body_metrics"],
            {"height": height, "weight": weight, "is_metric": is_metric},
            height=height,
            weight=weight,
            is_metric=is_metric,
        )

    async def _update(
        self, path: str, body: Dict[str, Any], **fields: Any
    ) -> Result[Optional[CachedUser]]:
        result = await self._executor.request(ApiRequest(path=path, method="POST", json=body))
        if not result.ok:
            return result
        local = self._repository.update_current_user(**fields)
        if not local.ok:
            logger.error("Server accepted %s but the local profile was not updated: %s",
                         path, local.error)
            return Success(None)
        return local


__all__ = ["ProfileService"]
