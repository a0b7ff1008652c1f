"""
Domain models persisted in the local entity cache.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import ClassVar, Dict, List, Optional

from pydantic import BaseModel, Field, JsonValue

from liftsync.schemas import AreaForImprovement, Strength, User, Video, VideoAnalysis
from liftsync.schemas.common import UtcDateTime


class ExpiringUrl(BaseModel):
    """Signed URL that must be reissued by the server after ``expires_at``."""

    url: str
    expires_at: UtcDateTime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.expires_at <= now


class CachedEntity(BaseModel):
    """Base class for records keyed by a server-assigned integer identity."""

    kind: ClassVar[str] = ""

    server_id: int

    def sort_key(self) -> Optional[str]:
        """Secondary timestamp used for ordered queries."""
        return None


class CachedUser(CachedEntity):
    kind: ClassVar[str] = "user"

    app_account_token: Optional[str] = None
    username: str
    email: str
    first_name: str = ""
    last_name: str = ""
    birthday: Optional[date] = None
    height: Optional[float] = None
    weight: Optional[float] = None
    is_metric: bool = False
    workout_days_per_week: Optional[str] = None
    experience: Optional[str] = None
    gender: Optional[str] = None

    @classmethod
    def from_wire(cls, user: User) -> "CachedUser":
        birthday = None
        if user.birthday:
            try:
                birthday = date.fromisoformat(user.birthday)
            except ValueError:
                birthday = None
        return cls(
            server_id=user.id,
            app_account_token=str(user.app_account_token) if user.app_account_token else None,
            username=user.username,
            email=user.email,
            first_name=user.first_name or "",
            last_name=user.last_name or "",
            birthday=birthday,
            height=user.height,
            weight=user.weight,
            is_metric=user.is_metric,
            workout_days_per_week=user.workout_days_per_week,
            experience=user.experience,
            gender=user.gender,
        )


class CachedVideo(CachedEntity):
    kind: ClassVar[str] = "video"

    video_url: ExpiringUrl
    thumbnail_url: ExpiringUrl
    original_filename: str = ""
    file_size: int = 0
    duration: Optional[float] = None
    uploaded_at: Optional[UtcDateTime] = None

    def has_expired_urls(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.video_url.is_expired(now) or self.thumbnail_url.is_expired(now)

    def sort_key(self) -> Optional[str]:
        return self.uploaded_at.isoformat() if self.uploaded_at else None

    @classmethod
    def from_wire(cls, video: Video) -> "CachedVideo":
        return cls(
            server_id=video.id,
            video_url=ExpiringUrl(url=video.signed_video_url, expires_at=video.video_expires_at),
            thumbnail_url=ExpiringUrl(
                url=video.signed_thumbnail_url, expires_at=video.thumbnail_expires_at
            ),
            original_filename=video.original_filename,
            file_size=video.file_size,
            duration=video.duration,
            uploaded_at=video.uploaded_at,
        )


class CachedAnalysis(CachedEntity):
    """Analysis record; points at its video by identity only."""

    kind: ClassVar[str] = "analysis"

    video_server_id: int
    sport: str
    sport_category: str = ""
    lift_score: Optional[float] = None
    confidence: Optional[float] = None
    overall_analysis: str = ""
    icon: str = ""
    strengths: List[Strength] = Field(default_factory=list)
    areas_for_improvement: List[AreaForImprovement] = Field(default_factory=list)
    metrics_catalog: List[str] = Field(default_factory=list)
    analysis_data: Dict[str, JsonValue] = Field(default_factory=dict)
    created_at: UtcDateTime

    def sort_key(self) -> Optional[str]:
        return self.created_at.isoformat()

    @classmethod
    def from_wire(cls, analysis: VideoAnalysis) -> "CachedAnalysis":
        return cls(
            server_id=analysis.id,
            video_server_id=analysis.video.id,
            sport=analysis.sport,
            sport_category=analysis.sport_category,
            lift_score=analysis.lift_score,
            confidence=analysis.confidence,
            overall_analysis=analysis.overall_analysis,
            icon=analysis.icon,
            strengths=analysis.strengths,
            areas_for_improvement=analysis.areas_for_improvement,
            metrics_catalog=analysis.metrics_catalog,
            analysis_data=analysis.analysis_data,
            created_at=analysis.created_at,
        )


ENTITY_TYPES: Dict[str, type[CachedEntity]] = {
    model.kind: model for model in (CachedUser, CachedVideo, CachedAnalysis)
}


__all__ = [
    "CachedAnalysis",
    "CachedEntity",
    "CachedUser",
    "CachedVideo",
    "ENTITY_TYPES",
    "ExpiringUrl",
]
