"""
Pydantic models for video analyses, delta sync and signed URL refresh.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, JsonValue, model_validator

from liftsync.schemas.common import UtcDateTime


class Strength(BaseModel):
    title: str
    analysis: str


class AreaForImprovement(BaseModel):
    title: str
    analysis: str
    actionable_tips: List[str] = Field(default_factory=list)
    corrective_drills: List[str] = Field(default_factory=list)


class Video(BaseModel):
    """Uploaded video with time-limited signed URLs."""

    id: int
    signed_video_url: str
    signed_thumbnail_url: str
    video_expires_at: UtcDateTime
    thumbnail_expires_at: UtcDateTime
    original_filename: str = ""
    file_size: int = 0
    duration: Optional[float] = None
    uploaded_at: Optional[UtcDateTime] = None


class VideoAnalysis(BaseModel):
    """Analysis record; references its video by embedding it on the wire."""

    id: int
    video: Video
    analysis_data: Dict[str, JsonValue] = Field(
        default_factory=dict,
        description="Raw JSON produced by the analysis pipeline.",
    )
    icon: str = ""
    sport: str
    sport_category: str = ""
    lift_score: Optional[float] = None
    confidence: Optional[float] = None
    overall_analysis: str = ""
    strengths: List[Strength] = Field(default_factory=list)
    areas_for_improvement: List[AreaForImprovement] = Field(default_factory=list)
    metrics_catalog: List[str] = Field(default_factory=list)
    created_at: UtcDateTime


class DeltaSyncResponse(BaseModel):
    """Entities changed since the requested cursor."""

    entities: List[VideoAnalysis] = Field(default_factory=list)
    sync_timestamp: str
    has_more: bool = False

    @model_validator(mode="before")
    @classmethod
    def _accept_analyses_key(cls, data: Any) -> Any:
        """Older servers name the list ``analyses``."""
        if isinstance(data, dict) and "entities" not in data and "analyses" in data:
            data = dict(data)
            data["entities"] = data.pop("analyses")
        return data


class RefreshedUrl(BaseModel):
    video_id: int
    signed_video_url: Optional[str] = None
    signed_thumbnail_url: Optional[str] = None
    video_expires_at: Optional[UtcDateTime] = None
    thumbnail_expires_at: Optional[UtcDateTime] = None
    error: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.error is None and None not in (
            self.signed_video_url,
            self.signed_thumbnail_url,
            self.video_expires_at,
            self.thumbnail_expires_at,
        )


class UrlRefreshResponse(BaseModel):
    refreshed_urls: List[RefreshedUrl] = Field(default_factory=list)
    message: str = ""


__all__ = [
    "AreaForImprovement",
    "DeltaSyncResponse",
    "RefreshedUrl",
    "Strength",
    "UrlRefreshResponse",
    "Video",
    "VideoAnalysis",
]
