"""
Local-first synchronization of analyses and videos against the backend.

The repository is the only writer of the local entity cache. Server data is
committed in whole batches; the sync cursor moves only after a batch is
durably stored, so a failed write means the same batch is fetched again.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from liftsync.clients.entity_cache import CacheChange, CacheListener, SQLiteEntityCache
from liftsync.core.errors import ApiError, CacheError, RequestFailed
from liftsync.core.result import Failure, Result, Success
from liftsync.models.cache import CachedAnalysis, CachedUser, CachedVideo, ExpiringUrl
from liftsync.schemas import DeltaSyncResponse, UrlRefreshResponse, User, VideoAnalysis
from liftsync.schemas.common import as_utc
from liftsync.services.request_executor import ApiRequest, AuthenticatedRequestExecutor

logger = logging.getLogger(__name__)

_CACHE_ERRORS = (sqlite3.Error, ValueError)


@dataclass(slots=True)
class ReconcileOutcome:
    """Analyses added or changed by a reconcile, plus the resulting cursor."""

    analyses: List[CachedAnalysis] = field(default_factory=list)
    cursor: Optional[str] = None
    has_more: bool = False
    pages: int = 1


def _parse_cursor(value: str) -> Optional[datetime]:
    try:
        return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None


def cursor_precedes(candidate: str, current: str) -> bool:
    """True when ``candidate`` is strictly older than ``current``."""
    candidate_dt, current_dt = _parse_cursor(candidate), _parse_cursor(current)
    if candidate_dt is not None and current_dt is not None:
        return candidate_dt < current_dt
    return candidate < current


class SyncRepository:
    """Reconcile server entities into the local cache and keep signed URLs fresh."""

    DELTA_PATH = "user-analyses/"
    REFRESH_URLS_PATH = "refresh-urls/"
    UPLOAD_PATH = "upload-video/"
    ANALYSIS_PATH = "analyses/{analysis_id}/"

    CURSOR_KEY = "analyses_sync_timestamp"
    CURRENT_USER_KEY = "current_user_id"

    def __init__(
        self,
        executor: AuthenticatedRequestExecutor,
        cache: SQLiteEntityCache,
        *,
        max_pages: int = 20,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._executor = executor
        self._cache = cache
        self._max_pages = max_pages
        self._clock = clock
        self._sync_guard = asyncio.Lock()
        # Bumped by every wipe; writes begun under an older value are dropped.
        self._generation = 0

    @property
    def is_syncing(self) -> bool:
        return self._sync_guard.locked()

    def current_cursor(self) -> Optional[str]:
        return self._cache.get_state(self.CURSOR_KEY)

    def subscribe(self, listener: CacheListener) -> Callable[[], None]:
        return self._cache.subscribe(listener)

    # Delta sync

    async def reconcile(self, since_cursor: Optional[str]) -> Result[ReconcileOutcome]:
        """Fetch entities newer than ``since_cursor`` (all when None) and commit them."""
        async with self._sync_guard:
            return await self._reconcile(since_cursor)

    async def sync(self) -> Result[ReconcileOutcome]:
        """Reconcile from the stored cursor, following ``has_more`` pages."""
        async with self._sync_guard:
            cursor = self.current_cursor()
            combined = ReconcileOutcome(cursor=cursor, pages=0)
            while True:
                result = await self._reconcile(cursor)
                if not result.ok:
                    return result
                page = result.value
                combined.analyses.extend(page.analyses)
                combined.pages += 1
                combined.has_more = page.has_more
                advanced = page.cursor != cursor
                combined.cursor = cursor = page.cursor
                if not page.has_more:
                    break
                if not advanced:
                    logger.warning("Server reported more pages without moving the cursor")
                    break
                if combined.pages >= self._max_pages:
                    logger.info("Stopping sync after %d pages", combined.pages)
                    break
            return Success(combined)

    async def _reconcile(self, since_cursor: Optional[str]) -> Result[ReconcileOutcome]:
        params = {"last_sync": since_cursor} if since_cursor else None
        result = await self._executor.request(
            ApiRequest(
                path=self.DELTA_PATH,
                params=params,
                response_model=DeltaSyncResponse,
            )
        )
        if not result.ok:
            return result
        delta: DeltaSyncResponse = result.value

        try:
            changed = self._commit_analyses(delta.entities)
        except _CACHE_ERRORS as exc:
            logger.error("Reconcile batch of %d failed; cursor left at %s: %s",
                         len(delta.entities), since_cursor, exc)
            return Failure(CacheError(exc))

        try:
            cursor = self._advance_cursor(delta.sync_timestamp)
        except _CACHE_ERRORS as exc:
            logger.error("Batch committed but cursor could not be stored: %s", exc)
            return Failure(CacheError(exc))

        logger.info(
            "Reconciled %d analyses (%d changed); cursor %s -> %s",
            len(delta.entities),
            len(changed),
            since_cursor,
            cursor,
        )
        return Success(
            ReconcileOutcome(analyses=changed, cursor=cursor, has_more=delta.has_more)
        )

    def _commit_analyses(self, analyses: Iterable[VideoAnalysis]) -> List[CachedAnalysis]:
        """Upsert analyses and their videos in one transaction."""
        candidates: Dict[int, CachedAnalysis] = {}
        with self._cache.transaction() as txn:
            for analysis in analyses:
                txn.upsert(CachedVideo.from_wire(analysis.video))
                cached = CachedAnalysis.from_wire(analysis)
                txn.upsert(cached)
                candidates[cached.server_id] = cached
            change = txn.change
        return self._changed_analyses(candidates, change)

    @staticmethod
    def _changed_analyses(
        candidates: Dict[int, CachedAnalysis], change: CacheChange
    ) -> List[CachedAnalysis]:
        analysis_ids = set(change.changed_ids(CachedAnalysis.kind))
        video_ids = set(change.changed_ids(CachedVideo.kind))
        return [
            analysis
            for analysis in candidates.values()
            if analysis.server_id in analysis_ids or analysis.video_server_id in video_ids
        ]

    def _advance_cursor(self, new_cursor: str) -> str:
        current = self.current_cursor()
        if current is not None and cursor_precedes(new_cursor, current):
            logger.warning(
                "Server sync timestamp %s precedes stored %s; keeping stored value",
                new_cursor,
                current,
            )
            return current
        if new_cursor != current:
            with self._cache.transaction() as txn:
                txn.set_state(self.CURSOR_KEY, new_cursor)
        return new_cursor

    # Expiring URLs

    async def refresh_if_expired(
        self, video_ids: Iterable[int], *, now: Optional[datetime] = None
    ) -> Result[List[int]]:
        """Reissue signed URLs for the given videos whose URLs have expired.

        Returns the identities that received new URLs. Nothing is sent when no
        listed video is expired.
        """
        now = now or self._clock()
        requested = list(dict.fromkeys(video_ids))
        cached = self._cache.get_many(CachedVideo, requested)
        expired = [
            video_id
            for video_id in requested
            if video_id in cached and cached[video_id].has_expired_urls(now)
        ]
        if not expired:
            return Success([])

        logger.info("Refreshing signed URLs for %d video(s)", len(expired))
        result = await self._executor.request(
            ApiRequest(
                path=self.REFRESH_URLS_PATH,
                method="POST",
                json={"video_ids": expired},
                response_model=UrlRefreshResponse,
            )
        )
        if not result.ok:
            return result
        response: UrlRefreshResponse = result.value

        refreshed: List[int] = []
        wanted = set(expired)
        try:
            with self._cache.transaction() as txn:
                for item in response.refreshed_urls:
                    if item.video_id not in wanted:
                        continue
                    if not item.is_complete:
                        logger.warning(
                            "Server could not refresh URLs for video %s: %s",
                            item.video_id,
                            item.error or "incomplete payload",
                        )
                        continue
                    video = txn.get(CachedVideo, item.video_id)
                    if video is None:
                        continue
                    txn.upsert(
                        video.model_copy(
                            update={
                                "video_url": ExpiringUrl(
                                    url=item.signed_video_url,
                                    expires_at=item.video_expires_at,
                                ),
                                "thumbnail_url": ExpiringUrl(
                                    url=item.signed_thumbnail_url,
                                    expires_at=item.thumbnail_expires_at,
                                ),
                            }
                        )
                    )
                    refreshed.append(item.video_id)
        except _CACHE_ERRORS as exc:
            logger.error("Could not store refreshed URLs: %s", exc)
            return Failure(CacheError(exc))
        return Success(refreshed)

    async def resolve_video(self, video_id: int) -> Result[Optional[CachedVideo]]:
        """Return a cached video whose URLs are usable, refreshing them first if needed."""
        video = self._cache.get(CachedVideo, video_id)
        if video is None:
            return Success(None)
        now = self._clock()
        if not video.has_expired_urls(now):
            return Success(video)

        result = await self.refresh_if_expired([video_id], now=now)
        if not result.ok:
            return result
        video = self._cache.get(CachedVideo, video_id)
        if video is None or video.has_expired_urls(self._clock()):
            return Failure(
                ApiError("url_refresh_failed", "Video link could not be renewed.")
            )
        return Success(video)

    # Server-confirmed writes

    async def delete(self, analysis_id: int) -> Result[None]:
        """Delete an analysis on the server, then drop it from the cache.

        The referenced video stays cached; it is not owned by the analysis.
        """
        result = await self._executor.request(
            ApiRequest(
                path=self.ANALYSIS_PATH.format(analysis_id=analysis_id),
                method="DELETE",
            )
        )
        if not result.ok:
            return result
        try:
            with self._cache.transaction() as txn:
                txn.delete(CachedAnalysis, analysis_id)
        except _CACHE_ERRORS as exc:
            return Failure(CacheError(exc))
        return Success(None)

    async def upload_video(
        self, file_path: str | Path, lift_type: str
    ) -> Result[CachedAnalysis]:
        """Upload a recording; the returned analysis is cached once stored server-side.

        When local data is cleared while the upload is in flight the server
        result is still returned but is not written back into the cache.
        """
        path = Path(file_path)
        try:
            content = path.read_bytes()
        except OSError as exc:
            return Failure(RequestFailed(exc))

        generation = self._generation
        result = await self._executor.request(
            ApiRequest(
                path=self.UPLOAD_PATH,
                method="POST",
                data={"lift_type": lift_type},
                files={"video": (path.name, content, "video/mp4")},
                response_model=VideoAnalysis,
            )
        )
        if not result.ok:
            return result
        async with self._sync_guard:
            if generation != self._generation:
                logger.info("Local data was cleared during upload; not caching analysis %s",
                            result.value.id)
            else:
                try:
                    self._commit_analyses([result.value])
                except _CACHE_ERRORS as exc:
                    return Failure(CacheError(exc))
        return Success(CachedAnalysis.from_wire(result.value))

    # Users

    def upsert_user(self, user: User, *, make_current: bool = True) -> Result[CachedUser]:
        cached = CachedUser.from_wire(user)
        try:
            with self._cache.transaction() as txn:
                txn.upsert(cached)
                if make_current:
                    txn.set_state(self.CURRENT_USER_KEY, str(cached.server_id))
        except _CACHE_ERRORS as exc:
            return Failure(CacheError(exc))
        return Success(cached)

    def update_current_user(self, **fields: Any) -> Result[Optional[CachedUser]]:
        """Apply server-confirmed profile fields to the cached current user."""
        user_id = self.current_user_id()
        if user_id is None:
            logger.warning("No current user cached; skipping local profile update")
            return Success(None)
        return self.update_user_fields(user_id, **fields)

    def update_user_fields(self, user_id: int, **fields: Any) -> Result[Optional[CachedUser]]:
        try:
            with self._cache.transaction() as txn:
                user = txn.get(CachedUser, user_id)
                if user is None:
                    return Success(None)
                updated = CachedUser.model_validate({**user.model_dump(), **fields})
                txn.upsert(updated)
        except _CACHE_ERRORS as exc:
            return Failure(CacheError(exc))
        return Success(updated)

    def current_user_id(self) -> Optional[int]:
        value = self._cache.get_state(self.CURRENT_USER_KEY)
        return int(value) if value is not None else None

    def current_user(self) -> Optional[CachedUser]:
        user_id = self.current_user_id()
        return self.get_user(user_id) if user_id is not None else None

    def get_user(self, user_id: int) -> Optional[CachedUser]:
        return self._cache.get(CachedUser, user_id)

    async def clear_local_data(self) -> Result[None]:
        """Wipe the cache; waits for an in-flight reconcile to finish first.

        Uploads that started before the wipe do not write their results back.
        """
        async with self._sync_guard:
            self._generation += 1
            try:
                with self._cache.transaction() as txn:
                    txn.clear()
            except _CACHE_ERRORS as exc:
                logger.critical("Failed to clear local cache on logout: %s", exc)
                return Failure(CacheError(exc))
        logger.info("Local cache cleared")
        return Success(None)

    # Reads

    def list_analyses(self, limit: Optional[int] = None) -> List[CachedAnalysis]:
        return self._cache.list(CachedAnalysis, newest_first=True, limit=limit)

    def latest_analysis(self) -> Optional[CachedAnalysis]:
        analyses = self.list_analyses(limit=1)
        return analyses[0] if analyses else None

    def get_analysis(self, analysis_id: int) -> Optional[CachedAnalysis]:
        return self._cache.get(CachedAnalysis, analysis_id)


__all__ = ["ReconcileOutcome", "SyncRepository", "cursor_precedes"]
