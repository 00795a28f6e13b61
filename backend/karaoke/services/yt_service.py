"""
YouTube Service: karaoke track search via the YouTube Data API v3.

Two calls per search: /search for candidate ids, then /videos for durations
(ISO-8601, e.g. PT4M33S). Every call is bounded by REQUEST_TIMEOUT_S.
"""
import logging
import re
import time
from dataclasses import dataclass, asdict
from typing import Optional

import httpx

from karaoke.core.config import settings
from karaoke.core.errors import RequestTimeoutError, ServiceNotConfiguredError, UpstreamError

logger = logging.getLogger(__name__)

DURATION_RE = re.compile(r"^PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$")
ARTIST_TITLE_RE = re.compile(r"^([^-]+)\s*-\s*(.+)$")


def parse_duration(value: str | None) -> int:
    """ISO-8601 duration to seconds. Unparseable input gives 0."""
    match = DURATION_RE.match((value or "").strip())
    if not match:
        return 0
    hours, minutes, seconds = (int(g) if g else 0 for g in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def format_duration(seconds: int) -> str:
    hours, rest = divmod(max(0, int(seconds)), 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def split_artist_title(title: str, channel_name: str) -> tuple[str, str]:
    """'Artist - Song' titles give (artist, song); anything else keeps the channel as artist."""
    match = ARTIST_TITLE_RE.match(title)
    if match:
        return match.group(1).strip(), match.group(2).strip()
    return channel_name, title


@dataclass
class SearchFilters:
    genre: Optional[str] = None
    artist: Optional[str] = None
    year: Optional[int] = None
    decade: Optional[int] = None

    def apply(self, query: str) -> str:
        parts = [query]
        if self.genre:
            parts.append(self.genre)
        if self.artist:
            parts.append(self.artist)
        if self.year:
            parts.append(str(self.year))
        elif self.decade:
            parts.append(f"{self.decade}s")
        return " ".join(parts)


@dataclass
class SearchResult:
    video_id: str
    title: str
    artist: str
    thumbnail: str | None
    duration_s: int

    @property
    def duration_label(self) -> str:
        return format_duration(self.duration_s)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_label"] = self.duration_label
        return data


class YouTubeService:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.YOUTUBE_API_KEY
        self.base_url = (base_url or settings.YOUTUBE_API_URL).rstrip("/")
        self.timeout = timeout or settings.REQUEST_TIMEOUT_S
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    # ─────────────────── low-level runner ───────────────────

    async def _get(self, client: httpx.AsyncClient, path: str, params: dict) -> dict:
        start = time.monotonic()
        try:
            response = await client.get(f"{self.base_url}/{path}", params={**params, "key": self.api_key})
        except httpx.TimeoutException:
            logger.error(f"YouTube {path} TIMEOUT after {time.monotonic() - start:.1f}s")
            raise RequestTimeoutError("Video search timed out, please try again")
        except httpx.HTTPError as e:
            logger.error(f"YouTube {path} transport error: {e}")
            raise UpstreamError("Video search failed")

        elapsed = time.monotonic() - start
        if response.status_code != 200:
            logger.error(f"YouTube {path} FAILED ({response.status_code}) in {elapsed:.1f}s: {response.text[:200]}")
            raise UpstreamError(f"YouTube API {path} failed", status_code=response.status_code)

        logger.info(f"YouTube {path} completed in {elapsed:.1f}s")
        return response.json()

    # ─────────────────── search ───────────────────

    async def search(
        self,
        query: str,
        filters: SearchFilters | None = None,
        karaoke: bool = False,
        max_results: int | None = None,
    ) -> list[SearchResult]:
        if not self.configured:
            logger.error("YouTube API key is not configured")
            raise ServiceNotConfiguredError("YouTube API is not configured")

        q = query.strip()
        if karaoke:
            q = f"{q} karaoke"
        if filters:
            q = filters.apply(q)

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            found = await self._get(client, "search", {
                "part": "snippet",
                "q": q,
                "type": "video",
                "maxResults": max_results or settings.YOUTUBE_MAX_RESULTS,
                "videoCategoryId": settings.YOUTUBE_MUSIC_CATEGORY_ID,
            })
            ids = [item.get("id", {}).get("videoId") for item in found.get("items") or []]
            ids = [i for i in ids if i]
            if not ids:
                return []

            details = await self._get(client, "videos", {
                "part": "contentDetails,snippet",
                "id": ",".join(ids),
            })

        results = []
        for item in details.get("items") or []:
            snippet = item.get("snippet") or {}
            raw_title = snippet.get("title") or "Unknown"
            artist, title = split_artist_title(raw_title, snippet.get("channelTitle") or "")
            thumbnails = snippet.get("thumbnails") or {}
            thumb = (thumbnails.get("medium") or thumbnails.get("default") or {}).get("url")
            results.append(SearchResult(
                video_id=item.get("id", ""),
                title=title,
                artist=artist,
                thumbnail=thumb,
                duration_s=parse_duration((item.get("contentDetails") or {}).get("duration")),
            ))
        return results


# Module-level singleton
yt_service = YouTubeService()


def get_yt_service() -> YouTubeService:
    return yt_service
