"""
YouTube search endpoint.

Errors come back as {"error": ...} with 400 (missing query), 500 (not
configured / unexpected failure) or the upstream API's own status.
"""
import logging
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from karaoke.core.errors import KaraokeError
from karaoke.services.yt_service import YouTubeService, SearchFilters, get_yt_service

logger = logging.getLogger(__name__)

router = APIRouter()


class SearchResultResponse(BaseModel):
    video_id: str
    title: str
    artist: str
    thumbnail: str | None = None
    duration_s: int
    duration_label: str


@router.get("", response_model=List[SearchResultResponse])
async def search_youtube(
    q: Optional[str] = Query(default=None, max_length=200, description="Search query"),
    karaoke: bool = False,
    genre: Optional[str] = None,
    artist: Optional[str] = None,
    year: Optional[int] = None,
    decade: Optional[int] = None,
    yt: YouTubeService = Depends(get_yt_service),
) -> Any:
    """Search YouTube for songs."""
    if not q or not q.strip():
        return JSONResponse(status_code=400, content={"error": "Query parameter is required"})

    filters = SearchFilters(genre=genre, artist=artist, year=year, decade=decade)
    try:
        results = await yt.search(q, filters=filters, karaoke=karaoke)
    except KaraokeError as e:
        return JSONResponse(status_code=e.status_code, content={"error": e.message})
    except Exception:
        logger.exception("YouTube search error")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return [SearchResultResponse(**r.to_dict()) for r in results]
