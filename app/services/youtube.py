"""
YouTube Data API client

Read-only access to the artist's channel: playlists, channel videos, search,
and playlist contents. Each listing is enriched with durations and view counts
from a second, sequential call to the videos endpoint.
"""

import logging
import re
from traceback import format_exc
from typing import Any, Dict, List, Optional, Tuple

import requests
from fastapi import HTTPException, status
from starlette.concurrency import run_in_threadpool

from app.models.youtube import Playlist, Video

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DURATION_PATTERN = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")

# The Data API caps a single page at 50 items
MAX_PAGE_SIZE = 50


def parse_duration(duration: str) -> str:
    """Format an ISO-8601 duration (PT1H2M3S) as h:mm:ss or m:ss."""
    match = DURATION_PATTERN.search(duration or "")
    if not match:
        return "0:00"

    hours, minutes, seconds = (int(part or 0) for part in match.groups())
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def format_view_count(count: Any) -> str:
    """Abbreviate a view count: 1234 -> 1.2K, 5600000 -> 5.6M."""
    try:
        num = int(count)
    except (TypeError, ValueError):
        return "0"

    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if num >= 1_000:
        return f"{num / 1_000:.1f}K"
    return str(num)


def _thumbnail(snippet: Dict[str, Any]) -> str:
    thumbnails = snippet.get("thumbnails") or {}
    for size in ("high", "medium", "default"):
        if size in thumbnails:
            return thumbnails[size].get("url", "")
    return ""


class YouTubeService:
    """Client for the YouTube Data API v3, scoped to one channel."""

    API_URL = "https://www.googleapis.com/youtube/v3"
    TIMEOUT = 10  # seconds

    def __init__(self, api_key: str, channel_id: str):
        self.api_key = api_key
        self.channel_id = channel_id

    def _get(self, resource: str, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = requests.get(
                f"{self.API_URL}/{resource}",
                params={"key": self.api_key, **params},
                timeout=self.TIMEOUT,
            )
            response.raise_for_status()
            return response.json()

        except requests.RequestException as e:
            logger.error(f"YouTube API error on {resource}: {str(e)}\n{format_exc()}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={"error": "YouTube API error", "message": str(e)},
            )

    def _video_details(self, video_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        details = {}
        for start in range(0, len(video_ids), MAX_PAGE_SIZE):
            batch = video_ids[start : start + MAX_PAGE_SIZE]
            data = self._get(
                "videos",
                {"id": ",".join(batch), "part": "contentDetails,statistics"},
            )
            details.update({item["id"]: item for item in data.get("items", [])})
        return details

    def _build_video(
        self,
        video_id: str,
        snippet: Dict[str, Any],
        details: Optional[Dict[str, Any]],
        playlist_title: Optional[str] = None,
    ) -> Video:
        details = details or {}
        return Video(
            id=video_id,
            title=snippet.get("title", ""),
            description=snippet.get("description") or "",
            thumbnail=_thumbnail(snippet),
            published_at=snippet.get("publishedAt"),
            duration=parse_duration(
                details.get("contentDetails", {}).get("duration", "PT0S")
            ),
            view_count=format_view_count(
                details.get("statistics", {}).get("viewCount", "0")
            ),
            url=f"https://www.youtube.com/watch?v={video_id}",
            channel_title=snippet.get("channelTitle"),
            playlist_title=playlist_title,
        )

    def _search(self, max_results: int, order: str, query: Optional[str] = None):
        params = {
            "channelId": self.channel_id,
            "part": "snippet",
            "order": order,
            "maxResults": min(max_results, MAX_PAGE_SIZE),
            "type": "video",
        }
        if query:
            params["q"] = query

        items = self._get("search", params).get("items", [])
        items = [item for item in items if item.get("id", {}).get("videoId")]
        details = self._video_details([item["id"]["videoId"] for item in items])

        return [
            self._build_video(
                item["id"]["videoId"],
                item.get("snippet", {}),
                details.get(item["id"]["videoId"]),
            )
            for item in items
        ]

    async def search_videos(self, query: str, max_results: int = 20) -> List[Video]:
        """Search the channel's videos by relevance."""
        return await run_in_threadpool(
            self._search, max_results, order="relevance", query=query
        )

    async def channel_videos(self, max_results: int = 50) -> List[Video]:
        """List the channel's videos, newest first."""
        return await run_in_threadpool(self._search, max_results, order="date")

    async def list_playlists(self, max_results: int = 50) -> List[Playlist]:
        """List the channel's playlists."""
        return await run_in_threadpool(self._list_playlists, max_results)

    def _list_playlists(self, max_results: int) -> List[Playlist]:
        data = self._get(
            "playlists",
            {
                "channelId": self.channel_id,
                "part": "snippet,contentDetails",
                "maxResults": min(max_results, MAX_PAGE_SIZE),
            },
        )

        playlists = []
        for item in data.get("items", []):
            snippet = item.get("snippet", {})
            playlists.append(
                Playlist(
                    id=item["id"],
                    title=snippet.get("title", ""),
                    description=snippet.get("description") or "",
                    thumbnail=_thumbnail(snippet),
                    video_count=int(
                        item.get("contentDetails", {}).get("itemCount") or 0
                    ),
                    url=f"https://www.youtube.com/playlist?list={item['id']}",
                    published_at=snippet.get("publishedAt"),
                )
            )
        return playlists

    def _playlist_title(self, playlist_id: str) -> str:
        # Title is decorative; a failed lookup should not fail the listing
        try:
            data = self._get("playlists", {"id": playlist_id, "part": "snippet"})
        except HTTPException:
            logger.warning(f"Could not fetch title for playlist {playlist_id}")
            return ""
        items = data.get("items") or []
        return items[0].get("snippet", {}).get("title", "") if items else ""

    async def playlist_videos(
        self, playlist_id: str, max_results: int = 50
    ) -> Tuple[List[Video], str]:
        """
        List the videos of a playlist, following pagination up to max_results.

        Returns:
            Tuple of (videos, playlist title)
        """
        return await run_in_threadpool(
            self._playlist_videos, playlist_id, max_results
        )

    def _playlist_videos(
        self, playlist_id: str, max_results: int
    ) -> Tuple[List[Video], str]:
        items: List[Dict[str, Any]] = []
        page_token = ""

        while len(items) < max_results:
            params = {
                "playlistId": playlist_id,
                "part": "snippet",
                "maxResults": min(MAX_PAGE_SIZE, max_results - len(items)),
            }
            if page_token:
                params["pageToken"] = page_token

            data = self._get("playlistItems", params)
            page = data.get("items") or []
            if not page:
                break

            items.extend(page)
            page_token = data.get("nextPageToken") or ""
            if not page_token:
                break

        if not items:
            return [], ""

        video_ids = [item["snippet"]["resourceId"]["videoId"] for item in items]
        details = self._video_details(video_ids)
        title = self._playlist_title(playlist_id)

        videos = [
            self._build_video(
                video_id, item.get("snippet", {}), details.get(video_id), title
            )
            for video_id, item in zip(video_ids, items)
        ]
        return videos, title
