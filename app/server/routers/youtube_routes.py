import logging
from traceback import format_exc
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from app.models.youtube import PlaylistListResponse, VideoListResponse
from app.server.dependencies import get_youtube_service
from app.services.youtube import YouTubeService

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create a router for the YouTube metadata proxy
youtube_router = APIRouter()

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

YouTubeDep = Annotated[YouTubeService, Depends(get_youtube_service)]
MaxResults = Annotated[int, Query(alias="maxResults", ge=1, le=200)]


def _no_cache(response: Response) -> None:
    response.headers.update(NO_CACHE_HEADERS)


def _upstream_error(error: str, e: Exception) -> HTTPException:
    logger.error(f"{error}: {str(e)}\n{format_exc()}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": error, "message": str(e)},
    )


@youtube_router.get("/playlist", response_model=PlaylistListResponse)
async def get_playlists(
    response: Response,
    youtube: YouTubeDep,
    max_results: MaxResults = 50,
) -> PlaylistListResponse:
    """List the channel's playlists."""
    _no_cache(response)
    try:
        playlists = await youtube.list_playlists(max_results)
    except HTTPException:
        raise
    except Exception as e:
        raise _upstream_error("Failed to fetch playlists", e)

    return PlaylistListResponse(
        playlists=playlists,
        total_results=len(playlists),
        message=None if playlists else "No playlists found",
    )


@youtube_router.get("/search", response_model=VideoListResponse)
async def search_videos(
    response: Response,
    youtube: YouTubeDep,
    query: Optional[str] = None,
    max_results: MaxResults = 20,
) -> VideoListResponse:
    """Search the channel's videos."""
    _no_cache(response)
    if not query or not query.strip():
        raise HTTPException(status_code=400, detail="Query parameter is required")

    try:
        videos = await youtube.search_videos(query.strip(), max_results)
    except HTTPException:
        raise
    except Exception as e:
        raise _upstream_error("Failed to search videos", e)

    return VideoListResponse(
        videos=videos,
        total_results=len(videos),
        query=query.strip(),
        message=None if videos else "No videos found for this search",
    )


@youtube_router.get("/channel-videos", response_model=VideoListResponse)
async def get_channel_videos(
    response: Response,
    youtube: YouTubeDep,
    max_results: MaxResults = 50,
) -> VideoListResponse:
    """List the channel's newest videos."""
    _no_cache(response)
    try:
        videos = await youtube.channel_videos(max_results)
    except HTTPException:
        raise
    except Exception as e:
        raise _upstream_error("Failed to fetch channel videos", e)

    return VideoListResponse(
        videos=videos,
        total_results=len(videos),
        message=None if videos else "No videos found",
    )


@youtube_router.get("/playlist-videos", response_model=VideoListResponse)
async def get_playlist_videos(
    response: Response,
    youtube: YouTubeDep,
    playlist_id: Annotated[Optional[str], Query(alias="playlistId")] = None,
    max_results: MaxResults = 50,
) -> VideoListResponse:
    """List the videos of one playlist."""
    _no_cache(response)
    if not playlist_id:
        raise HTTPException(status_code=400, detail="Playlist ID is required")

    try:
        videos, playlist_title = await youtube.playlist_videos(
            playlist_id, max_results
        )
    except HTTPException:
        raise
    except Exception as e:
        raise _upstream_error("Failed to fetch playlist videos", e)

    return VideoListResponse(
        videos=videos,
        total_results=len(videos),
        playlist_title=playlist_title,
        message=None if videos else "No videos found in this playlist",
    )
