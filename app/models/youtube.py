"""
YouTube Data Models

Shapes returned by the YouTube metadata proxy endpoints.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Video(_CamelModel):
    id: str
    title: str
    description: str = ""
    thumbnail: str = ""
    published_at: Optional[str] = None
    duration: str = "0:00"
    view_count: str = "0"
    url: str
    channel_title: Optional[str] = None
    playlist_title: Optional[str] = None


class Playlist(_CamelModel):
    id: str
    title: str
    description: str = ""
    thumbnail: str = ""
    video_count: int = 0
    url: str
    published_at: Optional[str] = None


class VideoListResponse(_CamelModel):
    success: bool = True
    videos: List[Video]
    total_results: int
    message: Optional[str] = None
    query: Optional[str] = None
    playlist_title: Optional[str] = None


class PlaylistListResponse(_CamelModel):
    success: bool = True
    playlists: List[Playlist]
    total_results: int
    message: Optional[str] = None
