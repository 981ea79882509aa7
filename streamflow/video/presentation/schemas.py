"""
Video API Request/Response Schemas.

Pydantic models for API serialization and validation.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class StreamCandidateResponse(BaseModel):
    """Playable stream candidate"""
    url: str = Field(..., description="Directly fetchable stream URL")
    container: Optional[str] = Field(None, description="Container format (mp4, webm, m3u8, ...)")
    mime_type: Optional[str] = Field(None, description="Declared MIME type")
    quality_label: Optional[str] = Field(None, description="Quality label such as 720p")
    has_audio: bool = Field(True, description="Stream carries audio")
    has_video: bool = Field(True, description="Stream carries video")


class VideoInfoResponse(BaseModel):
    """Resolved video information"""
    url: str = Field(..., description="Requested URL")
    source_kind: str = Field(..., description="embeddable, direct_file or unknown")
    platform: Optional[str] = Field(None, description="Platform id for embeddable sources")
    video_id: Optional[str] = Field(None, description="Platform video id when derivable")
    title: Optional[str] = Field(None, description="Video title")
    thumbnail_url: Optional[str] = Field(None, description="Thumbnail image URL")
    duration_seconds: Optional[float] = Field(None, description="Duration in seconds")
    candidate_streams: List[StreamCandidateResponse] = Field(default_factory=list, description="Candidate streams, preferred first")
    delivery: str = Field(..., description="direct (proxied) or embed (platform player)")
    stream_url: Optional[str] = Field(None, description="Proxy URL to use as the <video> source")
    embed_url: Optional[str] = Field(None, description="Iframe embed target")
    resolved_at: Optional[datetime] = Field(None, description="When the metadata was resolved")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "url": "https://www.youtube.com/watch?v=LXb3EKWsInQ",
                "source_kind": "embeddable",
                "platform": "youtube",
                "video_id": "LXb3EKWsInQ",
                "title": "Sample video",
                "thumbnail_url": "https://i.ytimg.com/vi/LXb3EKWsInQ/hqdefault.jpg",
                "duration_seconds": 634.0,
                "candidate_streams": [],
                "delivery": "direct",
                "stream_url": "/stream?url=https%3A%2F%2Fwww.youtube.com%2Fwatch%3Fv%3DLXb3EKWsInQ",
                "embed_url": "https://www.youtube.com/embed/LXb3EKWsInQ",
                "resolved_at": "2025-08-04T14:30:22",
            }
        }
    )


class EmbedResponse(BaseModel):
    """Platform embed descriptor"""
    url: str = Field(..., description="Requested URL")
    delivery: str = Field("embed", description="Always embed")
    platform: Optional[str] = Field(None, description="Platform id")
    video_id: Optional[str] = Field(None, description="Platform video id")
    embed_url: str = Field(..., description="Iframe embed target")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "url": "https://youtu.be/LXb3EKWsInQ",
                "delivery": "embed",
                "platform": "youtube",
                "video_id": "LXb3EKWsInQ",
                "embed_url": "https://www.youtube.com/embed/LXb3EKWsInQ",
            }
        }
    )


class ErrorResponse(BaseModel):
    """Structured error body"""
    error: str = Field(..., description="Error kind")
    reason: Optional[str] = Field(None, description="Sub-kind when known")
    message: str = Field(..., description="Human readable message")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "SourceUnavailable",
                "reason": "private",
                "message": "This is a private video",
            }
        }
    )


class CacheStatsResponse(BaseModel):
    """Metadata cache statistics"""
    entries: int = Field(..., description="Entries currently held")
    hits: int = Field(0, description="Cache hits since start")
    misses: int = Field(0, description="Cache misses since start")
    ttl_seconds: Optional[float] = Field(None, description="Entry lifetime")
    sweep_interval_seconds: Optional[float] = Field(None, description="Background sweep period")
    sweeper_running: bool = Field(False, description="Whether the sweep task is active")
    enabled: bool = Field(True, description="Whether caching is enabled")
