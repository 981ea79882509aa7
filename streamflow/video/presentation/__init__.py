"""
Video Presentation Layer.

Contains HTTP controllers, request/response models, and API route definitions.
"""

from .controllers import VideoController, StreamingController
from .schemas import VideoInfoResponse, EmbedResponse, ErrorResponse, CacheStatsResponse
from .routes import create_video_routes, create_admin_cache_routes

__all__ = [
    "VideoController",
    "StreamingController",
    "VideoInfoResponse",
    "EmbedResponse",
    "ErrorResponse",
    "CacheStatsResponse",
    "create_video_routes",
    "create_admin_cache_routes",
]
