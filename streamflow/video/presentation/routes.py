"""
Video API Routes.

FastAPI route definitions for streaming, video information and cache admin.
"""

from fastapi import APIRouter, Query, Request

from ..domain.interfaces import MetadataCache
from ..domain.models import normalize_url
from .controllers import StreamingController, VideoController
from .schemas import CacheStatsResponse, ErrorResponse, VideoInfoResponse


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Missing or invalid URL or Range"},
    403: {"model": ErrorResponse, "description": "Source blocked, private or age restricted"},
    404: {"model": ErrorResponse, "description": "Source removed or not found"},
    416: {"model": ErrorResponse, "description": "Range not satisfiable"},
    502: {"model": ErrorResponse, "description": "Extraction failed or upstream unreachable"},
    503: {"model": ErrorResponse, "description": "Upstream timed out"},
}


def create_video_routes(
    video_controller: VideoController,
    streaming_controller: StreamingController
) -> APIRouter:
    """Create video API routes with dependency injection"""

    router = APIRouter(tags=["videos"], responses=ERROR_RESPONSES)

    @router.get("/stream")
    async def stream_video(request: Request, url: str = Query(..., description="Video page or file URL")):
        """
        Stream any supported video URL.

        Platform pages are resolved to a direct stream when possible and proxied;
        otherwise a JSON embed descriptor is returned. Direct files are proxied
        with HTTP range support.

        Usage in HTML5:
        ```html
        <video controls src="/stream?url=https%3A%2F%2Fexample.com%2Fa.mp4"></video>
        ```
        """
        return await streaming_controller.stream(url, request)

    @router.get("/stream/direct")
    async def stream_direct(request: Request, url: str = Query(..., description="Direct media file URL")):
        """
        Proxy a media URL as-is.

        Supports:
        - **Range requests**: forwarded upstream, or sliced by the proxy when the origin ignores them
        - **Partial content**: 206 responses with Content-Range
        - **Unseekable origins**: full body with `Accept-Ranges: none` when the size is unknown
        """
        return await streaming_controller.stream_direct(url, request)

    @router.get("/video/info", response_model=VideoInfoResponse)
    async def get_video_info(url: str = Query(..., description="Video page or file URL")):
        """
        Get cached-or-resolved information about a video.

        - **url**: Video page or file URL
        """
        return await video_controller.get_video_info(url)

    @router.get("/embed")
    async def get_embed(
        url: str = Query(..., description="Platform video URL"),
        redirect: bool = Query(False, description="Answer with a redirect to the embed target")
    ):
        """
        Get the platform's iframe embed target for a video.

        Used when direct proxying is not available.
        """
        return video_controller.get_embed(url, redirect)

    return router


def create_admin_cache_routes(metadata_cache: MetadataCache) -> APIRouter:
    """Create admin routes for metadata cache management"""

    router = APIRouter(prefix="/admin/cache", tags=["admin"])

    @router.get("", response_model=CacheStatsResponse)
    async def get_cache_stats():
        """Get metadata cache statistics"""
        return CacheStatsResponse(**await metadata_cache.stats())

    @router.post("/sweep")
    async def sweep_cache():
        """Remove expired entries now instead of waiting for the background sweep"""
        entries_removed = await metadata_cache.sweep()
        return {"swept": True, "entries_removed": entries_removed}

    @router.post("/clear")
    async def clear_cache():
        """Drop every cached entry, expired or not"""
        entries_removed = await metadata_cache.clear()
        return {"cleared": True, "entries_removed": entries_removed}

    @router.delete("")
    async def invalidate_cache_entry(url: str = Query(..., description="URL whose cached metadata should be dropped")):
        """
        Invalidate cached metadata for a video URL.

        Useful when a platform has rotated its stream URLs.
        """
        removed = await metadata_cache.invalidate(normalize_url(url))
        return {"url": url, "cache_invalidated": removed}

    return router
