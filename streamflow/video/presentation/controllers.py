"""
Video HTTP Controllers.

Handle HTTP requests and responses for streaming and video information.
Domain errors propagate to the exception handlers registered by the API server.
"""

import logging
from typing import Optional
from urllib.parse import quote

from fastapi import Request, Response
from fastapi.responses import JSONResponse, RedirectResponse, StreamingResponse

from ..application.orchestrator import FallbackOrchestrator
from ..application.proxy_service import ProxiedStream
from ..domain.models import DeliveryPlan, DeliveryTier, RangeRequest, SourceKind
from .schemas import EmbedResponse, StreamCandidateResponse, VideoInfoResponse


DIRECT_FILE_CACHE_CONTROL = "public, max-age=3600"
# Platform stream URLs are signed and expire
RESOLVED_STREAM_CACHE_CONTROL = "no-cache"


class ProxiedStreamingResponse(StreamingResponse):
    """Streaming response that always releases the upstream connection, even if the body never starts"""

    def __init__(self, stream: ProxiedStream, cache_control: str):
        headers = dict(stream.headers)
        headers["Cache-Control"] = cache_control
        super().__init__(stream.body, status_code=stream.status_code, headers=headers, media_type=stream.media_type)
        self.proxied_stream = stream

    async def __call__(self, scope, receive, send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.proxied_stream.aclose()


def parse_range_header(request: Request) -> Optional[RangeRequest]:
    """Client Range header, None when absent or blank"""
    range_header = request.headers.get("range")
    if not range_header or not range_header.strip():
        return None
    return RangeRequest.parse(range_header)


class StreamingController:
    """Controller for video streaming operations"""

    def __init__(self, orchestrator: FallbackOrchestrator):
        self.orchestrator = orchestrator
        self.logger = logging.getLogger(__name__)

    async def stream(self, url: str, request: Request) -> Response:
        """Classify, resolve and deliver a video"""
        range_request = parse_range_header(request)
        delivery = await self.orchestrator.deliver(url, range_request)

        if delivery.plan.tier == DeliveryTier.EMBED:
            return JSONResponse(
                content=embed_response(delivery.plan).model_dump(),
                headers={"Cache-Control": RESOLVED_STREAM_CACHE_CONTROL},
            )

        cache_control = DIRECT_FILE_CACHE_CONTROL
        if delivery.plan.reference.source_kind == SourceKind.EMBEDDABLE:
            cache_control = RESOLVED_STREAM_CACHE_CONTROL

        self.logger.info(f"Streaming {delivery.plan.reference.source_kind.value} video: {url}")
        return self._to_response(delivery.stream, cache_control)

    async def stream_direct(self, url: str, request: Request) -> Response:
        """Proxy a URL as-is, honouring the client's Range header"""
        reference = self.orchestrator.reference_for(url)
        range_request = parse_range_header(request)

        self.logger.info(f"Streaming direct video: {reference.url}")
        stream = await self.orchestrator.open_direct(reference.url, range_request)
        return self._to_response(stream, DIRECT_FILE_CACHE_CONTROL)

    def _to_response(self, stream: ProxiedStream, cache_control: str) -> StreamingResponse:
        return ProxiedStreamingResponse(stream, cache_control)


class VideoController:
    """Controller for video information and embed targets"""

    def __init__(self, orchestrator: FallbackOrchestrator):
        self.orchestrator = orchestrator
        self.logger = logging.getLogger(__name__)

    async def get_video_info(self, url: str) -> VideoInfoResponse:
        """Get cached-or-resolved video information"""
        plan = await self.orchestrator.plan(url)
        return self._convert_to_response(plan)

    def get_embed(self, url: str, redirect: bool = False) -> Response:
        """Embed target for platform URLs"""
        plan = self.orchestrator.embed_plan(url)
        if redirect:
            return RedirectResponse(plan.embed_url, status_code=307)
        return JSONResponse(content=embed_response(plan).model_dump())

    def _convert_to_response(self, plan: DeliveryPlan) -> VideoInfoResponse:
        """Convert domain model to response model"""
        reference = plan.reference
        metadata = plan.metadata

        candidates = []
        if metadata:
            candidates = [
                StreamCandidateResponse(
                    url=candidate.url,
                    container=candidate.container,
                    mime_type=candidate.mime_type,
                    quality_label=candidate.quality_label,
                    has_audio=candidate.has_audio,
                    has_video=candidate.has_video,
                )
                for candidate in metadata.candidate_streams
            ]

        stream_url = None
        if plan.tier == DeliveryTier.DIRECT:
            stream_url = f"/stream?url={quote(reference.url, safe='')}"

        return VideoInfoResponse(
            url=reference.url,
            source_kind=reference.source_kind.value,
            platform=reference.platform,
            video_id=reference.video_id,
            title=metadata.title if metadata else None,
            thumbnail_url=metadata.thumbnail_url if metadata else None,
            duration_seconds=metadata.duration_seconds if metadata else None,
            candidate_streams=candidates,
            delivery=plan.tier.value,
            stream_url=stream_url,
            embed_url=plan.embed_url,
            resolved_at=metadata.resolved_at if metadata else None,
        )


def embed_response(plan: DeliveryPlan) -> EmbedResponse:
    reference = plan.reference
    return EmbedResponse(
        url=reference.url,
        platform=reference.platform,
        video_id=reference.video_id,
        embed_url=plan.embed_url,
    )
