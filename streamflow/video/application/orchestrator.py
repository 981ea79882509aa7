"""
Fallback Orchestrator.

Per-request state machine that classifies a URL, resolves it and picks a
delivery tier: direct proxying of a playable stream first, the platform's
own embed player second. The proxy's full-body relay covers origins that
cannot seek.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Optional, Sequence

from ..domain.classifier import SourceClassifier
from ..domain.errors import InvalidRequest, SourceUnavailable, StreamFlowError, UnavailableReason
from ..domain.models import DeliveryPlan, DeliveryTier, RangeRequest, SourceKind, StreamCandidate, VideoReference
from .proxy_service import ProxiedStream, RangeAwareProxy
from .resolution_service import ResolutionService


class DeliveryState(Enum):
    CLASSIFYING = "classifying"
    RESOLVING = "resolving"
    DELIVERING = "delivering"
    DONE = "done"
    FAILED = "failed"


class DeliveryAttempt:
    """Tracks one request through the delivery states"""

    def __init__(self, url: str, logger: logging.Logger):
        self.url = url
        self.state = DeliveryState.CLASSIFYING
        self.logger = logger

    def transition(self, state: DeliveryState, detail: str = "") -> None:
        self.logger.debug(f"{self.url}: {self.state.value} -> {state.value}" + (f" ({detail})" if detail else ""))
        self.state = state

    def fail(self, error: Exception) -> None:
        self.transition(DeliveryState.FAILED, f"{type(error).__name__}: {error}")

    @property
    def finished(self) -> bool:
        return self.state in (DeliveryState.DONE, DeliveryState.FAILED)


@dataclass
class Delivery:
    """Result of orchestrating a stream request"""
    plan: DeliveryPlan
    attempt: DeliveryAttempt
    stream: Optional[ProxiedStream] = None


class FallbackOrchestrator:
    """Sequences classification, resolution and delivery for a video URL"""

    PREFERRED_CONTAINERS = ("mp4", "webm")

    def __init__(self, classifier: SourceClassifier, resolution_service: ResolutionService, proxy: RangeAwareProxy):
        self.classifier = classifier
        self.resolution_service = resolution_service
        self.proxy = proxy
        self.logger = logging.getLogger(__name__)

    def reference_for(self, url: Optional[str]) -> VideoReference:
        return VideoReference.from_url(url, self.classifier)

    @classmethod
    def select_candidate(cls, candidates: Sequence[StreamCandidate]) -> Optional[StreamCandidate]:
        """MP4 > WebM > first available, among streams a <video> element can play on its own"""
        playable = [candidate for candidate in candidates if candidate.is_progressive]
        for container in cls.PREFERRED_CONTAINERS:
            for candidate in playable:
                if (candidate.container or "").lower() == container:
                    return candidate
        return playable[0] if playable else None

    async def plan(self, url: Optional[str], attempt: Optional[DeliveryAttempt] = None) -> DeliveryPlan:
        """Classify and resolve; raises the terminal error when no tier applies"""
        attempt = attempt or DeliveryAttempt(url or "", self.logger)
        try:
            reference = self.reference_for(url)
            attempt.transition(DeliveryState.RESOLVING, reference.source_kind.value)

            if reference.source_kind == SourceKind.UNKNOWN:
                raise InvalidRequest("URL is not a recognized video source; use /stream/direct to proxy it as-is")

            if reference.source_kind == SourceKind.DIRECT_FILE:
                metadata = self.resolution_service.direct_file_metadata(reference)
                return DeliveryPlan(reference, DeliveryTier.DIRECT, stream=metadata.candidate_streams[0], metadata=metadata)

            return await self._plan_embeddable(reference)
        except StreamFlowError as e:
            attempt.fail(e)
            raise

    async def _plan_embeddable(self, reference: VideoReference) -> DeliveryPlan:
        try:
            metadata = await self.resolution_service.resolve(reference)
        except SourceUnavailable as e:
            if e.reason == UnavailableReason.EXTRACTION_UNAVAILABLE and reference.embed_url:
                self.logger.info(f"No extraction backend, falling back to embed for {reference.url}")
                return DeliveryPlan(reference, DeliveryTier.EMBED, embed_url=reference.embed_url)
            raise

        candidate = self.select_candidate(metadata.candidate_streams)
        if candidate is not None:
            return DeliveryPlan(reference, DeliveryTier.DIRECT, stream=candidate, embed_url=reference.embed_url, metadata=metadata)

        if reference.embed_url:
            self.logger.info(f"No directly playable stream for {reference.url}, falling back to embed")
            return DeliveryPlan(reference, DeliveryTier.EMBED, embed_url=reference.embed_url, metadata=metadata)

        raise SourceUnavailable("No browser-playable stream and no embed target for this video", reason=UnavailableReason.NO_CANDIDATES)

    def embed_plan(self, url: Optional[str]) -> DeliveryPlan:
        """Embed target without extraction"""
        reference = self.reference_for(url)
        if reference.source_kind != SourceKind.EMBEDDABLE:
            raise InvalidRequest("Only embeddable platform URLs have an embed target")
        if not reference.embed_url:
            raise SourceUnavailable(f"Could not derive an embed target for this {reference.platform} URL", reason=UnavailableReason.NOT_FOUND)
        return DeliveryPlan(reference, DeliveryTier.EMBED, embed_url=reference.embed_url)

    async def deliver(self, url: Optional[str], client_range: Optional[RangeRequest] = None) -> Delivery:
        """Run the full state machine for /stream"""
        attempt = DeliveryAttempt(url or "", self.logger)
        plan = await self.plan(url, attempt)

        attempt.transition(DeliveryState.DELIVERING, plan.tier.value)
        if plan.tier == DeliveryTier.EMBED:
            attempt.transition(DeliveryState.DONE, "embed descriptor")
            return Delivery(plan, attempt)

        stream = await self.open_direct(plan.stream.url, client_range, attempt)
        return Delivery(plan, attempt, stream)

    async def open_direct(
        self,
        stream_url: str,
        client_range: Optional[RangeRequest] = None,
        attempt: Optional[DeliveryAttempt] = None,
    ) -> ProxiedStream:
        """Proxy a stream URL, tracking the delivery outcome"""
        if attempt is None:
            attempt = DeliveryAttempt(stream_url, self.logger)
            attempt.transition(DeliveryState.DELIVERING, "direct")

        try:
            stream = await self.proxy.open_stream(stream_url, client_range)
        except StreamFlowError as e:
            attempt.fail(e)
            raise

        stream.body = self._track(stream.body, attempt)
        return stream

    async def _track(self, body: AsyncIterator[bytes], attempt: DeliveryAttempt) -> AsyncIterator[bytes]:
        try:
            async for chunk in body:
                if not attempt.finished:
                    attempt.transition(DeliveryState.DONE, "first bytes sent")
                yield chunk
            if not attempt.finished:
                attempt.transition(DeliveryState.DONE, "empty body")
        except StreamFlowError as e:
            attempt.fail(e)
            raise
        finally:
            await body.aclose()
