"""
Tests for resolution and the fallback orchestrator.
"""

import httpx
import pytest

from support import FakeExtractionService, FakeOrigin
from streamflow.video.application.orchestrator import DeliveryState, FallbackOrchestrator
from streamflow.video.application.proxy_service import RangeAwareProxy
from streamflow.video.application.resolution_service import ResolutionService
from streamflow.video.domain.errors import ExtractionError, InvalidRequest, SourceUnavailable, UnavailableReason
from streamflow.video.domain.models import DeliveryTier, RangeRequest, SourceKind, StreamCandidate
from streamflow.video.infrastructure.caching import InMemoryMetadataCache
from streamflow.video.infrastructure.extractors import NullExtractionService


YOUTUBE_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
PLATFORM_URL = "https://platform.example/watch?id=abc"
FILE_URL = "https://media.example.com/videos/a.mp4"


@pytest.fixture
def cache(clock):
    return InMemoryMetadataCache(ttl_seconds=300, clock=clock)


def make_orchestrator(classifier, user_agents, extraction_service, cache=None, origin=None):
    client = httpx.AsyncClient(transport=httpx.MockTransport(origin or FakeOrigin(b"")))
    proxy = RangeAwareProxy(client, user_agents)
    resolution_service = ResolutionService(extraction_service, cache)
    return FallbackOrchestrator(classifier, resolution_service, proxy)


class TestSelectCandidate:
    def test_prefers_mp4(self, mp4_candidates):
        assert FallbackOrchestrator.select_candidate(mp4_candidates).container == "mp4"

    def test_webm_when_no_mp4(self):
        candidates = [
            StreamCandidate(url="https://cdn.example.com/a.flv", container="flv"),
            StreamCandidate(url="https://cdn.example.com/a.webm", container="webm"),
        ]
        assert FallbackOrchestrator.select_candidate(candidates).container == "webm"

    def test_first_progressive_otherwise(self):
        candidates = [
            StreamCandidate(url="https://cdn.example.com/a.m3u8", container="m3u8"),
            StreamCandidate(url="https://cdn.example.com/a.flv", container="flv"),
            StreamCandidate(url="https://cdn.example.com/a.3gp", container="3gp"),
        ]
        assert FallbackOrchestrator.select_candidate(candidates).container == "flv"

    def test_skips_manifests_and_split_streams(self):
        candidates = [
            StreamCandidate(url="https://cdn.example.com/a.mpd", container="mpd"),
            StreamCandidate(url="https://cdn.example.com/v.mp4", container="mp4", has_audio=False),
            StreamCandidate(url="https://cdn.example.com/a.m4a", container="m4a", has_video=False),
        ]
        assert FallbackOrchestrator.select_candidate(candidates) is None


class TestResolutionService:
    async def test_direct_file_needs_no_extraction(self, classifier, user_agents):
        extraction = FakeExtractionService()
        orchestrator = make_orchestrator(classifier, user_agents, extraction)

        metadata = await orchestrator.resolution_service.resolve(orchestrator.reference_for(FILE_URL))

        assert extraction.calls == 0
        assert metadata.source_kind == SourceKind.DIRECT_FILE
        assert metadata.title == "a.mp4"
        assert [c.url for c in metadata.candidate_streams] == [FILE_URL]
        assert metadata.candidate_streams[0].mime_type == "video/mp4"

    async def test_successful_resolution_is_cached(self, classifier, user_agents, cache, mp4_candidates):
        extraction = FakeExtractionService(mp4_candidates)
        orchestrator = make_orchestrator(classifier, user_agents, extraction, cache)

        first = await orchestrator.plan(YOUTUBE_URL)
        second = await orchestrator.plan(YOUTUBE_URL)

        assert extraction.calls == 1
        assert first.stream == second.stream
        assert (await cache.stats())["entries"] == 1

    async def test_equivalent_urls_share_a_cache_entry(self, classifier, user_agents, cache, mp4_candidates):
        extraction = FakeExtractionService(mp4_candidates)
        orchestrator = make_orchestrator(classifier, user_agents, extraction, cache)

        await orchestrator.plan("https://www.youtube.com/watch?v=abc&t=1")
        await orchestrator.plan("https://WWW.YOUTUBE.COM/watch?t=1&v=abc#top")

        assert extraction.calls == 1

    async def test_expired_entry_is_resolved_again(self, classifier, user_agents, cache, clock, mp4_candidates):
        extraction = FakeExtractionService(mp4_candidates)
        orchestrator = make_orchestrator(classifier, user_agents, extraction, cache)

        # Fake extraction stamps metadata with the real clock; pin the cache clock to it
        await orchestrator.plan(YOUTUBE_URL)
        entry = cache._cache[orchestrator.reference_for(YOUTUBE_URL).cache_key]
        clock.now = entry.expires_at

        await orchestrator.plan(YOUTUBE_URL)

        assert extraction.calls == 2

    async def test_zero_candidates_is_unavailable_and_not_cached(self, classifier, user_agents, cache):
        extraction = FakeExtractionService(candidates=())
        orchestrator = make_orchestrator(classifier, user_agents, extraction, cache)

        for _ in range(2):
            with pytest.raises(SourceUnavailable) as exc_info:
                await orchestrator.plan(PLATFORM_URL)
            assert exc_info.value.reason == UnavailableReason.NO_CANDIDATES
            assert exc_info.value.status_code == 502

        assert extraction.calls == 2
        assert (await cache.stats())["entries"] == 0

    @pytest.mark.parametrize("reason,status", [
        (UnavailableReason.PRIVATE, 403),
        (UnavailableReason.AGE_RESTRICTED, 403),
        (UnavailableReason.REGION_BLOCKED, 403),
        (UnavailableReason.NOT_FOUND, 404),
        (None, 502),
    ])
    async def test_extraction_error_reason_passes_through(self, classifier, user_agents, cache, reason, status):
        extraction = FakeExtractionService(error=ExtractionError("blocked", reason=reason))
        orchestrator = make_orchestrator(classifier, user_agents, extraction, cache)

        with pytest.raises(SourceUnavailable) as exc_info:
            await orchestrator.plan(YOUTUBE_URL)

        assert exc_info.value.reason == reason
        assert exc_info.value.status_code == status
        assert (await cache.stats())["entries"] == 0

    async def test_unexpected_extractor_failure(self, classifier, user_agents):
        extraction = FakeExtractionService(error=RuntimeError("extractor crashed"))
        orchestrator = make_orchestrator(classifier, user_agents, extraction)

        with pytest.raises(SourceUnavailable) as exc_info:
            await orchestrator.plan(YOUTUBE_URL)

        assert exc_info.value.status_code == 502


class TestPlan:
    async def test_embeddable_with_playable_stream(self, classifier, user_agents, mp4_candidates):
        orchestrator = make_orchestrator(classifier, user_agents, FakeExtractionService(mp4_candidates))

        plan = await orchestrator.plan(YOUTUBE_URL)

        assert plan.tier == DeliveryTier.DIRECT
        assert plan.stream.url == "https://cdn.example.com/v.mp4"
        assert plan.embed_url == "https://www.youtube.com/embed/dQw4w9WgXcQ"
        assert plan.metadata.title == "Test video"

    async def test_manifests_only_falls_back_to_embed(self, classifier, user_agents):
        candidates = [StreamCandidate(url="https://cdn.example.com/v.m3u8", container="m3u8")]
        orchestrator = make_orchestrator(classifier, user_agents, FakeExtractionService(candidates))

        plan = await orchestrator.plan(YOUTUBE_URL)

        assert plan.tier == DeliveryTier.EMBED
        assert plan.embed_url == "https://www.youtube.com/embed/dQw4w9WgXcQ"
        assert plan.stream is None

    async def test_manifests_only_without_embed_target(self, classifier, user_agents):
        candidates = [StreamCandidate(url="https://cdn.example.com/v.m3u8", container="m3u8")]
        orchestrator = make_orchestrator(classifier, user_agents, FakeExtractionService(candidates))

        with pytest.raises(SourceUnavailable) as exc_info:
            await orchestrator.plan("https://www.youtube.com/about")

        assert exc_info.value.reason == UnavailableReason.NO_CANDIDATES

    async def test_no_extraction_backend_falls_back_to_embed(self, classifier, user_agents):
        orchestrator = make_orchestrator(classifier, user_agents, NullExtractionService())

        plan = await orchestrator.plan(YOUTUBE_URL)

        assert plan.tier == DeliveryTier.EMBED
        assert plan.embed_url == "https://www.youtube.com/embed/dQw4w9WgXcQ"

    async def test_no_extraction_backend_and_no_embed_target(self, classifier, user_agents):
        orchestrator = make_orchestrator(classifier, user_agents, NullExtractionService())

        with pytest.raises(SourceUnavailable) as exc_info:
            await orchestrator.plan("https://www.youtube.com/about")

        assert exc_info.value.reason == UnavailableReason.EXTRACTION_UNAVAILABLE

    async def test_direct_file(self, classifier, user_agents):
        extraction = FakeExtractionService()
        orchestrator = make_orchestrator(classifier, user_agents, extraction)

        plan = await orchestrator.plan(FILE_URL)

        assert plan.tier == DeliveryTier.DIRECT
        assert plan.stream.url == FILE_URL
        assert extraction.calls == 0

    @pytest.mark.parametrize("url", [None, "", "https://example.com/page", "ftp://example.com/a.mp4"])
    async def test_invalid_or_unknown_urls(self, classifier, user_agents, url):
        orchestrator = make_orchestrator(classifier, user_agents, FakeExtractionService())

        with pytest.raises(InvalidRequest):
            await orchestrator.plan(url)


class TestEmbedPlan:
    def test_embed_target(self, classifier, user_agents):
        orchestrator = make_orchestrator(classifier, user_agents, FakeExtractionService())

        plan = orchestrator.embed_plan("https://vimeo.com/76979871")

        assert plan.tier == DeliveryTier.EMBED
        assert plan.embed_url == "https://player.vimeo.com/video/76979871"

    def test_direct_file_has_no_embed_target(self, classifier, user_agents):
        orchestrator = make_orchestrator(classifier, user_agents, FakeExtractionService())

        with pytest.raises(InvalidRequest):
            orchestrator.embed_plan(FILE_URL)

    def test_platform_page_without_id(self, classifier, user_agents):
        orchestrator = make_orchestrator(classifier, user_agents, FakeExtractionService())

        with pytest.raises(SourceUnavailable) as exc_info:
            orchestrator.embed_plan("https://www.youtube.com/about")

        assert exc_info.value.status_code == 404


class TestDeliver:
    async def test_embed_delivery(self, classifier, user_agents):
        orchestrator = make_orchestrator(classifier, user_agents, NullExtractionService())

        delivery = await orchestrator.deliver(YOUTUBE_URL)

        assert delivery.stream is None
        assert delivery.plan.tier == DeliveryTier.EMBED
        assert delivery.attempt.state == DeliveryState.DONE

    async def test_direct_delivery_streams_the_selected_candidate(self, classifier, user_agents, body, mp4_candidates):
        origin = FakeOrigin(body)
        orchestrator = make_orchestrator(classifier, user_agents, FakeExtractionService(mp4_candidates), origin=origin)

        delivery = await orchestrator.deliver(YOUTUBE_URL, RangeRequest.parse("bytes=0-999"))

        assert delivery.attempt.state == DeliveryState.DELIVERING
        assert delivery.stream.status_code == 206
        data = b"".join([chunk async for chunk in delivery.stream.body])
        assert data == body[:1000]
        assert delivery.attempt.state == DeliveryState.DONE
        assert str(origin.last_request.url) == "https://cdn.example.com/v.mp4"

    async def test_failed_delivery(self, classifier, user_agents, body):
        orchestrator = make_orchestrator(classifier, user_agents, FakeExtractionService(), origin=FakeOrigin(body, status_code=404))

        with pytest.raises(SourceUnavailable):
            await orchestrator.deliver(FILE_URL)

    async def test_client_disconnect_closes_upstream(self, classifier, user_agents, body):
        origin = FakeOrigin(body)
        orchestrator = make_orchestrator(classifier, user_agents, FakeExtractionService(), origin=origin)
        orchestrator.proxy.chunk_size = 1000

        stream = await orchestrator.open_direct(FILE_URL)
        await stream.body.__anext__()
        await stream.body.aclose()

        assert origin.streams[0].closed

    async def test_closing_before_first_chunk_releases_upstream(self, classifier, user_agents, body):
        origin = FakeOrigin(body)
        orchestrator = make_orchestrator(classifier, user_agents, FakeExtractionService(), origin=origin)

        stream = await orchestrator.open_direct(FILE_URL)
        await stream.aclose()

        assert origin.streams[0].closed
        assert origin.streams[0].bytes_sent == 0
