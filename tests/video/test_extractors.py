"""
Tests for extraction adapters and User-Agent providers.
"""

import pytest

from streamflow.video.domain.errors import ExtractionError, UnavailableReason
from streamflow.video.domain.models import SourceKind, VideoReference
from streamflow.video.infrastructure.extractors import NullExtractionService, YtDlpExtractionService, reason_for_message
from streamflow.video.infrastructure.user_agents import DEFAULT_USER_AGENTS, RotatingUserAgentProvider


@pytest.mark.parametrize("message,reason", [
    ("ERROR: [youtube] abc: Private video. Sign in if you've been granted access", UnavailableReason.PRIVATE),
    ("ERROR: [youtube] abc: Sign in to confirm your age", UnavailableReason.AGE_RESTRICTED),
    ("ERROR: The uploader has not made this video available in your country", UnavailableReason.REGION_BLOCKED),
    ("ERROR: This video is not available in your country", UnavailableReason.REGION_BLOCKED),
    ("ERROR: [youtube] abc: Video unavailable", UnavailableReason.NOT_FOUND),
    ("ERROR: HTTP Error 404: Not Found", UnavailableReason.NOT_FOUND),
    ("ERROR: Unable to download webpage: timed out", None),
    ("ERROR: Unable to extract page data", None),
])
def test_reason_for_message(message, reason):
    assert reason_for_message(message) == reason


class TestYtDlpMetadata:
    def test_formats_become_candidates(self):
        info = {
            "title": "Sample",
            "thumbnail": "https://img.example.com/t.jpg",
            "duration": 634,
            "formats": [
                {"url": "https://cdn.example.com/audio.m4a", "ext": "m4a", "acodec": "mp4a", "vcodec": "none"},
                {"url": "https://cdn.example.com/low.mp4", "ext": "mp4", "acodec": "mp4a", "vcodec": "avc1", "height": 360},
                {"url": "https://cdn.example.com/hls.m3u8", "ext": "mp4", "protocol": "m3u8_native", "acodec": "mp4a", "vcodec": "avc1"},
                {"url": "https://cdn.example.com/high.mp4", "ext": "mp4", "acodec": "mp4a", "vcodec": "avc1", "format_note": "720p"},
                {"ext": "mp4", "acodec": "mp4a", "vcodec": "avc1"},
            ],
        }

        metadata = YtDlpExtractionService()._to_metadata(info)

        assert metadata.source_kind == SourceKind.EMBEDDABLE
        assert metadata.title == "Sample"
        assert metadata.duration_seconds == 634.0
        urls = [candidate.url for candidate in metadata.candidate_streams]
        assert urls[:2] == ["https://cdn.example.com/high.mp4", "https://cdn.example.com/low.mp4"]
        assert len(urls) == 4

        by_url = {candidate.url: candidate for candidate in metadata.candidate_streams}
        assert by_url["https://cdn.example.com/hls.m3u8"].container == "m3u8"
        assert by_url["https://cdn.example.com/hls.m3u8"].is_adaptive_manifest
        assert by_url["https://cdn.example.com/low.mp4"].quality_label == "360p"
        assert by_url["https://cdn.example.com/high.mp4"].mime_type == "video/mp4"
        assert not by_url["https://cdn.example.com/audio.m4a"].has_video

    def test_single_url_result(self):
        info = {"title": "Clip", "url": "https://cdn.example.com/clip.webm", "ext": "webm"}

        metadata = YtDlpExtractionService()._to_metadata(info)

        assert [candidate.container for candidate in metadata.candidate_streams] == ["webm"]
        assert metadata.candidate_streams[0].is_progressive

    def test_no_formats(self):
        metadata = YtDlpExtractionService()._to_metadata({"title": "Empty"})

        assert not metadata.is_playable


async def test_null_extraction_service(classifier):
    reference = VideoReference.from_url("https://www.youtube.com/watch?v=abc", classifier)

    with pytest.raises(ExtractionError) as exc_info:
        await NullExtractionService().resolve(reference)

    assert exc_info.value.reason == UnavailableReason.EXTRACTION_UNAVAILABLE


def test_user_agents_rotate():
    provider = RotatingUserAgentProvider()

    seen = [provider.next_user_agent() for _ in range(len(DEFAULT_USER_AGENTS) * 2)]

    assert seen[:len(DEFAULT_USER_AGENTS)] == list(DEFAULT_USER_AGENTS)
    assert seen[len(DEFAULT_USER_AGENTS):] == list(DEFAULT_USER_AGENTS)


def test_configured_user_agents():
    provider = RotatingUserAgentProvider(["agent-a", "agent-b"])

    assert [provider.next_user_agent() for _ in range(3)] == ["agent-a", "agent-b", "agent-a"]
