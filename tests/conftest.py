"""
Shared fixtures for the StreamFlow test suite.
"""

import pytest

from streamflow.video.domain.classifier import PlatformSpec, SourceClassifier
from streamflow.video.domain.models import StreamCandidate
from streamflow.video.infrastructure.user_agents import FixedUserAgentProvider

from support import TEST_USER_AGENT, FakeClock, make_body


@pytest.fixture
def body() -> bytes:
    return make_body()


@pytest.fixture
def user_agents():
    return FixedUserAgentProvider(TEST_USER_AGENT)


@pytest.fixture
def classifier():
    """Default platforms plus a generic platform used by scenario tests"""
    return SourceClassifier().with_platforms([
        PlatformSpec(platform="example-platform", domains=("platform.example",), embed_url_template="https://platform.example/embed/{video_id}"),
    ])


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mp4_candidates():
    return (
        StreamCandidate(url="https://cdn.example.com/v.m3u8", container="m3u8"),
        StreamCandidate(url="https://cdn.example.com/v.webm", container="webm", quality_label="480p"),
        StreamCandidate(url="https://cdn.example.com/v.mp4", container="mp4", quality_label="360p"),
    )
