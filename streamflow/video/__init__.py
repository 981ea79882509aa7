"""
Video Module for the StreamFlow proxy.

Classifies video URLs, resolves them to fetchable streams and re-serves the
bytes with HTTP range support, following clean architecture principles.
"""

from .domain.models import SourceKind, VideoReference, VideoMetadata, StreamCandidate, RangeRequest, StreamRange
from .domain.classifier import SourceClassifier, classify
from .application.proxy_service import RangeAwareProxy
from .application.orchestrator import FallbackOrchestrator
from .integration import VideoModule, create_video_module

__all__ = [
    "SourceKind",
    "VideoReference",
    "VideoMetadata",
    "StreamCandidate",
    "RangeRequest",
    "StreamRange",
    "SourceClassifier",
    "classify",
    "RangeAwareProxy",
    "FallbackOrchestrator",
    "VideoModule",
    "create_video_module",
]
