"""
Video Domain Layer.

Contains pure business logic and domain models for the streaming proxy.
No external dependencies - only Python standard library and domain concepts.
"""

from .models import (
    SourceKind,
    DeliveryTier,
    VideoReference,
    StreamCandidate,
    VideoMetadata,
    CacheEntry,
    RangeRequest,
    StreamRange,
    DeliveryPlan,
)
from .errors import (
    StreamFlowError,
    InvalidRequest,
    SourceUnavailable,
    UpstreamUnreachable,
    RangeNotSatisfiable,
    InternalStreamingFailure,
    ExtractionError,
    UnavailableReason,
)
from .classifier import SourceClassifier, PlatformSpec, classify
from .interfaces import ExtractionService, MetadataCache, UserAgentProvider

__all__ = [
    "SourceKind",
    "DeliveryTier",
    "VideoReference",
    "StreamCandidate",
    "VideoMetadata",
    "CacheEntry",
    "RangeRequest",
    "StreamRange",
    "DeliveryPlan",
    "StreamFlowError",
    "InvalidRequest",
    "SourceUnavailable",
    "UpstreamUnreachable",
    "RangeNotSatisfiable",
    "InternalStreamingFailure",
    "ExtractionError",
    "UnavailableReason",
    "SourceClassifier",
    "PlatformSpec",
    "classify",
    "ExtractionService",
    "MetadataCache",
    "UserAgentProvider",
]
