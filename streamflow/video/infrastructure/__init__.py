"""
Video Infrastructure Layer.

Contains implementations of domain interfaces using external dependencies
like yt-dlp and in-process caches.
"""

from .caching import InMemoryMetadataCache, NoOpMetadataCache
from .extractors import YtDlpExtractionService, NullExtractionService
from .user_agents import RotatingUserAgentProvider, FixedUserAgentProvider

__all__ = [
    "InMemoryMetadataCache",
    "NoOpMetadataCache",
    "YtDlpExtractionService",
    "NullExtractionService",
    "RotatingUserAgentProvider",
    "FixedUserAgentProvider",
]
