"""
Video Domain Interfaces.

Abstract interfaces that define contracts for the proxy's collaborators.
These interfaces allow dependency inversion - domain logic doesn't depend on infrastructure.
"""

from abc import ABC, abstractmethod
from typing import Optional

from .models import VideoMetadata, VideoReference


class ExtractionService(ABC):
    """Resolves an embeddable platform page to playable stream candidates"""

    name = "abstract"

    @abstractmethod
    async def resolve(self, reference: VideoReference) -> VideoMetadata:
        """
        Resolve a platform URL.

        May take seconds. Raises ExtractionError on failure, carrying an
        UnavailableReason when the adapter can tell why.
        """
        pass


class MetadataCache(ABC):
    """Shared cache of resolved video metadata"""

    @abstractmethod
    async def get(self, key: str) -> Optional[VideoMetadata]:
        """Get cached metadata, None on miss or expiry"""
        pass

    @abstractmethod
    async def put(self, key: str, metadata: VideoMetadata) -> None:
        """Store successfully resolved metadata"""
        pass

    @abstractmethod
    async def invalidate(self, key: str) -> bool:
        """Drop one entry; returns whether it existed"""
        pass

    @abstractmethod
    async def clear(self) -> int:
        """Drop every entry, returning how many were dropped"""
        pass

    @abstractmethod
    async def sweep(self) -> int:
        """Remove all expired entries, returning how many were removed"""
        pass

    @abstractmethod
    async def stats(self) -> dict:
        """Cache statistics"""
        pass


class UserAgentProvider(ABC):
    """Supplies the browser-like User-Agent sent to upstream origins"""

    @abstractmethod
    def next_user_agent(self) -> str:
        pass
