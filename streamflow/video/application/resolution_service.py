"""
Video Resolution Application Service.

Turns a classified video reference into metadata with playable stream
candidates, consulting the metadata cache before the extraction service.
"""

import logging
from datetime import datetime
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import unquote, urlsplit

from ..domain.classifier import guess_container
from ..domain.errors import ExtractionError, SourceUnavailable, UnavailableReason
from ..domain.interfaces import ExtractionService, MetadataCache
from ..domain.models import SourceKind, StreamCandidate, VideoMetadata, VideoReference, mime_type_for


class ResolutionService:
    """Application service for resolving video metadata"""

    def __init__(self, extraction_service: ExtractionService, metadata_cache: Optional[MetadataCache] = None):
        self.extraction_service = extraction_service
        self.metadata_cache = metadata_cache
        self.logger = logging.getLogger(__name__)

    async def resolve(self, reference: VideoReference) -> VideoMetadata:
        """
        Resolve metadata for a reference.

        Direct files need no extraction. Embeddable sources are served from
        the cache when fresh, otherwise extracted once and cached on success.
        Raises SourceUnavailable when extraction fails or finds nothing.
        """
        if reference.source_kind == SourceKind.DIRECT_FILE:
            return self.direct_file_metadata(reference)

        cached = await self._cached(reference.cache_key)
        if cached is not None:
            return cached

        self.logger.info(f"Extracting streams for {reference.url} via {self.extraction_service.name}")
        try:
            metadata = await self.extraction_service.resolve(reference)
        except ExtractionError as e:
            self.logger.warning(f"Extraction failed for {reference.url}: {e} (reason={e.reason})")
            raise SourceUnavailable(str(e), reason=e.reason)
        except Exception as e:
            self.logger.error(f"Unexpected extraction error for {reference.url}: {e}", exc_info=True)
            raise SourceUnavailable(f"Extraction failed: {e}")

        if not metadata.is_playable:
            self.logger.warning(f"Extraction returned no streams for {reference.url}")
            raise SourceUnavailable("No playable streams found for this video", reason=UnavailableReason.NO_CANDIDATES)

        await self._store(reference.cache_key, metadata)
        return metadata

    def direct_file_metadata(self, reference: VideoReference) -> VideoMetadata:
        """The URL itself is the only candidate"""
        container = guess_container(reference.url)
        filename = PurePosixPath(unquote(urlsplit(reference.url).path)).name
        return VideoMetadata(
            source_kind=SourceKind.DIRECT_FILE,
            candidate_streams=(StreamCandidate(url=reference.url, container=container, mime_type=mime_type_for(container)),),
            title=filename or None,
            resolved_at=datetime.now(),
        )

    async def _cached(self, key: str) -> Optional[VideoMetadata]:
        if not self.metadata_cache:
            return None
        try:
            return await self.metadata_cache.get(key)
        except Exception as e:
            self.logger.error(f"Cache lookup failed for {key}: {e}")
            return None

    async def _store(self, key: str, metadata: VideoMetadata) -> None:
        if not self.metadata_cache:
            return
        try:
            await self.metadata_cache.put(key, metadata)
        except Exception as e:
            self.logger.error(f"Could not cache metadata for {key}: {e}")
