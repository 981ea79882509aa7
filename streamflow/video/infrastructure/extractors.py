"""
Extraction Service Implementations.

Adapters that resolve platform page URLs into playable stream candidates.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import yt_dlp
from yt_dlp.utils import DownloadError

from ...core.logging_config import get_performance_logger
from ..domain.errors import ExtractionError, UnavailableReason
from ..domain.interfaces import ExtractionService
from ..domain.models import SourceKind, StreamCandidate, VideoMetadata, VideoReference, mime_type_for


# Lower-cased message fragments -> typed reason, checked in order
_ERROR_REASONS = (
    ("private video", UnavailableReason.PRIVATE),
    ("age-restricted", UnavailableReason.AGE_RESTRICTED),
    ("age restricted", UnavailableReason.AGE_RESTRICTED),
    ("confirm your age", UnavailableReason.AGE_RESTRICTED),
    ("inappropriate for some users", UnavailableReason.AGE_RESTRICTED),
    ("available in your country", UnavailableReason.REGION_BLOCKED),
    ("blocked it in your country", UnavailableReason.REGION_BLOCKED),
    ("geo restriction", UnavailableReason.REGION_BLOCKED),
    ("video unavailable", UnavailableReason.NOT_FOUND),
    ("has been removed", UnavailableReason.NOT_FOUND),
    ("does not exist", UnavailableReason.NOT_FOUND),
    ("404", UnavailableReason.NOT_FOUND),
)

_PROTOCOL_CONTAINERS = {
    "m3u8": "m3u8",
    "m3u8_native": "m3u8",
    "http_dash_segments": "mpd",
}


def reason_for_message(message: str) -> Optional[UnavailableReason]:
    """Map an extractor error message to a typed reason"""
    lowered = message.lower()
    for fragment, reason in _ERROR_REASONS:
        if fragment in lowered:
            return reason
    return None


class YtDlpExtractionService(ExtractionService):
    """yt-dlp based extraction, run in a worker thread"""

    name = "yt-dlp"

    def __init__(self, format_selector: str = "best[ext=mp4]/best[ext=webm]/best", socket_timeout_seconds: float = 15):
        self.format_selector = format_selector
        self.socket_timeout_seconds = socket_timeout_seconds
        self.logger = logging.getLogger(__name__)
        self.performance_logger = get_performance_logger("extraction")

    async def resolve(self, reference: VideoReference) -> VideoMetadata:
        """Extract stream candidates without blocking the event loop"""
        started = self.performance_logger.start_timer(f"extract {reference.url}")
        try:
            info = await asyncio.to_thread(self._extract_sync, reference.url)
        finally:
            self.performance_logger.end_timer(f"extract {reference.url}", started)

        return self._to_metadata(info)

    def _extract_sync(self, url: str) -> Dict[str, Any]:
        """Synchronous extraction"""
        ydl_opts = {
            "quiet": True,
            "no_warnings": True,
            "skip_download": True,
            "noplaylist": True,
            "nocheckcertificate": True,
            "format": self.format_selector,
            "socket_timeout": self.socket_timeout_seconds,
        }

        try:
            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                info = ydl.extract_info(url, download=False)
        except DownloadError as e:
            message = str(e)
            raise ExtractionError(message, reason=reason_for_message(message))

        if not info:
            raise ExtractionError(f"No information extracted for {url}")

        if info.get("_type") == "playlist":
            entries = [entry for entry in info.get("entries") or [] if entry]
            if not entries:
                raise ExtractionError(f"Playlist {url} has no entries", reason=UnavailableReason.NO_CANDIDATES)
            info = entries[0]

        return info

    def _to_metadata(self, info: Dict[str, Any]) -> VideoMetadata:
        formats = info.get("formats") or []
        if not formats and info.get("url"):
            formats = [info]

        candidates = [self._to_candidate(fmt) for fmt in formats if fmt.get("url")]

        # yt-dlp lists formats worst to best; progressive streams go first
        candidates.reverse()
        candidates.sort(key=lambda candidate: not candidate.is_progressive)

        duration = info.get("duration")
        return VideoMetadata(
            source_kind=SourceKind.EMBEDDABLE,
            candidate_streams=tuple(candidates),
            title=info.get("title"),
            thumbnail_url=info.get("thumbnail"),
            duration_seconds=float(duration) if duration else None,
            resolved_at=datetime.now(),
        )

    def _to_candidate(self, fmt: Dict[str, Any]) -> StreamCandidate:
        protocol = fmt.get("protocol") or ""
        container = _PROTOCOL_CONTAINERS.get(protocol, fmt.get("ext"))

        quality_label = fmt.get("format_note")
        if not quality_label and fmt.get("height"):
            quality_label = f"{fmt['height']}p"

        return StreamCandidate(
            url=fmt["url"],
            container=container,
            mime_type=mime_type_for(container),
            quality_label=quality_label,
            has_audio=fmt.get("acodec") != "none",
            has_video=fmt.get("vcodec") != "none",
        )


class NullExtractionService(ExtractionService):
    """Used when no extraction backend is configured"""

    name = "none"

    async def resolve(self, reference: VideoReference) -> VideoMetadata:
        raise ExtractionError(
            f"No extraction backend configured for {reference.platform or 'this platform'}",
            reason=UnavailableReason.EXTRACTION_UNAVAILABLE,
        )

