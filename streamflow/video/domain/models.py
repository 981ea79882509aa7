"""
Video Domain Models.

Pure business entities and value objects for the streaming proxy.
These models contain no external dependencies and represent core business concepts.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .errors import InvalidRequest, RangeNotSatisfiable


MANIFEST_CONTAINERS = ("m3u8", "mpd")

CONTAINER_MIME_TYPES = {
    "mp4": "video/mp4",
    "m4v": "video/mp4",
    "webm": "video/webm",
    "mov": "video/quicktime",
    "mkv": "video/x-matroska",
    "ogv": "video/ogg",
    "ogg": "video/ogg",
    "avi": "video/x-msvideo",
    "flv": "video/x-flv",
    "3gp": "video/3gpp",
    "ts": "video/mp2t",
    "m3u8": "application/vnd.apple.mpegurl",
    "mpd": "application/dash+xml",
}


def mime_type_for(container: Optional[str]) -> Optional[str]:
    """MIME type for a container name, None if unrecognized"""
    return CONTAINER_MIME_TYPES.get((container or "").lower())


class SourceKind(Enum):
    """How a requested video can be obtained"""
    EMBEDDABLE = "embeddable"
    DIRECT_FILE = "direct_file"
    UNKNOWN = "unknown"


class DeliveryTier(Enum):
    """How the resolved video is handed to the player"""
    DIRECT = "direct"
    EMBED = "embed"


def normalize_url(url: str) -> str:
    """Cache key for a URL: scheme+host lower-cased, path kept, query sorted, fragment dropped"""
    parts = urlsplit(url.strip())
    query = urlencode(sorted(parse_qsl(parts.query, keep_blank_values=True)))
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path, query, ""))


@dataclass(frozen=True)
class VideoReference:
    """Identity of a requested video"""
    url: str
    cache_key: str
    source_kind: SourceKind
    platform: Optional[str] = None
    video_id: Optional[str] = None
    embed_url: Optional[str] = None

    @classmethod
    def from_url(cls, url: Optional[str], classifier) -> "VideoReference":
        """Validate a raw URL and classify it"""
        if not url or not url.strip():
            raise InvalidRequest("URL is required")

        url = url.strip()
        try:
            parts = urlsplit(url)
        except ValueError as e:
            raise InvalidRequest(f"Unparsable URL: {e}")

        if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
            raise InvalidRequest("URL must be an absolute http(s) URL")

        match = classifier.match(url)
        return cls(
            url=url,
            cache_key=normalize_url(url),
            source_kind=match.kind,
            platform=match.platform,
            video_id=match.video_id,
            embed_url=match.embed_url,
        )

    @property
    def origin(self) -> str:
        parts = urlsplit(self.url)
        return f"{parts.scheme}://{parts.netloc}"


@dataclass(frozen=True)
class StreamCandidate:
    """A directly fetchable media stream for a video"""
    url: str
    container: Optional[str] = None
    mime_type: Optional[str] = None
    quality_label: Optional[str] = None
    has_audio: bool = True
    has_video: bool = True

    @property
    def is_adaptive_manifest(self) -> bool:
        return (self.container or "").lower() in MANIFEST_CONTAINERS

    @property
    def is_progressive(self) -> bool:
        """Single file carrying both audio and video, playable by a <video> element"""
        return self.has_audio and self.has_video and not self.is_adaptive_manifest


@dataclass(frozen=True)
class VideoMetadata:
    """Resolved video metadata value object"""
    source_kind: SourceKind
    candidate_streams: Tuple[StreamCandidate, ...] = ()
    title: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration_seconds: Optional[float] = None
    resolved_at: datetime = field(default_factory=datetime.now)

    @property
    def is_playable(self) -> bool:
        """Empty candidate list signals extraction failure"""
        return len(self.candidate_streams) > 0


@dataclass
class CacheEntry:
    """Metadata held by the cache together with its expiry instant"""
    metadata: VideoMetadata
    expires_at: datetime

    @classmethod
    def for_metadata(cls, metadata: VideoMetadata, ttl: timedelta) -> "CacheEntry":
        return cls(metadata=metadata, expires_at=metadata.resolved_at + ttl)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


@dataclass(frozen=True)
class StreamRange:
    """Concrete inclusive byte range within a resource of known size"""
    start: int
    end: int

    def __post_init__(self):
        if self.start < 0:
            raise ValueError("Start byte cannot be negative")
        if self.end < self.start:
            raise ValueError("End byte cannot be less than start byte")

    @property
    def size(self) -> int:
        """Get range size in bytes"""
        return self.end - self.start + 1

    def content_range(self, total_size: Optional[int]) -> str:
        """Content-Range header value"""
        total = str(total_size) if total_size is not None else "*"
        return f"bytes {self.start}-{self.end}/{total}"


@dataclass(frozen=True)
class RangeRequest:
    """
    Byte range asked for by a client's Range header.

    Either ``start`` (with optional inclusive ``end``; absent means to the end
    of the resource) or ``suffix_length`` for the ``bytes=-N`` form.
    """
    start: int = 0
    end: Optional[int] = None
    suffix_length: Optional[int] = None

    def __post_init__(self):
        if self.start < 0:
            raise ValueError("Start byte cannot be negative")
        if self.end is not None and self.end < self.start:
            raise ValueError("End byte cannot be less than start byte")
        if self.suffix_length is not None and self.suffix_length < 0:
            raise ValueError("Suffix length cannot be negative")

    @property
    def is_suffix(self) -> bool:
        return self.suffix_length is not None

    @classmethod
    def parse(cls, range_header: str) -> "RangeRequest":
        """Parse HTTP Range header, raising InvalidRequest when malformed"""
        value = range_header.strip()
        if not value.lower().startswith("bytes="):
            raise InvalidRequest(f"Invalid range header format: {range_header!r}")

        range_spec = value[6:].strip()
        if "," in range_spec:
            raise InvalidRequest("Multiple byte ranges are not supported")
        if "-" not in range_spec:
            raise InvalidRequest(f"Invalid range specification: {range_header!r}")

        start_str, end_str = (part.strip() for part in range_spec.split("-", 1))
        try:
            if not start_str:
                # Suffix range (e.g., "-500" means last 500 bytes)
                if not end_str:
                    raise ValueError("empty range")
                return cls(suffix_length=_parse_offset(end_str))

            start = _parse_offset(start_str)
            end = _parse_offset(end_str) if end_str else None
            return cls(start=start, end=end)
        except ValueError as e:
            raise InvalidRequest(f"Invalid range specification {range_header!r}: {e}")

    def to_header(self) -> str:
        """Equivalent Range header for forwarding upstream"""
        if self.is_suffix:
            return f"bytes=-{self.suffix_length}"
        if self.end is None:
            return f"bytes={self.start}-"
        return f"bytes={self.start}-{self.end}"

    def resolve(self, total_size: int) -> StreamRange:
        """Clamp against the resource size; start beyond the resource is unsatisfiable"""
        if self.is_suffix:
            if total_size <= 0 or self.suffix_length == 0:
                raise RangeNotSatisfiable(f"Suffix range {self.to_header()} not satisfiable", total_size=total_size)
            return StreamRange(start=max(0, total_size - self.suffix_length), end=total_size - 1)

        if self.start >= total_size:
            raise RangeNotSatisfiable(
                f"Range start {self.start} exceeds resource size {total_size}",
                total_size=total_size,
            )

        end = total_size - 1 if self.end is None else min(self.end, total_size - 1)
        return StreamRange(start=self.start, end=end)


def _parse_offset(text: str) -> int:
    if not text.isdigit():
        raise ValueError(f"not a byte offset: {text!r}")
    return int(text)


@dataclass(frozen=True)
class DeliveryPlan:
    """Outcome of resolving a request: what to stream, or where to embed"""
    reference: VideoReference
    tier: DeliveryTier
    stream: Optional[StreamCandidate] = None
    embed_url: Optional[str] = None
    metadata: Optional[VideoMetadata] = None
