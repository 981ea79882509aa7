"""
Source Classifier.

Purely syntactic classification of a video URL: embeddable platform page,
direct media file, or unknown. No network access.
"""

import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Callable, Iterable, List, Optional, Sequence
from urllib.parse import parse_qsl, unquote, urlsplit

from .models import SourceKind


MEDIA_EXTENSIONS = frozenset({"mp4", "m4v", "webm", "mov", "mkv", "ogv", "ogg", "avi", "flv", "3gp", "ts"})
MANIFEST_EXTENSIONS = frozenset({"m3u8", "mpd"})
DIRECT_FILE_EXTENSIONS = MEDIA_EXTENSIONS | MANIFEST_EXTENSIONS

_VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


@dataclass(frozen=True)
class ClassifierMatch:
    """Classification result with platform details for embeddable sources"""
    kind: SourceKind
    platform: Optional[str] = None
    video_id: Optional[str] = None
    embed_url: Optional[str] = None


def _query_value(url, *names: str) -> Optional[str]:
    params = dict(parse_qsl(url.query))
    for name in names:
        if params.get(name):
            return params[name]
    return None


def _path_segments(url) -> List[str]:
    return [segment for segment in url.path.split("/") if segment]


def _youtube_id(url) -> Optional[str]:
    segments = _path_segments(url)
    if url.hostname and url.hostname.endswith("youtu.be"):
        return segments[0] if segments else None
    if segments and segments[0] in ("embed", "shorts", "live", "v") and len(segments) > 1:
        return segments[1]
    return _query_value(url, "v")


def _vimeo_id(url) -> Optional[str]:
    for segment in _path_segments(url):
        if segment.isdigit():
            return segment
    return None


def _dailymotion_id(url) -> Optional[str]:
    segments = _path_segments(url)
    if url.hostname and url.hostname.endswith("dai.ly"):
        return segments[0] if segments else None
    if "video" in segments:
        index = segments.index("video")
        if index + 1 < len(segments):
            # dailymotion ids are followed by an optional "_title-slug"
            return segments[index + 1].split("_")[0]
    return None


def _generic_id(url) -> Optional[str]:
    value = _query_value(url, "v", "id", "video_id")
    if value:
        return value
    segments = _path_segments(url)
    return segments[-1] if segments else None


@dataclass(frozen=True)
class PlatformSpec:
    """An embeddable video platform recognized by hostname"""
    platform: str
    domains: Sequence[str]
    embed_url_template: Optional[str] = None
    id_extractor: Callable = _generic_id

    def matches_host(self, host: str) -> bool:
        host = host.lower()
        return any(host == domain or host.endswith("." + domain) for domain in self.domains)

    def embed_url_for(self, video_id: Optional[str]) -> Optional[str]:
        if not video_id or not self.embed_url_template:
            return None
        return self.embed_url_template.format(video_id=video_id)


DEFAULT_PLATFORMS = (
    PlatformSpec(
        platform="youtube",
        domains=("youtube.com", "youtu.be", "youtube-nocookie.com"),
        embed_url_template="https://www.youtube.com/embed/{video_id}",
        id_extractor=_youtube_id,
    ),
    PlatformSpec(
        platform="vimeo",
        domains=("vimeo.com",),
        embed_url_template="https://player.vimeo.com/video/{video_id}",
        id_extractor=_vimeo_id,
    ),
    PlatformSpec(
        platform="dailymotion",
        domains=("dailymotion.com", "dai.ly"),
        embed_url_template="https://www.dailymotion.com/embed/video/{video_id}",
        id_extractor=_dailymotion_id,
    ),
)


def _extension(value: str) -> str:
    return PurePosixPath(unquote(value)).suffix.lstrip(".").lower()


class SourceClassifier:
    """Classifies URLs against a set of embeddable platforms and media extensions"""

    def __init__(self, platforms: Optional[Iterable[PlatformSpec]] = None):
        self.platforms = tuple(DEFAULT_PLATFORMS if platforms is None else platforms)

    def with_platforms(self, extra: Iterable[PlatformSpec]) -> "SourceClassifier":
        return SourceClassifier(tuple(extra) + self.platforms)

    def classify(self, url: str) -> SourceKind:
        return self.match(url).kind

    def match(self, url: str) -> ClassifierMatch:
        """Classify a URL. Never raises; unparsable input is UNKNOWN."""
        try:
            parts = urlsplit((url or "").strip())
            host = parts.hostname
        except (ValueError, AttributeError):
            return ClassifierMatch(SourceKind.UNKNOWN)

        if not host:
            return ClassifierMatch(SourceKind.UNKNOWN)

        for spec in self.platforms:
            if spec.matches_host(host):
                video_id = spec.id_extractor(parts)
                if video_id and not _VIDEO_ID_RE.match(video_id):
                    video_id = None
                return ClassifierMatch(
                    kind=SourceKind.EMBEDDABLE,
                    platform=spec.platform,
                    video_id=video_id,
                    embed_url=spec.embed_url_for(video_id),
                )

        if _extension(parts.path) in DIRECT_FILE_EXTENSIONS:
            return ClassifierMatch(SourceKind.DIRECT_FILE)

        # e.g. /download?file=clip.mp4
        for _, value in parse_qsl(parts.query):
            if _extension(value) in DIRECT_FILE_EXTENSIONS:
                return ClassifierMatch(SourceKind.DIRECT_FILE)

        return ClassifierMatch(SourceKind.UNKNOWN)


_default_classifier = SourceClassifier()


def classify(url: str) -> SourceKind:
    """Classify with the default platform set"""
    return _default_classifier.classify(url)


def guess_container(url: str) -> Optional[str]:
    """Container implied by a URL's file extension, if any"""
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    extension = _extension(parts.path)
    if extension in DIRECT_FILE_EXTENSIONS:
        return extension
    for _, value in parse_qsl(parts.query):
        extension = _extension(value)
        if extension in DIRECT_FILE_EXTENSIONS:
            return extension
    return None
