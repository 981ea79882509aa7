"""
Range-Aware Proxy Service.

Fetches a resolved stream URL from its origin and re-serves the bytes with
partial-content semantics the browser can seek with, including origins that
ignore Range headers.

Policy for origins that answer a ranged request with a full 200 body:
when the origin declares Content-Length the proxy slices the requested range
out of the stream itself and answers 206; when the size is unknown it relays
the whole body from byte 0 with status 200 and ``Accept-Ranges: none``.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Optional, Tuple
from urllib.parse import urlsplit

import httpx

from ..domain.classifier import guess_container
from ..domain.errors import (
    InternalStreamingFailure,
    InvalidRequest,
    RangeNotSatisfiable,
    SourceUnavailable,
    UnavailableReason,
    UpstreamUnreachable,
)
from ..domain.interfaces import UserAgentProvider
from ..domain.models import RangeRequest, mime_type_for


DEFAULT_CONTENT_TYPE = "video/mp4"
GENERIC_CONTENT_TYPES = frozenset({"application/octet-stream", "binary/octet-stream", "application/binary", "application/unknown"})

_CONTENT_RANGE_RE = re.compile(r"^\s*bytes\s+(?:(\d+)-(\d+)|\*)\s*/\s*(\d+|\*)\s*$", re.IGNORECASE)


def parse_content_range(value: Optional[str]) -> Tuple[Optional[int], Optional[int], Optional[int]]:
    """Parse ``bytes S-E/N`` (or ``bytes */N``) into (start, end, total); unknown parts are None"""
    if not value:
        return None, None, None
    match = _CONTENT_RANGE_RE.match(value)
    if not match:
        return None, None, None
    start, end, total = match.groups()
    return (
        int(start) if start is not None else None,
        int(end) if end is not None else None,
        int(total) if total and total != "*" else None,
    )


@dataclass
class UpstreamFetch:
    """One in-flight upstream response, owned by a single client request"""
    url: str
    request_headers: Dict[str, str]
    response: httpx.Response

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def content_length(self) -> Optional[int]:
        """Declared Content-Length, None if absent or garbage"""
        value = self.response.headers.get("content-length")
        if value is None:
            return None
        value = value.strip()
        if not (value.isascii() and value.isdigit()):
            return None
        return int(value)

    @property
    def content_range(self) -> Optional[str]:
        return self.response.headers.get("content-range")

    @property
    def accepts_ranges(self) -> bool:
        return self.response.headers.get("accept-ranges", "").strip().lower() == "bytes"

    async def close(self) -> None:
        await self.response.aclose()


@dataclass
class ProxiedStream:
    """Response ready to hand to the HTTP layer"""
    status_code: int
    media_type: str
    body: AsyncIterator[bytes]
    headers: Dict[str, str] = field(default_factory=dict)
    upstream: Optional[UpstreamFetch] = None

    async def aclose(self) -> None:
        """Release the upstream connection whether or not the body was ever iterated"""
        aclose = getattr(self.body, "aclose", None)
        if aclose is not None:
            await aclose()
        if self.upstream is not None:
            await self.upstream.close()


class RangeAwareProxy:
    """Streams upstream media to clients with correct range headers"""

    def __init__(self, http_client: httpx.AsyncClient, user_agents: UserAgentProvider, chunk_size: int = 64 * 1024):
        self.http_client = http_client
        self.user_agents = user_agents
        self.chunk_size = chunk_size
        self.logger = logging.getLogger(__name__)

    async def open_stream(self, stream_url: str, client_range: Optional[RangeRequest] = None) -> ProxiedStream:
        """
        Open the upstream and prepare the client response.

        Errors raised here happen before any byte reaches the client and are
        rendered as structured errors. Errors raised by the returned body
        iterator happen mid-stream and can only end the connection. The
        caller must ``aclose()`` the result once the response is over.
        """
        fetch = await self._fetch(stream_url, client_range)
        try:
            stream = self._prepare_response(fetch, client_range)
        except BaseException:
            await fetch.close()
            raise

        stream.upstream = fetch
        return stream

    def build_upstream_headers(self, stream_url: str, client_range: Optional[RangeRequest] = None) -> Dict[str, str]:
        """Browser-like headers; many origins reject requests without a plausible Referer"""
        parts = urlsplit(stream_url)
        headers = {
            "User-Agent": self.user_agents.next_user_agent(),
            "Referer": f"{parts.scheme}://{parts.netloc}/",
            "Accept": "*/*",
            "Accept-Encoding": "identity",
        }
        if client_range is not None:
            headers["Range"] = client_range.to_header()
        return headers

    async def _fetch(self, stream_url: str, client_range: Optional[RangeRequest]) -> UpstreamFetch:
        headers = self.build_upstream_headers(stream_url, client_range)
        host = urlsplit(stream_url).netloc

        try:
            request = self.http_client.build_request("GET", stream_url, headers=headers)
        except httpx.InvalidURL as e:
            raise InvalidRequest(f"Invalid stream URL: {e}")

        try:
            response = await self.http_client.send(request, stream=True, follow_redirects=True)
        except httpx.TimeoutException as e:
            self.logger.warning(f"Upstream timeout for {host}: {e!r}")
            raise UpstreamUnreachable(f"Timed out connecting to {host}", status_code=503)
        except httpx.HTTPError as e:
            self.logger.warning(f"Upstream connection failed for {host}: {e!r}")
            raise UpstreamUnreachable(f"Could not reach {host}: {e}")

        try:
            fetch = UpstreamFetch(url=str(response.url), request_headers=headers, response=response)
            self.logger.debug(
                f"Upstream {fetch.status_code} for {host} (range={headers.get('Range')}, "
                f"length={fetch.content_length}, content-range={fetch.content_range})"
            )

            if not response.is_success:
                raise self._status_error(fetch)
        except BaseException:
            await response.aclose()
            raise

        return fetch

    def _status_error(self, fetch: UpstreamFetch) -> Exception:
        status = fetch.status_code
        if status == 416:
            _, _, total = parse_content_range(fetch.content_range)
            return RangeNotSatisfiable("Requested range not satisfiable by upstream", total_size=total)
        if status in (401, 403):
            return SourceUnavailable(f"Upstream refused access ({status})", reason=UnavailableReason.FORBIDDEN)
        if status in (404, 410):
            return SourceUnavailable(f"Upstream resource not found ({status})", reason=UnavailableReason.NOT_FOUND)
        return UpstreamUnreachable(f"Upstream responded with status {status}")

    def _prepare_response(self, fetch: UpstreamFetch, client_range: Optional[RangeRequest]) -> ProxiedStream:
        media_type = self._content_type(fetch)
        headers: Dict[str, str] = {}

        encoding = fetch.response.headers.get("content-encoding")
        if encoding and encoding.lower() != "identity":
            headers["Content-Encoding"] = encoding

        declared_length = fetch.content_length

        # Upstream honoured the range: relay verbatim
        if fetch.status_code == 206:
            start, end, _ = parse_content_range(fetch.content_range)
            length = declared_length
            if length is None and start is not None and end is not None:
                length = end - start + 1

            headers["Accept-Ranges"] = "bytes"
            if fetch.content_range:
                headers["Content-Range"] = fetch.content_range
            if length is not None:
                headers["Content-Length"] = str(length)

            return ProxiedStream(206, media_type, self._relay(fetch, limit=length), headers)

        if client_range is not None:
            if declared_length is not None:
                byte_range = client_range.resolve(declared_length)
                self.logger.info(
                    f"Upstream ignored range {client_range.to_header()}, slicing "
                    f"{byte_range.start}-{byte_range.end} of {declared_length} bytes"
                )
                headers["Accept-Ranges"] = "bytes"
                headers["Content-Range"] = byte_range.content_range(declared_length)
                headers["Content-Length"] = str(byte_range.size)
                body = self._relay(fetch, skip=byte_range.start, limit=byte_range.size)
                return ProxiedStream(206, media_type, body, headers)

            self.logger.warning(
                f"Upstream ignored range {client_range.to_header()} and declared no size; "
                "relaying full body without seek support"
            )
            headers["Accept-Ranges"] = "none"
            return ProxiedStream(200, media_type, self._relay(fetch), headers)

        can_serve_ranges = declared_length is not None or fetch.accepts_ranges
        headers["Accept-Ranges"] = "bytes" if can_serve_ranges else "none"
        if declared_length is not None:
            headers["Content-Length"] = str(declared_length)

        return ProxiedStream(200, media_type, self._relay(fetch, limit=declared_length), headers)

    def _content_type(self, fetch: UpstreamFetch) -> str:
        upstream_type = fetch.response.headers.get("content-type", "").strip()
        if upstream_type and upstream_type.split(";")[0].strip().lower() not in GENERIC_CONTENT_TYPES:
            return upstream_type
        return mime_type_for(guess_container(fetch.url)) or DEFAULT_CONTENT_TYPE

    async def _relay(self, fetch: UpstreamFetch, skip: int = 0, limit: Optional[int] = None) -> AsyncIterator[bytes]:
        """
        Copy upstream bytes chunk by chunk.

        Drops the first ``skip`` bytes and stops after ``limit`` bytes. The
        upstream response is closed however the copy ends, including when the
        client disconnects and the server closes this generator.
        """
        remaining = limit
        relayed = 0
        try:
            if remaining == 0:
                return

            async for chunk in fetch.response.aiter_raw(self.chunk_size):
                if skip:
                    if len(chunk) <= skip:
                        skip -= len(chunk)
                        continue
                    chunk = chunk[skip:]
                    skip = 0

                if remaining is not None:
                    chunk = chunk[:remaining]
                    remaining -= len(chunk)

                if chunk:
                    relayed += len(chunk)
                    yield chunk

                if remaining == 0:
                    break

            if remaining:
                raise InternalStreamingFailure(
                    f"Upstream ended early: {relayed} bytes relayed, {remaining} missing"
                )
        except httpx.HTTPError as e:
            self.logger.error(f"Error streaming from {urlsplit(fetch.url).netloc} after {relayed} bytes: {e!r}")
            raise InternalStreamingFailure(f"Upstream failed after {relayed} bytes: {e}") from e
        finally:
            await fetch.close()
            self.logger.debug(f"Upstream closed for {urlsplit(fetch.url).netloc} after {relayed} bytes")
