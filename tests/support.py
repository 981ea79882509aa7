"""
Test doubles: a scriptable upstream origin, a fake extraction service and a
controllable clock.
"""

import re
from datetime import datetime, timedelta
from typing import List, Optional

import httpx

from streamflow.video.domain.interfaces import ExtractionService
from streamflow.video.domain.models import SourceKind, VideoMetadata, VideoReference


TEST_USER_AGENT = "StreamFlowTest/1.0"

_RANGE_RE = re.compile(r"^bytes=(\d*)-(\d*)$")


class TrackingStream(httpx.AsyncByteStream):
    """Upstream body that records how much was read and whether it was closed"""

    def __init__(self, data: bytes, chunk_size: int = 1000, fail_after: Optional[int] = None):
        self.data = data
        self.chunk_size = chunk_size
        self.fail_after = fail_after
        self.bytes_sent = 0
        self.closed = False

    async def __aiter__(self):
        for offset in range(0, len(self.data), self.chunk_size):
            if self.fail_after is not None and offset >= self.fail_after:
                raise httpx.ReadError("connection reset by peer")
            chunk = self.data[offset:offset + self.chunk_size]
            self.bytes_sent += len(chunk)
            yield chunk

    async def aclose(self):
        self.closed = True


class FakeOrigin:
    """MockTransport handler imitating a media origin"""

    def __init__(
        self,
        body: bytes,
        honor_ranges: bool = True,
        declare_length: bool = True,
        declared_length: Optional[int] = None,
        content_type: Optional[str] = "video/mp4",
        status_code: int = 200,
        advertise_ranges: Optional[bool] = None,
        fail_after: Optional[int] = None,
        error: Optional[Exception] = None,
    ):
        self.body = body
        self.honor_ranges = honor_ranges
        self.declare_length = declare_length
        self.declared_length = declared_length
        self.content_type = content_type
        self.status_code = status_code
        self.advertise_ranges = honor_ranges if advertise_ranges is None else advertise_ranges
        self.fail_after = fail_after
        self.error = error
        self.requests: List[httpx.Request] = []
        self.streams: List[TrackingStream] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error

        headers = {}
        if self.content_type:
            headers["content-type"] = self.content_type
        if self.advertise_ranges:
            headers["accept-ranges"] = "bytes"

        if self.status_code != 200:
            return httpx.Response(self.status_code, headers=headers, content=b"upstream error")

        body = self.body
        status = 200
        range_header = request.headers.get("range")
        if self.honor_ranges and range_header:
            size = len(self.body)
            start_str, end_str = _RANGE_RE.match(range_header).groups()
            if start_str:
                start = int(start_str)
                end = min(int(end_str), size - 1) if end_str else size - 1
            else:
                start, end = max(0, size - int(end_str)), size - 1
            if start >= size:
                return httpx.Response(416, headers={"content-range": f"bytes */{size}"})
            body = self.body[start:end + 1]
            status = 206
            headers["content-range"] = f"bytes {start}-{end}/{size}"

        if self.declared_length is not None:
            headers["content-length"] = str(self.declared_length)
        elif self.declare_length:
            headers["content-length"] = str(len(body))

        stream = TrackingStream(body, fail_after=self.fail_after)
        self.streams.append(stream)
        return httpx.Response(status, headers=headers, stream=stream)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]


class FakeExtractionService(ExtractionService):
    """Returns canned metadata or raises a canned error; counts calls"""

    name = "fake"

    def __init__(self, candidates=(), error: Optional[Exception] = None, title: str = "Test video"):
        self.candidates = tuple(candidates)
        self.error = error
        self.title = title
        self.calls = 0

    async def resolve(self, reference: VideoReference) -> VideoMetadata:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return VideoMetadata(
            source_kind=SourceKind.EMBEDDABLE,
            candidate_streams=self.candidates,
            title=self.title,
            thumbnail_url="https://img.example.com/thumb.jpg",
            resolved_at=datetime.now(),
        )


class FakeClock:
    def __init__(self, start: datetime = datetime(2025, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_body(size: int = 5000) -> bytes:
    return bytes(i % 251 for i in range(size))
