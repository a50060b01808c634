import struct
from contextlib import asynccontextmanager

import pytest
from aiohttp import ClientResponseError, test_utils, web

from trackprobe import StreamError, extract_tracks
from trackprobe.probe.media_source import HTTPMediaSource, open_media_source

DATA = bytes(range(32))


def _box(name: bytes, payload: bytes = b"") -> bytes:
    return struct.pack(">I4s", 8 + len(payload), name) + payload


def _full_box(name: bytes, payload: bytes) -> bytes:
    return _box(name, bytes(4) + payload)


FTYP = _box(b"ftyp", b"isom\x00\x00\x02\x00isomiso2")
MOOV = _box(
    b"moov",
    _box(
        b"trak",
        _box(
            b"mdia",
            _full_box(b"mdhd", struct.pack(">IIIIHH", 10, 20, 1000, 5000, 0x15C7, 0))
            + _full_box(b"hdlr", struct.pack(">I4s", 0, b"soun") + bytes(12) + b"SoundHandler\x00"),
        ),
    ),
)
MP4 = FTYP + MOOV + _box(b"mdat", bytes(256))


@asynccontextmanager
async def _serve(data: bytes, mode: str = "range"):
    """Serve ``data`` at /media and record the Range header of every request."""
    ranges = []

    async def handle(request):
        header = request.headers.get("Range")
        ranges.append(header)
        if mode == "error":
            return web.Response(status=500)
        if header is None or mode == "ignore_range":
            return web.Response(body=data)

        start, _, end = header.removeprefix("bytes=").partition("-")
        start = int(start)
        stop = min(int(end) + 1, len(data)) if end else len(data)
        if start >= len(data):
            return web.Response(status=416, headers={"Content-Range": f"bytes */{len(data)}"})
        return web.Response(
            status=206,
            body=data[start:stop],
            headers={"Content-Range": f"bytes {start}-{stop - 1}/{len(data)}"},
        )

    app = web.Application()
    app.router.add_get("/media", handle)
    async with test_utils.TestServer(app) as server:
        yield str(server.make_url("/media")), ranges


async def _read_all(source: HTTPMediaSource, offset: int, limit: int | None) -> bytes:
    return b"".join([chunk async for chunk in source.stream(offset=offset, limit=limit)])


@pytest.mark.asyncio
async def test_http_source_requests_byte_range():
    async with _serve(DATA) as (url, ranges):
        data = await _read_all(HTTPMediaSource(url), offset=4, limit=3)

    assert data == DATA[4:7]
    assert ranges == ["bytes=4-6"]


@pytest.mark.asyncio
async def test_http_source_open_ended_range():
    async with _serve(DATA) as (url, ranges):
        data = await _read_all(HTTPMediaSource(url), offset=30, limit=None)

    assert data == DATA[30:]
    assert ranges == ["bytes=30-"]


@pytest.mark.asyncio
async def test_http_source_unsatisfiable_range_is_end_of_source():
    async with _serve(DATA) as (url, ranges):
        data = await _read_all(HTTPMediaSource(url), offset=len(DATA), limit=10)

    assert data == b""
    assert ranges == [f"bytes={len(DATA)}-{len(DATA) + 9}"]


@pytest.mark.asyncio
async def test_extract_tracks_over_http():
    async with _serve(MP4) as (url, ranges):
        tracks = await extract_tracks(url, chunk_size=64)

    assert [(t.type, t.language, t.name) for t in tracks] == [("audio", "eng", "SoundHandler")]
    assert ranges == ["bytes=0-63", f"bytes={len(FTYP)}-{len(FTYP) + len(MOOV) - 1}"]


@pytest.mark.asyncio
async def test_http_error_status_is_stream_error():
    async with _serve(MP4, mode="error") as (url, _):
        with pytest.raises(StreamError) as exc_info:
            await extract_tracks(url, chunk_size=64)

    assert isinstance(exc_info.value.__cause__, ClientResponseError)
    assert exc_info.value.__cause__.status == 500


@pytest.mark.asyncio
async def test_ignored_range_is_stream_error():
    async with _serve(MP4, mode="ignore_range") as (url, ranges):
        with pytest.raises(StreamError) as exc_info:
            await extract_tracks(url, chunk_size=64)

    assert isinstance(exc_info.value.__cause__, ClientResponseError)
    assert exc_info.value.__cause__.status == 200
    assert ranges == ["bytes=0-63", f"bytes={len(FTYP)}-{len(FTYP) + len(MOOV) - 1}"]


def test_any_object_with_stream_is_a_media_source():
    class ChunkSource:
        async def stream(self, offset: int = 0, limit: int | None = None):
            yield DATA[offset:]

    source = ChunkSource()

    assert open_media_source(source) is source
