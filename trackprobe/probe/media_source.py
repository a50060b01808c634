"""
Media source protocol for source-agnostic track extraction.

Decouples the byte stream from any specific transport (local file, HTTP,
memory). Each transport implements the MediaSource protocol to provide
byte-range streaming.
"""

import asyncio
import logging
import os
from collections.abc import AsyncIterator
from typing import Protocol, Union, runtime_checkable
from urllib.parse import urlparse

from aiohttp import ClientResponseError

from trackprobe.utils.http_client import create_aiohttp_session

logger = logging.getLogger(__name__)

# Size of a single read from local files
_FILE_READ_SIZE = 1024 * 1024  # 1 MB


@runtime_checkable
class MediaSource(Protocol):
    """
    Protocol for streaming media byte ranges.

    Implementations provide stream(), an async iterator of bytes from offset/limit.
    """

    async def stream(self, offset: int = 0, limit: int | None = None) -> AsyncIterator[bytes]:
        """
        Stream bytes from the source.

        Args:
            offset: Byte offset to start from.
            limit: Number of bytes to read. None = read to end.

        Yields:
            Chunks of bytes. Nothing is yielded when offset is past the end.
        """
        ...


class FileMediaSource:
    """MediaSource backed by a local file."""

    def __init__(self, path: Union[str, os.PathLike]) -> None:
        self._path = os.fspath(path)

    async def stream(self, offset: int = 0, limit: int | None = None) -> AsyncIterator[bytes]:
        remaining = limit
        with open(self._path, "rb") as f:
            f.seek(offset)
            while remaining is None or remaining > 0:
                size = _FILE_READ_SIZE if remaining is None else min(_FILE_READ_SIZE, remaining)
                chunk = await asyncio.to_thread(f.read, size)
                if not chunk:
                    break
                if remaining is not None:
                    remaining -= len(chunk)
                yield chunk


class HTTPMediaSource:
    """MediaSource backed by HTTP byte-range requests via aiohttp."""

    def __init__(self, url: str, headers: dict | None = None) -> None:
        self._url = url
        self._headers = headers or {}

    async def stream(self, offset: int = 0, limit: int | None = None) -> AsyncIterator[bytes]:
        headers = dict(self._headers)

        if offset > 0 or limit is not None:
            end = ""
            if limit is not None:
                end = str(offset + limit - 1)
            headers["range"] = f"bytes={offset}-{end}"

        async with create_aiohttp_session(headers=headers) as session:
            async with session.get(self._url, allow_redirects=True) as resp:
                # Past the end of the resource there is nothing to deliver
                if resp.status == 416:
                    logger.debug("[media_source] Range %s not satisfiable for %s", headers.get("range"), self._url)
                    return
                resp.raise_for_status()
                # A server that ignores Range answers 200 with the body from byte 0
                if offset > 0 and resp.status != 206:
                    raise ClientResponseError(
                        resp.request_info,
                        resp.history,
                        status=resp.status,
                        message=f"Range request at offset {offset} answered with status {resp.status}",
                        headers=resp.headers,
                    )
                async for chunk in resp.content.iter_any():
                    yield chunk


class BytesMediaSource:
    """MediaSource over an in-memory buffer."""

    def __init__(self, data: bytes, read_size: int = _FILE_READ_SIZE) -> None:
        self._data = bytes(data)
        self._read_size = read_size

    async def stream(self, offset: int = 0, limit: int | None = None) -> AsyncIterator[bytes]:
        end = len(self._data) if limit is None else min(len(self._data), offset + limit)
        for pos in range(offset, end, self._read_size):
            yield self._data[pos : min(pos + self._read_size, end)]


def open_media_source(source: Union[str, os.PathLike, bytes, MediaSource]) -> MediaSource:
    """
    Resolve the caller's input to a MediaSource.

    Accepts an existing MediaSource, raw bytes, an http(s) URL or a local path.
    """
    if isinstance(source, MediaSource):
        return source
    if isinstance(source, (bytes, bytearray, memoryview)):
        return BytesMediaSource(source)
    if isinstance(source, str) and urlparse(source).scheme in ("http", "https"):
        return HTTPMediaSource(source)
    if isinstance(source, (str, os.PathLike)):
        path = os.fspath(source)
        if not os.path.isfile(path):
            raise FileNotFoundError(f"File not found at '{path}'")
        return FileMediaSource(path)
    raise TypeError(f"Unsupported media source type: {type(source).__name__}")
