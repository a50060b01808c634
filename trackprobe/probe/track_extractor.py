"""
Track extraction orchestrator.

Drives a ByteStream chunk by chunk, binds a parser on the first chunk and
feeds it every delivered window. A parser answers with either a ReadRequest,
which moves the stream window, or its decoded state, which ends streaming and
is formatted into the final track list.
"""

import asyncio
import logging
import os
from typing import Optional, Union

from trackprobe.configs import settings
from trackprobe.const import DEFAULT_CHUNK_SIZE
from trackprobe.probe.base import (
    BaseParser,
    DecodeError,
    QuotaExceededError,
    ReadRequest,
    StreamError,
    Track,
    TrackExtractionError,
    UnsupportedFormatError,
)
from trackprobe.probe.byte_stream import ByteStream
from trackprobe.probe.factory import ParserFactory
from trackprobe.probe.media_source import MediaSource, open_media_source

logger = logging.getLogger(__name__)


class TrackExtractor:
    """Single-use driver for one extraction over one MediaSource."""

    def __init__(
        self,
        source: MediaSource,
        max_bytes_limit: Optional[int] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.stream = ByteStream(source, chunk_size)
        self._max_bytes_limit = max_bytes_limit
        self._chunk_size = chunk_size
        self._parser: Optional[BaseParser] = None
        self._finishing = False
        self._result: Optional[asyncio.Future] = None

    async def run(self) -> list[Track]:
        if self._result is not None:
            raise RuntimeError("TrackExtractor.run() can only be called once")

        self._result = asyncio.get_running_loop().create_future()
        self.stream.on("data", self._on_data)
        self.stream.on("end", self._on_end)
        self.stream.on("error", self._on_error)
        self.stream.on("close", self._on_close)
        self.stream.resume()
        try:
            return await self._result
        finally:
            self.stream.destroy()

    def _read_chunk(self, request: ReadRequest) -> None:
        self.stream.pause()
        self.stream.bytes_offset = request.offset
        self.stream.chunk_size = request.length or self._chunk_size
        self.stream.resume()

    def _fail(self, error: TrackExtractionError) -> None:
        self._finishing = True
        self.stream.destroy()
        if not self._result.done():
            logger.warning("[track_extractor] Extraction failed after %d bytes: %s", self.stream.bytes_read, error)
            self._result.set_exception(error)

    async def _on_data(self, chunk: bytes) -> None:
        if self._result.done():
            return

        limit = self._max_bytes_limit
        if limit and self.stream.bytes_read >= limit:
            return self._fail(QuotaExceededError(limit, self.stream.bytes_read))

        if self._parser is None:
            self._parser = ParserFactory.get_parser(chunk, self._chunk_size)
            if self._parser is None:
                return self._fail(UnsupportedFormatError("This file type is not supported"))

        try:
            decoded = await self._decode(chunk)
        except TrackExtractionError as e:
            return self._fail(e)

        if isinstance(decoded, ReadRequest):
            return self._read_chunk(decoded)

        self._finishing = True
        self.stream.destroy()

        try:
            tracks = await self._format(decoded)
        except TrackExtractionError as e:
            return self._fail(e)

        if not self._result.done():
            logger.info(
                "[track_extractor] %s: %d tracks after reading %d bytes",
                self._parser.name,
                len(tracks),
                self.stream.bytes_read,
            )
            self._result.set_result(tracks)

    async def _on_end(self) -> None:
        # Parsers take an empty chunk as end of source
        await self._on_data(b"")

    async def _on_error(self, exc: Exception) -> None:
        error = StreamError(f"Byte source failed: {exc}")
        error.__cause__ = exc
        self._fail(error)

    def _on_close(self) -> None:
        if not self._finishing and self._result is not None and not self._result.done():
            self._result.set_exception(StreamError("Stream closed before decoding completed"))

    async def _decode(self, chunk: bytes):
        try:
            return await self._parser.decode(chunk)
        except TrackExtractionError:
            raise
        except Exception as e:
            raise DecodeError(f"Failed to decode {self._parser.name} data: {e}") from e

    async def _format(self, decoded) -> list[Track]:
        try:
            return await self._parser.format(decoded)
        except TrackExtractionError:
            raise
        except Exception as e:
            raise DecodeError(f"Failed to format {self._parser.name} tracks: {e}") from e


async def extract_tracks(
    source: Union[str, os.PathLike, bytes, MediaSource],
    max_bytes_limit: Optional[int] = None,
    chunk_size: Optional[int] = None,
) -> list[Track]:
    """
    Extract track metadata from a media container.

    Args:
        source: A local path, an http(s) URL, raw bytes or a MediaSource.
        max_bytes_limit: Total bytes that may be read before failing with
            QuotaExceededError. Defaults to ``settings.max_bytes_limit``.
        chunk_size: Default read window length. Defaults to
            ``settings.default_chunk_size``.

    Returns:
        Tracks in container encounter order.

    Raises:
        UnsupportedFormatError, QuotaExceededError, StreamError, DecodeError
    """
    media_source = open_media_source(source)
    if max_bytes_limit is None:
        max_bytes_limit = settings.max_bytes_limit
    extractor = TrackExtractor(media_source, max_bytes_limit, chunk_size or settings.default_chunk_size)
    return await extractor.run()
