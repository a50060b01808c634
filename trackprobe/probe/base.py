"""
Parser contract shared by every container family.

A parser is bound to a single extraction. The orchestrator feeds it one
chunk at a time; ``decode`` answers either with a ``ReadRequest`` for the
next window it needs or with its decoded state, after which ``format``
turns that state into the public ``Track`` list.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

from trackprobe.const import DEFAULT_CHUNK_SIZE


class TrackExtractionError(Exception):
    """Base exception for all track extraction failures."""

    pass


class UnsupportedFormatError(TrackExtractionError):
    """No parser recognised the first chunk."""

    pass


class QuotaExceededError(TrackExtractionError):
    """The extraction read more bytes than it was allowed to."""

    def __init__(self, limit: int, bytes_read: int):
        self.limit = limit
        self.bytes_read = bytes_read
        super().__init__(f"Reached maxBytesLimit of {limit} ({bytes_read} bytes read)")


class StreamError(TrackExtractionError):
    """The underlying byte source failed."""

    pass


class DecodeError(TrackExtractionError):
    """A parser could not decode or format the container data."""

    pass


@dataclass(frozen=True)
class ReadRequest:
    """A byte window ``[offset, offset + length)`` the parser wants delivered next."""

    offset: int
    length: int


@dataclass(frozen=True)
class Track:
    """Metadata for a single track. Terminal result of an extraction."""

    index: int  # Encounter order inside the container
    container: str  # "mp4" or "mkv"
    type: str  # "video", "audio", "subtitle", or the raw handler type
    id: Optional[int] = None
    codec: Optional[str] = None  # e.g. "avc1", "mp4a", "V_MPEG4/ISO/AVC"
    language: Optional[str] = None  # ISO-639-2 code, e.g. "und", "eng"
    name: Optional[str] = None
    handler_type: Optional[str] = None  # MP4 only, e.g. "vide", "soun"
    creation_time: Optional[int] = None  # MP4 only, seconds since 1904-01-01
    modification_time: Optional[int] = None


StateT = TypeVar("StateT")


class BaseParser(ABC, Generic[StateT]):
    """Base class for all container parsers."""

    name: str = ""

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.chunk_size = chunk_size
        # The first window is delivered by the orchestrator before any request
        self._window = ReadRequest(0, chunk_size)

    @property
    def window(self) -> ReadRequest:
        """The window the current chunk was read from."""
        return self._window

    def request(self, offset: int, length: Optional[int] = None) -> ReadRequest:
        """Schedule the next window. ``length`` defaults to the parser's chunk size."""
        self._window = ReadRequest(offset, length or self.chunk_size)
        return self._window

    def is_last_window(self, chunk: bytes) -> bool:
        """A short read means the source ended inside the requested window."""
        return len(chunk) < self._window.length

    @abstractmethod
    def compare(self, chunk: bytes) -> bool:
        """Signature check on the first chunk. Must not change parser state."""
        pass

    @abstractmethod
    async def decode(self, chunk: bytes) -> Union[ReadRequest, StateT]:
        """
        Consume one chunk.

        An empty chunk means the source is exhausted and the parser must return
        its state.
        """
        pass

    @abstractmethod
    async def format(self, decoded: StateT) -> list[Track]:
        """Build the final track list from the decoded state."""
        pass
