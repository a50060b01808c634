"""
Matroska/WebM parser for track enumeration.

Walks the Segment's top-level children until it reaches Tracks, jumping
straight to it when a SeekHead gives its position.
"""

import logging
from dataclasses import dataclass, field
from typing import Union

from trackprobe.const import EBML_MAGIC
from trackprobe.probe.base import BaseParser, DecodeError, ReadRequest, Track
from trackprobe.probe.ebml_parser import (
    CLUSTER,
    SEEK_HEAD,
    TRACKS,
    UNKNOWN_SIZE,
    MKVTrack,
    parse_ebml_header,
    parse_seek_head,
    parse_tracks,
    read_element_header,
)

logger = logging.getLogger(__name__)


@dataclass
class MKVDecodeState:
    header_parsed: bool = False
    segment_data_offset: int = 0  # Absolute byte offset of Segment children
    tracks_found: bool = False
    tracks: list[MKVTrack] = field(default_factory=list)


class MKVParser(BaseParser[MKVDecodeState]):
    """Streaming track parser for EBML-based containers."""

    name = "mkv"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._state = MKVDecodeState()

    def compare(self, chunk: bytes) -> bool:
        return bytes(chunk[:4]) == EBML_MAGIC

    async def decode(self, chunk: bytes) -> Union[ReadRequest, MKVDecodeState]:
        if not chunk:
            return self._state

        state = self._state
        base = self.window.offset
        last = self.is_last_window(chunk)
        pos = 0

        if not state.header_parsed:
            try:
                pos = parse_ebml_header(chunk)
            except ValueError as e:
                raise DecodeError(f"Invalid EBML header: {e}") from e
            state.header_parsed = True
            state.segment_data_offset = base + pos

        while pos < len(chunk):
            try:
                eid, size, data_off = read_element_header(chunk, pos)
            except ValueError:
                if last:
                    return state
                return self.request(base + pos)

            if eid == CLUSTER or size == UNKNOWN_SIZE:
                logger.info("[mkv_parser] Reached element 0x%X at %d before Tracks", eid, base + pos)
                return state

            end = data_off + size
            if eid == TRACKS:
                if end > len(chunk):
                    if last:
                        raise DecodeError(f"Truncated Tracks element at {base + pos}")
                    return self.request(base + pos, end - pos)
                state.tracks = parse_tracks(chunk, data_off, end)
                state.tracks_found = True
                logger.debug(
                    "[mkv_parser] Parsed %d tracks: %s",
                    len(state.tracks),
                    ", ".join(f"#{t.track_number}={t.codec_id}" for t in state.tracks),
                )
                return state

            if eid == SEEK_HEAD and end <= len(chunk):
                positions = parse_seek_head(chunk, data_off, end)
                if TRACKS in positions:
                    target = state.segment_data_offset + positions[TRACKS]
                    if base + pos < target < base + len(chunk):
                        pos = target - base
                        continue
                    if target >= base + len(chunk):
                        logger.debug("[mkv_parser] SeekHead points at Tracks at %d", target)
                        return self.request(target)

            if end > len(chunk):
                if last:
                    return state
                return self.request(base + end)

            pos = end

        if last:
            return state
        return self.request(base + pos)

    async def format(self, decoded: MKVDecodeState) -> list[Track]:
        if not decoded.tracks_found:
            raise DecodeError("No Tracks element found")

        return [
            Track(
                index=index,
                container=self.name,
                type=track.type_name,
                id=track.track_number,
                codec=track.codec_id or None,
                language=track.language_bcp47 or track.language,
                name=track.name or None,
            )
            for index, track in enumerate(decoded.tracks)
        ]
