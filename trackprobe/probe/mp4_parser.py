"""
MP4 container parser for track enumeration.

Walks the top-level boxes of each delivered window, skipping payload boxes
it does not need and requesting the full moov box once its extent is known.
Every trak inside moov becomes an MP4TrackRecord; ``format`` turns those
records into Tracks.
"""

import logging
import struct
from dataclasses import dataclass, field
from typing import Optional, Union

from trackprobe.const import HANDLER_TRACK_TYPES, MP4_TOP_LEVEL_SIGNATURES
from trackprobe.probe.base import BaseParser, DecodeError, ReadRequest, Track
from trackprobe.probe.mp4_boxes import (
    BoxContainer,
    HDLRBox,
    MDHDBox,
    STSDBox,
    TKHDBox,
    parse_box,
    parse_boxes,
    parse_hdlr_box,
    parse_mdhd_box,
    parse_stsd_box,
    parse_tkhd_box,
)

logger = logging.getLogger(__name__)

# Containers between trak and the boxes that describe it
_TRAK_CONTAINERS = frozenset({"mdia", "minf", "stbl"})


@dataclass
class MP4TrackRecord:
    """Boxes collected from a single trak, any of which may be missing."""

    offset: int = 0
    tkhd: Optional[TKHDBox] = None
    mdhd: Optional[MDHDBox] = None
    hdlr: Optional[HDLRBox] = None
    stsd: Optional[STSDBox] = None


@dataclass
class MP4DecodeState:
    moov_found: bool = False
    tracks: list[MP4TrackRecord] = field(default_factory=list)


def _collect_trak_boxes(data, record: MP4TrackRecord) -> None:
    for box in parse_boxes(data):
        if box.name == "tkhd":
            record.tkhd = parse_tkhd_box(box.data)
        elif box.name == "mdhd":
            record.mdhd = parse_mdhd_box(box.data)
        elif box.name == "hdlr":
            record.hdlr = parse_hdlr_box(box.data)
        elif box.name == "stsd":
            record.stsd = parse_stsd_box(box.data)
        elif box.name in _TRAK_CONTAINERS:
            _collect_trak_boxes(box.data, record)


def decode_moov(moov: BoxContainer, header_size: int = 8) -> list[MP4TrackRecord]:
    """Collect one MP4TrackRecord per trak in a fully loaded moov box."""
    # Extended-size payload views run to the end of the window
    payload = moov.data[: moov.size - header_size]
    records = []
    for box in parse_boxes(payload):
        if box.name != "trak":
            continue
        record = MP4TrackRecord(offset=box.offset)
        _collect_trak_boxes(box.data, record)
        records.append(record)
    return records


class MP4Parser(BaseParser[MP4DecodeState]):
    """Streaming track parser for the ISO base media file format family."""

    name = "mp4"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._state = MP4DecodeState()

    def compare(self, chunk: bytes) -> bool:
        return len(chunk) >= 8 and bytes(chunk[4:8]) in MP4_TOP_LEVEL_SIGNATURES

    async def decode(self, chunk: bytes) -> Union[ReadRequest, MP4DecodeState]:
        if not chunk:
            return self._state

        base = self.window.offset
        last = self.is_last_window(chunk)
        offset = 0

        while offset < len(chunk):
            remaining = len(chunk) - offset
            header_size = 16 if remaining >= 4 and struct.unpack_from(">I", chunk, offset)[0] == 1 else 8
            if remaining < header_size:
                if last:
                    logger.warning("[mp4_parser] Truncated box header at %d", base + offset)
                    return self._state
                return self.request(base + offset)

            box = parse_box(chunk, offset)
            if box.size == 0:
                raise DecodeError(f"Zero-sized box '{box.name}' at {base + offset} is not supported")
            if box.size < 8:
                raise DecodeError(f"Invalid size {box.size} for box '{box.name}' at {base + offset}")

            end = offset + box.size
            if box.name == "moov":
                if end > len(chunk):
                    if last:
                        raise DecodeError(f"Truncated moov box: {box.size} bytes declared, {remaining} available")
                    logger.debug("[mp4_parser] moov at %d needs %d bytes, requesting", base + offset, box.size)
                    return self.request(base + offset, box.size)

                self._state.tracks.extend(decode_moov(box, header_size))
                self._state.moov_found = True
                logger.debug("[mp4_parser] moov decoded, %d trak boxes", len(self._state.tracks))
                return self._state

            if end > len(chunk):
                if last:
                    return self._state
                # Skip the payload without reading it
                logger.debug("[mp4_parser] Skipping '%s' (%d bytes) at %d", box.name, box.size, base + offset)
                return self.request(base + end)

            offset = end

        if last:
            return self._state
        return self.request(base + offset)

    async def format(self, decoded: MP4DecodeState) -> list[Track]:
        if not decoded.moov_found:
            raise DecodeError("No moov box found")

        tracks = []
        for index, record in enumerate(decoded.tracks):
            handler_type = record.hdlr.handler_type if record.hdlr else None
            codec = None
            if record.stsd and record.stsd.entries:
                codec = record.stsd.entries[0].name
            tracks.append(
                Track(
                    index=index,
                    container=self.name,
                    type=HANDLER_TRACK_TYPES.get(handler_type, handler_type or "unknown"),
                    id=record.tkhd.id if record.tkhd else None,
                    codec=codec,
                    language=record.mdhd.language if record.mdhd else None,
                    name=record.hdlr.name if record.hdlr else None,
                    handler_type=handler_type,
                    creation_time=record.tkhd.creation_time if record.tkhd else None,
                    modification_time=record.tkhd.modification_time if record.tkhd else None,
                )
            )
        return tracks
