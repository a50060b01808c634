"""
Minimal EBML/MKV parser for track enumeration.

Parses the EBML header, the Segment's SeekHead and the Tracks element.
Clusters are never read.
"""

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# =============================================================================
# EBML and Matroska element IDs
# =============================================================================

# Top-level
EBML_HEADER = 0x1A45DFA3
SEGMENT = 0x18538067

# SeekHead
SEEK_HEAD = 0x114D9B74
SEEK = 0x4DBB
SEEK_ID = 0x53AB
SEEK_POSITION = 0x53AC

CLUSTER = 0x1F43B675

# Tracks
TRACKS = 0x1654AE6B
TRACK_ENTRY = 0xAE
TRACK_NUMBER = 0xD7
TRACK_UID = 0x73C5
TRACK_TYPE = 0x83
CODEC_ID = 0x86
NAME = 0x536E
LANGUAGE = 0x22B59C
LANGUAGE_BCP47 = 0x22B59D

# Unknown/indeterminate size sentinel
UNKNOWN_SIZE = -1

# MKV Track types
TRACK_TYPE_VIDEO = 1
TRACK_TYPE_AUDIO = 2
TRACK_TYPE_SUBTITLE = 17

TRACK_TYPE_NAMES = {
    TRACK_TYPE_VIDEO: "video",
    TRACK_TYPE_AUDIO: "audio",
    TRACK_TYPE_SUBTITLE: "subtitle",
}

# Language element default when a TrackEntry omits it
DEFAULT_LANGUAGE = "eng"


# =============================================================================
# Low-level EBML parsing
# =============================================================================


def read_vint(data: bytes, pos: int) -> tuple[int, int, int]:
    """
    Read a variable-length integer (VINT) from EBML data.

    Returns:
        (raw_value, value_without_marker, new_pos)
        raw_value includes the VINT marker bit.
        value_without_marker has the marker bit masked off (for element sizes).
    """
    if pos >= len(data):
        raise ValueError(f"EBML VINT: position {pos} beyond data length {len(data)}")

    first = data[pos]
    if first == 0:
        raise ValueError(f"EBML VINT: invalid leading byte 0x00 at pos {pos}")

    length = 1
    mask = 0x80
    while not (first & mask):
        length += 1
        mask >>= 1

    if pos + length > len(data):
        raise ValueError(f"EBML VINT: need {length} bytes at pos {pos}, only {len(data) - pos} available")

    raw = int.from_bytes(data[pos : pos + length], "big")
    value = raw & ~(1 << (7 * length))

    # All value bits set marks an unknown size
    if value == (1 << (7 * length)) - 1:
        value = UNKNOWN_SIZE

    return raw, value, pos + length


def read_element_header(data: bytes, pos: int) -> tuple[int, int, int]:
    """
    Read an element ID and data size.

    Returns:
        (element_id, data_size, data_offset) where data_size may be UNKNOWN_SIZE.
    """
    eid, _, pos = read_vint(data, pos)
    _, size, pos = read_vint(data, pos)
    return eid, size, pos


def read_uint(data: bytes, pos: int, length: int) -> int:
    """Read an unsigned integer of N bytes (big-endian)."""
    return int.from_bytes(data[pos : pos + length], "big")


def read_string(data: bytes, pos: int, length: int) -> str:
    """Read a UTF-8 string of N bytes, stripping null terminators."""
    raw = bytes(data[pos : pos + length])
    return raw.rstrip(b"\x00").decode("utf-8", errors="replace")


def iter_elements(data: bytes, start: int, end: int):
    """
    Iterate over EBML elements within a range.

    Yields:
        (element_id, data_offset, data_size, element_start)
    Stops at the first element whose header cannot be read or whose size is unknown.
    """
    pos = start
    while pos < end:
        try:
            eid, size, data_off = read_element_header(data, pos)
        except ValueError:
            break

        yield eid, data_off, size, pos
        if size == UNKNOWN_SIZE:
            break
        pos = data_off + size


# =============================================================================
# High-level MKV parsing
# =============================================================================


@dataclass
class MKVTrack:
    """Metadata for a single track extracted from the MKV Tracks element."""

    track_number: int = 0
    track_uid: int = 0
    track_type: int = 0  # 1=video, 2=audio, 17=subtitle
    codec_id: str = ""  # e.g. "V_MPEG4/ISO/AVC", "A_EAC3"
    name: str = ""
    language: str = DEFAULT_LANGUAGE  # ISO-639-2
    language_bcp47: str = ""  # Overrides language when present

    @property
    def type_name(self) -> str:
        return TRACK_TYPE_NAMES.get(self.track_type, "unknown")


def parse_ebml_header(data: bytes) -> int:
    """
    Validate the EBML header and find the Segment element.

    Returns:
        Byte offset where the Segment element's data begins (after its header).
    """
    eid, size, pos = read_element_header(data, 0)
    if eid != EBML_HEADER:
        raise ValueError(f"Not an EBML file: expected 0x{EBML_HEADER:X}, got 0x{eid:X}")
    if size == UNKNOWN_SIZE:
        raise ValueError("EBML header has unknown size")

    eid, _size, pos = read_element_header(data, pos + size)
    if eid != SEGMENT:
        raise ValueError(f"Expected Segment element 0x{SEGMENT:X}, got 0x{eid:X}")
    return pos


def parse_seek_head(data: bytes, start: int, end: int) -> dict[int, int]:
    """
    Parse the Seek entries of a SeekHead element's children.

    Returns:
        Dict mapping element_id -> byte_offset (relative to the Segment data start).
    """
    positions = {}
    for seek_eid, seek_off, seek_size, _ in iter_elements(data, start, end):
        if seek_eid != SEEK:
            continue
        seek_id_value = None
        seek_position = None
        for child_eid, child_off, child_size, _ in iter_elements(data, seek_off, seek_off + seek_size):
            if child_eid == SEEK_ID:
                # SeekID holds the raw element ID bytes
                seek_id_value = read_uint(data, child_off, child_size)
            elif child_eid == SEEK_POSITION:
                seek_position = read_uint(data, child_off, child_size)
        if seek_id_value is not None and seek_position is not None:
            positions[seek_id_value] = seek_position
    return positions


def parse_tracks(data: bytes, start: int, end: int) -> list[MKVTrack]:
    """
    Parse the Tracks element children to extract track metadata.

    Args:
        data: Buffer containing the Tracks element children.
        start: Start offset of the Tracks children (after Tracks ID + size).
        end: End offset of the Tracks children.

    Returns:
        List of MKVTrack for each TrackEntry with a track number.
    """
    tracks = []

    for eid, data_off, size, _ in iter_elements(data, start, end):
        if eid != TRACK_ENTRY:
            continue

        track = MKVTrack()
        for child_eid, child_off, child_size, _ in iter_elements(data, data_off, data_off + size):
            if child_eid == TRACK_NUMBER:
                track.track_number = read_uint(data, child_off, child_size)
            elif child_eid == TRACK_UID:
                track.track_uid = read_uint(data, child_off, child_size)
            elif child_eid == TRACK_TYPE:
                track.track_type = read_uint(data, child_off, child_size)
            elif child_eid == CODEC_ID:
                track.codec_id = read_string(data, child_off, child_size)
            elif child_eid == NAME:
                track.name = read_string(data, child_off, child_size)
            elif child_eid == LANGUAGE:
                track.language = read_string(data, child_off, child_size)
            elif child_eid == LANGUAGE_BCP47:
                track.language_bcp47 = read_string(data, child_off, child_size)

        if track.track_number > 0:
            tracks.append(track)

    return tracks
