"""
MP4 box walker and box decoders.

Provides:
- parse_box / parse_boxes: generic box traversal over a buffer
- parse_tkhd_box, parse_mdhd_box, parse_hdlr_box, parse_stsd_box: decoders
  for the boxes that describe a track

All integers are big-endian. Decoder offsets are relative to the box payload
(the header has already been stripped by the walker).
"""

import logging
import struct
from collections.abc import Iterator
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# Size + type prefix of every box header
_BOX_HEADER_SIZE = 8

# Header size when the 32-bit size field holds the extended size sentinel
_EXTENDED_BOX_HEADER_SIZE = 16


# =============================================================================
# Box containers
# =============================================================================


@dataclass(frozen=True)
class BoxContainer:
    """One box as found by the walker, payload not yet interpreted."""

    name: str  # 4-character box type, e.g. "moov"
    size: int  # Total box length including its header
    data: memoryview  # Payload bytes (after the header)
    data_size: int  # size - 8, also for extended-size boxes
    offset: int  # Start of the box inside the walked buffer


@dataclass
class Box:
    version: int
    offset: int


@dataclass
class TKHDBox(Box):
    creation_time: int = 0
    modification_time: int = 0
    id: int = 0


@dataclass
class MDHDBox(Box):
    language: str = ""


@dataclass
class HDLRBox(Box):
    handler_type: str = ""
    name: str = ""


@dataclass
class SampleEntry:
    size: int
    name: str
    data: bytes


@dataclass
class STSDBox(Box):
    samples: int = 0
    entries: list[SampleEntry] = field(default_factory=list)


def _read_tag(buffer, start: int) -> str:
    # latin-1 maps every byte to one character, so tags like "\xa9nam" survive
    return bytes(buffer[start : start + 4]).decode("latin-1")


def _read_text(buffer, start: int, end: int) -> str:
    return bytes(buffer[start:end]).decode("utf-8", errors="replace")


# =============================================================================
# Box walker
# =============================================================================


def parse_box(buffer, offset: int = 0) -> BoxContainer:
    """
    Parse the box starting at ``offset``.

    A 32-bit size of 1 means a 64-bit extended size follows the type. For such
    boxes the payload view runs to the end of the buffer, since the real end
    can lie beyond what has been loaded so far.

    Raises:
        ValueError: if the header itself is not inside the buffer.
    """
    view = memoryview(buffer)
    if offset + _BOX_HEADER_SIZE > len(view):
        raise ValueError(f"Box header at {offset} exceeds buffer of {len(view)} bytes")

    size = struct.unpack_from(">I", view, offset)[0]
    name = _read_tag(view, offset + 4)

    if size == 1:
        if offset + _EXTENDED_BOX_HEADER_SIZE > len(view):
            raise ValueError(f"Extended box header at {offset} exceeds buffer of {len(view)} bytes")
        size = struct.unpack_from(">Q", view, offset + 8)[0]
        data = view[offset + _EXTENDED_BOX_HEADER_SIZE :]
    else:
        data = view[offset + _BOX_HEADER_SIZE : offset + size]

    return BoxContainer(
        name=name,
        size=size,
        data=data,
        data_size=size - _BOX_HEADER_SIZE,
        offset=offset,
    )


def parse_boxes(buffer) -> Iterator[BoxContainer]:
    """
    Iterate over sibling boxes in ``buffer``. Does not descend into children.

    Raises:
        ValueError: on a zero-sized box ("extends to end of file"), which is not
            supported.
    """
    offset = 0
    while offset < len(buffer):
        box = parse_box(buffer, offset)
        if box.size == 0:
            raise ValueError(f"Zero-sized box '{box.name}' at {offset} is not supported")
        yield box
        offset += box.size


# =============================================================================
# Box decoders
# =============================================================================


def parse_tkhd_box(buffer, offset: int = 0) -> TKHDBox:
    """
    Parse Track Header box (tkhd).

    Layout: version(1) + flags(3) + creation_time(4) + modification_time(4) + track_id(4)

    Only the 32-bit layout is read; version 1 files get their 64-bit fields
    read as if they were version 0.
    """
    version = buffer[offset]
    creation_time, modification_time, track_id = struct.unpack_from(">III", buffer, offset + 4)
    return TKHDBox(
        version=version,
        offset=offset,
        creation_time=creation_time,
        modification_time=modification_time,
        id=track_id,
    )


def decode_language(packed: int) -> str:
    """Unpack an ISO-639-2 code stored as three 5-bit letters offset by 0x60."""
    return "".join(chr(((packed >> shift) & 0x1F) + 0x60) for shift in (10, 5, 0))


def parse_mdhd_box(buffer, offset: int = 0) -> MDHDBox:
    """
    Parse Media Header box (mdhd) for the track language.

    The packed language follows creation/modification time, timescale and
    duration, which are 64-bit wide in version 1.
    """
    version = buffer[offset]
    language_offset = offset + (32 if version == 1 else 20)
    packed = struct.unpack_from(">H", buffer, language_offset)[0]
    return MDHDBox(version=version, offset=offset, language=decode_language(packed))


def parse_hdlr_box(buffer, offset: int = 0) -> HDLRBox:
    """
    Parse Handler Reference box (hdlr).

    Layout: version(1) + flags(3) + pre_defined(4) + handler_type(4) + reserved(12) + name
    The final byte of the buffer (name terminator) is dropped.
    """
    version = buffer[offset]
    handler_type_offset = offset + 8
    handler_type = _read_tag(buffer, handler_type_offset)
    name_offset = handler_type_offset + 4 + 12
    name = _read_text(buffer, name_offset, len(buffer) - 1)
    return HDLRBox(version=version, offset=offset, handler_type=handler_type, name=name)


def parse_stsd_box(buffer, offset: int = 0) -> STSDBox:
    """
    Parse Sample Description box (stsd).

    Layout: version(1) + flags(3) + entry_count(4) + entries

    Entry ``i`` (1-based) is read with fixed strides: size at 8*i, type at
    [12*i, 16*i), data from 16*i. This lines up with the real layout for the
    first entry only.
    """
    version = buffer[offset]
    samples = struct.unpack_from(">I", buffer, offset + 4)[0]

    entries = []
    for i in range(1, samples + 1):
        size = struct.unpack_from(">I", buffer, offset + 8 * i)[0]
        name = _read_text(buffer, offset + 12 * i, offset + 16 * i)
        data = bytes(buffer[offset + 16 * i : offset + 16 * i + size])
        entries.append(SampleEntry(size=size, name=name, data=data))

    return STSDBox(version=version, offset=offset, samples=samples, entries=entries)
