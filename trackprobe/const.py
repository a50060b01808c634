DEFAULT_CHUNK_SIZE = 10 * 1024 * 1024  # 10 MiB

# Box types accepted as the first top-level box of an MP4/MOV file
MP4_TOP_LEVEL_SIGNATURES = frozenset(
    {
        b"ftyp",
        b"moov",
        b"mdat",
        b"free",
        b"skip",
        b"wide",
    }
)

EBML_MAGIC = b"\x1a\x45\xdf\xa3"

# MP4 handler types mapped to track types
HANDLER_TRACK_TYPES = {
    "vide": "video",
    "soun": "audio",
    "subt": "subtitle",
    "sbtl": "subtitle",
    "text": "subtitle",
    "clcp": "subtitle",
}
