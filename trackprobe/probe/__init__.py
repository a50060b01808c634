"""
Streaming track probing.

Reads just enough of a media container to list its tracks:

- media_source: MediaSource protocol (file, HTTP, memory)
- byte_stream: pausable, re-seekable byte stream over a MediaSource
- mp4_boxes: MP4 box walker and tkhd/mdhd/hdlr/stsd decoders
- mp4_parser: MP4 track parser
- ebml_parser: minimal EBML reader for Matroska/WebM
- mkv_parser: Matroska/WebM track parser
- factory: first-match parser selection
- track_extractor: chunk loop, re-seek handling and track assembly
"""
