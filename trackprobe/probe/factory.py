import logging
from typing import Optional, Type

from trackprobe.probe.base import BaseParser
from trackprobe.probe.mkv_parser import MKVParser
from trackprobe.probe.mp4_parser import MP4Parser

logger = logging.getLogger(__name__)


class ParserFactory:
    """Factory for binding a container parser to the first chunk of a file."""

    # Candidates are tried in this order
    _parsers: tuple[Type[BaseParser], ...] = (
        MKVParser,
        MP4Parser,
    )

    @classmethod
    def get_parser(cls, chunk: bytes, chunk_size: int) -> Optional[BaseParser]:
        """Return a fresh parser for the first candidate whose signature matches, or None."""
        for parser_class in cls._parsers:
            parser = parser_class(chunk_size)
            if parser.compare(chunk):
                logger.debug("[factory] Selected %s parser", parser.name)
                return parser
        return None
