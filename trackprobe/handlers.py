import logging
from dataclasses import asdict

from fastapi import Response
from fastapi.responses import JSONResponse

from .probe.base import (
    DecodeError,
    QuotaExceededError,
    StreamError,
    UnsupportedFormatError,
)
from .probe.track_extractor import extract_tracks
from .schemas import TrackParams, TrackResponse

logger = logging.getLogger(__name__)


def handle_exceptions(exception: Exception) -> Response:
    """
    Handle exceptions and return appropriate HTTP responses.

    Args:
        exception (Exception): The exception that was raised.

    Returns:
        Response: An HTTP response corresponding to the exception type.
    """
    if isinstance(exception, UnsupportedFormatError):
        return Response(status_code=415, content=str(exception))
    elif isinstance(exception, QuotaExceededError):
        return Response(status_code=413, content=str(exception))
    elif isinstance(exception, StreamError):
        logger.error(f"Upstream error while reading media: {exception}")
        return Response(status_code=502, content=f"Upstream service error: {exception}")
    elif isinstance(exception, DecodeError):
        logger.warning(f"Could not decode media: {exception}")
        return Response(status_code=422, content=str(exception))
    else:
        logger.exception(f"Internal server error while handling request: {exception}")
        return Response(status_code=500, content=f"Internal server error: {exception}")


async def handle_track_extraction(track_params: TrackParams) -> Response:
    """
    Extract the tracks of a remote media file.

    Args:
        track_params (TrackParams): Destination URL and optional byte quota.

    Returns:
        Response: JSON list of tracks, or an error response.
    """
    try:
        tracks = await extract_tracks(track_params.destination, max_bytes_limit=track_params.max_bytes_limit)
    except Exception as e:
        return handle_exceptions(e)

    content = [TrackResponse(**asdict(track)).model_dump() for track in tracks]
    return JSONResponse(content=content)
