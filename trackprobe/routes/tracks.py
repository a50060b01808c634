from typing import Annotated

from fastapi import APIRouter, Query

from trackprobe.handlers import handle_track_extraction
from trackprobe.schemas import TrackParams, TrackResponse

tracks_router = APIRouter()


@tracks_router.get("/tracks", summary="List the tracks of a media file", response_model=list[TrackResponse])
async def list_tracks(track_params: Annotated[TrackParams, Query()]):
    """Read just enough of a remote MP4 or MKV file to describe its tracks."""
    return await handle_track_extraction(track_params)
