from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GenericParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TrackParams(GenericParams):
    destination: str = Field(..., description="The http(s) URL of the media file.", alias="d")
    max_bytes_limit: Optional[int] = Field(
        None, gt=0, description="Total bytes that may be read before giving up. Defaults to the server setting."
    )

    @field_validator("destination")
    def validate_destination(cls, value: str):
        if urlparse(value).scheme not in ("http", "https"):
            raise ValueError("Destination must be an http or https URL")
        return value


class TrackResponse(BaseModel):
    index: int = Field(..., description="Position of the track in the container.")
    container: str = Field(..., description="Container family, 'mp4' or 'mkv'.")
    type: str = Field(..., description="Track type: video, audio, subtitle or the raw handler type.")
    id: Optional[int] = Field(None, description="Track ID (tkhd) or track number (MKV).")
    codec: Optional[str] = Field(None, description="Sample entry type or MKV CodecID.")
    language: Optional[str] = Field(None, description="ISO-639-2 or BCP47 language code.")
    name: Optional[str] = Field(None, description="Human readable track name.")
    handler_type: Optional[str] = Field(None, description="MP4 handler type, e.g. 'vide'.")
    creation_time: Optional[int] = Field(None, description="MP4 creation time in seconds since 1904-01-01.")
    modification_time: Optional[int] = Field(None, description="MP4 modification time in seconds since 1904-01-01.")
