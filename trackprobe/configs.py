from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from trackprobe.const import DEFAULT_CHUNK_SIZE


class Settings(BaseSettings):
    api_password: str | None = None  # The password for protecting the API endpoints.
    log_level: str = "INFO"  # The logging level to use.
    default_chunk_size: int = Field(
        DEFAULT_CHUNK_SIZE, gt=0, description="Length of a read window when the parser does not ask for one."
    )
    max_bytes_limit: Optional[int] = Field(
        None, gt=0, description="Total bytes one extraction may read before failing. None disables the quota."
    )
    http_timeout: int = Field(60, description="Timeout for HTTP range requests in seconds")

    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/136.0.0.0 Safari/537.36"  # The user agent to use for HTTP requests.
    )

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
