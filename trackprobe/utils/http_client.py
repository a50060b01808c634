import logging
import typing
from contextlib import asynccontextmanager

from aiohttp import ClientSession, ClientTimeout, TCPConnector

from trackprobe.configs import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_aiohttp_session(
    timeout: typing.Union[int, float, ClientTimeout] = None,
    headers: typing.Optional[typing.Dict[str, str]] = None,
) -> typing.AsyncGenerator[ClientSession, None]:
    """
    Create an aiohttp ClientSession for byte-range reads.

    Args:
        timeout: Request timeout (int/float for total seconds, or ClientTimeout)
        headers: Default headers for the session, merged over the configured user agent

    Yields:
        The open session. It is closed when the context exits.
    """
    if timeout is None:
        timeout_config = ClientTimeout(total=settings.http_timeout)
    elif isinstance(timeout, (int, float)):
        timeout_config = ClientTimeout(total=timeout)
    else:
        timeout_config = timeout

    session_headers = {"user-agent": settings.user_agent}
    session_headers.update(headers or {})

    session = ClientSession(
        connector=TCPConnector(limit=100, limit_per_host=10),
        timeout=timeout_config,
        headers=session_headers,
    )

    try:
        yield session
    finally:
        await session.close()
