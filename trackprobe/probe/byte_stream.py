"""
Pausable, re-seekable byte stream over a MediaSource.

The stream delivers one window ``[bytes_offset, bytes_offset + chunk_size)``
per read. Listeners get random access by pausing the stream, moving the
window and resuming it; there is no direct seek call.

Signals:
  data(chunk)  one delivered window
  error(exc)   the source failed
  end()        the window started past the end of the source
  close()      the stream was destroyed
"""

import asyncio
import inspect
import logging
from collections import defaultdict
from contextlib import aclosing
from typing import Callable

from trackprobe.const import DEFAULT_CHUNK_SIZE
from trackprobe.probe.media_source import MediaSource

logger = logging.getLogger(__name__)

_EVENTS = frozenset({"data", "error", "end", "close"})


class ByteStream:
    """
    Sequential byte stream with pause/resume driven random access.

    Only one read is ever in flight. ``data`` and ``error`` listeners may be
    coroutine functions; they are awaited before the stream moves on, so a
    listener can re-seek from inside its callback. ``close`` listeners are
    called synchronously from ``destroy()``.
    """

    def __init__(self, source: MediaSource, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self._source = source
        self.bytes_offset = 0
        self.chunk_size = chunk_size
        self.bytes_read = 0
        self._paused = True
        self._destroyed = False
        self._generation = 0
        self._read_task: asyncio.Task | None = None
        self._listeners: dict[str, list[Callable]] = defaultdict(list)

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def on(self, event: str, listener: Callable) -> "ByteStream":
        if event not in _EVENTS:
            raise ValueError(f"Unknown stream event: {event}")
        self._listeners[event].append(listener)
        return self

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        if self._destroyed or not self._paused:
            return
        self._paused = False
        self._generation += 1
        self._read_task = asyncio.get_running_loop().create_task(self._run(self._generation))

    def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        self._paused = True
        task = self._read_task
        self._read_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
        logger.debug("[byte_stream] Destroyed after %d bytes", self.bytes_read)
        for listener in list(self._listeners["close"]):
            listener()

    def _is_current(self, generation: int) -> bool:
        return not self._destroyed and not self._paused and generation == self._generation

    async def _run(self, generation: int) -> None:
        while self._is_current(generation):
            offset, length = self.bytes_offset, self.chunk_size
            try:
                chunk = await self._read_window(offset, length)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if not self._destroyed:
                    logger.warning("[byte_stream] Read of %d bytes at %d failed: %s", length, offset, e)
                    self._paused = True
                    await self._emit("error", e)
                return

            # A pause or re-seek issued while reading drops this window
            if not self._is_current(generation):
                return

            if not chunk:
                self._paused = True
                await self._emit("end")
                return

            self.bytes_read += len(chunk)
            self.bytes_offset = offset + len(chunk)
            await self._emit("data", chunk)

    async def _read_window(self, offset: int, length: int) -> bytes:
        data = bytearray()
        async with aclosing(self._source.stream(offset=offset, limit=length)) as pieces:
            async for piece in pieces:
                data.extend(piece)
                # Sources that ignore the limit are cut off here
                if len(data) >= length:
                    break
        return bytes(data[:length])

    async def _emit(self, event: str, *args) -> None:
        for listener in list(self._listeners[event]):
            if self._destroyed:
                return
            result = listener(*args)
            if inspect.isawaitable(result):
                await result
