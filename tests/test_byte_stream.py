import asyncio

import pytest

from trackprobe.probe.byte_stream import ByteStream
from trackprobe.probe.media_source import BytesMediaSource

DATA = bytes(range(10))


class FailingSource:
    async def stream(self, offset: int = 0, limit: int | None = None):
        raise OSError("disk on fire")
        yield b""  # pragma: no cover


@pytest.mark.asyncio
async def test_reads_sequential_windows_until_end():
    stream = ByteStream(BytesMediaSource(DATA), chunk_size=4)
    chunks = []
    done = asyncio.Event()
    stream.on("data", chunks.append).on("end", done.set)

    stream.resume()
    await asyncio.wait_for(done.wait(), timeout=1)

    assert chunks == [DATA[0:4], DATA[4:8], DATA[8:10]]
    assert stream.bytes_read == 10


@pytest.mark.asyncio
async def test_reseek_from_data_listener():
    stream = ByteStream(BytesMediaSource(DATA), chunk_size=3)
    chunks = []
    done = asyncio.Event()

    async def on_data(chunk):
        chunks.append(chunk)
        if len(chunks) == 1:
            stream.pause()
            stream.bytes_offset = 7
            stream.chunk_size = 2
            stream.resume()
        else:
            stream.destroy()

    stream.on("data", on_data).on("close", done.set)
    stream.resume()
    await asyncio.wait_for(done.wait(), timeout=1)

    assert chunks == [DATA[0:3], DATA[7:9]]
    assert stream.bytes_read == 5


@pytest.mark.asyncio
async def test_pause_stops_delivery():
    stream = ByteStream(BytesMediaSource(DATA), chunk_size=2)
    chunks = []

    def on_data(chunk):
        chunks.append(chunk)
        stream.pause()
        stream.pause()

    stream.on("data", on_data)
    stream.resume()
    await asyncio.sleep(0.05)

    assert chunks == [DATA[0:2]]
    assert stream.paused


@pytest.mark.asyncio
async def test_destroy_is_idempotent():
    stream = ByteStream(BytesMediaSource(DATA), chunk_size=4)
    events = []
    stream.on("data", lambda chunk: events.append("data"))
    stream.on("error", lambda exc: events.append("error"))
    stream.on("close", lambda: events.append("close"))

    stream.destroy()
    stream.destroy()
    stream.destroy()
    stream.resume()
    await asyncio.sleep(0.05)

    assert events == ["close"]
    assert stream.destroyed


@pytest.mark.asyncio
async def test_destroy_drops_in_flight_read():
    stream = ByteStream(BytesMediaSource(DATA), chunk_size=4)
    chunks = []
    stream.on("data", chunks.append)

    stream.resume()
    stream.destroy()
    await asyncio.sleep(0.05)

    assert chunks == []
    assert stream.bytes_read == 0


@pytest.mark.asyncio
async def test_source_failure_emits_error():
    stream = ByteStream(FailingSource())
    errors = []
    done = asyncio.Event()

    def on_error(exc):
        errors.append(exc)
        done.set()

    stream.on("error", on_error)
    stream.resume()
    await asyncio.wait_for(done.wait(), timeout=1)

    assert len(errors) == 1
    assert isinstance(errors[0], OSError)


def test_unknown_event_is_rejected():
    stream = ByteStream(BytesMediaSource(DATA))

    with pytest.raises(ValueError):
        stream.on("finish", lambda: None)
