"""Test cases for the transport reader."""

import asyncio

import pytest

from sbdmodem.aterror import AtCancelled, AtEndOfStream
from sbdmodem.transport import END_OF_STREAM, TransportReader


class FakeStream:
    def __init__(self, data: bytes = b''):
        self.data = bytearray(data)

    async def read_async(self, size: int = 1) -> bytes:
        chunk = bytes(self.data[:size])
        del self.data[:size]
        return chunk


class BlockingStream:
    async def read_async(self, size: int = 1) -> bytes:
        await asyncio.sleep(3600)


@pytest.mark.asyncio
async def test_read_until_consumes_delimiter():
    reader = TransportReader(FakeStream(b'AT\r\r\nOK\r\n'))
    assert await reader.read_until(b'\r') == b'AT'
    assert await reader.read_until(b'\r\n') == b''
    assert await reader.read_until(b'\r\n') == b'OK'


@pytest.mark.asyncio
async def test_read_until_end_of_stream():
    reader = TransportReader(FakeStream(b'partial'))
    with pytest.raises(AtEndOfStream):
        await reader.read_until(b'\r')


@pytest.mark.asyncio
async def test_read_exact():
    reader = TransportReader(FakeStream(b'\x00\x04test\x01\xc0'))
    assert await reader.read_exact(2) == b'\x00\x04'
    assert await reader.read_exact(4) == b'test'
    with pytest.raises(AtEndOfStream):
        await reader.read_exact(4)


@pytest.mark.asyncio
async def test_read_byte_end_of_stream():
    reader = TransportReader(FakeStream())
    assert await reader.read_byte() == END_OF_STREAM


@pytest.mark.asyncio
async def test_unread_is_read_first():
    reader = TransportReader(FakeStream(b'C'))
    reader.unread(b'B')
    reader.unread(b'A')
    assert await reader.read_exact(3) == b'ABC'


@pytest.mark.asyncio
async def test_cancel_aborts_pending_read():
    canceled = asyncio.Event()
    reader = TransportReader(BlockingStream(), canceled)
    task = asyncio.ensure_future(reader.read_byte())
    await asyncio.sleep(0.01)
    canceled.set()
    with pytest.raises(AtCancelled):
        await asyncio.wait_for(task, timeout=1)


@pytest.mark.asyncio
async def test_canceled_reader_raises_immediately():
    canceled = asyncio.Event()
    canceled.set()
    reader = TransportReader(FakeStream(b'data'), canceled)
    with pytest.raises(AtCancelled):
        await reader.read_byte()
