# -*- coding: utf-8 -*-
"""Primitive reads over an asynchronous serial byte stream.

The stream is any object exposing a coroutine ``read_async(size)`` such as
``aioserial.AioSerial``. An empty read marks the end of the stream.

"""

from asyncio import Event, FIRST_COMPLETED, ensure_future, wait

from .aterror import AtCancelled, AtEndOfStream

END_OF_STREAM = b''


class TransportReader:
    """Reads delimited or fixed-length data one byte at a time.

    Each byte read cooperates with an optional cancellation event so that a
    canceled read returns control immediately instead of blocking the
    command lock.

    Attributes:
        canceled: The cancellation event (optional).

    """

    def __init__(self, stream, canceled: Event = None):
        self._stream = stream
        self.canceled = canceled
        self._pushback = bytearray()

    def unread(self, data: bytes):
        """Pushes bytes back to be returned by the next reads."""
        self._pushback[0:0] = data

    async def read_byte(self) -> bytes:
        """Returns the next byte, or `END_OF_STREAM` if the stream ended.

        Raises:
            AtCancelled if the cancellation event is set.

        """
        if self._pushback:
            byte = bytes(self._pushback[:1])
            del self._pushback[:1]
            return byte
        if self.canceled is None:
            return await self._stream.read_async(1)
        if self.canceled.is_set():
            raise AtCancelled('Read canceled')
        read = ensure_future(self._stream.read_async(1))
        cancel = ensure_future(self.canceled.wait())
        try:
            done, _ = await wait({read, cancel}, return_when=FIRST_COMPLETED)
        finally:
            for task in (read, cancel):
                if not task.done():
                    task.cancel()
        if read in done:
            return read.result()
        raise AtCancelled('Read canceled')

    async def read_until(self, delimiter: bytes) -> bytes:
        """Returns the data preceding the delimiter (which is consumed).

        Raises:
            AtEndOfStream if the stream ends before the delimiter.

        """
        data = bytearray()
        while True:
            byte = await self.read_byte()
            if byte == END_OF_STREAM:
                raise AtEndOfStream('Stream ended before {!r} (read {!r})'
                                    .format(delimiter, bytes(data)))
            data += byte
            if data.endswith(delimiter):
                return bytes(data[:-len(delimiter)])

    async def read_exact(self, size: int) -> bytes:
        """Returns exactly `size` bytes.

        Raises:
            AtEndOfStream if the stream ends first.

        """
        data = bytearray()
        while len(data) < size:
            byte = await self.read_byte()
            if byte == END_OF_STREAM:
                raise AtEndOfStream('Stream ended after {} of {} bytes'
                                    .format(len(data), size))
            data += byte
        return bytes(data)
