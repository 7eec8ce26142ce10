"""
| Calculates the SBD binary checksum and frames binary payloads.
| The modem uses the least significant 2 bytes of the summation of the
| entire message, high order byte first.
"""

from base64 import b64decode, b64encode
import binascii
from typing import NamedTuple, Union

LENGTH_SIZE = 2
CHECKSUM_SIZE = 2


class Frame(NamedTuple):
    """A decoded `length || payload || checksum` binary frame."""
    length: int
    payload: bytes
    checksum: int

    @property
    def valid(self) -> bool:
        """True if the checksum trailer agrees with the payload."""
        return checksum_value(self.payload) == self.checksum


def _to_bytes(data: Union[bytes, bytearray, str]) -> bytes:
    if isinstance(data, str):
        return data.encode('ascii')
    return bytes(data)


def checksum_value(data: Union[bytes, bytearray, str]) -> int:
    """Returns the checksum as an integer.

    Args:
        data: the message the checksum is calculated on
    
    Returns:
        The sum of byte values modulo 65536

    """
    return sum(_to_bytes(data)) & 0xffff


def checksum(data: Union[bytes, bytearray, str]) -> bytes:
    """Returns the 2-byte checksum, most significant byte first."""
    return checksum_value(data).to_bytes(CHECKSUM_SIZE, 'big')


def encode_frame(payload: Union[bytes, bytearray, str]) -> bytes:
    """Returns the payload framed as `length || payload || checksum`."""
    payload = _to_bytes(payload)
    if len(payload) > 0xffff:
        raise ValueError('Payload too long for frame ({} bytes)'.format(
            len(payload)))
    return (len(payload).to_bytes(LENGTH_SIZE, 'big')
            + payload + checksum(payload))


def decode_frame(frame: Union[bytes, bytearray]) -> Frame:
    """Decodes a `length || payload || checksum` frame.

    Only the lengths are validated. Checksum verification is left to the
    caller, as the modem itself does not verify it on read.

    Args:
        frame: the raw frame bytes
    
    Returns:
        A Frame tuple
    
    Raises:
        ValueError if the frame is truncated or has trailing data.

    """
    frame = bytes(frame)
    if len(frame) < LENGTH_SIZE + CHECKSUM_SIZE:
        raise ValueError('Frame too short ({} bytes)'.format(len(frame)))
    length = int.from_bytes(frame[:LENGTH_SIZE], 'big')
    expected = LENGTH_SIZE + length + CHECKSUM_SIZE
    if len(frame) != expected:
        raise ValueError('Frame length {} does not match header {}'.format(
            len(frame), expected))
    payload = frame[LENGTH_SIZE:LENGTH_SIZE + length]
    cks = int.from_bytes(frame[-CHECKSUM_SIZE:], 'big')
    return Frame(length, payload, cks)


def to_base64(data: Union[bytes, bytearray]) -> str:
    """Returns the bytes as base64 text."""
    return b64encode(bytes(data)).decode('ascii')


def from_base64(text: str) -> bytes:
    """Returns the bytes of base64 text.

    Raises:
        ValueError if the text is not valid base64.

    """
    try:
        return b64decode(text, validate=True)
    except binascii.Error as e:
        raise ValueError('Invalid base64 payload: {}'.format(e)) from e
