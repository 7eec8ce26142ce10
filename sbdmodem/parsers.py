# -*- coding: utf-8 -*-
"""Response decoders for each response shape, in verbose and numeric mode.

The modem does not report its output mode, so it is inferred per response
from the echo of the command and the byte that follows it:

* verbose (``ATV1``): echo ``<cmd><cr>`` then frames ``<cr><lf>text<cr><lf>``
  and a final ``<cr><lf>OK<cr><lf>``
* numeric (``ATV0``): echo ``<cmd><cr>`` then lines ``text<cr><lf>`` and a
  final result code ``0<cr>``

"""

from enum import Enum
import logging
from typing import Tuple

from .aterror import AtUnknownCommand
from .commands import CommandSpec, ResponseShape
from .constants import READY, RESULT_ERROR, UNSOLICITED
from .framing import CHECKSUM_SIZE, LENGTH_SIZE, to_base64
from .transport import TransportReader

CR = b'\r'
LF = b'\n'
CRLF = b'\r\n'

_log = logging.getLogger(__name__)


class Mode(Enum):
    VERBOSE = 'verbose'
    NUMERIC = 'numeric'
    UNSOLICITED = 'unsolicited'


def _decode(data: bytes) -> str:
    return data.decode('ascii', errors='replace')


def detect_mode(command: str, raw: bytes) -> Tuple[Mode, bytes]:
    """Classifies the start of a response.

    Args:
        command: The command line as sent, without terminator (empty for
            a binary ready-state payload, which is not echoed).
        raw: The bytes received up to and including the first carriage
            return, plus the byte that followed it.

    Returns:
        A tuple (mode, remainder) where remainder holds the bytes to push
        back onto the stream for the body parser.

    """
    chunk, _, lookahead = raw.partition(CR)
    sent = command.encode('ascii', errors='replace')
    if sent and chunk == sent:
        if lookahead == CR:
            return Mode.VERBOSE, lookahead
        return Mode.NUMERIC, lookahead
    if (sent and len(chunk) == len(sent) + 1 and chunk.startswith(sent)
            and chunk[-1:].isdigit() and lookahead == LF):
        # numeric ready-state text: status digit follows the echo directly
        return Mode.NUMERIC, chunk[-1:] + CRLF
    if _decode(chunk) in UNSOLICITED:
        return Mode.UNSOLICITED, b'' if lookahead == LF else lookahead
    if not chunk and lookahead == LF:
        return Mode.VERBOSE, CRLF
    if not sent and chunk and lookahead == LF:
        return Mode.NUMERIC, chunk + CRLF
    return Mode.UNSOLICITED, b'' if lookahead == LF else lookahead


async def read_line(reader: TransportReader) -> str:
    return _decode(await reader.read_until(CRLF))


async def read_verbose_line(reader: TransportReader) -> str:
    """Returns the next non-empty `<cr><lf>` terminated line.

    Ring alerts arriving within a response are skipped.

    """
    while True:
        line = await read_line(reader)
        if line in UNSOLICITED:
            _log.warning('Unsolicited data: {}'.format(line))
        elif line:
            return line


async def read_numeric_line(reader: TransportReader) -> str:
    """Returns the next `<cr>` terminated line, skipping ring alerts."""
    while True:
        line = _decode(await reader.read_until(CR))
        if line not in UNSOLICITED:
            return line
        _log.warning('Unsolicited data: {}'.format(line))
        lf = await reader.read_byte()
        if lf != LF:
            reader.unread(lf)


async def read_result(reader: TransportReader, mode: Mode) -> str:
    """Returns the final result token of a response."""
    if mode is Mode.VERBOSE:
        return await read_verbose_line(reader)
    return await read_numeric_line(reader)


async def read_body_line(reader: TransportReader,
                         mode: Mode) -> Tuple[str, bool]:
    """Returns the next body line and True if it was an error result.

    An error result has no body, so in numeric mode it is terminated by
    `<cr>` alone.

    """
    if mode is Mode.VERBOSE:
        line = await read_verbose_line(reader)
        return line, line in RESULT_ERROR
    line = await read_numeric_line(reader)
    if line in RESULT_ERROR:
        return line, True
    lf = await reader.read_byte()
    if lf != LF:
        reader.unread(lf)
    return line, False


async def read_preamble(reader: TransportReader,
                        command: str,
                        log: logging.Logger = None) -> Tuple[Mode, str]:
    """Reads the command echo, skipping unsolicited ring alerts.

    Returns:
        A tuple (mode, echo) where echo is empty if the modem did not echo.

    """
    log = log or _log
    sent = command.encode('ascii', errors='replace')
    while True:
        chunk = await reader.read_until(CR)
        lookahead = await reader.read_byte()
        mode, remainder = detect_mode(command, chunk + CR + lookahead)
        reader.unread(remainder)
        if mode is Mode.UNSOLICITED:
            log.warning('Unsolicited data: {!r}'.format(chunk))
            continue
        echo = command if sent and chunk.startswith(sent) else ''
        if mode is Mode.VERBOSE and not echo:
            line = b''
            while not line:
                line = await reader.read_until(CRLF)
            if _decode(line) in UNSOLICITED:
                log.warning('Unsolicited data: {!r}'.format(line))
                continue
            reader.unread(CRLF + line + CRLF)
        return mode, echo


async def parse_no_payload(reader, mode, spec) -> Tuple[str, str]:
    return '', await read_result(reader, mode)


async def parse_single_payload(reader, mode, spec) -> Tuple[str, str]:
    line, error = await read_body_line(reader, mode)
    if error:
        return '', line
    return line, await read_result(reader, mode)


async def parse_multi_line(reader, mode, spec) -> Tuple[str, str]:
    lines = []
    for _ in range(spec.lines):
        line, error = await read_body_line(reader, mode)
        if error:
            return '\n'.join(lines), line
        lines.append(line)
    return '\n'.join(lines), await read_result(reader, mode)


async def parse_ready_prompt(reader, mode, spec) -> Tuple[str, str]:
    line, error = await read_body_line(reader, mode)
    if error:
        return '', line
    if line == READY:
        return line, ''
    # a status code instead of the prompt e.g. invalid message size
    return line, await read_result(reader, mode)


async def parse_text_read(reader, mode, spec) -> Tuple[str, str]:
    label, error = await read_body_line(reader, mode)
    if error:
        return '', label
    if mode is Mode.VERBOSE:
        body = await read_line(reader)
        return label + body, await read_result(reader, mode)
    body = _decode(await reader.read_until(CR))
    return label + body[:-1], body[-1:]


async def parse_binary_read(reader, mode, spec) -> Tuple[str, str]:
    # a frame length never exceeds 0x0154 so its first byte is never <cr>
    # or a digit, which start a verbose or numeric result instead
    first = await reader.read_byte()
    reader.unread(first)
    if mode is Mode.VERBOSE or first.isdigit():
        line, _ = await read_body_line(reader, mode)
        return '', line
    header = await reader.read_exact(LENGTH_SIZE)
    length = int.from_bytes(header, 'big')
    payload = await reader.read_exact(length)
    cks = await reader.read_exact(CHECKSUM_SIZE)
    following = await reader.read_byte()
    reader.unread(following)
    trailer_mode = Mode.VERBOSE if following == CR else Mode.NUMERIC
    result = await read_result(reader, trailer_mode)
    return to_base64(header + payload + cks), result


async def parse_clock(reader, mode, spec) -> Tuple[str, str]:
    line, error = await read_body_line(reader, mode)
    if error:
        return '', line
    # payload is delimited by a double terminator in both modes
    if mode is Mode.NUMERIC:
        following = await reader.read_byte()
        if following == CR:
            await reader.read_until(LF)
        else:
            reader.unread(following)
    return line, await read_result(reader, mode)


_PARSERS = {
    ResponseShape.NO_PAYLOAD: parse_no_payload,
    ResponseShape.SINGLE_PAYLOAD: parse_single_payload,
    ResponseShape.MULTI_LINE: parse_multi_line,
    ResponseShape.READY_PROMPT: parse_ready_prompt,
    ResponseShape.TEXT_READ: parse_text_read,
    ResponseShape.BINARY_READ: parse_binary_read,
    ResponseShape.CLOCK: parse_clock,
}
assert set(_PARSERS) == set(ResponseShape), 'Unhandled response shape'


async def parse_response(reader: TransportReader,
                         command: str,
                         spec: CommandSpec,
                         log: logging.Logger = None) -> Tuple[str, str, str]:
    """Reads a complete response to a command.

    Args:
        reader: The transport reader positioned after the command was sent.
        command: The command line as sent, without terminator.
        spec: The CommandSpec describing the response shape.
        log: (optional) logger for unsolicited data warnings.

    Returns:
        A tuple (command_echo, response, result).

    Raises:
        AtUnknownCommand if spec is None.
        AtEndOfStream, AtCancelled from the transport.

    """
    if spec is None:
        raise AtUnknownCommand('No response shape for {}'.format(command))
    mode, echo = await read_preamble(reader, command, log)
    response, result = await _PARSERS[spec.shape](reader, mode, spec)
    return echo, response, result
