# -*- coding: utf-8 -*-
"""AT command protocol (asyncio) for Iridium SBD satellite modems.

This module provides an async serial interface that sends AT commands to a
9602/9603 transceiver (e.g. RockBLOCK) and decodes the responses, in either
verbose or numeric output mode.
Based on the AioSerial package.

"""

from aioserial import AioSerial
from asyncio import CancelledError, Event, Lock, TimeoutError, wait_for
from datetime import datetime, timedelta, timezone
import logging
from time import time
from typing import Callable, NamedTuple, Optional, Union

from .aterror import (
    AtConnectionAlreadyEstablished,
    AtConnectionFault,
    AtException,
    AtNotConnected,
    AtTimeout,
    AtUnexpectedCommandSequence,
    AtUnknownCommand,
)
from .commands import (
    BINARY_WRITE_PREFIX,
    COMMAND_TABLE,
    CommandSpec,
    CommandTable,
    ResponseShape,
    normalize,
)
from .config import SerialSettings
from .connection import ConnectionSignals, ConnectionState, Latch
from .constants import (
    COMMAND_TIMEOUT,
    HANDSHAKE_TIMEOUT,
    READY,
    RESULT_OK,
    WRITE_BINARY,
    WRITE_TEXT,
)
from .framing import checksum, from_base64
from .parsers import parse_response
from .transport import TransportReader
from .utils import get_wrapping_logger, list_serial_ports, validate_serial_port

LOGGING_VERBOSE_LEVEL = 9
logging.addLevelName(LOGGING_VERBOSE_LEVEL, 'VERBOSE')
def verbose(self, message, *args, **kwargs):
    if self.isEnabledFor(LOGGING_VERBOSE_LEVEL):
        self._log(LOGGING_VERBOSE_LEVEL, message, args, **kwargs)
logging.Logger.verbose = verbose
logging.VERBOSE = LOGGING_VERBOSE_LEVEL

HANDSHAKE_COMMAND = 'AT'
WRITE_STATUS_SPEC = CommandSpec(ResponseShape.SINGLE_PAYLOAD)
TEXT_READY_STATE = 'text'
BINARY_READY_STATE = 'binary'
#: Iridium system time epoch, ticks are 90 milliseconds
IRIDIUM_EPOCH = datetime(2014, 5, 11, 14, 23, 55, tzinfo=timezone.utc)


def _printable(data: Union[str, bytes]) -> str:
    if isinstance(data, bytes):
        data = data.decode('ascii', errors='backslashreplace')
    return data.replace('\r', '<cr>').replace('\n', '<lf>')


def _open_serial(settings: SerialSettings) -> AioSerial:
    return AioSerial(**settings.serial_kwargs())


def _text_payload(text: str) -> str:
    if not isinstance(text, str):
        raise ValueError('Text payload must be a string')
    if '\r' in text or not text.isascii():
        raise ValueError('Text payload must be ASCII without <cr>')
    return text


def _binary_payload(payload: Union[bytes, bytearray, str]) -> bytes:
    """Returns raw bytes from raw bytes or base64 text."""
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)
    if isinstance(payload, str):
        return from_base64(payload)
    raise ValueError('Binary payload must be bytes or base64 text')


class ExecutionResult(NamedTuple):
    """The decoded response to a command.

    Attributes:
        command: The modem's echo of the command (empty if not echoed)
        response: The command-specific response body
        result: The final result token e.g. `OK`, `ERROR`, `0`, `4`

    """
    command: str
    response: str
    result: str

    @property
    def ok(self) -> bool:
        return self.result in RESULT_OK


class SbdModemAsyncioClient:
    """An Iridium short burst data modem connected by serial.

    Only one command is in flight at a time. Any failure while executing a
    command faults the client permanently: the serial port is released and
    a new client must be created to reconnect.

    Attributes:
        command_table: The CommandTable used to decode responses
        command_timeout: Maximum seconds for a command round trip
        handshake_timeout: Maximum seconds for the connect probe
        settings: The SerialSettings of the connected port
        signals: The ConnectionSignals latches

    """

    def __init__(self,
                 command_table: CommandTable = COMMAND_TABLE,
                 serial_factory: Callable = _open_serial,
                 command_timeout: float = COMMAND_TIMEOUT,
                 handshake_timeout: float = HANDSHAKE_TIMEOUT,
                 logger: logging.Logger = None,
                 log_level: int = logging.INFO):
        """Initializes the class.

        Args:
            command_table: (optional) table of supported commands
            serial_factory: (optional) callable returning an AioSerial-like
                stream for a SerialSettings
            command_timeout: Maximum seconds for any command
            handshake_timeout: Maximum seconds for the connect probe
            logger: (optional) external logger to use
            log_level: Level for the logger to record

        """
        self._log = logger or get_wrapping_logger(log_level=log_level)
        self.command_table = command_table
        self.command_timeout = command_timeout
        self.handshake_timeout = handshake_timeout
        self.settings = None
        self.serialport = None
        self.signals = ConnectionSignals()
        self.pending_command = None
        self.pending_command_time = None
        self._serial_factory = serial_factory
        self._reader = None
        self._lock = Lock()
        self._canceled = Event()
        self._connect_called = False
        self._ready_state = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.dispose()

    @property
    def connected(self) -> Latch:
        return self.signals.connected

    @property
    def disconnected(self) -> Latch:
        return self.signals.disconnected

    @property
    def faulted(self) -> Latch:
        return self.signals.faulted

    @property
    def canceled(self) -> Latch:
        return self.signals.canceled

    @property
    def state(self) -> ConnectionState:
        return self.signals.state

    async def wait_for_state(self, state: ConnectionState) -> ConnectionState:
        """Waits until the connection has progressed to at least `state`."""
        return await self.signals.wait_for_state(state)

    def _close_port(self):
        if self.serialport is not None:
            self._log.debug('Closing serial port {}'.format(
                self.settings.port if self.settings else ''))
            try:
                self.serialport.close()
            except OSError as e:
                self._log.warning('Error closing serial port: {}'.format(e))
            self.serialport = None
        self._reader = None

    def dispose(self):
        """Releases the serial port and resolves pending signals.

        Safe to call more than once.
        """
        if self.signals.dispose():
            self._log.debug('Disposing client ({})'.format(self.state.name))
        self._canceled.set()
        self._ready_state = None
        self._close_port()

    close = dispose
    disconnect = dispose

    def _fault(self, error: Exception):
        self._log.error('Connection faulted: {}'.format(error))
        self._ready_state = None
        self.signals.mark_faulted()
        self._close_port()

    async def connect(self,
                      port: str = None,
                      settings: SerialSettings = None) -> bool:
        """Connects to the first serial port with a responding modem.

        Args:
            port: (optional) a specific port, otherwise all ports are probed
            settings: (optional) line parameters (default 19200 8N1)

        Returns:
            True if connected, False if no port responded (faulted).

        Raises:
            AtConnectionAlreadyEstablished if called more than once.
            AtNotConnected if the client was disposed.
            ValueError if the port does not exist (faulted) or the line
                parameters are invalid (no state change).

        """
        if self._connect_called or self.signals.connected.is_set:
            raise AtConnectionAlreadyEstablished('Connect already called')
        if self.signals.canceled.is_set:
            raise AtNotConnected('Client disposed')
        settings = settings or SerialSettings()
        if port is not None:
            settings = settings.with_port(port)
        self._connect_called = True
        if settings.port is not None:
            valid, detail = validate_serial_port(settings.port, verbose=True)
            if not valid:
                err_msg = 'Serial port {} not found. {}'.format(
                    settings.port, detail)
                self._log.error(err_msg)
                self.signals.mark_faulted()
                raise ValueError(err_msg)
            candidates = [settings]
        else:
            candidates = [settings.with_port(p) for p in list_serial_ports()]
        for candidate in candidates:
            if await self._probe(candidate):
                self.settings = candidate
                self.signals.mark_connected()
                self._log.info('Connected to modem on {}'.format(
                    candidate.port))
                return True
        self._log.error('No modem responded on {}'.format(
            [c.port for c in candidates]))
        self.signals.mark_faulted()
        return False

    async def _probe(self, settings: SerialSettings) -> bool:
        """Opens the port and checks the modem responds to `AT`."""
        self._log.debug('Probing {}'.format(settings))
        try:
            self.serialport = self._serial_factory(settings)
        except (OSError, ValueError) as e:
            self._log.warning('Unable to open {}: {}'.format(settings.port, e))
            return False
        self.settings = settings
        self._reader = TransportReader(self.serialport, self._canceled)
        try:
            result = await wait_for(self._transact(HANDSHAKE_COMMAND),
                                    timeout=self.handshake_timeout)
        except (AtException, OSError, TimeoutError) as e:
            self._log.warning('No handshake on {}: {}'.format(
                settings.port, e or type(e).__name__))
            self._close_port()
            return False
        if (result.command in (HANDSHAKE_COMMAND, '')
                and result.response == '' and result.ok):
            return True
        self._log.warning('Unexpected handshake on {}: {}'.format(
            settings.port, result))
        self._close_port()
        return False

    async def _send(self, data: bytes):
        """Writes the data to the serial port."""
        self.pending_command_time = time()
        self._log.verbose('Sending {}'.format(_printable(data)))
        await self.serialport.write_async(data)

    async def _receive(self, command: str, spec: CommandSpec) -> ExecutionResult:
        echo, response, result = await parse_response(
            self._reader, command, spec, self._log)
        execution = ExecutionResult(echo, response, result)
        self._log.verbose('Received {} ({:.1f}s)'.format(
            execution, time() - self.pending_command_time))
        return execution

    async def _transact(self, command: str) -> ExecutionResult:
        spec = self.command_table.lookup(command)
        if spec is None:
            raise AtUnknownCommand('Unrecognized command {}'.format(command))
        self.pending_command = command
        await self._send((command + '\r').encode('ascii'))
        return await self._receive(command, spec)

    async def _run_locked(self, operation: Callable, *args) -> ExecutionResult:
        """Runs an operation under the command lock, faulting on any error."""
        if not self.signals.usable:
            raise AtNotConnected('Modem not connected ({})'.format(
                self.state.name))
        async with self._lock:
            if not self.signals.usable:
                raise AtNotConnected('Modem not connected ({})'.format(
                    self.state.name))
            try:
                return await wait_for(operation(*args),
                                      timeout=self.command_timeout)
            except TimeoutError as e:
                err = AtTimeout('AT timeout {} after {} seconds'.format(
                    self.pending_command, self.command_timeout))
                self._fault(err)
                raise err from e
            except AtNotConnected as e:
                self._fault(e)
                raise
            except CancelledError:
                self._fault(AtConnectionFault('{} canceled'.format(
                    self.pending_command)))
                raise
            except Exception as e:
                err = AtConnectionFault('{} failed: {}'.format(
                    self.pending_command, e))
                self._fault(err)
                raise err from e

    async def _execute(self, command: str) -> ExecutionResult:
        if self._ready_state is not None:
            raise AtUnexpectedCommandSequence(
                '{} issued while modem awaits a {} payload'.format(
                    command, self._ready_state[0]))
        execution = await self._transact(command)
        spec = self.command_table.lookup(command)
        if spec.shape is ResponseShape.READY_PROMPT and execution.response == READY:
            self._ready_state = self._ready_state_of(command)
        return execution

    @staticmethod
    def _ready_state_of(command: str) -> tuple:
        key = normalize(command)
        if key.startswith(BINARY_WRITE_PREFIX):
            try:
                return (BINARY_READY_STATE,
                        int(key[len(BINARY_WRITE_PREFIX):]))
            except ValueError as e:
                raise AtUnexpectedCommandSequence(
                    'READY for invalid length {}'.format(command)) from e
        return (TEXT_READY_STATE, None)

    async def _ready_text(self, text: str) -> ExecutionResult:
        if self._ready_state is None or self._ready_state[0] != TEXT_READY_STATE:
            raise AtUnexpectedCommandSequence(
                'Text payload without a pending {}'.format(WRITE_TEXT))
        self._ready_state = None
        self.pending_command = text
        await self._send((text + '\r').encode('ascii'))
        return await self._receive(text, WRITE_STATUS_SPEC)

    async def _ready_binary(self, data: bytes) -> ExecutionResult:
        if (self._ready_state is None
                or self._ready_state[0] != BINARY_READY_STATE):
            raise AtUnexpectedCommandSequence(
                'Binary payload without a pending {}'.format(
                    BINARY_WRITE_PREFIX))
        expected = self._ready_state[1]
        if len(data) != expected:
            raise AtUnexpectedCommandSequence(
                'Binary payload of {} bytes but {} declared'.format(
                    len(data), expected))
        self._ready_state = None
        self.pending_command = '<{} bytes>'.format(len(data))
        await self._send(data + checksum(data))
        return await self._receive('', WRITE_STATUS_SPEC)

    async def _write_text(self, text: str) -> ExecutionResult:
        prompt = await self._execute(WRITE_TEXT)
        if prompt.response != READY:
            return prompt
        return await self._ready_text(text)

    async def _write_binary(self, data: bytes) -> ExecutionResult:
        prompt = await self._execute(WRITE_BINARY.format(len(data)))
        if prompt.response != READY:
            return prompt
        return await self._ready_binary(data)

    async def execute_command(self, command: str) -> ExecutionResult:
        """Submits an AT command and returns the decoded response.

        Args:
            command: The AT command without terminator e.g. `AT+CSQ`

        Returns:
            ExecutionResult (command echo, response, result)

        Raises:
            AtNotConnected if not connected, or (as a subclass) on any
                failure, which faults the connection.

        """
        return await self._run_locked(self._execute, command)

    async def execute_ready_state_text_command(self,
                                               text: str) -> ExecutionResult:
        """Sends the text payload after `AT+SBDWT` returned READY.

        Raises:
            ValueError if the text is not ASCII or contains <cr>.
            AtUnexpectedCommandSequence (fatal) if no text write is pending.

        """
        text = _text_payload(text)
        return await self._run_locked(self._ready_text, text)

    async def execute_ready_state_binary_command(
            self, payload: Union[bytes, bytearray, str]) -> ExecutionResult:
        """Sends the binary payload after `AT+SBDWB=<n>` returned READY.

        Args:
            payload: raw bytes, or base64 text

        Raises:
            ValueError if the payload is not bytes or valid base64.
            AtUnexpectedCommandSequence (fatal) if no binary write is
                pending or the length differs from the declared length.

        """
        data = _binary_payload(payload)
        return await self._run_locked(self._ready_binary, data)

    async def write_text_message(self, text: str) -> ExecutionResult:
        """Writes a text message to the MO buffer as one locked exchange.

        Returns:
            The payload status (response `0` on success), or the prompt
            result if the modem did not return READY.

        """
        text = _text_payload(text)
        return await self._run_locked(self._write_text, text)

    async def write_binary_message(
            self, payload: Union[bytes, bytearray, str]) -> ExecutionResult:
        """Writes a binary message to the MO buffer as one locked exchange.

        Args:
            payload: raw bytes, or base64 text

        Returns:
            The payload status (response `0` on success), or the prompt
            result if the modem did not return READY.

        """
        data = _binary_payload(payload)
        return await self._run_locked(self._write_binary, data)

    def _handle_at_error(self, at_command: str, execution: ExecutionResult):
        err_msg = '{} failed with result {}'.format(at_command,
                                                    execution.result)
        self._log.error(err_msg)
        raise AtException(err_msg)

    async def signal_quality(self) -> int:
        """Returns the signal quality 0..5 from `AT+CSQ`.

        Raises:
            AtException if an error was returned

        """
        self._log.debug('Querying signal quality')
        cmd = 'AT+CSQ'
        execution = await self.execute_command(cmd)
        if not execution.ok:
            self._handle_at_error(cmd, execution)
        return int(execution.response.replace('+CSQ:', '').strip())

    async def device_imei(self) -> str:
        """Returns the IMEI of the transceiver."""
        self._log.debug('Querying device IMEI')
        cmd = 'AT+CGSN'
        execution = await self.execute_command(cmd)
        if not execution.ok:
            self._handle_at_error(cmd, execution)
        return execution.response.strip()

    async def device_versions(self) -> str:
        """Returns the firmware revision report from `AT+CGMR`."""
        self._log.debug('Querying device version info')
        cmd = 'AT+CGMR'
        execution = await self.execute_command(cmd)
        if not execution.ok:
            self._handle_at_error(cmd, execution)
        return execution.response

    async def network_time(self) -> Optional[datetime]:
        """Returns the Iridium network time, or None if no service.

        Raises:
            AtException if an error was returned

        """
        self._log.debug('Querying Iridium system time')
        cmd = 'AT-MSSTM'
        execution = await self.execute_command(cmd)
        if not execution.ok:
            self._handle_at_error(cmd, execution)
        ticks = execution.response.replace('-MSSTM:', '').strip()
        try:
            return IRIDIUM_EPOCH + timedelta(milliseconds=int(ticks, 16) * 90)
        except ValueError:
            self._log.warning('No network time: {}'.format(ticks))
            return None
