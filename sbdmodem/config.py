# -*- coding: utf-8 -*-
"""Serial line and session loop settings.

Values are validated when assigned so a bad setting is reported before the
serial port is touched.

"""

from .constants import (
    ANOMALY_LIMIT,
    BAUDRATES,
    BYTESIZES,
    COMMAND_TIMEOUT,
    DEFAULT_BAUDRATE,
    DEFAULT_BYTESIZE,
    DEFAULT_PARITY,
    DEFAULT_STOPBITS,
    HANDSHAKE_TIMEOUT,
    IN_PROGRESS_DELAY,
    PARITIES,
    RESTART_COOLDOWN,
    SESSION_COMMANDS,
    SESSION_INTERVAL,
    STOPBITS,
)


def _positive(name: str, value) -> float:
    if not isinstance(value, (int, float)) or value < 0:
        raise ValueError('{} must be a number >= 0'.format(name))
    return value


class SerialSettings:
    """Line parameters for the serial port.

    Attributes:
        port: The serial port name e.g. `/dev/ttyUSB0`, None to discover
        baudrate: The baudrate of the serial port
        bytesize: Data bits
        parity: Parity 'N', 'E', 'O', 'M' or 'S'
        stopbits: Stop bits

    """

    def __init__(self,
                 port: str = None,
                 baudrate: int = DEFAULT_BAUDRATE,
                 bytesize: int = DEFAULT_BYTESIZE,
                 parity: str = DEFAULT_PARITY,
                 stopbits: float = DEFAULT_STOPBITS):
        self.port = port
        self.baudrate = baudrate
        self.bytesize = bytesize
        self.parity = parity
        self.stopbits = stopbits

    def __repr__(self):
        return '<SerialSettings {} {} {}{}{}>'.format(
            self.port, self.baudrate, self.bytesize, self.parity,
            self.stopbits)

    @property
    def port(self):
        return self._port

    @port.setter
    def port(self, value):
        if value is not None and (not isinstance(value, str) or not value):
            raise ValueError('Invalid serial port name {!r}'.format(value))
        self._port = value

    @property
    def baudrate(self):
        return self._baudrate

    @baudrate.setter
    def baudrate(self, value):
        if value not in BAUDRATES:
            raise ValueError('Unsupported baudrate {}'.format(value))
        self._baudrate = value

    @property
    def bytesize(self):
        return self._bytesize

    @bytesize.setter
    def bytesize(self, value):
        if value not in BYTESIZES:
            raise ValueError('Unsupported bytesize {}'.format(value))
        self._bytesize = value

    @property
    def parity(self):
        return self._parity

    @parity.setter
    def parity(self, value):
        if value not in PARITIES:
            raise ValueError('Unsupported parity {}'.format(value))
        self._parity = value

    @property
    def stopbits(self):
        return self._stopbits

    @stopbits.setter
    def stopbits(self, value):
        if value not in STOPBITS:
            raise ValueError('Unsupported stopbits {}'.format(value))
        self._stopbits = value

    def with_port(self, port: str) -> 'SerialSettings':
        """Returns a copy of the settings for a different port."""
        return SerialSettings(port, self.baudrate, self.bytesize,
                              self.parity, self.stopbits)

    def serial_kwargs(self) -> dict:
        """Returns keyword arguments for a pyserial `Serial` constructor."""
        return {
            'port': self.port,
            'baudrate': self.baudrate,
            'bytesize': self.bytesize,
            'parity': self.parity,
            'stopbits': self.stopbits,
        }


class SessionSettings:
    """Timing and behaviour of the mailbox session loop.

    Attributes:
        session_interval: Seconds between mailbox checks when idle
        in_progress_delay: Seconds before the next check when more traffic
            is expected
        cooldown: Seconds the supervisor waits before restarting
        anomaly_limit: Highest value of the anomaly counter; the next
            anomalous outcome resets it to 0
        command_timeout: Maximum seconds for any AT command round trip
        handshake_timeout: Maximum seconds for the connect probe
        binary: Use binary (True) or text (False) message transfer
        session_command: `AT+SBDI` or `AT+SBDIX`

    """

    def __init__(self,
                 session_interval: float = SESSION_INTERVAL,
                 in_progress_delay: float = IN_PROGRESS_DELAY,
                 cooldown: float = RESTART_COOLDOWN,
                 anomaly_limit: int = ANOMALY_LIMIT,
                 command_timeout: float = COMMAND_TIMEOUT,
                 handshake_timeout: float = HANDSHAKE_TIMEOUT,
                 binary: bool = True,
                 session_command: str = SESSION_COMMANDS[0]):
        self.session_interval = session_interval
        self.in_progress_delay = in_progress_delay
        self.cooldown = cooldown
        self.anomaly_limit = anomaly_limit
        self.command_timeout = command_timeout
        self.handshake_timeout = handshake_timeout
        self.binary = bool(binary)
        self.session_command = session_command

    @property
    def session_interval(self):
        return self._session_interval

    @session_interval.setter
    def session_interval(self, value):
        self._session_interval = _positive('session_interval', value)

    @property
    def in_progress_delay(self):
        return self._in_progress_delay

    @in_progress_delay.setter
    def in_progress_delay(self, value):
        self._in_progress_delay = _positive('in_progress_delay', value)

    @property
    def cooldown(self):
        return self._cooldown

    @cooldown.setter
    def cooldown(self, value):
        self._cooldown = _positive('cooldown', value)

    @property
    def anomaly_limit(self):
        return self._anomaly_limit

    @anomaly_limit.setter
    def anomaly_limit(self, value):
        if not isinstance(value, int) or value < 1:
            raise ValueError('anomaly_limit must be integer >= 1')
        self._anomaly_limit = value

    @property
    def command_timeout(self):
        return self._command_timeout

    @command_timeout.setter
    def command_timeout(self, value):
        if _positive('command_timeout', value) == 0:
            raise ValueError('command_timeout must be > 0')
        self._command_timeout = value

    @property
    def handshake_timeout(self):
        return self._handshake_timeout

    @handshake_timeout.setter
    def handshake_timeout(self, value):
        if _positive('handshake_timeout', value) == 0:
            raise ValueError('handshake_timeout must be > 0')
        self._handshake_timeout = value

    @property
    def session_command(self):
        return self._session_command

    @session_command.setter
    def session_command(self, value):
        if value not in SESSION_COMMANDS:
            raise ValueError('Unsupported session command {}'.format(value))
        self._session_command = value
