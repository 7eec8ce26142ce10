"""An in-process Iridium SBD modem for tests.

Behaves like an ``aioserial.AioSerial`` connected to a 9603 transceiver:
commands written with ``write_async`` are answered on ``read_async`` in
verbose or numeric mode. The gateway is modelled by a queue of MT messages
and a list of MO messages sent.
"""

import asyncio

import serial

GMR_LINES = [
    'Call Processor Version: TA16005',
    'Modem DSP Version: 1.7 svn: 2358',
    'DBB Version: 0x0001 (ASIC)',
    'RFA VersionSRFA2 (0x0004)',
    'NVM Version: KVS',
    'Hardware Version: BOOT07d4/9603NrevB/04/RAW0e',
    'BOOT Version: TA16005 (rev exported)',
]

OK_COMMANDS = (
    'AT', 'ATE1', 'ATQ0', 'AT&K0', 'AT&K3', 'AT&W0', 'AT&Y0', 'AT*F',
    'AT*R1', 'AT+SBDMTA=0', 'AT+SBDMTA=1',
)


def checksum(data: bytes) -> bytes:
    return (sum(data) & 0xffff).to_bytes(2, 'big')


class SbdModemSimulator:
    """A fake serial port answering like an SBD modem.

    Attributes:
        verbose: True for verbose (ATV1) output, False for numeric (ATV0)
        mo_buffer: The mobile-originated buffer
        mt_buffer: The mobile-terminated buffer
        gateway_queue: MT messages waiting at the gateway
        sent: MO messages delivered to the gateway
        received: Command lines received from the host
        session_status: If set, the six fields returned by SBDI/SBDIX
        overrides: Mapping of command to (lines, ok) replacing the default
        silent: Commands that get no response at all
        clear_fails: If True, SBDD commands report an error status

    """

    def __init__(self, verbose: bool = True):
        self.verbose = verbose
        self.is_open = True
        self.mo_buffer = b''
        self.mt_buffer = b''
        self.gateway_queue = []
        self.sent = []
        self.received = []
        self.mo_msn = 0
        self.mt_msn = 0
        self.session_status = None
        self.overrides = {}
        self.silent = set()
        self.clear_fails = False
        self._in = bytearray()
        self._out = bytearray()
        self._ready_state = None
        self._eof = False
        self._data = asyncio.Event()

    # serial port interface

    def close(self):
        self.is_open = False
        self._data.set()

    async def read_async(self, size: int = 1) -> bytes:
        while not self._out and self.is_open and not self._eof:
            self._data.clear()
            await self._data.wait()
        if not self._out:
            return b''
        data = bytes(self._out[:size])
        del self._out[:size]
        return data

    async def write_async(self, data: bytes) -> int:
        if not self.is_open:
            raise serial.SerialException('Attempting to use a port that is not open')
        self._in += data
        self._process()
        return len(data)

    # test controls

    def end_stream(self):
        """Ends the stream so pending and future reads return nothing."""
        self._eof = True
        self._data.set()

    def ring(self):
        """Emits an unsolicited SBD ring alert."""
        self._emit('\r\nSBDRING\r\n' if self.verbose else '126\r')

    def output(self, data):
        """Queues raw data for the host."""
        self._emit(data)

    # modem behaviour

    def _emit(self, data):
        if isinstance(data, str):
            data = data.encode('ascii')
        self._out += data
        self._data.set()

    def _respond(self, lines: list, ok: bool = True):
        if self.verbose:
            result = 'OK' if ok else 'ERROR'
            self._emit(''.join('\r\n{}\r\n'.format(l) for l in lines)
                       + '\r\n{}\r\n'.format(result))
        else:
            result = '0' if ok else '4'
            self._emit(''.join('{}\r\n'.format(l) for l in lines)
                       + '{}\r'.format(result))

    def _process(self):
        while True:
            if self._ready_state == 'binary':
                needed = self._binary_length + 2
                if len(self._in) < needed:
                    return
                data = bytes(self._in[:needed])
                del self._in[:needed]
                self._ready_state = None
                self._write_binary(data)
                continue
            if b'\r' not in self._in:
                return
            line, _, rest = bytes(self._in).partition(b'\r')
            self._in = bytearray(rest)
            line = line.decode('ascii')
            if self._ready_state == 'text':
                self._ready_state = None
                self._write_text(line)
            else:
                self._command(line)

    def _write_text(self, text: str):
        self.received.append(text)
        self.mo_buffer = text.encode('ascii')
        if self.verbose:
            self._emit(text + '\r')
            self._respond(['0'])
        else:
            self._emit(text + '0\r\n0\r')

    def _write_binary(self, data: bytes):
        payload, cks = data[:-2], data[-2:]
        status = '0'
        if checksum(payload) != cks:
            status = '2'
        else:
            self.mo_buffer = payload
        self._respond([status])

    def _session(self, command: str) -> str:
        if self.session_status is not None:
            status = self.session_status
        else:
            mo = 0
            if self.mo_buffer:
                self.sent.append(self.mo_buffer)
                self.mo_msn += 1
                mo = 1
            mt = 0
            length = 0
            if self.gateway_queue:
                self.mt_buffer = self.gateway_queue.pop(0)
                self.mt_msn += 1
                mt = 1
                length = len(self.mt_buffer)
            if command == 'AT+SBDIX':
                mo = 0
            status = (mo, self.mo_msn, mt, self.mt_msn, length,
                      len(self.gateway_queue))
        prefix = '+SBDIX' if command == 'AT+SBDIX' else '+SBDI'
        return '{}: {}'.format(prefix, ', '.join(str(s) for s in status))

    def _clear(self, command: str) -> str:
        if self.clear_fails:
            return '1'
        if command in ('AT+SBDD0', 'AT+SBDD2'):
            self.mo_buffer = b''
        if command in ('AT+SBDD1', 'AT+SBDD2'):
            self.mt_buffer = b''
        return '0'

    def _command(self, line: str):
        self.received.append(line)
        command = line.strip().upper()
        if command in self.silent:
            return
        self._emit(line + '\r')
        if command in self.overrides:
            lines, ok = self.overrides[command]
            self._respond(lines, ok)
        elif command == 'ATV0':
            self.verbose = False
            self._respond([])
        elif command == 'ATV1':
            self.verbose = True
            self._respond([])
        elif command in OK_COMMANDS:
            self._respond([])
        elif command == 'AT+CSQ':
            self._respond(['+CSQ:5'])
        elif command == 'AT+CGSN':
            self._respond(['300234010753370'])
        elif command in ('AT+CGMR', 'AT+GMR'):
            self._respond(GMR_LINES)
        elif command == 'AT-MSSTM':
            self._respond(['-MSSTM: 0a5d6f20'])
        elif command == 'AT+CCLK?':
            # clock payload ends with a double terminator in both modes
            if self.verbose:
                self._respond(['+CCLK:23/10/18,12:00:00'])
            else:
                self._emit('+CCLK:23/10/18,12:00:00\r\n\r\n0\r')
        elif command == 'AT+SBDWT':
            self._ready_state = 'text'
            self._emit('\r\nREADY\r\n' if self.verbose else 'READY\r\n')
        elif command.startswith('AT+SBDWT='):
            self.mo_buffer = line[len('AT+SBDWT='):].encode('ascii')
            self._respond([])
        elif command.startswith('AT+SBDWB='):
            length = int(command[len('AT+SBDWB='):])
            if not 1 <= length <= 340:
                self._respond(['3'])
                return
            self._ready_state = 'binary'
            self._binary_length = length
            self._emit('\r\nREADY\r\n' if self.verbose else 'READY\r\n')
        elif command == 'AT+SBDRB':
            self._emit(len(self.mt_buffer).to_bytes(2, 'big')
                       + self.mt_buffer + checksum(self.mt_buffer))
            self._emit('\r\nOK\r\n' if self.verbose else '0\r')
        elif command == 'AT+SBDRT':
            text = self.mt_buffer.decode('ascii')
            if self.verbose:
                self._emit('\r\n+SBDRT:\r\n{}\r\n\r\nOK\r\n'.format(text))
            else:
                self._emit('+SBDRT:\r\n{}0\r'.format(text))
        elif command == 'AT+SBDTC':
            self.mt_buffer = self.mo_buffer
            self._respond(['SBDTC: Outbound SBD Copied to Inbound SBD: '
                           'size = {}'.format(len(self.mo_buffer))])
        elif command in ('AT+SBDI', 'AT+SBDIX'):
            self._respond([self._session(command)])
        elif command in ('AT+SBDD0', 'AT+SBDD1', 'AT+SBDD2'):
            self._respond([self._clear(command)])
        else:
            self._respond([], ok=False)
