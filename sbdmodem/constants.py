# -*- coding: utf-8 -*-
"""Iridium SBD modem constants.

This module provides mapping of constants used by an Iridium 9602/9603
short burst data transceiver and the session loop built on it.

"""

# Result tokens
RESULT_OK_VERBOSE = 'OK'
RESULT_OK_NUMERIC = '0'
RESULT_OK = (RESULT_OK_VERBOSE, RESULT_OK_NUMERIC)
RESULT_ERROR = ('ERROR', '4')
READY = 'READY'
# Unsolicited ring alert indicators (verbose, numeric)
SBDRING = 'SBDRING'
SBDRING_NUMERIC = '126'
UNSOLICITED = (SBDRING, SBDRING_NUMERIC)

# Serial line defaults
BAUDRATES = [300, 600, 1200, 2400, 4800, 9600, 19200, 38400, 57600, 115200]
DEFAULT_BAUDRATE = 19200
DEFAULT_BYTESIZE = 8
DEFAULT_PARITY = 'N'
DEFAULT_STOPBITS = 1
PARITIES = ('N', 'E', 'O', 'M', 'S')
BYTESIZES = (5, 6, 7, 8)
STOPBITS = (1, 1.5, 2)

# Timing (seconds)
COMMAND_TIMEOUT = 60
HANDSHAKE_TIMEOUT = 5
SESSION_INTERVAL = 600
IN_PROGRESS_DELAY = 10
RESTART_COOLDOWN = 10
ANOMALY_LIMIT = 3

# Mailbox commands
SESSION_COMMANDS = ('AT+SBDI', 'AT+SBDIX')
CLEAR_BOTH_BUFFERS = 'AT+SBDD2'
READ_BINARY = 'AT+SBDRB'
READ_TEXT = 'AT+SBDRT'
WRITE_BINARY = 'AT+SBDWB={}'
WRITE_TEXT = 'AT+SBDWT'
MAX_MO_LENGTH = 340
MAX_MT_LENGTH = 270

SBDI_MO_STATUS = {
    0: 'No SBD message to send',
    1: 'SBD message successfully sent',
    2: 'Error sending SBD message',
}

SBDI_MT_STATUS = {
    0: 'No SBD message to receive',
    1: 'SBD message successfully received',
    2: 'Error during mailbox check or receive',
}

SBDIX_MO_STATUS = {
    0: 'MO message transferred successfully',
    1: 'MO message transferred, MT message too big',
    2: 'MO message transferred, location update not accepted',
    3: 'MO message transferred (reserved)',
    4: 'MO message transferred (reserved)',
    10: 'Gateway reported call did not complete in time',
    11: 'MO message queue at gateway is full',
    12: 'MO message has too many segments',
    13: 'Gateway reported session did not complete',
    14: 'Invalid segment size',
    15: 'Access is denied',
    16: 'Transceiver is locked',
    17: 'Gateway not responding (local session timeout)',
    18: 'Connection lost (RF drop)',
    19: 'Link failure',
    32: 'No network service',
    33: 'Antenna fault',
    34: 'Radio is disabled',
    35: 'Transceiver is busy',
    36: 'Try later, must wait 3 minutes since last registration',
    37: 'SBD service is temporarily disabled',
    38: 'Try later, traffic management period',
    64: 'Band violation',
    65: 'PLL lock failure',
}

WRITE_STATUS = {
    0: 'Message written successfully',
    1: 'Timeout waiting for message',
    2: 'Checksum mismatch',
    3: 'Message size is not correct',
}

CLEAR_STATUS = {
    0: 'Buffers cleared successfully',
    1: 'Error clearing buffers',
}
