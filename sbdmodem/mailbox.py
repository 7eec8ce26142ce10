# -*- coding: utf-8 -*-
"""The mailbox exchange: upload, check, download and clear as one session.

An exchange optionally writes a mobile-originated (MO) message to the
modem's buffer, initiates an SBD session with the gateway, reads a
mobile-terminated (MT) message if one was received, then clears both
buffers.

"""

import logging
from typing import Optional, Union

from .atcommand_async import SbdModemAsyncioClient
from .constants import (
    CLEAR_BOTH_BUFFERS,
    CLEAR_STATUS,
    MAX_MO_LENGTH,
    READ_BINARY,
    READ_TEXT,
    SBDI_MO_STATUS,
    SBDI_MT_STATUS,
    SBDIX_MO_STATUS,
    SESSION_COMMANDS,
    WRITE_STATUS,
)
from .framing import decode_frame, from_base64, to_base64
from .utils import get_wrapping_logger

SBDIX = SESSION_COMMANDS[1]
MT_RECEIVED = 1
SBDIX_MO_SUCCESS = range(0, 5)


def parse_session_status(response: str) -> tuple:
    """Returns the six integer status fields of an SBDI/SBDIX response.

    Args:
        response: e.g. ``+SBDI: 1, 23, 1, 5, 12, 0``

    Returns:
        (mo_status, mo_msn, mt_status, mt_msn, mt_length, mt_queued)

    Raises:
        ValueError if the response does not hold six integers.

    """
    _, _, fields = response.partition(':')
    if not fields:
        fields = response
    values = [int(f.strip()) for f in fields.split(',')]
    if len(values) != 6:
        raise ValueError('Expected 6 status fields, got {}'.format(response))
    return tuple(values)


def describe_mo_status(status: int, command: str = SESSION_COMMANDS[0]) -> str:
    """Returns a description of a mobile-originated status code."""
    table = SBDIX_MO_STATUS if command == SBDIX else SBDI_MO_STATUS
    return table.get(status, 'Unknown MO status {}'.format(status))


def describe_mt_status(status: int) -> str:
    """Returns a description of a mobile-terminated status code."""
    return SBDI_MT_STATUS.get(status, 'Unknown MT status {}'.format(status))


class MailboxOutcome:
    """The result of one mailbox exchange.

    Attributes:
        command: The session command used (`AT+SBDI` or `AT+SBDIX`)
        mo_status: Mobile-originated status code
        mo_msn: Mobile-originated message sequence number
        mo_message: The message uploaded, or None
        mt_status: Mobile-terminated status code
        mt_msn: Mobile-terminated message sequence number
        mt_length: Length of the received message in bytes
        mt_queued: Messages waiting at the gateway
        mt_message: The message downloaded, or None
        degraded: True if the buffers could not be cleared

    """

    def __init__(self,
                 mo_status: int,
                 mo_msn: int,
                 mt_status: int,
                 mt_msn: int,
                 mt_length: int,
                 mt_queued: int,
                 command: str = SESSION_COMMANDS[0],
                 mo_message: Union[bytes, str] = None,
                 mt_message: Union[bytes, str] = None):
        self.command = command
        self.mo_status = mo_status
        self.mo_msn = mo_msn
        self.mo_message = mo_message
        self.mt_status = mt_status
        self.mt_msn = mt_msn
        self.mt_length = mt_length
        self.mt_queued = mt_queued
        self.mt_message = mt_message
        self.degraded = False

    def __repr__(self):
        return ('<MailboxOutcome MO={} ({}) MT={} ({}) queued={}{}>'.format(
            self.mo_status, self.mo_msn, self.mt_status, self.mt_msn,
            self.mt_queued, ' degraded' if self.degraded else ''))

    @property
    def mo_ok(self) -> bool:
        """True if the MO status is not an error."""
        if self.command == SBDIX:
            return self.mo_status in SBDIX_MO_SUCCESS
        return self.mo_status in (0, 1)

    @property
    def mo_sent(self) -> bool:
        """True if a message was uploaded to the gateway."""
        if self.command == SBDIX:
            return self.mo_message is not None and self.mo_ok
        return self.mo_status == 1

    @property
    def mt_received(self) -> bool:
        return self.mt_status == MT_RECEIVED

    def to_dict(self) -> dict:
        """Returns a dictionary with binary messages as base64 text."""
        def render(message):
            if isinstance(message, (bytes, bytearray)):
                return to_base64(message)
            return message
        return {
            'command': self.command,
            'mo_status': self.mo_status,
            'mo_msn': self.mo_msn,
            'mo_message': render(self.mo_message),
            'mt_status': self.mt_status,
            'mt_msn': self.mt_msn,
            'mt_length': self.mt_length,
            'mt_queued': self.mt_queued,
            'mt_message': render(self.mt_message),
            'degraded': self.degraded,
        }


class MailboxSession:
    """Runs mailbox exchanges on a connected client.

    Engine errors (`AtNotConnected` and subclasses) propagate to the caller.
    Unexpected status or result values end the exchange with None.

    """

    def __init__(self,
                 client: SbdModemAsyncioClient,
                 binary: bool = True,
                 session_command: str = SESSION_COMMANDS[0],
                 logger: logging.Logger = None,
                 log_level: int = logging.INFO):
        if session_command not in SESSION_COMMANDS:
            raise ValueError('Unsupported session command {}'.format(
                session_command))
        self._log = logger or get_wrapping_logger(log_level=log_level)
        self.client = client
        self.binary = binary
        self.session_command = session_command

    def prepare_message(self, message: Union[bytes, bytearray, str]):
        """Returns the message as sent, bytes in binary mode or text.

        Raises:
            ValueError if the message is the wrong type or too long.

        """
        if self.binary:
            if isinstance(message, str):
                message = from_base64(message)
            elif isinstance(message, (bytes, bytearray)):
                message = bytes(message)
            else:
                raise ValueError('Binary message must be bytes or base64')
        elif not isinstance(message, str):
            raise ValueError('Text message must be a string')
        if len(message) > MAX_MO_LENGTH:
            raise ValueError('Message length {} exceeds {} bytes'.format(
                len(message), MAX_MO_LENGTH))
        return message

    async def _upload(self, message) -> bool:
        if self.binary:
            execution = await self.client.write_binary_message(message)
        else:
            execution = await self.client.write_text_message(message)
        if not execution.ok or execution.response != '0':
            try:
                detail = WRITE_STATUS[int(execution.response)]
            except (KeyError, ValueError):
                detail = execution.response
            self._log.warning('MO write failed: {} ({})'.format(
                detail, execution.result))
            return False
        self._log.debug('MO message written ({} bytes)'.format(len(message)))
        return True

    async def _download(self):
        if self.binary:
            execution = await self.client.execute_command(READ_BINARY)
            if not execution.ok:
                self._log.warning('{} failed: {}'.format(
                    READ_BINARY, execution.result))
                return None
            frame = decode_frame(from_base64(execution.response))
            if not frame.valid:
                self._log.warning('MT message checksum mismatch')
            return frame.payload
        execution = await self.client.execute_command(READ_TEXT)
        if not execution.ok:
            self._log.warning('{} failed: {}'.format(
                READ_TEXT, execution.result))
            return None
        return execution.response.replace('+SBDRT:', '', 1).strip('\r\n')

    async def _clear(self) -> bool:
        execution = await self.client.execute_command(CLEAR_BOTH_BUFFERS)
        if execution.ok and execution.response.strip() == '0':
            return True
        try:
            detail = CLEAR_STATUS[int(execution.response)]
        except (KeyError, ValueError):
            detail = execution.response
        self._log.warning('{} failed: {} ({})'.format(
            CLEAR_BOTH_BUFFERS, detail, execution.result))
        return False

    async def run_exchange(self, message: Union[bytes, bytearray, str] = None
                           ) -> Optional[MailboxOutcome]:
        """Runs one mailbox exchange.

        Args:
            message: (optional) an MO message to upload first, bytes or
                base64 text in binary mode, or text

        Returns:
            A MailboxOutcome, or None if the modem responded unexpectedly.

        Raises:
            AtNotConnected (or subclass) if the connection faulted.
            ValueError if the message is invalid.

        """
        mo_message = None
        if message:
            mo_message = self.prepare_message(message)
            if not await self._upload(mo_message):
                return None
        execution = await self.client.execute_command(self.session_command)
        if not execution.ok:
            self._log.warning('{} failed: {}'.format(self.session_command,
                                                     execution.result))
            return None
        try:
            status = parse_session_status(execution.response)
        except ValueError as e:
            self._log.warning('Invalid session status: {}'.format(e))
            return None
        outcome = MailboxOutcome(*status, command=self.session_command,
                                 mo_message=mo_message)
        self._log.info('{}: MO {} / MT {} ({} queued)'.format(
            self.session_command,
            describe_mo_status(outcome.mo_status, self.session_command),
            describe_mt_status(outcome.mt_status), outcome.mt_queued))
        if outcome.mt_received:
            mt_message = await self._download()
            if mt_message is None:
                return None
            outcome.mt_message = mt_message
        if not await self._clear():
            outcome.degraded = True
        return outcome
