# -*- coding: utf-8 -*-
"""The session loop that checks the mailbox on a schedule.

A process owns one client for its lifetime. It connects, then repeats
mailbox exchanges, pacing them by the outcome of the last exchange, until it
is stopped or the connection faults. Restarting after a fault is left to
the supervisor.

"""

import asyncio
from enum import Enum
import logging
from typing import Callable, Optional

from .atcommand_async import SbdModemAsyncioClient
from .aterror import AtNotConnected
from .config import SerialSettings, SessionSettings
from .connection import ConnectionState, Latch
from .mailbox import MailboxOutcome, MailboxSession
from .utils import get_wrapping_logger


class SessionPace(Enum):
    """How soon the next mailbox exchange should follow."""
    IDLE = 'idle'
    IN_PROGRESS = 'in_progress'
    ANOMALOUS = 'anomalous'


def classify_outcome(outcome: Optional[MailboxOutcome]) -> SessionPace:
    """Classifies a mailbox outcome.

    * IDLE: nothing sent, nothing received, nothing queued
    * IN_PROGRESS: a message was sent or received, more may follow
    * ANOMALOUS: anything else including a failed exchange (None)

    """
    if outcome is None:
        return SessionPace.ANOMALOUS
    if (outcome.mo_ok and not outcome.mo_sent
            and outcome.mt_status == 0 and outcome.mt_queued == 0):
        return SessionPace.IDLE
    if outcome.mo_sent or outcome.mt_received:
        return SessionPace.IN_PROGRESS
    return SessionPace.ANOMALOUS


class SbdSessionProcess:
    """Connects a modem and runs mailbox exchanges until stopped or faulted.

    Attributes:
        started: Set when `start` is called
        running: Set once the modem is connected and the loop runs
        stopped: Set when `start` returns
        faulted: Set if the modem failed to connect or faulted
        canceled: Set when `stop` is called
        outbox: Queue of MO messages to send, one per exchange
        inbox: Queue of MT messages received
        anomalies: Consecutive anomalous outcomes, reset at the limit
        last_outcome: The most recent MailboxOutcome (or None)

    """

    def __init__(self,
                 port: str = None,
                 serial_settings: SerialSettings = None,
                 session_settings: SessionSettings = None,
                 client_factory: Callable = None,
                 outbox: asyncio.Queue = None,
                 inbox: asyncio.Queue = None,
                 logger: logging.Logger = None,
                 log_level: int = logging.INFO):
        self._log = logger or get_wrapping_logger(log_level=log_level)
        self.port = port
        self.serial_settings = serial_settings
        self.session_settings = session_settings or SessionSettings()
        self._client_factory = client_factory or self._default_client
        self.outbox = outbox if outbox is not None else asyncio.Queue()
        self.inbox = inbox if inbox is not None else asyncio.Queue()
        self.started = Latch('started')
        self.running = Latch('running')
        self.stopped = Latch('stopped')
        self.faulted = Latch('faulted')
        self.canceled = Latch('canceled')
        self.client = None
        self.mailbox = None
        self.anomalies = 0
        self.last_outcome = None
        self._callbacks = []
        self._cancel_event = asyncio.Event()

    def _default_client(self) -> SbdModemAsyncioClient:
        return SbdModemAsyncioClient(
            command_timeout=self.session_settings.command_timeout,
            handshake_timeout=self.session_settings.handshake_timeout,
            logger=self._log)

    def on_outcome(self, callback: Callable):
        """Registers a callback(outcome) run after every exchange."""
        self._callbacks.append(callback)

    def send(self, message):
        """Queues an MO message for the next exchange."""
        self.outbox.put_nowait(message)

    async def start(self):
        """Connects and runs the session loop until stopped or faulted.

        The client is always disposed and `stopped` set on return.

        """
        if not self.started.try_set():
            self._log.warning('Session process already started')
            return
        try:
            if self.canceled.is_set:
                self._log.debug('Session process canceled before start')
                return
            self.client = self._client_factory()
            self.mailbox = MailboxSession(
                self.client,
                binary=self.session_settings.binary,
                session_command=self.session_settings.session_command,
                logger=self._log)
            if not await self.client.connect(self.port, self.serial_settings):
                self._log.error('Modem connection failed')
                self.faulted.try_set()
                return
            self.running.try_set()
            await self._run()
        except (AtNotConnected, ValueError) as e:
            self._log.error('Session process faulted: {}'.format(e))
            self.faulted.try_set()
        finally:
            if self.client is not None:
                self.client.dispose()
            self.running.try_cancel()
            self.faulted.try_cancel()
            self.stopped.try_set()
            self._log.info('Session process stopped')

    async def stop(self):
        """Requests the loop to end and waits for it if started."""
        if self.canceled.try_set():
            self._log.debug('Stopping session process')
        self._cancel_event.set()
        if self.started.is_set:
            await self.stopped.wait()

    def _next_message(self):
        try:
            return self.outbox.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def _pace(self, pace: SessionPace) -> float:
        """Updates the anomaly count and returns the delay to the next check."""
        settings = self.session_settings
        if pace is SessionPace.IN_PROGRESS:
            self.anomalies = 0
            return settings.in_progress_delay
        if pace is SessionPace.IDLE:
            self.anomalies = 0
        elif self.anomalies < settings.anomaly_limit:
            self.anomalies += 1
        else:
            self._log.warning('{} anomalous sessions, resetting count'.format(
                self.anomalies + 1))
            self.anomalies = 0
        return settings.session_interval

    def _notify(self, outcome: Optional[MailboxOutcome]):
        if outcome is not None and outcome.mt_message is not None:
            self.inbox.put_nowait(outcome.mt_message)
        for callback in self._callbacks:
            try:
                callback(outcome)
            except Exception as e:
                self._log.exception('Outcome callback error: {}'.format(e))

    async def _pause(self, seconds: float):
        """Sleeps for `seconds` unless canceled first."""
        try:
            await asyncio.wait_for(self._cancel_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _run(self):
        while (not self.canceled.is_set
               and self.client.state is ConnectionState.CONNECTED):
            message = self._next_message()
            if message is not None:
                try:
                    message = self.mailbox.prepare_message(message)
                except ValueError as e:
                    self._log.error('Message discarded: {}'.format(e))
                    continue
            outcome = await self.mailbox.run_exchange(message)
            if message and (outcome is None or not outcome.mo_ok):
                self._log.warning('MO message not delivered')
            pace = classify_outcome(outcome)
            delay = self._pace(pace)
            self.last_outcome = outcome
            self._notify(outcome)
            self._log.debug('{} session, next in {} seconds'.format(
                pace.name, delay))
            await self._pause(delay)
