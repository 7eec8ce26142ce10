# -*- coding: utf-8 -*-
"""Keeps a session process running, restarting it after a cooldown.

"""

import asyncio
import logging
from typing import Callable

from .config import SerialSettings, SessionSettings
from .connection import Latch
from .session import SbdSessionProcess
from .utils import get_wrapping_logger


class SbdSessionSupervisor:
    """Runs session processes one after another until stopped.

    Messages submitted with `send` are held in an outbox shared by every
    process, so they survive a restart.

    Attributes:
        started: Set when `start` is called
        stopped: Set when `start` returns
        canceled: Set when `stop` is called
        outbox: Queue of MO messages shared by all processes
        inbox: Queue of MT messages received by any process
        process: The current SbdSessionProcess
        restarts: The number of times a process was restarted

    """

    def __init__(self,
                 port: str = None,
                 serial_settings: SerialSettings = None,
                 session_settings: SessionSettings = None,
                 process_factory: Callable = None,
                 logger: logging.Logger = None,
                 log_level: int = logging.INFO):
        self._log = logger or get_wrapping_logger(log_level=log_level)
        self.port = port
        self.serial_settings = serial_settings
        self.session_settings = session_settings or SessionSettings()
        self._process_factory = process_factory or self._default_process
        self.outbox = asyncio.Queue()
        self.inbox = asyncio.Queue()
        self.started = Latch('started')
        self.stopped = Latch('stopped')
        self.canceled = Latch('canceled')
        self.process = None
        self.restarts = 0
        self._callbacks = []
        self._cancel_event = asyncio.Event()

    def on_outcome(self, callback: Callable):
        """Registers a callback(outcome) on every process started."""
        self._callbacks.append(callback)

    def _default_process(self) -> SbdSessionProcess:
        return SbdSessionProcess(port=self.port,
                                 serial_settings=self.serial_settings,
                                 session_settings=self.session_settings,
                                 outbox=self.outbox,
                                 inbox=self.inbox,
                                 logger=self._log)

    def send(self, message):
        """Queues an MO message for the next mailbox exchange."""
        self.outbox.put_nowait(message)

    async def start(self):
        """Runs processes until `stop` is called."""
        if not self.started.try_set():
            self._log.warning('Supervisor already started')
            return
        try:
            while not self.canceled.is_set:
                await self._run_process()
                if self.canceled.is_set:
                    break
                self.restarts += 1
                self._log.info('Restarting session in {} seconds'.format(
                    self.session_settings.cooldown))
                try:
                    await asyncio.wait_for(self._cancel_event.wait(),
                                           timeout=self.session_settings.cooldown)
                except asyncio.TimeoutError:
                    pass
        finally:
            self.stopped.try_set()
            self._log.info('Supervisor stopped')

    async def _run_process(self):
        self.process = self._process_factory()
        for callback in self._callbacks:
            self.process.on_outcome(callback)
        process_task = asyncio.ensure_future(self.process.start())
        cancel_task = asyncio.ensure_future(self._cancel_event.wait())
        try:
            await asyncio.wait({process_task, cancel_task},
                               return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_task.cancel()
            await self.process.stop()
        try:
            await process_task
        except Exception as e:
            self._log.exception('Session process error: {}'.format(e))

    async def stop(self):
        """Requests shutdown and waits for the supervisor to stop."""
        if self.canceled.try_set():
            self._log.info('Stopping supervisor')
        self._cancel_event.set()
        if self.started.is_set:
            await self.stopped.wait()
