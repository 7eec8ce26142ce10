# -*- coding: utf-8 -*-
"""One-shot lifecycle signals and the connection state derived from them.

"""

import asyncio
from enum import Enum, IntEnum
from threading import Lock


class LatchState(Enum):
    PENDING = 'pending'
    SET = 'set'
    CANCELED = 'canceled'


class Latch:
    """A signal that resolves once, to set or canceled, and never changes.

    Attributes:
        name: A descriptive name used in logs and repr.

    """

    def __init__(self, name: str = 'latch'):
        self.name = name
        self._state = LatchState.PENDING
        self._lock = Lock()
        self._event = None

    def __repr__(self):
        return '<Latch {} {}>'.format(self.name, self._state.value)

    @property
    def state(self) -> LatchState:
        return self._state

    @property
    def is_set(self) -> bool:
        return self._state is LatchState.SET

    @property
    def is_canceled(self) -> bool:
        return self._state is LatchState.CANCELED

    @property
    def is_resolved(self) -> bool:
        return self._state is not LatchState.PENDING

    def _resolve(self, state: LatchState) -> bool:
        with self._lock:
            if self._state is not LatchState.PENDING:
                return False
            self._state = state
        if self._event is not None:
            self._event.set()
        return True

    def try_set(self) -> bool:
        """Resolves the latch as set. Returns False if already resolved."""
        return self._resolve(LatchState.SET)

    def try_cancel(self) -> bool:
        """Resolves the latch as canceled. Returns False if resolved."""
        return self._resolve(LatchState.CANCELED)

    async def wait(self) -> bool:
        """Waits until resolved. Returns True if set, False if canceled."""
        if self._event is None:
            self._event = asyncio.Event()
            if self.is_resolved:
                self._event.set()
        await self._event.wait()
        return self.is_set


class ConnectionState(IntEnum):
    """Connection progress, ordered so states only move forward."""
    CREATED = 0
    CONNECTED = 1
    FAULTED = 2
    DISCONNECTED = 3
    DISPOSED = 4


class ConnectionSignals:
    """The `connected`, `faulted`, `disconnected` and `canceled` latches.

    Transitions are made only through the methods below, which keep the
    latches consistent with each other:

    * `connected` resolves at most once and is set only on success
    * `faulted` after `connected` also sets `disconnected`
    * `disconnected` set without `faulted` implies `connected` was set

    """

    def __init__(self):
        self.connected = Latch('connected')
        self.faulted = Latch('faulted')
        self.disconnected = Latch('disconnected')
        self.canceled = Latch('canceled')
        self._changed = None

    def __repr__(self):
        return '<ConnectionSignals {}>'.format(self.state.name)

    @property
    def state(self) -> ConnectionState:
        if self.canceled.is_set:
            return ConnectionState.DISPOSED
        if self.disconnected.is_resolved:
            return ConnectionState.DISCONNECTED
        if self.faulted.is_set:
            return ConnectionState.FAULTED
        if self.connected.is_set:
            return ConnectionState.CONNECTED
        return ConnectionState.CREATED

    @property
    def usable(self) -> bool:
        """True if connected and neither faulted nor disconnected."""
        return self.state is ConnectionState.CONNECTED

    def _notify(self):
        if self._changed is not None:
            self._changed.set()
            self._changed = None

    def mark_connected(self) -> bool:
        """Sets `connected` if nothing else has resolved yet."""
        if self.state is not ConnectionState.CREATED:
            return False
        changed = self.connected.try_set()
        self._notify()
        return changed

    def mark_faulted(self) -> bool:
        """Sets `faulted`, and `disconnected` if the link had connected."""
        changed = self.faulted.try_set()
        if changed and self.connected.is_set:
            self.disconnected.try_set()
        self._notify()
        return changed

    def dispose(self) -> bool:
        """Resolves every pending latch. Returns False if already disposed.

        `disconnected` is set if `connected` had been set, every other
        pending latch is canceled.
        """
        if not self.canceled.try_set():
            return False
        self.connected.try_cancel()
        self.faulted.try_cancel()
        if self.connected.is_set:
            self.disconnected.try_set()
        else:
            self.disconnected.try_cancel()
        self._notify()
        return True

    async def wait_for_state(self, state: ConnectionState) -> ConnectionState:
        """Waits until the state is at least `state` and returns it."""
        while self.state < state:
            if self._changed is None:
                self._changed = asyncio.Event()
            await self._changed.wait()
        return self.state
