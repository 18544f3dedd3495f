"""Timer-driven drain loop for the pending queue.

Every sending_interval seconds at most one entry is taken from the head
of the queue and handed to the send capability. The timer paces the
start of sends, not their completion: a slow send does not delay the
next one, so several sends may be in flight at once.

States:
  idle     no timer armed; the next kick() drains immediately
  armed    interval timer running; kick() is a no-op until it fires
  blocked  the captcha gate is open; nothing is drained

Every method runs on the event loop thread. Gate transitions from other
threads are handed back to that loop.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Hashable
from enum import StrEnum
from typing import Any, Protocol

from loguru import logger

from outpost.bus.events import MessagePayload
from outpost.bus.queue import Entry, PendingQueue
from outpost.dispatch.captcha import CaptchaGate
from outpost.exceptions import DispatchError, DispatcherStopped, SendFailure
from outpost.observe.metrics import DispatchMetrics


class SendCallable(Protocol):
    def __call__(self, peer: Hashable, payload: MessagePayload) -> Awaitable[Any]: ...


class DispatchState(StrEnum):
    IDLE = "idle"
    ARMED = "armed"
    BLOCKED = "blocked"


class Dispatcher:
    """Drains a PendingQueue through a send callable at a fixed pace."""

    def __init__(
        self,
        queue: PendingQueue,
        send: SendCallable,
        gate: CaptchaGate,
        sending_interval: float,
        metrics: DispatchMetrics | None = None,
    ) -> None:
        if sending_interval <= 0:
            raise ValueError("sending_interval must be positive")
        self._queue = queue
        self._send = send
        self._gate = gate
        self._interval = sending_interval
        self._metrics = metrics
        self._timer: asyncio.TimerHandle | None = None
        self._in_flight: set[asyncio.Task[None]] = set()
        self._stopped = False
        self._loop: asyncio.AbstractEventLoop | None = None
        with contextlib.suppress(RuntimeError):
            self._loop = asyncio.get_running_loop()
        gate.add_listener(self._on_gate_change)

    @property
    def state(self) -> DispatchState:
        if self._gate.is_blocking():
            return DispatchState.BLOCKED
        if self._timer is not None:
            return DispatchState.ARMED
        return DispatchState.IDLE

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def kick(self) -> None:
        """Send the head entry now unless the timer or the gate forbids it."""
        if self._stopped or self._timer is not None or self._queue.is_empty():
            return

        # Resolve the loop before touching the queue so a misplaced call
        # fails without losing the head entry.
        loop = self._owning_loop()

        if self._gate.is_blocking():
            return

        entry = self._queue.dequeue_head()
        if entry is None:
            return

        self._timer = loop.call_later(self._interval, self._on_timer)

        task = loop.create_task(self._deliver(entry))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def stop(self, timeout: float | None = None) -> None:
        """Stop draining and wait for sends already started to settle.

        Sends still running after timeout seconds are cancelled and their
        waiters rejected with DispatcherStopped. Entries still in the
        queue are left untouched.
        """
        self._stopped = True
        self._cancel_timer()
        if not self._in_flight:
            return

        logger.debug("Waiting for {} in-flight sends", len(self._in_flight))
        pending = set(self._in_flight)
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning("Cancelled {} sends still running at shutdown", len(still_running))
            await asyncio.gather(*still_running, return_exceptions=True)

    def _on_timer(self) -> None:
        self._timer = None
        self.kick()

    def _owning_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def _on_owning_loop(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def _on_gate_change(self, gate: CaptchaGate) -> None:
        # Captcha resolvers may settle on the client's I/O thread.
        if self._loop is not None and not self._on_owning_loop():
            self._loop.call_soon_threadsafe(self._on_gate_change, gate)
            return

        # Any transition abandons the pending tick; the drain is
        # re-evaluated from scratch.
        self._cancel_timer()
        if not gate.is_blocking():
            self.kick()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _deliver(self, entry: Entry) -> None:
        logger.debug(
            "Sending to peer={} ({} waiters, special={})",
            entry.peer,
            len(entry.waiters),
            entry.is_special,
        )
        try:
            response = await self._send(entry.peer, entry.payload)
        except asyncio.CancelledError:
            entry.reject(DispatcherStopped("Dispatcher stopped during send", peer=entry.peer))
            raise
        except DispatchError as exc:
            self._record_failure(entry, exc)
            entry.reject(exc)
        except Exception as exc:
            self._record_failure(entry, exc)
            error = SendFailure(f"Send to {entry.peer} failed: {exc}", peer=entry.peer)
            error.__cause__ = exc
            entry.reject(error)
        else:
            if self._metrics is not None:
                self._metrics.record_sent()
            entry.resolve(response)

    def _record_failure(self, entry: Entry, exc: Exception) -> None:
        if self._metrics is not None:
            self._metrics.record_failed()
        logger.warning("Send to peer={} failed: {}", entry.peer, exc)
