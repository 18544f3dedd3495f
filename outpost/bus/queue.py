"""Pending queue of outbound messages with per-peer text coalescing.

A new text message for a peer is folded into the first text entry
already waiting for that peer, wherever it sits in the queue, so the
platform sees one send instead of several. Every caller keeps its own
future; when the merged entry is sent, all of them receive the same
response (or the same error).

All mutating methods must run on the event loop thread. The dispatcher
and the eviction handler call in from loop callbacks, so no lock is held.
"""

from __future__ import annotations

import asyncio
from collections.abc import Hashable
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from outpost.bus.events import MessagePayload
from outpost.exceptions import QueuePurgedError
from outpost.observe.metrics import DispatchMetrics


@dataclass(slots=True)
class Entry:
    """One queued send, possibly standing in for several caller requests."""

    peer: Hashable
    payload: MessagePayload
    waiters: list[asyncio.Future[Any]] = field(default_factory=list)

    @property
    def is_special(self) -> bool:
        return self.payload.is_special

    def resolve(self, response: Any) -> None:
        for waiter in self.waiters:
            if not waiter.done():
                waiter.set_result(response)

    def reject(self, error: BaseException) -> None:
        for waiter in self.waiters:
            if not waiter.done():
                waiter.set_exception(error)


class PendingQueue:
    """FIFO of Entry objects, drained from the head by the dispatcher."""

    def __init__(self, metrics: DispatchMetrics | None = None) -> None:
        self._entries: list[Entry] = []
        self._metrics = metrics

    def __len__(self) -> int:
        return len(self._entries)

    def is_empty(self) -> bool:
        return not self._entries

    def peers(self) -> list[Hashable]:
        """Distinct peers with pending work, in queue order."""
        return list(dict.fromkeys(entry.peer for entry in self._entries))

    def enqueue(self, peer: Hashable, payload: MessagePayload) -> asyncio.Future[Any]:
        """Queue a message and return a future for the send result.

        Must be called with a running event loop. Never raises for
        delivery problems; those are set on the returned future.
        """
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

        if not payload.is_special:
            for entry in self._entries:
                if entry.peer != peer or entry.is_special:
                    continue
                entry.payload = entry.payload.with_appended_text(payload.text)
                entry.waiters.append(future)
                if self._metrics is not None:
                    self._metrics.record_enqueued(coalesced=True)
                logger.debug(
                    "Merged message for peer={} into queued entry ({} waiters)",
                    peer,
                    len(entry.waiters),
                )
                return future

        self._entries.append(Entry(peer=peer, payload=payload, waiters=[future]))
        if self._metrics is not None:
            self._metrics.record_enqueued()
        logger.debug("Queued message for peer={} (pending: {})", peer, len(self._entries))
        return future

    def dequeue_head(self) -> Entry | None:
        """Remove and return the front entry without settling its waiters."""
        if not self._entries:
            return None
        return self._entries.pop(0)

    def purge(self, peer: Hashable) -> list[Entry]:
        """Drop every entry for peer and reject its waiters.

        Returns the removed entries in their original order. Entries for
        other peers keep their relative order.
        """
        removed = [entry for entry in self._entries if entry.peer == peer]
        if not removed:
            return removed

        self._entries = [entry for entry in self._entries if entry.peer != peer]

        error = QueuePurgedError(peer)
        for entry in removed:
            entry.reject(error)
            if self._metrics is not None:
                self._metrics.record_purged(len(entry.waiters))

        logger.info("Purged {} queued entries for peer={}", len(removed), peer)
        return removed
