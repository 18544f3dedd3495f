"""Purges queued messages for conversations the bot was removed from."""

from __future__ import annotations

from collections.abc import Hashable

from loguru import logger

from outpost.bus.queue import PendingQueue


class EvictionHandler:
    """Turns "removed from conversation" events into queue purges.

    self_id is the bot's own account id. It is only needed for
    on_member_removed, which sees every member removal in a chat.
    """

    def __init__(self, queue: PendingQueue, self_id: Hashable | None = None) -> None:
        self._queue = queue
        self.self_id = self_id

    def on_evicted(self, peer: Hashable) -> None:
        removed = self._queue.purge(peer)
        if not removed:
            logger.debug("Eviction from peer={} with nothing queued", peer)

    def on_member_removed(self, peer: Hashable, member_id: Hashable) -> None:
        """Handle a raw chat member removal; only our own removal purges."""
        if self.self_id is None or member_id != self.self_id:
            return
        logger.info("Bot removed from peer={}", peer)
        self.on_evicted(peer)
