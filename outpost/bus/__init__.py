"""Outbound message model and the pending queue."""

from outpost.bus.events import ChallengeDescriptor, MessagePayload
from outpost.bus.queue import Entry, PendingQueue

__all__ = ["ChallengeDescriptor", "Entry", "MessagePayload", "PendingQueue"]
