"""Errors delivered to callers of the outbound dispatch layer.

None of these are raised from enqueue calls directly. They arrive
through the futures returned to callers, or, for captcha failures,
through the resolver handed to the captcha handler.
"""

from __future__ import annotations

from typing import Any


class DispatchError(Exception):
    """Base class for all dispatch errors."""

    def __init__(self, message: str, *, peer: Any = None, hint: str = "") -> None:
        self.peer = peer
        self.hint = hint
        super().__init__(message)


class SendFailure(DispatchError):
    """The send capability rejected the message."""


class ChallengeFailure(DispatchError):
    """The captcha answer was rejected by the platform."""


class QueuePurgedError(DispatchError):
    """The peer's pending messages were discarded before sending."""

    def __init__(self, peer: Any) -> None:
        super().__init__(
            f"Purge the queue for the destination ID {peer}",
            peer=peer,
            hint="The bot lost access to this conversation.",
        )


class DispatcherStopped(DispatchError):
    """The dispatcher shut down while the send was still in flight."""
