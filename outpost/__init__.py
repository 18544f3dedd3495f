"""outpost: outbound message dispatch for chat-bot platform adapters."""

from outpost.bus.events import ChallengeDescriptor, MessagePayload
from outpost.config.schema import DispatchConfig
from outpost.platform import EvictionSource, OutboundPlatform, SendCapability

__version__ = "0.1.0"

__all__ = [
    "ChallengeDescriptor",
    "DispatchConfig",
    "EvictionSource",
    "MessagePayload",
    "OutboundPlatform",
    "SendCapability",
]
