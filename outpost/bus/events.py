"""Outbound message types.

MessagePayload is what callers hand to the dispatch layer. Text-only
payloads may be merged with other text for the same peer; payloads that
carry an attachment, forwarded messages or a sticker never are.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

# Keys of the wire mapping that make a message "special".
SPECIAL_KEYS = ("attachment", "forward_messages", "sticker_id")


@dataclass(frozen=True, slots=True)
class MessagePayload:
    """Body of one outgoing message, without its destination.

    extra holds any other platform parameters (keyboard, dont_parse_links,
    etc.) and is passed to the wire mapping untouched.
    """

    text: str = ""
    attachment: str | None = None
    forward_messages: str | None = None
    sticker_id: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_special(self) -> bool:
        return (
            self.attachment is not None
            or self.forward_messages is not None
            or self.sticker_id is not None
        )

    def with_appended_text(self, text: str) -> MessagePayload:
        """Return a copy whose body has text joined on with a blank line."""
        return replace(self, text=f"{self.text}\n\n{text}")

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> MessagePayload:
        """Build a payload from a loose parameter mapping.

        Accepts either "text" or "message" for the body. Peer keys are
        dropped since the destination travels separately. A special key
        whose value is None counts as absent, so {"message": "x",
        "attachment": None} stays a plain text message and may be merged.
        """
        remaining = dict(params)
        text = remaining.pop("text", None)
        message = remaining.pop("message", None)
        for key in ("peer", "peer_id", "_from"):
            remaining.pop(key, None)

        return cls(
            text=str(text if text is not None else message or ""),
            attachment=remaining.pop("attachment", None),
            forward_messages=remaining.pop("forward_messages", None),
            sticker_id=remaining.pop("sticker_id", None),
            extra=remaining,
        )

    def to_params(self, peer: Any) -> dict[str, Any]:
        """Wire mapping for the platform's messages.send method."""
        params: dict[str, Any] = {"peer_id": peer}
        if self.text:
            params["message"] = self.text
        for key in SPECIAL_KEYS:
            value = getattr(self, key)
            if value is not None:
                params[key] = value
        params.update(self.extra)
        return params


@dataclass(frozen=True, slots=True)
class ChallengeDescriptor:
    """A captcha the platform wants solved before accepting more sends."""

    sid: str
    src: str
    metadata: dict[str, Any] = field(default_factory=dict)
