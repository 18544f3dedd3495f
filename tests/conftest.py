"""Shared test fixtures for the outpost test suite.

The _isolate_outpost_config fixture (autouse) prevents OutpostConfig from
reading the user's real ~/.outpost/config.json during tests.
"""

from __future__ import annotations

import asyncio
from collections.abc import Hashable
from pathlib import Path
from typing import Any

import pytest

from outpost.bus.events import ChallengeDescriptor, MessagePayload
from outpost.config.schema import OutpostConfig
from outpost.platform import (
    ChallengeRequiredHandler,
    EvictedHandler,
    EvictionSource,
    SendCapability,
)


@pytest.fixture(autouse=True)
def _isolate_outpost_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Point OutpostConfig's json_file at an empty temp file for every test."""
    empty_config = tmp_path / "outpost_test_config.json"
    empty_config.write_text("{}", encoding="utf-8")
    monkeypatch.setitem(OutpostConfig.model_config, "json_file", empty_config)


class FakeClient(SendCapability):
    """In-memory send capability.

    Records every send. When hold() is active, sends block until
    release() is called, which lets tests observe in-flight sends.
    fail_peers makes sends to those peers raise RuntimeError.
    """

    def __init__(self) -> None:
        self.sent: list[tuple[Hashable, MessagePayload]] = []
        self.fail_peers: set[Hashable] = set()
        self.challenge_handler: ChallengeRequiredHandler | None = None
        self._gate: asyncio.Event | None = None

    def hold(self) -> None:
        self._gate = asyncio.Event()

    def release(self) -> None:
        if self._gate is not None:
            self._gate.set()

    async def send(self, peer: Hashable, payload: MessagePayload) -> Any:
        self.sent.append((peer, payload))
        if self._gate is not None:
            await self._gate.wait()
        if peer in self.fail_peers:
            raise RuntimeError(f"peer {peer} unreachable")
        return {"message_id": len(self.sent)}

    def on_challenge_required(self, handler: ChallengeRequiredHandler) -> None:
        self.challenge_handler = handler

    async def trigger_challenge(self, retry) -> None:
        assert self.challenge_handler is not None
        descriptor = ChallengeDescriptor(sid="42", src="https://captcha/42")
        result = self.challenge_handler(descriptor, retry)
        if asyncio.iscoroutine(result):
            await result


class FakeEvents(EvictionSource):
    def __init__(self) -> None:
        self.handlers: list[EvictedHandler] = []

    def on_peer_evicted(self, handler: EvictedHandler) -> None:
        self.handlers.append(handler)

    def evict(self, peer: Hashable) -> None:
        for handler in self.handlers:
            handler(peer)


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def events() -> FakeEvents:
    return FakeEvents()
