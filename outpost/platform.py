"""Outbound side of a chat platform adapter.

OutboundPlatform owns the pending queue, the captcha gate, the drain loop
and the eviction handler, and wires them to the collaborators it is
given: a SendCapability (the API client) and, optionally, an
EvictionSource (the long-poll event stream). Host frameworks call
enqueue_outgoing() and read the captcha accessors; everything else is
internal.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Hashable
from typing import Any

from loguru import logger

from outpost.bus.events import ChallengeDescriptor, MessagePayload
from outpost.bus.queue import PendingQueue
from outpost.config.schema import DispatchConfig
from outpost.dispatch.captcha import CaptchaGate, ChallengeResolver, RetryCallback
from outpost.dispatch.dispatcher import Dispatcher, DispatchState
from outpost.dispatch.eviction import EvictionHandler
from outpost.exceptions import DispatchError, DispatcherStopped, SendFailure
from outpost.observe.metrics import DispatchMetrics, DispatchMetricsSnapshot

ChallengeRequiredHandler = Callable[[ChallengeDescriptor, RetryCallback], Awaitable[None] | None]
CaptchaHandler = Callable[[ChallengeDescriptor, ChallengeResolver], Awaitable[None] | None]
EvictedHandler = Callable[[Hashable], None]


class SendCapability(ABC):
    """The API client operations the dispatch layer needs."""

    @abstractmethod
    async def send(self, peer: Hashable, payload: MessagePayload) -> Any:
        """Deliver one message and return the platform's response."""

    @abstractmethod
    def on_challenge_required(self, handler: ChallengeRequiredHandler) -> None:
        """Register the callback run when the platform demands a captcha.

        The client calls handler(descriptor, retry) and keeps the request
        that triggered the captcha pending until retry(key) settles it.
        """


class EvictionSource(ABC):
    """Event stream that reports the bot losing access to a conversation."""

    @abstractmethod
    def on_peer_evicted(self, handler: EvictedHandler) -> None:
        """Register handler(peer) for "bot removed from conversation" events."""


class OutboundPlatform:
    """Rate-limited, captcha-aware outbound message delivery."""

    def __init__(
        self,
        client: SendCapability,
        config: DispatchConfig | None = None,
        events: EvictionSource | None = None,
        metrics: DispatchMetrics | None = None,
    ) -> None:
        self._client = client
        self._config = config or DispatchConfig()
        self._metrics = metrics or DispatchMetrics()

        self._queue = PendingQueue(self._metrics)
        self._gate = CaptchaGate(self._metrics)
        self._dispatcher = Dispatcher(
            self._queue,
            client.send,
            self._gate,
            self._config.sending_interval_seconds,
            metrics=self._metrics,
        )
        self._eviction = EvictionHandler(self._queue, self_id=self._config.self_id)
        self._direct_sends: set[asyncio.Task[Any]] = set()
        self._closing = False

        if events is not None:
            events.on_peer_evicted(self._eviction.on_evicted)

    @property
    def eviction(self) -> EvictionHandler:
        return self._eviction

    @property
    def state(self) -> DispatchState:
        return self._dispatcher.state

    def enqueue_outgoing(
        self, peer: Hashable, payload: MessagePayload | str
    ) -> asyncio.Future[Any]:
        """Schedule delivery of payload to peer.

        Returns a future resolved with the platform response once the
        message (or the merged message it was folded into) is sent.
        """
        if isinstance(payload, str):
            payload = MessagePayload(text=payload)

        if self._config.is_group:
            return self._send_direct(peer, payload)

        future = self._queue.enqueue(peer, payload)
        self._dispatcher.kick()
        return future

    def set_captcha_handler(self, handler: CaptchaHandler) -> None:
        """Route captcha challenges to handler(descriptor, resolve).

        Dispatch stays suspended until resolve(key) is awaited and settles.
        """

        def _on_challenge(descriptor: ChallengeDescriptor, retry: RetryCallback):
            logger.info("Captcha required (sid={})", descriptor.sid)
            return handler(descriptor, self._gate.challenge(retry))

        self._client.on_challenge_required(_on_challenge)

    def has_captcha(self) -> bool:
        return self._gate.is_blocking()

    def get_captcha_count(self) -> int:
        return self._gate.count()

    def pending_count(self) -> int:
        return len(self._queue)

    def metrics(self) -> DispatchMetricsSnapshot:
        return self._metrics.snapshot()

    async def close(self, timeout: float | None = None) -> None:
        """Stop dispatching and wait for sends already started.

        Sends still running after timeout seconds are cancelled and
        their callers receive DispatcherStopped.
        """
        self._closing = True
        await self._dispatcher.stop(timeout=timeout)
        if self._direct_sends:
            _, still_running = await asyncio.wait(set(self._direct_sends), timeout=timeout)
            for task in still_running:
                task.cancel()
            if still_running:
                logger.warning(
                    "Cancelled {} direct sends still running at shutdown", len(still_running)
                )
                await asyncio.gather(*still_running, return_exceptions=True)
        logger.debug("Outbound platform closed ({} still queued)", len(self._queue))

    def _send_direct(self, peer: Hashable, payload: MessagePayload) -> asyncio.Future[Any]:
        async def _send() -> Any:
            try:
                response = await self._client.send(peer, payload)
            except asyncio.CancelledError:
                if not self._closing:
                    raise
                raise DispatcherStopped("Platform closed during send", peer=peer) from None
            except DispatchError:
                self._metrics.record_failed()
                raise
            except Exception as exc:
                self._metrics.record_failed()
                raise SendFailure(f"Send to {peer} failed: {exc}", peer=peer) from exc
            self._metrics.record_sent()
            return response

        self._metrics.record_enqueued()
        task = asyncio.get_running_loop().create_task(_send())
        self._direct_sends.add(task)
        task.add_done_callback(self._direct_sends.discard)
        return task
