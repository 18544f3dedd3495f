"""Captcha gate: suspends dispatch while challenges are outstanding.

The platform may answer a send with "captcha needed". Until the captcha
is answered no further sends should be started, but callers may keep
enqueueing. A counter rather than a flag lets several challenges be
outstanding at once; dispatch resumes only when all of them settle.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from outpost.exceptions import ChallengeFailure
from outpost.observe.metrics import DispatchMetrics

GateListener = Callable[["CaptchaGate"], None]
RetryCallback = Callable[[str], Awaitable[Any]]
ChallengeResolver = Callable[[str], Awaitable[Any]]


class CaptchaGate:
    """Counter of outstanding captcha challenges."""

    def __init__(self, metrics: DispatchMetrics | None = None) -> None:
        self._count = 0
        self._listeners: list[GateListener] = []
        self._metrics = metrics

    def add_listener(self, listener: GateListener) -> None:
        """Register a callback run after every open/close transition."""
        self._listeners.append(listener)

    def open(self) -> None:
        self._count += 1
        if self._metrics is not None:
            self._metrics.record_challenge()
        logger.debug("Captcha gate opened (outstanding: {})", self._count)
        self._notify()

    def close(self) -> None:
        if self._count == 0:
            logger.warning("Captcha gate closed with no outstanding challenge")
            return
        self._count -= 1
        logger.debug("Captcha gate closed (outstanding: {})", self._count)
        self._notify()

    def is_blocking(self) -> bool:
        return self._count > 0

    def count(self) -> int:
        return self._count

    def challenge(self, retry: RetryCallback) -> ChallengeResolver:
        """Open the gate and return the resolver for one challenge.

        retry(key) is the transport's own continuation that resubmits the
        captcha answer. The returned resolver closes the gate exactly once,
        whether the answer is accepted or not. A rejected answer surfaces
        as ChallengeFailure to whoever awaited the resolver; queued
        messages are not affected.
        """
        self.open()
        settled = False

        async def resolve(key: str) -> Any:
            nonlocal settled
            if settled:
                return await retry(key)
            settled = True

            try:
                result = await retry(key)
            except ChallengeFailure:
                logger.debug("Captcha fail")
                self.close()
                raise
            except Exception as exc:
                logger.debug("Captcha fail: {}", exc)
                self.close()
                raise ChallengeFailure(f"Captcha answer rejected: {exc}") from exc

            logger.debug("Captcha success")
            self.close()
            return result

        return resolve

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as exc:
                logger.error("Captcha gate listener error: {}", exc)
