"""Tests for the captcha gate."""

from __future__ import annotations

import pytest

from outpost.dispatch.captcha import CaptchaGate
from outpost.exceptions import ChallengeFailure
from outpost.observe.metrics import DispatchMetrics


class TestGateCounter:
    def test_new_gate_is_not_blocking(self):
        gate = CaptchaGate()
        assert gate.is_blocking() is False
        assert gate.count() == 0

    def test_open_and_close(self):
        gate = CaptchaGate()
        gate.open()
        gate.open()
        assert gate.count() == 2
        assert gate.is_blocking()

        gate.close()
        assert gate.is_blocking()
        gate.close()
        assert not gate.is_blocking()

    def test_close_never_goes_below_zero(self):
        gate = CaptchaGate()
        gate.close()
        assert gate.count() == 0

    def test_listeners_see_each_transition(self):
        gate = CaptchaGate()
        seen: list[int] = []
        gate.add_listener(lambda g: seen.append(g.count()))

        gate.open()
        gate.close()
        gate.close()

        assert seen == [1, 0]

    def test_failing_listener_does_not_break_gate(self):
        gate = CaptchaGate()

        def _boom(_gate):
            raise RuntimeError("listener failed")

        gate.add_listener(_boom)
        gate.open()
        assert gate.count() == 1


class TestChallenge:
    @pytest.mark.asyncio
    async def test_success_closes_gate(self):
        metrics = DispatchMetrics()
        gate = CaptchaGate(metrics)
        keys: list[str] = []

        async def retry(key: str) -> str:
            keys.append(key)
            return "accepted"

        resolve = gate.challenge(retry)
        assert gate.is_blocking()

        assert await resolve("abc") == "accepted"
        assert keys == ["abc"]
        assert not gate.is_blocking()
        assert metrics.snapshot().challenges == 1

    @pytest.mark.asyncio
    async def test_failure_closes_gate_and_raises(self):
        gate = CaptchaGate()

        async def retry(key: str) -> None:
            raise ValueError("wrong captcha")

        resolve = gate.challenge(retry)

        with pytest.raises(ChallengeFailure) as exc_info:
            await resolve("bad")
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert not gate.is_blocking()

    @pytest.mark.asyncio
    async def test_challenge_failure_passes_through(self):
        gate = CaptchaGate()
        original = ChallengeFailure("expired")

        async def retry(key: str) -> None:
            raise original

        resolve = gate.challenge(retry)

        with pytest.raises(ChallengeFailure) as exc_info:
            await resolve("late")
        assert exc_info.value is original

    @pytest.mark.asyncio
    async def test_second_resolve_does_not_close_again(self):
        gate = CaptchaGate()

        async def retry(key: str) -> str:
            return key

        first = gate.challenge(retry)
        gate.challenge(retry)
        assert gate.count() == 2

        await first("one")
        await first("again")

        assert gate.count() == 1
