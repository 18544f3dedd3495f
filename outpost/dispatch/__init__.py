"""Dispatch loop, captcha gate and eviction handling."""

from outpost.dispatch.captcha import CaptchaGate
from outpost.dispatch.dispatcher import Dispatcher, DispatchState
from outpost.dispatch.eviction import EvictionHandler

__all__ = ["CaptchaGate", "DispatchState", "Dispatcher", "EvictionHandler"]
