"""Observability helpers for the dispatch layer."""

from outpost.observe.metrics import DispatchMetrics, DispatchMetricsSnapshot

__all__ = ["DispatchMetrics", "DispatchMetricsSnapshot"]
