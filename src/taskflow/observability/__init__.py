"""Observability helpers for Taskflow."""

from taskflow.observability.metrics import MetricsRegistry, metrics

__all__ = ["MetricsRegistry", "metrics"]
