"""Resilience helpers for external integrations."""

from taskflow.integrations.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerOpen,
    CircuitState,
)

__all__ = ["CircuitBreaker", "CircuitBreakerConfig", "CircuitBreakerOpen", "CircuitState"]
