"""Resilience patterns module."""

from vigil.core.patterns.retry import BackoffConfig, ExponentialBackoff

__all__ = ["BackoffConfig", "ExponentialBackoff"]
