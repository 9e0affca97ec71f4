"""Exponential backoff policy shared by event delivery and error recovery."""

from dataclasses import dataclass


@dataclass
class BackoffConfig:
    """Backoff configuration."""

    max_attempts: int = 5  # attempts before giving up
    base_delay: float = 1.0  # seconds
    max_delay: float = 60.0  # seconds
    exponential_base: float = 2.0


class ExponentialBackoff:
    """Computes retry delays and tracks whether attempts are exhausted."""

    def __init__(self, config: BackoffConfig | None = None):
        self.config = config or BackoffConfig()

    def delay(self, attempt_number: int) -> float:
        """Delay before the retry following failed attempt ``attempt_number``.

        Args:
            attempt_number: Failed attempts so far (1-based)

        Returns:
            Delay in seconds
        """
        if attempt_number <= 0:
            return 0.0

        delay = self.config.base_delay * (self.config.exponential_base ** (attempt_number - 1))
        return max(0.0, min(delay, self.config.max_delay))

    def exhausted(self, attempt_number: int) -> bool:
        return attempt_number >= self.config.max_attempts
