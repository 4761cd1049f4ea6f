"""Domain models."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed delay between attempts and the attempt budget (value object)."""

    delay_seconds: float
    max_attempts: int

    def __post_init__(self) -> None:
        if not isinstance(self.max_attempts, int):
            raise TypeError("retry_policy.max_attempts must be an int")
        if self.delay_seconds < 0:
            raise ValueError("retry_policy.delay_seconds must be >= 0")
