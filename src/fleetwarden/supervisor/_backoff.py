"""Retry spacing for health checks.

A failed attempt inside one polling cycle is retried after a delay that
doubles (by default) with every attempt, capped at ``max_delay``.
"""

import math
import random
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ExponentialBackoff:
    """Delay schedule for retrying a failed health check.

    ``delay(n) = min(base * multiplier**n, max_delay)``, then spread by
    ``jitter`` around that value and clamped at zero.

    Attributes:
        base: Delay before the first retry, in seconds.
        max_delay: Upper bound for any single delay, in seconds.
        multiplier: Growth factor between consecutive retries. Must be >= 1.
        jitter: Relative width of the random spread (0.0 disables it).
    """

    base: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0
    jitter: float = 0.0

    def __post_init__(self) -> None:
        if self.base < 0 or self.max_delay < 0:
            msg = "Backoff delays must be non-negative"
            raise ValueError(msg)
        if self.multiplier < 1:
            msg = f"Backoff multiplier must be >= 1, got {self.multiplier:g}"
            raise ValueError(msg)
        if not 0.0 <= self.jitter <= 1.0:
            msg = f"Backoff jitter must be within [0, 1], got {self.jitter:g}"
            raise ValueError(msg)

    def delay(self, attempt: int) -> float:
        """Seconds to wait after the given 0-indexed failed attempt."""
        if self.base == 0 or self.max_delay == 0:
            return 0.0
        # Compare exponents to avoid overflowing on long retry runs
        if self.multiplier > 1 and attempt * math.log(self.multiplier) >= math.log(
            self.max_delay / self.base
        ):
            nominal = self.max_delay
        else:
            nominal = min(self.base * self.multiplier**attempt, self.max_delay)

        if not self.jitter:
            return nominal
        spread = nominal * self.jitter / 2
        return max(0.0, nominal + random.uniform(-spread, spread))  # noqa: S311
