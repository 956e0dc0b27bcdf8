"""
Per-source Rate Limiter for External Wine-Data Calls

Enforces, independently for every registered key (one per data source):
1. Requests per minute (sliding 60 second window)
2. Requests per day (sliding 24 hour window)

Usage:
    from pourtrait.rate_limiter import RateLimiter

    limiter = RateLimiter()
    limiter.register("vivino", requests_per_minute=60, requests_per_day=1000)

    # Before making a request
    limiter.check_and_increment("vivino")  # raises RateLimitError when over

The clock is injectable so window behavior is testable without sleeping.
State is only touched synchronously, so a single event loop can share one
limiter across concurrent source queries.
"""

import time
import logging
from collections import deque
from typing import Callable, Deque, Dict, Any, Optional
from dataclasses import dataclass

logger = logging.getLogger(__name__)

MINUTE_SECONDS = 60
DAY_SECONDS = 24 * 60 * 60


@dataclass
class RateLimitConfig:
    """Configuration for one rate-limited key."""

    requests_per_minute: int = 20
    requests_per_day: Optional[int] = None
    display_name: str = ""

    # Warning thresholds (percentage of limit)
    warning_threshold: float = 0.8  # Warn at 80% of limit


@dataclass
class RequestRecord:
    """Record of a single admitted request."""

    timestamp: float


class RateLimitError(Exception):
    """Raised when rate limit is exceeded."""
    pass


class RateLimiter:
    """
    Sliding window rate limiter keyed by source id.

    Keys never coordinate with each other; each has its own windows.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """
        Initialize rate limiter.

        Args:
            clock: Time source in seconds (default: time.monotonic)
        """
        self.clock = clock
        self.configs: Dict[str, RateLimitConfig] = {}
        self.requests_minute: Dict[str, Deque[RequestRecord]] = {}
        self.requests_day: Dict[str, Deque[RequestRecord]] = {}
        self.total_requests: Dict[str, int] = {}

    def register(
        self,
        key: str,
        requests_per_minute: int,
        requests_per_day: Optional[int] = None,
        display_name: str = ""
    ) -> None:
        """Register limits for a key, keeping any recorded history."""
        self.configs[key] = RateLimitConfig(
            requests_per_minute=requests_per_minute,
            requests_per_day=requests_per_day,
            display_name=display_name or key,
        )
        self.requests_minute.setdefault(key, deque())
        self.requests_day.setdefault(key, deque())
        self.total_requests.setdefault(key, 0)

        logger.info(
            f"RateLimiter registered {self.configs[key].display_name}: "
            f"{requests_per_minute} req/min"
            + (f", {requests_per_day} req/day" if requests_per_day else "")
        )

    def _config(self, key: str) -> RateLimitConfig:
        if key not in self.configs:
            raise KeyError(f"Rate limit key not registered: {key}")
        return self.configs[key]

    def _clean_windows(self, key: str, current_time: float):
        """Remove expired records from sliding windows."""
        minute = self.requests_minute[key]
        while minute and minute[0].timestamp <= current_time - MINUTE_SECONDS:
            minute.popleft()

        day = self.requests_day[key]
        while day and day[0].timestamp <= current_time - DAY_SECONDS:
            day.popleft()

    def check_limits(self, key: str) -> Dict[str, Any]:
        """
        Check current usage of a key against its limits.

        Returns:
            dict with:
                - allowed (bool): Whether a request is allowed
                - reason (str): Reason if not allowed
                - usage (dict): Current usage stats
        """
        config = self._config(key)
        current_time = self.clock()
        self._clean_windows(key, current_time)

        requests_in_minute = len(self.requests_minute[key])
        requests_in_day = len(self.requests_day[key])

        status = {
            'allowed': True,
            'reason': '',
            'usage': {
                'requests_per_minute': requests_in_minute,
                'requests_per_day': requests_in_day,
                'total_requests': self.total_requests[key],
            }
        }

        if requests_in_minute >= config.requests_per_minute:
            status['allowed'] = False
            status['reason'] = (
                f"Rate limit exceeded for {config.display_name}: "
                f"{requests_in_minute}/{config.requests_per_minute} requests in the last minute"
            )
            logger.warning(status['reason'])
            return status

        if config.requests_per_day is not None and requests_in_day >= config.requests_per_day:
            status['allowed'] = False
            status['reason'] = (
                f"Rate limit exceeded for {config.display_name}: "
                f"{requests_in_day}/{config.requests_per_day} requests in the last day"
            )
            logger.warning(status['reason'])
            return status

        if requests_in_minute >= config.requests_per_minute * config.warning_threshold:
            logger.warning(
                f"Approaching minute limit for {config.display_name}: "
                f"{requests_in_minute}/{config.requests_per_minute}"
            )

        return status

    def check_and_increment(self, key: str) -> bool:
        """
        Check if a request is allowed and record it.

        Returns:
            True if request allowed

        Raises:
            RateLimitError: If rate limit exceeded
        """
        status = self.check_limits(key)

        if not status['allowed']:
            raise RateLimitError(status['reason'])

        record = RequestRecord(timestamp=self.clock())
        self.requests_minute[key].append(record)
        self.requests_day[key].append(record)
        self.total_requests[key] += 1

        logger.debug(
            f"Request allowed for {key}: "
            f"{status['usage']['requests_per_minute'] + 1}/{self.configs[key].requests_per_minute} req/min"
        )
        return True

    def try_acquire(self, key: str) -> bool:
        """Non-raising variant of check_and_increment."""
        try:
            return self.check_and_increment(key)
        except RateLimitError:
            return False

    def get_stats(self, key: str) -> Dict[str, Any]:
        """Get current usage statistics for a key."""
        config = self._config(key)
        self._clean_windows(key, self.clock())

        requests_in_minute = len(self.requests_minute[key])
        return {
            'requests_per_minute': requests_in_minute,
            'requests_per_day': len(self.requests_day[key]),
            'total_requests': self.total_requests[key],
            'limits': {
                'requests_per_minute_limit': config.requests_per_minute,
                'requests_per_day_limit': config.requests_per_day,
            },
            'utilization': {
                'minute': f"{(requests_in_minute / config.requests_per_minute) * 100:.1f}%",
            }
        }

    def reset(self, key: Optional[str] = None):
        """Reset windows for one key, or for all keys."""
        keys = [key] if key is not None else list(self.configs)
        for k in keys:
            self.requests_minute[k].clear()
            self.requests_day[k].clear()
            self.total_requests[k] = 0
        logger.info("Rate limiter reset")


# Global rate limiter instance
_global_limiter: Optional[RateLimiter] = None


def get_global_limiter() -> RateLimiter:
    """
    Get or create global rate limiter instance.

    Singleton pattern for easy integration across modules.
    """
    global _global_limiter

    if _global_limiter is None:
        _global_limiter = RateLimiter()

    return _global_limiter


# Export key classes and functions
__all__ = [
    'RateLimiter',
    'RateLimitError',
    'RateLimitConfig',
    'get_global_limiter'
]
