"""
Rate limiting utilities to blunt brute-force and runaway clients
"""

import time
import logging
from typing import Dict, List, Optional
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

@dataclass
class RateLimit:
    max_calls: int
    window_seconds: int
    current_calls: List[float] = field(default_factory=list)

class RateLimiter:
    """Sliding-window rate limiter keyed by client (usually the source IP)"""

    def __init__(self, name: str, max_calls: int, window_seconds: int):
        self.name = name
        self.max_calls = max_calls
        self.window_seconds = window_seconds
        self.limits: Dict[str, RateLimit] = {}

    def _prune(self, key: str, current_time: float) -> List[float]:
        """Drop calls outside the window; keys left with no calls are forgotten"""
        limit = self.limits.get(key)
        if limit is None:
            return []

        limit.current_calls = [
            call_time for call_time in limit.current_calls
            if current_time - call_time < limit.window_seconds
        ]
        if not limit.current_calls:
            del self.limits[key]
        return limit.current_calls

    def is_allowed(self, key: str, now: Optional[float] = None) -> bool:
        """Check if a call is allowed for ``key`` and record it when it is"""
        current_time = time.time() if now is None else now
        calls = self._prune(key, current_time)

        if len(calls) >= self.max_calls:
            logger.warning(
                f"Rate limit '{self.name}' exceeded for {key}: "
                f"{len(calls)}/{self.max_calls} in {self.window_seconds}s"
            )
            return False

        limit = self.limits.get(key)
        if limit is None:
            self._sweep(current_time)
            limit = RateLimit(max_calls=self.max_calls, window_seconds=self.window_seconds)
            self.limits[key] = limit
        limit.current_calls.append(current_time)
        return True

    def _sweep(self, current_time: float) -> None:
        for key in list(self.limits):
            self._prune(key, current_time)

    def get_remaining_calls(self, key: str, now: Optional[float] = None) -> int:
        """Get remaining calls for ``key`` in the current window"""
        current_time = time.time() if now is None else now
        return max(0, self.max_calls - len(self._prune(key, current_time)))

    def retry_after(self, key: str, now: Optional[float] = None) -> int:
        """Seconds until the oldest call in the window expires"""
        current_time = time.time() if now is None else now
        calls = self._prune(key, current_time)
        if len(calls) < self.max_calls:
            return 0
        return max(1, int(calls[0] + self.window_seconds - current_time))

    def reset_limit(self, key: Optional[str] = None):
        """Reset the window for one key, or for every key"""
        if key is None:
            self.limits.clear()
            logger.info(f"Reset rate limit '{self.name}' for all clients")
        elif self.limits.pop(key, None) is not None:
            logger.info(f"Reset rate limit '{self.name}' for {key}")
