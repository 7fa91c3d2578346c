import abc
import math
import time
from typing import Dict, Tuple


class RateLimitStorage(abc.ABC):
    @abc.abstractmethod
    async def consume(self, key: str, capacity: int, refill_rate: float, cost: int = 1) -> Tuple[bool, int, float]:
        """
        Take ``cost`` tokens from the bucket identified by ``key``.

        Returns:
            (allowed, remaining_tokens, retry_after_seconds)
        """
        pass


class MemoryRateLimitStorage(RateLimitStorage):
    """Token buckets held in process memory.

    Safe on a single event loop: ``consume`` never awaits between reading and
    writing a bucket.
    """

    def __init__(self):
        # key -> (tokens, last_refill_timestamp)
        self._buckets: Dict[str, Tuple[float, float]] = {}

    async def consume(self, key: str, capacity: int, refill_rate: float, cost: int = 1) -> Tuple[bool, int, float]:
        now = time.time()
        tokens, last_refill = self._buckets.get(key, (float(capacity), now))

        tokens = min(float(capacity), tokens + (now - last_refill) * refill_rate)

        if tokens >= cost:
            tokens -= cost
            self._buckets[key] = (tokens, now)
            return True, int(tokens), 0.0

        self._buckets[key] = (tokens, now)
        return False, int(tokens), (cost - tokens) / refill_rate


class RateLimiter:
    def __init__(self, storage: RateLimitStorage):
        self.storage = storage

    async def check_throughput(self, key: str, rps: float, burst: int) -> Tuple[bool, Dict[str, str]]:
        """Check a bucket refilled at ``rps`` and holding at most ``burst`` tokens."""
        allowed, remaining, retry_after = await self.storage.consume(key, burst, rps)

        headers = {
            "X-RateLimit-Limit": str(burst),
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Reset": str(int(time.time() + retry_after)),
        }
        if not allowed:
            headers["Retry-After"] = str(int(math.ceil(retry_after)))

        return allowed, headers
