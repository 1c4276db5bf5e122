"""Redis sliding window rate limiter for per-credential dispatch."""

import time
import uuid

from redis import Redis

from push_worker.config import RateLimitConfig

# KEYS[1] window key; ARGV: window_start, limit, now, member, ttl.
# Returns 0 when a slot was taken, otherwise the score of the oldest entry
# still in the window (as a string, Redis truncates Lua floats).
_SLIDING_WINDOW_LUA = """
local key = KEYS[1]
redis.call('ZREMRANGEBYSCORE', key, '-inf', ARGV[1])
if redis.call('ZCARD', key) < tonumber(ARGV[2]) then
    redis.call('ZADD', key, ARGV[3], ARGV[4])
    redis.call('EXPIRE', key, ARGV[5])
    return 0
end
local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
return oldest[2]
"""


class RateLimiter:
    """Sliding window of dispatches per credential, shared by all workers.

    Every allowed dispatch adds one timestamped member to the sorted set
    ``ratelimit:<credential_id>``; the check, the trim and the insert run
    as one script so two workers cannot both take the last slot.
    """

    KEY_PREFIX = "ratelimit"

    def __init__(self, redis_client: Redis, config: RateLimitConfig) -> None:
        self._config = config
        self._script = redis_client.register_script(_SLIDING_WINDOW_LUA)

    def key_for(self, scope: str) -> str:
        return f"{self.KEY_PREFIX}:{scope}"

    def acquire(self, scope: str) -> float:
        """Take a dispatch slot for *scope* (a credential id).

        Returns 0.0 when the dispatch may proceed, otherwise the number of
        seconds until the oldest dispatch leaves the window.
        """
        now = time.time()
        window = self._config.window_seconds
        oldest = self._script(
            keys=[self.key_for(scope)],
            args=[
                now - window,
                self._config.dispatches_per_window,
                now,
                uuid.uuid4().hex,
                window + 1,
            ],
        )
        if not oldest:
            return 0.0
        return max(float(oldest) + window - now, 0.001)
