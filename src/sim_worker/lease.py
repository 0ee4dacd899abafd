"""Advisory single-worker lease held in Redis.

`SET NX PX` with a random owner token; renew and release only succeed while the
key still carries our token. The lease keeps two workers from burning retries
against each other; correctness still rests on the world_tick_state lock.
"""
import logging
import uuid

import redis.asyncio as aioredis

from src.sim_common.errors import DomainInvariantError

logger = logging.getLogger(__name__)

_KEY_PREFIX = "sim:lease:"

# KEYS[1] lease key, ARGV[1] owner token
_RELEASE_SCRIPT = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""

# KEYS[1] lease key, ARGV[1] owner token, ARGV[2] ttl ms
_RENEW_SCRIPT = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('PEXPIRE', KEYS[1], ARGV[2])
end
return 0
"""


class SimulationLease:
    def __init__(
        self,
        redis: aioredis.Redis,
        name: str,
        ttl_ms: int,
        owner_id: str | None = None,
    ) -> None:
        if not name or not name.strip():
            raise DomainInvariantError("lease name must be provided")
        if isinstance(ttl_ms, bool) or not isinstance(ttl_ms, int) or ttl_ms <= 0:
            raise DomainInvariantError("lease ttl_ms must be a positive integer")
        self._redis = redis
        self.key = f"{_KEY_PREFIX}{name.strip()}"
        self.ttl_ms = ttl_ms
        self.owner_id = owner_id or uuid.uuid4().hex

    async def acquire(self) -> bool:
        """Take the lease if free; re-entry by the same owner just extends it."""
        acquired = await self._redis.set(self.key, self.owner_id, nx=True, px=self.ttl_ms)
        if acquired:
            logger.info("Acquired lease %s as %s", self.key, self.owner_id)
            return True
        return await self.renew()

    async def renew(self) -> bool:
        renewed = await self._redis.eval(_RENEW_SCRIPT, 1, self.key, self.owner_id, self.ttl_ms)
        return bool(renewed)

    async def release(self) -> None:
        released = await self._redis.eval(_RELEASE_SCRIPT, 1, self.key, self.owner_id)
        if released:
            logger.info("Released lease %s", self.key)
