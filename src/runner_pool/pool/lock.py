"""
Per-scope mutual exclusion for reconciliations.

Two overlapping triggers for the same scope would both see the same deficit
and over-provision. Holding a Redis lock keyed by scope for the duration of
one reconciliation rules that out.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from redis import asyncio as aioredis
from redis.exceptions import LockError, RedisError

from runner_pool.common.constants import REDIS_KEYS, TIMEOUTS
from runner_pool.common.errors import PoolLockError, ReconciliationInProgressError
from runner_pool.common.schemas import RunnerScope


logger = structlog.get_logger(__name__)


def lock_key(scope: RunnerScope) -> str:
    return REDIS_KEYS["POOL_LOCK"].format(scope_type=scope.scope_type, owner=scope.owner)


class ScopeLock:
    """Redis lock held while one scope is being reconciled"""
    
    def __init__(
        self,
        redis: aioredis.Redis,
        timeout: float = TIMEOUTS["POOL_LOCK"],
        blocking_timeout: float = TIMEOUTS["POOL_LOCK_WAIT"],
    ):
        self.redis = redis
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout
    
    @asynccontextmanager
    async def hold(self, scope: RunnerScope) -> AsyncIterator[None]:
        key = lock_key(scope)
        lock = self.redis.lock(key, timeout=self.timeout)
        try:
            if self.blocking_timeout > 0:
                acquired = await lock.acquire(blocking=True, blocking_timeout=self.blocking_timeout)
            else:
                acquired = await lock.acquire(blocking=False)
        except RedisError as e:
            raise PoolLockError(f"Failed to acquire pool lock {key}: {e}") from e
        if not acquired:
            raise ReconciliationInProgressError(f"Pool for {scope.owner} is already being adjusted ({key})")
        
        logger.debug("Acquired pool lock", key=key)
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError as e:
                # The lock expired before the reconciliation finished
                logger.warning("Pool lock was lost before release", key=key, error=str(e))
            except RedisError as e:
                logger.warning("Failed to release pool lock, it expires on its own", key=key, error=str(e))
