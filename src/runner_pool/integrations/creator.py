"""
Runner creators

The reconciler only decides how many runners are missing. Launching and
registering them belongs to a runner creator; the ones here hand the request
over without waiting for the runners to come up.
"""

import json
from datetime import datetime
from typing import Any, Optional, Protocol

import structlog
from redis import asyncio as aioredis

from runner_pool.common.constants import REDIS_KEYS
from runner_pool.common.schemas import CreateRunnersRequest, GitHubUrls
from runner_pool.common.utils import utcnow


logger = structlog.get_logger(__name__)


class RunnerCreator(Protocol):
    """Provisions ``request.number_of_runners`` new runners."""

    async def create_runners(
        self,
        client: Any,
        request: CreateRunnersRequest,
        urls: GitHubUrls,
    ) -> None:
        ...


class QueueRunnerCreator:
    """Pushes creation requests onto a Redis list for the provisioning worker"""
    
    def __init__(self, redis: aioredis.Redis, queue_key: str = REDIS_KEYS["CREATE_QUEUE"]):
        self.redis = redis
        self.queue_key = queue_key
    
    def build_message(
        self,
        request: CreateRunnersRequest,
        urls: GitHubUrls,
        requested_at: Optional[datetime] = None,
    ) -> str:
        message = {
            "request": request.model_dump(mode="json"),
            "github": urls.model_dump(mode="json"),
            "requested_at": (requested_at or utcnow()).isoformat(),
        }
        return json.dumps(message, sort_keys=True)
    
    async def create_runners(
        self,
        client: Any,
        request: CreateRunnersRequest,
        urls: GitHubUrls,
    ) -> None:
        await self.redis.lpush(self.queue_key, self.build_message(request, urls))
        
        logger.info(
            "Runner creation requested",
            queue=self.queue_key,
            owner=request.scope.owner,
            number_of_runners=request.number_of_runners,
        )
    
    async def close(self) -> None:
        await self.redis.aclose()


class LoggingRunnerCreator:
    """Dry-run creator: records what would have been created"""
    
    async def create_runners(
        self,
        client: Any,
        request: CreateRunnersRequest,
        urls: GitHubUrls,
    ) -> None:
        logger.info(
            "Dry run, not creating runners",
            owner=request.scope.owner,
            number_of_runners=request.number_of_runners,
            api_url=urls.api_url,
        )
