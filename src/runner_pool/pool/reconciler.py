"""
Pool Reconciler

Tops up the runner pool. One ``adjust`` call takes fresh snapshots of the
EC2 inventory and the GitHub runner list, works out how many idle or booting
runners the pool has, and asks the runner creator for exactly the missing
number. Excess capacity is left alone; scaling down is handled elsewhere.
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, List, Optional, Protocol, Tuple

import structlog

from runner_pool.common.config import PoolSettings
from runner_pool.common.errors import CreationRequestError, InventoryFetchError
from runner_pool.common.schemas import (
    CreateRunnersRequest,
    GitHubUrls,
    Instance,
    PoolAdjustment,
    PoolRequest,
    RegisteredRunner,
    RunnerScope,
)
from runner_pool.common.utils import utcnow
from runner_pool.integrations.creator import RunnerCreator
from runner_pool.integrations.github import get_github_enterprise_urls
from .classifier import classify_pool, count_classes, effective_capacity
from .lock import ScopeLock


logger = structlog.get_logger(__name__)


class InstanceInventory(Protocol):
    async def list_instances(self, scope: RunnerScope) -> List[Instance]:
        ...


class RegisteredRunnerSource(Protocol):
    async def list_runners(self, client: Any, scope: RunnerScope) -> List[RegisteredRunner]:
        ...


class PoolReconciler:
    """Computes the pool deficit and requests the missing runners"""
    
    def __init__(
        self,
        settings: PoolSettings,
        inventory: InstanceInventory,
        runner_reader: RegisteredRunnerSource,
        creator: RunnerCreator,
        lock: Optional[ScopeLock] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings
        self.inventory = inventory
        self.runner_reader = runner_reader
        self.creator = creator
        self.lock = lock
        self.clock = clock
    
    async def adjust(
        self,
        request: PoolRequest,
        client: Any,
        enterprise_url: Optional[str] = None,
    ) -> PoolAdjustment:
        """
        Top up the pool to ``request.pool_size``.

        Args:
            request: Desired pool size
            client: Installation-scoped GitHub client, handed to the readers
                and the runner creator
            enterprise_url: GitHub Enterprise base URL; None falls back to
                the configured ``GHES_URL``, empty means github.com

        Raises:
            ConfigurationError: If required settings are missing or invalid
            InventoryFetchError: If either fleet view cannot be read
            CreationRequestError: If the runner creator fails
            ReconciliationInProgressError: If locking is enabled and another
                reconciliation holds this scope
        """
        self.settings.validate_for_adjust()
        scope = self.settings.scope()
        if enterprise_url is None:
            enterprise_url = self.settings.ghes_url
        urls = get_github_enterprise_urls(enterprise_url)
        
        if self.lock is None:
            return await self._adjust(request, client, scope, urls)
        async with self.lock.hold(scope):
            return await self._adjust(request, client, scope, urls)
    
    async def _adjust(
        self,
        request: PoolRequest,
        client: Any,
        scope: RunnerScope,
        urls: GitHubUrls,
    ) -> PoolAdjustment:
        logger.info("Checking current pool size", owner=scope.owner, pool_size=request.pool_size)
        
        instances, runners = await self._fetch_snapshots(client, scope)
        
        classes = classify_pool(
            instances,
            runners,
            now=self.clock(),
            boot_grace_period=self.settings.boot_grace_period(),
            prefix=self.settings.runner_name_prefix,
        )
        capacity = effective_capacity(classes)
        deficit = request.pool_size - capacity
        result = PoolAdjustment(
            pool_size=request.pool_size,
            counts=count_classes(classes),
            capacity=capacity,
            deficit=deficit,
        )
        
        if deficit <= 0:
            logger.info(
                "Pool will not be topped up",
                owner=scope.owner,
                capacity=capacity,
                counts=result.counts,
            )
            return result
        
        logger.info(
            "Pool will be topped up",
            owner=scope.owner,
            number_of_runners=deficit,
            capacity=capacity,
            counts=result.counts,
        )
        create_request = CreateRunnersRequest(
            number_of_runners=deficit,
            scope=scope,
            runner_name_prefix=self.settings.runner_name_prefix,
            runner_labels=self.settings.labels(),
            runner_group=self.settings.runner_group_name,
            maximum_count=self.settings.runners_maximum_count,
        )
        try:
            await self.creator.create_runners(client, create_request, urls)
        except Exception as e:
            raise CreationRequestError(
                f"Failed to request {deficit} runners for {scope.owner}: {e}"
            ) from e
        
        result.requested = deficit
        return result
    
    async def _fetch_snapshots(
        self,
        client: Any,
        scope: RunnerScope,
    ) -> Tuple[List[Instance], List[RegisteredRunner]]:
        try:
            instances, runners = await asyncio.gather(
                self.inventory.list_instances(scope),
                self.runner_reader.list_runners(client, scope),
            )
        except InventoryFetchError:
            raise
        except Exception as e:
            raise InventoryFetchError("runner", str(e)) from e
        
        logger.debug(
            "Fetched fleet snapshots",
            owner=scope.owner,
            instances=len(instances),
            registered_runners=len(runners),
        )
        return instances, runners
