"""
EC2 integration

Lists the running instances tagged as runners for a scope.
"""

import asyncio
from functools import partial
from typing import Any, Dict, List, Optional

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from runner_pool.common.constants import (
    EC2_APPLICATION_TAG_VALUE,
    EC2_RUNNING_STATES,
    EC2_TAGS,
)
from runner_pool.common.errors import InventoryFetchError
from runner_pool.common.schemas import Instance, RunnerScope
from runner_pool.common.utils import ensure_aware


logger = structlog.get_logger(__name__)


def _runner_filters(scope: RunnerScope) -> List[Dict[str, Any]]:
    filters = [
        {"Name": "instance-state-name", "Values": list(EC2_RUNNING_STATES)},
        {"Name": f"tag:{EC2_TAGS['APPLICATION']}", "Values": [EC2_APPLICATION_TAG_VALUE]},
        {"Name": f"tag:{EC2_TAGS['TYPE']}", "Values": [scope.scope_type]},
        {"Name": f"tag:{EC2_TAGS['OWNER']}", "Values": [scope.owner]},
    ]
    if scope.environment:
        filters.append({"Name": f"tag:{EC2_TAGS['ENVIRONMENT']}", "Values": [scope.environment]})
    return filters


def _tag(instance: Dict[str, Any], key: str) -> Optional[str]:
    for tag in instance.get("Tags", []):
        if tag.get("Key") == key:
            return tag.get("Value")
    return None


def list_ec2_runners(ec2, scope: RunnerScope) -> List[Instance]:
    """
    Return every running runner instance for the scope, across all pages.

    An empty pool is an empty list, not an error.

    Raises:
        InventoryFetchError: If EC2 cannot be queried
    """
    instances: List[Instance] = []
    try:
        paginator = ec2.get_paginator("describe_instances")
        for page in paginator.paginate(Filters=_runner_filters(scope)):
            for reservation in page.get("Reservations", []):
                for item in reservation.get("Instances", []):
                    instances.append(Instance(
                        instance_id=item["InstanceId"],
                        launch_time=ensure_aware(item["LaunchTime"]),
                        scope_type=_tag(item, EC2_TAGS["TYPE"]) or scope.scope_type,
                        owner=_tag(item, EC2_TAGS["OWNER"]) or scope.owner,
                    ))
    except (BotoCoreError, ClientError) as e:
        raise InventoryFetchError("ec2", str(e)) from e
    except (KeyError, TypeError, ValueError) as e:
        raise InventoryFetchError("ec2", f"unexpected instance payload: {e}") from e
    
    logger.debug("Listed EC2 runners", owner=scope.owner, count=len(instances))
    return instances


class InstanceInventoryReader:
    """Async adapter over :func:`list_ec2_runners`"""
    
    def __init__(self, region_name: Optional[str] = None, ec2_client=None):
        self.region_name = region_name
        self._ec2 = ec2_client
    
    @property
    def ec2(self):
        if self._ec2 is None:
            self._ec2 = boto3.client("ec2", region_name=self.region_name)
        return self._ec2
    
    async def list_instances(self, scope: RunnerScope) -> List[Instance]:
        try:
            ec2 = self.ec2
        except (BotoCoreError, ClientError) as e:
            raise InventoryFetchError("ec2", str(e)) from e
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(list_ec2_runners, ec2, scope))
