"""
Shared fixtures: a fixed clock, fleet builders and in-memory collaborators.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from runner_pool.common.config import PoolSettings
from runner_pool.common.constants import ScopeType
from runner_pool.common.schemas import Instance, RegisteredRunner


ORG = "my-org"
BOOT_TIME_MINUTES = 15
NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

SETTINGS_ENV = [
    "RUNNER_OWNER",
    "ENABLE_ORGANIZATION_RUNNERS",
    "ENVIRONMENT",
    "RUNNER_BOOT_TIME_IN_MINUTES",
    "RUNNER_NAME_PREFIX",
    "GHES_URL",
    "POOL_SIZE",
    "RUNNERS_MAXIMUM_COUNT",
    "RUNNER_LABELS",
    "RUNNER_GROUP_NAME",
    "GITHUB_TOKEN",
    "AWS_REGION",
    "REDIS_URL",
    "POOL_LOCK_TIMEOUT_SECONDS",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the host environment out of PoolSettings"""
    for name in SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)


def make_instance(instance_id: str, age_minutes: float = 0, owner: str = ORG,
                  scope_type: ScopeType = ScopeType.ORGANIZATION) -> Instance:
    return Instance(
        instance_id=instance_id,
        launch_time=NOW - timedelta(minutes=age_minutes),
        scope_type=scope_type,
        owner=owner,
    )


def make_runner(runner_id: int, name: str, status: str = "online", busy: bool = False) -> RegisteredRunner:
    return RegisteredRunner(id=runner_id, name=name, status=status, busy=busy, labels=set())


def make_settings(**overrides) -> PoolSettings:
    values = {
        "runner_owner": ORG,
        "enable_organization_runners": True,
        "runner_boot_time_in_minutes": BOOT_TIME_MINUTES,
        "environment": "unit-test-environment",
    }
    values.update(overrides)
    return PoolSettings(**values)


@pytest.fixture
def registered_instances() -> List[Instance]:
    """Two idle, one busy and one offline runner"""
    return [
        make_instance("i-1-idle"),
        make_instance("i-2-busy"),
        make_instance("i-3-offline"),
        make_instance("i-4-idle-older-than-boot-time", age_minutes=BOOT_TIME_MINUTES + 3),
    ]


@pytest.fixture
def registered_runners() -> List[RegisteredRunner]:
    # GitHub runner ids are not unique across the two views; names are
    return [
        make_runner(1, "i-1-idle"),
        make_runner(2, "i-2-busy", busy=True),
        make_runner(3, "i-3-offline", status="offline"),
        make_runner(3, "i-4-idle-older-than-boot-time"),
    ]


class StaticInventory:
    def __init__(self, instances: Optional[List[Instance]] = None, error: Optional[Exception] = None):
        self.instances = instances or []
        self.error = error
        self.scopes = []

    async def list_instances(self, scope):
        self.scopes.append(scope)
        if self.error:
            raise self.error
        return list(self.instances)


class StaticRunnerReader:
    def __init__(self, runners: Optional[List[RegisteredRunner]] = None, error: Optional[Exception] = None):
        self.runners = runners or []
        self.error = error
        self.calls = []

    async def list_runners(self, client, scope):
        self.calls.append((client, scope))
        if self.error:
            raise self.error
        return list(self.runners)


class RecordingCreator:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls = []

    async def create_runners(self, client, request, urls):
        self.calls.append((client, request, urls))
        if self.error:
            raise self.error

    @property
    def requested(self) -> List[int]:
        return [request.number_of_runners for _, request, _ in self.calls]
