"""
Constants used throughout runner-pool.
"""

from enum import Enum


class ScopeType(str, Enum):
    """Level at which runners are registered.

    The values double as the ``ghr:Type`` tag written on runner instances.
    """
    ORGANIZATION = "Org"
    REPOSITORY = "Repo"


class RunnerStatus(str, Enum):
    """Status GitHub reports for a registered runner"""
    ONLINE = "online"
    OFFLINE = "offline"


class InstanceClass(str, Enum):
    """Outcome of correlating one instance with the registered runners"""
    IDLE = "idle"          # registered, online and not running a job
    BUSY = "busy"          # registered and running a job
    OFFLINE = "offline"    # registered but offline, dead capacity
    BOOTING = "booting"    # not registered yet, still inside the boot grace period
    ORPHAN = "orphan"      # not registered and past the boot grace period


# Instance classes that count towards the pool
CAPACITY_CLASSES = frozenset({InstanceClass.IDLE, InstanceClass.BOOTING})

# EC2 tags written by the scale-up side on every runner instance
EC2_TAGS = {
    "APPLICATION": "ghr:Application",
    "ENVIRONMENT": "ghr:environment",
    "TYPE": "ghr:Type",
    "OWNER": "ghr:Owner",
}
EC2_APPLICATION_TAG_VALUE = "github-action-runner"
EC2_RUNNING_STATES = ["running"]

# GitHub endpoints
GITHUB_API_URL = "https://api.github.com"
GITHUB_BASE_URL = "https://github.com"
GITHUB_API_VERSION = "2022-11-28"
GITHUB_PAGE_SIZE = 100
# Hosts under this suffix are GitHub Enterprise Cloud with data residency
DATA_RESIDENCY_SUFFIX = ".ghe.com"

# Redis keys
REDIS_KEYS = {
    "POOL_LOCK": "runner-pool:lock:{scope_type}:{owner}",
    "CREATE_QUEUE": "runner-pool:create-requests",
}

# Default timeouts and intervals (in seconds)
TIMEOUTS = {
    "GITHUB_REQUEST": 30,
    "POOL_LOCK": 300,        # upper bound for one reconciliation
    "POOL_LOCK_WAIT": 0,     # do not queue behind a running reconciliation
}

DEFAULT_BOOT_TIME_MINUTES = 5
