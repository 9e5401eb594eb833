"""
Pydantic schemas for runner-pool.

These are read-only snapshots of the two fleet views (EC2 instances and
GitHub registered runners) plus the request/result types of one pool
reconciliation.
"""

from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .constants import GITHUB_API_URL, RunnerStatus, ScopeType


class BaseSchema(BaseModel):
    """Base schema with common configuration"""
    model_config = ConfigDict(
        use_enum_values=True,
        validate_assignment=True,
        extra="forbid"
    )


# Fleet snapshots
class Instance(BaseSchema):
    """A running EC2 instance tagged as a runner"""
    instance_id: str
    launch_time: datetime
    scope_type: ScopeType
    owner: str


class RegisteredRunner(BaseSchema):
    """A self-hosted runner registered on GitHub"""
    id: int
    name: str
    status: RunnerStatus
    busy: bool = False
    labels: Set[str] = Field(default_factory=set)


# Scope
class RunnerScope(BaseSchema):
    """Organization or repository the pool belongs to"""
    scope_type: ScopeType
    owner: str  # "org" or "org/repo"
    environment: Optional[str] = None

    @property
    def is_org(self) -> bool:
        return self.scope_type == ScopeType.ORGANIZATION

    def org_and_repo(self) -> Tuple[str, str]:
        """Split a repository owner of the form ``org/repo``."""
        org, _, repo = self.owner.partition("/")
        if not org or not repo:
            raise ValueError(f"Repository scope owner must be 'org/repo', got {self.owner!r}")
        return org, repo


class GitHubUrls(BaseSchema):
    """API and web URLs of the GitHub instance the runners register with"""
    api_url: str
    base_url: str

    @property
    def is_enterprise(self) -> bool:
        return self.api_url != GITHUB_API_URL


# Reconciliation
class PoolRequest(BaseSchema):
    """Desired number of idle runners"""
    pool_size: int = Field(ge=0)


class CreateRunnersRequest(BaseSchema):
    """What the runner creator is asked to provision"""
    number_of_runners: int = Field(ge=1)
    scope: RunnerScope
    runner_name_prefix: str = ""
    runner_labels: List[str] = Field(default_factory=list)
    runner_group: Optional[str] = None
    maximum_count: int = -1  # -1 means unlimited


class PoolAdjustment(BaseSchema):
    """Outcome of one reconciliation"""
    pool_size: int
    counts: Dict[str, int] = Field(default_factory=dict)  # keyed by InstanceClass value
    capacity: int = 0
    deficit: int = 0
    requested: int = 0

    @property
    def topped_up(self) -> bool:
        return self.requested > 0
