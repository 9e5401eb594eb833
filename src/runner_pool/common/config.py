"""
Configuration for runner-pool.

Settings come from the environment, using the variable names of the runner
deployment (``RUNNER_OWNER``, ``RUNNER_BOOT_TIME_IN_MINUTES``, ...). A YAML
file may be layered on top; its keys are the lower-case field names and take
precedence over the environment.
"""

from datetime import timedelta
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_BOOT_TIME_MINUTES, TIMEOUTS, ScopeType
from .errors import ConfigurationError
from .schemas import RunnerScope
from .utils import load_yaml_config, parse_csv


class PoolSettings(BaseSettings):
    """Pool reconciler settings"""
    runner_owner: str = ""
    enable_organization_runners: bool = True
    environment: Optional[str] = None
    runner_boot_time_in_minutes: int = DEFAULT_BOOT_TIME_MINUTES
    runner_name_prefix: str = ""
    ghes_url: str = ""

    # Sizing
    pool_size: int = 0
    runners_maximum_count: int = -1
    runner_labels: str = ""
    runner_group_name: Optional[str] = None

    # Credentials and endpoints
    github_token: Optional[str] = None
    aws_region: Optional[str] = None

    # Redis: enables the per-scope lock and queue-backed runner creation
    redis_url: Optional[str] = None
    pool_lock_timeout_seconds: int = TIMEOUTS["POOL_LOCK"]

    log_level: str = "INFO"

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    def validate_for_adjust(self) -> None:
        """Check the settings a reconciliation cannot run without."""
        if not self.runner_owner.strip():
            raise ConfigurationError("RUNNER_OWNER must be set")
        if self.runner_boot_time_in_minutes <= 0:
            raise ConfigurationError(
                f"RUNNER_BOOT_TIME_IN_MINUTES must be positive, got {self.runner_boot_time_in_minutes}"
            )
        if self.pool_size < 0:
            raise ConfigurationError(f"POOL_SIZE must be non-negative, got {self.pool_size}")
        if self.pool_lock_timeout_seconds <= 0:
            raise ConfigurationError("POOL_LOCK_TIMEOUT_SECONDS must be positive")
        try:
            scope = self.scope()
            if not scope.is_org:
                scope.org_and_repo()
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

    def scope(self) -> RunnerScope:
        scope_type = ScopeType.ORGANIZATION if self.enable_organization_runners else ScopeType.REPOSITORY
        return RunnerScope(
            scope_type=scope_type,
            owner=self.runner_owner.strip(),
            environment=self.environment or None,
        )

    def boot_grace_period(self) -> timedelta:
        return timedelta(minutes=self.runner_boot_time_in_minutes)

    def labels(self) -> List[str]:
        return parse_csv(self.runner_labels)


def load_settings(config_path: Optional[str] = None, **overrides: Any) -> PoolSettings:
    """
    Build settings from the environment, an optional YAML file and overrides.

    Raises:
        ConfigurationError: If the file cannot be read or a value is invalid
    """
    values: Dict[str, Any] = {}
    if config_path:
        try:
            loaded = load_yaml_config(config_path)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")
        values.update(loaded)
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return PoolSettings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
