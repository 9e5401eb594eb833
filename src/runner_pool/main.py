"""
runner-pool entry point

Runs one pool reconciliation per invocation. Meant to be called on a
schedule (cron, EventBridge, a Kubernetes CronJob); overlapping invocations
for the same scope are kept apart by the Redis lock when ``REDIS_URL`` is set.
"""

import asyncio
import json
from typing import Optional

import structlog
import typer
from redis import asyncio as aioredis

from runner_pool.common.config import PoolSettings, load_settings
from runner_pool.common.errors import (
    ConfigurationError,
    ReconciliationInProgressError,
    RunnerPoolError,
)
from runner_pool.common.schemas import PoolAdjustment, PoolRequest
from runner_pool.common.utils import setup_logging
from runner_pool.integrations.creator import LoggingRunnerCreator, QueueRunnerCreator
from runner_pool.integrations.ec2 import InstanceInventoryReader
from runner_pool.integrations.github import (
    GitHubClient,
    RegisteredRunnerReader,
    get_github_enterprise_urls,
)
from runner_pool.pool.lock import ScopeLock
from runner_pool.pool.reconciler import PoolReconciler


logger = structlog.get_logger(__name__)

app = typer.Typer(help="runner-pool - keeps a pool of ephemeral GitHub Actions runners topped up")


async def run_adjust(settings: PoolSettings, pool_size: int, dry_run: bool = False) -> PoolAdjustment:
    """Wire up the collaborators from settings and run one reconciliation"""
    settings.validate_for_adjust()
    if not dry_run and not settings.redis_url:
        raise ConfigurationError("REDIS_URL must be set to request runners (or use --dry-run)")
    
    urls = get_github_enterprise_urls(settings.ghes_url)
    try:
        redis = aioredis.from_url(settings.redis_url) if settings.redis_url else None
    except ValueError as e:
        raise ConfigurationError(f"Invalid REDIS_URL: {e}") from e
    client = GitHubClient(settings.github_token, api_url=urls.api_url)
    
    if dry_run:
        creator = LoggingRunnerCreator()
    else:
        creator = QueueRunnerCreator(redis)
    lock = ScopeLock(redis, timeout=settings.pool_lock_timeout_seconds) if redis else None
    
    reconciler = PoolReconciler(
        settings,
        inventory=InstanceInventoryReader(region_name=settings.aws_region),
        runner_reader=RegisteredRunnerReader(),
        creator=creator,
        lock=lock,
    )
    try:
        return await reconciler.adjust(PoolRequest(pool_size=pool_size), client, settings.ghes_url)
    finally:
        client.close()
        if redis is not None:
            await redis.aclose()


@app.command()
def adjust(
    pool_size: Optional[int] = typer.Option(
        None,
        "--pool-size",
        "-n",
        min=0,
        help="Desired number of idle runners (defaults to POOL_SIZE)"
    ),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML file layered over the environment settings"
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Log the runners that would be requested without requesting them"
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log level: DEBUG, INFO, WARNING, ERROR"
    ),
) -> None:
    """Top up the runner pool once"""
    try:
        settings = load_settings(config, log_level=log_level.upper() if log_level else None)
    except ConfigurationError as e:
        typer.echo(f"Invalid configuration: {e}")
        raise typer.Exit(1)
    
    setup_logging(settings.log_level)
    size = settings.pool_size if pool_size is None else pool_size
    
    try:
        result = asyncio.run(run_adjust(settings, size, dry_run=dry_run))
    except ReconciliationInProgressError as e:
        logger.warning("Skipping pool adjustment", reason=str(e))
        return
    except RunnerPoolError as e:
        logger.error("Handle error for adjusting pool.", error=str(e), error_type=type(e).__name__)
        raise typer.Exit(1)
    
    typer.echo(result.model_dump_json())


@app.command("show-config")
def show_config(
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML file layered over the environment settings"
    ),
) -> None:
    """Show the scope and GitHub endpoints the pool resolves to"""
    try:
        settings = load_settings(config)
        settings.validate_for_adjust()
        urls = get_github_enterprise_urls(settings.ghes_url)
    except ConfigurationError as e:
        typer.echo(f"Invalid configuration: {e}")
        raise typer.Exit(1)
    
    summary = {
        "scope": settings.scope().model_dump(mode="json"),
        "github": urls.model_dump(mode="json"),
        "pool_size": settings.pool_size,
        "boot_time_minutes": settings.runner_boot_time_in_minutes,
        "runner_name_prefix": settings.runner_name_prefix,
        "locking": bool(settings.redis_url),
    }
    typer.echo(json.dumps(summary, indent=2))


@app.command()
def version() -> None:
    """Show runner-pool version"""
    from runner_pool import __version__
    typer.echo(f"runner-pool v{__version__}")


if __name__ == "__main__":
    app()
