"""
Error classes for runner-pool.

Nothing in the package retries. Every error below fails the whole
reconciliation and propagates to whatever triggered it, which decides
on retry cadence and alerting.
"""


class RunnerPoolError(Exception):
    """Base exception for runner-pool."""
    pass


class ConfigurationError(RunnerPoolError):
    """Missing or invalid settings."""
    pass


class InventoryFetchError(RunnerPoolError):
    """
    Reading one of the fleet views failed.

    ``source`` names the provider ("ec2" or "github") so the caller can
    tell which side of the reconciliation was unavailable.
    """

    def __init__(self, source: str, message: str):
        super().__init__(f"Failed to list {source} runners: {message}")
        self.source = source


class CreationRequestError(RunnerPoolError):
    """The runner creator rejected or failed the provisioning request."""
    pass


class ReconciliationInProgressError(RunnerPoolError):
    """Another reconciliation holds the lock for this scope."""
    pass


class PoolLockError(RunnerPoolError):
    """The scope lock could not be reached in Redis."""
    pass
