"""
runner-pool

Keeps a pool of ephemeral GitHub Actions runners topped up by reconciling
the EC2 instance inventory against the runners registered on GitHub.
"""

__version__ = "0.1.0"
__author__ = "Runner Pool Team"

from runner_pool.common.constants import InstanceClass, RunnerStatus, ScopeType

__all__ = [
    "__version__",
    "__author__",
    "InstanceClass",
    "RunnerStatus",
    "ScopeType",
]
