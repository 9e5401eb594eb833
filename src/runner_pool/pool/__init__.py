"""
Pool sizing and reconciliation.
"""

from .classifier import classify_pool, effective_capacity
from .reconciler import PoolReconciler

__all__ = ["PoolReconciler", "classify_pool", "effective_capacity"]
