"""
Shared constants, schemas, errors and configuration for runner-pool.
"""
