"""
Adapters for the systems the pool reconciler talks to.

The EC2 and GitHub readers produce read-only snapshots of the fleet; the
runner creators hand provisioning requests off to whatever launches instances.
"""
