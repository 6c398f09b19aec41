"""CopySync: portfolio reconciliation for copy trading.

Mirrors a reference (monitored) trading account into a managed account
under a fixed capital budget: scale the reference positions to fit the
budget, diff them against the managed account, and converge with a
periodic, self-correcting control loop.
"""

__version__ = "0.1.0"
