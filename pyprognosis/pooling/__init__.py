"""
Rubin's-rules pooling of per-replicate estimates.

Usage:
    from pyprognosis.pooling import pool

    pooled = pool(estimates, variances, dfcom=n - p)
    pooled.estimate, pooled.standard_error, pooled.df
"""

from pyprognosis.pooling.solution import PooledSolution
from pyprognosis.pooling.solvers import pool, pool_fits

__all__ = [
    "pool",
    "pool_fits",
    "PooledSolution",
]
