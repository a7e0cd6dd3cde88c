"""
Parameter payload for pooled multiple-imputation inference.

A frozen payload carried inside a Result[P] envelope.
"""

from __future__ import annotations

from dataclasses import dataclass

from numpy.typing import NDArray


@dataclass(frozen=True)
class PooledParams:
    """Rubin's-rules pooled inference, one entry per component.

    Mirrors the columns of R's mice::pool() pooled table.
    """

    estimate: NDArray            # (k,): Q̄, mean of replicate estimates
    within: NDArray              # (k,): Ū, mean of replicate variances
    between: NDArray             # (k,): B, sample variance of estimates
    total: NDArray               # (k,): T = Ū + (1 + 1/m) B
    standard_error: NDArray      # (k,): √T
    df: NDArray                  # (k,): Barnard-Rubin degrees of freedom
    riv: NDArray                 # (k,): relative increase in variance
    lambda_: NDArray             # (k,): proportion of variance due to missingness
    fmi: NDArray                 # (k,): fraction of missing information
    statistic: NDArray           # (k,): Q̄ / √T
    p_value: NDArray             # (k,): two-sided
    ci_lower: NDArray            # (k,)
    ci_upper: NDArray            # (k,)
    conf_level: float
    m: int
    dfcom: float | None          # complete-data df (None = large sample)
    names: tuple[str, ...]
