"""
Public API for Rubin's-rules pooling.

    pool(estimates, variances) → PooledSolution
    pool_fits(solutions) → PooledSolution
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from pyprognosis.core.compute.timing import Timer
from pyprognosis.core.exceptions import DimensionError, PoolingDegenerate, ValidationError
from pyprognosis.core.result import Result
from pyprognosis.core.validation import check_probability
from pyprognosis.pooling._rubin import rubin_pool
from pyprognosis.pooling.solution import PooledSolution


def pool(
    estimates,
    variances,
    *,
    dfcom=None,
    conf_level: float = 0.95,
    names: Sequence[str] | None = None,
) -> PooledSolution:
    """Combine per-replicate estimates with Rubin's rules.

    Parameters
    ----------
    estimates : array-like
        (m,) scalar estimates or (m, k) vector estimates, one row per
        replicate, in replicate order.
    variances : array-like
        Within-replicate variances, same shape as `estimates`.
    dfcom : float, array-like or None
        Complete-data degrees of freedom. A length-m sequence gives one
        value per replicate; the smallest is used. None (or inf) means a
        large-sample reference.
    conf_level : float
        Confidence level of the intervals.
    names : sequence of str or None
        Component names.

    Returns
    -------
    PooledSolution

    Raises
    ------
    PoolingDegenerate
        If fewer than two replicates are supplied.
    """
    Q = np.asarray(estimates, dtype=np.float64)
    U = np.asarray(variances, dtype=np.float64)

    if Q.ndim == 0:
        Q = Q.reshape(1)
    if U.ndim == 0:
        U = U.reshape(1)
    if Q.ndim == 1:
        Q = Q.reshape(-1, 1)
    if U.ndim == 1:
        U = U.reshape(-1, 1)
    if Q.ndim != 2:
        raise DimensionError(f"estimates must be 1D or 2D, got {Q.ndim}D")

    m = Q.shape[0]
    if m < 2:
        raise PoolingDegenerate(
            f"pooling needs at least 2 replicates, got {m}; "
            f"between-imputation variance is undefined",
            n_replicates=m,
        )
    if U.shape != Q.shape:
        raise DimensionError(
            f"variances have shape {U.shape} but estimates have shape {Q.shape}"
        )
    if not np.all(np.isfinite(Q)):
        raise ValidationError("estimates must be finite (no NaN or Inf)")
    if not np.all(np.isfinite(U)):
        raise ValidationError("variances must be finite (no NaN or Inf)")
    if np.any(U < 0):
        raise ValidationError("variances must be non-negative")

    check_probability(conf_level, 'conf_level')
    dfcom = _resolve_dfcom(dfcom, m)

    k = Q.shape[1]
    if names is None:
        names = tuple(f"Q{i + 1}" for i in range(k)) if k > 1 else ("Q",)
    else:
        names = tuple(str(name) for name in names)
        if len(names) != k:
            raise DimensionError(f"names has {len(names)} entries, expected {k}")

    timer = Timer()
    timer.start()

    params = rubin_pool(Q, U, dfcom, conf_level, names)

    timer.stop()

    warnings_list = []
    high_fmi = [name for name, f in zip(names, params.fmi) if f > 0.5]
    if high_fmi:
        warnings_list.append(
            f"fraction of missing information exceeds 0.5 for {high_fmi}; "
            f"consider more replicates"
        )

    result = Result(
        params=params,
        info={
            "method": "Rubin's rules",
            "df_method": "Barnard-Rubin",
            "m": m,
            "dfcom": dfcom,
        },
        timing=timer.result(),
        backend_name="cpu_rubin",
        warnings=tuple(warnings_list),
    )

    return PooledSolution(_result=result)


def pool_fits(
    fits: Sequence,
    *,
    dfcom=None,
    conf_level: float = 0.95,
) -> PooledSolution:
    """Pool per-replicate model fits.

    Parameters
    ----------
    fits : sequence
        One fitted solution per replicate, in replicate order, each with
        `coefficients` and either `variance` (covariance matrix) or
        `standard_errors`. Component names are taken from the first fit's
        `names` when it has them.
    dfcom, conf_level
        As for pool().

    Returns
    -------
    PooledSolution
    """
    fits = list(fits)
    if len(fits) < 2:
        raise PoolingDegenerate(
            f"pooling needs at least 2 replicates, got {len(fits)}",
            n_replicates=len(fits),
        )

    estimates = np.stack([np.asarray(f.coefficients, dtype=np.float64) for f in fits])
    variances = np.stack([_coefficient_variance(f) for f in fits])
    names = getattr(fits[0], 'names', None)

    return pool(
        estimates, variances,
        dfcom=dfcom, conf_level=conf_level, names=names,
    )


def _coefficient_variance(fit) -> np.ndarray:
    variance = getattr(fit, 'variance', None)
    if variance is not None:
        return np.diag(np.atleast_2d(np.asarray(variance, dtype=np.float64)))
    return np.asarray(fit.standard_errors, dtype=np.float64) ** 2


def _resolve_dfcom(dfcom, m: int) -> float | None:
    if dfcom is None:
        return None
    arr = np.atleast_1d(np.asarray(dfcom, dtype=np.float64))
    if arr.ndim != 1 or len(arr) not in (1, m):
        raise DimensionError(
            f"dfcom must be a scalar or have one entry per replicate ({m}), "
            f"got shape {arr.shape}"
        )
    if np.any(np.isnan(arr)) or np.any(arr <= 0):
        raise ValidationError(f"dfcom must be > 0, got {arr}")
    value = float(np.min(arr))
    return None if np.isinf(value) else value
