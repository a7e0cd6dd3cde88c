"""
Rubin's rules with the Barnard-Rubin small-sample degrees of freedom.

For m replicate estimates Q_i with variances U_i, per component:

    Q̄ = mean(Q_i)            Ū = mean(U_i)
    B = var(Q_i, ddof=1)      T = Ū + (1 + 1/m) B

    λ = (1 + 1/m) B / T       r = (1 + 1/m) B / Ū
    ν_old = (m - 1) / λ²
    ν_obs = (ν_com + 1) / (ν_com + 3) · ν_com · (1 - λ)
    ν = ν_old · ν_obs / (ν_old + ν_obs)

ν = ν_old without a complete-data ν_com. With B = 0 there is no
missing-data uncertainty and ν = ν_com (∞ without one); inference then
uses the normal distribution.

    fmi = (r + 2/(ν + 3)) / (r + 1)

References:
    Rubin, D. B. (1987). Multiple Imputation for Nonresponse in Surveys.
    Barnard, J., & Rubin, D. B. (1999). Small-sample degrees of freedom
        with multiple imputation. Biometrika, 86(4), 948-955.
    van Buuren, S. (2018). Flexible Imputation of Missing Data, §2.3.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from pyprognosis.pooling._common import PooledParams


def barnard_rubin_df(
    lambda_: NDArray,
    between: NDArray,
    m: int,
    dfcom: float | None,
) -> NDArray:
    """Barnard-Rubin degrees of freedom per component (may be inf)."""
    no_between = between <= 0
    safe_lambda = np.where(no_between, 1.0, lambda_)
    df_old = (m - 1) / safe_lambda ** 2

    if dfcom is None or np.isinf(dfcom):
        df = df_old
        fallback = np.inf
    else:
        df_obs = (dfcom + 1.0) / (dfcom + 3.0) * dfcom * (1.0 - safe_lambda)
        with np.errstate(divide='ignore', invalid='ignore'):
            df = np.where(
                df_old + df_obs > 0,
                df_old * df_obs / (df_old + df_obs),
                0.0,
            )
        fallback = float(dfcom)

    return np.where(no_between, fallback, df)


def _quantile(p: float, df: NDArray) -> NDArray:
    finite = np.isfinite(df)
    return np.where(
        finite,
        stats.t.ppf(p, np.where(finite, df, 1.0)),
        stats.norm.ppf(p),
    )


def _two_sided_p(statistic: NDArray, df: NDArray) -> NDArray:
    finite = np.isfinite(df)
    abs_stat = np.abs(statistic)
    return np.where(
        finite,
        2.0 * stats.t.sf(abs_stat, np.where(finite, df, 1.0)),
        2.0 * stats.norm.sf(abs_stat),
    )


def rubin_pool(
    estimates: NDArray,
    variances: NDArray,
    dfcom: float | None,
    conf_level: float,
    names: tuple[str, ...],
) -> PooledParams:
    """Pool (m, k) estimates and variances with Rubin's rules.

    Inputs are assumed validated: m >= 2, matching shapes, finite,
    variances >= 0.
    """
    m = estimates.shape[0]
    inflate = 1.0 + 1.0 / m

    # Deviations from replicate 1: identical replicates give B == 0 exactly
    deviations = estimates - estimates[0]
    qbar = estimates[0] + np.mean(deviations, axis=0)
    ubar = np.mean(variances, axis=0)
    between = np.var(deviations, axis=0, ddof=1)
    total = ubar + inflate * between

    with np.errstate(divide='ignore', invalid='ignore'):
        lambda_ = np.where(total > 0, inflate * between / total, 0.0)
        riv = np.where(
            ubar > 0,
            inflate * between / ubar,
            np.where(between > 0, np.inf, 0.0),
        )

    df = barnard_rubin_df(lambda_, between, m, dfcom)

    with np.errstate(divide='ignore', invalid='ignore'):
        fmi = np.where(
            np.isinf(riv),
            1.0,
            (riv + 2.0 / (df + 3.0)) / (riv + 1.0),
        )

    se = np.sqrt(total)
    with np.errstate(divide='ignore', invalid='ignore'):
        statistic = np.where(se > 0, qbar / np.where(se > 0, se, 1.0), np.nan)
    p_value = np.where(np.isnan(statistic), np.nan, _two_sided_p(statistic, df))

    q = _quantile((1.0 + conf_level) / 2.0, df)

    return PooledParams(
        estimate=qbar,
        within=ubar,
        between=between,
        total=total,
        standard_error=se,
        df=df,
        riv=riv,
        lambda_=lambda_,
        fmi=fmi,
        statistic=statistic,
        p_value=p_value,
        ci_lower=qbar - q * se,
        ci_upper=qbar + q * se,
        conf_level=conf_level,
        m=m,
        dfcom=dfcom,
        names=names,
    )
