"""
Risk scoring kernels: linear predictors, absolute risk, cumulative incidence.

Proportional-hazards transform, per cause c:
    lp_c = Σ β_ck · term_k(patient)
    S_c(t) = S0_c(t) ** exp(lp_c)
    mortality_c(t) = 1 - S_c(t)

Competing-risks cumulative incidence on a grid 0 = t_0 < t_1 < ... < t_K:
    S(t) = S_1(t) · S_2(t)                      (all-cause survival)
    q_c,j = 1 - S_c(t_j) / S_c(t_{j-1})          (interval cause-specific mortality)
    I_c,j = (S(t_{j-1}) - S(t_j)) · q_c,j / (q_1,j + q_2,j)
    CIF_c(t_K) = Σ_j I_c,j
so CIF_1(t_K) + CIF_2(t_K) = 1 - S(t_K) exactly.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pyprognosis.core.exceptions import InvalidCovariate, ValidationError
from pyprognosis.survival.baseline import BaselineHazardModel, check_horizon
from pyprognosis.survival.coefficients import CoefficientSet, PatientCovariates

# Allowed values for coded covariates
_CODED = {
    'grade': (1.0, 2.0, 3.0),
    'screen': (0.0, 1.0),
    'her2': (0.0, 1.0),
    'chemo': (0.0, 2.0, 3.0),
    'hormone': (0.0, 1.0),
    'trastuzumab': (0.0, 1.0),
    'bisphosphonates': (0.0, 1.0),
}


def check_covariates(
    patient: PatientCovariates,
    required: tuple[str, ...],
    cause: str | None = None,
) -> None:
    """
    Reject covariate values that cannot produce a finite score.

    Raises
    ------
    InvalidCovariate
        Naming the field, value, cause and first offending row.
    """
    for name in required:
        values = getattr(patient, name)
        if values is None:
            raise InvalidCovariate(
                f"covariate '{name}' is required for cause '{cause}' but was not supplied",
                field=name, cause=cause,
            )
        if name in ('age', 'size'):
            bad = ~np.isfinite(values) | (values <= 0)
            rule = "finite and > 0"
        elif name == 'nodes':
            bad = ~np.isfinite(values) | (values < 0)
            rule = "finite and >= 0"
        elif name in _CODED:
            bad = ~np.isin(values, _CODED[name])
            rule = f"one of {_CODED[name]}"
        else:
            bad = ~np.isfinite(values)
            rule = "finite"
        if np.any(bad):
            row = int(np.argmax(bad))
            value = float(values[row])
            raise InvalidCovariate(
                f"covariate '{name}' must be {rule}, got {value} "
                f"(row {row}, cause '{cause}')",
                field=name, value=value, cause=cause, row=row,
            )


def linear_predictor(
    patient: PatientCovariates,
    coefficients: CoefficientSet,
) -> NDArray:
    """
    Cause-specific linear predictor for every patient.

    Parameters
    ----------
    patient : PatientCovariates
    coefficients : CoefficientSet

    Returns
    -------
    (n,) linear predictors, always finite.

    Raises
    ------
    InvalidCovariate
        If any value required by the coefficient set's terms is invalid,
        e.g. size = 0 under the log-size term.
    """
    check_covariates(patient, coefficients.required_fields, coefficients.cause)
    lp = coefficients.terms(patient) @ coefficients.vector
    if not np.all(np.isfinite(lp)):
        row = int(np.argmax(~np.isfinite(lp)))
        raise InvalidCovariate(
            f"linear predictor for cause '{coefficients.cause}' is not finite "
            f"at row {row}",
            field='linear_predictor', value=float(lp[row]),
            cause=coefficients.cause, row=row,
        )
    return lp


def absolute_risk(lp, baseline_survival) -> NDArray:
    """
    Mortality probability 1 - S0 ** exp(lp).

    Parameters
    ----------
    lp : scalar or array-like
        Linear predictor(s).
    baseline_survival : scalar or array-like
        Baseline survival at the horizon, in (0, 1].

    Examples
    --------
    >>> absolute_risk(0.0, 0.9)    # 1 - 0.9
    0.09999999999999998
    """
    lp = np.asarray(lp, dtype=np.float64)
    s0 = np.asarray(baseline_survival, dtype=np.float64)
    if not np.all(np.isfinite(lp)):
        raise InvalidCovariate(
            "linear predictor must be finite", field='linear_predictor',
        )
    if np.any(~np.isfinite(s0) | (s0 <= 0) | (s0 > 1)):
        raise ValidationError(
            f"baseline survival must be in (0, 1], got {s0}"
        )
    return 1.0 - s0 ** np.exp(lp)


def yearly_grid(horizon: float) -> NDArray:
    """Whole years up to the horizon, ending exactly at the horizon."""
    horizon = float(check_horizon(horizon))
    years = np.arange(1.0, np.floor(horizon) + 1.0)
    if years.size == 0 or years[-1] < horizon:
        years = np.append(years, horizon)
    return years


def cumulative_incidence(
    lp: NDArray,
    baseline: BaselineHazardModel,
    times: NDArray,
) -> NDArray:
    """
    Competing-risks cumulative incidence of both causes.

    Parameters
    ----------
    lp : (n, 2) linear predictors (disease cause, other cause)
    baseline : BaselineHazardModel
    times : (k,) increasing time grid, all > 0

    Returns
    -------
    (n, k, 2) cumulative incidence of each cause at each grid time.
    """
    S0 = baseline.survival(times)                             # (k, 2)
    S = S0[np.newaxis, :, :] ** np.exp(lp)[:, np.newaxis, :]  # (n, k, 2)

    n = lp.shape[0]
    S_prev = np.concatenate([np.ones((n, 1, 2)), S[:, :-1, :]], axis=1)
    q = 1.0 - S / S_prev                                      # interval mortality per cause
    all_cause = np.prod(S, axis=2)
    all_prev = np.prod(S_prev, axis=2)
    dead = (all_prev - all_cause)[:, :, np.newaxis]

    q_total = np.sum(q, axis=2, keepdims=True)
    share = np.divide(q, q_total, out=np.zeros_like(q), where=q_total > 0)
    return np.cumsum(dead * share, axis=1)
