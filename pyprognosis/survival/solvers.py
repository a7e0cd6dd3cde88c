"""
Public API for risk prediction and survival fits.

    predict_risk(covariates, horizon) → RiskSolution
    coxph(time, status, X, cause=1) → CoxSolution
    nelson_aalen(time, event) → NelsonAalenSolution

Each function validates inputs, builds the design, runs the kernel, and
wraps the Result in a Solution.
"""

from __future__ import annotations

import warnings
from typing import Literal, Mapping

import numpy as np
from scipy import stats

from pyprognosis.core.compute.timing import Timer
from pyprognosis.core.exceptions import ValidationError
from pyprognosis.core.result import Result
from pyprognosis.survival._common import CoxParams, RiskParams
from pyprognosis.survival._cox import concordance, cox_fit
from pyprognosis.survival._nelson_aalen import nelson_aalen_fit
from pyprognosis.survival._scoring import cumulative_incidence, linear_predictor, yearly_grid
from pyprognosis.survival.baseline import BaselineHazardModel, check_horizon
from pyprognosis.survival.coefficients import (
    BREAST_REFERENCE,
    OTHER_REFERENCE,
    CoefficientSet,
    PatientCovariates,
)
from pyprognosis.survival.design import CompetingRiskDesign
from pyprognosis.survival.solution import CoxSolution, NelsonAalenSolution, RiskSolution


def predict_risk(
    covariates: PatientCovariates | Mapping,
    horizon: float = 10.0,
    *,
    coefficients: tuple[CoefficientSet, CoefficientSet] | None = None,
    baseline: BaselineHazardModel | None = None,
) -> RiskSolution:
    """Absolute mortality risk of two competing causes at a horizon.

    Parameters
    ----------
    covariates : PatientCovariates or mapping
        Patients to score; a mapping is passed to
        PatientCovariates.from_columns.
    horizon : float
        Time horizon in years, > 0.
    coefficients : (CoefficientSet, CoefficientSet) or None
        (disease cause, other cause); defaults to the reference sets.
    baseline : BaselineHazardModel or None
        Defaults to BaselineHazardModel.default().

    Returns
    -------
    RiskSolution

    Raises
    ------
    InvalidCovariate
        If the horizon is not > 0 or a covariate cannot be scored
        (e.g. size = 0).
    """
    if not isinstance(covariates, PatientCovariates):
        covariates = PatientCovariates.from_columns(covariates)
    disease_coefs, other_coefs = coefficients or (BREAST_REFERENCE, OTHER_REFERENCE)
    if baseline is None:
        baseline = BaselineHazardModel.default()
    horizon = float(check_horizon(horizon))

    timer = Timer()
    timer.start()

    with timer.section('linear_predictor'):
        lp = np.column_stack([
            linear_predictor(covariates, disease_coefs),
            linear_predictor(covariates, other_coefs),
        ])

    with timer.section('absolute_risk'):
        s0 = baseline.survival(horizon)
        survival = s0[np.newaxis, :] ** np.exp(lp)
        mortality = 1.0 - survival
        all_cause = 1.0 - np.prod(survival, axis=1)
        times = yearly_grid(horizon)
        cif = cumulative_incidence(lp, baseline, times)

    timer.stop()

    params = RiskParams(
        horizon=horizon,
        causes=baseline.causes,
        linear_predictor=lp,
        baseline_survival=s0,
        survival=survival,
        mortality=mortality,
        all_cause_mortality=all_cause,
        times=times,
        cumulative_incidence=cif,
        n_observations=covariates.n,
    )

    result = Result(
        params=params,
        info={
            "method": "competing-risks proportional hazards",
            "horizon": horizon,
            "terms": {
                disease_coefs.cause: disease_coefs.names,
                other_coefs.cause: other_coefs.names,
            },
        },
        timing=timer.result(),
        backend_name="cpu_risk",
        warnings=(),
    )

    return RiskSolution(_result=result)


def coxph(
    time,
    status,
    X,
    *,
    cause: int = 1,
    names=None,
    ties: Literal["efron", "breslow"] = "efron",
    tol: float = 1e-9,
    max_iter: int = 20,
) -> CoxSolution:
    """Cause-specific Cox proportional hazards model.

    Matches R's survival::coxph(Surv(time, status == cause) ~ X): deaths
    from the other cause are censored at their death time.

    Parameters
    ----------
    time : array-like
        Follow-up time.
    status : array-like
        0 = censored, 1 = disease death, 2 = other-cause death.
    X : array-like
        Covariate matrix (n, p). No intercept.
    cause : int
        Cause whose deaths are events (1 or 2).
    names : sequence of str or None
        Covariate names.
    ties : str
        "efron" (default) or "breslow".
    tol : float
        Convergence tolerance for Newton-Raphson.
    max_iter : int
        Maximum Newton-Raphson iterations.

    Returns
    -------
    CoxSolution
    """
    design = CompetingRiskDesign.for_competing_risks(time, status, X, names=names)

    if design.X is None:
        raise ValidationError("X (covariates) is required for coxph()")

    if ties not in ("efron", "breslow"):
        raise ValidationError(
            f"ties must be 'efron' or 'breslow', got '{ties}'"
        )

    event = design.event_indicator(cause)

    timer = Timer()
    timer.start()

    with timer.section('newton_raphson'):
        fit = cox_fit(
            design.time, event, design.X,
            ties=ties,
            tol=tol,
            max_iter=max_iter,
        )

    with timer.section('inference'):
        beta = fit.coefficients
        se = np.sqrt(np.maximum(np.diag(fit.variance), 0.0))
        z = np.where(se > 0, beta / np.where(se > 0, se, 1.0), 0.0)
        p_values = 2.0 * stats.norm.sf(np.abs(z))
        c_index = concordance(design.X @ beta, design.time, event)

    timer.stop()

    warnings_list = []
    if not fit.converged:
        message = f"Newton-Raphson did not converge in {max_iter} iterations"
        warnings_list.append(message)
        warnings.warn(message, RuntimeWarning, stacklevel=2)

    params = CoxParams(
        coefficients=beta,
        hazard_ratios=np.exp(beta),
        standard_errors=se,
        variance=fit.variance,
        z_statistics=z,
        p_values=p_values,
        loglik=fit.loglik,
        concordance=c_index,
        names=design.names,
        cause=cause,
        n_events=design.n_events(cause),
        n_competing=design.n_events() - design.n_events(cause),
        n_observations=design.n,
        n_iter=fit.n_iter,
        converged=fit.converged,
        ties=ties,
    )

    result = Result(
        params=params,
        info={
            "method": "cause-specific Cox PH",
            "cause": cause,
            "ties": ties,
            "n_iter": fit.n_iter,
        },
        timing=timer.result(),
        backend_name="cpu_cox",
        warnings=tuple(warnings_list),
    )

    return CoxSolution(_result=result)


def nelson_aalen(
    time,
    event,
    *,
    cause: int | None = None,
) -> NelsonAalenSolution:
    """Nelson-Aalen cumulative hazard.

    Parameters
    ----------
    time : array-like
        Follow-up time.
    event : array-like
        Event indicator (0/1) or 3-state status (0/1/2).
    cause : int or None
        With a 3-state status, the cause counted as the event; None
        counts any death.

    Returns
    -------
    NelsonAalenSolution
        `subject_hazard` is the cumulative hazard at each subject's own
        time, suitable as an auxiliary imputation predictor.
    """
    design = CompetingRiskDesign.for_competing_risks(time, event)
    if cause is None:
        indicator = (design.status != 0).astype(np.float64)
    else:
        indicator = design.event_indicator(cause)

    timer = Timer()
    timer.start()

    params = nelson_aalen_fit(design.time, indicator)

    timer.stop()

    result = Result(
        params=params,
        info={"method": "Nelson-Aalen", "cause": cause},
        timing=timer.result(),
        backend_name="cpu_nelson_aalen",
        warnings=(),
    )

    return NelsonAalenSolution(_result=result)
