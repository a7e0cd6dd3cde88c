"""
End-to-end biomarker validation: impute, score, fit, pool.

    imputation = mice(design, ...)
    for each replicate i (independent, joblib workers):
        risk_i = predict_risk(covariates of replicate i, horizon)
        fit_i  = coxph(time, status, [risk score_i, biomarker_i], cause=1)
    pooled = pool_fits([fit_1, ..., fit_m])

The pooled log-hazard ratio of the biomarker, adjusted for the clinical
risk score, measures the prognostic value the biomarker adds beyond the
existing model.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

import numpy as np
from joblib import Parallel, delayed
from numpy.typing import NDArray

from pyprognosis.core.exceptions import DimensionError, ValidationError
from pyprognosis.imputation.constraints import ConstraintTable
from pyprognosis.imputation.design import ImputationDesign
from pyprognosis.imputation.missingness import MissingnessModel
from pyprognosis.imputation.solution import MultipleImputationSolution
from pyprognosis.imputation.solvers import mice
from pyprognosis.pooling.solution import PooledSolution
from pyprognosis.pooling.solvers import pool_fits
from pyprognosis.survival.baseline import BaselineHazardModel
from pyprognosis.survival.coefficients import CoefficientSet, PatientCovariates
from pyprognosis.survival.design import CAUSE_DISEASE, CompetingRiskDesign
from pyprognosis.survival.solution import CoxSolution, RiskSolution
from pyprognosis.survival.solvers import coxph, nelson_aalen, predict_risk


@dataclass(frozen=True)
class BiomarkerValidation:
    """Everything produced by validate_biomarker, replicate-ordered."""

    imputation: MultipleImputationSolution
    risks: tuple[RiskSolution, ...]
    fits: tuple[CoxSolution, ...]
    pooled: PooledSolution

    @property
    def m(self) -> int:
        return len(self.fits)

    def summary(self) -> str:
        lines = ["Biomarker validation", ""]
        lines.append(self.imputation.summary())
        lines.append("")
        lines.append(self.pooled.summary())
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"BiomarkerValidation(m={self.m}, pooled={self.pooled!r})"


def outcome_auxiliary(time, status) -> dict[str, NDArray]:
    """Outcome summaries to include as auxiliary imputation predictors.

    Returns {'event': disease-death indicator, 'cumhaz': Nelson-Aalen
    cumulative hazard of any death at each subject's own time}.
    """
    outcome = CompetingRiskDesign.for_competing_risks(time, status)
    return {
        'event': outcome.event_indicator(CAUSE_DISEASE),
        'cumhaz': nelson_aalen(outcome.time, outcome.status).subject_hazard,
    }


def validate_biomarker(
    design: ImputationDesign,
    time,
    status,
    biomarker,
    *,
    model: MissingnessModel | None = None,
    constraints: ConstraintTable | None = None,
    m: int = 5,
    maxit: int = 10,
    seed: int | None = None,
    horizon: float = 10.0,
    coefficients: tuple[CoefficientSet, CoefficientSet] | None = None,
    baseline: BaselineHazardModel | None = None,
    column_map: Mapping[str, str] | None = None,
    n_jobs: int = 1,
    verbose: bool = False,
) -> BiomarkerValidation:
    """
    Pooled cause-specific hazard ratio of a biomarker beyond a risk score.

    Parameters
    ----------
    design : ImputationDesign
        Clinical covariates (and possibly the biomarker) with missing values.
    time : array-like
        Follow-up time, one entry per design row.
    status : array-like
        0 = alive, 1 = disease death, 2 = other-cause death.
    biomarker : str or array-like
        Name of a design variable (taken from each completed replicate)
        or a fully observed array.
    model, constraints, m, maxit, seed
        Passed to mice().
    horizon : float
        Horizon of the risk score.
    coefficients, baseline
        Passed to predict_risk().
    column_map : mapping or None
        {design variable: PatientCovariates field} for design variables
        whose names differ from the covariate fields.
    n_jobs : int
        joblib workers, used for both the imputation chains and the
        per-replicate scoring and fitting.
    verbose : bool
        Print progress information.

    Returns
    -------
    BiomarkerValidation
        pooled.names == ('risk_score', 'biomarker').
    """
    outcome = CompetingRiskDesign.for_competing_risks(time, status)
    if outcome.n != design.n:
        raise DimensionError(
            f"outcome has {outcome.n} rows but the design has {design.n}"
        )
    if isinstance(biomarker, str):
        if biomarker not in design.names:
            raise ValidationError(f"biomarker '{biomarker}' is not a design variable")
        marker_values = None
    else:
        marker_values = np.asarray(biomarker, dtype=np.float64).ravel()
        if len(marker_values) != design.n:
            raise DimensionError(
                f"biomarker has {len(marker_values)} entries, expected {design.n}"
            )
        if not np.all(np.isfinite(marker_values)):
            raise ValidationError(
                "biomarker array must be fully observed; put it in the design "
                "to impute it"
            )

    imputation = mice(
        design, model,
        constraints=constraints, m=m, maxit=maxit, seed=seed,
        n_jobs=n_jobs, verbose=verbose,
    )

    if verbose:
        print(f"Scoring and fitting {m} replicates (horizon={horizon:g})")

    outputs = Parallel(n_jobs=n_jobs)(
        delayed(_score_and_fit)(
            imputation.complete(i), design.names, outcome,
            biomarker if marker_values is None else marker_values,
            horizon, coefficients, baseline, column_map,
        )
        for i in range(1, m + 1)
    )
    risks = tuple(risk for risk, _ in outputs)
    fits = tuple(fit for _, fit in outputs)

    pooled = pool_fits(fits)

    if verbose:
        print(pooled.summary())

    return BiomarkerValidation(
        imputation=imputation,
        risks=risks,
        fits=fits,
        pooled=pooled,
    )


def _score_and_fit(
    completed: NDArray,
    names: tuple[str, ...],
    outcome: CompetingRiskDesign,
    biomarker,
    horizon: float,
    coefficients,
    baseline,
    column_map,
) -> tuple[RiskSolution, CoxSolution]:
    """Risk score and cause-specific Cox fit for one completed replicate."""
    if isinstance(biomarker, str):
        marker = completed[:, names.index(biomarker)]
    else:
        marker = biomarker
    covariates = PatientCovariates.from_table(completed, names, column_map)
    risk = predict_risk(
        covariates, horizon,
        coefficients=coefficients, baseline=baseline,
    )
    fit = coxph(
        outcome.time, outcome.status,
        np.column_stack([risk.linear_predictor[:, 0], marker]),
        cause=CAUSE_DISEASE,
        names=('risk_score', 'biomarker'),
    )
    return risk, fit
