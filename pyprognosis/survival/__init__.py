"""
Competing-risks survival prediction.

Provides the two-cause parametric baseline hazard, covariate and
coefficient records, absolute risk scoring, and the cause-specific Cox
and Nelson-Aalen estimators used when validating a biomarker.

Usage:
    from pyprognosis.survival import predict_risk, PatientCovariates

    patients = PatientCovariates.from_columns(age=[55, 70], size=[18, 32],
                                              nodes=[0, 3], grade=[2, 3])
    risk = predict_risk(patients, horizon=10)
    risk.mortality            # (n, 2): breast, other
    risk.all_cause_mortality  # (n,)
"""

from pyprognosis.survival._scoring import absolute_risk, linear_predictor
from pyprognosis.survival.baseline import BaselineHazardModel, FlexibleBaseline
from pyprognosis.survival.coefficients import (
    BREAST_REFERENCE,
    OTHER_REFERENCE,
    TERMS,
    CoefficientSet,
    PatientCovariates,
    derive_bisphosphonates,
)
from pyprognosis.survival.design import CompetingRiskDesign
from pyprognosis.survival.solution import CoxSolution, NelsonAalenSolution, RiskSolution
from pyprognosis.survival.solvers import coxph, nelson_aalen, predict_risk

__all__ = [
    "predict_risk",
    "linear_predictor",
    "absolute_risk",
    "coxph",
    "nelson_aalen",
    "FlexibleBaseline",
    "BaselineHazardModel",
    "PatientCovariates",
    "CoefficientSet",
    "BREAST_REFERENCE",
    "OTHER_REFERENCE",
    "TERMS",
    "derive_bisphosphonates",
    "CompetingRiskDesign",
    "RiskSolution",
    "CoxSolution",
    "NelsonAalenSolution",
]
