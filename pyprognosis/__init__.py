"""
pyprognosis: multiple imputation and competing-risks prognosis.

Estimates individual long-term mortality risk for breast-cancer patients
with partially missing clinical covariates, and validates whether a
biomarker adds prognostic value beyond the clinical risk score.

Submodules:
    imputation: Constrained chained-equations multiple imputation
    survival: Two-cause baseline hazards, risk scoring, Cox and Nelson-Aalen
    pooling: Rubin's rules
    pipeline: Impute -> score -> fit -> pool
"""

__version__ = "0.1.0"

from pyprognosis import imputation
from pyprognosis import survival
from pyprognosis import pooling
from pyprognosis import pipeline

__all__ = [
    "__version__",
    "imputation",
    "survival",
    "pooling",
    "pipeline",
]
