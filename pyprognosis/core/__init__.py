"""
Core infrastructure for pyprognosis.

Shared abstractions and utilities used by the domain subpackages
(imputation, survival, pooling).

Key components:
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    compute: Timing and linear algebra kernels
"""

from pyprognosis.core.result import Result
from pyprognosis.core.exceptions import (
    PyPrognosisError,
    ValidationError,
    DimensionError,
    NumericalError,
    SingularMatrixError,
    ConvergenceError,
    FitFailure,
    InvalidCovariate,
    PoolingDegenerate,
    ConstraintViolation,
)

__all__ = [
    # Result
    "Result",
    # Exceptions
    "PyPrognosisError",
    "ValidationError",
    "DimensionError",
    "NumericalError",
    "SingularMatrixError",
    "ConvergenceError",
    "FitFailure",
    "InvalidCovariate",
    "PoolingDegenerate",
    # Audit records
    "ConstraintViolation",
]
