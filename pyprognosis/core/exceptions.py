"""
Errors raised by pyprognosis.

    PyPrognosisError
    ├── ValidationError          bad user input
    │   ├── DimensionError       shapes disagree
    │   ├── InvalidCovariate     covariate outside the scoring domain
    │   └── PoolingDegenerate    fewer than two replicates
    └── NumericalError           a computation broke down
        ├── SingularMatrixError
        ├── ConvergenceError
        └── FitFailure           a conditional imputation model failed

Each error keeps the values needed to diagnose it as attributes, and the
ones that can cross a process boundary define __reduce__ so a worker's
failure arrives intact in the parent.

A draw squeezed into its clinical interval is not an error: it is logged
as a ConstraintViolation record and summarised in Result.warnings.
"""

from __future__ import annotations

from dataclasses import dataclass


class PyPrognosisError(Exception):
    """Root of the pyprognosis error tree."""


class ValidationError(PyPrognosisError):
    """An argument or input table was rejected before computing."""


class DimensionError(ValidationError):
    """An array has the wrong number of dimensions, or arrays disagree in length."""


class NumericalError(PyPrognosisError):
    """A numerical routine could not produce a usable answer."""


class SingularMatrixError(NumericalError):
    """
    A matrix that must be invertible is not (to working precision).

    Attributes:
        matrix_name: Which matrix, e.g. 'X' or 'information'
        rank: Its numerical rank, when computed
        expected_rank: The full rank that was required
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        rank: int | None = None,
        expected_rank: int | None = None,
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.rank = rank
        self.expected_rank = expected_rank


class ConvergenceError(NumericalError):
    """
    An iterative fit stopped without meeting its tolerance.

    Attributes:
        iterations: Iterations run before stopping
        final_change: Last change in deviance, log-likelihood or parameters
        reason: 'not_converged' or 'separation'
    """

    def __init__(
        self,
        message: str,
        iterations: int,
        final_change: float | None = None,
        reason: str | None = None,
    ):
        super().__init__(message)
        self.iterations = iterations
        self.final_change = final_change
        self.reason = reason

    def __reduce__(self):
        return (
            self.__class__,
            (str(self), self.iterations, self.final_change, self.reason),
        )


class FitFailure(NumericalError):
    """
    The conditional model for one variable could not be estimated.

    Causes are a rank-deficient or constant predictor set, a target seen in
    only one class, separation of a binary or categorical target, and an
    optimiser that does not converge. The replicate is abandoned; no retry.

    Attributes:
        variable: Target whose model failed
        iteration: Chained-equations sweep, counted from 1
        replicate: Replicate number counted from 1, when known
        reason: 'rank_deficient', 'zero_variance', 'single_class',
            'separation' or 'not_converged'
    """

    def __init__(
        self,
        message: str,
        variable: str,
        iteration: int,
        replicate: int | None = None,
        reason: str | None = None,
    ):
        super().__init__(message)
        self.variable = variable
        self.iteration = iteration
        self.replicate = replicate
        self.reason = reason

    def __reduce__(self):
        return (
            self.__class__,
            (str(self), self.variable, self.iteration, self.replicate, self.reason),
        )


class InvalidCovariate(ValidationError):
    """
    A covariate makes the risk score undefined.

    For example a tumour size of zero under log(size), a non-positive
    horizon, or a NaN left in a scored column. Fix the input and rescore.

    Attributes:
        field: Offending covariate name, or 'horizon'
        value: Offending value
        cause: Cause being scored, when relevant
        row: Row of the scored table, when relevant
    """

    def __init__(
        self,
        message: str,
        field: str,
        value: object = None,
        cause: str | None = None,
        row: int | None = None,
    ):
        super().__init__(message)
        self.field = field
        self.value = value
        self.cause = cause
        self.row = row

    def __reduce__(self):
        return (
            self.__class__,
            (str(self), self.field, self.value, self.cause, self.row),
        )


class PoolingDegenerate(ValidationError):
    """
    Rubin's rules were asked to pool fewer than two replicates.

    Attributes:
        n_replicates: How many replicates were passed
    """

    def __init__(self, message: str, n_replicates: int):
        super().__init__(message)
        self.n_replicates = n_replicates

    def __reduce__(self):
        return (self.__class__, (str(self), self.n_replicates))


@dataclass(frozen=True)
class ConstraintViolation:
    """
    Imputed draws for `variable` that fell outside the interval of a
    classification and were clipped back into it.

    One record per (replicate, iteration, variable, classification) with
    n_squeezed >= 1.
    """
    variable: str
    classification: str
    iteration: int
    replicate: int
    n_squeezed: int
