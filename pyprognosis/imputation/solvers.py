"""
Solver dispatch for chained-equations multiple imputation.

Public API: mice(design, ...) -> MultipleImputationSolution
"""

from __future__ import annotations

from pyprognosis.core.exceptions import ValidationError
from pyprognosis.core.validation import check_positive_int
from pyprognosis.imputation.backends.cpu import CPUChainedEquationsBackend
from pyprognosis.imputation.constraints import ConstraintTable
from pyprognosis.imputation.design import ImputationDesign
from pyprognosis.imputation.missingness import MissingnessModel
from pyprognosis.imputation.solution import MultipleImputationSolution


def mice(
    design: ImputationDesign,
    model: MissingnessModel | None = None,
    *,
    constraints: ConstraintTable | None = None,
    m: int = 5,
    maxit: int = 10,
    seed: int | None = None,
    n_jobs: int = 1,
    verbose: bool = False,
) -> MultipleImputationSolution:
    """
    Multiple imputation by chained equations with clinical constraints.

    Parameters
    ----------
    design : ImputationDesign
        Partially observed table (NaN = missing).
    model : MissingnessModel or None
        Method per variable, visit sequence and predictor mask. Defaults
        to MissingnessModel.build(design).
    constraints : ConstraintTable or None
        Intervals that continuous imputations are squeezed into, looked up
        by each row's classification. None disables squeezing.
    m : int
        Number of completed replicates.
    maxit : int
        Iterations per chain.
    seed : int or None
        Root seed. Each replicate draws from its own stream spawned from
        it, so the result does not depend on n_jobs. None draws fresh
        entropy, which is recorded in the solution's `seed`.
    n_jobs : int
        joblib workers for the replicates.
    verbose : bool
        Print progress information.

    Returns
    -------
    MultipleImputationSolution

    Raises
    ------
    FitFailure
        If a conditional model cannot be fitted in any replicate.

    Examples
    --------
    >>> design = ImputationDesign.from_arrays(data, schema,
    ...                                       classifications={'pT': pt})
    >>> imp = mice(design, constraints=TNM_CONSTRAINTS, m=10, seed=1)
    >>> imp.complete(1)
    """
    if not isinstance(design, ImputationDesign):
        raise ValidationError(
            f"mice() expects an ImputationDesign, got {type(design).__name__}"
        )
    check_positive_int(m, 'm')
    check_positive_int(maxit, 'maxit')
    if isinstance(n_jobs, bool) or not isinstance(n_jobs, int) or n_jobs == 0:
        raise ValidationError(f"n_jobs must be a non-zero integer, got {n_jobs!r}")
    if constraints is not None and not isinstance(constraints, ConstraintTable):
        raise ValidationError(
            f"constraints must be a ConstraintTable, got {type(constraints).__name__}"
        )

    if model is None:
        model = MissingnessModel.build(design)

    if verbose:
        print(f"MICE: {design.n} observations, {design.p} variables, "
              f"{design.missing_rate:.1%} missing")
        print(model.summary())

    backend = CPUChainedEquationsBackend(n_jobs=n_jobs)

    if verbose:
        print(f"Backend: {backend.name} (m={m}, maxit={maxit}, n_jobs={n_jobs})")

    result = backend.solve(
        design, model, constraints,
        m=m, maxit=maxit, seed=seed,
    )

    if verbose:
        print(f"Seed: {result.params.seed}")
        for message in result.warnings:
            print(f"Note: {message}")

    return MultipleImputationSolution(_result=result, _design=design)
