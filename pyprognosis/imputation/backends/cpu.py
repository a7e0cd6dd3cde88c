"""
CPU backend for chained-equations multiple imputation.

Algorithm (per replicate, independent RNG stream):
    Initialise each missing cell by sampling the variable's observed values
    For iteration 1..maxit:
        For each variable in the visit sequence:
            X = [1, masked predictors (categoricals dummy-coded)] from the
                current working table
            Fit the variable's conditional model on its originally
                observed rows, draw replacements for its missing rows
            Squeeze continuous draws into the row's constraint interval
            Overwrite the working table immediately
        Record mean/variance of the imputed values (chain diagnostics)
    The working table after the last iteration is the replicate.

Replicates share no mutable state and may run on joblib workers; results
are returned in replicate-index order.
"""

from __future__ import annotations

import numpy as np
from joblib import Parallel, delayed
from numpy.typing import NDArray

from pyprognosis.core.compute.linalg.qr import qr_decompose
from pyprognosis.core.compute.timing import Timer
from pyprognosis.core.exceptions import (
    ConstraintViolation,
    ConvergenceError,
    FitFailure,
    SingularMatrixError,
)
from pyprognosis.core.result import Result
from pyprognosis.core.validation import zero_variance_columns
from pyprognosis.imputation._common import ChainTrace, ImputationParams
from pyprognosis.imputation.constraints import ConstraintTable
from pyprognosis.imputation.design import ImputationDesign
from pyprognosis.imputation.missingness import MissingnessModel


class CPUChainedEquationsBackend:
    """CPU backend running M independent imputation chains.

    Parameters
    ----------
    n_jobs : int
        joblib worker count for the replicates (1 = run in-process,
        -1 = all cores). Output does not depend on n_jobs.
    """

    def __init__(self, n_jobs: int = 1):
        self._n_jobs = n_jobs

    @property
    def name(self) -> str:
        return 'cpu_mice'

    def solve(
        self,
        design: ImputationDesign,
        model: MissingnessModel,
        constraints: ConstraintTable | None,
        *,
        m: int,
        maxit: int,
        seed: int | None,
    ) -> Result[ImputationParams]:
        timer = Timer()
        timer.start()

        root = np.random.SeedSequence(seed)
        streams = root.spawn(m)

        with timer.section('replicates'):
            traces = Parallel(n_jobs=self._n_jobs)(
                delayed(run_chain)(design, model, constraints, maxit, stream, index)
                for index, stream in enumerate(streams, start=1)
            )

        chain_mean, chain_var = ImputationParams.stack_traces(traces)
        violations = tuple(v for trace in traces for v in trace.violations)

        timer.stop()

        params = ImputationParams(
            template=design.data,
            replicates=tuple(trace.completed for trace in traces),
            visit_sequence=model.visit_sequence,
            method_names={name: model.methods[name].name for name in model.visit_sequence},
            chain_mean=chain_mean,
            chain_var=chain_var,
            violations=violations,
            m=m,
            maxit=maxit,
            seed=int(root.entropy),
        )

        warnings_list = []
        if violations:
            squeezed_vars = sorted({v.variable for v in violations})
            warnings_list.append(
                f"{params.n_squeezed} imputed values squeezed into constraint "
                f"intervals (variables: {', '.join(squeezed_vars)})"
            )

        return Result(
            params=params,
            info={
                'method': 'chained_equations',
                'm': m,
                'maxit': maxit,
                'seed': params.seed,
                'n_jobs': self._n_jobs,
                'n_squeezed': params.n_squeezed,
                'visit_sequence': model.visit_sequence,
            },
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(warnings_list),
        )


def run_chain(
    design: ImputationDesign,
    model: MissingnessModel,
    constraints: ConstraintTable | None,
    maxit: int,
    stream: np.random.SeedSequence,
    replicate: int,
) -> ChainTrace:
    """Run one chained-equations chain and return its final state."""
    rng = np.random.default_rng(stream)
    work = np.array(design.data, dtype=np.float64)
    missing = design.missing_mask
    visit = model.visit_sequence
    violations: list[ConstraintViolation] = []

    for name in visit:
        j = design.index(name)
        rows = missing[:, j]
        observed = design.data[~rows, j]
        draws = rng.choice(observed, size=int(rows.sum()), replace=True)
        work[rows, j] = _squeeze(
            design, constraints, name, rows, draws, 0, replicate, violations,
        )

    chain_mean = np.full((maxit, len(visit)), np.nan)
    chain_var = np.full((maxit, len(visit)), np.nan)

    for iteration in range(1, maxit + 1):
        for name in visit:
            spec = design.spec(name)
            j = design.index(name)
            rows = missing[:, j]

            X, labels = predictor_matrix(work, design, model.mask.predictors_for(name))
            X_obs, X_mis = X[~rows], X[rows]
            y_obs = work[~rows, j]

            _check_fit_inputs(name, spec.kind, X_obs, y_obs, labels, iteration, replicate)

            try:
                draws = model.methods[name].draw(spec, X_obs, y_obs, X_mis, rng)
            except SingularMatrixError as e:
                raise FitFailure(
                    f"replicate {replicate}, iteration {iteration}: conditional "
                    f"model for '{name}' has a rank-deficient design: {e}",
                    variable=name, iteration=iteration, replicate=replicate,
                    reason='rank_deficient',
                ) from e
            except ConvergenceError as e:
                raise FitFailure(
                    f"replicate {replicate}, iteration {iteration}: conditional "
                    f"model for '{name}' failed: {e}",
                    variable=name, iteration=iteration, replicate=replicate,
                    reason=e.reason or 'not_converged',
                ) from e

            if spec.kind == 'continuous':
                draws = _squeeze(
                    design, constraints, name, rows, draws,
                    iteration, replicate, violations,
                )
            work[rows, j] = draws

        for v, name in enumerate(visit):
            imputed = work[missing[:, design.index(name)], design.index(name)]
            chain_mean[iteration - 1, v] = np.mean(imputed)
            if imputed.size > 1:
                chain_var[iteration - 1, v] = np.var(imputed, ddof=1)

    work.setflags(write=False)
    return ChainTrace(
        completed=work,
        chain_mean=chain_mean,
        chain_var=chain_var,
        violations=tuple(violations),
    )


def predictor_matrix(
    work: NDArray,
    design: ImputationDesign,
    predictors: tuple[str, ...],
) -> tuple[NDArray, list[str]]:
    """Intercept plus predictor columns; categoricals treatment-coded.

    Returns the (n, 1 + width) matrix and a label per column.
    """
    columns = [np.ones(design.n)]
    labels = ['(Intercept)']
    for name in predictors:
        if name in design.auxiliary_names:
            columns.append(design.auxiliary[:, design.auxiliary_names.index(name)])
            labels.append(name)
            continue
        spec = design.spec(name)
        col = work[:, design.index(name)]
        if spec.kind == 'categorical':
            for level in spec.levels[1:]:
                columns.append((col == level).astype(np.float64))
                labels.append(f"{name}[{level:g}]")
        else:
            columns.append(col)
            labels.append(name)
    return np.column_stack(columns), labels


def _check_fit_inputs(
    name: str,
    kind: str,
    X_obs: NDArray,
    y_obs: NDArray,
    labels: list[str],
    iteration: int,
    replicate: int,
) -> None:
    """Reject degenerate conditional-model inputs before fitting."""
    constant = zero_variance_columns(X_obs[:, 1:])
    if constant:
        names = [labels[c + 1] for c in constant]
        raise FitFailure(
            f"replicate {replicate}, iteration {iteration}: predictors {names} "
            f"of '{name}' have zero variance among its observed rows",
            variable=name, iteration=iteration, replicate=replicate,
            reason='zero_variance',
        )

    rank = qr_decompose(X_obs).rank if X_obs.shape[0] >= X_obs.shape[1] else X_obs.shape[0]
    if rank < X_obs.shape[1]:
        raise FitFailure(
            f"replicate {replicate}, iteration {iteration}: conditional model "
            f"for '{name}' has a rank-deficient design (rank={rank}, "
            f"columns={X_obs.shape[1]}, observed rows={X_obs.shape[0]})",
            variable=name, iteration=iteration, replicate=replicate,
            reason='rank_deficient',
        )

    if kind != 'continuous' and np.unique(y_obs).size < 2:
        raise FitFailure(
            f"replicate {replicate}, iteration {iteration}: '{name}' is "
            f"observed in a single class ({y_obs[0]:g})",
            variable=name, iteration=iteration, replicate=replicate,
            reason='single_class',
        )


def _squeeze(
    design: ImputationDesign,
    constraints: ConstraintTable | None,
    name: str,
    rows: NDArray,
    draws: NDArray,
    iteration: int,
    replicate: int,
    violations: list[ConstraintViolation],
) -> NDArray:
    """Clip draws into their rows' constraint intervals and record moves."""
    labels = design.classification_for(name)
    if constraints is None or labels is None:
        return draws
    squeezed, counts = constraints.squeeze(name, draws, labels[rows])
    for label, n_moved in counts.items():
        violations.append(ConstraintViolation(
            variable=name,
            classification=label,
            iteration=iteration,
            replicate=replicate,
            n_squeezed=n_moved,
        ))
    return squeezed
