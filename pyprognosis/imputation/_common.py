"""
Parameter payloads for imputation results.

Each dataclass is a frozen payload carried inside a Result[P] envelope.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from pyprognosis.core.exceptions import ConstraintViolation


@dataclass(frozen=True)
class ChainTrace:
    """One replicate's completed table and its convergence trace."""

    completed: NDArray                   # (n, p): no NaN
    chain_mean: NDArray                  # (maxit, k): mean of imputed values
    chain_var: NDArray                   # (maxit, k): variance of imputed values
    violations: tuple[ConstraintViolation, ...]


@dataclass(frozen=True)
class ImputationParams:
    """Multiple-imputation output.

    Mirrors the parts of R's mids object the rest of the pipeline needs.
    """

    template: NDArray                    # (n, p): input with NaN intact
    replicates: tuple[NDArray, ...]      # m × (n, p) completed tables
    visit_sequence: tuple[str, ...]      # imputed variables, in visit order
    method_names: dict[str, str]         # variable -> 'pmm' | 'logreg' | 'polyreg'
    chain_mean: NDArray                  # (m, maxit, k)
    chain_var: NDArray                   # (m, maxit, k)
    violations: tuple[ConstraintViolation, ...]
    m: int
    maxit: int
    seed: int                            # root SeedSequence entropy

    @property
    def n_squeezed(self) -> int:
        return int(sum(v.n_squeezed for v in self.violations))

    @staticmethod
    def stack_traces(traces: list[ChainTrace]) -> tuple[NDArray, NDArray]:
        return (
            np.stack([t.chain_mean for t in traces]),
            np.stack([t.chain_var for t in traces]),
        )
