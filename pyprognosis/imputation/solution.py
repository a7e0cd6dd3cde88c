"""
Solution wrapper for multiple-imputation results.

MultipleImputationSolution wraps Result[ImputationParams] together with
the design it was run on, and provides completed-table access in the
manner of R's mice::complete().
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from pyprognosis.core.exceptions import ConstraintViolation
from pyprognosis.core.result import Result
from pyprognosis.imputation._common import ImputationParams

if TYPE_CHECKING:
    import pandas as pd
    from pyprognosis.imputation.design import ImputationDesign


@dataclass
class MultipleImputationSolution:
    """
    User-facing multiple-imputation results.

    complete(0) is the original table with NaN intact; complete(i) for
    i in 1..m is the i-th completed replicate.
    """
    _result: Result[ImputationParams]
    _design: 'ImputationDesign'

    # --- Completed data ---

    def complete(self, i: int) -> NDArray:
        """
        Completed table for replicate i (1-based), or the template for i=0.

        Raises
        ------
        IndexError
            If i is outside 0..m.
        """
        if isinstance(i, bool) or not isinstance(i, (int, np.integer)):
            raise TypeError(f"replicate index must be an integer, got {type(i).__name__}")
        if i == 0:
            return self._result.params.template
        if not 1 <= i <= self.m:
            raise IndexError(f"replicate index must be in 0..{self.m}, got {i}")
        return self._result.params.replicates[i - 1]

    @property
    def replicates(self) -> tuple[NDArray, ...]:
        """All m completed tables, in replicate order."""
        return self._result.params.replicates

    def imputed_values(self, name: str) -> NDArray:
        """(m, n_missing) imputed values of one variable, rows in table order."""
        j = self._design.index(name)
        rows = self._design.missing_mask[:, j]
        return np.stack([rep[rows, j] for rep in self.replicates])

    def to_dataframe(self, i: int) -> 'pd.DataFrame':
        """complete(i) as a pandas DataFrame with schema column names."""
        import pandas as pd
        return pd.DataFrame(self.complete(i), columns=list(self._design.names))

    # --- Diagnostics ---

    @property
    def chain_mean(self) -> NDArray:
        """(m, maxit, k) mean of imputed values per iteration and variable."""
        return self._result.params.chain_mean

    @property
    def chain_var(self) -> NDArray:
        """(m, maxit, k) variance of imputed values per iteration and variable."""
        return self._result.params.chain_var

    @property
    def visit_sequence(self) -> tuple[str, ...]:
        return self._result.params.visit_sequence

    @property
    def method_names(self) -> dict[str, str]:
        return self._result.params.method_names

    @property
    def constraint_violations(self) -> tuple[ConstraintViolation, ...]:
        """Every squeeze applied during imputation."""
        return self._result.params.violations

    @property
    def n_squeezed(self) -> int:
        return self._result.params.n_squeezed

    # --- Metadata ---

    @property
    def design(self) -> 'ImputationDesign':
        return self._design

    @property
    def m(self) -> int:
        return self._result.params.m

    @property
    def maxit(self) -> int:
        return self._result.params.maxit

    @property
    def seed(self) -> int:
        """Root seed; passing it back to mice() reproduces this result."""
        return self._result.params.seed

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    # --- Display ---

    def summary(self) -> str:
        """mice-style print.mids output."""
        lines = []
        lines.append("Class: mids")
        lines.append(f"Number of multiple imputations:  {self.m}")
        lines.append(f"Iterations: {self.maxit}")
        lines.append(f"Seed: {self.seed}")
        lines.append("")
        lines.append("Imputation methods:")
        names = self._design.names
        methods = [self.method_names.get(name, '""') for name in names]
        width = max(len(s) for s in list(names) + methods) + 2
        lines.append("".join(f"{name:>{width}s}" for name in names))
        lines.append("".join(f"{method:>{width}s}" for method in methods))
        lines.append("")
        lines.append(f"Visit sequence: {', '.join(self.visit_sequence)}")
        counts = self._design.missing_counts
        lines.append("Missing values:")
        lines.append("".join(f"{name:>{width}s}" for name in names))
        lines.append("".join(f"{counts[name]:>{width}d}" for name in names))
        if self.n_squeezed:
            lines.append("")
            lines.append(
                f"Constraint squeezes: {self.n_squeezed} "
                f"({len(self.constraint_violations)} events)"
            )
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"MultipleImputationSolution(m={self.m}, maxit={self.maxit}, "
            f"imputed={list(self.visit_sequence)}, squeezed={self.n_squeezed})"
        )
