"""
Solution wrapper for pooled multiple-imputation inference.
"""

from __future__ import annotations

from typing import Any

from pyprognosis.core.result import Result
from pyprognosis.pooling._common import PooledParams


class PooledSolution:
    """Pooled estimates across imputation replicates.

    Properties mirror the columns of summary(mice::pool(fit)). Every
    property is an array with one entry per pooled component; `scalar()`
    gives the single-component values as floats.
    """

    __slots__ = ('_result',)

    def __init__(self, _result: Result[PooledParams]) -> None:
        self._result = _result

    @property
    def estimate(self):
        return self._result.params.estimate

    @property
    def within(self):
        """Within-imputation variance Ū."""
        return self._result.params.within

    @property
    def between(self):
        """Between-imputation variance B."""
        return self._result.params.between

    @property
    def total(self):
        """Total variance T = Ū + (1 + 1/m) B."""
        return self._result.params.total

    @property
    def standard_error(self):
        return self._result.params.standard_error

    @property
    def df(self):
        return self._result.params.df

    @property
    def riv(self):
        return self._result.params.riv

    @property
    def lambda_(self):
        return self._result.params.lambda_

    @property
    def fmi(self):
        return self._result.params.fmi

    @property
    def statistic(self):
        return self._result.params.statistic

    @property
    def p_value(self):
        return self._result.params.p_value

    @property
    def ci_lower(self):
        return self._result.params.ci_lower

    @property
    def ci_upper(self):
        return self._result.params.ci_upper

    @property
    def conf_level(self) -> float:
        return self._result.params.conf_level

    @property
    def m(self) -> int:
        return self._result.params.m

    @property
    def dfcom(self) -> float | None:
        return self._result.params.dfcom

    @property
    def names(self) -> tuple[str, ...]:
        return self._result.params.names

    def scalar(self) -> dict[str, float]:
        """Single-component result as a dict of floats."""
        if len(self.estimate) != 1:
            raise ValueError(
                f"scalar() needs exactly one pooled component, got {len(self.estimate)}"
            )
        return {
            'estimate': float(self.estimate[0]),
            'standard_error': float(self.standard_error[0]),
            'df': float(self.df[0]),
            'ci_lower': float(self.ci_lower[0]),
            'ci_upper': float(self.ci_upper[0]),
            'p_value': float(self.p_value[0]),
        }

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def timing(self):
        return self._result.timing

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def summary(self) -> str:
        """mice-style summary(pool(fit), conf.int = TRUE)."""
        ci_pct = f"{self.conf_level * 100:g}%"
        lines = []
        lines.append(f"Call: pool(m={self.m})")
        lines.append("")
        lines.append(
            f"  {'term':>12s}  {'estimate':>10s}  {'std.error':>10s}  "
            f"{'statistic':>10s}  {'df':>8s}  {'p.value':>10s}  "
            f"{'lower':>10s}  {'upper':>10s}  {'fmi':>6s}"
        )
        for i, name in enumerate(self.names):
            lines.append(
                f"  {name:>12s}  {self.estimate[i]:10.5f}  "
                f"{self.standard_error[i]:10.5f}  {self.statistic[i]:10.4f}  "
                f"{self.df[i]:8.2f}  {self.p_value[i]:10.4g}  "
                f"{self.ci_lower[i]:10.5f}  {self.ci_upper[i]:10.5f}  "
                f"{self.fmi[i]:6.3f}"
            )
        lines.append("")
        lines.append(f"  {ci_pct} confidence intervals")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"PooledSolution(m={self.m}, terms={list(self.names)})"
