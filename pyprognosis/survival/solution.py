"""
Read-only views over survival results: absolute risk (RiskSolution), the
cause-specific Cox fit (CoxSolution) and the Nelson-Aalen estimate
(NelsonAalenSolution). Each keeps its Result and nothing else.
"""

from __future__ import annotations

import numpy as np

from pyprognosis.core.result import Result
from pyprognosis.survival._common import CoxParams, NelsonAalenParams, RiskParams


class RiskSolution:
    """Absolute risk of two competing causes at a horizon.

    Column 0 of every (n, 2) array is the disease cause, column 1 the
    competing cause.
    """

    __slots__ = ('_result',)

    def __init__(self, _result: Result[RiskParams]) -> None:
        self._result = _result

    @property
    def horizon(self) -> float:
        return self._result.params.horizon

    @property
    def causes(self) -> tuple[str, str]:
        return self._result.params.causes

    @property
    def linear_predictor(self):
        """(n, 2) linear predictor per cause."""
        return self._result.params.linear_predictor

    @property
    def baseline_survival(self):
        """(2,) baseline survival at the horizon per cause."""
        return self._result.params.baseline_survival

    @property
    def survival(self):
        """(n, 2) cause-specific survival at the horizon."""
        return self._result.params.survival

    @property
    def mortality(self):
        """(n, 2) cause-specific mortality 1 - survival."""
        return self._result.params.mortality

    @property
    def all_cause_mortality(self):
        """(n,) 1 - S_disease · S_other."""
        return self._result.params.all_cause_mortality

    @property
    def times(self):
        """Yearly grid of the cumulative incidence, ending at the horizon."""
        return self._result.params.times

    @property
    def cumulative_incidence(self):
        """(n, k, 2) competing-risks cumulative incidence on `times`."""
        return self._result.params.cumulative_incidence

    @property
    def n_observations(self) -> int:
        return self._result.params.n_observations

    def for_cause(self, cause: str):
        """(n,) mortality at the horizon for one named cause."""
        try:
            j = self.causes.index(cause)
        except ValueError:
            raise KeyError(f"unknown cause '{cause}'; available: {self.causes}") from None
        return self.mortality[:, j]

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
        """Distribution of predicted mortality at the horizon."""
        lines = []
        lines.append(f"Call: predict_risk(horizon={self.horizon:g})")
        lines.append("")
        lines.append(f"  n= {self.n_observations}")
        lines.append("")
        lines.append(
            f"  {'':>10s}  {'S0(t)':>8s}  {'mean':>8s}  {'min':>8s}  "
            f"{'median':>8s}  {'max':>8s}"
        )
        rows = [(c, self.mortality[:, j], self.baseline_survival[j])
                for j, c in enumerate(self.causes)]
        rows.append(('all-cause', self.all_cause_mortality, np.nan))
        for label, values, s0 in rows:
            s0_str = f"{s0:8.4f}" if np.isfinite(s0) else f"{'':>8s}"
            lines.append(
                f"  {label:>10s}  {s0_str}  {np.mean(values):8.4f}  "
                f"{np.min(values):8.4f}  {np.median(values):8.4f}  "
                f"{np.max(values):8.4f}"
            )
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"RiskSolution(n={self.n_observations}, horizon={self.horizon:g}, "
            f"causes={self.causes})"
        )


class CoxSolution:
    """Fitted cause-specific Cox model; field names follow R's coxph()."""

    __slots__ = ('_result',)

    def __init__(self, _result: Result[CoxParams]) -> None:
        self._result = _result

    @property
    def coefficients(self):
        return self._result.params.coefficients

    @property
    def hazard_ratios(self):
        return self._result.params.hazard_ratios

    @property
    def standard_errors(self):
        return self._result.params.standard_errors

    @property
    def variance(self):
        return self._result.params.variance

    @property
    def z_statistics(self):
        return self._result.params.z_statistics

    @property
    def p_values(self):
        return self._result.params.p_values

    @property
    def loglik(self):
        return self._result.params.loglik

    @property
    def concordance(self) -> float:
        return self._result.params.concordance

    @property
    def names(self) -> tuple[str, ...]:
        return self._result.params.names

    @property
    def cause(self) -> int:
        return self._result.params.cause

    @property
    def n_events(self) -> int:
        return self._result.params.n_events

    @property
    def n_competing(self) -> int:
        return self._result.params.n_competing

    @property
    def n_observations(self) -> int:
        return self._result.params.n_observations

    @property
    def n_iter(self) -> int:
        return self._result.params.n_iter

    @property
    def converged(self) -> bool:
        return self._result.params.converged

    @property
    def ties(self) -> str:
        return self._result.params.ties

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
        """R-style summary of the cause-specific Cox fit."""
        lines = []
        lines.append(f"Call: coxph(Surv(time, status == {self.cause}) ~ X)")
        lines.append("")
        lines.append(
            f"  n= {self.n_observations}, "
            f"number of events= {self.n_events} "
            f"(competing events censored: {self.n_competing})"
        )
        lines.append("")

        header = ('coef', 'exp(coef)', 'se(coef)', 'z', 'Pr(>|z|)')
        lines.append(f"  {'':>10s}" + "".join(f"  {h:>10s}" for h in header))
        columns = zip(
            self.names, self.coefficients, self.hazard_ratios,
            self.standard_errors, self.z_statistics, self.p_values,
        )
        for name, coef, hr, se, z, pval in columns:
            lines.append(
                f"  {name:>10s}  {coef:10.5f}  {hr:10.5f}  {se:10.5f}  "
                f"{z:10.3f}  {pval:10.3g}"
            )

        lines.append("")
        lines.append(f"  Concordance= {self.concordance:.4f}")
        lines.append(
            f"  Likelihood ratio test= {2 * (self.loglik[1] - self.loglik[0]):.3f}"
            f" on {len(self.names)} df"
        )

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"CoxSolution(n={self.n_observations}, cause={self.cause}, "
            f"events={self.n_events}, concordance={self.concordance:.4f})"
        )


class NelsonAalenSolution:
    """Nelson-Aalen cumulative hazard solution."""

    __slots__ = ('_result',)

    def __init__(self, _result: Result[NelsonAalenParams]) -> None:
        self._result = _result

    @property
    def time(self):
        """Distinct times with at least one event."""
        return self._result.params.time

    @property
    def cumulative_hazard(self):
        """H(t) at each event time."""
        return self._result.params.cumulative_hazard

    @property
    def n_risk(self):
        return self._result.params.n_risk

    @property
    def n_events(self):
        return self._result.params.n_events

    @property
    def subject_hazard(self):
        """H(t_i) at each subject's own time, in input order."""
        return self._result.params.subject_hazard

    @property
    def n_observations(self) -> int:
        return self._result.params.n_observations

    @property
    def n_events_total(self) -> int:
        return self._result.params.n_events_total

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def timing(self):
        return self._result.timing

    def summary(self) -> str:
        lines = []
        lines.append("Call: nelson_aalen()")
        lines.append("")
        lines.append(f"  n={self.n_observations}, events={self.n_events_total}")
        lines.append("")
        lines.append(f"  {'time':>8s}  {'n.risk':>8s}  {'n.event':>8s}  {'cumhaz':>10s}")
        m = len(self.time)
        for i in range(min(m, 20)):
            lines.append(
                f"  {self.time[i]:8.4g}  {self.n_risk[i]:8.0f}  "
                f"{self.n_events[i]:8.0f}  {self.cumulative_hazard[i]:10.6f}"
            )
        if m > 20:
            lines.append(f"  ... ({m - 20} more rows)")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"NelsonAalenSolution(n={self.n_observations}, "
            f"events={self.n_events_total})"
        )
