"""
Parameter payloads for survival results.

Each dataclass is a frozen payload carried inside a Result[P] envelope.
"""

from __future__ import annotations

from dataclasses import dataclass

from numpy.typing import NDArray


@dataclass(frozen=True)
class RiskParams:
    """Competing-risks absolute risk at a horizon, one row per patient."""

    horizon: float
    causes: tuple[str, str]              # (disease cause, other cause)
    linear_predictor: NDArray            # (n, 2): per cause
    baseline_survival: NDArray           # (2,): S0(horizon) per cause
    survival: NDArray                    # (n, 2): S0 ** exp(lp)
    mortality: NDArray                   # (n, 2): 1 - survival
    all_cause_mortality: NDArray         # (n,): 1 - S_1 · S_2
    times: NDArray                       # (k,): yearly grid ending at horizon
    cumulative_incidence: NDArray        # (n, k, 2): per cause on the grid
    n_observations: int


@dataclass(frozen=True)
class CoxParams:
    """Cause-specific Cox proportional hazards model parameters.

    Matches the output of R's survival::coxph() on Surv(time, status == cause).
    """

    coefficients: NDArray        # (p,): log hazard ratios
    hazard_ratios: NDArray       # (p,): exp(coef)
    standard_errors: NDArray     # (p,): from observed information matrix
    variance: NDArray            # (p, p): inverse observed information
    z_statistics: NDArray        # (p,): coef / se
    p_values: NDArray            # (p,): two-sided Wald test
    loglik: tuple[float, float]  # (null log-lik, model log-lik)
    concordance: float           # Harrell's C-statistic
    names: tuple[str, ...]
    cause: int
    n_events: int
    n_competing: int             # competing-cause events treated as censored
    n_observations: int
    n_iter: int                  # Newton-Raphson iterations
    converged: bool
    ties: str                    # "efron" or "breslow"


@dataclass(frozen=True)
class NelsonAalenParams:
    """Nelson-Aalen cumulative hazard, at event times and per subject."""

    time: NDArray                # (m,): unique event times
    cumulative_hazard: NDArray   # (m,): H(t) at each event time
    n_risk: NDArray              # (m,): number at risk just before each time
    n_events: NDArray            # (m,): events at each time
    subject_hazard: NDArray      # (n,): H(t_i) at each subject's own time
    n_observations: int
    n_events_total: int
