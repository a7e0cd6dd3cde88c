"""
Cause-specific Cox regression.

A death from the competing cause is a censoring at that time for the cause
being modelled (Prentice et al. 1978), so the fit reduces to an ordinary
Cox model on event = (status == cause). The answers agree with
survival::coxph(Surv(time, status == cause) ~ X).

Risk-set sums are tail cumulative sums over subjects in ascending time:
for a distinct event time t_j starting at sorted position k_j,

    S0_j = Σ_{i ≥ k_j} w_i,   S1_j = Σ_{i ≥ k_j} w_i x_i,   S2_j = Σ_{i ≥ k_j} w_i x_i x_iᵀ

with w = exp(Xβ). The matching sums over the d_j deaths at t_j (D0, D1,
D2) give Efron's correction; Breslow's approximation drops it:

    ℓ(β) = Σ_j [ Σ_{i dies at t_j} x_iᵀβ - Σ_{s<d_j} log(S0_j - f_s D0_j) ]
    f_s = s/d_j (Efron) or 0 (Breslow)

Newton-Raphson from β = 0 on the observed information, with each step
limited to 5 in max-norm.

References:
    Cox, D. R. (1972). Regression models and life-tables. JRSS-B 34, 187-220.
    Efron, B. (1977). The efficiency of Cox's likelihood function for
        censored data. JASA 72, 557-565.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import LinAlgError, cho_factor, cho_solve

from pyprognosis.core.exceptions import SingularMatrixError, ValidationError

_MAX_STEP = 5.0


@dataclass(frozen=True)
class CoxFit:
    """Newton-Raphson estimates, before standard errors and tests are derived."""

    coefficients: NDArray
    variance: NDArray
    loglik: tuple[float, float]      # (β = 0, final β)
    n_iter: int
    converged: bool


class _RiskSets:
    """Time-sorted data and the index bookkeeping reused at every β."""

    def __init__(self, time: NDArray, event: NDArray, X: NDArray, efron: bool):
        order = np.argsort(time, kind='stable')
        self.time = time[order]
        self.event = event[order] == 1
        self.X = X[order]
        self.efron = efron

        self.event_times = np.unique(self.time[self.event])
        self.first_at_risk = np.searchsorted(self.time, self.event_times, side='left')
        self.death_slot = np.searchsorted(self.event_times, self.time[self.event])
        self.deaths = np.bincount(self.death_slot, minlength=len(self.event_times))

    def evaluate(self, beta: NDArray) -> tuple[float, NDArray, NDArray]:
        """(log partial likelihood, score, observed information) at β."""
        X = self.X
        p = X.shape[1]
        n_times = len(self.event_times)

        eta = X @ beta
        eta = eta - eta.max()        # cancels between numerator and denominators
        w = np.exp(eta)

        wX = w[:, None] * X
        wXX = wX[:, :, None] * X[:, None, :]
        tail = self.first_at_risk
        S0 = np.cumsum(w[::-1])[::-1][tail]
        S1 = np.cumsum(wX[::-1], axis=0)[::-1][tail]
        S2 = np.cumsum(wXX[::-1], axis=0)[::-1][tail]

        slot = self.death_slot
        D0 = np.zeros(n_times)
        D1 = np.zeros((n_times, p))
        D2 = np.zeros((n_times, p, p))
        np.add.at(D0, slot, w[self.event])
        np.add.at(D1, slot, wX[self.event])
        np.add.at(D2, slot, wXX[self.event])

        loglik = float(eta[self.event].sum())
        score = X[self.event].sum(axis=0)
        information = np.zeros((p, p))

        for j in range(n_times):
            d = int(self.deaths[j])
            for s in range(d):
                f = s / d if self.efron else 0.0
                denom = S0[j] - f * D0[j]
                mean = (S1[j] - f * D1[j]) / denom
                loglik -= np.log(denom)
                score = score - mean
                information += (S2[j] - f * D2[j]) / denom - np.outer(mean, mean)

        return loglik, score, information


def cox_fit(
    time: NDArray,
    event: NDArray,
    X: NDArray,
    ties: str = "efron",
    tol: float = 1e-9,
    max_iter: int = 20,
) -> CoxFit:
    """
    Maximise the Cox partial likelihood.

    Args:
        time: (n,) follow-up time
        event: (n,) 1 for an event of the modelled cause, else 0
        X: (n, p) covariates, no intercept column
        ties: 'efron' or 'breslow'
        tol: Stop when max|Δβ| or the relative change in ℓ falls below tol
        max_iter: Newton-Raphson iteration limit

    Raises:
        ValidationError: No events
        SingularMatrixError: Information not positive definite (constant or
            collinear covariates)
    """
    if not np.any(event == 1):
        raise ValidationError("Cox model needs at least one event, got none")

    risk_sets = _RiskSets(time, event, X, efron=(ties == "efron"))

    beta = np.zeros(X.shape[1])
    loglik, score, information = risk_sets.evaluate(beta)
    null_loglik = loglik

    converged = False
    n_iter = 0
    while n_iter < max_iter and not converged:
        n_iter += 1
        step = _information_solve(information, score)
        largest = np.abs(step).max()
        if largest > _MAX_STEP:
            step *= _MAX_STEP / largest

        beta = beta + step
        previous = loglik
        loglik, score, information = risk_sets.evaluate(beta)
        converged = (
            np.abs(step).max() < tol
            or abs(loglik - previous) / (abs(previous) + 0.1) < tol
        )

    return CoxFit(
        coefficients=beta,
        variance=_information_solve(information, np.eye(len(beta))),
        loglik=(float(null_loglik), float(loglik)),
        n_iter=n_iter,
        converged=converged,
    )


def _information_solve(information: NDArray, rhs: NDArray) -> NDArray:
    """information⁻¹ rhs by Cholesky."""
    try:
        factor = cho_factor(information)
    except LinAlgError:
        raise SingularMatrixError(
            "Cox information matrix is not positive definite; check for "
            "constant or collinear covariates",
            matrix_name='information',
            rank=int(np.linalg.matrix_rank(information)),
            expected_rank=information.shape[0],
        ) from None
    return cho_solve(factor, rhs)


def concordance(eta: NDArray, time: NDArray, event: NDArray) -> float:
    """
    Harrell's C: among usable pairs (the earlier time is an event), the
    share where the earlier subject has the higher risk score. Ties in the
    score count one half; 0.5 when no pair is usable.
    """
    order = np.argsort(time, kind='stable')
    t = time[order]
    score = eta[order]
    is_event = event[order] == 1

    agree = 0
    tied = 0
    usable = 0
    for i in np.flatnonzero(is_event):
        later = score[np.searchsorted(t, t[i], side='right'):]
        usable += later.size
        agree += int(np.count_nonzero(score[i] > later))
        tied += int(np.count_nonzero(score[i] == later))

    if usable == 0:
        return 0.5
    return (agree + 0.5 * tied) / usable
