"""
Conditional-model fitting and posterior draws for the imputation chain.

Three kernels, one per ConditionalModelSpec variant:

Predictive mean matching (Little 1988; van Buuren 2018, §3.4):
    β̂, V = (X'X)⁻¹ via QR of X_obs
    σ*² = RSS / χ²(n_obs - p)
    β* = β̂ + σ* · R⁻¹ z,  z ~ N(0, I)         (Bayesian linear draw)
    ŷ_obs = X_obs β̂,  ŷ_mis = X_mis β*        (type-1 matching)
    each missing row takes the observed value of a donor drawn uniformly
    from the `donors` rows with closest ŷ_obs.

Binary logistic (IRLS, matching R's glm.fit convergence rule):
    z = η + (y - μ)/μ(1-μ),  w = μ(1-μ)
    Solve WLS via QR of √w·X until |dev - dev_old|/(|dev_old| + 0.1) < tol
    β* ~ N(β̂, (X'WX)⁻¹);  y_mis ~ Bernoulli(expit(X_mis β*))

Multinomial logit (reference level 0):
    refuse a category linearly separable from the rest (LP feasibility)
    maximise Σ log softmax(X B)[y] with L-BFGS-B, analytic gradient
    y_mis drawn from the fitted category probabilities by inverse CDF.

All kernels raise core exceptions (SingularMatrixError, ConvergenceError);
the backend attributes them to a variable and iteration as FitFailure.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import solve_triangular
from scipy.optimize import linprog, minimize
from scipy.special import expit, logsumexp

from pyprognosis.core.compute.linalg.qr import qr_solve
from pyprognosis.core.exceptions import ConvergenceError

# R's glm.fit flags fitted probabilities within 10 machine epsilons of 0 or 1
_SEPARATION_EPS = 10 * np.finfo(np.float64).eps


def _inverse_upper(R: NDArray) -> NDArray:
    """R⁻¹ for upper-triangular R."""
    return solve_triangular(R, np.eye(R.shape[0]), lower=False)


# =====================================================================
# Predictive mean matching
# =====================================================================

def pmm_draw(
    X_obs: NDArray,
    y_obs: NDArray,
    X_mis: NDArray,
    rng: np.random.Generator,
    donors: int = 5,
) -> NDArray:
    """Draw imputations for a continuous target by predictive mean matching.

    Parameters
    ----------
    X_obs : (n_obs, p) predictor rows where the target is observed
    y_obs : (n_obs,) observed target values
    X_mis : (n_mis, p) predictor rows where the target is missing
    rng : Generator
    donors : int
        Size of the donor pool for each missing row.

    Returns
    -------
    (n_mis,) imputed values, each an observed value of y.
    """
    n_obs, p = X_obs.shape
    beta_hat, qr = qr_solve(X_obs, y_obs)

    R_inv = _inverse_upper(qr.R[:p, :p])
    residuals = y_obs - X_obs @ beta_hat
    df = max(n_obs - p, 1)
    sigma_star = np.sqrt(np.sum(residuals ** 2) / rng.chisquare(df))
    beta_star = beta_hat + sigma_star * (R_inv @ rng.standard_normal(p))

    yhat_obs = X_obs @ beta_hat
    yhat_mis = X_mis @ beta_star

    k = min(donors, n_obs)
    imputed = np.empty(X_mis.shape[0], dtype=np.float64)
    for i, target in enumerate(yhat_mis):
        distance = np.abs(yhat_obs - target)
        pool = np.argpartition(distance, k - 1)[:k]
        imputed[i] = y_obs[pool[rng.integers(k)]]
    return imputed


# =====================================================================
# Binary logistic
# =====================================================================

def _binomial_deviance(y: NDArray, mu: NDArray) -> float:
    mu = np.clip(mu, 1e-300, 1.0 - 1e-16)
    return float(-2.0 * np.sum(y * np.log(mu) + (1.0 - y) * np.log1p(-mu)))


def logistic_fit(
    X: NDArray,
    y: NDArray,
    tol: float = 1e-8,
    max_iter: int = 25,
) -> tuple[NDArray, NDArray]:
    """Fit a logistic regression by IRLS with QR inner solves.

    Returns
    -------
    (beta, cov)
        beta : (p,) coefficients
        cov : (p, p) inverse Fisher information (X'WX)⁻¹

    Raises
    ------
    SingularMatrixError
        If the (weighted) design is rank-deficient.
    ConvergenceError
        reason='not_converged' after max_iter iterations, or
        reason='separation' if fitted probabilities reach 0 or 1.
    """
    n, p = X.shape
    # R's binomial()$initialize: mu = (y + 0.5) / 2 for unit weights
    mu = (y + 0.5) / 2.0
    eta = np.log(mu / (1.0 - mu))
    dev_old = _binomial_deviance(y, mu)

    converged = False
    dev_new = dev_old
    for iteration in range(1, max_iter + 1):
        w = np.maximum(mu * (1.0 - mu), 1e-30)
        z = eta + (y - mu) / w

        sqrt_w = np.sqrt(w)
        beta, _ = qr_solve(X * sqrt_w[:, np.newaxis], z * sqrt_w)

        eta = X @ beta
        mu = expit(eta)
        dev_new = _binomial_deviance(y, mu)

        if abs(dev_new - dev_old) / (abs(dev_old) + 0.1) < tol:
            converged = True
            break
        dev_old = dev_new

    if not converged:
        raise ConvergenceError(
            f"IRLS did not converge in {max_iter} iterations "
            f"(deviance={dev_new:.6f})",
            iterations=max_iter,
            final_change=abs(dev_new - dev_old),
            reason='not_converged',
        )

    if np.any(mu < _SEPARATION_EPS) or np.any(mu > 1.0 - _SEPARATION_EPS):
        raise ConvergenceError(
            "fitted probabilities numerically 0 or 1 occurred "
            "(complete or quasi-complete separation)",
            iterations=iteration,
            reason='separation',
        )

    # Information at the final β rather than the previous iterate
    w = np.maximum(mu * (1.0 - mu), 1e-30)
    _, qr = qr_solve(X * np.sqrt(w)[:, np.newaxis], np.zeros(n))
    R_inv = _inverse_upper(qr.R[:p, :p])
    return beta, R_inv @ R_inv.T


def logistic_draw(
    X_obs: NDArray,
    y_obs: NDArray,
    X_mis: NDArray,
    rng: np.random.Generator,
    tol: float = 1e-8,
    max_iter: int = 25,
) -> NDArray:
    """Draw 0/1 imputations from a logistic model with parameter uncertainty."""
    beta_hat, cov = logistic_fit(X_obs, y_obs, tol=tol, max_iter=max_iter)
    # Symmetrise before Cholesky; cov is PD when the fit succeeded
    L = np.linalg.cholesky((cov + cov.T) / 2.0)
    beta_star = beta_hat + L @ rng.standard_normal(len(beta_hat))
    prob = expit(X_mis @ beta_star)
    return (rng.uniform(size=len(prob)) <= prob).astype(np.float64)


# =====================================================================
# Multinomial logit
# =====================================================================

def _multinomial_objective(
    theta: NDArray, X: NDArray, Y: NDArray,
) -> tuple[float, NDArray]:
    """Negative log-likelihood and gradient, reference category 0.

    Y is the (n, K) one-hot response; theta flattens B of shape (p, K-1).
    """
    p = X.shape[1]
    K = Y.shape[1]
    B = theta.reshape(p, K - 1)
    eta = np.column_stack([np.zeros(X.shape[0]), X @ B])
    log_norm = logsumexp(eta, axis=1)
    nll = -float(np.sum(np.sum(Y * eta, axis=1) - log_norm))
    P = np.exp(eta - log_norm[:, np.newaxis])
    grad = X.T @ (P[:, 1:] - Y[:, 1:])
    return nll, grad.ravel()


def multinomial_fit(
    X: NDArray,
    codes: NDArray,
    n_levels: int,
    tol: float = 1e-8,
    max_iter: int = 200,
) -> NDArray:
    """Fit a multinomial logit by L-BFGS-B.

    Parameters
    ----------
    X : (n, p) predictors including intercept
    codes : (n,) integer category index in 0..n_levels-1
    n_levels : int

    Returns
    -------
    B : (p, n_levels - 1) coefficients against category 0.

    Raises
    ------
    ConvergenceError
        reason='not_converged' if the optimizer stops unsuccessfully,
        reason='separation' if some category is linearly separated from
        the others, or a fitted probability on an observed row is
        numerically 0 or 1.
    """
    n, p = X.shape
    Y = np.zeros((n, n_levels), dtype=np.float64)
    Y[np.arange(n), codes] = 1.0

    # Optimise on unit-scale columns; coefficients are mapped back below
    scale = np.max(np.abs(X), axis=0)
    scale[scale == 0] = 1.0

    separated = separated_categories(X / scale, codes, n_levels)
    if separated:
        raise ConvergenceError(
            f"category index(es) {separated} completely separated by the "
            f"predictors; the multinomial MLE does not exist",
            iterations=0,
            reason='separation',
        )

    theta0 = np.zeros(p * (n_levels - 1), dtype=np.float64)
    opt = minimize(
        _multinomial_objective,
        theta0,
        args=(X / scale, Y),
        jac=True,
        method='L-BFGS-B',
        options={'maxiter': max_iter, 'ftol': tol, 'gtol': 1e-6},
    )
    if not opt.success:
        raise ConvergenceError(
            f"multinomial fit did not converge after {opt.nit} iterations. "
            f"Message: {opt.message}",
            iterations=int(opt.nit),
            reason='not_converged',
        )

    B = opt.x.reshape(p, n_levels - 1) / scale[:, np.newaxis]
    P = multinomial_probabilities(X, B)
    if np.any(P < _SEPARATION_EPS) or np.any(P > 1.0 - _SEPARATION_EPS):
        raise ConvergenceError(
            "fitted category probabilities numerically 0 or 1 occurred "
            "(quasi-complete separation)",
            iterations=int(opt.nit),
            reason='separation',
        )
    return B


def separated_categories(X: NDArray, codes: NDArray, n_levels: int) -> list[int]:
    """Categories k for which some w gives x·w > 0 on k's rows and < 0 elsewhere.

    Each check is the linear feasibility problem s_i x_i·w >= 1 with
    s_i = +1 in category k and -1 otherwise (Albert & Anderson 1984).
    """
    separated = []
    for k in range(n_levels):
        sign = np.where(codes == k, 1.0, -1.0)
        lp = linprog(
            np.zeros(X.shape[1]),
            A_ub=-(sign[:, np.newaxis] * X),
            b_ub=-np.ones(X.shape[0]),
            bounds=(None, None),
            method='highs',
        )
        # status 0: a separating direction exists; 2: infeasible
        if lp.status == 0:
            separated.append(k)
    return separated


def multinomial_probabilities(X: NDArray, B: NDArray) -> NDArray:
    """(n, K) category probabilities for coefficients B of shape (p, K-1)."""
    eta = np.column_stack([np.zeros(X.shape[0]), X @ B])
    return np.exp(eta - logsumexp(eta, axis=1)[:, np.newaxis])


def multinomial_draw(
    X_obs: NDArray,
    codes_obs: NDArray,
    X_mis: NDArray,
    n_levels: int,
    rng: np.random.Generator,
    tol: float = 1e-8,
    max_iter: int = 200,
) -> NDArray:
    """Draw category indices for missing rows from fitted probabilities."""
    B = multinomial_fit(X_obs, codes_obs, n_levels, tol=tol, max_iter=max_iter)
    P = multinomial_probabilities(X_mis, B)
    u = rng.uniform(size=P.shape[0])
    idx = np.sum(np.cumsum(P, axis=1) < u[:, np.newaxis], axis=1)
    return np.minimum(idx, n_levels - 1)
