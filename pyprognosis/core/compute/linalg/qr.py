"""
Least squares through a reduced QR factorisation.

The conditional models of the imputation chain solve every (weighted)
regression here, so a rank-deficient predictor matrix is detected in one
place and surfaces as SingularMatrixError.
"""

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import solve_triangular

from pyprognosis.core.exceptions import SingularMatrixError


@dataclass(frozen=True)
class QRResult:
    """
    Reduced factorisation X = Q R.

    Attributes:
        Q: (n, k) orthonormal columns, k = min(n, p)
        R: (k, p) upper triangular
        rank: number of |R_ii| above the rank tolerance
    """
    Q: NDArray[np.floating[Any]]
    R: NDArray[np.floating[Any]]
    rank: int


def qr_decompose(X: NDArray[np.floating[Any]]) -> QRResult:
    """Factorise X and estimate its numerical rank from diag(R)."""
    Q, R = np.linalg.qr(X, mode='reduced')

    pivots = np.abs(np.diag(R))
    largest = pivots.max() if pivots.size else 0.0
    if largest == 0:
        return QRResult(Q=Q, R=R, rank=0)
    # LAPACK-style relative tolerance
    tol = max(X.shape) * np.finfo(X.dtype).eps * largest
    return QRResult(Q=Q, R=R, rank=int(np.count_nonzero(pivots > tol)))


def qr_solve(
    X: NDArray[np.floating[Any]],
    y: NDArray[np.floating[Any]],
) -> tuple[NDArray[np.floating[Any]], QRResult]:
    """
    β minimising ||y - Xβ||², computed as R⁻¹ Qᵀy.

    Args:
        X: (n, p) predictor matrix, n >= p
        y: (n,) response

    Returns:
        (β, QRResult)

    Raises:
        SingularMatrixError: n < p, or X rank-deficient
    """
    n, p = X.shape
    if n < p:
        raise SingularMatrixError(
            f"{n} rows cannot determine {p} coefficients",
            matrix_name='X',
            rank=n,
            expected_rank=p,
        )

    qr = qr_decompose(X)
    if qr.rank < p:
        raise SingularMatrixError(
            f"predictor matrix has rank {qr.rank} < {p} columns "
            f"(collinear or constant predictors)",
            matrix_name='X',
            rank=qr.rank,
            expected_rank=p,
        )

    beta = solve_triangular(qr.R[:p, :p], (qr.Q.T @ y)[:p], lower=False)
    return beta, qr
