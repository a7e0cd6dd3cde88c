"""
CompetingRiskDesign: follow-up time, cause of death and covariates.

status codes
    0  alive or censored at `time`
    1  died of the disease of interest (breast cancer)
    2  died of another or unknown cause

A plain 0/1 event indicator is a valid status with no competing deaths.
Everything is checked in for_competing_risks(); fitting code trusts it.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from pyprognosis.core.exceptions import DimensionError, ValidationError
from pyprognosis.core.validation import (
    check_array,
    check_consistent_length,
    check_finite,
    check_min_samples,
)

ALIVE = 0
CAUSE_DISEASE = 1
CAUSE_OTHER = 2

_STATUS_CODES = (ALIVE, CAUSE_DISEASE, CAUSE_OTHER)


@dataclass(frozen=True)
class CompetingRiskDesign:
    """
    Validated competing-risks outcome, optionally with covariates.

    Attributes:
        time: (n,) non-negative follow-up
        status: (n,) int codes 0, 1, 2
        X: (n, p) finite covariates, or None
        names: Covariate labels, x0, x1, ... by default
    """

    time: NDArray
    status: NDArray
    X: NDArray | None
    names: tuple[str, ...]

    @classmethod
    def for_competing_risks(cls, time, status, X=None, *, names=None) -> CompetingRiskDesign:
        """
        Build from array-likes.

        Raises:
            ValidationError: Empty, negative or non-finite time, status
                outside {0, 1, 2}, non-finite covariates
            DimensionError: Lengths disagree, X is not 1D/2D, or names do
                not match the columns of X
        """
        time = check_array(time, 'time').ravel()
        status = check_array(status, 'status').ravel()
        check_min_samples(time, 1, 'time')
        check_consistent_length(time, status, names=('time', 'status'))
        check_finite(time, 'time')
        if np.any(time < 0):
            raise ValidationError(f"time must be non-negative, got min {time.min()}")

        unexpected = np.setdiff1d(status, _STATUS_CODES)
        if unexpected.size:
            raise ValidationError(
                f"status codes are 0 (censored), 1 (disease) and 2 (other); "
                f"got {unexpected}"
            )

        covariates = None
        n_cols = 0
        if X is not None:
            covariates = check_array(X, 'X')
            if covariates.ndim == 1:
                covariates = covariates[:, np.newaxis]
            if covariates.ndim != 2:
                raise DimensionError(f"X must be 1D or 2D, got {covariates.ndim}D")
            check_consistent_length(time, covariates, names=('time', 'X'))
            check_finite(covariates, 'X')
            n_cols = covariates.shape[1]

        if names is None:
            labels = tuple(f"x{j}" for j in range(n_cols))
        else:
            labels = tuple(str(label) for label in names)
        if len(labels) != n_cols:
            raise DimensionError(f"{len(labels)} names for {n_cols} columns of X")

        return cls(time=time, status=status.astype(np.int64), X=covariates, names=labels)

    @property
    def n(self) -> int:
        return self.time.shape[0]

    def event_indicator(self, cause: int) -> NDArray:
        """1.0 where `cause` was the cause of death; other deaths count as censored."""
        if cause not in (CAUSE_DISEASE, CAUSE_OTHER):
            raise ValidationError(f"cause must be 1 or 2, got {cause!r}")
        return (self.status == cause).astype(np.float64)

    def n_events(self, cause: int | None = None) -> int:
        """Deaths from `cause`, or from either cause when None."""
        if cause is None:
            return int(np.count_nonzero(self.status != ALIVE))
        return int(np.count_nonzero(self.status == cause))
