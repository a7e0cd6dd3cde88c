"""
Nelson-Aalen cumulative hazard estimator.

    H(t) = Σ_{t_j <= t} d_j / n_j

with d_j events and n_j subjects at risk at event time t_j. Evaluated at
each subject's own follow-up time it is the outcome summary recommended
as a predictor in imputation models for survival data (White & Royston,
2009), used here as an auxiliary column of the imputation design.

References:
    Nelson, W. (1972). Theory and applications of hazard plotting for
        censored failure data. Technometrics, 14(4), 945-966.
    White, I. R., & Royston, P. (2009). Imputing missing covariate values
        for the Cox model. Statistics in Medicine, 28(15), 1982-1998.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pyprognosis.survival._common import NelsonAalenParams


def nelson_aalen_fit(time: NDArray, event: NDArray) -> NelsonAalenParams:
    """Compute the Nelson-Aalen cumulative hazard.

    Parameters
    ----------
    time : NDArray
        (n,) time to event or censoring.
    event : NDArray
        (n,) event indicator (1=event, 0=censored).

    Returns
    -------
    NelsonAalenParams
    """
    n_total = len(time)
    unique_event_times = np.unique(time[event == 1])

    if len(unique_event_times) == 0:
        empty = np.array([], dtype=np.float64)
        return NelsonAalenParams(
            time=empty,
            cumulative_hazard=empty,
            n_risk=empty,
            n_events=empty,
            subject_hazard=np.zeros(n_total, dtype=np.float64),
            n_observations=n_total,
            n_events_total=0,
        )

    sorted_time = np.sort(time)
    # Number with time >= t_j
    n_risk = n_total - np.searchsorted(sorted_time, unique_event_times, side='left')
    n_events = np.array(
        [np.sum((time == t) & (event == 1)) for t in unique_event_times],
        dtype=np.float64,
    )
    cumulative_hazard = np.cumsum(n_events / n_risk)

    # H at each subject's own time (step function, right-continuous)
    idx = np.searchsorted(unique_event_times, time, side='right') - 1
    subject_hazard = np.where(idx >= 0, cumulative_hazard[np.maximum(idx, 0)], 0.0)

    return NelsonAalenParams(
        time=unique_event_times,
        cumulative_hazard=cumulative_hazard,
        n_risk=n_risk.astype(np.float64),
        n_events=n_events,
        subject_hazard=subject_hazard,
        n_observations=n_total,
        n_events_total=int(np.sum(event)),
    )
