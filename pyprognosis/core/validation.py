"""
Argument validators shared by the design builders and solvers.

Each validator checks one property, names the offending argument in its
message, and raises ValidationError (or DimensionError for shapes). None
of them repairs input: NaN is accepted only where it means "missing".
"""

from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyprognosis.core.exceptions import DimensionError, ValidationError

FloatArray = NDArray[np.floating[Any]]


def check_array(array: ArrayLike, name: str) -> FloatArray:
    """
    Convert to a floating-point array.

    Object arrays are accepted when every element converts to float (None
    becomes NaN); strings and other non-numeric data are rejected.

    Raises:
        ValidationError: If the input is not numeric
    """
    try:
        arr = np.asarray(array)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: cannot convert to array: {e}") from e

    if arr.dtype == object:
        try:
            arr = arr.astype(np.float64)
        except (ValueError, TypeError) as e:
            raise ValidationError(
                f"{name}: contains values that are not numbers"
            ) from e

    if arr.dtype != bool and not np.issubdtype(arr.dtype, np.number):
        raise ValidationError(f"{name}: expected numeric data, got dtype {arr.dtype}")

    if np.issubdtype(arr.dtype, np.floating):
        return arr
    return arr.astype(np.float64)


def check_finite(array: FloatArray, name: str) -> None:
    """Reject NaN and ±Inf."""
    if np.all(np.isfinite(array)):
        return
    raise ValidationError(
        f"{name}: contains non-finite values "
        f"({int(np.isnan(array).sum())} NaN, {int(np.isinf(array).sum())} Inf)"
    )


def check_no_inf(array: FloatArray, name: str) -> None:
    """Reject ±Inf; NaN (missing) passes."""
    infinite = np.isinf(array)
    if np.any(infinite):
        where = tuple(int(i) for i in np.argwhere(infinite)[0])
        raise ValidationError(
            f"{name}: contains infinite values (first at index {where})"
        )


def check_ndim(array: FloatArray, ndim: int, name: str) -> None:
    if array.ndim != ndim:
        raise DimensionError(
            f"{name}: expected {ndim}D array, got {array.ndim}D with shape {array.shape}"
        )


def check_2d(array: FloatArray, name: str) -> None:
    check_ndim(array, 2, name)


def check_consistent_length(*arrays: FloatArray, names: tuple[str, ...]) -> None:
    """
    Require equal first dimensions.

    Raises:
        ValueError: If names and arrays are not paired one-to-one
        DimensionError: If the lengths differ
    """
    if len(arrays) != len(names):
        raise ValueError(
            f"got {len(arrays)} arrays but {len(names)} names"
        )
    lengths = [a.shape[0] for a in arrays]
    if len(set(lengths)) > 1:
        listing = ", ".join(f"{n}={k}" for n, k in zip(names, lengths))
        raise DimensionError(f"Inconsistent lengths: {listing}")


def check_min_samples(array: FloatArray, min_samples: int, name: str) -> None:
    if array.shape[0] < min_samples:
        raise ValidationError(
            f"{name}: requires at least {min_samples} samples, got {array.shape[0]}"
        )


def zero_variance_columns(X: FloatArray) -> list[int]:
    """Column indices of X that are constant (all columns when X has no rows)."""
    if X.shape[0] == 0:
        return list(range(X.shape[1]))
    return np.flatnonzero(np.var(X, axis=0) == 0).tolist()


def check_probability(value: float, name: str) -> None:
    """Require 0 < value < 1."""
    if not 0.0 < value < 1.0:
        raise ValidationError(f"{name} must be in (0, 1), got {value}")


def check_positive_int(value: int, name: str, minimum: int = 1) -> None:
    """Require an integer (not bool) of at least `minimum`."""
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ValidationError(f"{name} must be an integer, got {type(value).__name__}")
    if value < minimum:
        raise ValidationError(f"{name} must be >= {minimum}, got {value}")
