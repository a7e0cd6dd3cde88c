"""
Shared compute infrastructure for pyprognosis.

Timing utilities and linear algebra kernels shared across the
imputation, survival and pooling domains.

Submodules:
    timing: Execution timing utilities
    linalg: Linear algebra kernels (QR least squares)
"""

from pyprognosis.core.compute.timing import Timer

__all__ = [
    "Timer",
]
