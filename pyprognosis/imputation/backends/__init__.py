"""
Imputation backends.

Available backends:
    CPUChainedEquationsBackend: M independent chains, optionally on joblib workers
"""

from pyprognosis.imputation.backends.cpu import CPUChainedEquationsBackend

__all__ = [
    "CPUChainedEquationsBackend",
]
