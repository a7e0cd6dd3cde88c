"""
Result[P]: the envelope every solver returns before its Solution wrapper.

A payload P (ImputationParams, RiskParams, CoxParams, PooledParams, ...)
travels together with run metadata, wall-clock timings, the name of the
backend that produced it and any non-fatal notes (constraint squeezes,
non-convergence, high fraction of missing information).

Solutions read from the envelope; nothing mutates it after construction.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

P = TypeVar('P')


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Frozen solver output.

    Attributes:
        params: Payload of the computation (replicates, risks, pooled values)
        info: Run metadata, e.g. {'method': 'chained_equations', 'm': 5, 'seed': 1}
        timing: {'total_seconds': ..., <section>: ...}, or None
        backend_name: 'cpu_mice', 'cpu_risk', 'cpu_cox', 'cpu_rubin', ...
        warnings: Human-readable notes about non-fatal conditions
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        """True if some note mentions `substring`."""
        return any(substring in note for note in self.warnings)
