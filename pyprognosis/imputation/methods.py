"""
Conditional model specifications for the imputation chain.

Each incomplete variable is imputed by exactly one ConditionalModelSpec,
chosen when the MissingnessModel is built. The variant carries its own
tuning constants and knows how to turn (observed predictors, observed
target, missing-row predictors) into replacement values.

    PredictiveMeanMatching  -> continuous targets (mice 'pmm')
    BinaryLogistic          -> 0/1 targets        (mice 'logreg')
    Multinomial             -> categorical codes  (mice 'polyreg')
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

import numpy as np
from numpy.typing import NDArray

from pyprognosis.core.exceptions import ValidationError
from pyprognosis.imputation._fitting import logistic_draw, multinomial_draw, pmm_draw
from pyprognosis.imputation.design import VariableSpec


@dataclass(frozen=True)
class ConditionalModelSpec:
    """Base class for the per-variable conditional model variants."""

    name: ClassVar[str] = 'abstract'
    supported_kinds: ClassVar[frozenset[str]] = frozenset()

    def check_supports(self, spec: VariableSpec) -> None:
        if spec.kind not in self.supported_kinds:
            raise ValidationError(
                f"{type(self).__name__} cannot impute '{spec.name}' of kind "
                f"'{spec.kind}' (supports {sorted(self.supported_kinds)})"
            )

    def draw(
        self,
        spec: VariableSpec,
        X_obs: NDArray,
        y_obs: NDArray,
        X_mis: NDArray,
        rng: np.random.Generator,
    ) -> NDArray:
        """Replacement values for the missing rows, on the variable's scale."""
        raise NotImplementedError


@dataclass(frozen=True)
class PredictiveMeanMatching(ConditionalModelSpec):
    """Bayesian linear regression draw with type-1 predictive mean matching.

    Imputed values are always observed values of the variable, so draws
    stay on the observed support (e.g. non-negative integer node counts).
    """

    name: ClassVar[str] = 'pmm'
    supported_kinds: ClassVar[frozenset[str]] = frozenset({'continuous'})

    donors: int = 5

    def __post_init__(self):
        if self.donors < 1:
            raise ValidationError(f"donors must be >= 1, got {self.donors}")

    def draw(self, spec, X_obs, y_obs, X_mis, rng):
        return pmm_draw(X_obs, y_obs, X_mis, rng, donors=self.donors)


@dataclass(frozen=True)
class BinaryLogistic(ConditionalModelSpec):
    """Logistic regression with a normal approximation to the posterior."""

    name: ClassVar[str] = 'logreg'
    supported_kinds: ClassVar[frozenset[str]] = frozenset({'binary'})

    tol: float = 1e-8
    max_iter: int = 25

    def draw(self, spec, X_obs, y_obs, X_mis, rng):
        return logistic_draw(
            X_obs, y_obs, X_mis, rng, tol=self.tol, max_iter=self.max_iter,
        )


@dataclass(frozen=True)
class Multinomial(ConditionalModelSpec):
    """Multinomial logit over the variable's declared levels."""

    name: ClassVar[str] = 'polyreg'
    supported_kinds: ClassVar[frozenset[str]] = frozenset({'categorical', 'binary'})

    tol: float = 1e-8
    max_iter: int = 200

    def draw(self, spec, X_obs, y_obs, X_mis, rng):
        # Levels never observed cannot be estimated and are never drawn
        present = [level for level in spec.levels if np.any(y_obs == level)]
        levels = np.asarray(present, dtype=np.float64)
        codes = np.array([present.index(v) for v in y_obs], dtype=np.intp)
        idx = multinomial_draw(
            X_obs, codes, X_mis, len(levels), rng,
            tol=self.tol, max_iter=self.max_iter,
        )
        return levels[idx]


def default_method(spec: VariableSpec) -> ConditionalModelSpec:
    """Default conditional model for a variable kind (mice defaultMethod)."""
    if spec.kind == 'continuous':
        return PredictiveMeanMatching()
    if spec.kind == 'binary':
        return BinaryLogistic()
    return Multinomial()
