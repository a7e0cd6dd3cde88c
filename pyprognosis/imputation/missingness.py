"""
MissingnessModel: which model imputes each variable, in which order,
from which predictors.

    visit_sequence(design)    incomplete variables, lowest missingness first
    PredictorMask.build(...)  all other variables, minus designated exclusions
    MissingnessModel.build()  resolves a ConditionalModelSpec per variable

All three are resolved once at configuration time and are read-only
during imputation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

import numpy as np
from numpy.typing import NDArray

from pyprognosis.core.exceptions import ValidationError
from pyprognosis.imputation.design import ImputationDesign
from pyprognosis.imputation.methods import ConditionalModelSpec, default_method


def visit_sequence(design: ImputationDesign) -> tuple[str, ...]:
    """Incomplete variables ordered by increasing number of missing values.

    Ties keep schema order (mice visitSequence = "monotone" ordering).
    """
    counts = design.missing_counts
    incomplete = [name for name in design.names if counts[name] > 0]
    return tuple(sorted(incomplete, key=lambda name: counts[name]))


@dataclass(frozen=True)
class PredictorMask:
    """
    Per-target predictor inclusion matrix.

    Rows are schema variables (targets); columns are schema variables
    followed by auxiliary columns (predictors). A target never predicts
    itself.
    """
    targets: tuple[str, ...]
    predictors: tuple[str, ...]
    matrix: NDArray

    def __post_init__(self):
        matrix = np.asarray(self.matrix, dtype=bool)
        expected = (len(self.targets), len(self.predictors))
        if matrix.shape != expected:
            raise ValidationError(
                f"PredictorMask matrix has shape {matrix.shape}, expected {expected}"
            )
        for i, target in enumerate(self.targets):
            if target in self.predictors and matrix[i, self.predictors.index(target)]:
                raise ValidationError(
                    f"PredictorMask: variable '{target}' cannot predict itself"
                )
        matrix = matrix.copy()
        matrix.setflags(write=False)
        object.__setattr__(self, 'matrix', matrix)

    @classmethod
    def build(
        cls,
        design: ImputationDesign,
        *,
        exclude: Mapping[str, Iterable[str]] | None = None,
        include_auxiliary: bool = True,
    ) -> PredictorMask:
        """
        Everything predicts everything else, minus exclusions.

        Parameters
        ----------
        design : ImputationDesign
        exclude : mapping or None
            {target: predictors that must not inform it}, e.g. a variable
            derived from the outcome, or one that is a near-deterministic
            function of the target.
        include_auxiliary : bool
            Whether auxiliary columns are predictors by default.
        """
        targets = design.names
        predictors = design.names + design.auxiliary_names
        matrix = np.ones((len(targets), len(predictors)), dtype=bool)
        if not include_auxiliary:
            matrix[:, len(targets):] = False
        idx = np.arange(len(targets))
        matrix[idx, idx] = False

        for target, names in (exclude or {}).items():
            if target not in targets:
                raise ValidationError(f"exclude: unknown target '{target}'")
            for name in names:
                if name not in predictors:
                    raise ValidationError(
                        f"exclude['{target}']: unknown predictor '{name}'"
                    )
                matrix[targets.index(target), predictors.index(name)] = False

        return cls(targets=targets, predictors=predictors, matrix=matrix)

    def predictors_for(self, target: str) -> tuple[str, ...]:
        """Predictor names allowed for `target`, in column order."""
        row = self.matrix[self.targets.index(target)]
        return tuple(name for name, keep in zip(self.predictors, row) if keep)

    def allows(self, target: str, predictor: str) -> bool:
        return bool(
            self.matrix[self.targets.index(target), self.predictors.index(predictor)]
        )


@dataclass(frozen=True)
class MissingnessModel:
    """
    Imputation configuration: method per incomplete variable, visit
    sequence, and predictor mask.
    """
    methods: Mapping[str, ConditionalModelSpec]
    visit_sequence: tuple[str, ...]
    mask: PredictorMask

    @classmethod
    def build(
        cls,
        design: ImputationDesign,
        *,
        methods: Mapping[str, ConditionalModelSpec] | None = None,
        visit: Sequence[str] | None = None,
        exclude: Mapping[str, Iterable[str]] | None = None,
        mask: PredictorMask | None = None,
    ) -> MissingnessModel:
        """
        Resolve the configuration for a design.

        Parameters
        ----------
        design : ImputationDesign
        methods : mapping or None
            Overrides of the default method per variable.
        visit : sequence or None
            Explicit visit sequence; defaults to visit_sequence(design).
        exclude : mapping or None
            Passed to PredictorMask.build when `mask` is None.
        mask : PredictorMask or None
            Explicit predictor mask.
        """
        sequence = tuple(visit) if visit is not None else visit_sequence(design)
        incomplete = set(design.incomplete_variables)

        unknown = [name for name in sequence if name not in design.names]
        if unknown:
            raise ValidationError(f"visit sequence names unknown variables {unknown}")
        if len(set(sequence)) != len(sequence):
            raise ValidationError(f"visit sequence repeats variables: {sequence}")
        complete_visited = [name for name in sequence if name not in incomplete]
        if complete_visited:
            raise ValidationError(
                f"visit sequence includes fully observed variables {complete_visited}"
            )
        unvisited = sorted(incomplete - set(sequence))
        if unvisited:
            raise ValidationError(
                f"incomplete variables {unvisited} are not in the visit sequence"
            )

        overrides = dict(methods or {})
        stray = [name for name in overrides if name not in design.names]
        if stray:
            raise ValidationError(f"methods given for unknown variables {stray}")

        resolved: dict[str, ConditionalModelSpec] = {}
        for name in sequence:
            spec = design.spec(name)
            method = overrides.get(name) or default_method(spec)
            if not isinstance(method, ConditionalModelSpec):
                raise ValidationError(
                    f"method for '{name}' must be a ConditionalModelSpec, "
                    f"got {type(method).__name__}"
                )
            method.check_supports(spec)
            resolved[name] = method

        if mask is None:
            mask = PredictorMask.build(design, exclude=exclude)
        elif mask.targets != design.names or mask.predictors != design.names + design.auxiliary_names:
            raise ValidationError("PredictorMask does not match the design's variables")

        return cls(methods=resolved, visit_sequence=sequence, mask=mask)

    def summary(self) -> str:
        lines = ["Imputation model:", ""]
        lines.append(f"  {'variable':>12s}  {'method':>8s}  predictors")
        for name in self.visit_sequence:
            preds = ", ".join(self.mask.predictors_for(name))
            lines.append(f"  {name:>12s}  {self.methods[name].name:>8s}  {preds}")
        return "\n".join(lines)
