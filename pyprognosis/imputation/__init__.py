"""
Multiple imputation by chained equations with clinical constraints.

Public API:
    mice(design, model=None, *, constraints=None, m=5, ...) -> MultipleImputationSolution

Example:
    >>> from pyprognosis.imputation import (
    ...     ImputationDesign, VariableSpec, TNM_CONSTRAINTS, mice)
    >>> schema = [VariableSpec('size', 'continuous', classification='pT'),
    ...           VariableSpec('grade', 'categorical', levels=(1, 2, 3))]
    >>> design = ImputationDesign.from_arrays(data, schema,
    ...                                       classifications={'pT': pt})
    >>> imp = mice(design, constraints=TNM_CONSTRAINTS, m=10, seed=2024)
    >>> completed = imp.complete(1)
"""

from pyprognosis.imputation.constraints import (
    ConstraintEntry,
    ConstraintTable,
    TNM_CONSTRAINTS,
)
from pyprognosis.imputation.design import ImputationDesign, VariableSpec
from pyprognosis.imputation.methods import (
    BinaryLogistic,
    ConditionalModelSpec,
    Multinomial,
    PredictiveMeanMatching,
)
from pyprognosis.imputation.missingness import (
    MissingnessModel,
    PredictorMask,
    visit_sequence,
)
from pyprognosis.imputation.solution import MultipleImputationSolution
from pyprognosis.imputation.solvers import mice

__all__ = [
    "mice",
    "ImputationDesign",
    "VariableSpec",
    "ConstraintEntry",
    "ConstraintTable",
    "TNM_CONSTRAINTS",
    "ConditionalModelSpec",
    "PredictiveMeanMatching",
    "BinaryLogistic",
    "Multinomial",
    "MissingnessModel",
    "PredictorMask",
    "visit_sequence",
    "MultipleImputationSolution",
]
