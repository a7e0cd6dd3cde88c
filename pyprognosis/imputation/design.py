"""
ImputationDesign: immutable container for a partially observed table.

Wraps the in-scope covariates (NaN = missing), their typed schema, the
per-row pathological classifications used only for constraint lookup,
and optional fully observed auxiliary columns (outcome summaries) that
may inform the conditional models but are never imputed. Validates
inputs at construction time; all downstream code trusts clean data.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping, Sequence, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from pyprognosis.core.exceptions import DimensionError, ValidationError
from pyprognosis.core.validation import (
    check_2d,
    check_array,
    check_finite,
    check_min_samples,
    check_no_inf,
)
from pyprognosis.imputation.constraints import normalise_label

if TYPE_CHECKING:
    import pandas as pd


VariableKind = Literal['continuous', 'binary', 'categorical']
VALID_KINDS = ('continuous', 'binary', 'categorical')


@dataclass(frozen=True)
class VariableSpec:
    """
    Typed description of one in-scope covariate.

    Parameters
    ----------
    name : str
        Internal field name.
    kind : str
        'continuous', 'binary' (coded 0/1) or 'categorical' (numeric codes).
    levels : tuple of float
        Allowed codes for categorical variables, first level is the
        reference. Binary variables always use (0.0, 1.0).
    classification : str or None
        Name of the classification field whose per-row label selects a
        ConstraintEntry for this variable.
    """
    name: str
    kind: VariableKind
    levels: tuple[float, ...] = ()
    classification: str | None = None

    def __post_init__(self):
        if not self.name:
            raise ValidationError("VariableSpec name must be non-empty")
        if self.kind not in VALID_KINDS:
            raise ValidationError(
                f"VariableSpec '{self.name}': kind must be one of "
                f"{VALID_KINDS}, got {self.kind!r}"
            )
        if self.kind == 'binary':
            object.__setattr__(self, 'levels', (0.0, 1.0))
        elif self.kind == 'categorical':
            levels = tuple(float(v) for v in self.levels)
            if len(levels) < 2:
                raise ValidationError(
                    f"VariableSpec '{self.name}': categorical variables "
                    f"need at least 2 levels, got {len(levels)}"
                )
            if len(set(levels)) != len(levels):
                raise ValidationError(
                    f"VariableSpec '{self.name}': duplicate levels {levels}"
                )
            object.__setattr__(self, 'levels', levels)
        elif self.levels:
            raise ValidationError(
                f"VariableSpec '{self.name}': continuous variables take no levels"
            )

    @property
    def n_columns(self) -> int:
        """Width of this variable in a predictor matrix."""
        if self.kind == 'categorical':
            return len(self.levels) - 1
        return 1


@dataclass(frozen=True)
class ImputationDesign:
    """
    Immutable partially observed table for chained-equations imputation.

    Construction:
        ImputationDesign.from_arrays(data, schema, classifications=..., auxiliary=...)
        ImputationDesign.from_dataframe(df, schema, column_map=..., ...)
    """
    data: NDArray
    schema: tuple[VariableSpec, ...]
    classifications: Mapping[str, NDArray]
    auxiliary: NDArray
    auxiliary_names: tuple[str, ...]

    @classmethod
    def from_arrays(
        cls,
        data,
        schema: Sequence[VariableSpec],
        *,
        classifications: Mapping[str, Sequence[Any]] | None = None,
        auxiliary: Mapping[str, Any] | None = None,
    ) -> ImputationDesign:
        """
        Build a design from arrays.

        Parameters
        ----------
        data : array-like or mapping
            (n, p) matrix whose columns follow `schema`, or a mapping from
            schema name to a length-n column. NaN marks missing values.
        schema : sequence of VariableSpec
            Column types, in column order.
        classifications : mapping or None
            {classification name: length-n labels}; None/NaN/'' = unknown.
        auxiliary : mapping or None
            {name: length-n fully observed column}.
        """
        schema = tuple(schema)
        if not schema:
            raise ValidationError("schema must contain at least one variable")

        if isinstance(data, Mapping):
            missing_cols = [s.name for s in schema if s.name not in data]
            if missing_cols:
                raise ValidationError(f"data has no column(s) {missing_cols}")
            columns = [check_array(data[s.name], s.name).ravel() for s in schema]
            lengths = {len(c) for c in columns}
            if len(lengths) > 1:
                raise DimensionError(
                    f"Inconsistent column lengths: "
                    f"{dict((s.name, len(c)) for s, c in zip(schema, columns))}"
                )
            matrix = np.column_stack(columns)
        else:
            matrix = check_array(data, 'data')
            if matrix.ndim == 1:
                matrix = matrix.reshape(-1, 1)
            check_2d(matrix, 'data')

        return cls._build(matrix, schema, classifications or {}, auxiliary or {})

    @classmethod
    def from_dataframe(
        cls,
        df: 'pd.DataFrame',
        schema: Sequence[VariableSpec],
        *,
        column_map: Mapping[str, str] | None = None,
        classification_columns: Mapping[str, str] | None = None,
        auxiliary_columns: Mapping[str, str] | None = None,
    ) -> ImputationDesign:
        """
        Build a design from a pandas DataFrame.

        Parameters
        ----------
        df : pandas.DataFrame
            Cleaned input table.
        schema : sequence of VariableSpec
            Internal fields.
        column_map : mapping or None
            {external column name: internal field name}. Fields not
            mentioned are read from the column of the same name.
        classification_columns : mapping or None
            {classification name: external column name}.
        auxiliary_columns : mapping or None
            {auxiliary name: external column name}.
        """
        schema = tuple(schema)
        internal_to_external = {s.name: s.name for s in schema}
        for external, internal in (column_map or {}).items():
            if internal not in internal_to_external:
                raise ValidationError(
                    f"column_map target '{internal}' is not a schema field"
                )
            internal_to_external[internal] = external

        absent = [c for c in internal_to_external.values() if c not in df.columns]
        if absent:
            raise ValidationError(f"DataFrame has no column(s) {absent}")

        data = {
            internal: df[external].to_numpy(dtype=np.float64, na_value=np.nan)
            for internal, external in internal_to_external.items()
        }
        classifications = {
            name: df[col].to_numpy(dtype=object)
            for name, col in (classification_columns or {}).items()
        }
        auxiliary = {
            name: df[col].to_numpy(dtype=np.float64)
            for name, col in (auxiliary_columns or {}).items()
        }
        return cls.from_arrays(
            data, schema,
            classifications=classifications,
            auxiliary=auxiliary,
        )

    @classmethod
    def _build(
        cls,
        matrix: NDArray,
        schema: tuple[VariableSpec, ...],
        classifications: Mapping[str, Sequence[Any]],
        auxiliary: Mapping[str, Any],
    ) -> ImputationDesign:
        """Internal builder with validation."""
        n, p = matrix.shape
        if p != len(schema):
            raise DimensionError(
                f"data has {p} columns but schema has {len(schema)} variables"
            )
        check_min_samples(matrix, 2, 'data')

        names = [s.name for s in schema]
        if len(set(names)) != len(names):
            raise ValidationError(f"schema has duplicate variable names: {names}")

        check_no_inf(matrix, 'data')

        for j, spec in enumerate(schema):
            col = matrix[:, j]
            observed = col[~np.isnan(col)]
            if observed.size == 0:
                raise ValidationError(f"Variable '{spec.name}' is completely missing")
            if spec.kind in ('binary', 'categorical'):
                bad = ~np.isin(observed, spec.levels)
                if np.any(bad):
                    raise ValidationError(
                        f"Variable '{spec.name}' has values outside its levels "
                        f"{spec.levels}: {np.unique(observed[bad]).tolist()}"
                    )

        class_arrays: dict[str, NDArray] = {}
        for name, labels in classifications.items():
            arr = np.array([normalise_label(v) for v in labels], dtype=object)
            if len(arr) != n:
                raise DimensionError(
                    f"classification '{name}' has {len(arr)} entries, expected {n}"
                )
            class_arrays[name] = arr

        for spec in schema:
            if spec.classification is not None and spec.classification not in class_arrays:
                raise ValidationError(
                    f"Variable '{spec.name}' refers to classification "
                    f"'{spec.classification}', which was not supplied"
                )

        aux_names = tuple(auxiliary.keys())
        overlap = set(aux_names) & set(names)
        if overlap:
            raise ValidationError(
                f"auxiliary names collide with schema names: {sorted(overlap)}"
            )
        if aux_names:
            aux_cols = []
            for name in aux_names:
                col = check_array(auxiliary[name], name).ravel()
                if len(col) != n:
                    raise DimensionError(
                        f"auxiliary '{name}' has {len(col)} entries, expected {n}"
                    )
                check_finite(col, name)
                aux_cols.append(col)
            aux = np.column_stack(aux_cols)
        else:
            aux = np.empty((n, 0), dtype=np.float64)

        matrix = matrix.copy()
        matrix.setflags(write=False)
        aux.setflags(write=False)
        return cls(
            data=matrix,
            schema=schema,
            classifications=class_arrays,
            auxiliary=aux,
            auxiliary_names=aux_names,
        )

    # === Properties ===

    @property
    def n(self) -> int:
        """Number of observations."""
        return self.data.shape[0]

    @property
    def p(self) -> int:
        """Number of in-scope variables."""
        return self.data.shape[1]

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(s.name for s in self.schema)

    def index(self, name: str) -> int:
        """Column index of a schema variable."""
        try:
            return self.names.index(name)
        except ValueError:
            raise KeyError(
                f"ImputationDesign has no variable '{name}'. Available: {self.names}"
            ) from None

    def spec(self, name: str) -> VariableSpec:
        return self.schema[self.index(name)]

    @property
    def missing_mask(self) -> NDArray:
        """(n, p) boolean mask of missing cells."""
        return np.isnan(self.data)

    @property
    def missing_counts(self) -> dict[str, int]:
        """Number of missing values per variable."""
        counts = self.missing_mask.sum(axis=0)
        return {name: int(c) for name, c in zip(self.names, counts)}

    @property
    def incomplete_variables(self) -> tuple[str, ...]:
        """Variables with at least one missing value, in schema order."""
        return tuple(name for name, c in self.missing_counts.items() if c > 0)

    @property
    def n_missing(self) -> int:
        return int(self.missing_mask.sum())

    @property
    def missing_rate(self) -> float:
        return self.n_missing / (self.n * self.p)

    def classification_for(self, name: str) -> NDArray | None:
        """Per-row classification labels constraining `name`, if any."""
        spec = self.spec(name)
        if spec.classification is None:
            return None
        return self.classifications[spec.classification]

    def __repr__(self) -> str:
        return (
            f"ImputationDesign(n={self.n}, p={self.p}, "
            f"missing_rate={self.missing_rate:.1%}, "
            f"auxiliary={list(self.auxiliary_names)})"
        )
