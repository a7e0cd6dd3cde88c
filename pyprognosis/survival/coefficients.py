"""
Covariate records and cause-specific coefficient sets for risk scoring.

A CoefficientSet maps named terms to log-hazard coefficients. Each term
name refers to a transformation of the PatientCovariates columns in the
TERMS registry (centred fractional-polynomial age, log size, log nodes,
treatment indicators, ...), so that

    lp = Σ_k  coefficient_k · term_k(patient)

The reference sets follow PREDICT v2 for ER-positive breast cancer:
    BREAST_REFERENCE   breast-cancer mortality
    OTHER_REFERENCE    other-cause mortality (age only)
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Callable, Mapping, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from pyprognosis.core.exceptions import DimensionError, InvalidCovariate, ValidationError

if TYPE_CHECKING:
    import pandas as pd


# Defaults for optional columns: not screen-detected, HER2-negative,
# no chemotherapy, no hormone therapy, no trastuzumab, no bisphosphonates
_OPTIONAL_DEFAULTS = {
    'screen': 0.0,
    'her2': 0.0,
    'chemo': 0.0,
    'hormone': 0.0,
    'trastuzumab': 0.0,
    'bisphosphonates': 0.0,
}
_REQUIRED = ('age', 'size', 'nodes', 'grade')


@dataclass(frozen=True)
class PatientCovariates:
    """
    Columnar covariate table for one or more patients.

    Parameters
    ----------
    age : years at diagnosis
    size : invasive tumour size in millimetres
    nodes : number of positive axillary nodes
    grade : histological grade (1, 2, 3)
    screen : 1 if screen-detected
    her2 : 1 if HER2-positive
    chemo : chemotherapy generation (0 = none, 2, 3)
    hormone : 1 if endocrine therapy
    trastuzumab : 1 if trastuzumab
    bisphosphonates : 1 if bisphosphonates
    biomarker : optional continuous marker under evaluation
    """
    age: NDArray
    size: NDArray
    nodes: NDArray
    grade: NDArray
    screen: NDArray
    her2: NDArray
    chemo: NDArray
    hormone: NDArray
    trastuzumab: NDArray
    bisphosphonates: NDArray
    biomarker: NDArray | None = field(default=None)

    @classmethod
    def from_columns(cls, columns: Mapping[str, Any] | None = None, **kwargs) -> PatientCovariates:
        """
        Build from named columns (scalars allowed for a single patient).

        Missing optional treatment/flag columns default to 0.

        Examples
        --------
        >>> PatientCovariates.from_columns(age=60, size=25, nodes=2, grade=2)
        """
        data = dict(columns or {})
        data.update(kwargs)

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValidationError(f"Unknown covariate column(s) {unknown}")
        absent = [name for name in _REQUIRED if name not in data]
        if absent:
            raise ValidationError(f"Missing required covariate column(s) {absent}")

        arrays = {
            name: np.atleast_1d(np.asarray(data[name], dtype=np.float64)).ravel()
            for name in _REQUIRED
        }
        n = len(arrays['age'])
        for name, default in _OPTIONAL_DEFAULTS.items():
            if name in data and data[name] is not None:
                arrays[name] = np.atleast_1d(np.asarray(data[name], dtype=np.float64)).ravel()
            else:
                arrays[name] = np.full(n, default)
        biomarker = data.get('biomarker')
        arrays['biomarker'] = (
            None if biomarker is None
            else np.atleast_1d(np.asarray(biomarker, dtype=np.float64)).ravel()
        )

        lengths = {name: len(a) for name, a in arrays.items() if a is not None}
        if len(set(lengths.values())) > 1:
            raise DimensionError(f"Inconsistent covariate column lengths: {lengths}")
        return cls(**arrays)

    @classmethod
    def from_table(
        cls,
        table: NDArray,
        names,
        column_map: Mapping[str, str] | None = None,
        **constants,
    ) -> PatientCovariates:
        """
        Build from a (n, p) matrix such as a completed imputation replicate.

        Parameters
        ----------
        table : NDArray
            (n, p) numeric table.
        names : sequence of str
            Column names of `table`.
        column_map : mapping or None
            {table column name: covariate field}; columns whose name is
            already a covariate field are used as is, others are ignored.
        **constants
            Extra covariate columns not in the table (e.g. biomarker=...).
        """
        table = np.asarray(table, dtype=np.float64)
        names = list(names)
        if table.ndim != 2 or table.shape[1] != len(names):
            raise DimensionError(
                f"table has shape {table.shape} but {len(names)} names were given"
            )
        known = {f.name for f in fields(cls)}
        mapping = dict(column_map or {})
        columns: dict[str, Any] = {}
        for j, name in enumerate(names):
            target = mapping.get(name, name)
            if target in known:
                columns[target] = table[:, j]
        columns.update(constants)
        return cls.from_columns(columns)

    @property
    def n(self) -> int:
        return len(self.age)

    def to_dataframe(self) -> 'pd.DataFrame':
        import pandas as pd
        return pd.DataFrame({
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        })


# =====================================================================
# Terms
# =====================================================================

def _age_fp1(x: PatientCovariates) -> NDArray:
    a = x.age / 10.0
    return a ** -2 - 0.0287449295


def _age_fp2(x: PatientCovariates) -> NDArray:
    a = x.age / 10.0
    return a ** -2 * np.log(a) - 0.0510121013


def _age_squared(x: PatientCovariates) -> NDArray:
    return (x.age / 10.0) ** 2 - 34.23391957


def _log_size(x: PatientCovariates) -> NDArray:
    return np.log(x.size / 100.0) + 1.545233938


def _log_nodes(x: PatientCovariates) -> NDArray:
    return np.log((x.nodes + 1.0) / 10.0) + 1.387566896


def _biomarker(x: PatientCovariates) -> NDArray:
    if x.biomarker is None:
        raise InvalidCovariate(
            "coefficient set has a biomarker term but no biomarker was supplied",
            field='biomarker',
        )
    return x.biomarker


TERMS: dict[str, Callable[[PatientCovariates], NDArray]] = {
    'age_fp1': _age_fp1,
    'age_fp2': _age_fp2,
    'age_squared': _age_squared,
    'log_size': _log_size,
    'log_nodes': _log_nodes,
    'grade': lambda x: x.grade,
    'screen': lambda x: x.screen,
    'her2_positive': lambda x: x.her2,
    'her2_negative': lambda x: 1.0 - x.her2,
    'hormone': lambda x: x.hormone,
    'chemo_gen2': lambda x: (x.chemo == 2).astype(np.float64),
    'chemo_gen3': lambda x: (x.chemo == 3).astype(np.float64),
    'trastuzumab': lambda x: x.her2 * x.trastuzumab,
    'bisphosphonates': lambda x: x.bisphosphonates,
    'biomarker': _biomarker,
}

# Covariate fields each term reads
TERM_FIELDS: dict[str, tuple[str, ...]] = {
    'age_fp1': ('age',),
    'age_fp2': ('age',),
    'age_squared': ('age',),
    'log_size': ('size',),
    'log_nodes': ('nodes',),
    'grade': ('grade',),
    'screen': ('screen',),
    'her2_positive': ('her2',),
    'her2_negative': ('her2',),
    'hormone': ('hormone',),
    'chemo_gen2': ('chemo',),
    'chemo_gen3': ('chemo',),
    'trastuzumab': ('her2', 'trastuzumab'),
    'bisphosphonates': ('bisphosphonates',),
    'biomarker': ('biomarker',),
}


@dataclass(frozen=True)
class CoefficientSet:
    """
    Log-hazard coefficients for one cause, keyed by term name.

    Parameters
    ----------
    cause : str
        Cause label ('breast', 'other', ...).
    coefficients : mapping
        {term name: coefficient}; term names must be keys of TERMS.
    """
    cause: str
    coefficients: Mapping[str, float]

    def __post_init__(self):
        unknown = sorted(set(self.coefficients) - set(TERMS))
        if unknown:
            raise ValidationError(
                f"CoefficientSet ({self.cause}): unknown term(s) {unknown}; "
                f"available: {sorted(TERMS)}"
            )
        coefs = {name: float(v) for name, v in self.coefficients.items()}
        if not np.all(np.isfinite(list(coefs.values()))):
            raise ValidationError(
                f"CoefficientSet ({self.cause}): coefficients must be finite"
            )
        object.__setattr__(self, 'coefficients', coefs)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self.coefficients)

    @property
    def vector(self) -> NDArray:
        return np.array(list(self.coefficients.values()), dtype=np.float64)

    @property
    def required_fields(self) -> tuple[str, ...]:
        """Covariate fields read by this set's terms, in first-use order."""
        seen: dict[str, None] = {}
        for name in self.coefficients:
            for f in TERM_FIELDS[name]:
                seen.setdefault(f, None)
        return tuple(seen)

    def terms(self, patient: PatientCovariates) -> NDArray:
        """(n, k) transformed term matrix, columns in coefficient order."""
        if not self.coefficients:
            return np.zeros((patient.n, 0))
        return np.column_stack([TERMS[name](patient) for name in self.coefficients])

    def with_term(self, name: str, coefficient: float) -> CoefficientSet:
        """Copy with one term added or replaced."""
        coefs = dict(self.coefficients)
        coefs[name] = coefficient
        return CoefficientSet(cause=self.cause, coefficients=coefs)


BREAST_REFERENCE = CoefficientSet(
    cause='breast',
    coefficients={
        'age_fp1': 34.53642,
        'age_fp2': -34.20342,
        'log_size': 0.7530729,
        'log_nodes': 0.7060723,
        'grade': 0.746655,
        'screen': -0.22763366,
        'her2_positive': 0.2413,
        'her2_negative': -0.0762,
        'hormone': -0.3857,
        'chemo_gen2': -0.248,
        'chemo_gen3': -0.446,
        'trastuzumab': -0.3567,
        'bisphosphonates': -0.198,
    },
)

OTHER_REFERENCE = CoefficientSet(
    cause='other',
    coefficients={'age_squared': 0.0698252},
)


def derive_bisphosphonates(postmenopausal, age, threshold: float = 50.0) -> NDArray:
    """
    Bisphosphonate eligibility as a boolean array.

    True for postmenopausal patients; when menopausal status is unknown
    (None or NaN), patients aged `threshold` or older are treated as
    postmenopausal.

    Parameters
    ----------
    postmenopausal : array-like of bool/0/1/None/NaN
    age : array-like of float
    threshold : float
        Age used in place of unknown menopausal status.

    Returns
    -------
    NDArray of bool
    """
    status = np.atleast_1d(np.asarray(postmenopausal, dtype=object)).ravel()
    age = np.atleast_1d(np.asarray(age, dtype=np.float64)).ravel()
    if len(status) != len(age):
        raise DimensionError(
            f"postmenopausal has {len(status)} entries but age has {len(age)}"
        )
    out = np.empty(len(age), dtype=bool)
    for i, (s, a) in enumerate(zip(status, age)):
        if s is None or (isinstance(s, float) and np.isnan(s)):
            if not np.isfinite(a):
                raise InvalidCovariate(
                    "age is required when menopausal status is unknown",
                    field='age', value=float(a), row=i,
                )
            out[i] = a >= threshold
        else:
            out[i] = float(s) != 0.0
    return out
