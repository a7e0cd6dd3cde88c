"""
Clinically bounded post-processing of imputed values.

A ConstraintTable maps (variable, classification) to a closed interval.
After a continuous variable is drawn, each imputed value is squeezed into
the interval matched by the same row's pathological classification (for
example, tumour size by pT stage, positive node count by pN stage).
Values inside the interval pass through unchanged; a classification with
no entry imposes no constraint.

The table is declarative data, built once per run and read-only
afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping

import numpy as np
from numpy.typing import NDArray

from pyprognosis.core.exceptions import ValidationError


def normalise_label(label) -> str | None:
    """Canonical form of a classification label ('t1a ' -> 'T1A').

    None, NaN and empty strings mean "unknown" and return None.
    """
    if label is None:
        return None
    if isinstance(label, float) and np.isnan(label):
        return None
    text = str(label).strip().upper()
    return text or None


@dataclass(frozen=True)
class ConstraintEntry:
    """
    Allowed interval [low, high] for one variable under one classification.

    Invariant: 0 <= low <= high. high may be +inf for open-ended stages.
    """
    variable: str
    classification: str
    low: float
    high: float

    def __post_init__(self):
        label = normalise_label(self.classification)
        if label is None:
            raise ValidationError(
                f"ConstraintEntry for '{self.variable}': classification "
                f"must be a non-empty label"
            )
        object.__setattr__(self, 'classification', label)
        low, high = float(self.low), float(self.high)
        if np.isnan(low) or np.isnan(high):
            raise ValidationError(
                f"ConstraintEntry ({self.variable}, {label}): bounds must not be NaN"
            )
        if low < 0 or high < 0:
            raise ValidationError(
                f"ConstraintEntry ({self.variable}, {label}): bounds must be "
                f"non-negative, got [{low}, {high}]"
            )
        if low > high:
            raise ValidationError(
                f"ConstraintEntry ({self.variable}, {label}): low must not "
                f"exceed high, got [{low}, {high}]"
            )
        object.__setattr__(self, 'low', low)
        object.__setattr__(self, 'high', high)

    def contains(self, value: float) -> bool:
        return self.low <= value <= self.high

    def squeeze(self, values: NDArray) -> NDArray:
        """Clip values into [low, high]."""
        return np.clip(values, self.low, self.high)


class ConstraintTable:
    """
    Immutable lookup of ConstraintEntry by (variable, classification).

    Construction:
        ConstraintTable([ConstraintEntry('size', '1A', 0, 5), ...])
        ConstraintTable.from_mapping({'size': {'1A': (0, 5), ...}})
    """

    __slots__ = ('_entries',)

    def __init__(self, entries: Iterable[ConstraintEntry] = ()):
        table: dict[tuple[str, str], ConstraintEntry] = {}
        for entry in entries:
            if not isinstance(entry, ConstraintEntry):
                raise ValidationError(
                    f"ConstraintTable entries must be ConstraintEntry, "
                    f"got {type(entry).__name__}"
                )
            key = (entry.variable, entry.classification)
            if key in table:
                raise ValidationError(
                    f"Duplicate constraint for variable '{entry.variable}', "
                    f"classification '{entry.classification}'"
                )
            table[key] = entry
        self._entries = table

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[str, Mapping[str, tuple[float, float]]],
    ) -> ConstraintTable:
        """Build from {variable: {classification: (low, high)}}."""
        return cls(
            ConstraintEntry(variable, label, low, high)
            for variable, by_label in mapping.items()
            for label, (low, high) in by_label.items()
        )

    def lookup(self, variable: str, classification) -> ConstraintEntry | None:
        """Entry for (variable, classification), or None if unconstrained."""
        label = normalise_label(classification)
        if label is None:
            return None
        return self._entries.get((variable, label))

    @property
    def variables(self) -> frozenset[str]:
        return frozenset(v for v, _ in self._entries)

    def squeeze(
        self,
        variable: str,
        values: NDArray,
        classifications: NDArray | None,
    ) -> tuple[NDArray, dict[str, int]]:
        """
        Squeeze imputed values into their matched intervals.

        Parameters
        ----------
        variable : str
            Variable the values belong to.
        values : NDArray
            (k,) imputed values.
        classifications : NDArray or None
            (k,) classification label of each value's row. None means the
            variable has no classification and nothing is constrained.

        Returns
        -------
        (squeezed, counts)
            squeezed : (k,) values after clipping.
            counts : {classification: number of values moved}, only
                classifications with at least one moved value.
        """
        values = np.asarray(values, dtype=np.float64)
        out = values.copy()
        counts: dict[str, int] = {}
        if classifications is None or variable not in self.variables:
            return out, counts

        labels = np.array(
            [normalise_label(c) for c in classifications], dtype=object
        )
        for label in sorted({lab for lab in labels if lab is not None}):
            entry = self._entries.get((variable, label))
            if entry is None:
                continue
            rows = labels == label
            clipped = entry.squeeze(values[rows])
            moved = int(np.sum(clipped != values[rows]))
            out[rows] = clipped
            if moved:
                counts[label] = moved
        return out, counts

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ConstraintEntry]:
        return iter(self._entries.values())

    def __contains__(self, key) -> bool:
        variable, label = key
        return self.lookup(variable, label) is not None

    def __repr__(self) -> str:
        return (
            f"ConstraintTable(entries={len(self)}, "
            f"variables={sorted(self.variables)})"
        )


# Pathological TNM stage intervals. Tumour size in millimetres by pT
# (UICC/AJCC 8th edition), positive axillary node count by pN.
TNM_CONSTRAINTS = ConstraintTable.from_mapping({
    'size': {
        '1MI': (0.0, 1.0),
        '1A': (0.0, 5.0),
        '1B': (5.0, 10.0),
        '1C': (10.0, 20.0),
        '2': (20.0, 50.0),
        '3': (50.0, np.inf),
    },
    'nodes': {
        '0': (0.0, 0.0),
        '1': (1.0, 3.0),
        '1A': (1.0, 3.0),
        '2': (4.0, 9.0),
        '2A': (4.0, 9.0),
        '3': (10.0, np.inf),
        '3A': (10.0, np.inf),
    },
})
