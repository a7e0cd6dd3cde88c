"""
Tests for covariate records, coefficient sets and bisphosphonate eligibility.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from pyprognosis.core.exceptions import DimensionError, InvalidCovariate, ValidationError
from pyprognosis.survival import (
    BREAST_REFERENCE,
    OTHER_REFERENCE,
    CoefficientSet,
    PatientCovariates,
    derive_bisphosphonates,
)


# ═══════════════════════════════════════════════════════════════════════
# PatientCovariates
# ═══════════════════════════════════════════════════════════════════════


class TestPatientCovariates:

    def test_scalar_patient(self):
        patient = PatientCovariates.from_columns(age=60, size=25, nodes=2, grade=2)
        assert patient.n == 1
        assert patient.size[0] == 25.0

    def test_optional_columns_default_to_zero(self):
        patient = PatientCovariates.from_columns(age=[50, 60], size=[10, 20],
                                                 nodes=[0, 1], grade=[1, 2])
        for name in ('screen', 'her2', 'chemo', 'hormone', 'trastuzumab', 'bisphosphonates'):
            assert_array_equal(getattr(patient, name), [0.0, 0.0])
        assert patient.biomarker is None

    def test_mapping_and_kwargs_merge(self):
        patient = PatientCovariates.from_columns(
            {'age': 50, 'size': 10, 'nodes': 0, 'grade': 1}, hormone=1,
        )
        assert patient.hormone[0] == 1.0

    def test_missing_required(self):
        with pytest.raises(ValidationError, match="grade"):
            PatientCovariates.from_columns(age=50, size=10, nodes=0)

    def test_unknown_column(self):
        with pytest.raises(ValidationError, match="stage"):
            PatientCovariates.from_columns(age=50, size=10, nodes=0, grade=1, stage=2)

    def test_inconsistent_lengths(self):
        with pytest.raises(DimensionError):
            PatientCovariates.from_columns(age=[50, 60], size=[10], nodes=[0, 1], grade=[1, 2])

    def test_from_table_with_column_map(self):
        table = np.array([[55.0, 12.0, 0.0, 2.0, 1.0], [70.0, 30.0, 3.0, 3.0, 0.0]])
        patient = PatientCovariates.from_table(
            table, ['age', 'tumour_size', 'nodes', 'grade', 'her2'],
            column_map={'tumour_size': 'size'}, hormone=[1, 1],
        )
        assert_array_equal(patient.size, [12.0, 30.0])
        assert_array_equal(patient.her2, [1.0, 0.0])
        assert_array_equal(patient.hormone, [1.0, 1.0])

    def test_from_table_ignores_unknown_columns(self):
        table = np.array([[55.0, 12.0, 0.0, 2.0, 0.4]])
        patient = PatientCovariates.from_table(table, ['age', 'size', 'nodes', 'grade', 'ki67'])
        assert patient.n == 1

    def test_from_table_shape_mismatch(self):
        with pytest.raises(DimensionError):
            PatientCovariates.from_table(np.ones((2, 3)), ['age', 'size'])

    def test_to_dataframe_drops_absent_biomarker(self):
        pytest.importorskip("pandas")
        patient = PatientCovariates.from_columns(age=[50, 60], size=[10, 20],
                                                 nodes=[0, 1], grade=[1, 2])
        df = patient.to_dataframe()
        assert len(df) == 2
        assert 'biomarker' not in df.columns
        assert_array_equal(df['size'], [10.0, 20.0])


# ═══════════════════════════════════════════════════════════════════════
# CoefficientSet
# ═══════════════════════════════════════════════════════════════════════


class TestCoefficientSet:

    def test_unknown_term(self):
        with pytest.raises(ValidationError, match="unknown term"):
            CoefficientSet('breast', {'stage': 1.0})

    def test_non_finite(self):
        with pytest.raises(ValidationError, match="finite"):
            CoefficientSet('breast', {'grade': np.inf})

    def test_required_fields(self):
        assert OTHER_REFERENCE.required_fields == ('age',)
        required = set(BREAST_REFERENCE.required_fields)
        assert {'age', 'size', 'nodes', 'grade', 'her2', 'chemo'} <= required
        assert 'biomarker' not in required

    def test_with_term(self):
        extended = BREAST_REFERENCE.with_term('biomarker', 0.3)
        assert extended.names[-1] == 'biomarker'
        assert 'biomarker' not in BREAST_REFERENCE.names
        assert 'biomarker' in extended.required_fields

    def test_terms_matrix(self):
        patient = PatientCovariates.from_columns(age=[40, 60], size=[10, 20],
                                                 nodes=[0, 4], grade=[1, 3])
        coefs = CoefficientSet('breast', {'grade': 1.0, 'log_nodes': 1.0})
        T = coefs.terms(patient)
        assert T.shape == (2, 2)
        assert_array_equal(T[:, 0], [1.0, 3.0])
        assert_allclose(T[1, 1] - T[0, 1], np.log(5.0))

    def test_empty_set(self):
        patient = PatientCovariates.from_columns(age=50, size=10, nodes=0, grade=1)
        assert CoefficientSet('breast', {}).terms(patient).shape == (1, 0)

    def test_trastuzumab_only_for_her2_positive(self):
        patient = PatientCovariates.from_columns(
            age=[50, 50], size=[20, 20], nodes=[0, 0], grade=[2, 2],
            her2=[0, 1], trastuzumab=[1, 1],
        )
        T = CoefficientSet('breast', {'trastuzumab': 1.0}).terms(patient)
        assert_array_equal(T[:, 0], [0.0, 1.0])


# ═══════════════════════════════════════════════════════════════════════
# Bisphosphonates
# ═══════════════════════════════════════════════════════════════════════


class TestDeriveBisphosphonates:

    def test_known_and_unknown_status(self):
        out = derive_bisphosphonates(
            [True, False, None, None, np.nan],
            [40, 60, 45, 55, 70],
        )
        assert_array_equal(out, [True, False, False, True, True])
        assert out.dtype == bool

    def test_threshold_inclusive(self):
        assert derive_bisphosphonates([None], [50.0])[0]

    def test_custom_threshold(self):
        assert not derive_bisphosphonates([None], [52.0], threshold=55.0)[0]

    def test_coded_strings(self):
        assert_array_equal(derive_bisphosphonates(["0", "1"], [70, 40]), [False, True])

    def test_unknown_status_needs_age(self):
        with pytest.raises(InvalidCovariate) as exc_info:
            derive_bisphosphonates([1, None], [60, np.nan])
        assert exc_info.value.field == 'age'
        assert exc_info.value.row == 1

    def test_length_mismatch(self):
        with pytest.raises(DimensionError):
            derive_bisphosphonates([1, 0], [60])
