"""
Tests for linear predictors, absolute risk and predict_risk().
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from pyprognosis.core.exceptions import InvalidCovariate, ValidationError
from pyprognosis.survival import (
    BREAST_REFERENCE,
    OTHER_REFERENCE,
    BaselineHazardModel,
    CoefficientSet,
    PatientCovariates,
    absolute_risk,
    linear_predictor,
    predict_risk,
)
from pyprognosis.survival._scoring import yearly_grid


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture
def patients():
    return PatientCovariates.from_columns(
        age=[45, 60, 72, 55],
        size=[8, 22, 40, 15],
        nodes=[0, 2, 7, 0],
        grade=[1, 2, 3, 2],
        her2=[0, 1, 0, 0],
        hormone=[1, 1, 0, 1],
        chemo=[0, 3, 2, 0],
    )


NULL_COEFFICIENTS = (CoefficientSet('breast', {}), CoefficientSet('other', {}))


# ═══════════════════════════════════════════════════════════════════════
# absolute_risk
# ═══════════════════════════════════════════════════════════════════════


class TestAbsoluteRisk:

    def test_zero_linear_predictor(self):
        assert_allclose(absolute_risk(0.0, 0.9), 0.1)

    def test_doubled_hazard(self):
        assert_allclose(absolute_risk(np.log(2.0), 0.9), 1.0 - 0.81)

    def test_vectorised(self):
        out = absolute_risk([0.0, np.log(2.0)], [0.9, 0.8])
        assert_allclose(out, [0.1, 1.0 - 0.64])

    @pytest.mark.parametrize("s0", [0.0, 1.5, np.nan])
    def test_invalid_baseline_survival(self, s0):
        with pytest.raises(ValidationError):
            absolute_risk(0.0, s0)

    def test_non_finite_linear_predictor(self):
        with pytest.raises(InvalidCovariate):
            absolute_risk(np.inf, 0.9)


# ═══════════════════════════════════════════════════════════════════════
# linear_predictor
# ═══════════════════════════════════════════════════════════════════════


class TestLinearPredictor:

    def test_other_cause_depends_on_age_only(self, patients):
        lp = linear_predictor(patients, OTHER_REFERENCE)
        expected = 0.0698252 * ((patients.age / 10.0) ** 2 - 34.23391957)
        assert_allclose(lp, expected)

    def test_zero_size_rejected(self):
        patient = PatientCovariates.from_columns(
            age=[50, 60], size=[12, 0], nodes=[0, 1], grade=[2, 2],
        )
        with pytest.raises(InvalidCovariate) as exc_info:
            linear_predictor(patient, BREAST_REFERENCE)
        assert exc_info.value.field == 'size'
        assert exc_info.value.value == 0.0
        assert exc_info.value.cause == 'breast'
        assert exc_info.value.row == 1

    @pytest.mark.parametrize("field, value", [
        ('nodes', -1.0), ('grade', 4.0), ('chemo', 1.0), ('her2', 0.5), ('age', np.nan),
    ])
    def test_invalid_values(self, field, value):
        columns = dict(age=60, size=20, nodes=1, grade=2)
        columns[field] = value
        patient = PatientCovariates.from_columns(**columns)
        with pytest.raises(InvalidCovariate) as exc_info:
            linear_predictor(patient, BREAST_REFERENCE)
        assert exc_info.value.field == field

    def test_missing_biomarker(self):
        patient = PatientCovariates.from_columns(age=60, size=20, nodes=1, grade=2)
        coefs = BREAST_REFERENCE.with_term('biomarker', 0.5)
        with pytest.raises(InvalidCovariate) as exc_info:
            linear_predictor(patient, coefs)
        assert exc_info.value.field == 'biomarker'

    def test_biomarker_term(self):
        patient = PatientCovariates.from_columns(
            age=[60, 60], size=[20, 20], nodes=[1, 1], grade=[2, 2], biomarker=[0.0, 1.0],
        )
        lp = linear_predictor(patient, BREAST_REFERENCE.with_term('biomarker', 0.5))
        assert_allclose(lp[1] - lp[0], 0.5)

    def test_invalid_value_in_unused_field_ignored(self):
        patient = PatientCovariates.from_columns(age=60, size=0, nodes=1, grade=2)
        assert np.isfinite(linear_predictor(patient, OTHER_REFERENCE)).all()


# ═══════════════════════════════════════════════════════════════════════
# predict_risk
# ═══════════════════════════════════════════════════════════════════════


class TestPredictRisk:

    def test_shapes(self, patients):
        risk = predict_risk(patients, horizon=10)
        assert risk.linear_predictor.shape == (4, 2)
        assert risk.mortality.shape == (4, 2)
        assert risk.all_cause_mortality.shape == (4,)
        assert risk.cumulative_incidence.shape == (4, 10, 2)
        assert risk.causes == ('breast', 'other')

    def test_null_model_equals_baseline(self, patients):
        risk = predict_risk(patients, horizon=10, coefficients=NULL_COEFFICIENTS)
        s0 = BaselineHazardModel.default().survival(10.0)
        assert_allclose(risk.mortality, np.tile(1.0 - s0, (4, 1)))
        assert_allclose(risk.all_cause_mortality, 1.0 - s0[0] * s0[1])

    def test_mortality_in_unit_interval(self, patients):
        risk = predict_risk(patients)
        assert np.all((risk.mortality > 0) & (risk.mortality < 1))
        assert np.all(risk.all_cause_mortality >= risk.mortality.max(axis=1))

    def test_cumulative_incidence_sums_to_all_cause(self, patients):
        risk = predict_risk(patients, horizon=10)
        assert_allclose(risk.cumulative_incidence[:, -1, :].sum(axis=1),
                        risk.all_cause_mortality, rtol=1e-12)

    def test_cumulative_incidence_nondecreasing_and_bounded(self, patients):
        risk = predict_risk(patients, horizon=15)
        cif = risk.cumulative_incidence
        assert np.all(np.diff(cif, axis=1) >= 0)
        # Crude incidence never exceeds the net (single-cause) mortality
        assert np.all(cif[:, -1, :] <= risk.mortality + 1e-12)

    def test_larger_tumour_higher_breast_risk(self):
        patient = PatientCovariates.from_columns(
            age=[60, 60], size=[10, 40], nodes=[0, 0], grade=[2, 2],
        )
        breast = predict_risk(patient).for_cause('breast')
        assert breast[1] > breast[0]

    def test_treatment_lowers_breast_risk(self):
        patient = PatientCovariates.from_columns(
            age=[60, 60], size=[20, 20], nodes=[2, 2], grade=[3, 3], hormone=[0, 1],
        )
        risk = predict_risk(patient)
        assert risk.for_cause('breast')[1] < risk.for_cause('breast')[0]
        assert_allclose(risk.for_cause('other')[1], risk.for_cause('other')[0])

    def test_mapping_input(self):
        risk = predict_risk({'age': 60, 'size': 20, 'nodes': 1, 'grade': 2}, horizon=5)
        assert risk.n_observations == 1
        assert risk.horizon == 5.0

    def test_risk_grows_with_horizon(self, patients):
        short = predict_risk(patients, horizon=5).all_cause_mortality
        long = predict_risk(patients, horizon=10).all_cause_mortality
        assert np.all(long > short)

    @pytest.mark.parametrize("horizon", [0, -5, np.nan])
    def test_invalid_horizon(self, patients, horizon):
        with pytest.raises(InvalidCovariate) as exc_info:
            predict_risk(patients, horizon=horizon)
        assert exc_info.value.field == 'horizon'

    def test_unknown_cause(self, patients):
        with pytest.raises(KeyError):
            predict_risk(patients).for_cause('cardiac')

    def test_summary_and_metadata(self, patients):
        risk = predict_risk(patients)
        assert risk.backend_name == 'cpu_risk'
        text = risk.summary()
        assert 'breast' in text and 'all-cause' in text
        assert 'RiskSolution(n=4' in repr(risk)


class TestYearlyGrid:

    def test_whole_years(self):
        assert_allclose(yearly_grid(10), np.arange(1.0, 11.0))

    def test_fractional_horizon(self):
        assert_allclose(yearly_grid(2.5), [1.0, 2.0, 2.5])

    def test_short_horizon(self):
        assert_allclose(yearly_grid(0.5), [0.5])
