"""
Tests for the cause-specific Cox model and the Nelson-Aalen estimator.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from pyprognosis.core.exceptions import DimensionError, SingularMatrixError, ValidationError
from pyprognosis.survival import CompetingRiskDesign, coxph, nelson_aalen
from pyprognosis.survival._cox import concordance


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture
def competing_data(rng):
    """Two covariates; the disease hazard depends on both, the other cause on neither."""
    n = 1500
    X = rng.standard_normal((n, 2))
    t_disease = rng.exponential(1.0 / (0.1 * np.exp(X @ np.array([0.7, -0.4]))))
    t_other = rng.exponential(1.0 / 0.08, n)
    t_censor = rng.uniform(2, 12, n)
    time = np.minimum.reduce([t_disease, t_other, t_censor])
    status = np.where(time == t_disease, 1, np.where(time == t_other, 2, 0))
    return time, status, X


# ═══════════════════════════════════════════════════════════════════════
# CompetingRiskDesign
# ═══════════════════════════════════════════════════════════════════════


class TestCompetingRiskDesign:

    def test_event_indicator_censors_competing_cause(self):
        design = CompetingRiskDesign.for_competing_risks([1, 2, 3, 4], [0, 1, 2, 1])
        assert_allclose(design.event_indicator(1), [0, 1, 0, 1])
        assert_allclose(design.event_indicator(2), [0, 0, 1, 0])
        assert design.n_events() == 3
        assert design.n_events(1) == 2

    def test_invalid_cause(self):
        design = CompetingRiskDesign.for_competing_risks([1, 2], [0, 1])
        with pytest.raises(ValidationError):
            design.event_indicator(0)

    @pytest.mark.parametrize("time, status", [
        ([1, -2], [0, 1]),
        ([1, np.nan], [0, 1]),
        ([1, 2], [0, 3]),
    ])
    def test_invalid_outcome(self, time, status):
        with pytest.raises(ValidationError):
            CompetingRiskDesign.for_competing_risks(time, status)

    def test_length_mismatch(self):
        with pytest.raises(DimensionError):
            CompetingRiskDesign.for_competing_risks([1, 2, 3], [0, 1])

    def test_names_must_match_columns(self):
        with pytest.raises(DimensionError):
            CompetingRiskDesign.for_competing_risks([1, 2], [1, 1], np.ones((2, 2)), names=['a'])

    def test_default_names(self):
        design = CompetingRiskDesign.for_competing_risks([1, 2], [1, 0], np.ones((2, 2)))
        assert design.names == ('x0', 'x1')


# ═══════════════════════════════════════════════════════════════════════
# coxph
# ═══════════════════════════════════════════════════════════════════════


class TestCoxAnalytic:

    def test_four_subject_closed_form(self):
        # Score equation 2 - 2u/(u+1) - u/(u+2) = 0 gives u² - u - 4 = 0, u = e^β
        fit = coxph([1, 2, 3, 4], [1, 1, 1, 1], [1, 0, 1, 0])
        assert_allclose(fit.coefficients, [np.log((1 + np.sqrt(17)) / 2)], rtol=1e-7)
        assert fit.converged

    def test_null_loglik(self):
        # log(1/4 · 1/3 · 1/2 · 1)
        fit = coxph([1, 2, 3, 4], [1, 1, 1, 1], [1, 0, 1, 0])
        assert_allclose(fit.loglik[0], -np.log(24.0))
        assert fit.loglik[1] > fit.loglik[0]

    def test_breslow_equals_efron_without_ties(self):
        time, event, x = [1, 2, 3, 4, 5, 6], [1, 0, 1, 1, 0, 1], [0.5, 1.0, -0.3, 0.2, 0.8, -1.0]
        efron = coxph(time, event, x, ties='efron')
        breslow = coxph(time, event, x, ties='breslow')
        assert_allclose(efron.coefficients, breslow.coefficients, rtol=1e-10)

    def test_tied_deaths_closed_form(self):
        """Two tied deaths at t=1, one death at t=2; u = exp(β).

        R:
            time <- c(1, 1, 2, 2, 3)
            event <- c(1, 1, 1, 0, 0)
            x <- c(1, 0, 1, 0, 0)
            coxph(Surv(time, event) ~ x, ties = "efron")
            coxph(Surv(time, event) ~ x, ties = "breslow")

        Efron:   l = 2β - log(2u+3) - log((3u+5)/2) - log(u+2)
                 score = 0  <=>  6u³ - 53u - 60 = 0     (u ≈ 3.42791)
                 I = 6u/(2u+3)² + 15u/(3u+5)² + 2u/(u+2)²
        Breslow: l = 2β - 2 log(2u+3) - log(u+2)
                 score = 0  <=>  2u² - 3u - 12 = 0      (u = (3 + √105)/4)
                 I = 12u/(2u+3)² + 2u/(u+2)²
        """
        time, event, x = [1, 1, 2, 2, 3], [1, 1, 1, 0, 0], [1.0, 0.0, 1.0, 0.0, 0.0]

        efron = coxph(time, event, x, ties='efron')
        roots = np.roots([6.0, 0.0, -53.0, -60.0])
        u = float(roots[(np.abs(roots.imag) < 1e-9) & (roots.real > 0)].real[0])
        assert_allclose(efron.coefficients, [np.log(u)], rtol=1e-6)
        info = 6 * u / (2 * u + 3) ** 2 + 15 * u / (3 * u + 5) ** 2 + 2 * u / (u + 2) ** 2
        assert_allclose(efron.standard_errors, [1.0 / np.sqrt(info)], rtol=1e-6)
        assert_allclose(efron.coefficients, [np.log(3.42791)], atol=1e-4)

        breslow = coxph(time, event, x, ties='breslow')
        u = (3.0 + np.sqrt(105.0)) / 4.0
        assert_allclose(breslow.coefficients, [np.log(u)], rtol=1e-6)
        info = 12 * u / (2 * u + 3) ** 2 + 2 * u / (u + 2) ** 2
        assert_allclose(breslow.standard_errors, [1.0 / np.sqrt(info)], rtol=1e-6)

    def test_ties_change_estimate(self):
        time = [1, 1, 1, 2, 2, 3, 3, 4]
        event = [1, 1, 0, 1, 1, 1, 0, 1]
        x = [1.0, 0.0, 1.0, 1.0, 0.0, 0.0, 1.0, 0.0]
        efron = coxph(time, event, x, ties='efron')
        breslow = coxph(time, event, x, ties='breslow')
        assert not np.allclose(efron.coefficients, breslow.coefficients)


class TestCauseSpecific:

    def test_recovers_disease_coefficients(self, competing_data):
        time, status, X = competing_data
        fit = coxph(time, status, X, cause=1, names=['a', 'b'])
        assert_allclose(fit.coefficients, [0.7, -0.4], atol=0.15)
        assert fit.names == ('a', 'b')
        assert np.all(fit.p_values < 1e-3)

    def test_competing_deaths_are_censored(self, competing_data):
        time, status, X = competing_data
        cause_specific = coxph(time, status, X, cause=1)
        censored = coxph(time, (status == 1).astype(int), X, cause=1)
        assert_allclose(cause_specific.coefficients, censored.coefficients, rtol=1e-10)
        assert cause_specific.n_competing == int(np.sum(status == 2))
        assert censored.n_competing == 0

    def test_other_cause_has_no_covariate_effect(self, competing_data):
        time, status, X = competing_data
        fit = coxph(time, status, X, cause=2)
        assert_allclose(fit.coefficients, [0.0, 0.0], atol=0.2)
        assert fit.n_events == int(np.sum(status == 2))

    def test_inference_consistent(self, competing_data):
        time, status, X = competing_data
        fit = coxph(time, status, X)
        assert_allclose(fit.hazard_ratios, np.exp(fit.coefficients))
        assert_allclose(fit.standard_errors, np.sqrt(np.diag(fit.variance)))
        assert_allclose(fit.z_statistics, fit.coefficients / fit.standard_errors)
        assert 0.5 < fit.concordance < 1.0

    def test_summary(self, competing_data):
        time, status, X = competing_data
        fit = coxph(time, status, X, names=['a', 'b'])
        text = fit.summary()
        assert 'status == 1' in text
        assert 'competing events censored' in text
        assert fit.backend_name == 'cpu_cox'


class TestCoxErrors:

    def test_x_required(self):
        with pytest.raises(ValidationError, match="X"):
            coxph([1, 2], [1, 0], None)

    def test_bad_ties(self):
        with pytest.raises(ValidationError, match="ties"):
            coxph([1, 2], [1, 0], [0.0, 1.0], ties='exact')

    def test_no_events_of_cause(self):
        with pytest.raises(ValidationError, match="at least one event"):
            coxph([1, 2, 3], [2, 0, 2], [0.0, 1.0, 0.5], cause=1)

    def test_constant_covariate(self):
        with pytest.raises(SingularMatrixError):
            coxph([1, 2, 3, 4], [1, 1, 0, 1], np.column_stack([[0.1, 0.5, 0.2, 0.9], np.zeros(4)]))

    def test_non_convergence_warns(self, competing_data):
        time, status, X = competing_data
        with pytest.warns(RuntimeWarning, match="did not converge"):
            fit = coxph(time, status, X, max_iter=1)
        assert not fit.converged
        assert fit.warnings


class TestConcordance:

    def test_perfect_ranking(self):
        time = np.arange(1.0, 11.0)
        event = np.ones(10)
        assert concordance(-time, time, event) == 1.0
        assert concordance(time, time, event) == 0.0

    def test_constant_predictor(self):
        time = np.arange(1.0, 6.0)
        assert concordance(np.zeros(5), time, np.ones(5)) == 0.5

    def test_censored_subjects_only_compared_as_later(self):
        time = np.array([1.0, 2.0, 3.0])
        event = np.array([0.0, 1.0, 0.0])
        # Only pair (2, 3) is usable
        assert concordance(np.array([0.0, 1.0, 0.0]), time, event) == 1.0


# ═══════════════════════════════════════════════════════════════════════
# Nelson-Aalen
# ═══════════════════════════════════════════════════════════════════════


class TestNelsonAalen:

    def test_hand_computed(self):
        fit = nelson_aalen([1, 2, 2, 3, 4], [1, 1, 0, 1, 0])
        assert_allclose(fit.time, [1, 2, 3])
        assert_allclose(fit.n_risk, [5, 4, 2])
        assert_allclose(fit.cumulative_hazard, [0.2, 0.45, 0.95])
        assert_allclose(fit.subject_hazard, [0.2, 0.45, 0.45, 0.95, 0.95])
        assert fit.n_events_total == 3

    def test_subject_before_first_event(self):
        fit = nelson_aalen([0.5, 1.0, 2.0], [0, 1, 0])
        assert_allclose(fit.subject_hazard, [0.0, 1.0 / 2.0, 1.0 / 2.0])

    def test_any_death_by_default(self):
        fit = nelson_aalen([1, 2, 3], [1, 2, 0])
        assert fit.n_events_total == 2
        assert_allclose(fit.cumulative_hazard, [1 / 3, 1 / 3 + 1 / 2])

    def test_single_cause(self):
        fit = nelson_aalen([1, 2, 3], [1, 2, 0], cause=2)
        assert_allclose(fit.time, [2])
        assert_allclose(fit.subject_hazard, [0.0, 0.5, 0.5])

    def test_no_events(self):
        fit = nelson_aalen([1, 2, 3], [0, 0, 0])
        assert fit.time.size == 0
        assert_allclose(fit.subject_hazard, 0.0)

    def test_tied_event_times(self):
        fit = nelson_aalen([2, 2, 2, 5], [1, 1, 0, 1])
        assert_allclose(fit.cumulative_hazard, [2 / 4, 2 / 4 + 1])

    def test_summary(self):
        text = nelson_aalen([1, 2, 2, 3, 4], [1, 1, 0, 1, 0]).summary()
        assert 'cumhaz' in text
