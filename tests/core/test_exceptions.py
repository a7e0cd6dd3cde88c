"""
Tests for the pyprognosis exception hierarchy.

Validates:
    - Inheritance chain (all exceptions catchable via PyPrognosisError)
    - Diagnostic attributes on FitFailure, InvalidCovariate,
      PoolingDegenerate, SingularMatrixError, ConvergenceError
    - Exceptions survive pickling (replicates may fail in worker processes)
    - ConstraintViolation is an immutable record, not an exception
"""

import pickle
from dataclasses import FrozenInstanceError

import pytest

from pyprognosis.core.exceptions import (
    ConstraintViolation,
    ConvergenceError,
    DimensionError,
    FitFailure,
    InvalidCovariate,
    NumericalError,
    PoolingDegenerate,
    PyPrognosisError,
    SingularMatrixError,
    ValidationError,
)


# ═══════════════════════════════════════════════════════════════════════
# Inheritance hierarchy
# ═══════════════════════════════════════════════════════════════════════


class TestInheritance:
    """Every exception is catchable via PyPrognosisError."""

    def test_dimension_error_is_validation_error(self):
        with pytest.raises(ValidationError):
            raise DimensionError("wrong shape")

    def test_singular_matrix_error_is_numerical_error(self):
        with pytest.raises(NumericalError):
            raise SingularMatrixError("singular")

    def test_convergence_error_is_numerical_error(self):
        assert isinstance(ConvergenceError("failed", iterations=3), NumericalError)

    def test_fit_failure_is_numerical_error(self):
        err = FitFailure("failed", variable='size', iteration=2)
        assert isinstance(err, NumericalError)
        assert isinstance(err, PyPrognosisError)

    def test_invalid_covariate_is_validation_error(self):
        err = InvalidCovariate("size must be > 0", field='size', value=0.0)
        assert isinstance(err, ValidationError)

    def test_pooling_degenerate_is_validation_error(self):
        err = PoolingDegenerate("need 2", n_replicates=1)
        assert isinstance(err, ValidationError)

    def test_constraint_violation_is_not_an_exception(self):
        record = ConstraintViolation('size', '1A', 1, 1, 2)
        assert not isinstance(record, BaseException)


# ═══════════════════════════════════════════════════════════════════════
# Diagnostic attributes
# ═══════════════════════════════════════════════════════════════════════


class TestFitFailure:

    def test_all_attributes(self):
        err = FitFailure(
            "separation", variable='her2', iteration=3,
            replicate=2, reason='separation',
        )
        assert str(err) == "separation"
        assert err.variable == 'her2'
        assert err.iteration == 3
        assert err.replicate == 2
        assert err.reason == 'separation'

    def test_defaults_are_none(self):
        err = FitFailure("failed", variable='size', iteration=1)
        assert err.replicate is None
        assert err.reason is None

    def test_pickle_round_trip_keeps_attributes(self):
        err = FitFailure("failed", variable='grade', iteration=4,
                         replicate=5, reason='not_converged')
        restored = pickle.loads(pickle.dumps(err))
        assert isinstance(restored, FitFailure)
        assert str(restored) == "failed"
        assert (restored.variable, restored.iteration, restored.replicate,
                restored.reason) == ('grade', 4, 5, 'not_converged')


class TestInvalidCovariate:

    def test_all_attributes(self):
        err = InvalidCovariate("bad size", field='size', value=0.0,
                               cause='breast', row=7)
        assert err.field == 'size'
        assert err.value == 0.0
        assert err.cause == 'breast'
        assert err.row == 7

    def test_pickle_round_trip(self):
        err = InvalidCovariate("bad horizon", field='horizon', value=-1.0)
        restored = pickle.loads(pickle.dumps(err))
        assert restored.field == 'horizon'
        assert restored.value == -1.0
        assert restored.row is None


class TestPoolingDegenerate:

    def test_attribute(self):
        err = PoolingDegenerate("need at least 2 replicates", n_replicates=1)
        assert err.n_replicates == 1

    def test_pickle_round_trip(self):
        restored = pickle.loads(pickle.dumps(PoolingDegenerate("x", n_replicates=0)))
        assert restored.n_replicates == 0


class TestSingularMatrixError:

    def test_all_attributes(self):
        err = SingularMatrixError("rank deficient", matrix_name='X',
                                  rank=2, expected_rank=3)
        assert err.matrix_name == 'X'
        assert err.rank == 2
        assert err.expected_rank == 3

    def test_defaults_are_none(self):
        err = SingularMatrixError("singular")
        assert err.matrix_name is None
        assert err.rank is None
        assert err.expected_rank is None


class TestConvergenceError:

    def test_all_attributes(self):
        err = ConvergenceError("IRLS failed", iterations=25,
                               final_change=1e-3, reason='not_converged')
        assert err.iterations == 25
        assert err.final_change == 1e-3
        assert err.reason == 'not_converged'

    def test_pickle_round_trip(self):
        err = ConvergenceError("failed", iterations=7, reason='separation')
        restored = pickle.loads(pickle.dumps(err))
        assert restored.iterations == 7
        assert restored.reason == 'separation'


class TestConstraintViolation:

    def test_fields(self):
        record = ConstraintViolation(
            variable='size', classification='1A', iteration=2,
            replicate=1, n_squeezed=3,
        )
        assert record.variable == 'size'
        assert record.n_squeezed == 3

    def test_frozen(self):
        record = ConstraintViolation('size', '1A', 2, 1, 3)
        with pytest.raises(FrozenInstanceError):
            record.n_squeezed = 0
