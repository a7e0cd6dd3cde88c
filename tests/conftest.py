"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np

from pyprognosis.imputation import ImputationDesign, VariableSpec


def _pt_label(size):
    if size <= 5:
        return '1A'
    if size <= 10:
        return '1B'
    if size <= 20:
        return '1C'
    if size <= 50:
        return '2'
    return '3'


def _pn_label(nodes):
    if nodes == 0:
        return '0'
    if nodes <= 3:
        return '1'
    if nodes <= 9:
        return '2'
    return '3'


CLINICAL_SCHEMA = (
    VariableSpec('age', 'continuous'),
    VariableSpec('size', 'continuous', classification='pT'),
    VariableSpec('nodes', 'continuous', classification='pN'),
    VariableSpec('grade', 'categorical', levels=(1, 2, 3)),
    VariableSpec('her2', 'binary'),
)


@pytest.fixture
def clinical_schema():
    """Typed schema of the synthetic cohort covariates."""
    return CLINICAL_SCHEMA


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def clinical_table(rng):
    """Synthetic breast-cancer cohort with complete covariates and outcome.

    Returns a dict of length-n arrays: age, size (mm), nodes, grade,
    her2, biomarker, pT, pN labels, time (years) and 3-state status.
    """
    n = 300
    age = rng.uniform(35, 80, n).round(0)
    grade = rng.choice([1.0, 2.0, 3.0], size=n, p=[0.2, 0.45, 0.35])
    size = np.clip(np.exp(rng.normal(np.log(15) + 0.25 * (grade - 2), 0.6)), 1.5, 120).round(0)
    nodes = rng.poisson(np.exp(-0.3 + 0.4 * np.log(size / 15)), n).astype(np.float64)
    her2 = (rng.uniform(size=n) < 0.15 + 0.05 * (grade - 1)).astype(np.float64)
    biomarker = rng.standard_normal(n)

    lp_disease = (0.7 * np.log(size / 20) + 0.5 * (grade - 2)
                  + 0.3 * np.log(nodes + 1) + 0.5 * biomarker)
    t_disease = rng.exponential(1.0 / (0.03 * np.exp(lp_disease)))
    t_other = rng.exponential(1.0 / (0.02 * np.exp(0.07 * (age - 60))))
    t_censor = rng.uniform(5, 15, n)
    time = np.minimum.reduce([t_disease, t_other, t_censor])
    status = np.where(time == t_disease, 1, np.where(time == t_other, 2, 0))

    return {
        'age': age,
        'size': size,
        'nodes': nodes,
        'grade': grade,
        'her2': her2,
        'biomarker': biomarker,
        'pT': np.array([_pt_label(s) for s in size], dtype=object),
        'pN': np.array([_pn_label(v) for v in nodes], dtype=object),
        'time': time,
        'status': status,
    }


@pytest.fixture
def clinical_design(clinical_table, rng):
    """ImputationDesign over the cohort with values missing completely at random."""
    n = len(clinical_table['age'])
    data = {name: clinical_table[name].copy() for name in ('age', 'size', 'nodes', 'grade', 'her2')}
    for name, rate in (('size', 0.2), ('nodes', 0.15), ('grade', 0.1), ('her2', 0.1)):
        data[name][rng.uniform(size=n) < rate] = np.nan
    return ImputationDesign.from_arrays(
        data, CLINICAL_SCHEMA,
        classifications={'pT': clinical_table['pT'], 'pN': clinical_table['pN']},
    )
