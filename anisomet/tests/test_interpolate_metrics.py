import numpy as np
import pytest

from anisomet.core.errors import MetricPreconditionError
from anisomet.core.metric import interpolate_metrics

from conftest import random_symms


@pytest.mark.parametrize('dim', [2, 3])
def test_endpoints(dim):
    a = random_symms(dim, 9, seed=1)
    b = random_symms(dim, 9, seed=2)
    assert np.array_equal(interpolate_metrics(dim, a, b, 0.0), a)
    assert np.array_equal(interpolate_metrics(dim, a, b, 1.0), b)


@pytest.mark.parametrize('t', [-0.5, 0.0, 0.3, 1.0, 2.5])
def test_identity_for_equal_fields(t):
    a = random_symms(3, 5, seed=3)
    assert np.allclose(interpolate_metrics(3, a, a, t), a, rtol=1e-14, atol=1e-14)


@pytest.mark.parametrize('t', [0.25, 0.5, 0.8])
def test_is_componentwise_affine(t):
    a = random_symms(2, 12, seed=4)
    b = random_symms(2, 12, seed=5)
    out = interpolate_metrics(2, a, b, t)
    assert np.allclose(out, (1.0 - t) * a + t * b)


def test_extrapolation_outside_unit_interval():
    a = np.array([1.0, 1.0, 0.0])
    b = np.array([3.0, 2.0, 1.0])
    assert np.allclose(interpolate_metrics(2, a, b, 2.0), [5.0, 3.0, 2.0])
    assert np.allclose(interpolate_metrics(2, a, b, -1.0), [-1.0, 0.0, -1.0])


def test_inputs_untouched():
    a = random_symms(2, 4, seed=6)
    b = random_symms(2, 4, seed=7)
    a0, b0 = a.copy(), b.copy()
    interpolate_metrics(2, a, b, 0.4)
    assert np.array_equal(a, a0) and np.array_equal(b, b0)


def test_rejects_unequal_lengths():
    with pytest.raises(MetricPreconditionError):
        interpolate_metrics(2, np.zeros(6), np.zeros(3), 0.5)


def test_rejects_length_not_multiple_of_dofs():
    with pytest.raises(MetricPreconditionError):
        interpolate_metrics(3, np.zeros(9), np.zeros(9), 0.5)
