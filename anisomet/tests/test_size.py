import math

import numpy as np
import pytest

from anisomet.core.errors import MetricPreconditionError
from anisomet.core.mesh import build_box
from anisomet.core.metric import isotropic_metrics
from anisomet.core.size import (element_measures, equilateral_measure, expected_elems_per_elem,
                                expected_nelems, metric_scalar_for_nelems)


def test_equilateral_measures():
    assert equilateral_measure(2) == pytest.approx(math.sqrt(3.0) / 4.0)
    assert equilateral_measure(3) == pytest.approx(math.sqrt(2.0) / 12.0)
    with pytest.raises(MetricPreconditionError):
        equilateral_measure(4)


def test_element_measures_sum_to_box_size():
    assert np.sum(element_measures(build_box(5, 4, lengths=(2.0, 3.0)))) == pytest.approx(6.0)
    vols = element_measures(build_box(2, 3, 1))
    assert np.allclose(vols, vols[0])
    assert np.sum(vols) == pytest.approx(1.0)


def test_identity_metric_count_2d(box2d):
    v2m = isotropic_metrics(2, np.ones(box2d.nverts()))
    assert expected_nelems(box2d, v2m) == pytest.approx(4.0 / math.sqrt(3.0))


def test_identity_metric_count_3d(box3d):
    v2m = isotropic_metrics(3, np.ones(box3d.nverts()))
    assert expected_nelems(box3d, v2m) == pytest.approx(6.0 * math.sqrt(2.0))


def test_isotropic_size_count_scales_with_inverse_area(box2d):
    h = 0.05
    v2m = isotropic_metrics(2, np.full(box2d.nverts(), h))
    per_elem = expected_elems_per_elem(box2d, v2m)
    assert per_elem.shape == (box2d.nelems(),)
    assert np.sum(per_elem) == pytest.approx(1.0 / (h * h * math.sqrt(3.0) / 4.0))


@pytest.mark.parametrize('mesh,factor,expected', [
    (build_box(3, 3), 4.0, 4.0),
    (build_box(2, 2, 2), 8.0, 4.0),
])
def test_scalar_for_nelems(mesh, factor, expected):
    dim = mesh.dim()
    v2m = isotropic_metrics(dim, np.ones(mesh.nverts()))
    target = factor * expected_nelems(mesh, v2m)
    assert metric_scalar_for_nelems(mesh, v2m, target) == pytest.approx(expected)


def test_scaled_metric_hits_target(box3d):
    v2m = isotropic_metrics(3, np.full(box3d.nverts(), 0.3))
    scalar = metric_scalar_for_nelems(box3d, v2m, 777.0)
    assert expected_nelems(box3d, v2m * scalar) == pytest.approx(777.0)


def test_allreduce_is_used(box2d):
    class TwoRanks:
        def rank(self):
            return 0

        def size(self):
            return 2

        def allreduce(self, value, op='sum'):
            assert op == 'sum'
            return 2.0 * value

    from anisomet.core.mesh import SimplexMesh
    mesh = SimplexMesh(box2d.coords(), box2d.ask_verts_of(2), comm=TwoRanks())
    v2m = isotropic_metrics(2, np.ones(mesh.nverts()))
    assert expected_nelems(mesh, v2m) == pytest.approx(8.0 / math.sqrt(3.0))


def test_degenerate_metric_rejected(box2d):
    with pytest.raises(MetricPreconditionError):
        metric_scalar_for_nelems(box2d, np.zeros(box2d.nverts() * 3), 10.0)


def test_non_positive_target_rejected(box2d):
    v2m = isotropic_metrics(2, np.ones(box2d.nverts()))
    with pytest.raises(MetricPreconditionError):
        metric_scalar_for_nelems(box2d, v2m, 0.0)
