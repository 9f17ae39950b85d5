import numpy as np
import pytest

from anisomet.core.constants import symm_dofs
from anisomet.core.errors import MetricPreconditionError
from anisomet.core.mesh import build_box
from anisomet.core.metric import average_metric, isotropic_metrics

from conftest import random_spd_field


@pytest.mark.parametrize('ent_dim', [1, 2])
def test_constant_field_2d(box2d, ent_dim):
    m = np.array([3.0, 1.5, 0.25])
    v2m = np.tile(m, box2d.nverts())
    ents = np.arange(box2d.nents(ent_dim))
    out = average_metric(box2d, ent_dim, ents, v2m)
    assert np.allclose(out.reshape(-1, 3), m)


@pytest.mark.parametrize('ent_dim', [1, 2, 3])
def test_constant_field_3d(box3d, ent_dim):
    m = np.array([2.0, 3.0, 4.0, 0.1, 0.2, 0.3])
    v2m = np.tile(m, box3d.nverts())
    ents = np.arange(box3d.nents(ent_dim))
    out = average_metric(box3d, ent_dim, ents, v2m)
    assert out.size == ents.size * 6
    assert np.allclose(out.reshape(-1, 6), m)


def test_edge_average_is_componentwise_mean():
    mesh = build_box(1, 1)
    # vertices (0,0) (1,0) (0,1) (1,1) with isotropic values 1..4
    v2m = isotropic_metrics(2, 1.0 / np.sqrt([1.0, 2.0, 3.0, 4.0]))
    edges = mesh.ask_verts_of(1)
    diag = int(np.flatnonzero((edges[:, 0] == 0) & (edges[:, 1] == 3))[0])
    out = average_metric(mesh, 1, [diag], v2m)
    assert np.allclose(out, [2.5, 2.5, 0.0])


def test_selected_entities_only(box3d):
    v2m = random_spd_field(3, box3d.nverts(), seed=4)
    cells = box3d.ask_verts_of(3)
    picks = np.array([5, 0, 5])
    out = average_metric(box3d, 3, picks, v2m).reshape(-1, 6)
    vms = v2m.reshape(-1, 6)
    for row, c in zip(out, picks):
        assert np.allclose(row, vms[cells[c]].mean(axis=0))


def test_arithmetic_not_log_euclidean():
    mesh = build_box(1, 1)
    v2m = isotropic_metrics(2, [1.0, 1.0, 1.0, 0.1])
    cells = mesh.ask_verts_of(2)
    out = average_metric(mesh, 2, [0], v2m)
    expected = np.mean([1.0 if v != 3 else 100.0 for v in cells[0]])
    assert np.allclose(out[:2], expected)


def test_empty_entity_list(box2d):
    v2m = np.zeros(box2d.nverts() * symm_dofs(2))
    assert average_metric(box2d, 1, [], v2m).size == 0


@pytest.mark.parametrize('ent_dim', [0, 3, -1])
def test_rejects_unsupported_entity_dim_2d(box2d, ent_dim):
    v2m = np.zeros(box2d.nverts() * 3)
    with pytest.raises(MetricPreconditionError):
        average_metric(box2d, ent_dim, [0], v2m)


@pytest.mark.parametrize('ent_dim', [0, 4, -1])
def test_rejects_unsupported_entity_dim_3d(box3d, ent_dim):
    v2m = np.zeros(box3d.nverts() * 6)
    with pytest.raises(MetricPreconditionError):
        average_metric(box3d, ent_dim, [0], v2m)


def test_rejects_wrong_field_length(box2d):
    with pytest.raises(MetricPreconditionError):
        average_metric(box2d, 1, [0], np.zeros(box2d.nverts() * 6))


def test_rejects_out_of_range_entities(box2d):
    v2m = np.zeros(box2d.nverts() * 3)
    with pytest.raises(MetricPreconditionError):
        average_metric(box2d, 2, [box2d.nelems()], v2m)
