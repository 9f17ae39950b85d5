"""Element sizes measured in metric space and the element-count estimator.

A cell of Euclidean measure ``|K|`` under a (cell-averaged) metric ``M``
has metric-space measure ``|K| * sqrt(det M)``. Dividing by the measure of
the unit-edge equilateral simplex gives the number of unit elements the metric
asks for in that cell; the sum over the mesh estimates the element count an
adapted mesh would have.
"""
from __future__ import annotations

import math
from typing import Optional

import numpy as np

from .config import MetricConfig
from .constants import EQUILATERAL_MEASURE
from .errors import check
from .logging_utils import get_logger
from .loop import parallel_for
from .mesh import Mesh
from .metric import average_metric
from .tensor import check_dim, get_symms

log = get_logger(__name__)


def equilateral_measure(dim: int) -> float:
    """Length, area or volume of the simplex whose edges all have unit length."""
    check(dim in EQUILATERAL_MEASURE, f"no equilateral simplex measure for dim {dim!r}")
    return EQUILATERAL_MEASURE[dim]


def element_measures(mesh: Mesh, config: Optional[MetricConfig] = None) -> np.ndarray:
    """Unsigned area (2D) or volume (3D) of every cell."""
    dim = check_dim(mesh.dim())
    cells = np.asarray(mesh.ask_verts_of(dim))
    coords = np.asarray(mesh.coords(), dtype=np.float64)
    out = np.empty(cells.shape[0], dtype=np.float64)
    fact = float(math.factorial(dim))

    def kernel(begin, end):
        x = coords[cells[begin:end]]
        basis = x[:, 1:, :] - x[:, :1, :]
        out[begin:end] = np.abs(np.linalg.det(basis)) / fact

    parallel_for(cells.shape[0], kernel, config)
    return out


def expected_elems_per_elem(mesh: Mesh, v2m, config: Optional[MetricConfig] = None) -> np.ndarray:
    """Number of unit-size elements the vertex metric field asks for in each cell."""
    dim = check_dim(mesh.dim())
    ncells = mesh.nents(dim)
    cell_metrics = get_symms(dim, average_metric(mesh, dim, np.arange(ncells), v2m, config=config))
    measures = element_measures(mesh, config=config)
    dets = np.maximum(np.linalg.det(cell_metrics), 0.0) if ncells else np.empty(0)
    return measures * np.sqrt(dets) / equilateral_measure(dim)


def expected_nelems(mesh: Mesh, v2m, config: Optional[MetricConfig] = None) -> float:
    """Element count implied by ``v2m``, summed over all ranks of ``mesh.comm()``."""
    local = float(np.sum(expected_elems_per_elem(mesh, v2m, config=config)))
    return float(mesh.comm().allreduce(local, op='sum'))


def metric_scalar_for_nelems(mesh: Mesh, v2m, target_nelems: float,
                             config: Optional[MetricConfig] = None) -> float:
    """Factor by which to multiply ``v2m`` so it implies ``target_nelems`` elements.

    Scaling a metric by ``s`` multiplies the implied count by ``s**(dim/2)``,
    hence the returned value ``(target / expected) ** (2/dim)``.
    """
    check(target_nelems > 0, f"target_nelems must be positive, got {target_nelems!r}")
    dim = check_dim(mesh.dim())
    nelems = expected_nelems(mesh, v2m, config=config)
    check(nelems > 0, "metric field implies no elements (degenerate metric or empty mesh)")
    scalar = (float(target_nelems) / nelems) ** (2.0 / dim)
    log.debug("metric implies %.6g elements, target %.6g, scalar %.6g", nelems, target_nelems, scalar)
    return scalar


__all__ = [
    'equilateral_measure', 'element_measures',
    'expected_elems_per_elem', 'expected_nelems', 'metric_scalar_for_nelems',
]
