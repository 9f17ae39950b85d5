"""Metric-field operations for anisotropic mesh adaptation.

A metric field is a flat array holding one compact symmetric tensor per
entity (``symm_dofs(dim)`` values each). Every operation below validates its
inputs up front, maps a per-entity kernel over index chunks with
:func:`~anisomet.core.loop.parallel_for`, and returns a new read-only array.

Provided operations:
- linearize_metrics / delinearize_metrics: compact <-> dense row-major storage
- average_metric: vertex metrics averaged onto edges, faces or cells
- interpolate_metrics: affine blend of two fields
- axes_from_metrics / axes_from_metric_field: principal axes per entity
- metric_from_hessians: Hessian -> metric with [hmin, hmax] clamping
- metric_for_nelems_from_hessians: rescale eps until the metric implies a target element count
"""
from __future__ import annotations

import math
import time
from typing import Callable, List, Optional, Tuple

import numpy as np

from .config import MetricConfig, ScalingConfig
from .constants import EPS_SCALAR, VERT, hessian_constants, symm_dofs
from .errors import MetricConvergenceError, check
from .logging_utils import get_logger
from .loop import parallel_for
from .mesh import Mesh, OutputPolicy, TransferPolicy
from .stats import ScalingStats
from .tensor import (as_reals, check_dim, compose_eigen, count_entities, decompose_eigen,
                     frozen, get_matrices, get_symms, set_symms)

log = get_logger(__name__)

AXIS_SCALES = ('length', 'eigenvalue')

Estimator = Callable[[Mesh, np.ndarray, float], float]


# ---------------------------------------------------------------------------
# Eigenvalue <-> length conversions
# ---------------------------------------------------------------------------

def metric_eigenvalues_from_lengths(lengths):
    """A desired edge length ``h`` corresponds to the metric eigenvalue ``1/h**2``."""
    h = np.asarray(lengths, dtype=np.float64)
    return 1.0 / (h * h)


def metric_lengths_from_eigenvalues(eigenvalues):
    return 1.0 / np.sqrt(np.asarray(eigenvalues, dtype=np.float64))


def isotropic_metrics(dim: int, sizes, config: Optional[MetricConfig] = None) -> np.ndarray:
    """Field of isotropic metrics ``h**-2 * I``, one per entry of ``sizes``."""
    dim = check_dim(dim)
    h = as_reals(sizes)
    check(np.all(h > 0), "isotropic sizes must be positive")
    ncomps = symm_dofs(dim)
    out = np.zeros((h.size, ncomps), dtype=np.float64)

    def kernel(begin, end):
        out[begin:end, :dim] = metric_eigenvalues_from_lengths(h[begin:end])[:, None]

    parallel_for(h.size, kernel, config)
    return frozen(out.reshape(-1))


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------

def linearize_metrics(dim: int, metrics, config: Optional[MetricConfig] = None) -> np.ndarray:
    """Expand compact metrics to dense row-major ``dim*dim`` blocks."""
    dim = check_dim(dim)
    m = as_reals(metrics)
    ncomps = symm_dofs(dim)
    n = count_entities(m, ncomps, 'metric field')
    out = np.empty((n, dim * dim), dtype=np.float64)

    def kernel(begin, end):
        block = get_symms(dim, m[begin * ncomps:end * ncomps])
        out[begin:end] = block.reshape(end - begin, dim * dim)

    parallel_for(n, kernel, config)
    return frozen(out.reshape(-1))


def delinearize_metrics(dim: int, linear_metrics, config: Optional[MetricConfig] = None) -> np.ndarray:
    """Compact dense ``dim*dim`` blocks, keeping the upper triangle of each."""
    dim = check_dim(dim)
    lm = as_reals(linear_metrics)
    width = dim * dim
    n = count_entities(lm, width, 'linearized metric field')
    ncomps = symm_dofs(dim)
    out = np.empty((n, ncomps), dtype=np.float64)

    def kernel(begin, end):
        mats = get_matrices(dim, lm[begin * width:end * width])
        out[begin:end] = set_symms(mats).reshape(end - begin, ncomps)

    parallel_for(n, kernel, config)
    return frozen(out.reshape(-1))


# ---------------------------------------------------------------------------
# Averaging and interpolation
# ---------------------------------------------------------------------------

def average_metric(mesh: Mesh, ent_dim: int, entities, v2m,
                   config: Optional[MetricConfig] = None) -> np.ndarray:
    """Average vertex metrics onto entities of dimension ``ent_dim``.

    Each entity receives the component-wise arithmetic mean of the compact
    metrics of its ``ent_dim + 1`` vertices. Supported combinations are
    edges, faces and cells of a 3D mesh and edges and faces of a 2D mesh.
    """
    sdim = mesh.dim()
    check(sdim in (2, 3), f"mesh dimension must be 2 or 3, got {sdim!r}")
    check(1 <= ent_dim <= sdim,
          f"cannot average onto entities of dim {ent_dim!r} of a {sdim}D mesh")
    ncomps = symm_dofs(sdim)
    vm = as_reals(v2m)
    check(vm.size == mesh.nverts() * ncomps,
          f"vertex metric field has {vm.size} values, expected "
          f"{mesh.nverts()}*{ncomps}")
    ents = np.asarray(entities, dtype=np.int64).reshape(-1)
    ev2v = np.asarray(mesh.ask_verts_of(ent_dim))
    if ents.size:
        check(ents.min() >= 0 and ents.max() < ev2v.shape[0],
              f"entity ids must lie in [0, {ev2v.shape[0]})")
    vms = vm.reshape(-1, ncomps)
    out = np.empty((ents.size, ncomps), dtype=np.float64)

    def kernel(begin, end):
        verts = ev2v[ents[begin:end]]
        out[begin:end] = vms[verts].mean(axis=1)

    log.debug("average_metric: %d entities of dim %d (mesh dim %d)", ents.size, ent_dim, sdim)
    parallel_for(ents.size, kernel, config)
    return frozen(out.reshape(-1))


def interpolate_metrics(dim: int, a, b, t: float,
                        config: Optional[MetricConfig] = None) -> np.ndarray:
    """Per-component ``(1 - t) * a + t * b``; ``t`` outside [0, 1] extrapolates."""
    dim = check_dim(dim)
    fa, fb = as_reals(a), as_reals(b)
    check(fa.size == fb.size,
          f"metric fields differ in length ({fa.size} vs {fb.size})")
    ncomps = symm_dofs(dim)
    n = count_entities(fa, ncomps, 'metric field')
    t = float(t)
    out = np.empty(fa.size, dtype=np.float64)

    def kernel(begin, end):
        s = slice(begin * ncomps, end * ncomps)
        out[s] = (1.0 - t) * fa[s] + t * fb[s]

    parallel_for(n, kernel, config)
    return frozen(out)


# ---------------------------------------------------------------------------
# Principal axes
# ---------------------------------------------------------------------------

def axes_from_metrics(dim: int, metrics, scale: str = 'length',
                      config: Optional[MetricConfig] = None) -> Tuple[np.ndarray, ...]:
    """Principal axes of each metric as ``dim`` vector fields.

    Axis ``j`` of entity ``i`` is the ``j``-th eigenvector (eigenvalues in
    ascending order) multiplied by the desired edge length ``1/sqrt(l_j)``
    when ``scale == 'length'``, or by the eigenvalue ``l_j`` itself when
    ``scale == 'eigenvalue'``. Each returned field has ``dim`` values per
    entity.
    """
    dim = check_dim(dim)
    check(scale in AXIS_SCALES, f"axis scale must be one of {AXIS_SCALES}, got {scale!r}")
    m = as_reals(metrics)
    ncomps = symm_dofs(dim)
    n = count_entities(m, ncomps, 'metric field')
    outs = [np.empty((n, dim), dtype=np.float64) for _ in range(dim)]

    def kernel(begin, end):
        q, l = decompose_eigen(get_symms(dim, m[begin * ncomps:end * ncomps]))
        if scale == 'length':
            check(np.all(l > 0), "metric lengths need positive eigenvalues")
            s = metric_lengths_from_eigenvalues(l)
        else:
            s = l
        for j in range(dim):
            outs[j][begin:end] = q[:, :, j] * s[:, j, None]

    parallel_for(n, kernel, config)
    return tuple(frozen(w.reshape(-1)) for w in outs)


def axes_from_metric_field(mesh: Mesh, metric_name: str, output_prefix: str,
                           scale: str = 'length',
                           config: Optional[MetricConfig] = None) -> List[str]:
    """Compute the axes of vertex tag ``metric_name`` and write them back to the mesh.

    Axis ``j`` is stored as vertex tag ``f"{output_prefix}_{j}"`` with ``dim``
    components, not transferred across mesh modification and flagged for
    output. Returns the written tag names.
    """
    dim = mesh.dim()
    check(dim in (2, 3), f"mesh dimension must be 2 or 3, got {dim!r}")
    metrics = mesh.get_array(VERT, metric_name)
    axes = axes_from_metrics(dim, metrics, scale=scale, config=config)
    names = []
    for j, axis in enumerate(axes):
        name = f"{output_prefix}_{j}"
        mesh.add_tag(VERT, name, dim, TransferPolicy.DONT_TRANSFER, OutputPolicy.DO_OUTPUT, axis)
        names.append(name)
    log.debug("wrote axis tags %s from '%s'", names, metric_name)
    return names


# ---------------------------------------------------------------------------
# Hessian-based metrics
# ---------------------------------------------------------------------------

def metric_from_hessians(dim: int, hessians, eps: float, hmin: float, hmax: float,
                         config: Optional[MetricConfig] = None) -> np.ndarray:
    """Anisotropic metric from a Hessian field (Alauzet & Frey, INRIA RR-4759, 2003).

    Each Hessian ``H = Q diag(l) Q^T`` becomes ``Q diag(t) Q^T`` with::

        t_i = clamp(dim**2 * |l_i| / (2 * (dim+1)**2 * eps), 1/hmax**2, 1/hmin**2)

    so every output eigenvalue maps to an edge length in ``[hmin, hmax]``.
    """
    dim = check_dim(dim)
    check(hmin > 0, f"hmin must be positive, got {hmin!r}")
    check(hmax > 0, f"hmax must be positive, got {hmax!r}")
    check(hmin <= hmax, f"hmin ({hmin!r}) must not exceed hmax ({hmax!r})")
    check(eps > 0, f"eps must be positive, got {eps!r}")
    hess = as_reals(hessians)
    ncomps = symm_dofs(dim)
    n = count_entities(hess, ncomps, 'hessian field')
    c_num, c_denom = hessian_constants(dim)
    lo = 1.0 / (hmax * hmax)
    hi = 1.0 / (hmin * hmin)
    out = np.empty((n, ncomps), dtype=np.float64)

    def kernel(begin, end):
        q, l = decompose_eigen(get_symms(dim, hess[begin * ncomps:end * ncomps]))
        target = (c_num * np.abs(l)) / (c_denom * eps)
        target = np.minimum(np.maximum(target, lo), hi)
        out[begin:end] = set_symms(compose_eigen(q, target)).reshape(end - begin, ncomps)

    parallel_for(n, kernel, config)
    return frozen(out.reshape(-1))


def _default_estimator() -> Estimator:
    from .size import metric_scalar_for_nelems
    return metric_scalar_for_nelems


def scale_metric_for_nelems(mesh: Mesh, target_nelems: float, tolerance: float, hessians,
                            hmin: float, hmax: float,
                            estimator: Optional[Estimator] = None,
                            config: Optional[ScalingConfig] = None) -> Tuple[np.ndarray, ScalingStats]:
    """Fixed-point search for ``eps`` so the Hessian metric implies ``target_nelems``.

    Starting from ``eps = 1``, each iteration builds the metric, asks the
    estimator for the multiplicative correction ``scalar`` and divides
    ``eps`` by it, until ``|scalar - 1| <= tolerance``. Returns the last
    metric together with the iteration history.

    Raises
    ------
    MetricPreconditionError
        For non-positive ``tolerance``/``target_nelems``, a Hessian field
        that does not hold one tensor per mesh vertex, or a non-positive or
        non-finite estimator result.
    MetricConvergenceError
        When ``config.max_iterations`` iterations pass without convergence.
    """
    check(tolerance > 0, f"tolerance must be positive, got {tolerance!r}")
    check(target_nelems > 0, f"target_nelems must be positive, got {target_nelems!r}")
    cfg = config or ScalingConfig()
    check(cfg.max_iterations >= 1, f"max_iterations must be at least 1, got {cfg.max_iterations!r}")
    dim = check_dim(mesh.dim())
    nhess = as_reals(hessians).size
    check(nhess == mesh.nverts() * symm_dofs(dim),
          f"hessian field has {nhess} values, expected {symm_dofs(dim)} per vertex for {mesh.nverts()} vertices")
    est = estimator or _default_estimator()
    stats = ScalingStats(target_nelems=float(target_nelems), tolerance=float(tolerance))
    t0 = time.perf_counter()
    eps = 1.0
    while True:
        if stats.iterations >= cfg.max_iterations:
            stats.time_total = time.perf_counter() - t0
            raise MetricConvergenceError(
                f"metric scaling did not converge in {cfg.max_iterations} iterations "
                f"(last scalar {stats.final_scalar!r})", stats=stats)
        metric = metric_from_hessians(dim, hessians, eps, hmin, hmax, config=cfg.parallel)
        scalar = float(est(mesh, metric, target_nelems))
        check(math.isfinite(scalar) and scalar > EPS_SCALAR,
              f"element-count estimator returned invalid scalar {scalar!r}")
        stats.record(eps, scalar)
        log.debug("iteration %d: eps=%.6g scalar=%.6g", stats.iterations, eps, scalar)
        eps /= scalar
        if abs(scalar - 1.0) <= tolerance:
            break
    stats.converged = True
    stats.time_total = time.perf_counter() - t0
    if mesh.comm().rank() == 0:
        log.info("after %d iterations, metric targets %g*%g elements",
                 stats.iterations, target_nelems, stats.final_scalar)
    return metric, stats


def metric_for_nelems_from_hessians(mesh: Mesh, target_nelems: float, tolerance: float, hessians,
                                    hmin: float, hmax: float,
                                    estimator: Optional[Estimator] = None,
                                    config: Optional[ScalingConfig] = None) -> np.ndarray:
    """Metric from ``hessians`` rescaled to imply about ``target_nelems`` elements.

    See :func:`scale_metric_for_nelems` for the iteration and its errors.
    """
    metric, _ = scale_metric_for_nelems(mesh, target_nelems, tolerance, hessians,
                                        hmin, hmax, estimator=estimator, config=config)
    return metric


__all__ = [
    'AXIS_SCALES',
    'metric_eigenvalues_from_lengths', 'metric_lengths_from_eigenvalues', 'isotropic_metrics',
    'linearize_metrics', 'delinearize_metrics',
    'average_metric', 'interpolate_metrics',
    'axes_from_metrics', 'axes_from_metric_field',
    'metric_from_hessians', 'scale_metric_for_nelems', 'metric_for_nelems_from_hessians',
]
