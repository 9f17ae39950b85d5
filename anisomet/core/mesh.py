"""Mesh interface consumed by the metric operations, and a reference simplex mesh.

The metric code only talks to the :class:`Mesh` protocol: dimension,
communicator, entity-to-vertex adjacency, and a per-entity tag store. The
:class:`SimplexMesh` implementation below is a small in-memory mesh of
triangles or tetrahedra used by the demos and the test-suite; host
frameworks are expected to supply their own object with the same methods.
"""
from __future__ import annotations

import itertools
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Protocol, Tuple

import numpy as np
from scipy.spatial import Delaunay

from .constants import SUPPORTED_DIMS, VERT
from .errors import check
from .logging_utils import get_logger

logger = get_logger(__name__)


class TransferPolicy(Enum):
    """How a tag is carried across mesh modification by the host framework."""
    DONT_TRANSFER = 'dont_transfer'
    INHERIT = 'inherit'
    LINEAR_INTERP = 'linear_interp'
    METRIC = 'metric'


class OutputPolicy(Enum):
    DONT_OUTPUT = 'dont_output'
    DO_OUTPUT = 'do_output'


@dataclass
class Tag:
    name: str
    ncomps: int
    transfer: TransferPolicy
    output: OutputPolicy
    array: np.ndarray


class SerialComm:
    """Single-rank communicator."""

    def rank(self) -> int:
        return 0

    def size(self) -> int:
        return 1

    def allreduce(self, value, op: str = 'sum'):
        return value


class Comm(Protocol):
    def rank(self) -> int: ...

    def size(self) -> int: ...

    def allreduce(self, value, op: str = 'sum'): ...


class Mesh(Protocol):
    """Read access plus tag write-back, as borrowed by metric operations."""

    def dim(self) -> int: ...

    def comm(self) -> Comm: ...

    def nverts(self) -> int: ...

    def nents(self, ent_dim: int) -> int: ...

    def coords(self) -> np.ndarray: ...

    def ask_verts_of(self, ent_dim: int) -> np.ndarray: ...

    def get_array(self, ent_dim: int, name: str) -> np.ndarray: ...

    def add_tag(self, ent_dim: int, name: str, ncomps: int,
                transfer: TransferPolicy, output: OutputPolicy, array) -> None: ...


class SimplexMesh:
    """Conforming triangle (2D) or tetrahedron (3D) mesh.

    Parameters
    ----------
    coords : (N, dim) float array-like
    cells : (M, dim+1) int array-like
    comm : communicator, optional
        Defaults to :class:`SerialComm`.
    """

    def __init__(self, coords, cells, comm=None):
        coords = np.ascontiguousarray(coords, dtype=np.float64)
        cells = np.ascontiguousarray(cells, dtype=np.int64)
        check(coords.ndim == 2 and coords.shape[1] in SUPPORTED_DIMS,
              f"coords must have shape (N, 2) or (N, 3), got {coords.shape}")
        dim = coords.shape[1]
        check(cells.ndim == 2 and cells.shape[1] == dim + 1,
              f"cells must have shape (M, {dim + 1}) for a {dim}D mesh, got {cells.shape}")
        if cells.size:
            check(cells.min() >= 0 and cells.max() < coords.shape[0],
                  "cells reference vertices outside the coordinate array")
        coords.flags.writeable = False
        cells.flags.writeable = False
        self._dim = dim
        self._coords = coords
        self._adj: Dict[int, np.ndarray] = {dim: cells, VERT: np.arange(coords.shape[0]).reshape(-1, 1)}
        self._tags: Dict[int, Dict[str, Tag]] = {d: {} for d in range(dim + 1)}
        self._comm = comm or SerialComm()

    @classmethod
    def from_points(cls, points, comm=None) -> 'SimplexMesh':
        """Delaunay mesh of a 2D or 3D point cloud."""
        pts = np.asarray(points, dtype=np.float64)
        tri = Delaunay(pts)
        return cls(pts, tri.simplices.copy(), comm=comm)

    def dim(self) -> int:
        return self._dim

    def comm(self):
        return self._comm

    def coords(self) -> np.ndarray:
        return self._coords

    def nverts(self) -> int:
        return self._coords.shape[0]

    def nelems(self) -> int:
        return self._adj[self._dim].shape[0]

    def nents(self, ent_dim: int) -> int:
        return self.ask_verts_of(ent_dim).shape[0]

    def ask_verts_of(self, ent_dim: int) -> np.ndarray:
        """Return the ``(nents, ent_dim+1)`` vertex ids of each entity of dimension ent_dim.

        Intermediate entities (edges, and faces of a 3D mesh) are derived from
        the cells on first request and cached; their rows are sorted by vertex id.
        """
        check(0 <= ent_dim <= self._dim,
              f"entity dimension {ent_dim} invalid for a {self._dim}D mesh")
        if ent_dim not in self._adj:
            cells = self._adj[self._dim]
            local = list(itertools.combinations(range(self._dim + 1), ent_dim + 1))
            if cells.size:
                subs = np.concatenate([cells[:, list(c)] for c in local], axis=0)
                subs = np.unique(np.sort(subs, axis=1), axis=0)
            else:
                subs = np.empty((0, ent_dim + 1), dtype=np.int64)
            subs.flags.writeable = False
            self._adj[ent_dim] = subs
            logger.debug("derived %d entities of dim %d", subs.shape[0], ent_dim)
        return self._adj[ent_dim]

    # -- tags -------------------------------------------------------------

    def has_tag(self, ent_dim: int, name: str) -> bool:
        return name in self._tags.get(ent_dim, {})

    def get_tag(self, ent_dim: int, name: str) -> Tag:
        check(self.has_tag(ent_dim, name), f"no tag '{name}' on entities of dim {ent_dim}")
        return self._tags[ent_dim][name]

    def get_array(self, ent_dim: int, name: str) -> np.ndarray:
        return self.get_tag(ent_dim, name).array

    def tag_names(self, ent_dim: int) -> Tuple[str, ...]:
        return tuple(sorted(self._tags.get(ent_dim, {})))

    def add_tag(self, ent_dim: int, name: str, ncomps: int,
                transfer: TransferPolicy = TransferPolicy.INHERIT,
                output: OutputPolicy = OutputPolicy.DO_OUTPUT,
                array=None) -> None:
        """Attach (or replace) a per-entity array of ``ncomps`` values per entity."""
        check(ncomps >= 1, f"tag '{name}' needs at least one component")
        nents = self.nents(ent_dim)
        if array is None:
            data = np.zeros(nents * ncomps, dtype=np.float64)
        else:
            data = np.array(array, copy=True).reshape(-1)
        check(data.size == nents * ncomps,
              f"tag '{name}' expects {nents}*{ncomps} values, got {data.size}")
        if self.has_tag(ent_dim, name):
            old = self._tags[ent_dim][name]
            check(old.ncomps == ncomps,
                  f"tag '{name}' already exists with {old.ncomps} components")
            logger.debug("replacing tag '%s' on dim %d", name, ent_dim)
        data.flags.writeable = False
        self._tags[ent_dim][name] = Tag(name, int(ncomps), transfer, output, data)


def _box_triangles(nx: int, ny: int) -> np.ndarray:
    i, j = np.meshgrid(np.arange(nx), np.arange(ny), indexing='ij')
    v00 = (i + (nx + 1) * j).reshape(-1)
    v10 = v00 + 1
    v01 = v00 + (nx + 1)
    v11 = v01 + 1
    lower = np.stack([v00, v10, v11], axis=1)
    upper = np.stack([v00, v11, v01], axis=1)
    return np.concatenate([lower, upper], axis=0)


def _box_tetrahedra(nx: int, ny: int, nz: int) -> np.ndarray:
    # Kuhn subdivision: every cube uses the same main diagonal, so faces match
    i, j, k = np.meshgrid(np.arange(nx), np.arange(ny), np.arange(nz), indexing='ij')
    base = (i + (nx + 1) * (j + (ny + 1) * k)).reshape(-1)
    step = (1, nx + 1, (nx + 1) * (ny + 1))
    tets = []
    for perm in itertools.permutations(range(3)):
        v0 = base
        v1 = v0 + step[perm[0]]
        v2 = v1 + step[perm[1]]
        v3 = v2 + step[perm[2]]
        tets.append(np.stack([v0, v1, v2, v3], axis=1))
    return np.concatenate(tets, axis=0)


def build_box(nx: int, ny: int, nz: Optional[int] = None,
              lengths=None, comm=None) -> SimplexMesh:
    """Structured simplex mesh of a box.

    ``nz=None`` builds ``2*nx*ny`` triangles of ``[0,lx]x[0,ly]``; otherwise
    ``6*nx*ny*nz`` tetrahedra of ``[0,lx]x[0,ly]x[0,lz]``.
    """
    check(nx >= 1 and ny >= 1 and (nz is None or nz >= 1), "box divisions must be >= 1")
    if nz is None:
        lx, ly = lengths if lengths is not None else (1.0, 1.0)
        xs, ys = np.linspace(0.0, lx, nx + 1), np.linspace(0.0, ly, ny + 1)
        X, Y = np.meshgrid(xs, ys, indexing='xy')
        coords = np.stack([X.reshape(-1), Y.reshape(-1)], axis=1)
        return SimplexMesh(coords, _box_triangles(nx, ny), comm=comm)
    lx, ly, lz = lengths if lengths is not None else (1.0, 1.0, 1.0)
    xs = np.linspace(0.0, lx, nx + 1)
    ys = np.linspace(0.0, ly, ny + 1)
    zs = np.linspace(0.0, lz, nz + 1)
    Z, Y, X = np.meshgrid(zs, ys, xs, indexing='ij')
    coords = np.stack([X.reshape(-1), Y.reshape(-1), Z.reshape(-1)], axis=1)
    return SimplexMesh(coords, _box_tetrahedra(nx, ny, nz), comm=comm)


__all__ = [
    'TransferPolicy', 'OutputPolicy', 'Tag', 'SerialComm', 'Comm', 'Mesh',
    'SimplexMesh', 'build_box',
]
