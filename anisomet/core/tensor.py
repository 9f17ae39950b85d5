"""Batched small symmetric-tensor algebra.

All helpers work on stacks of matrices shaped ``(n, dim, dim)`` with
``dim`` in {2, 3}, and on flat "Reals" fields holding ``n`` entities of
fixed width. The compact symmetric layout stores the diagonal first and then
the upper off-diagonal entries (see ``constants.SYMM_INDICES``).
"""
from __future__ import annotations

from typing import Tuple

import numpy as np

from .constants import SUPPORTED_DIMS, SYMM_INDICES, symm_dofs
from .errors import check


def check_dim(dim: int) -> int:
    check(dim in SUPPORTED_DIMS, f"dimension must be one of {SUPPORTED_DIMS}, got {dim!r}")
    return int(dim)


def as_reals(field) -> np.ndarray:
    """Return ``field`` as a flat float64 array (no copy when already one)."""
    arr = np.asarray(field, dtype=np.float64)
    check(arr.ndim == 1, f"fields must be flat 1-D arrays, got shape {arr.shape}")
    return arr


def frozen(arr: np.ndarray) -> np.ndarray:
    """Mark a freshly produced field read-only before handing it out."""
    arr.flags.writeable = False
    return arr


def count_entities(field: np.ndarray, width: int, what: str = 'field') -> int:
    check(field.size % width == 0,
          f"{what} length {field.size} is not a multiple of {width}")
    return field.size // width


def get_symms(dim: int, field) -> np.ndarray:
    """Expand a compact symmetric field into an ``(n, dim, dim)`` stack."""
    arr = as_reals(field)
    ncomps = symm_dofs(dim)
    n = count_entities(arr, ncomps, 'symmetric field')
    comps = arr.reshape(n, ncomps)
    out = np.empty((n, dim, dim), dtype=np.float64)
    for k, (i, j) in enumerate(SYMM_INDICES[dim]):
        out[:, i, j] = comps[:, k]
        out[:, j, i] = comps[:, k]
    return out


def set_symms(matrices: np.ndarray) -> np.ndarray:
    """Compact an ``(n, dim, dim)`` stack, keeping the upper triangle."""
    mats = np.asarray(matrices, dtype=np.float64)
    dim = mats.shape[-1]
    idx = SYMM_INDICES[dim]
    out = np.empty((mats.shape[0], len(idx)), dtype=np.float64)
    for k, (i, j) in enumerate(idx):
        out[:, k] = mats[:, i, j]
    return out.reshape(-1)


def get_matrices(dim: int, field) -> np.ndarray:
    """View a row-major dense field as an ``(n, dim, dim)`` stack."""
    arr = as_reals(field)
    n = count_entities(arr, dim * dim, 'matrix field')
    return arr.reshape(n, dim, dim)


def set_matrices(matrices: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(matrices, dtype=np.float64).reshape(-1)


def decompose_eigen(matrices: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Eigen-decompose a stack of symmetric matrices.

    Returns ``(q, l)`` where ``q[e, :, j]`` is the unit eigenvector paired with
    eigenvalue ``l[e, j]`` and ``matrices[e] == q[e] @ diag(l[e]) @ q[e].T``.
    Eigenvalues come in ascending order.
    """
    l, q = np.linalg.eigh(np.asarray(matrices, dtype=np.float64))
    return q, l


def compose_eigen(q: np.ndarray, l: np.ndarray) -> np.ndarray:
    """Inverse of :func:`decompose_eigen`: ``q @ diag(l) @ q.T`` per entity."""
    return np.einsum('nij,nj,nkj->nik', q, l, q)


__all__ = [
    'check_dim', 'as_reals', 'frozen', 'count_entities',
    'get_symms', 'set_symms', 'get_matrices', 'set_matrices',
    'decompose_eigen', 'compose_eigen',
]
