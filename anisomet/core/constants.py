"""Central numerical constants for metric construction.

Keeps per-dimension table values and small tolerances in one place so kernels
reference names instead of scattering literals.
"""
from __future__ import annotations

import math

# Entity dimensions
VERT: int = 0
EDGE: int = 1
FACE: int = 2
REGION: int = 3

SUPPORTED_DIMS = (2, 3)

# Compact storage order of the independent components (row, col)
SYMM_INDICES = {
    2: ((0, 0), (1, 1), (0, 1)),
    3: ((0, 0), (1, 1), (2, 2), (0, 1), (1, 2), (0, 2)),
}

# Measure of a simplex with unit edges, per dimension
EQUILATERAL_MEASURE = {
    1: 1.0,
    2: math.sqrt(3.0) / 4.0,
    3: 1.0 / (6.0 * math.sqrt(2.0)),
}

# Smallest estimator scalar accepted by the scaling loop
EPS_SCALAR: float = 1e-300


def symm_dofs(dim: int) -> int:
    """Number of independent components of a symmetric dim x dim tensor."""
    return (dim * (dim + 1)) // 2


def hessian_constants(dim: int):
    """Numerator/denominator of the equidistribution bound (Alauzet & Frey, RR-4759)."""
    return float(dim * dim), float(2 * (dim + 1) * (dim + 1))


__all__ = [
    'VERT', 'EDGE', 'FACE', 'REGION',
    'SUPPORTED_DIMS', 'SYMM_INDICES', 'EQUILATERAL_MEASURE',
    'EPS_SCALAR',
    'symm_dofs', 'hessian_constants',
]
