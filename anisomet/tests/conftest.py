import numpy as np
import pytest

from anisomet.core.constants import symm_dofs
from anisomet.core.mesh import build_box
from anisomet.core.tensor import set_symms


def random_symms(dim, n, seed=0):
    """Compact field of n random symmetric (not necessarily definite) tensors."""
    rng = np.random.RandomState(seed)
    return rng.randn(n * symm_dofs(dim))


def random_spd_field(dim, n, seed=0):
    """Compact field of n random SPD tensors."""
    rng = np.random.RandomState(seed)
    A = rng.randn(n, dim, dim)
    M = A @ np.transpose(A, (0, 2, 1)) + np.eye(dim) * 1e-2
    return set_symms(M)


@pytest.fixture
def box2d():
    return build_box(4, 3)


@pytest.fixture
def box3d():
    return build_box(2, 2, 2)
