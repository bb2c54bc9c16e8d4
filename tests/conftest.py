import numpy as np
import pytest

from stackae.common import DataBlock


@pytest.fixture
def rng():
    return np.random.default_rng(0)


@pytest.fixture
def random_block(rng):
    """6x5 block of depth 2 with values in [-1, 1]."""
    return DataBlock.from_array(rng.uniform(-1.0, 1.0, size=(6, 5, 2)))


def _numeric_gradient(f, arr, eps=1e-6):
    """Central finite differences of the scalar function ``f`` w.r.t. ``arr`` (modified in place)."""
    grad = np.zeros_like(arr)
    for idx in np.ndindex(arr.shape):
        old = arr[idx]
        arr[idx] = old + eps
        f_plus = f()
        arr[idx] = old - eps
        f_minus = f()
        arr[idx] = old
        grad[idx] = (f_plus - f_minus) / (2 * eps)
    return grad


@pytest.fixture
def numeric_gradient():
    return _numeric_gradient
