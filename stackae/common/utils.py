"""
Small numeric helpers shared by layers, units and metrics.
"""
import numpy as np


def check_random_state(rng=None):
    """
    Turn ``rng`` into a numpy Generator.

    Args:
        rng (None, int or np.random.Generator): ``None`` gives a fresh
            unseeded generator, an int seeds a new generator, a Generator is
            returned as is

    Returns:
        np.random.Generator
    """
    if rng is None:
        return np.random.default_rng()
    if isinstance(rng, np.random.Generator):
        return rng
    if isinstance(rng, (int, np.integer)):
        return np.random.default_rng(rng)
    raise ValueError(f"Cannot build a random generator from {rng!r}")


def copy_matrix(m, shape=None):
    """Deep-copy a matrix as float64, optionally checking its shape."""
    m = np.array(m, dtype=float)
    if shape is not None and m.shape != tuple(shape):
        raise ValueError(
            f"bad input weight size: {'x'.join(map(str, m.shape))}, "
            f"expected {'x'.join(map(str, shape))}")
    return m


def normalise(m):
    """Divide ``m`` in place by its Frobenius norm and return it."""
    norm = np.sqrt(np.sum(m ** 2))
    if norm > 0:
        m /= norm
    return m


def mean(values):
    values = np.asarray(values, dtype=float)
    return float(np.mean(values)) if values.size else 0.0


def variance(values):
    """Population variance (divides by n)."""
    values = np.asarray(values, dtype=float)
    return float(np.var(values)) if values.size else 0.0


def sigmoid(x):
    return 1.0 / (1.0 + np.exp(-x))
