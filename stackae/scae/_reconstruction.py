"""
Distances between an input patch and its reconstruction.
"""
import numpy as np

from ..common.utils import mean, variance

__all__ = [
    'euclidean_distance',
    'scale_offset_invariant_distance',
    'normalized_correlation_distance',
    'mean',
    'variance'
]


def _check_same_length(a, b):
    a = np.asarray(a, dtype=float).ravel()
    b = np.asarray(b, dtype=float).ravel()
    if a.shape != b.shape:
        raise ValueError(f"Cannot compare arrays of {a.size} and {b.size} values")
    return a, b


def euclidean_distance(a, b, depth=3):
    """
    Mean, over the pixels, of the Euclidean distance between pixel values.

    Args:
        a (array-like): First flattened patch
        b (array-like): Second flattened patch
        depth (int): Number of consecutive values making one pixel

    Returns:
        float
    """
    a, b = _check_same_length(a, b)
    if a.size % depth != 0:
        raise ValueError(f"{a.size} values cannot be split in pixels of depth {depth}")
    diff = (a - b).reshape(-1, depth)
    return float(np.mean(np.sqrt(np.sum(diff * diff, axis=1))))


def scale_offset_invariant_distance(a, b):
    """
    Mean squared residual of ``b`` against the best ``eta * a`` after both
    are centred.
    """
    a, b = _check_same_length(a, b)
    a = a - np.mean(a)
    b = b - np.mean(b)
    bot = np.dot(a, a)
    eta = np.dot(a, b) / bot if bot != 0 else 0.0
    d = eta * a - b
    return float(np.mean(d * d))


def normalized_correlation_distance(x, y):
    """``1 - |pearson(x, y)|``, in [0, 1]."""
    x, y = _check_same_length(x, y)
    xc = x - np.mean(x)
    yc = y - np.mean(y)
    sxy = np.dot(xc, yc)
    sx = np.sqrt(np.dot(xc, xc))
    sy = np.sqrt(np.dot(yc, yc))
    return float(1.0 - abs(sxy) / (1e-5 + sx * sy))
