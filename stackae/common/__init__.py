"""
Shared data structures and helpers.
"""
from .data_block import DataBlock
from .utils import (
    check_random_state,
    copy_matrix,
    normalise,
    mean,
    variance,
    sigmoid
)

__all__ = [
    'DataBlock',
    'check_random_state',
    'copy_matrix',
    'normalise',
    'mean',
    'variance',
    'sigmoid'
]
