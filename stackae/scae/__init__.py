"""
Convolution stages and their stacked composition.
"""
from ._convolution import Convolution
from ._scae import SCAE
from ._reconstruction import (
    euclidean_distance,
    scale_offset_invariant_distance,
    normalized_correlation_distance,
    mean,
    variance
)

__all__ = [
    'Convolution',
    'SCAE',
    'euclidean_distance',
    'scale_offset_invariant_distance',
    'normalized_correlation_distance',
    'mean',
    'variance'
]
