"""
Stacked convolutional auto-encoders built from scratch on NumPy.
"""
from .common import DataBlock
from .layers import get_layer
from .pooling import get_selector
from .autoencoders import (
    StandardAutoEncoder,
    SupervisedAutoEncoder,
    Pooler
)
from .scae import Convolution, SCAE
from .mlnn import MLNN

__version__ = "0.1.0"

__all__ = [
    'DataBlock',
    'get_layer',
    'get_selector',
    'StandardAutoEncoder',
    'SupervisedAutoEncoder',
    'Pooler',
    'Convolution',
    'SCAE',
    'MLNN'
]
