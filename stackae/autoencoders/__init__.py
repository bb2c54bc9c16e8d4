"""
Units tiled by the convolution stages: auto-encoders, poolers and binary
adapters.
"""
from ._base import AutoEncoder
from ._standard import StandardAutoEncoder, SupervisedAutoEncoder
from ._units import Pooler, BinaryUnit, ToRealUnit

__all__ = [
    'AutoEncoder',
    'StandardAutoEncoder',
    'SupervisedAutoEncoder',
    'Pooler',
    'BinaryUnit',
    'ToRealUnit'
]
