"""
Layers: the atomic trainable units sharing the compute / back_propagate /
learn contract.
"""
from ._base import Layer, AbstractLayer
from ._neural import (
    LinearLayer,
    SoftSignLayer,
    SigmoidLayer,
    ReLULayer,
    OjasLayer,
    SExpLogLayer
)
from ._softmax import SoftMaxLayer
from ._correlator import Correlator, WeightedCorrelator
from ._factory import LAYER_TYPES, get_layer

__all__ = [
    'Layer',
    'AbstractLayer',
    'LinearLayer',
    'SoftSignLayer',
    'SigmoidLayer',
    'ReLULayer',
    'OjasLayer',
    'SExpLogLayer',
    'SoftMaxLayer',
    'Correlator',
    'WeightedCorrelator',
    'LAYER_TYPES',
    'get_layer'
]
