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

LAYER_TYPES = {
    'linear': LinearLayer,
    'soft_sign': SoftSignLayer,
    'softsign': SoftSignLayer,
    'neural': SoftSignLayer,
    'sigmoid': SigmoidLayer,
    'relu': ReLULayer,
    'oja': OjasLayer,
    'sexplog': SExpLogLayer,
    'softmax': SoftMaxLayer,
    'correlator': Correlator,
    'weighted_correlator': WeightedCorrelator,
}


def get_layer(name, input_size, output_size, **kwargs):
    """
    Factory function to get layer instances.

    Args:
        name (str): Layer type ('linear', 'soft_sign', 'sigmoid', 'relu', 'oja',
            'sexplog', 'softmax', 'correlator', 'weighted_correlator')
        input_size (int): Length of the input array
        output_size (int): Number of outputs
        **kwargs: Layer-specific parameters

    Returns:
        Layer instance
    """
    try:
        layer_type = LAYER_TYPES[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown layer: {name}") from None
    return layer_type(input_size, output_size, **kwargs)
