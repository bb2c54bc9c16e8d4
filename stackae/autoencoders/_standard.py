import numpy as np

from ._base import AutoEncoder
from ..common.utils import check_random_state
from ..layers import get_layer


class StandardAutoEncoder(AutoEncoder):
    """
    Auto-encoder made of two layers built by name.

    Args:
        input_width (int): Width of the input window
        input_height (int): Height of the input window
        input_depth (int): Depth of the input window
        output_depth (int): Size of the code
        encoder (str): Layer type of the encoder (see ``get_layer``)
        decoder (str, optional): Layer type of the decoder, same as the encoder if omitted
        encoder_weight (ndarray, optional): Initial encoder weights
        decoder_weight (ndarray, optional): Initial decoder weights
        encoder_bias (ndarray, optional): Initial encoder bias
        decoder_bias (ndarray, optional): Initial decoder bias
        learning_rate (float, optional): Learning rate of both layers
        rng (np.random.Generator or int, optional): Random number generator
    """

    type_name = "[SAE]"

    def __init__(self, input_width, input_height, input_depth, output_depth,
                 encoder="soft_sign", decoder=None, encoder_weight=None, decoder_weight=None,
                 encoder_bias=None, decoder_bias=None, learning_rate=None, rng=None):
        super().__init__(input_width, input_height, input_depth, output_depth)
        rng = check_random_state(rng)
        decoder = encoder if decoder is None else decoder

        self.set_encoder(get_layer(
            encoder, self.input_length, self.output_depth,
            **self._layer_kwargs(encoder_weight, encoder_bias, learning_rate, rng)))
        self.set_decoder(get_layer(
            decoder, self.output_depth, self.input_length,
            **self._layer_kwargs(decoder_weight, decoder_bias, learning_rate, rng)))

    @staticmethod
    def _layer_kwargs(weight, bias, learning_rate, rng):
        kwargs = {"rng": rng}
        if weight is not None:
            kwargs["weight"] = weight
        if bias is not None:
            kwargs["bias"] = bias
        if learning_rate is not None:
            kwargs["learning_rate"] = learning_rate
        return kwargs

    def _clone_kwargs(self):
        return {}

    def clone(self):
        """Copy with its own layers, bound to the same input placement."""
        ae = type(self)(self.input_width, self.input_height, self.input_depth, self.output_depth,
                        encoder=self.encoder.type_name, decoder=self.decoder.type_name,
                        **self._clone_kwargs())
        ae.set_encoder(self.encoder.clone())
        ae.set_decoder(self.decoder.clone())
        ae.set_input(self.input, self.input_x, self.input_y)
        return ae


class SupervisedAutoEncoder(StandardAutoEncoder):
    """
    Standard auto-encoder whose code can also be pulled towards a label.

    ``train(label)`` adds, on top of the reconstruction error, a term pushing
    code unit ``label`` to +1 and every other unit to -1, scaled by
    ``supervision_weight``.
    """

    type_name = "[SupAE]"
    is_supervised = True

    def __init__(self, input_width, input_height, input_depth, output_depth,
                 supervision_weight=1.0, **kwargs):
        super().__init__(input_width, input_height, input_depth, output_depth, **kwargs)
        self.supervision_weight = float(supervision_weight)

    def _clone_kwargs(self):
        return {"supervision_weight": self.supervision_weight}

    def train(self, label=None):
        if label is None:
            return super().train()
        if not 0 <= label < self.output_depth:
            raise ValueError(f"Label {label} is outside of a code of {self.output_depth} units")

        self.encode()
        self.decode()
        self.decoder.set_expected_values(self.input_array)
        err = self.decoder.back_propagate()

        target = np.full(self.output_depth, -1.0)
        target[label] = 1.0
        self.encoder.error += self.supervision_weight * (self.encoder.output - target)

        self.encoder.back_propagate()
        self.encoder.clear_error()
        self.decoder.clear_error()
        self.encoder.learn()
        self.decoder.learn()
        return err
