"""
Units without a learned encoder/decoder pair: poolers and binary adapters.
"""
import numpy as np

from ._base import AutoEncoder
from ..pooling import PoolerSelector, get_selector


class Pooler(AutoEncoder):
    """
    Reduces every channel of its window to one value with a ``PoolerSelector``.

    The output depth equals the input depth. Decoding gives the pooled value
    back to every cell of the window.
    """

    def __init__(self, input_width, input_height, input_depth, selector="max"):
        super().__init__(input_width, input_height, input_depth, input_depth)
        if isinstance(selector, PoolerSelector):
            if (selector.input_width, selector.input_height) != (input_width, input_height):
                raise ValueError(
                    f"{selector} does not pool a {input_width}x{input_height} window")
            self.selector = selector
        else:
            self.selector = get_selector(selector, input_width, input_height)
        self.type_name = f"Pooler[{type(self.selector).__name__}]"

    def encode(self):
        out = self.get_output_array()
        for z in range(self.input_depth):
            out[z] = self.selector.select(self.input, z, self.input_x, self.input_y)

    def decode(self):
        code = np.array([self.selector.unselect(v) for v in self.get_output_array()])
        self.decoded[:] = np.tile(code, self.input_width * self.input_height)

    def train(self):
        raise NotImplementedError("poolers cannot be trained")

    def learn(self):
        self.selector.learn()

    def back_propagate(self):
        e = self.error.get_values(self.output_x, self.output_y)
        if self.prev_err is not None:
            for z in range(self.input_depth):
                self.selector.back_propagate(e[z], self.prev_err, self.input,
                                             self.input_x, self.input_y, z)
        return float(np.mean(np.abs(e)))

    def clear_error(self):
        self.error.clear()
        if self.prev_err is not None:
            self.prev_err.clear()

    def clear_gradient(self):
        pass

    def delete_features(self, *numbers):
        raise NotImplementedError("poolers have no features to delete")

    def clone(self):
        return Pooler(self.input_width, self.input_height, self.input_depth,
                      self.selector.clone())


class _FixedUnit(AutoEncoder):
    """
    Parameter-free unit mapping every input element to one output element.

    The error is passed back unchanged (straight-through).
    """

    def train(self):
        return 0.0

    def learn(self):
        pass

    def back_propagate(self):
        e = self.error.get_values(self.output_x, self.output_y)
        if self.prev_err is not None:
            self.prev_err.weighted_patch_paste(e, self.input_x, self.input_y,
                                               self.input_width, self.input_height)
        return float(np.mean(np.abs(e)))

    def clear_error(self):
        self.error.clear()

    def clear_gradient(self):
        pass

    def delete_features(self, *numbers):
        raise NotImplementedError(f"{type(self).__name__} has no features to delete")


class BinaryUnit(_FixedUnit):
    """
    Thresholds every element of the window: 1 above ``threshold``, 0 otherwise.

    The code holds one value per element of the window, in the window's
    flattening order. Decoding maps 1 to +1 and 0 to -1.
    """

    type_name = "[BIN]"
    has_binary_output = True

    def __init__(self, input_width, input_height, input_depth, threshold=0.0):
        super().__init__(input_width, input_height, input_depth,
                         input_width * input_height * input_depth)
        self.threshold = float(threshold)

    def encode(self):
        self._load_input()
        self.get_output_array()[:] = np.where(self.input_array > self.threshold, 1.0, 0.0)

    def decode(self):
        self.decoded[:] = np.where(self.get_output_array() > 0.5, 1.0, -1.0)

    def clone(self):
        return BinaryUnit(self.input_width, self.input_height, self.input_depth,
                          threshold=self.threshold)


class ToRealUnit(_FixedUnit):
    """
    Turns binary codes back into real values: > 0.5 gives +1, otherwise -1.

    Only 1x1 windows are supported and the depth is kept.
    """

    type_name = "[REAL]"
    needs_binary_input = True

    def __init__(self, input_width, input_height, input_depth, output_depth):
        if input_width != 1 or input_height != 1:
            raise ValueError("Real units cannot be added to convolved layers.")
        if output_depth != input_depth:
            raise ValueError("Real units require same input and output lengths.")
        super().__init__(input_width, input_height, input_depth, output_depth)

    def encode(self):
        self._load_input()
        self.get_output_array()[:] = np.where(self.input_array > 0.5, 1.0, -1.0)

    def decode(self):
        self.decoded[:] = np.where(self.get_output_array() > 0.0, 1.0, 0.0)

    def clone(self):
        return ToRealUnit(1, 1, self.input_depth, self.output_depth)
