import numpy as np

from ._base import Layer


class SoftMaxLayer(Layer):
    """
    Parameter-free soft-max over the whole input vector.

    Two ways of feeding the error are supported. ``set_expected`` accumulates
    per-unit errors which are then multiplied by the soft-max Jacobian.
    ``set_expected_class`` selects a target class for the cross-entropy loss;
    the loss is stored in the error buffer for diagnostics and the gradient
    ``p - onehot(class)`` is routed to the previous layer.
    """

    type_name = "softmax"

    def __init__(self, input_size, output_size, input_array=None, learning_rate=None,
                 rng=None):
        if input_size != output_size:
            raise ValueError(
                f"SoftMax must have as many outputs as inputs, got {input_size} "
                f"inputs and {output_size} outputs")
        super().__init__(input_size, output_size, input_array=input_array,
                         learning_rate=learning_rate, rng=rng)
        self.expected_class = None
        self._exp = np.zeros(self.input_size)
        self._computed = False

    def compute(self):
        x = self._require_input()
        np.exp(x - np.max(x), out=self._exp)
        self.output[:] = self._exp / np.sum(self._exp)
        self._computed = True

    def set_expected_class(self, class_num):
        """Use cross-entropy against ``class_num`` for the next back-propagation."""
        if not 0 <= class_num < self.output_size:
            raise ValueError(f"No class {class_num} among {self.output_size} outputs")
        if not self._computed:
            raise RuntimeError("SoftMax: compute() must be called before setting the expected class")
        self.expected_class = int(class_num)
        self.error[:] = -np.log(self.output[class_num])

    def back_propagate(self):
        if not self._computed:
            raise RuntimeError("SoftMax: back_propagate() called before compute()")

        p = self.output
        if self.prev_error is not None:
            if self.expected_class is None:
                self.prev_error += p * (self.error - np.dot(p, self.error))
            else:
                grad = p.copy()
                grad[self.expected_class] -= 1.0
                self.prev_error += grad

        err = self._mean_abs_error()
        self.error.fill(0.0)
        self.expected_class = None
        return err

    def learn(self):
        pass

    def set_weights(self, weight):
        raise NotImplementedError("SoftMax has no weights")

    def clone(self):
        return SoftMaxLayer(self.input_size, self.output_size, input_array=self.input,
                            learning_rate=self.learning_rate)
