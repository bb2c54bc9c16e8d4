"""
Base classes for the layers of the network.

A layer does not own its input: ``input`` is a reference to an array owned by
someone else (the output of the previous layer, or the flattened patch of an
auto-encoder). In the same way ``prev_error`` is a reference to the error
buffer of the layer feeding this one, so that back-propagation writes straight
into it. All buffers are updated in place to keep these aliases valid.
"""
import struct

import numpy as np

from ..base import BaseUnit
from ..common.utils import check_random_state, copy_matrix


class Layer(BaseUnit):
    """
    Contract shared by every layer: compute, back_propagate and learn.
    """

    type_name = "layer"
    default_learning_rate = 1e-3

    def __init__(self, input_size, output_size, input_array=None, learning_rate=None,
                 rng=None):
        """
        Initialize the buffers of the layer.

        Args:
            input_size (int): Length of the input array
            output_size (int): Number of output units
            input_array (ndarray, optional): Input array to bind
            learning_rate (float, optional): Step size of the gradient descent
            rng (np.random.Generator or int, optional): Random number generator
        """
        if int(input_size) <= 0:
            raise ValueError(f"input_size must be positive, got {input_size}")
        if int(output_size) <= 0:
            raise ValueError(f"output_size must be positive, got {output_size}")

        self.input_size = int(input_size)
        self.output_size = int(output_size)
        self.learning_rate = (self.default_learning_rate if learning_rate is None
                              else float(learning_rate))
        self._rng = check_random_state(rng)

        self.input = None
        self.output = np.zeros(self.output_size)
        self.error = np.zeros(self.output_size)
        self.prev_error = None

        self.set_input_array(input_array)

    # Computing

    def compute(self):
        """Forward pass: read ``input`` and write ``output`` in place."""
        raise NotImplementedError

    def _require_input(self):
        if self.input is None:
            raise RuntimeError(
                f"{type(self).__name__}: no input array bound, call set_input_array() first")
        return self.input

    # Learning

    def set_expected(self, output_num, expected_value):
        """Accumulate ``output - expected`` into the error of one output."""
        self.add_error(output_num, self.output[output_num] - expected_value)

    def set_expected_values(self, expected):
        """Vector form of ``set_expected`` over every output."""
        self.error += self.output - expected

    def add_error(self, output_num, e):
        self.error[output_num] += e

    def back_propagate(self):
        """
        Turn the error buffer into gradients and into the previous layer's error.

        Returns:
            float: Mean absolute error of the outputs
        """
        raise NotImplementedError

    def learn(self):
        """Apply the accumulated gradients and reset them."""
        raise NotImplementedError

    def clear_gradient(self):
        """Reset the gradient accumulators without touching the parameters."""

    def _mean_abs_error(self):
        return float(np.mean(np.abs(self.error)))

    # Input / output / error binding

    def set_input_array(self, input_array):
        if input_array is not None and len(input_array) != self.input_size:
            raise ValueError(
                f"{type(self).__name__} expects {self.input_size} inputs, got {len(input_array)}")
        self.input = input_array

    def set_output_array(self, output_array):
        if len(output_array) != self.output_size:
            raise ValueError(
                f"{type(self).__name__} has {self.output_size} outputs, got an array "
                f"of {len(output_array)}")
        self.output = output_array

    def set_error(self, error):
        if len(error) != self.output_size:
            raise ValueError(
                f"{type(self).__name__} has {self.output_size} outputs, got an error "
                f"array of {len(error)}")
        self.error = error

    def set_previous_error(self, prev_error):
        if prev_error is not None and len(prev_error) != self.input_size:
            raise ValueError(
                f"{type(self).__name__} has {self.input_size} inputs, got a previous "
                f"error array of {len(prev_error)}")
        self.prev_error = prev_error

    def clear_error(self):
        self.error.fill(0.0)

    def clear_previous_error(self):
        if self.prev_error is None:
            return
        self.prev_error.fill(0.0)

    def set_learning_rate(self, learning_rate):
        self.learning_rate = float(learning_rate)

    # Structural pruning

    def delete_input(self, num):
        raise NotImplementedError(f"{type(self).__name__} does not support deleting inputs")

    def delete_output(self, num):
        raise NotImplementedError(f"{type(self).__name__} does not support deleting outputs")

    def clone(self):
        raise NotImplementedError

    def __repr__(self):
        return (f"{type(self).__name__}(input_size={self.input_size}, "
                f"output_size={self.output_size})")


class AbstractLayer(Layer):
    """
    Fully connected layer: weight matrix of shape (input_size, output_size),
    bias vector, and gradient accumulators of the same shapes.

    Sub-classes provide the non-linearity in ``compute`` and its derivative
    in ``back_propagate``.
    """

    default_decay = 0.0

    def __init__(self, input_size, output_size, weight=None, bias=None,
                 input_array=None, learning_rate=None, decay=None, rng=None):
        """
        Initialize the layer.

        Args:
            input_size (int): Length of the input array
            output_size (int): Number of output units
            weight (ndarray, optional): Initial weights of shape (input_size, output_size);
                drawn uniformly in [-1/sqrt(input_size), 1/sqrt(input_size)] if omitted
            bias (ndarray, optional): Initial bias of shape (output_size,), zeros if omitted
            input_array (ndarray, optional): Input array to bind
            learning_rate (float, optional): Step size of the gradient descent
            decay (float, optional): Multiplicative weight decay applied before each update
            rng (np.random.Generator or int, optional): Random number generator
        """
        super().__init__(input_size, output_size, input_array=input_array,
                         learning_rate=learning_rate, rng=rng)
        self.decay = self.default_decay if decay is None else float(decay)

        if weight is not None:
            self.weight = copy_matrix(weight, (self.input_size, self.output_size))
        else:
            self.weight = ((1 - 2 * self._rng.random((self.input_size, self.output_size)))
                           / np.sqrt(self.input_size))

        if bias is not None:
            bias = np.array(bias, dtype=float)
            if bias.shape != (self.output_size,):
                raise ValueError(
                    f"Illegal bias size: {bias.shape}, expected ({self.output_size},)")
            self.bias = bias
        else:
            self.bias = np.zeros(self.output_size)

        self.gradient = np.zeros((self.input_size, self.output_size))
        self.bias_gradient = np.zeros(self.output_size)
        self.w_sum = np.zeros(self.output_size)

    # Computing

    def _weighted_sum(self):
        x = self._require_input()
        np.dot(x, self.weight, out=self.w_sum)
        self.w_sum += self.bias
        return self.w_sum

    # Learning

    def _accumulate(self, fact):
        """Add the gradient of a per-output factor and route it to ``prev_error``."""
        self.gradient += np.outer(self.input, fact)
        self.bias_gradient += fact
        if self.prev_error is not None:
            self.prev_error += self.weight @ fact

    def learn(self):
        self.weight *= (1.0 - self.decay)
        self.weight -= self.learning_rate * self.gradient
        self.bias *= (1.0 - self.decay)
        self.bias -= self.learning_rate * self.bias_gradient
        self.clear_gradient()

    def clear_gradient(self):
        self.gradient.fill(0.0)
        self.bias_gradient.fill(0.0)

    # Getters & setters

    def set_weights(self, weight):
        if weight is None:
            raise ValueError("the weights provided are null!")
        self.weight = copy_matrix(weight, (self.input_size, self.output_size))

    def set_bias(self, bias):
        if bias is None:
            raise ValueError("the bias provided is null!")
        bias = np.array(bias, dtype=float)
        if bias.shape != (self.output_size,):
            raise ValueError(f"bad input bias size: {bias.shape}, expected ({self.output_size},)")
        self.bias = bias

    # Structural pruning

    def delete_input(self, num):
        if not 0 <= num < self.input_size:
            raise ValueError(f"No input {num} in a layer of {self.input_size} inputs")
        self.weight = np.delete(self.weight, num, axis=0)
        self.gradient = np.delete(self.gradient, num, axis=0)
        self.input_size -= 1
        self.input = None
        self.prev_error = None

    def delete_output(self, num):
        if not 0 <= num < self.output_size:
            raise ValueError(f"No output {num} in a layer of {self.output_size} outputs")
        self.weight = np.delete(self.weight, num, axis=1)
        self.gradient = np.delete(self.gradient, num, axis=1)
        self.bias = np.delete(self.bias, num)
        self.bias_gradient = np.delete(self.bias_gradient, num)
        self.output_size -= 1
        self.output = np.zeros(self.output_size)
        self.error = np.zeros(self.output_size)
        self.w_sum = np.zeros(self.output_size)

    # Utility

    def _clone_kwargs(self):
        return {}

    def clone(self):
        """Copy of the layer sharing the input reference but no parameter storage."""
        layer = type(self)(
            self.input_size,
            self.output_size,
            weight=self.weight,
            bias=self.bias,
            input_array=self.input,
            learning_rate=self.learning_rate,
            decay=self.decay,
            **self._clone_kwargs()
        )
        return layer

    def save(self, stream):
        """
        Write sizes, weights and bias to a binary stream.

        Layout: big-endian int32 input size and output size, then float32
        weights (input-major) and float32 biases.
        """
        stream.write(struct.pack(">ii", self.input_size, self.output_size))
        stream.write(self.weight.astype(">f4").tobytes())
        stream.write(self.bias.astype(">f4").tobytes())

    @classmethod
    def load(cls, stream, **kwargs):
        """Rebuild a layer of this class from a stream written by ``save``."""
        header = stream.read(8)
        if len(header) != 8:
            raise ValueError("Truncated layer stream: missing sizes")
        input_size, output_size = struct.unpack(">ii", header)

        n_weights = input_size * output_size
        raw = stream.read(4 * (n_weights + output_size))
        if len(raw) != 4 * (n_weights + output_size):
            raise ValueError("Truncated layer stream: missing parameters")
        values = np.frombuffer(raw, dtype=">f4").astype(float)

        return cls(
            input_size,
            output_size,
            weight=values[:n_weights].reshape(input_size, output_size),
            bias=values[n_weights:],
            **kwargs
        )
