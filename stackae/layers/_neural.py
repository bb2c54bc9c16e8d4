"""
Weighted-sum layers differing only by their activation function.
"""
import warnings

import numpy as np

from ._base import AbstractLayer
from ..common.utils import normalise


class LinearLayer(AbstractLayer):
    """
    Identity activation. Weights are renormalised when they grow too big.
    """

    type_name = "linear"
    max_weight = 5.0

    def __init__(self, input_size, output_size, **kwargs):
        super().__init__(input_size, output_size, **kwargs)
        self.normalization_count = 0

    def compute(self):
        self.output[:] = self._weighted_sum()

    def back_propagate(self):
        self._accumulate(self.error.copy())
        return self._mean_abs_error()

    def learn(self):
        super().learn()
        if np.any(np.abs(self.weight) > self.max_weight):
            self.normalization_count += 1
            if self.normalization_count % 100000 == 0:
                warnings.warn(
                    f"Weights are growing too big! Normalizing for the "
                    f"{self.normalization_count} time!", RuntimeWarning)
            normalise(self.weight)


class SoftSignLayer(AbstractLayer):
    """
    Soft-sign activation ``s / (1 + |s|)`` with optional dropout.

    With a non-zero dropout rate, only a fixed number of units is active while
    training; the active set is reshuffled after every update and the weighted
    sums are scaled by ``1 - dropout_rate`` at inference time.
    """

    type_name = "soft_sign"

    def __init__(self, input_size, output_size, dropout_rate=0.0, **kwargs):
        super().__init__(input_size, output_size, **kwargs)
        self.active = np.ones(self.output_size, dtype=bool)
        self.set_dropout_rate(dropout_rate)

    def set_dropout_rate(self, rate):
        """
        Set the fraction of units dropped while training.

        The number of kept units is rounded, so the effective rate can differ
        from the one requested.

        Returns:
            float: The effective dropout rate
        """
        if not 0.0 <= rate < 1.0:
            raise ValueError(f"dropout rate must be in [0, 1), got {rate}")
        n_kept = max(1, int(np.floor(self.output_size * (1.0 - rate) + 0.5)))
        self.active[:] = np.arange(self.output_size) < n_kept
        self.dropout_rate = 1.0 - n_kept / self.output_size
        return self.dropout_rate

    def compute(self):
        w_sum = self._weighted_sum()
        if self.is_training:
            w_sum[~self.active] = 0.0
        else:
            w_sum *= (1.0 - self.dropout_rate)
        self.output[:] = w_sum / (1.0 + np.abs(w_sum))

    def back_propagate(self):
        bot = 1.0 + np.abs(self.w_sum)
        fact = self.error / (bot * bot)
        fact[~self.active] = 0.0
        self._accumulate(fact)
        return self._mean_abs_error()

    def learn(self):
        active = self.active
        self.weight[:, active] = ((1.0 - self.decay) * self.weight[:, active]
                                  - self.learning_rate * self.gradient[:, active])
        self.bias[active] = ((1.0 - self.decay) * self.bias[active]
                             - self.learning_rate * self.bias_gradient[active])
        self.clear_gradient()
        if self.dropout_rate > 0.0:
            self.active[:] = self._rng.permutation(self.active)

    def delete_output(self, num):
        super().delete_output(num)
        self.active = np.delete(self.active, num)

    def _clone_kwargs(self):
        return {"dropout_rate": self.dropout_rate}


class SigmoidLayer(AbstractLayer):
    """Logistic activation ``1 / (1 + e^-s)``."""

    type_name = "sigmoid"

    def compute(self):
        self.output[:] = 1.0 / (1.0 + np.exp(-self._weighted_sum()))

    def back_propagate(self):
        fact = self.output * (1.0 - self.output) * self.error
        self._accumulate(fact)
        return self._mean_abs_error()


class ReLULayer(AbstractLayer):
    """
    Rectified linear units with a small leak in the derivative, an activation
    cost pushing outputs towards zero, and continuous weight decay.
    """

    type_name = "relu"
    default_decay = 1e-3
    leak = 1e-3

    def __init__(self, input_size, output_size, activation_cost=1e-3, **kwargs):
        super().__init__(input_size, output_size, **kwargs)
        self.activation_cost = float(activation_cost)

    def compute(self):
        w_sum = self._weighted_sum()
        self.output[:] = np.where(w_sum > 0, w_sum, 0.0)

    def back_propagate(self):
        err = self.error + self.activation_cost * self.output
        fact = np.where(self.w_sum > 0, 1.0, self.leak) * err
        self._accumulate(fact)
        return self._mean_abs_error()

    @property
    def sparsity(self):
        """Fraction of outputs that are not strictly positive."""
        return 1.0 - np.count_nonzero(self.output > 0) / self.output_size

    def _clone_kwargs(self):
        return {"activation_cost": self.activation_cost}


class OjasLayer(AbstractLayer):
    """
    Linear units trained with Oja's rule instead of back-propagation.

    ``learn`` deflates the input by each unit's reconstruction, so successive
    units pick up successive principal directions. The input array is
    modified in place.
    """

    type_name = "oja"
    default_learning_rate = 1e-10

    def compute(self):
        self.output[:] = self._weighted_sum()

    def back_propagate(self):
        return self._mean_abs_error()

    def learn(self):
        x = self._require_input()
        for o in range(self.output_size):
            w = self.weight[:, o]
            phi = float(np.dot(w, x))
            w += self.learning_rate * phi * (x - phi * w)
            if np.any(np.isnan(w)):
                raise RuntimeError("NaN detected. Something went wrong.")
            x -= phi * w


class SExpLogLayer(AbstractLayer):
    """
    Parameter-free log-sum-exp layer, a smooth maximum over the inputs.
    """

    type_name = "sexplog"

    def __init__(self, input_size, output_size, **kwargs):
        if input_size != output_size:
            raise ValueError(
                f"SExpLog cannot modify the dimensionality - had {input_size}, "
                f"requests {output_size} outputs.")
        super().__init__(input_size, output_size, **kwargs)
        self._exp = np.zeros(self.input_size)

    def compute(self):
        x = self._require_input()
        np.exp(x, out=self._exp)
        self.w_sum[:] = np.sum(self._exp)
        self.output[:] = np.log(self.w_sum)

    def back_propagate(self):
        if self.prev_error is not None:
            self.prev_error += self._exp * np.sum(self.error / self.w_sum)
        return self._mean_abs_error()

    def learn(self):
        self.clear_gradient()
