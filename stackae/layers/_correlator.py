"""
Layers whose output is a correlation with a learned pattern instead of a
weighted sum.
"""
import numpy as np

from ._base import Layer
from ..common.utils import copy_matrix, sigmoid


class Correlator(Layer):
    """
    Each output is the Pearson correlation between the input and one pattern.

    Patterns are stored column-wise in ``pattern`` (input_size x output_size)
    and are rescaled after every update so that their largest absolute value
    is one. An output is zero when either the input or the pattern is
    constant.
    """

    type_name = "correlator"
    default_learning_rate = 1e-2

    def __init__(self, input_size, output_size, pattern=None, input_array=None,
                 learning_rate=None, rng=None):
        super().__init__(input_size, output_size, input_array=input_array,
                         learning_rate=learning_rate, rng=rng)
        if pattern is not None:
            self.pattern = copy_matrix(pattern, (self.input_size, self.output_size))
        else:
            self.pattern = self._rng.random((self.input_size, self.output_size))
        self.pattern_gradient = np.zeros((self.input_size, self.output_size))

    def _statistics(self):
        x = self._require_input()
        xc = x - np.mean(x)
        pc = self.pattern - np.mean(self.pattern, axis=0)
        s_xx = float(np.dot(xc, xc))
        s_pp = np.sum(pc * pc, axis=0)
        s_xp = xc @ pc
        return xc, pc, s_xx, s_pp, s_xp

    def compute(self):
        _, _, s_xx, s_pp, s_xp = self._statistics()
        bot = np.sqrt(s_xx * s_pp)
        self.output[:] = np.divide(s_xp, bot, out=np.zeros(self.output_size), where=bot != 0)

    def back_propagate(self):
        xc, pc, s_xx, s_pp, s_xp = self._statistics()
        if s_xx == 0.0:
            return self._mean_abs_error()

        for o in np.flatnonzero(s_pp != 0.0):
            root = np.sqrt(s_xx * s_pp[o])
            r = s_xp[o] / root
            err = self.error[o]
            # Centering is linear and both centred vectors sum to zero, so the
            # derivative w.r.t. the raw values equals the one w.r.t. the centred ones.
            self.pattern_gradient[:, o] += err * (xc / root - r * pc[:, o] / s_pp[o])
            if self.prev_error is not None:
                self.prev_error += err * (pc[:, o] / root - r * xc / s_xx)
        return self._mean_abs_error()

    def learn(self):
        self.pattern -= self.learning_rate * self.pattern_gradient
        self.clear_gradient()
        top = np.max(np.abs(self.pattern))
        if top != 0.0:
            self.pattern /= top

    def clear_gradient(self):
        self.pattern_gradient.fill(0.0)

    def clone(self):
        return type(self)(self.input_size, self.output_size, pattern=self.pattern,
                          input_array=self.input, learning_rate=self.learning_rate)


class WeightedCorrelator(Layer):
    """
    Pearson correlation where every input element is weighted by a learned
    importance, passed through a sigmoid gate.

    Args:
        input_size (int): Length of the input array
        output_size (int): Number of patterns
        pattern (ndarray, optional): Initial patterns (input_size x output_size)
        importance (ndarray, optional): Initial importance logits, zeros if omitted
        weighting_rate (float, optional): Learning rate of the importance logits
    """

    type_name = "weighted_correlator"
    default_learning_rate = 1e-3

    def __init__(self, input_size, output_size, pattern=None, importance=None,
                 input_array=None, learning_rate=None, weighting_rate=1e-3, rng=None):
        super().__init__(input_size, output_size, input_array=input_array,
                         learning_rate=learning_rate, rng=rng)
        shape = (self.input_size, self.output_size)
        self.pattern = (copy_matrix(pattern, shape) if pattern is not None
                        else self._rng.random(shape))
        self.importance = (copy_matrix(importance, shape) if importance is not None
                           else np.zeros(shape))
        self.weighting_rate = float(weighting_rate)
        self.pattern_gradient = np.zeros(shape)
        self.importance_gradient = np.zeros(shape)

    def set_weighting_rate(self, rate):
        self.weighting_rate = float(rate)

    def _statistics(self):
        x = self._require_input()
        xc = x - np.mean(x)
        gate = sigmoid(self.importance)
        a = xc[:, np.newaxis] * gate
        b = self.pattern * gate
        return xc, gate, a, b

    def compute(self):
        _, _, a, b = self._statistics()
        s_ab = np.sum(a * b, axis=0)
        bot = np.sqrt(np.sum(a * a, axis=0) * np.sum(b * b, axis=0))
        self.output[:] = np.divide(s_ab, bot, out=np.zeros(self.output_size), where=bot != 0)

    def back_propagate(self):
        xc, gate, a, b = self._statistics()
        s_aa = np.sum(a * a, axis=0)
        s_bb = np.sum(b * b, axis=0)
        s_ab = np.sum(a * b, axis=0)

        for o in np.flatnonzero(s_aa * s_bb != 0.0):
            root = np.sqrt(s_aa[o] * s_bb[o])
            r = s_ab[o] / root
            err = self.error[o]
            d_a = b[:, o] / root - r * a[:, o] / s_aa[o]
            d_b = a[:, o] / root - r * b[:, o] / s_bb[o]
            g = gate[:, o]

            self.pattern_gradient[:, o] += err * d_b * g
            d_gate = d_a * xc + d_b * self.pattern[:, o]
            self.importance_gradient[:, o] += err * d_gate * g * (1.0 - g)

            if self.prev_error is not None:
                d_xc = d_a * g
                self.prev_error += err * (d_xc - np.mean(d_xc))
        return self._mean_abs_error()

    def learn(self):
        self.pattern -= self.learning_rate * self.pattern_gradient
        self.importance -= self.weighting_rate * self.importance_gradient
        self.clear_gradient()
        top = np.max(np.abs(self.pattern))
        if top != 0.0:
            self.pattern /= top

    def clear_gradient(self):
        self.pattern_gradient.fill(0.0)
        self.importance_gradient.fill(0.0)

    def clone(self):
        return WeightedCorrelator(self.input_size, self.output_size, pattern=self.pattern,
                                  importance=self.importance, input_array=self.input,
                                  learning_rate=self.learning_rate,
                                  weighting_rate=self.weighting_rate)
