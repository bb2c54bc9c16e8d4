"""
Reduction strategies turning a spatial window of one channel into one value.
"""
import copy

import numpy as np


class PoolerSelector:
    """
    Base class of the pooling strategies.

    A selector reduces an ``input_width`` x ``input_height`` window of one
    channel to a scalar with ``select`` and routes an error on that scalar
    back into the window with ``back_propagate``.
    """

    def __init__(self, input_width, input_height):
        if input_width <= 0 or input_height <= 0:
            raise ValueError(
                f"Pooling window must be positive, got {input_width}x{input_height}")
        self.input_width = int(input_width)
        self.input_height = int(input_height)

    def window(self, block, channel, x, y):
        """Values of one channel in the window at (x, y), shape (width, height)."""
        block.check_patch(x, y, self.input_width, self.input_height)
        return block.values[x:x + self.input_width, y:y + self.input_height, channel]

    def _cell(self, flat_index):
        return divmod(int(flat_index), self.input_height)

    def select(self, block, channel, x, y):
        raise NotImplementedError

    def back_propagate(self, error, prev_err, block, x, y, z):
        """
        Add the share of ``error`` due to every window cell into ``prev_err``.

        Args:
            error (float): Error on the selected value
            prev_err (DataBlock): Error block of the pooled input
            block (DataBlock): The pooled input
            x (int): Left column of the window
            y (int): Top row of the window
            z (int): Channel
        """
        raise NotImplementedError

    def unselect(self, value):
        """Value given back to every window cell when decoding."""
        return value

    def learn(self):
        pass

    def clone(self):
        """Independent copy keeping the learned state."""
        return copy.copy(self)

    def __repr__(self):
        return f"{type(self).__name__}({self.input_width}, {self.input_height})"


class Max(PoolerSelector):
    def select(self, block, channel, x, y):
        return float(np.max(self.window(block, channel, x, y)))

    def back_propagate(self, error, prev_err, block, x, y, z):
        ox, oy = self._cell(np.argmax(self.window(block, z, x, y)))
        prev_err.add_value(z, x + ox, y + oy, error)


class Mean(PoolerSelector):
    def select(self, block, channel, x, y):
        return float(np.mean(self.window(block, channel, x, y)))

    def back_propagate(self, error, prev_err, block, x, y, z):
        e = error / (self.input_width * self.input_height)
        for ox in range(self.input_width):
            for oy in range(self.input_height):
                prev_err.add_value(z, x + ox, y + oy, e)


class Extremum(PoolerSelector):
    """Keeps the signed value of largest magnitude."""

    def select(self, block, channel, x, y):
        window = self.window(block, channel, x, y).ravel()
        return float(window[np.argmax(np.abs(window))])

    def back_propagate(self, error, prev_err, block, x, y, z):
        ox, oy = self._cell(np.argmax(np.abs(self.window(block, z, x, y))))
        prev_err.add_value(z, x + ox, y + oy, error)


class SExpLog(PoolerSelector):
    """
    Soft maximum ``log(sum(exp(w * x))) / w`` with a learned temperature ``w``.

    The temperature starts at e and is updated by ``learn`` with its own
    learning rate.
    """

    def __init__(self, input_width, input_height, learning_rate=1e-4):
        super().__init__(input_width, input_height)
        self.w = float(np.e)
        self.learning_rate = float(learning_rate)
        self.w_gradient = 0.0

    def select(self, block, channel, x, y):
        exp_sum = np.sum(np.exp(self.w * self.window(block, channel, x, y)))
        return float(np.log(exp_sum) / self.w)

    def back_propagate(self, error, prev_err, block, x, y, z):
        window = self.window(block, z, x, y)
        e_in = np.exp(self.w * window)
        exp_sum = np.sum(e_in)
        share = self.w * error / exp_sum * e_in
        for ox in range(self.input_width):
            for oy in range(self.input_height):
                prev_err.add_value(z, x + ox, y + oy, share[ox, oy])
        self.w_gradient += error * float(np.sum(window * e_in)) / exp_sum

    def learn(self):
        self.w -= self.learning_rate * self.w_gradient
        self.w_gradient = 0.0


SELECTOR_TYPES = {
    'max': Max,
    'mean': Mean,
    'extremum': Extremum,
    'sexplog': SExpLog,
}


def get_selector(name, input_width, input_height, **kwargs):
    """
    Factory function to get pooling selectors.

    Args:
        name (str): Selector type ('max', 'mean', 'extremum', 'sexplog')
        input_width (int): Width of the pooled window
        input_height (int): Height of the pooled window

    Returns:
        PoolerSelector instance
    """
    try:
        selector_type = SELECTOR_TYPES[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown selector: {name}") from None
    return selector_type(input_width, input_height, **kwargs)
