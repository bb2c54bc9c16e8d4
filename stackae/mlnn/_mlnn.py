"""
Multi-layer network: a plain chain of layers, without tiling.
"""
import numpy as np

from ..base import BaseUnit
from ..common.utils import check_random_state
from ..layers import get_layer


class MLNN(BaseUnit):
    """
    Chain of layers where the input array of each layer is the output array
    of the layer below, and its previous-error array is that layer's error.

    Args:
        n_inputs (int): Length of the input vector
        n_outputs (int): Number of outputs
        *hidden (int): Size of every hidden layer, at least one
        layer (str): Layer type of every layer (see ``get_layer``)
        learning_rate (float, optional): Learning rate of every layer
        rng (np.random.Generator or int, optional): Random number generator
        verbose (bool): Whether ``fit`` prints its progress
    """

    def __init__(self, n_inputs, n_outputs, *hidden, layer="soft_sign",
                 learning_rate=None, rng=None, verbose=False):
        if len(hidden) < 1:
            raise ValueError(f"MLNN requires at least one hidden layer, got {list(hidden)}")

        rng = check_random_state(rng)
        self.n_inputs = int(n_inputs)
        self.n_outputs = int(n_outputs)
        self.verbose = verbose
        self.loss_curve_ = []

        kwargs = {"rng": rng}
        if learning_rate is not None:
            kwargs["learning_rate"] = learning_rate

        self.layers = []
        input_array = np.zeros(self.n_inputs)
        for size in list(hidden) + [self.n_outputs]:
            current = get_layer(layer, len(input_array), size, input_array=input_array, **kwargs)
            if self.layers:
                current.set_previous_error(self.layers[-1].error)
            self.layers.append(current)
            input_array = current.output

    @property
    def base(self):
        return self.layers[0]

    @property
    def top(self):
        return self.layers[-1]

    @property
    def output(self):
        return self.top.output

    def set_input(self, arr):
        """Copy ``arr`` into the input array of the base layer; ``arr`` itself is never bound."""
        arr = np.asarray(arr, dtype=float)
        if arr.shape != (self.n_inputs,):
            raise ValueError(f"Expected an input of {self.n_inputs} values, got shape {arr.shape}")
        self.base.input[:] = arr

    def compute(self):
        for layer in self.layers:
            layer.compute()
        return self.output

    def get_output_class(self):
        return int(np.argmax(self.output))

    def set_expected(self, output_number, value):
        if not -1.0 <= value <= 1.0:
            raise ValueError(f"Expected values must be in [-1, 1], got {value}")
        self.top.set_expected(output_number, value)

    def back_propagate(self, n_layers=None):
        """
        Back-propagate the error of the top layer through the top ``n_layers`` layers.

        The errors of the visited layers are cleared afterwards.

        Returns:
            float: Mean absolute error of the top layer
        """
        visited = self._top_layers(n_layers)
        err = visited[0].back_propagate()
        for layer in visited[1:]:
            layer.back_propagate()
        for layer in visited:
            layer.clear_error()
            layer.clear_previous_error()
        return err

    def learn(self, n_layers=None):
        for layer in self._top_layers(n_layers):
            layer.learn()

    def _top_layers(self, n_layers):
        n = len(self.layers) if n_layers is None else n_layers
        if n < 1:
            raise ValueError(f"n_layers must be at least 1, got {n_layers}")
        return self.layers[::-1][:n]

    def fit(self, X, y, epochs=10, verbose=None):
        """
        Train on class labels, one sample at a time.

        The target of a sample is +1 on the output of its class and -1
        elsewhere.

        Args:
            X (ndarray): Inputs of shape (n_samples, n_inputs)
            y (ndarray): Class indices of shape (n_samples,)
            epochs (int): Number of passes over the data
            verbose (bool, optional): Overrides ``self.verbose``

        Returns:
            self
        """
        X = np.asarray(X, dtype=float)
        y = np.asarray(y, dtype=int)
        verbose = self.verbose if verbose is None else verbose
        if X.ndim != 2 or X.shape[1] != self.n_inputs:
            raise ValueError(f"X must have shape (n_samples, {self.n_inputs}), got {X.shape}")
        if len(y) != len(X):
            raise ValueError(f"Got {len(y)} labels for {len(X)} samples")
        if np.any((y < 0) | (y >= self.n_outputs)):
            raise ValueError(f"Labels must be in [0, {self.n_outputs})")

        self.loss_curve_ = []
        self.start_training()
        try:
            for epoch in range(epochs):
                err = 0.0
                for x, label in zip(X, y):
                    self.set_input(x)
                    self.compute()
                    for o in range(self.n_outputs):
                        self.set_expected(o, 1.0 if o == label else -1.0)
                    err += self.back_propagate()
                    self.learn()
                epoch_loss = err / max(len(X), 1)
                self.loss_curve_.append(epoch_loss)
                if verbose:
                    print(f"Epoch {epoch + 1}/{epochs}, Error: {epoch_loss:.6f}")
        finally:
            self.stop_training()
        return self

    def predict(self, X):
        """Class index of every row of ``X``."""
        X = np.asarray(X, dtype=float)
        predictions = np.zeros(len(X), dtype=int)
        for i, x in enumerate(X):
            self.set_input(x)
            self.compute()
            predictions[i] = self.get_output_class()
        return predictions

    def start_training(self):
        for layer in self.layers:
            layer.start_training()
        self.is_training = True

    def stop_training(self):
        for layer in self.layers:
            layer.stop_training()
        self.is_training = False

    def __repr__(self):
        sizes = [self.n_inputs] + [layer.output_size for layer in self.layers]
        return f"MLNN({'-'.join(map(str, sizes))})"
