"""
Stacked convolutional auto-encoder: a chain of convolution stages.
"""
import warnings

import numpy as np
import pandas as pd

from ._convolution import Convolution
from ._reconstruction import (
    euclidean_distance,
    scale_offset_invariant_distance,
    normalized_correlation_distance
)
from ..base import BaseUnit
from ..common import DataBlock
from ..common.utils import check_random_state


class SCAE(BaseUnit):
    """
    Stacked convolutional auto-encoder.

    Stage 0 (``base``) reads the input block, every following stage reads
    the output block of the stage below it, and the last stage (``top``)
    always has a 1x1 grid. Adding a stage grows the grids of all the stages
    below it so that the new stage's window is fully covered.

    Args:
        unit (AutoEncoder): Unit of the first stage
        offset_x (int): Stride of the first stage along x
        offset_y (int): Stride of the first stage along y
        verbose (bool): Whether ``fit`` prints its progress
    """

    EUCLIDEAN = 1
    SCALE_OFFSET_INVARIANT = 2
    CORRELATION = 4

    def __init__(self, unit, offset_x=1, offset_y=1, verbose=False):
        self.stages = [Convolution(unit, 1, 1, offset_x, offset_y)]
        self.verbose = verbose
        self.loss_curve_ = []
        self.n_iter_ = 0
        self._feature_vector = None
        self.set_input(self._new_input_block())

    @property
    def base(self):
        return self.stages[0]

    @property
    def top(self):
        return self.stages[-1]

    @property
    def input_patch_width(self):
        return self.base.input_patch_width

    @property
    def input_patch_height(self):
        return self.base.input_patch_height

    @property
    def input_patch_depth(self):
        return self.base.input_patch_depth

    @property
    def output_depth(self):
        return self.top.output_depth

    def _new_input_block(self):
        return DataBlock(self.input_patch_width, self.input_patch_height, self.input_patch_depth)

    # Structure

    def add_layer(self, unit, offset_x=1, offset_y=1):
        """
        Stack a new stage on top.

        Raises:
            ValueError: if ``unit`` needs binary inputs and the current top does not
                produce them
        """
        if unit.needs_binary_input and not self.top.base.has_binary_output:
            raise ValueError(
                f"{type(unit).__name__} requires binary inputs, but "
                f"{type(self.top.base).__name__} has real-valued outputs. "
                f"You could insert a binary unit to solve this.")

        self.stages.append(Convolution(unit, 1, 1, offset_x, offset_y))
        for i in range(len(self.stages) - 1, 0, -1):
            upper = self.stages[i]
            lower = self.stages[i - 1]
            lower.resize(upper.input_patch_width, upper.input_patch_height)
            upper.set_input(lower.output)
        self._feature_vector = None
        self.set_input(self._new_input_block())

    def delete_features(self, *numbers):
        self.top.delete_features(*numbers)
        self._feature_vector = None

    # Input placement

    def set_input(self, db, x=0, y=0):
        self.base.set_input(db, x, y)

    def center_input(self, db, cx, cy):
        """Place the input so that its centre is at (cx, cy) of ``db``."""
        self.set_input(db, cx - self.input_patch_width // 2, cy - self.input_patch_height // 2)

    # Computing

    def forward(self):
        """
        Encode all stages, bottom to top.

        Returns:
            ndarray: The code of the top stage (a view)
        """
        for stage in self.stages:
            stage.encode()
        return self.top.output.get_values(0, 0)

    def backward(self):
        """
        Reconstruct all stages, top to bottom.

        Intermediate inputs are cleared and overlap-averaged; the reconstruction
        of stage 0 is added to the external input block without clearing it.
        """
        for s in range(len(self.stages) - 1, -1, -1):
            self.stages[s].rebuild_input(s != 0)

    def highest_output_index(self):
        return int(np.argmax(self.top.output.get_values(0, 0)))

    @property
    def feature_length(self):
        return sum(stage.output_depth for stage in self.stages)

    def get_central_multilayer_features(self):
        """
        Concatenate the central depth vector of every stage, bottom to top.

        The returned array is reused by the next call.
        """
        if self._feature_vector is None or len(self._feature_vector) != self.feature_length:
            self._feature_vector = np.zeros(self.feature_length)
        pos = 0
        for stage in self.stages:
            stage.fill_feature_vector(self._feature_vector, pos)
            pos += stage.output_depth
        return self._feature_vector

    # Training

    def train(self):
        """Encode the lower stages and train the top one on their output."""
        for stage in self.stages[:-1]:
            stage.encode()
        return self.top.train()

    def train_supervised(self, label):
        if not self.top.base.is_supervised:
            raise ValueError("the top layer is not supervised, cannot use train_supervised()")
        for stage in self.stages[:-1]:
            stage.encode()
        return self.top.train(label)

    def training_done(self):
        self.top.base.training_done()

    def fit(self, blocks, labels=None, epochs=1, random_state=None, verbose=None):
        """
        Train the top stage on random placements in a set of blocks.

        Every epoch visits each block once, in a random order, at a random
        position where the input fits.

        Args:
            blocks (list of DataBlock): Training blocks
            labels (list of int, optional): One label per block, for supervised training
            epochs (int): Number of passes over the blocks
            random_state (None, int or np.random.Generator): Source of the placements
            verbose (bool, optional): Overrides ``self.verbose``

        Returns:
            self
        """
        blocks = list(blocks)
        verbose = self.verbose if verbose is None else verbose
        if labels is not None and len(labels) != len(blocks):
            raise ValueError(f"Got {len(labels)} labels for {len(blocks)} blocks")
        if not blocks:
            warnings.warn("SCAE.fit() called without any sample, nothing to train",
                          RuntimeWarning)
            return self

        rng = check_random_state(random_state)
        pw, ph = self.input_patch_width, self.input_patch_height
        self.loss_curve_ = []

        self.start_training()
        try:
            for epoch in range(epochs):
                err = 0.0
                for i in rng.permutation(len(blocks)):
                    block = blocks[i]
                    if block.width < pw or block.height < ph:
                        raise ValueError(f"{block} is smaller than the {pw}x{ph} input patch")
                    x = int(rng.integers(0, block.width - pw + 1))
                    y = int(rng.integers(0, block.height - ph + 1))
                    self.set_input(block, x, y)
                    if labels is None:
                        err += self.train()
                    else:
                        err += self.train_supervised(labels[i])

                epoch_loss = err / len(blocks)
                self.loss_curve_.append(epoch_loss)
                if verbose:
                    print(f"Epoch {epoch + 1}/{epochs}, Error: {epoch_loss:.6f}")
        finally:
            self.stop_training()

        self.n_iter_ = len(self.loss_curve_)
        if verbose:
            print(f"Training completed in {self.n_iter_} epochs")
        return self

    # Evaluation

    def extract_features(self):
        """
        Picture of what every top unit encodes.

        Each top unit is activated alone and decoded down to the input. The
        reconstructions are tiled on a grid with one-pixel gaps and clipped to
        [-1, 1].

        Returns:
            DataBlock
        """
        n_features = self.top.output_depth
        f_w = int(np.sqrt(n_features))
        f_h = f_w
        while f_w * f_h < n_features:
            f_w += 1

        pw, ph = self.input_patch_width, self.input_patch_height
        out = DataBlock(f_w * (pw + 1) - 1, f_h * (ph + 1) - 1, self.input_patch_depth)
        tmp = self._new_input_block()
        self.set_input(tmp)

        n = 0
        for y in range(f_h):
            for x in range(f_w):
                if n >= n_features:
                    break
                self.top.output.clear()
                self.top.base.activate_output(n, True)
                for stage in reversed(self.stages):
                    stage.rebuild_input(True)
                tmp.copy_to(out, x * (pw + 1), y * (ph + 1))
                n += 1

        out.normalize_weights()
        np.clip(out.values, -1.0, 1.0, out=out.values)
        return out

    def get_reconstruction_score(self, block, offset_x=1, offset_y=1,
                                 mask=EUCLIDEAN | SCALE_OFFSET_INVARIANT | CORRELATION):
        """
        Compare every window of ``block`` with its reconstruction.

        Args:
            block (DataBlock): Block to evaluate
            offset_x (int): Stride of the sliding window along x
            offset_y (int): Stride of the sliding window along y
            mask (int): Combination of ``EUCLIDEAN``, ``SCALE_OFFSET_INVARIANT``
                and ``CORRELATION``

        Returns:
            pd.Series: ``<metric>_mean`` and ``<metric>_variance`` for every
            selected metric
        """
        metrics = {}
        if mask & self.EUCLIDEAN:
            depth = self.input_patch_depth
            metrics["euclidean"] = lambda a, b: euclidean_distance(a, b, depth=depth)
        if mask & self.SCALE_OFFSET_INVARIANT:
            metrics["scale_offset_invariant"] = scale_offset_invariant_distance
        if mask & self.CORRELATION:
            metrics["correlation"] = normalized_correlation_distance
        if not metrics:
            raise ValueError(f"Mask {mask} selects no distance")
        if offset_x < 1 or offset_y < 1:
            raise ValueError(f"Offsets must be at least 1, got ({offset_x}, {offset_y})")

        pw, ph = self.input_patch_width, self.input_patch_height
        if block.width < pw or block.height < ph:
            raise ValueError(f"{block} is smaller than the {pw}x{ph} input patch")

        scratch = self._new_input_block()
        rows = []
        for x in range(0, block.width - pw + 1, offset_x):
            for y in range(0, block.height - ph + 1, offset_y):
                self.set_input(block, x, y)
                original = block.patch_to_array(x, y, pw, ph)
                self.forward()
                self.set_input(scratch)
                for stage in reversed(self.stages):
                    stage.rebuild_input(True)
                rebuilt = scratch.patch_to_array(0, 0, pw, ph)
                rows.append({name: fn(original, rebuilt) for name, fn in metrics.items()})

        scores = pd.DataFrame(rows, columns=list(metrics))
        return pd.concat([scores.mean().add_suffix("_mean"),
                          scores.var(ddof=0).add_suffix("_variance")])

    # Training mode

    def start_training(self):
        for stage in self.stages:
            stage.start_training()
        self.is_training = True

    def stop_training(self):
        for stage in self.stages:
            stage.stop_training()
        self.is_training = False

    def __repr__(self):
        return "(" + " | ".join(repr(stage) for stage in self.stages) + ")"
