"""
Tiling of one unit over a grid of input positions with shared parameters.
"""
from ..base import BaseUnit
from ..common import DataBlock


class Convolution(BaseUnit):
    """
    Applies one unit at every position of an ``output_width`` x
    ``output_height`` grid.

    Position (ox, oy) reads the input window whose origin is
    ``(input_x + ox * offset_x, input_y + oy * offset_y)`` and writes cell
    (ox, oy) of the output block. The unit, and therefore its parameters, is
    the same at every position.

    Args:
        base (AutoEncoder): The tiled unit
        output_width (int): Number of positions along x
        output_height (int): Number of positions along y
        offset_x (int): Stride along x
        offset_y (int): Stride along y
    """

    def __init__(self, base, output_width=1, output_height=1, offset_x=1, offset_y=1):
        if output_width < 1 or output_height < 1:
            raise ValueError(
                f"Output grid must be at least 1x1, got {output_width}x{output_height}")
        if offset_x < 1 or offset_y < 1:
            raise ValueError(f"Offsets must be at least 1, got ({offset_x}, {offset_y})")

        self.base = base
        self.output_width = int(output_width)
        self.output_height = int(output_height)
        self.offset_x = int(offset_x)
        self.offset_y = int(offset_y)

        self.input = None
        self.input_x = 0
        self.input_y = 0
        self.prev_err = None

        self.output = DataBlock(self.output_width, self.output_height, base.output_depth)
        self.error = DataBlock(self.output_width, self.output_height, base.output_depth)
        self.base.set_output(self.output, 0, 0)
        self.base.set_error(self.error)

    # Geometry

    @property
    def input_patch_width(self):
        return (self.output_width - 1) * self.offset_x + self.base.input_width

    @property
    def input_patch_height(self):
        return (self.output_height - 1) * self.offset_y + self.base.input_height

    @property
    def input_patch_depth(self):
        return self.base.input_depth

    @property
    def output_depth(self):
        return self.output.depth

    def _positions(self):
        for ox in range(self.output_width):
            ix = self.input_x + ox * self.offset_x
            for oy in range(self.output_height):
                yield ox, oy, ix, self.input_y + oy * self.offset_y

    def _place(self, ox, oy, ix, iy):
        self.base.set_input(self.input, ix, iy)
        self.base.set_output(self.output, ox, oy)

    def _require_input(self):
        if self.input is None:
            raise RuntimeError(f"{self}: no input bound, call set_input() first")

    # Computing

    def encode(self):
        """Encode every position, then point the unit back at cell (0, 0)."""
        self._require_input()
        for ox, oy, ix, iy in self._positions():
            self._place(ox, oy, ix, iy)
            self.base.encode()
        self.base.set_output(self.output, 0, 0)

    def rebuild_input(self, clear_inputs):
        """
        Decode every position and paste the reconstructions into the input.

        Args:
            clear_inputs (bool): Clear the input first and average overlapping
                reconstructions afterwards; otherwise they are added to the
                current content
        """
        self._require_input()
        if clear_inputs:
            self.input.clear()
        for ox, oy, ix, iy in self._positions():
            self.base.set_output(self.output, ox, oy)
            self.base.decode()
            self.base.paste_decoded(self.input, ix, iy)
        if clear_inputs:
            self.input.normalize_weights()

    # Learning

    def train(self, label=None):
        """
        Run one training step of the unit at every position.

        Args:
            label (int, optional): Class label, for supervised units

        Returns:
            float: Mean of the errors over the positions
        """
        self._require_input()
        if label is not None and not self.base.is_supervised:
            raise ValueError(f"{self.base} is not supervised, cannot train with a label")

        err = 0.0
        for ox, oy, ix, iy in self._positions():
            self._place(ox, oy, ix, iy)
            err += self.base.train() if label is None else self.base.train(label)
        return err / (self.output_width * self.output_height)

    def back_propagate(self):
        """
        Accumulate the gradients due to the whole error block.

        Every position is encoded again before its error goes through the
        unit, so the unit's activations match the position.
        """
        self._require_input()
        err = 0.0
        for ox, oy, ix, iy in self._positions():
            self._place(ox, oy, ix, iy)
            self.base.encode()
            err += self.base.back_propagate()
        self.base.set_output(self.output, 0, 0)
        return err / (self.output_width * self.output_height)

    def learn(self):
        """Apply the gradients accumulated over all positions, once."""
        self.base.learn()

    # Binding

    def set_input(self, db, x=0, y=0):
        if db.depth != self.input_patch_depth:
            raise ValueError(
                f"{self} expects an input of depth {self.input_patch_depth}, got {db.depth}")
        db.check_patch(x, y, self.input_patch_width, self.input_patch_height)
        self.input = db
        self.input_x = x
        self.input_y = y
        self.base.set_input(db, x, y)

    def input_patch(self):
        """Flattened copy of the input region read by the stage."""
        self._require_input()
        return self.input.patch_to_array(self.input_x, self.input_y,
                                         self.input_patch_width, self.input_patch_height)

    def set_error(self, db):
        if db.shape != self.output.shape:
            raise ValueError(f"Error {db} does not match the output {self.output}")
        self.error = db
        self.base.set_error(db)

    def set_prev_error(self, db):
        self._require_input()
        self.prev_err = db
        self.base.set_prev_error(db)

    def clear_error(self):
        self.error.clear()
        if self.prev_err is not None:
            self.prev_err.clear()
        self.base.clear_error()

    def resize(self, output_width, output_height):
        """Change the grid size; the output and error blocks are replaced."""
        self.output_width = int(output_width)
        self.output_height = int(output_height)
        self.output = DataBlock(self.output_width, self.output_height, self.base.output_depth)
        self.error = DataBlock(self.output_width, self.output_height, self.base.output_depth)
        self.base.set_output(self.output, 0, 0)
        self.base.set_error(self.error)

    # Features

    def fill_feature_vector(self, feature_vector, pos):
        """Copy the depth vector at the centre of the grid into ``feature_vector[pos:]``."""
        cx = self.output_width // 2
        cy = self.output_height // 2
        feature_vector[pos:pos + self.output_depth] = self.output.values[cx, cy]

    def delete_features(self, *numbers):
        if self.output_width != 1 or self.output_height != 1:
            raise NotImplementedError("Cannot delete features of convolved convolutions")
        self.base.delete_features(*numbers)
        self.resize(1, 1)

    def start_training(self):
        self.base.start_training()
        self.is_training = True

    def stop_training(self):
        self.base.stop_training()
        self.is_training = False

    def __repr__(self):
        return f"{self.base}+{self.offset_x}+{self.offset_y}"
