"""
Base class of the units tiled by a convolution stage.
"""
import numpy as np

from ..base import BaseUnit
from ..common import DataBlock


class AutoEncoder(BaseUnit):
    """
    An encoder/decoder pair working on an ``input_width`` x ``input_height`` x
    ``input_depth`` window of an input block and writing one depth vector of
    an output block.

    The unit owns no spatial data: ``input``, ``output``, ``error`` and
    ``prev_err`` are blocks owned by the stage using it, and ``set_input`` /
    ``set_output`` only move the window and the output cell around. The
    encoder reads a flattened copy of the window (``input_array``) and writes
    straight into the output block; the decoder reads the encoder's output and
    writes into ``decoded``.
    """

    type_name = "[AE]"
    has_binary_output = False
    needs_binary_input = False
    is_supervised = False
    is_denoising = False

    def __init__(self, input_width, input_height, input_depth, output_depth):
        if input_width <= 0 or input_height <= 0 or input_depth <= 0:
            raise ValueError(
                f"Input dimensions must be positive, got "
                f"{input_width}x{input_height}x{input_depth}")
        if output_depth <= 0:
            raise ValueError(f"Output depth must be positive, got {output_depth}")

        self.input_width = int(input_width)
        self.input_height = int(input_height)
        self.input_depth = int(input_depth)
        self.input_length = self.input_width * self.input_height * self.input_depth
        self.output_depth = int(output_depth)

        self.input = DataBlock(self.input_width, self.input_height, self.input_depth)
        self.input_x = 0
        self.input_y = 0
        self.input_array = np.zeros(self.input_length)

        self.output = DataBlock(1, 1, self.output_depth)
        self.output_x = 0
        self.output_y = 0
        self.error = DataBlock(1, 1, self.output_depth)
        self.prev_err = None

        self.decoded = np.zeros(self.input_length)
        self._patch_error = np.zeros(self.input_length)

        self.encoder = None
        self.decoder = None

    @property
    def input_size(self):
        return self.input_length

    # Computing

    def _load_input(self):
        self.input.patch_to_array(self.input_x, self.input_y, self.input_width,
                                  self.input_height, out=self.input_array)

    def encode(self):
        self._load_input()
        self.encoder.compute()

    def decode(self):
        self.decoder.compute()

    def get_output_array(self):
        """Depth vector of the current output cell (a view)."""
        return self.output.get_values(self.output_x, self.output_y)

    # Learning

    def train(self):
        """
        Run one reconstruction step on the current window and update both layers.

        Returns:
            float: Mean absolute reconstruction error
        """
        self.encode()
        self.decode()
        self.decoder.set_expected_values(self.input_array)
        err = self.decoder.back_propagate()
        self.encoder.back_propagate()
        self.encoder.clear_error()
        self.decoder.clear_error()
        self.encoder.learn()
        self.decoder.learn()
        return err

    def back_propagate(self):
        """
        Back-propagate the error of the current output cell through the encoder.

        The error reaching the input window is added into ``prev_err`` with
        overlap counting.
        """
        if self.prev_err is not None:
            self._patch_error.fill(0.0)
        err = self.encoder.back_propagate()
        if self.prev_err is not None:
            self.prev_err.weighted_patch_paste(self._patch_error, self.input_x, self.input_y,
                                               self.input_width, self.input_height)
        return err

    def learn(self):
        self.encoder.learn()

    def clear_gradient(self):
        self.encoder.clear_gradient()
        self.decoder.clear_gradient()

    def training_done(self):
        """Hook called once the unit will not be trained any more."""

    # Binding

    def set_input(self, db, x=0, y=0):
        """Place the input window on ``db`` with its origin at (x, y)."""
        if db.depth != self.input_depth:
            raise ValueError(
                f"{self} expects an input of depth {self.input_depth}, got {db.depth}")
        db.check_patch(x, y, self.input_width, self.input_height)
        self.input = db
        self.input_x = x
        self.input_y = y
        self._load_input()

    def set_output(self, db, x=0, y=0):
        """Write the code into cell (x, y) of ``db``."""
        if db.depth != self.output_depth:
            raise ValueError(
                f"{self} has an output depth of {self.output_depth}, got a block of depth "
                f"{db.depth}")
        if not (0 <= x < db.width and 0 <= y < db.height):
            raise ValueError(f"Output cell ({x}, {y}) is outside of {db}")
        self.output = db
        self.output_x = x
        self.output_y = y
        if self.encoder is None:
            return

        self.encoder.set_output_array(db.get_values(x, y))
        if self.error.width == db.width and self.error.height == db.height:
            self.encoder.set_error(self.error.get_values(x, y))
        if self.decoder is not None:
            self.decoder.set_input_array(self.encoder.output)
            self.decoder.set_previous_error(self.encoder.error)

    def set_prev_error(self, db):
        """Error block of the input, receiving the error back-propagated by this unit."""
        if (db.width, db.height, db.depth) != (self.input.width, self.input.height,
                                               self.input_depth):
            raise ValueError(f"Previous error {db} does not match the input {self.input}")
        self.prev_err = db
        if self.encoder is not None:
            self.encoder.set_previous_error(self._patch_error)

    def set_error(self, db):
        if (db.width, db.height, db.depth) != (self.output.width, self.output.height,
                                               self.output_depth):
            raise ValueError(f"Error {db} does not match the output {self.output}")
        self.error = db
        if self.encoder is None:
            return
        self.encoder.set_error(db.get_values(self.output_x, self.output_y))
        if self.decoder is not None:
            self.decoder.set_previous_error(self.encoder.error)

    def clear_error(self):
        self.encoder.clear_error()
        self.encoder.clear_previous_error()
        self.decoder.clear_error()

    def set_encoder(self, encoder):
        if encoder.input_size != self.input_length or encoder.output_size != self.output_depth:
            raise ValueError(
                f"Encoder {encoder} does not map {self.input_length} inputs to "
                f"{self.output_depth} outputs")
        self.encoder = encoder
        encoder.set_input_array(self.input_array)
        encoder.set_previous_error(None if self.prev_err is None else self._patch_error)
        self.set_output(self.output, self.output_x, self.output_y)

    def set_decoder(self, decoder):
        if self.encoder is None:
            raise ValueError("The encoder must be set before the decoder")
        if decoder.input_size != self.output_depth or decoder.output_size != self.input_length:
            raise ValueError(
                f"Decoder {decoder} does not map {self.output_depth} inputs to "
                f"{self.input_length} outputs")
        self.decoder = decoder
        decoder.set_input_array(self.encoder.output)
        decoder.set_output_array(self.decoded)
        decoder.set_previous_error(self.encoder.error)

    def set_learning_rate(self, learning_rate):
        if self.encoder is not None:
            self.encoder.set_learning_rate(learning_rate)
        if self.decoder is not None:
            self.decoder.set_learning_rate(learning_rate)

    # Utility

    def paste_decoded(self, db, x, y):
        """Add the reconstruction of the window into ``db`` at (x, y), counting overlaps."""
        db.weighted_patch_paste(self.decoded, x, y, self.input_width, self.input_height)
        self._load_input()

    def activate_output(self, output_number, activated):
        self.output.set_value(output_number, self.output_x, self.output_y,
                              1.0 if activated else 0.0)

    def delete_features(self, *numbers):
        """
        Remove code units, both as encoder outputs and decoder inputs.

        The output and error blocks are replaced by 1x1 blocks of the new depth;
        the stage owning the unit is expected to bind its own again.
        """
        for num in sorted(numbers, reverse=True):
            self.encoder.delete_output(num)
            self.decoder.delete_input(num)
        self.output_depth -= len(numbers)
        self.error = DataBlock(1, 1, self.output_depth)
        self.set_output(DataBlock(1, 1, self.output_depth), 0, 0)

    def start_training(self):
        for layer in (self.encoder, self.decoder):
            if layer is not None:
                layer.start_training()
        self.is_training = True

    def stop_training(self):
        for layer in (self.encoder, self.decoder):
            if layer is not None:
                layer.stop_training()
        self.is_training = False

    def clone(self):
        raise NotImplementedError(f"{type(self).__name__} cannot be cloned")

    def __repr__(self):
        return f"{self.type_name}:{self.input_width}x{self.input_height}x{self.output_depth}"
