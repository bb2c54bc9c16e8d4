"""
Three-dimensional data block used as input, output and error storage.
"""
import numpy as np


class DataBlock:
    """
    Dense width x height x depth array of activations.

    Values are stored position-major: ``values[x, y]`` is the depth vector of
    one spatial cell and is returned as a view, so layers can write into a
    block directly. A parallel ``weight`` array counts, per spatial cell, how
    many patches were pasted into it during a reconstruction.
    """

    def __init__(self, width, height, depth, values=None):
        """
        Initialize an empty (zero) block, or one holding a copy of ``values``.

        Args:
            width (int): Number of columns
            height (int): Number of rows
            depth (int): Number of channels
            values (ndarray, optional): Initial values of shape (width, height, depth)
        """
        if width < 0 or height < 0 or depth < 0:
            raise ValueError(
                f"DataBlock dimensions must be non-negative, got {width}x{height}x{depth}")

        self.width = int(width)
        self.height = int(height)
        self.depth = int(depth)
        self.values = np.zeros((self.width, self.height, self.depth))
        self.weight = np.zeros((self.width, self.height))

        if values is not None:
            values = np.asarray(values, dtype=float)
            if values.shape != self.shape:
                raise ValueError(
                    f"Cannot fill a {self.shape} block with values of shape {values.shape}")
            self.values[...] = values

    @classmethod
    def from_array(cls, values):
        """Build a block from a (width, height, depth) array."""
        values = np.asarray(values, dtype=float)
        if values.ndim != 3:
            raise ValueError(f"Expected a 3D array, got shape {values.shape}")
        return cls(*values.shape, values=values)

    @property
    def shape(self):
        """Tuple (width, height, depth)."""
        return (self.width, self.height, self.depth)

    @property
    def size(self):
        """Total number of scalars."""
        return self.values.size

    # Bounds checking

    def _check_position(self, x, y):
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise ValueError(
                f"Position ({x}, {y}) is outside of a {self.width}x{self.height} block")

    def _check_channel(self, channel):
        if not 0 <= channel < self.depth:
            raise ValueError(
                f"Channel {channel} is outside of a block of depth {self.depth}")

    def check_patch(self, pos_x, pos_y, width, height):
        """
        Verify that a width x height patch placed at (pos_x, pos_y) fits.

        Raises:
            ValueError: if any part of the patch lies outside the block
        """
        if pos_x < 0 or pos_y < 0:
            raise ValueError(f"Patch origin ({pos_x}, {pos_y}) must be non-negative")
        if pos_x + width > self.width or pos_y + height > self.height:
            raise ValueError(
                f"A {width}x{height} patch at ({pos_x}, {pos_y}) does not fit "
                f"in a {self.width}x{self.height} block")

    # Accessors

    def get_value(self, channel, x, y):
        self._check_position(x, y)
        self._check_channel(channel)
        return float(self.values[x, y, channel])

    def set_value(self, channel, x, y, v):
        self._check_position(x, y)
        self._check_channel(channel)
        self.values[x, y, channel] = v

    def add_value(self, channel, x, y, v):
        """Add ``v`` to one cell and count the contribution."""
        self._check_position(x, y)
        self._check_channel(channel)
        self.values[x, y, channel] += v
        self.weight[x, y] += 1

    def get_values(self, x, y):
        """Return the depth vector at (x, y) as a writable view."""
        self._check_position(x, y)
        return self.values[x, y]

    def set_values(self, x, y, z):
        self._check_position(x, y)
        z = np.asarray(z, dtype=float)
        if z.shape != (self.depth,):
            raise ValueError(f"Expected {self.depth} values, got {z.shape}")
        self.values[x, y] = z

    # Utility

    def normalize(self):
        """Rescale every value linearly into [-1, 1]."""
        v_min = self.values.min(initial=np.inf)
        v_max = self.values.max(initial=-np.inf)
        if v_max == v_min:
            return
        self.values[...] = 2 * (self.values - v_min) / (v_max - v_min) - 1

    def normalize_weights(self):
        """
        Divide every cell by the number of contributions it received.

        Cells with a count of zero (not covered) or one are left as they are;
        every divided cell gets its count reset to one.
        """
        mask = (self.weight != 0.0) & (self.weight != 1.0)
        self.values[mask] /= self.weight[mask][:, np.newaxis]
        self.weight[mask] = 1.0

    def clear(self):
        self.values.fill(0.0)
        self.weight.fill(0.0)

    def copy(self):
        db = DataBlock(self.width, self.height, self.depth)
        self.copy_to(db, 0, 0)
        return db

    def copy_to(self, dst, pos_x, pos_y):
        """Copy values and counts into ``dst`` with this block's origin at (pos_x, pos_y)."""
        if dst.depth != self.depth:
            raise ValueError(f"Depth mismatch: {self.depth} != {dst.depth}")
        dst.check_patch(pos_x, pos_y, self.width, self.height)
        dst.values[pos_x:pos_x + self.width, pos_y:pos_y + self.height] = self.values
        dst.weight[pos_x:pos_x + self.width, pos_y:pos_y + self.height] = self.weight

    def weighted_paste(self, source, start, x, y):
        """Add ``depth`` values of ``source`` (from index ``start``) to cell (x, y)."""
        self._check_position(x, y)
        source = np.asarray(source)
        if source.shape[0] < start + self.depth:
            raise ValueError(
                f"Source of length {source.shape[0]} is too short to paste from {start}")
        self.values[x, y] += source[start:start + self.depth]
        self.weight[x, y] += 1.0

    def weighted_patch_paste(self, arr, pos_x, pos_y, width, height):
        """Add a flattened patch into the block, counting every touched cell."""
        arr = np.asarray(arr)
        if arr.size != width * height * self.depth:
            raise ValueError(
                f"Expected {width * height * self.depth} values, got {arr.size}")
        self.check_patch(pos_x, pos_y, width, height)
        self.values[pos_x:pos_x + width, pos_y:pos_y + height] += arr.reshape(
            width, height, self.depth)
        self.weight[pos_x:pos_x + width, pos_y:pos_y + height] += 1.0

    def patch_to_array(self, pos_x, pos_y, width, height, out=None):
        """
        Flatten a patch in x, then y, then channel order.

        Args:
            pos_x (int): Left column of the patch
            pos_y (int): Top row of the patch
            width (int): Patch width
            height (int): Patch height
            out (ndarray, optional): Array of length width*height*depth to fill in place

        Returns:
            ndarray: The flattened patch (``out`` when given)
        """
        self.check_patch(pos_x, pos_y, width, height)
        patch = self.values[pos_x:pos_x + width, pos_y:pos_y + height].reshape(-1)
        if out is None:
            return patch.copy()
        if out.shape != patch.shape:
            raise ValueError(f"Expected an array of {patch.size} values, got {out.shape}")
        out[:] = patch
        return out

    def weighted_patch_to_array(self, pos_x, pos_y, width, height):
        """Flatten a patch, dividing every cell by its contribution count."""
        self.check_patch(pos_x, pos_y, width, height)
        weight = self.weight[pos_x:pos_x + width, pos_y:pos_y + height, np.newaxis]
        patch = self.values[pos_x:pos_x + width, pos_y:pos_y + height] / weight
        return patch.reshape(-1)

    def array_to_patch(self, arr, pos_x, pos_y, width, height):
        """Overwrite a patch with a flattened array, counting every touched cell."""
        arr = np.asarray(arr)
        if arr.size != width * height * self.depth:
            raise ValueError(
                f"Expected {width * height * self.depth} values, got {arr.size}")
        self.check_patch(pos_x, pos_y, width, height)
        self.values[pos_x:pos_x + width, pos_y:pos_y + height] = arr.reshape(
            width, height, self.depth)
        self.weight[pos_x:pos_x + width, pos_y:pos_y + height] += 1.0

    def __repr__(self):
        return f"DataBlock(width={self.width}, height={self.height}, depth={self.depth})"
