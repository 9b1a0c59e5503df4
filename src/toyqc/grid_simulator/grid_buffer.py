# Copyright Amazon.com Inc. or its affiliates. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License"). You
# may not use this file except in compliance with the License. A copy of
# the License is located at
#
#     http://aws.amazon.com/apache2.0/
#
# or in the "license" file accompanying this file. This file is
# distributed on an "AS IS" BASIS, WITHOUT WARRANTIES OR CONDITIONS OF
# ANY KIND, either express or implied. See the License for the specific
# language governing permissions and limitations under the License.

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from logging import getLogger

import numpy as np

from toyqc.grid_simulator.addressing import (
    GridShape,
    check_shape,
    default_shape,
    qubit_count_for_size,
)
from toyqc.grid_simulator.errors import BufferReleasedError, ShapeMismatchError
from toyqc.grid_simulator.settings import SimulatorSettings, get_settings

CHANNELS = 4

_logger = getLogger(__name__)


class GridBuffer:
    """
    A buffer of cells laid out as a `width` × `height` grid, each cell holding
    `CHANNELS` floats. Amplitude buffers keep the real part in channel 0 and the
    imaginary part in channel 1; channels 2 and 3 are unused.

    Buffers are never modified once created, except by `KernelPass.render_to` into a
    buffer handed out by a `BufferPool`.
    """

    def __init__(
        self,
        width: int,
        height: int,
        data: np.ndarray | Sequence[float] | None = None,
        settings: SimulatorSettings | None = None,
    ):
        """
        Args:
            width (int): Number of cells per row.
            height (int): Number of rows.
            data (np.ndarray | Sequence[float] | None): Row-major cell values,
                `width * height * CHANNELS` floats. Copied. Default all zeros.
            settings (SimulatorSettings | None): Limits and precision. Default `get_settings()`.

        Raises:
            CapacityError: If the grid exceeds the allowed dimensions.
            ShapeMismatchError: If `data` holds the wrong number of values.
        """
        self._settings = settings or get_settings()
        self._shape = check_shape(width, height, self._settings)
        dtype = self._settings.numpy_dtype
        if data is None:
            self._data = np.zeros((height, width, CHANNELS), dtype=dtype)
        else:
            values = np.array(data, dtype=dtype)
            if values.size != width * height * CHANNELS:
                raise ShapeMismatchError(
                    f"{values.size} values do not fill a {width}x{height} grid of "
                    f"{CHANNELS}-channel cells"
                )
            self._data = values.reshape(height, width, CHANNELS)
        self._released = False

    @classmethod
    def from_amplitudes(
        cls,
        amplitudes: np.ndarray | Sequence[complex],
        width: int | None = None,
        height: int | None = None,
        settings: SimulatorSettings | None = None,
    ) -> GridBuffer:
        """Packs complex amplitudes into a grid, real parts in channel 0 and imaginary in 1.

        Args:
            amplitudes (np.ndarray | Sequence[complex]): Amplitudes by state index.
            width (int | None): Grid width. Default picks `default_shape`.
            height (int | None): Grid height. Default `len(amplitudes) // width`.
            settings (SimulatorSettings | None): Limits and precision. Default `get_settings()`.

        Returns:
            GridBuffer: A new buffer.
        """
        amplitudes = np.asarray(amplitudes, dtype=complex).reshape(-1)
        width, height = _resolve_shape(amplitudes.size, width, height, settings)
        cells = np.zeros((amplitudes.size, CHANNELS))
        cells[:, 0] = amplitudes.real
        cells[:, 1] = amplitudes.imag
        return cls(width, height, cells, settings)

    @classmethod
    def _wrap(cls, data: np.ndarray, settings: SimulatorSettings) -> GridBuffer:
        buffer = cls.__new__(cls)
        buffer._settings = settings
        buffer._shape = GridShape(data.shape[1], data.shape[0])
        buffer._data = data
        buffer._released = False
        return buffer

    @property
    def width(self) -> int:
        return self._shape.width

    @property
    def height(self) -> int:
        return self._shape.height

    @property
    def shape(self) -> GridShape:
        return self._shape

    @property
    def size(self) -> int:
        """int: The logical number of cells."""
        return self._shape.size

    @property
    def qubit_count(self) -> int:
        """int: n for a buffer of 2^n cells."""
        return qubit_count_for_size(self.size)

    @property
    def released(self) -> bool:
        return self._released

    @property
    def settings(self) -> SimulatorSettings:
        return self._settings

    @property
    def cells(self) -> np.ndarray:
        """np.ndarray: Read-only `(size, CHANNELS)` view of the cells in state index order."""
        self._check_alive()
        view = self._data.reshape(self.size, CHANNELS)
        view.flags.writeable = False
        return view

    def read_outputs(self) -> np.ndarray:
        """Returns a flat copy of all channels of all cells, row-major."""
        return self.cells.reshape(-1).copy()

    def amplitudes(self) -> np.ndarray:
        """Returns the complex amplitudes stored in channels 0 and 1."""
        cells = self.cells
        return cells[:, 0].astype(np.float64) + 1j * cells[:, 1].astype(np.float64)

    def reshaped(self, width: int, height: int) -> GridBuffer:
        """Returns a copy of this buffer laid out on a different grid of the same size."""
        if width * height != self.size:
            raise ShapeMismatchError(
                f"Cannot lay out {self.size} cells on a {width}x{height} grid"
            )
        return GridBuffer(width, height, self.cells, self._settings)

    def release(self) -> None:
        """Drops the storage of this buffer. Later reads raise `BufferReleasedError`."""
        self._released = True
        self._data = None

    def _detach(self) -> np.ndarray:
        self._check_alive()
        data = self._data
        self.release()
        return data

    def _overwrite(self, cells: np.ndarray) -> None:
        self._check_alive()
        np.copyto(self._data.reshape(self.size, CHANNELS), cells)

    def _check_alive(self) -> None:
        if self._released:
            raise BufferReleasedError(f"{self!r} has been released")

    def __enter__(self) -> GridBuffer:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False

    def __repr__(self) -> str:
        state = "released" if self._released else self._settings.dtype
        return f"GridBuffer({self.width}x{self.height}, {state})"


class KernelPass:
    """
    The description of a buffer computed by a kernel from existing buffers.

    Nothing is computed until the pass is materialized with `read_outputs`, `to_buffer`
    or `render_to`; each materialization reads the inputs and writes a new output,
    so a pass can be read back at several grid shapes.
    """

    def __init__(
        self,
        name: str,
        kernel: Callable[[int, np.dtype], np.ndarray],
        size: int | None = None,
        inputs: Sequence[GridBuffer] = (),
    ):
        """
        Args:
            name (str): Name of the operation, for diagnostics.
            kernel (Callable[[int, np.dtype], np.ndarray]): Computes the `(size, CHANNELS)`
                output cells for a requested logical size and precision.
            size (int | None): The logical output size, or `None` if the output can be
                materialized at any capacity.
            inputs (Sequence[GridBuffer]): The buffers the kernel reads.
        """
        self._name = name
        self._kernel = kernel
        self._size = size
        self._inputs = tuple(inputs)

    @property
    def name(self) -> str:
        return self._name

    @property
    def size(self) -> int | None:
        """int | None: The fixed logical output size, if any."""
        return self._size

    def read_outputs(
        self, width: int, height: int, settings: SimulatorSettings | None = None
    ) -> np.ndarray:
        """Materializes the pass on a `width` × `height` grid.

        Returns:
            np.ndarray: `width * height * CHANNELS` floats in row-major cell order.
        """
        settings = settings or get_settings()
        shape = check_shape(width, height, settings)
        return self._compute(shape.size, settings).reshape(-1)

    def to_buffer(
        self,
        width: int | None = None,
        height: int | None = None,
        settings: SimulatorSettings | None = None,
    ) -> GridBuffer:
        """Materializes the pass into a new buffer.

        Args:
            width (int | None): Grid width. Default picks `default_shape` of the pass size.
            height (int | None): Grid height. Default `size // width`.
            settings (SimulatorSettings | None): Limits and precision. Default `get_settings()`.

        Returns:
            GridBuffer: A new buffer holding the output.
        """
        settings = settings or get_settings()
        if width is None and height is None and self._size is None:
            raise ValueError(f"{self._name} has no intrinsic size; give a width and height")
        width, height = _resolve_shape(self._size, width, height, settings)
        check_shape(width, height, settings)
        data = self._compute(width * height, settings)
        return GridBuffer._wrap(data.reshape(height, width, CHANNELS), settings)

    def render_to(self, target: GridBuffer) -> GridBuffer:
        """Materializes the pass into an existing buffer, typically a pooled one.

        Raises:
            ValueError: If the target is one of the inputs of this pass.
        """
        if any(target is buffer for buffer in self._inputs):
            raise ValueError(f"{self._name} cannot render into one of its own inputs")
        target._overwrite(self._compute(target.size, target.settings))
        return target

    def _compute(self, size: int, settings: SimulatorSettings) -> np.ndarray:
        if self._size is not None and size != self._size:
            raise ShapeMismatchError(
                f"{self._name} produces {self._size} cells; cannot read it as {size}"
            )
        for buffer in self._inputs:
            buffer._check_alive()
        cells = self._kernel(size, settings.numpy_dtype)
        return np.ascontiguousarray(cells, dtype=settings.numpy_dtype)

    def __repr__(self) -> str:
        return f"KernelPass({self._name}, size={self._size})"


class BufferPool:
    """
    Recycles the storage of released buffers so that passes of a simulation reuse
    equally-shaped grids instead of allocating new ones.
    """

    def __init__(self, settings: SimulatorSettings | None = None):
        self._settings = settings or get_settings()
        self._free: defaultdict[GridShape, list[np.ndarray]] = defaultdict(list)
        self._allocations = 0

    @property
    def allocations(self) -> int:
        """int: How many buffers the pool had to allocate rather than reuse."""
        return self._allocations

    @property
    def free_count(self) -> int:
        return sum(len(storages) for storages in self._free.values())

    def acquire(self, width: int, height: int) -> GridBuffer:
        """Returns a buffer of the given shape, reusing released storage when possible.

        The contents of a reused buffer are unspecified until something is rendered into it.
        """
        shape = check_shape(width, height, self._settings)
        storages = self._free[shape]
        if storages:
            return GridBuffer._wrap(storages.pop(), self._settings)
        self._allocations += 1
        _logger.debug("Allocating %dx%d buffer", width, height)
        return GridBuffer(width, height, settings=self._settings)

    def recycle(self, buffer: GridBuffer) -> None:
        """Releases the buffer and keeps its storage for a later `acquire`."""
        if buffer.released:
            return
        if buffer.settings.numpy_dtype != self._settings.numpy_dtype:
            buffer.release()
            return
        self._free[buffer.shape].append(buffer._detach())

    @contextmanager
    def borrowed(self, width: int, height: int) -> Iterator[GridBuffer]:
        """Acquires a buffer for the duration of a `with` block, then recycles it."""
        buffer = self.acquire(width, height)
        try:
            yield buffer
        finally:
            self.recycle(buffer)

    def clear(self) -> None:
        self._free.clear()


def _resolve_shape(
    size: int | None,
    width: int | None,
    height: int | None,
    settings: SimulatorSettings | None,
) -> tuple[int, int]:
    if width is None and height is None:
        return tuple(default_shape(size, settings))
    if width is None:
        width = size // height if size is not None else 1
    if height is None:
        height = size // width if size is not None else 1
    if size is not None and width * height != size:
        raise ShapeMismatchError(f"{size} cells do not fill a {width}x{height} grid")
    return width, height
