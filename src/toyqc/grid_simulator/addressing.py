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

"""Mapping between linear state indices and cells of a 2D grid.

Cells are stored row-major: the state index `i` of a `width` × `height` grid lives at
`x = i % width`, `y = i // width`. Because every kernel works on the linear index,
the value at index `i` is the same for every factorization of the grid.
"""

from __future__ import annotations

from math import isqrt
from typing import NamedTuple

from toyqc.grid_simulator.errors import CapacityError, ShapeMismatchError
from toyqc.grid_simulator.settings import SimulatorSettings, get_settings
from toyqc.grid_simulator.utils import is_power_of_two


class GridShape(NamedTuple):
    width: int
    height: int

    @property
    def size(self) -> int:
        """int: The number of cells in the grid."""
        return self.width * self.height


def index_to_coords(index: int, width: int) -> tuple[int, int]:
    """Returns the `(x, y)` cell holding the given state index."""
    return index % width, index // width


def coords_to_index(x: int, y: int, width: int) -> int:
    """Returns the state index stored in cell `(x, y)`."""
    if not 0 <= x < width:
        raise CapacityError(f"Column {x} is outside of a grid of width {width}")
    return y * width + x


def qubit_count_for_size(size: int) -> int:
    """Returns n for a buffer of 2^n cells.

    Raises:
        ShapeMismatchError: If the size is not a power of two.
    """
    if not is_power_of_two(size):
        raise ShapeMismatchError(f"A buffer of {size} cells does not hold a whole number of qubits")
    return size.bit_length() - 1


def check_shape(
    width: int, height: int, settings: SimulatorSettings | None = None
) -> GridShape:
    """Validates grid dimensions against the platform limit.

    Args:
        width (int): Number of cells per row.
        height (int): Number of rows.
        settings (SimulatorSettings | None): Limits to check against. Default `get_settings()`.

    Returns:
        GridShape: The validated shape.

    Raises:
        CapacityError: If either dimension is not positive or exceeds `max_grid_dimension`.
    """
    settings = settings or get_settings()
    if width < 1 or height < 1:
        raise CapacityError(f"Grid dimensions must be positive, got {width}x{height}")
    limit = settings.max_grid_dimension
    if width > limit or height > limit:
        raise CapacityError(
            f"Grid {width}x{height} exceeds the maximum dimension {limit}; "
            f"at most {settings.max_qubit_count} qubits are addressable"
        )
    return GridShape(width, height)


def default_shape(size: int, settings: SimulatorSettings | None = None) -> GridShape:
    """Picks the squarest grid holding exactly `size` cells, wider than tall.

    Args:
        size (int): The logical number of cells.
        settings (SimulatorSettings | None): Limits to check against. Default `get_settings()`.

    Returns:
        GridShape: A shape with `width * height == size`.

    Raises:
        CapacityError: If no allowed grid holds `size` cells.
    """
    if size < 1:
        raise CapacityError(f"Buffers need at least one cell, got {size}")
    settings = settings or get_settings()
    limit = settings.max_grid_dimension
    if size > limit * limit:
        raise CapacityError(
            f"{size} cells exceed the largest {limit}x{limit} grid; "
            f"at most {settings.max_qubit_count} qubits are addressable"
        )
    if is_power_of_two(size):
        width = 1 << (size.bit_length() // 2)
        return check_shape(width, size // width, settings)
    for width in range(isqrt(size - 1) + 1, limit + 1):
        if not size % width:
            return check_shape(width, size // width, settings)
    raise CapacityError(f"No grid at most {limit} cells wide holds {size} cells")


def grid_shapes(size: int, settings: SimulatorSettings | None = None) -> list[GridShape]:
    """Lists every allowed factorization of `size` cells, narrowest first."""
    settings = settings or get_settings()
    limit = settings.max_grid_dimension
    return [
        GridShape(width, size // width)
        for width in range(1, min(size, limit) + 1)
        if size % width == 0 and size // width <= limit
    ]
