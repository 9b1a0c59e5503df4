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

"""The grid operations of the simulator.

Each operation validates its arguments eagerly and returns a lazy `KernelPass`; the
kernel itself runs when the pass is materialized. Passes that read an amplitude buffer
have that buffer's size; `classical_state` and `control_mask` produce a value for any
requested capacity.
"""

from __future__ import annotations

import numpy as np

from toyqc.grid_simulator.controls import Controls
from toyqc.grid_simulator.errors import CapacityError, ShapeMismatchError
from toyqc.grid_simulator.grid_buffer import CHANNELS, GridBuffer, KernelPass
from toyqc.grid_simulator.kernels import (
    KernelDispatcher,
    qubit_count_for_capacity,
    qubit_density_sums,
)
from toyqc.grid_simulator.utils import free_bit_positions


def classical_state(index: int) -> KernelPass:
    """The basis state |index⟩: amplitude 1 at `index`, zero elsewhere.

    Args:
        index (int): The state index holding the amplitude.

    Returns:
        KernelPass: A pass of any capacity; materializing it at a capacity not larger
        than `index` raises `CapacityError`.
    """
    if index < 0:
        raise CapacityError(f"State index must be non-negative, got {index}")

    def kernel(size: int, dtype: np.dtype) -> np.ndarray:
        if index >= size:
            raise CapacityError(f"State index {index} does not fit in {size} cells")
        out = np.zeros((size, CHANNELS), dtype=dtype)
        out[index, 0] = 1
        return out

    return KernelPass("classical_state", kernel)


def control_mask(controls: Controls | int, value: int | None = None) -> KernelPass:
    """The 0/1 indicator of the states allowed by a control condition.

    Args:
        controls (Controls | int): The condition, or its mask when `value` is given.
        value (int | None): The required bit values, when `controls` is a mask.

    Returns:
        KernelPass: A pass of any capacity with `(1, 0, 0, 0)` in allowed cells and
        zeros elsewhere.
    """
    controls = _as_controls(controls, value)

    def kernel(size: int, dtype: np.dtype) -> np.ndarray:
        out = np.empty((size, CHANNELS), dtype=dtype)
        dispatcher = KernelDispatcher(qubit_count_for_capacity(size))
        return dispatcher.control_mask(controls.mask, controls.value, out)

    return KernelPass("control_mask", kernel)


def qubit_operation(
    state: GridBuffer, matrix: np.ndarray, qubit_index: int, control: GridBuffer
) -> KernelPass:
    """Applies a 2x2 complex matrix to one qubit wherever the control buffer allows it.

    For each pair of states differing only in bit `qubit_index`, the pair is transformed
    when the control cell of the state with that bit cleared is non-zero; otherwise
    both cells are copied through unchanged.

    Args:
        state (GridBuffer): The amplitudes, `2^n` cells.
        matrix (np.ndarray): The 2x2 operation, applied to `(amp0, amp1)` as a column vector.
        qubit_index (int): The target qubit.
        control (GridBuffer): A control mask buffer of the same size.

    Returns:
        KernelPass: A pass of the state's size.
    """
    matrix = np.asarray(matrix, dtype=complex)
    if matrix.shape != (2, 2):
        raise ShapeMismatchError(f"Single qubit operations are 2x2, got {matrix.shape}")
    qubit_count = state.qubit_count
    _check_qubit(qubit_index, qubit_count)
    _check_same_size(state, control)

    def kernel(size: int, dtype: np.dtype) -> np.ndarray:
        out = np.empty((size, CHANNELS), dtype=dtype)
        dispatcher = KernelDispatcher(qubit_count, state.settings.qubit_threshold)
        return dispatcher.qubit_operation(state.cells, matrix, qubit_index, control.cells, out)

    return KernelPass("qubit_operation", kernel, size=state.size, inputs=(state, control))


def swap(state: GridBuffer, qubit_a: int, qubit_b: int, control: GridBuffer) -> KernelPass:
    """Exchanges whole cells between states that differ in bits `qubit_a` and `qubit_b`.

    A cell whose two bits differ, and whose own control cell is non-zero, takes the
    contents of the cell with both bits flipped. All other cells are copied through.

    Returns:
        KernelPass: A pass of the state's size.

    Raises:
        ValueError: If both qubits are the same.
    """
    qubit_count = state.qubit_count
    _check_qubit(qubit_a, qubit_count)
    _check_qubit(qubit_b, qubit_count)
    if qubit_a == qubit_b:
        raise ValueError(f"Cannot swap qubit {qubit_a} with itself")
    _check_same_size(state, control)

    def kernel(size: int, dtype: np.dtype) -> np.ndarray:
        out = np.empty((size, CHANNELS), dtype=dtype)
        dispatcher = KernelDispatcher(qubit_count, state.settings.qubit_threshold)
        return dispatcher.swap(state.cells, qubit_a, qubit_b, control.cells, out)

    return KernelPass("swap", kernel, size=state.size, inputs=(state, control))


def control_select(controls: Controls | tuple[int, int], source: GridBuffer) -> KernelPass:
    """Gathers the cells allowed by a control condition into a smaller buffer.

    Output cell `j` holds the source cell whose controlled bits equal the control value
    and whose remaining bits, read lowest first, spell out `j`. The result does not
    depend on how the source is laid out.

    Args:
        controls (Controls | tuple[int, int]): The condition, or a `(mask, value)` pair.
        source (GridBuffer): A buffer of `2^n` cells.

    Returns:
        KernelPass: A pass of `2^(n - k)` cells, k being the number of controlled qubits.

    Raises:
        CapacityError: If the condition involves qubits the source does not have.
    """
    if not isinstance(controls, Controls):
        controls = Controls(*controls)
    qubit_count = source.qubit_count
    if controls.mask >> qubit_count:
        raise CapacityError(
            f"Controls ({controls}) involve qubits beyond the {qubit_count} of the source"
        )
    free_positions = free_bit_positions(controls.mask, qubit_count)
    out_size = source.size >> controls.control_count

    def kernel(size: int, dtype: np.dtype) -> np.ndarray:
        out = np.empty((size, CHANNELS), dtype=dtype)
        dispatcher = KernelDispatcher(qubit_count, source.settings.qubit_threshold)
        return dispatcher.control_select(source.cells, controls.value, free_positions, out)

    return KernelPass("control_select", kernel, size=out_size, inputs=(source,))


def linear_overlay(offset: int, foreground: GridBuffer, background: GridBuffer) -> KernelPass:
    """Pastes the rows of `foreground` over block `offset` of `background`.

    Block `offset` is the band of rows `[offset * h, (offset + 1) * h)` of the background,
    `h` being the foreground height. Rows of the band that fall outside the background
    are dropped; everything else comes from the background.

    Returns:
        KernelPass: A pass of the background's size.

    Raises:
        ShapeMismatchError: If the widths differ or the foreground is taller.
    """
    if foreground.width != background.width:
        raise ShapeMismatchError(
            f"Overlay width {foreground.width} does not match background width "
            f"{background.width}"
        )
    if foreground.height > background.height:
        raise ShapeMismatchError(
            f"Overlay height {foreground.height} exceeds background height {background.height}"
        )
    width, fore_height, back_height = background.width, foreground.height, background.height

    def kernel(size: int, dtype: np.dtype) -> np.ndarray:
        out = np.array(background.cells, dtype=dtype)
        rows = out.reshape(back_height, width, CHANNELS)
        start = offset * fore_height
        low, high = max(start, 0), min(start + fore_height, back_height)
        if low < high:
            pasted = foreground.cells.reshape(fore_height, width, CHANNELS)
            rows[low:high] = pasted[low - start : high - start]
        return out

    return KernelPass(
        "linear_overlay", kernel, size=background.size, inputs=(foreground, background)
    )


def squared_magnitude(source: GridBuffer) -> KernelPass:
    """The probability `re² + im²` of each cell in channel 0; channels 2 and 3 are ignored."""

    def kernel(size: int, dtype: np.dtype) -> np.ndarray:
        out = np.empty((size, CHANNELS), dtype=dtype)
        dispatcher = KernelDispatcher(
            qubit_count_for_capacity(size), source.settings.qubit_threshold
        )
        return dispatcher.squared_magnitude(source.cells, out)

    return KernelPass("squared_magnitude", kernel, size=source.size, inputs=(source,))


def all_qubit_densities(state: GridBuffer) -> KernelPass:
    """The unnormalized single-qubit density matrix of every qubit.

    Output cell `q` holds `(ρ00, Re ρ01, Im ρ01, ρ11)` of qubit `q`, with
    `ρ01 = Σ amp(i0) · conj(amp(i1))` over pairs of states differing only in bit `q`.

    Args:
        state (GridBuffer): The amplitudes, `2^n` cells with n at least 1.

    Returns:
        KernelPass: A pass of `n` cells.
    """
    qubit_count = state.qubit_count
    if qubit_count < 1:
        raise CapacityError("Densities need a state of at least one qubit")

    def kernel(size: int, dtype: np.dtype) -> np.ndarray:
        cells = np.asarray(state.cells, dtype=dtype)
        dispatcher = KernelDispatcher(qubit_count, state.settings.qubit_threshold)
        return qubit_density_sums(cells, qubit_count, dispatcher)

    return KernelPass("all_qubit_densities", kernel, size=qubit_count, inputs=(state,))


def _as_controls(controls: Controls | int, value: int | None) -> Controls:
    if isinstance(controls, Controls):
        if value is not None:
            raise ValueError("Give either Controls or a mask and value, not both")
        return controls
    return Controls(controls, value or 0)


def _check_qubit(qubit: int, qubit_count: int) -> None:
    if not 0 <= qubit < qubit_count:
        raise CapacityError(f"Qubit {qubit} is outside of a {qubit_count}-qubit state")


def _check_same_size(state: GridBuffer, control: GridBuffer) -> None:
    if control.size != state.size:
        raise ShapeMismatchError(
            f"Control buffer has {control.size} cells, state has {state.size}"
        )
