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

"""Per-cell kernels over flat `(size, 4)` cell arrays.

Every kernel comes in two flavors with identical results: a vectorized NumPy version
for small buffers and a parallel Numba version for large ones. `KernelDispatcher`
picks between them by qubit count. Kernels write into a preallocated `out` array
and return it.
"""

from __future__ import annotations

from logging import getLogger

import numba as nb
import numpy as np

from toyqc.grid_simulator.settings import get_settings

nb.config.NUMBA_OPT = 3
nb.config.NUMBA_SLP_VECTORIZE = 1
nb.config.THREADING_LAYER = "workqueue"
nb.config.NUMBA_DEBUG = 0
nb.config.WARNINGS = False
nb.config.CAPTURED_ERRORS = "new_style"

_logger = getLogger(__name__)


class KernelDispatcher:
    def __init__(self, qubit_count: int, threshold: int | None = None):
        """
        Selects between NumPy kernels and Numba JIT-compiled kernels based on the number
        of qubits addressed by a buffer.

        Args:
            qubit_count (int): Qubits addressed by the buffers being processed.
            threshold (int | None): Buffers with more qubits than this use the Numba
                kernels. Default `qubit_threshold` of the current settings.
        """
        if threshold is None:
            threshold = get_settings().qubit_threshold
        self.qubit_count = qubit_count
        self.use_large = qubit_count > threshold

        if self.use_large:
            self.control_mask = _control_mask_large
            self.qubit_operation = _qubit_operation_large
            self.swap = _swap_large
            self.control_select = _control_select_large
            self.squared_magnitude = _squared_magnitude_large
            self.density_terms = _density_terms_large
            self.tree_reduce_pass = _tree_reduce_pass_large
        else:
            self.control_mask = _control_mask_small
            self.qubit_operation = _qubit_operation_small
            self.swap = _swap_small
            self.control_select = _control_select_small
            self.squared_magnitude = _squared_magnitude_small
            self.density_terms = _density_terms_small
            self.tree_reduce_pass = _tree_reduce_pass_small
        _logger.debug("Using %r", self)

    def __repr__(self) -> str:
        flavor = "numba" if self.use_large else "numpy"
        return f"KernelDispatcher({self.qubit_count}, {flavor})"


def qubit_count_for_capacity(size: int) -> int:
    """The number of qubits needed to index `size` cells."""
    return max(size - 1, 0).bit_length()


def _control_mask_small(mask: int, value: int, out: np.ndarray) -> np.ndarray:
    indices = np.arange(out.shape[0], dtype=np.int64)
    out[:] = 0
    out[:, 0] = (indices & mask) == value
    return out


@nb.njit(parallel=True, fastmath=True, cache=True, nogil=True)
def _control_mask_large(mask: int, value: int, out: np.ndarray) -> np.ndarray:  # pragma: no cover
    mask = np.int64(mask)
    value = np.int64(value)
    for i in nb.prange(out.shape[0]):
        out[i, 0] = 1.0 if (i & mask) == value else 0.0
        out[i, 1] = 0.0
        out[i, 2] = 0.0
        out[i, 3] = 0.0
    return out


def _qubit_operation_small(
    cells: np.ndarray, matrix: np.ndarray, target: int, control: np.ndarray, out: np.ndarray
) -> np.ndarray:
    """Applies a 2x2 matrix to every amplitude pair using array slicing."""
    bit = 1 << target
    blocks = cells.shape[0] // (bit << 1)

    source = cells.reshape(blocks, 2, bit, 4)
    result = out.reshape(blocks, 2, bit, 4)
    # The control is read at the cell whose target bit is 0.
    active = control.reshape(blocks, 2, bit, 4)[:, :1, :, 0] != 0

    amp_0 = source[:, 0, :, 0] + 1j * source[:, 0, :, 1]
    amp_1 = source[:, 1, :, 0] + 1j * source[:, 1, :, 1]

    a, b, c, d = matrix[0, 0], matrix[0, 1], matrix[1, 0], matrix[1, 1]
    updated = np.stack((a * amp_0 + b * amp_1, c * amp_0 + d * amp_1), axis=1)

    result[..., 0] = np.where(active, updated.real, source[..., 0])
    result[..., 1] = np.where(active, updated.imag, source[..., 1])
    result[..., 2:] = np.where(active[..., np.newaxis], 0, source[..., 2:])
    return out


@nb.njit(parallel=True, fastmath=True, cache=True, nogil=True)
def _qubit_operation_large(  # pragma: no cover
    cells: np.ndarray, matrix: np.ndarray, target: int, control: np.ndarray, out: np.ndarray
) -> np.ndarray:
    """Applies a 2x2 matrix to every amplitude pair using bit masking."""
    a, b, c, d = matrix[0, 0], matrix[0, 1], matrix[1, 0], matrix[1, 1]
    mask = (np.int64(1) << target) - 1
    half_size = cells.shape[0] >> 1

    for i in nb.prange(half_size):
        idx0 = (i & ~mask) << 1 | (i & mask)
        idx1 = idx0 | (np.int64(1) << target)

        if control[idx0, 0] == 0:
            for channel in range(4):
                out[idx0, channel] = cells[idx0, channel]
                out[idx1, channel] = cells[idx1, channel]
        else:
            s0 = complex(cells[idx0, 0], cells[idx0, 1])
            s1 = complex(cells[idx1, 0], cells[idx1, 1])
            t0 = a * s0 + b * s1
            t1 = c * s0 + d * s1
            out[idx0, 0] = t0.real
            out[idx0, 1] = t0.imag
            out[idx0, 2] = 0.0
            out[idx0, 3] = 0.0
            out[idx1, 0] = t1.real
            out[idx1, 1] = t1.imag
            out[idx1, 2] = 0.0
            out[idx1, 3] = 0.0

    return out


def _swap_small(
    cells: np.ndarray, qubit_0: int, qubit_1: int, control: np.ndarray, out: np.ndarray
) -> np.ndarray:
    """Swaps whole cells across two bit positions using a gather."""
    indices = np.arange(cells.shape[0], dtype=np.int64)
    differ = ((indices >> qubit_0) ^ (indices >> qubit_1)) & 1 == 1
    moved = differ & (control[:, 0] != 0)
    flip = (1 << qubit_0) | (1 << qubit_1)
    np.take(cells, np.where(moved, indices ^ flip, indices), axis=0, out=out)
    return out


@nb.njit(parallel=True, fastmath=True, cache=True, nogil=True)
def _swap_large(  # pragma: no cover
    cells: np.ndarray, qubit_0: int, qubit_1: int, control: np.ndarray, out: np.ndarray
) -> np.ndarray:
    """Swaps whole cells across two bit positions using bit manipulation."""
    flip = (np.int64(1) << qubit_0) | (np.int64(1) << qubit_1)

    for i in nb.prange(cells.shape[0]):
        source = np.int64(i)
        if ((i >> qubit_0) ^ (i >> qubit_1)) & 1 and control[i, 0] != 0:
            source = source ^ flip
        for channel in range(4):
            out[i, channel] = cells[source, channel]

    return out


def _control_select_small(
    cells: np.ndarray, value: int, free_positions: np.ndarray, out: np.ndarray
) -> np.ndarray:
    indices = np.arange(out.shape[0], dtype=np.int64)
    sources = np.full_like(indices, value)
    for k, position in enumerate(free_positions):
        sources |= ((indices >> k) & 1) << position
    np.take(cells, sources, axis=0, out=out)
    return out


@nb.njit(parallel=True, fastmath=True, cache=True, nogil=True)
def _control_select_large(  # pragma: no cover
    cells: np.ndarray, value: int, free_positions: np.ndarray, out: np.ndarray
) -> np.ndarray:
    """Gathers the cells satisfying a control condition, scattering output bits into the
    unconstrained positions of the source index."""
    for j in nb.prange(out.shape[0]):
        source = np.int64(value)
        for k in range(free_positions.shape[0]):
            if (j >> k) & 1:
                source |= np.int64(1) << free_positions[k]
        for channel in range(4):
            out[j, channel] = cells[source, channel]
    return out


def _squared_magnitude_small(cells: np.ndarray, out: np.ndarray) -> np.ndarray:
    out[:] = 0
    out[:, 0] = cells[:, 0] * cells[:, 0] + cells[:, 1] * cells[:, 1]
    return out


@nb.njit(parallel=True, fastmath=True, cache=True, nogil=True)
def _squared_magnitude_large(cells: np.ndarray, out: np.ndarray) -> np.ndarray:  # pragma: no cover
    for i in nb.prange(cells.shape[0]):
        out[i, 0] = cells[i, 0] * cells[i, 0] + cells[i, 1] * cells[i, 1]
        out[i, 1] = 0.0
        out[i, 2] = 0.0
        out[i, 3] = 0.0
    return out


def _density_terms_small(cells: np.ndarray, out: np.ndarray) -> np.ndarray:
    """
    Writes, for every qubit q and every state index i with bit q cleared, the terms
    (|a0|², Re(a0·conj(a1)), Im(a0·conj(a1)), |a1|²) of the amplitude pair
    a0 = amp(i), a1 = amp(i | 1 << q) into `out[q, pair]`.
    """
    for qubit in range(out.shape[0]):
        bit = 1 << qubit
        pairs = cells.reshape(-1, 2, bit, 4)
        re_0, im_0 = pairs[:, 0, :, 0].reshape(-1), pairs[:, 0, :, 1].reshape(-1)
        re_1, im_1 = pairs[:, 1, :, 0].reshape(-1), pairs[:, 1, :, 1].reshape(-1)
        out[qubit, :, 0] = re_0 * re_0 + im_0 * im_0
        out[qubit, :, 1] = re_0 * re_1 + im_0 * im_1
        out[qubit, :, 2] = im_0 * re_1 - re_0 * im_1
        out[qubit, :, 3] = re_1 * re_1 + im_1 * im_1
    return out


@nb.njit(parallel=True, fastmath=True, cache=True, nogil=True)
def _density_terms_large(cells: np.ndarray, out: np.ndarray) -> np.ndarray:  # pragma: no cover
    half_size = out.shape[1]
    for k in nb.prange(out.shape[0] * half_size):
        flat = np.int64(k)
        qubit = flat // half_size
        i = flat % half_size
        mask = (np.int64(1) << qubit) - 1
        idx0 = (i & ~mask) << 1 | (i & mask)
        idx1 = idx0 | (np.int64(1) << qubit)

        re_0, im_0 = cells[idx0, 0], cells[idx0, 1]
        re_1, im_1 = cells[idx1, 0], cells[idx1, 1]
        out[qubit, i, 0] = re_0 * re_0 + im_0 * im_0
        out[qubit, i, 1] = re_0 * re_1 + im_0 * im_1
        out[qubit, i, 2] = im_0 * re_1 - re_0 * im_1
        out[qubit, i, 3] = re_1 * re_1 + im_1 * im_1
    return out


def _tree_reduce_pass_small(terms: np.ndarray, out: np.ndarray) -> np.ndarray:
    half = out.shape[1]
    np.add(terms[:, :half], terms[:, half:], out=out)
    return out


@nb.njit(parallel=True, fastmath=True, cache=True, nogil=True)
def _tree_reduce_pass_large(terms: np.ndarray, out: np.ndarray) -> np.ndarray:  # pragma: no cover
    half = out.shape[1]
    for k in nb.prange(out.shape[0] * half):
        flat = np.int64(k)
        qubit = flat // half
        i = flat % half
        for channel in range(4):
            out[qubit, i, channel] = terms[qubit, i, channel] + terms[qubit, i + half, channel]
    return out


def qubit_density_sums(
    cells: np.ndarray, qubit_count: int, dispatcher: KernelDispatcher | None = None
) -> np.ndarray:
    """Sums the density terms of every qubit over all amplitude pairs.

    The sums are formed by halving passes, adding the upper half of the pair axis onto
    the lower half until one entry per qubit remains, so rounding error grows with
    log2 of the pair count instead of linearly.

    Args:
        cells (np.ndarray): `(2^n, 4)` amplitude cells.
        qubit_count (int): n, at least 1.
        dispatcher (KernelDispatcher | None): Kernel selection. Default by qubit count.

    Returns:
        np.ndarray: `(n, 4)` array of `(ρ00, Re ρ01, Im ρ01, ρ11)` per qubit, unnormalized.
    """
    dispatcher = dispatcher or KernelDispatcher(qubit_count)
    terms = np.empty((qubit_count, cells.shape[0] >> 1, 4), dtype=cells.dtype)
    dispatcher.density_terms(cells, terms)
    passes = 0
    while terms.shape[1] > 1:
        reduced = np.empty((qubit_count, terms.shape[1] >> 1, 4), dtype=cells.dtype)
        terms = dispatcher.tree_reduce_pass(terms, reduced)
        passes += 1
    _logger.debug("Reduced densities of %d qubits in %d passes", qubit_count, passes)
    return terms[:, 0, :]
