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

import numpy as np
import pytest

from toyqc.grid_simulator.errors import BufferReleasedError, CapacityError, ShapeMismatchError
from toyqc.grid_simulator.grid_buffer import BufferPool, GridBuffer, KernelPass
from toyqc.grid_simulator.settings import SimulatorSettings


def _counting_kernel(size, dtype):
    cells = np.zeros((size, 4), dtype=dtype)
    cells[:, 0] = np.arange(size)
    return cells


def test_buffer_from_cells():
    values = np.arange(32, dtype=float)
    buffer = GridBuffer(4, 2, values)
    assert buffer.shape == (4, 2)
    assert buffer.size == 8
    assert buffer.qubit_count == 3
    assert buffer.cells.dtype == np.float32
    np.testing.assert_array_equal(buffer.read_outputs(), values)
    np.testing.assert_array_equal(buffer.cells[5], [20, 21, 22, 23])


def test_buffer_copies_its_data():
    values = np.zeros(8)
    buffer = GridBuffer(2, 1, values)
    values[0] = 5
    assert buffer.cells[0, 0] == 0


def test_buffer_wrong_value_count():
    with pytest.raises(ShapeMismatchError):
        GridBuffer(2, 2, np.zeros(12))


def test_buffer_too_large():
    with pytest.raises(CapacityError):
        GridBuffer(16, 1, settings=SimulatorSettings(max_grid_dimension=8))


def test_buffer_cells_are_read_only():
    buffer = GridBuffer(2, 1)
    with pytest.raises(ValueError):
        buffer.cells[0, 0] = 1


def test_from_amplitudes():
    amplitudes = [1 + 2j, 3 + 27j, 0, -1j]
    buffer = GridBuffer.from_amplitudes(amplitudes, settings=SimulatorSettings(dtype="float64"))
    assert buffer.shape == (2, 2)
    np.testing.assert_array_equal(
        buffer.read_outputs(), [1, 2, 0, 0, 3, 27, 0, 0, 0, 0, 0, 0, 0, -1, 0, 0]
    )
    np.testing.assert_array_equal(buffer.amplitudes(), amplitudes)


def test_from_amplitudes_explicit_shape():
    buffer = GridBuffer.from_amplitudes(np.ones(8), height=1)
    assert buffer.shape == (8, 1)
    with pytest.raises(ShapeMismatchError):
        GridBuffer.from_amplitudes(np.ones(8), 3, 3)


def test_reshaped_keeps_linear_order():
    buffer = GridBuffer(4, 2, np.arange(32))
    reshaped = buffer.reshaped(2, 4)
    assert reshaped.shape == (2, 4)
    np.testing.assert_array_equal(reshaped.read_outputs(), buffer.read_outputs())
    with pytest.raises(ShapeMismatchError):
        buffer.reshaped(3, 3)


def test_release():
    buffer = GridBuffer(2, 2)
    buffer.release()
    assert buffer.released
    with pytest.raises(BufferReleasedError):
        buffer.read_outputs()


def test_context_manager_releases():
    with GridBuffer(2, 2) as buffer:
        assert not buffer.released
    assert buffer.released


@pytest.mark.parametrize("width, height", [(8, 1), (4, 2), (2, 4), (1, 8)])
def test_pass_reads_at_any_shape(width, height):
    kernel_pass = KernelPass("count", _counting_kernel)
    outputs = kernel_pass.read_outputs(width, height)
    assert outputs.shape == (32,)
    np.testing.assert_array_equal(outputs[::4], np.arange(8))


def test_fixed_size_pass_rejects_other_sizes():
    kernel_pass = KernelPass("count", _counting_kernel, size=8)
    assert kernel_pass.to_buffer().shape == (4, 2)
    assert kernel_pass.to_buffer(8, 1).shape == (8, 1)
    with pytest.raises(ShapeMismatchError):
        kernel_pass.read_outputs(4, 4)


def test_unsized_pass_needs_shape():
    kernel_pass = KernelPass("count", _counting_kernel)
    with pytest.raises(ValueError):
        kernel_pass.to_buffer()
    assert kernel_pass.to_buffer(2, 2).size == 4


def test_pass_rejects_released_inputs():
    source = GridBuffer(2, 1)
    kernel_pass = KernelPass("copy", lambda size, dtype: source.cells, size=2, inputs=(source,))
    source.release()
    with pytest.raises(BufferReleasedError):
        kernel_pass.read_outputs(2, 1)


def test_render_to():
    source = GridBuffer(2, 1, np.arange(8))
    kernel_pass = KernelPass("copy", lambda size, dtype: source.cells * 2, size=2, inputs=(source,))
    target = GridBuffer(1, 2)
    assert kernel_pass.render_to(target) is target
    np.testing.assert_array_equal(target.read_outputs(), np.arange(8) * 2)
    with pytest.raises(ValueError):
        kernel_pass.render_to(source)


def test_pool_reuses_storage():
    pool = BufferPool()
    first = pool.acquire(2, 2)
    pool.recycle(first)
    assert first.released
    assert pool.free_count == 1

    second = pool.acquire(2, 2)
    assert not second.released
    assert second is not first
    assert pool.allocations == 1
    assert pool.free_count == 0

    pool.acquire(4, 1)
    assert pool.allocations == 2


def test_pool_borrowed():
    pool = BufferPool()
    with pool.borrowed(2, 1) as buffer:
        assert buffer.size == 2
    assert buffer.released
    assert pool.free_count == 1
    pool.recycle(buffer)
    assert pool.free_count == 1
    pool.clear()
    assert pool.free_count == 0


def test_pool_drops_other_precision():
    pool = BufferPool(SimulatorSettings(dtype="float64"))
    buffer = GridBuffer(2, 1, settings=SimulatorSettings(dtype="float32"))
    pool.recycle(buffer)
    assert buffer.released
    assert pool.free_count == 0
