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

from logging import Logger, getLogger

import numpy as np

from toyqc.grid_simulator.addressing import default_shape
from toyqc.grid_simulator.circuit import CircuitDefinition
from toyqc.grid_simulator.circuit_kernels import (
    all_qubit_densities,
    classical_state,
    control_mask,
    control_select,
    linear_overlay,
    qubit_operation,
    squared_magnitude,
    swap,
)
from toyqc.grid_simulator.controls import Controls
from toyqc.grid_simulator.densities import density_matrices, normalized
from toyqc.grid_simulator.errors import CapacityError, GridSimulatorError
from toyqc.grid_simulator.grid_buffer import CHANNELS, BufferPool, GridBuffer, KernelPass
from toyqc.grid_simulator.settings import SimulatorSettings, get_settings
from toyqc.grid_simulator.utils import popcount


class CircuitStats:
    """
    Per-column statistics of an evaluated circuit, as shown by its display gates.

    Densities and probabilities are conditioned on the controls of the column they are
    asked about: only states satisfying the column's controls contribute, and the result
    is renormalized.
    """

    def __init__(
        self,
        circuit: CircuitDefinition,
        time: float,
        qubit_count: int,
        conditional_records: list[np.ndarray],
        density_table: GridBuffer | None,
    ):
        """
        Args:
            circuit (CircuitDefinition): The evaluated circuit.
            time (float): The time the circuit was evaluated at.
            qubit_count (int): The number of simulated qubits.
            conditional_records (list[np.ndarray]): For each column, the `(k, 4)` density
                records of the qubits not controlled in that column, in qubit order,
                computed from the state just after the column.
            density_table (GridBuffer | None): The unconditioned density records, one
                row per column, or `None` for a circuit without columns.
        """
        self._circuit = circuit
        self._time = time
        self._qubit_count = qubit_count
        self._conditional_records = conditional_records
        self._density_table = density_table

    @property
    def circuit(self) -> CircuitDefinition:
        return self._circuit

    @property
    def time(self) -> float:
        return self._time

    @property
    def density_table(self) -> GridBuffer | None:
        """GridBuffer | None: `qubit_count` wide and one row per column; row k holds the
        `(ρ00, Re ρ01, Im ρ01, ρ11)` records of every qubit just after column k."""
        return self._density_table

    def qubit_density_matrix(self, row: int, col: int) -> np.ndarray:
        """The normalized density matrix of a wire just after a column, given the column's controls.

        Args:
            row (int): The wire.
            col (int): The column.

        Returns:
            np.ndarray: 2x2 complex matrix; all zeros if no state satisfies the controls.
        """
        self._check_location(row, col)
        controls = self._circuit.column_controls(col)
        desired = controls.desired_value_for(row)
        if desired is not None:
            matrix = np.zeros((2, 2), dtype=complex)
            matrix[int(desired), int(desired)] = 1
            return matrix
        index = row - popcount(controls.mask & ((1 << row) - 1))
        records = self._conditional_records[col]
        return normalized(density_matrices(records[index])[0])

    def wire_probability(self, row: int, col: int) -> float:
        """The chance of measuring a wire ON just after a column, given the column's controls."""
        return float(self.qubit_density_matrix(row, col)[1, 1].real)

    def _check_location(self, row: int, col: int) -> None:
        if not 0 <= col < len(self._conditional_records):
            raise IndexError(f"Column {col} is outside of the evaluated circuit")
        if not 0 <= row < self._qubit_count:
            raise IndexError(f"Wire {row} is outside of a {self._qubit_count}-qubit simulation")


class CircuitSimulation:
    def __init__(
        self,
        qubit_count: int,
        settings: SimulatorSettings | None = None,
        pool: BufferPool | None = None,
        logger: Logger | None = None,
    ):
        """
        Evaluates circuits on a `qubit_count`-qubit amplitude grid, one column at a time.

        Args:
            qubit_count (int): The number of qubits; the grid holds `2^qubit_count` cells.
            settings (SimulatorSettings | None): Limits and precision. Default `get_settings()`.
            pool (BufferPool | None): Where intermediate grids are recycled. Default a
                private pool.
            logger (Logger | None): Receives progress and failure records.

        Raises:
            CapacityError: If the grid for `qubit_count` qubits exceeds the allowed dimensions.
        """
        self._settings = settings or get_settings()
        if qubit_count < 1:
            raise CapacityError(f"Simulations need at least one qubit, got {qubit_count}")
        self._qubit_count = qubit_count
        self._shape = default_shape(1 << qubit_count, self._settings)
        self._pool = pool or BufferPool(self._settings)
        self.logger = logger or getLogger(__name__)
        self._working: GridBuffer | None = None

        self._state = self._fresh_state()
        self._stats: CircuitStats | None = None
        self.logger.debug(
            f"Simulating {qubit_count} qubits on a {self._shape.width}x{self._shape.height} grid"
        )

    @property
    def qubit_count(self) -> int:
        return self._qubit_count

    @property
    def state(self) -> GridBuffer:
        """GridBuffer: The amplitudes after the last successful evaluation."""
        return self._state

    @property
    def stats(self) -> CircuitStats | None:
        """CircuitStats | None: Statistics of the last successful evaluation, if any."""
        return self._stats

    @property
    def amplitudes(self) -> np.ndarray:
        return self._state.amplitudes()

    @property
    def probabilities(self) -> np.ndarray:
        """np.ndarray: The chance of each computational basis state."""
        outputs = self._read(squared_magnitude(self._state), self._shape.width, self._shape.height)
        return outputs[:, 0].astype(np.float64)

    @property
    def densities(self) -> np.ndarray:
        """np.ndarray: `(qubit_count, 2, 2)` single-qubit density matrices of the state."""
        return density_matrices(self._read(all_qubit_densities(self._state), self._qubit_count, 1))

    def evolve(self, circuit: CircuitDefinition, time: float = 0.0) -> CircuitStats:
        """Evaluates a circuit from |0…0⟩ at the given time.

        Each column is applied in order: its control mask is built, then every enabled
        single-qubit operation and finally the column's swap are applied, each into a
        recycled grid. The grid each step supersedes goes back to the pool immediately.

        Args:
            circuit (CircuitDefinition): The circuit to evaluate.
            time (float): Time for time-based gates. Default 0.

        Returns:
            CircuitStats: Per-column statistics, also available as `stats`.

        Raises:
            GridSimulatorError: If a column can't be evaluated. The state and statistics
                of the previous evaluation are kept.
        """
        self._working = self._fresh_state()
        conditional_records = []
        table_rows = []
        try:
            for col in range(len(circuit.columns)):
                self.logger.debug(f"Evaluating column {col} of {circuit.readable_hash()}")
                self._evolve_column(circuit, col, time)
                controls = circuit.column_controls(col)
                conditional_records.append(self._conditional_records(controls, self._working))
                densities = all_qubit_densities(self._working)
                table_rows.append(self._read(densities, self._qubit_count, 1))
            density_table = self._density_table(table_rows)
        except GridSimulatorError:
            self.logger.exception(f"Failed to evaluate {circuit.readable_hash()} at time {time}")
            self._pool.recycle(self._working)
            self._working = None
            raise

        self._pool.recycle(self._state)
        self._state, self._working = self._working, None
        self._stats = CircuitStats(
            circuit, time, self._qubit_count, conditional_records, density_table
        )
        return self._stats

    def _evolve_column(self, circuit: CircuitDefinition, col: int, time: float) -> None:
        with self._pool.borrowed(*self._shape) as mask:
            control_mask(circuit.column_controls(col)).render_to(mask)
            for row, matrix in circuit.single_qubit_operations_at(col, time):
                self._advance(qubit_operation(self._working, matrix, row, mask))
            pair = circuit.column_swap_pair(col)
            if pair is not None:
                self._advance(swap(self._working, *pair, mask))

    def _advance(self, kernel_pass: KernelPass) -> None:
        following = self._pool.acquire(*self._shape)
        try:
            kernel_pass.render_to(following)
        except GridSimulatorError:
            self._pool.recycle(following)
            raise
        self._pool.recycle(self._working)
        self._working = following

    def _conditional_records(self, controls: Controls, state: GridBuffer) -> np.ndarray:
        free_count = self._qubit_count - controls.control_count
        selected_pass = control_select(controls, state)
        if free_count < 1:
            return np.zeros((0, CHANNELS))
        shape = default_shape(selected_pass.size, self._settings)
        with self._pool.borrowed(*shape) as selected:
            selected_pass.render_to(selected)
            return self._read(all_qubit_densities(selected), free_count, 1)

    def _density_table(self, rows: list[np.ndarray]) -> GridBuffer | None:
        if not rows:
            return None
        width, height = self._qubit_count, len(rows)
        table = GridBuffer(width, height, settings=self._settings)
        for index, records in enumerate(rows):
            with GridBuffer(width, 1, records, self._settings) as row:
                overlaid = linear_overlay(index, row, table).to_buffer(
                    width, height, self._settings
                )
            table.release()
            table = overlaid
        return table

    def _fresh_state(self) -> GridBuffer:
        state = self._pool.acquire(*self._shape)
        return classical_state(0).render_to(state)

    def _read(self, kernel_pass: KernelPass, width: int, height: int) -> np.ndarray:
        return kernel_pass.read_outputs(width, height, self._settings).reshape(-1, CHANNELS)
