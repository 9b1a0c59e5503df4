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

import logging

import numpy as np
import pytest

from toyqc.grid_simulator.circuit import CircuitDefinition
from toyqc.grid_simulator.densities import bloch_vector
from toyqc.grid_simulator.errors import CapacityError
from toyqc.grid_simulator.gates import Displays, HalfTurns, Powering, Silly, Special
from toyqc.grid_simulator.grid_buffer import BufferPool
from toyqc.grid_simulator.settings import SimulatorSettings
from toyqc.grid_simulator.simulation import CircuitSimulation

C, A, S = Special.Control, Special.AntiControl, Special.SwapHalf
H, X = HalfTurns.H, HalfTurns.X
ATOL = 1e-6


@pytest.fixture
def bell_circuit():
    return CircuitDefinition.from_gates([[H, None], [C, X], [C, Displays.Chance]])


def test_initial_state():
    simulation = CircuitSimulation(3)
    np.testing.assert_array_equal(simulation.probabilities, [1, 0, 0, 0, 0, 0, 0, 0])
    assert simulation.stats is None
    assert simulation.state.shape == (4, 2)


@pytest.mark.parametrize("qubit_count", [0, -1])
def test_needs_a_qubit(qubit_count):
    with pytest.raises(CapacityError):
        CircuitSimulation(qubit_count)


def test_grid_too_large():
    with pytest.raises(CapacityError):
        CircuitSimulation(5, SimulatorSettings(max_grid_dimension=4))


@pytest.mark.parametrize("qubit_count", [25, 60, 64])
def test_qubit_count_beyond_platform_limit(qubit_count):
    with pytest.raises(CapacityError, match="at most 24 qubits"):
        CircuitSimulation(qubit_count)


def test_bell_state(bell_circuit):
    simulation = CircuitSimulation(2)
    stats = simulation.evolve(bell_circuit)
    assert stats is simulation.stats
    np.testing.assert_allclose(simulation.probabilities, [0.5, 0, 0, 0.5], atol=ATOL)
    np.testing.assert_allclose(
        simulation.amplitudes, [np.sqrt(0.5), 0, 0, np.sqrt(0.5)], atol=ATOL
    )
    for density in simulation.densities:
        np.testing.assert_allclose(density, np.eye(2) / 2, atol=ATOL)


def test_conditional_probabilities(bell_circuit):
    stats = CircuitSimulation(2).evolve(bell_circuit)
    assert stats.wire_probability(1, 0) == pytest.approx(0, abs=ATOL)
    assert stats.wire_probability(0, 0) == pytest.approx(0.5, abs=ATOL)
    assert stats.wire_probability(1, 2) == pytest.approx(1, abs=ATOL)
    np.testing.assert_array_equal(stats.qubit_density_matrix(0, 2), [[0, 0], [0, 1]])


def test_anti_controlled_density():
    circuit = CircuitDefinition.from_gates([[H, None], [C, X], [A, Displays.Density]])
    stats = CircuitSimulation(2).evolve(circuit)
    np.testing.assert_allclose(stats.qubit_density_matrix(1, 2), [[1, 0], [0, 0]], atol=ATOL)
    np.testing.assert_array_equal(stats.qubit_density_matrix(0, 2), [[1, 0], [0, 0]])


def test_unsatisfiable_controls_give_zero_density():
    circuit = CircuitDefinition.from_gates([[C, Displays.Chance]])
    stats = CircuitSimulation(2).evolve(circuit)
    np.testing.assert_array_equal(stats.qubit_density_matrix(1, 0), np.zeros((2, 2)))
    assert stats.wire_probability(1, 0) == 0


def test_fully_controlled_column():
    circuit = CircuitDefinition.from_gates([[X, None], [C, A]])
    stats = CircuitSimulation(2).evolve(circuit)
    assert stats.wire_probability(0, 1) == 1
    assert stats.wire_probability(1, 1) == 0


@pytest.mark.parametrize("row, col", [(2, 0), (-1, 0), (0, 3), (0, -1)])
def test_stats_out_of_range(bell_circuit, row, col):
    stats = CircuitSimulation(2).evolve(bell_circuit)
    with pytest.raises(IndexError):
        stats.qubit_density_matrix(row, col)


def test_ghz_bloch_vectors():
    circuit = CircuitDefinition.from_gates([[H, None, None], [C, X, None], [None, C, X]])
    simulation = CircuitSimulation(3)
    simulation.evolve(circuit)
    probabilities = np.zeros(8)
    probabilities[[0, 7]] = 0.5
    np.testing.assert_allclose(simulation.probabilities, probabilities, atol=ATOL)
    for density in simulation.densities:
        np.testing.assert_allclose(bloch_vector(density), [0, 0, 0], atol=ATOL)


def test_plus_state_density():
    stats = CircuitSimulation(1).evolve(CircuitDefinition.from_gates([[H]]))
    np.testing.assert_allclose(
        stats.qubit_density_matrix(0, 0), [[0.5, 0.5], [0.5, 0.5]], atol=ATOL
    )


def test_density_table(bell_circuit):
    stats = CircuitSimulation(2).evolve(bell_circuit)
    table = stats.density_table
    assert table.shape == (2, 3)
    records = table.cells.reshape(3, 2, 4)
    np.testing.assert_allclose(records[0, 0], [0.5, 0.5, 0, 0.5], atol=ATOL)
    np.testing.assert_allclose(records[0, 1], [1, 0, 0, 0], atol=ATOL)
    np.testing.assert_allclose(records[2], [[0.5, 0, 0, 0.5]] * 2, atol=ATOL)


def test_empty_circuit():
    simulation = CircuitSimulation(2)
    stats = simulation.evolve(CircuitDefinition(2, ()))
    assert stats.density_table is None
    np.testing.assert_array_equal(simulation.probabilities, [1, 0, 0, 0])


def test_swap():
    circuit = CircuitDefinition.from_gates([[X, None, None], [S, None, S]])
    simulation = CircuitSimulation(3)
    simulation.evolve(circuit)
    assert simulation.probabilities[4] == pytest.approx(1)


def test_controlled_swap():
    circuit = CircuitDefinition.from_gates([[X, None, None], [S, A, S], [S, C, S]])
    simulation = CircuitSimulation(3)
    simulation.evolve(circuit)
    assert simulation.probabilities[4] == pytest.approx(1)


def test_lone_swap_half_does_nothing():
    circuit = CircuitDefinition.from_gates([[X, None], [S, None]])
    simulation = CircuitSimulation(2)
    simulation.evolve(circuit)
    assert simulation.probabilities[1] == pytest.approx(1)


@pytest.mark.parametrize(
    "gate, time, on",
    [
        (Powering.XForward, 0, 0),
        (Powering.XForward, 0.5, 1),
        (Powering.XForward, 0.25, 0.5),
        (Silly.Clock, 0.25, 0),
        (Silly.Clock, 0.75, 1),
    ],
)
def test_time_based_evolution(gate, time, on):
    stats = CircuitSimulation(1).evolve(CircuitDefinition.from_gates([[gate]]), time)
    assert stats.time == time
    assert stats.wire_probability(0, 0) == pytest.approx(on, abs=ATOL)


def test_evolve_restarts_from_ground_state():
    circuit = CircuitDefinition.from_gates([[X]])
    simulation = CircuitSimulation(1)
    simulation.evolve(circuit)
    simulation.evolve(circuit)
    np.testing.assert_allclose(simulation.probabilities, [0, 1], atol=ATOL)


def test_failed_evolve_keeps_previous_result(bell_circuit, caplog):
    simulation = CircuitSimulation(2)
    stats = simulation.evolve(bell_circuit)
    too_wide = CircuitDefinition.from_gates([[None, None, X]])
    with caplog.at_level(logging.ERROR), pytest.raises(CapacityError):
        simulation.evolve(too_wide)
    assert simulation.stats is stats
    np.testing.assert_allclose(simulation.probabilities, [0.5, 0, 0, 0.5], atol=ATOL)
    assert "Failed to evaluate" in caplog.text


def test_pool_reuse(bell_circuit):
    pool = BufferPool()
    simulation = CircuitSimulation(2, pool=pool)
    simulation.evolve(bell_circuit)
    allocations = pool.allocations
    simulation.evolve(bell_circuit)
    simulation.evolve(bell_circuit)
    assert pool.allocations == allocations
    assert not simulation.state.released


def test_large_simulation_agrees_with_small():
    circuit = CircuitDefinition.from_gates(
        [[H, None, None, None], [C, X, None, None], [None, H, None, X], [None, None, S, S]]
    )
    small = CircuitSimulation(4, SimulatorSettings(qubit_threshold=4))
    large = CircuitSimulation(4, SimulatorSettings(qubit_threshold=0))
    small.evolve(circuit)
    large.evolve(circuit)
    np.testing.assert_allclose(small.amplitudes, large.amplitudes, atol=ATOL)
    np.testing.assert_allclose(small.densities, large.densities, atol=ATOL)
