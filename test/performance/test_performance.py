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

import itertools

import pytest

from toyqc.grid_simulator.addressing import default_shape
from toyqc.grid_simulator.circuit import CircuitDefinition
from toyqc.grid_simulator.circuit_kernels import (
    all_qubit_densities,
    classical_state,
    control_mask,
    qubit_operation,
)
from toyqc.grid_simulator.controls import Controls
from toyqc.grid_simulator.gates import HalfTurns, OtherZ, Powering, QuarterTurns, Special
from toyqc.grid_simulator.simulation import CircuitSimulation


@pytest.fixture
def generate_layered_circuit():
    def _generate_circuit(num_qubits, num_layers):
        columns = []
        for _ in range(num_layers):
            columns.append([QuarterTurns.SqrtXForward] * num_qubits)
            columns.append([Powering.YForward] * num_qubits)
            columns.append([OtherZ.Z8] * num_qubits)
            for qubit in range(1, num_qubits):
                column = [None] * num_qubits
                column[0], column[qubit] = Special.Control, HalfTurns.Z
                columns.append(column)
        return CircuitDefinition.from_gates(columns)

    return _generate_circuit


@pytest.fixture
def generate_ghz_circuit():
    def _generate_circuit(num_qubits):
        first = [HalfTurns.H] + [None] * (num_qubits - 1)
        columns = [first]
        for qubit in range(1, num_qubits):
            column = [None] * num_qubits
            column[qubit - 1], column[qubit] = Special.Control, HalfTurns.X
            columns.append(column)
        return CircuitDefinition.from_gates(columns)

    return _generate_circuit


@pytest.mark.parametrize("nqubits", range(4, 20, 4))
def test_ghz(benchmark, generate_ghz_circuit, nqubits):
    circuit = generate_ghz_circuit(nqubits)
    simulation = CircuitSimulation(nqubits)
    benchmark(simulation.evolve, circuit)


@pytest.mark.parametrize("nqubits,nlayers", itertools.product(range(2, 20, 4), range(4, 22, 8)))
def test_layered_circuit(benchmark, generate_layered_circuit, nqubits, nlayers):
    circuit = generate_layered_circuit(nqubits, nlayers)
    simulation = CircuitSimulation(nqubits)
    benchmark(simulation.evolve, circuit, 0.3)


@pytest.mark.parametrize("nqubits", [12, 16, 20])
def test_single_qubit_operation(benchmark, nqubits):
    state = classical_state(0).to_buffer(*default_shape(1 << nqubits))
    width, height = state.shape
    control = control_mask(Controls.NONE).to_buffer(width, height)
    matrix = HalfTurns.H.matrix_at(0)
    operation = qubit_operation(state, matrix, nqubits // 2, control)
    benchmark(operation.read_outputs, width, height)


@pytest.mark.parametrize("nqubits", [12, 16, 20])
def test_all_qubit_densities(benchmark, nqubits):
    simulation = CircuitSimulation(nqubits)
    benchmark(lambda: all_qubit_densities(simulation.state).read_outputs(nqubits, 1))
