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

from toyqc.grid_simulator._version import __version__  # noqa: F401
from toyqc.grid_simulator.addressing import GridShape, default_shape  # noqa: F401
from toyqc.grid_simulator.circuit import CircuitDefinition, GateColumn  # noqa: F401
from toyqc.grid_simulator.circuit_kernels import (  # noqa: F401
    all_qubit_densities,
    classical_state,
    control_mask,
    control_select,
    linear_overlay,
    qubit_operation,
    squared_magnitude,
    swap,
)
from toyqc.grid_simulator.controls import Controls  # noqa: F401
from toyqc.grid_simulator.errors import (  # noqa: F401
    BufferReleasedError,
    CapacityError,
    GridSimulatorError,
    InvalidSpecError,
    ShapeMismatchError,
)
from toyqc.grid_simulator.grid_buffer import BufferPool, GridBuffer, KernelPass  # noqa: F401
from toyqc.grid_simulator.settings import SimulatorSettings  # noqa: F401
from toyqc.grid_simulator.simulation import CircuitSimulation, CircuitStats  # noqa: F401
