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

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from functools import lru_cache

import numpy as np

from toyqc.grid_simulator.controls import Controls
from toyqc.grid_simulator.errors import InvalidSpecError
from toyqc.grid_simulator.gates import Gate, Special

_HASH_LENGTH = 40
_EMPTY_CIRCUIT_HASH = "A Toy Quantum Circuit Inspector"

NEED_OTHER_SWAP = "need\nother\nswap"
TOO_MANY_SWAP = "too\nmany\nswap"


@dataclass(frozen=True)
class GateColumn:
    """The gates applied at one time step, one slot per wire."""

    gates: tuple[Gate | None, ...]

    def __post_init__(self):
        object.__setattr__(self, "gates", tuple(self.gates))

    @staticmethod
    def empty(num_wires: int) -> GateColumn:
        return GateColumn((None,) * num_wires)

    def is_empty(self) -> bool:
        return all(gate is None for gate in self.gates)

    def __len__(self) -> int:
        return len(self.gates)


@dataclass(frozen=True)
class CircuitDefinition:
    """
    An immutable grid of gates: `num_wires` wires by `len(columns)` time steps.

    Per-column structure is computed on demand and memoized by circuit value, which
    is sound because circuits never change after construction.
    """

    num_wires: int
    columns: tuple[GateColumn, ...]

    def __post_init__(self):
        object.__setattr__(self, "columns", tuple(self.columns))
        if self.num_wires < 0:
            raise InvalidSpecError(f"num_wires must be non-negative, got {self.num_wires}")
        for index, column in enumerate(self.columns):
            if not isinstance(column, GateColumn):
                raise InvalidSpecError(f"Column {index} is not a GateColumn: {column!r}")
            if len(column) != self.num_wires:
                raise InvalidSpecError(
                    f"Column {index} has {len(column)} slots for {self.num_wires} wires"
                )

    @classmethod
    def from_gates(cls, gates: Sequence[Sequence[Gate | None]]) -> CircuitDefinition:
        """Builds a circuit from a list of columns, each a list of gates by wire."""
        if not gates:
            return cls(0, ())
        return cls(len(gates[0]), tuple(GateColumn(tuple(column)) for column in gates))

    def with_columns(self, columns: Iterable[GateColumn]) -> CircuitDefinition:
        return CircuitDefinition(self.num_wires, tuple(columns))

    def without_empties(self) -> CircuitDefinition:
        return self.with_columns(column for column in self.columns if not column.is_empty())

    def with_wire_count(self, num_wires: int) -> CircuitDefinition:
        """Drops wires beyond `num_wires`, or pads new empty wires at the bottom."""
        if num_wires == self.num_wires:
            return self
        return CircuitDefinition(
            num_wires,
            tuple(
                GateColumn((column.gates + (None,) * num_wires)[:num_wires])
                for column in self.columns
            ),
        )

    def gate_at(self, col: int, row: int) -> Gate | None:
        """The gate at a location, or `None` for an empty or out-of-range location."""
        if not 0 <= col < len(self.columns) or not 0 <= row < self.num_wires:
            return None
        return self.columns[col].gates[row]

    def is_time_dependent(self) -> bool:
        return any(
            gate is not None and gate.is_time_based
            for column in self.columns
            for gate in column.gates
        )

    def readable_hash(self) -> str:
        """A compact, lossy text summary that distinguishes circuits at a glance."""
        symbols = [gate.symbol for column in self.columns for gate in column.gates if gate]
        if not symbols:
            return _EMPTY_CIRCUIT_HASH
        summary = (
            f"{self.num_wires} wires, {len(symbols)} ops, {''.join(symbols).replace('^', '')}"
        )
        if len(summary) <= _HASH_LENGTH:
            return summary
        return summary[:_HASH_LENGTH] + "…"

    def column_controls(self, col: int) -> Controls:
        """The condition set by the Control and AntiControl gates of a column."""
        return _column_controls(self, col)

    def gate_disabled_reason(self, col: int, row: int) -> str | None:
        """Why the gate at a location can't run, or `None` if it can."""
        return _gate_disabled_reason(self, col, row)

    def column_swap_pair(self, col: int) -> tuple[int, int] | None:
        """The two wires swapped by a column, if it holds exactly one pair of swap halves."""
        rows = _swap_rows(self, col)
        if len(rows) != 2:
            return None
        return rows

    def single_qubit_operations_at(self, col: int, time: float) -> list[tuple[int, np.ndarray]]:
        """The enabled, non-identity 2x2 operations of a column at the given time.

        Returns:
            list[tuple[int, np.ndarray]]: `(wire, matrix)` pairs, top wire first.
        """
        if not 0 <= col < len(self.columns):
            return []
        operations = []
        for row, gate in enumerate(self.columns[col].gates):
            if gate is None or self.gate_disabled_reason(col, row) is not None:
                continue
            matrix = gate.matrix_at(time)
            if matrix.shape != (2, 2) or np.allclose(matrix, np.eye(2)):
                continue
            operations.append((row, matrix))
        return operations

    def __str__(self) -> str:
        wire = "─"
        lines = []
        for row in range(self.num_wires):
            cells = [
                (column.gates[row].symbol if column.gates[row] else wire).ljust(7, wire)
                for column in self.columns
            ]
            lines.append(wire + "".join(cells))
        return "\n".join(lines)


@lru_cache(maxsize=4096)
def _column_controls(circuit: CircuitDefinition, col: int) -> Controls:
    controls = Controls.NONE
    if not 0 <= col < len(circuit.columns):
        return controls
    for row, gate in enumerate(circuit.columns[col].gates):
        if gate is Special.Control:
            controls = controls.and_also(Controls.from_bit_is(row, True))
        elif gate is Special.AntiControl:
            controls = controls.and_also(Controls.from_bit_is(row, False))
    return controls


@lru_cache(maxsize=4096)
def _swap_rows(circuit: CircuitDefinition, col: int) -> tuple[int, ...]:
    if not 0 <= col < len(circuit.columns):
        return ()
    return tuple(
        row for row, gate in enumerate(circuit.columns[col].gates) if gate is Special.SwapHalf
    )


@lru_cache(maxsize=4096)
def _gate_disabled_reason(circuit: CircuitDefinition, col: int, row: int) -> str | None:
    if circuit.gate_at(col, row) is not Special.SwapHalf:
        return None
    swap_count = len(_swap_rows(circuit, col))
    if swap_count == 1:
        return NEED_OTHER_SWAP
    if swap_count > 2:
        return TOO_MANY_SWAP
    return None
