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

from dataclasses import dataclass
from typing import ClassVar

from toyqc.grid_simulator.errors import InvalidSpecError
from toyqc.grid_simulator.utils import popcount, set_bit_positions


@dataclass(frozen=True)
class Controls:
    """
    A product condition on computational basis states: for every bit set in `mask`,
    the corresponding qubit must equal the corresponding bit of `value`.
    """

    mask: int
    value: int

    NONE: ClassVar[Controls]

    def __post_init__(self):
        if self.mask < 0 or self.value < 0:
            raise InvalidSpecError(f"Control bits must be non-negative, got {self!r}")
        if self.value & ~self.mask:
            raise InvalidSpecError(
                f"Control value {self.value:#x} has bits outside of mask {self.mask:#x}"
            )

    @staticmethod
    def from_bit_is(bit: int, on: bool) -> Controls:
        """Controls requiring qubit `bit` to be ON (`on=True`) or OFF."""
        if bit < 0:
            raise InvalidSpecError(f"Control bit must be non-negative, got {bit}")
        return Controls(1 << bit, (1 << bit) if on else 0)

    def allows_state(self, index: int) -> bool:
        return (index & self.mask) == self.value

    def and_also(self, other: Controls) -> Controls:
        """Combines two conditions.

        Raises:
            InvalidSpecError: If the conditions disagree on a shared qubit.
        """
        overlap = self.mask & other.mask
        if (self.value & overlap) != (other.value & overlap):
            raise InvalidSpecError(f"{self} and {other} can never both be satisfied")
        return Controls(self.mask | other.mask, self.value | other.value)

    @property
    def included_qubits(self) -> tuple[int, ...]:
        """tuple[int, ...]: The qubits constrained by these controls."""
        return set_bit_positions(self.mask)

    @property
    def control_count(self) -> int:
        return popcount(self.mask)

    def desired_value_for(self, qubit: int) -> bool | None:
        """The required value of the qubit, or `None` if it is unconstrained."""
        if not (self.mask >> qubit) & 1:
            return None
        return bool((self.value >> qubit) & 1)

    def __str__(self) -> str:
        if not self.mask:
            return "No Controls"
        return ", ".join(
            f"q{qubit}={int(self.desired_value_for(qubit))}" for qubit in self.included_qubits
        )


Controls.NONE = Controls(0, 0)
