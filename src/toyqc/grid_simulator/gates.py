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

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import numpy as np
from scipy.linalg import polar

TAU = 2 * np.pi


class DisplayKind(Enum):
    """How a gate is drawn; the simulator only distinguishes controls, swaps and displays."""

    DEFAULT = "default"
    CONTROL = "control"
    ANTI_CONTROL = "anti_control"
    SWAP_HALF = "swap_half"
    CHANCE = "chance"
    BLOCH_SPHERE = "bloch_sphere"
    DENSITY_MATRIX = "density_matrix"
    CYCLE = "cycle"
    SQUARE_WAVE = "square_wave"
    MATRIX_SYMBOL = "matrix_symbol"
    SPACER = "spacer"


@dataclass(frozen=True, eq=False)
class Gate:
    """
    A circuit element: a matrix, constant or a function of time, plus what it looks like.

    Gates compare by identity, so a circuit can tell a Control from any other identity gate.
    """

    symbol: str
    matrix: np.ndarray | Callable[[float], np.ndarray]
    name: str
    blurb: str = ""
    display: DisplayKind = DisplayKind.DEFAULT

    @property
    def is_time_based(self) -> bool:
        return callable(self.matrix)

    def matrix_at(self, time: float) -> np.ndarray:
        """The gate's matrix at the given time; constant gates ignore the time."""
        if callable(self.matrix):
            return np.asarray(self.matrix(time), dtype=complex)
        return self.matrix

    def __repr__(self) -> str:
        return f"Gate({self.symbol!r})"


def _constant(rows) -> np.ndarray:
    matrix = np.array(rows, dtype=complex)
    matrix.flags.writeable = False
    return matrix


IDENTITY = _constant([[1, 0], [0, 1]])
PAULI_X = _constant([[0, 1], [1, 0]])
PAULI_Y = _constant([[0, -1j], [1j, 0]])
PAULI_Z = _constant([[1, 0], [0, -1]])
HADAMARD = _constant(np.array([[1, 1], [1, -1]]) / np.sqrt(2))
SWAP = _constant([[1, 0, 0, 0], [0, 0, 1, 0], [0, 1, 0, 0], [0, 0, 0, 1]])


def pauli_power(pauli: np.ndarray, exponent: float) -> np.ndarray:
    """The principal power of a Pauli matrix.

    Pauli matrices have eigenvalues +1 and -1 = e^(iπ), so the principal power is
    `(I + P) / 2 + e^(iπ·exponent) (I - P) / 2`.

    Args:
        pauli (np.ndarray): One of `PAULI_X`, `PAULI_Y`, `PAULI_Z`.
        exponent (float): The power to raise it to.

    Returns:
        np.ndarray: The 2x2 unitary `pauli ** exponent`.
    """
    phase = np.exp(1j * np.pi * exponent)
    return (IDENTITY + pauli) / 2 + phase * (IDENTITY - pauli) / 2


def pauli_exponential(pauli: np.ndarray, turns: float) -> np.ndarray:
    """`e^(-iτ·turns·P) = cos(τ·turns) I - i sin(τ·turns) P`."""
    angle = TAU * turns
    return np.cos(angle) * IDENTITY - 1j * np.sin(angle) * pauli


class Special:
    Control = Gate(
        "•",
        IDENTITY,
        "Control",
        "Conditions on a qubit being ON.\n"
        "Gates in the same column will only apply to states meeting the condition.",
        DisplayKind.CONTROL,
    )
    AntiControl = Gate(
        "◦",
        IDENTITY,
        "Anti-Control",
        "Conditions on a qubit being OFF.\n"
        "Gates in the same column will only apply to states meeting the condition.",
        DisplayKind.ANTI_CONTROL,
    )
    SwapHalf = Gate(
        "Swap",
        SWAP,
        "Swap Gate [Half]",
        "Swaps the values of two qubits.\n"
        "Place two swap gate halves in the same column to form a swap gate.",
        DisplayKind.SWAP_HALF,
    )


class Displays:
    Chance = Gate(
        "Chance",
        IDENTITY,
        "Probability Display",
        "Shows the chance that measuring a wire would return ON.",
        DisplayKind.CHANCE,
    )
    Bloch = Gate(
        "Bloch",
        IDENTITY,
        "Bloch Sphere Display",
        "Shows a wire's local state as a point on the Bloch Sphere.",
        DisplayKind.BLOCH_SPHERE,
    )
    Density = Gate(
        "Density",
        IDENTITY,
        "Density Matrix Display",
        "Shows a wire's local state as a density matrix.",
        DisplayKind.DENSITY_MATRIX,
    )


class HalfTurns:
    X = Gate("X", PAULI_X, "Pauli X Gate", "Toggles between ON and OFF.")
    Y = Gate("Y", PAULI_Y, "Pauli Y Gate", "A combination of the X and Z gates.")
    Z = Gate(
        "Z", PAULI_Z, "Pauli Z Gate", "Negates the amplitude of states where the qubit is ON."
    )
    H = Gate(
        "H", HADAMARD, "Hadamard Gate", "Toggles between ON and ON+OFF, and OFF and ON-OFF."
    )


class QuarterTurns:
    SqrtXForward = Gate("X^½", _constant(pauli_power(PAULI_X, 0.5)), "√X Gate")
    SqrtXBackward = Gate("X^-½", _constant(pauli_power(PAULI_X, -0.5)), "X^-½ Gate")
    SqrtYForward = Gate("Y^½", _constant(pauli_power(PAULI_Y, 0.5)), "√Y Gate")
    SqrtYBackward = Gate("Y^-½", _constant(pauli_power(PAULI_Y, -0.5)), "Y^-½ Gate")
    SqrtZForward = Gate("Z^½", _constant(pauli_power(PAULI_Z, 0.5)), "√Z Gate", "The S gate.")
    SqrtZBackward = Gate("Z^-½", _constant(pauli_power(PAULI_Z, -0.5)), "Z^-½ Gate")


class OtherZ:
    Z3 = Gate("Z^⅓", _constant(pauli_power(PAULI_Z, 1 / 3)), "Z^⅓ Gate")
    Z3i = Gate("Z^-⅓", _constant(pauli_power(PAULI_Z, -1 / 3)), "Z^-⅓ Gate")
    Z4 = Gate("Z^¼", _constant(pauli_power(PAULI_Z, 1 / 4)), "Z^¼ Gate", "The T gate.")
    Z4i = Gate("Z^-¼", _constant(pauli_power(PAULI_Z, -1 / 4)), "Z^-¼ Gate")
    Z8 = Gate("Z^⅛", _constant(pauli_power(PAULI_Z, 1 / 8)), "Z^⅛ Gate")
    Z8i = Gate("Z^-⅛", _constant(pauli_power(PAULI_Z, -1 / 8)), "Z^-⅛ Gate")


def _exponentiating(symbol: str, pauli: np.ndarray, axis: str, sign: int) -> Gate:
    direction = "forward" if sign > 0 else "backward"
    return Gate(
        symbol,
        lambda t: pauli_exponential(pauli, sign * t),
        f"{axis}-Exponentiating Gate ({direction})",
        f"A continuous rotation around the {axis} axis.",
        DisplayKind.CYCLE,
    )


def _powering(symbol: str, pauli: np.ndarray, axis: str, sign: int) -> Gate:
    direction = "forward" if sign > 0 else "backward"
    return Gate(
        symbol,
        lambda t: pauli_power(pauli, 2 * sign * t),
        f"{axis}-Raising Gate ({direction})",
        f"A continuous cycle between the {axis} gate and no-op.",
        DisplayKind.CYCLE,
    )


class Exponentiating:
    XForward = _exponentiating("e^-iXt", PAULI_X, "X", 1)
    XBackward = _exponentiating("e^iXt", PAULI_X, "X", -1)
    YForward = _exponentiating("e^-iYt", PAULI_Y, "Y", 1)
    YBackward = _exponentiating("e^iYt", PAULI_Y, "Y", -1)
    ZForward = _exponentiating("e^-iZt", PAULI_Z, "Z", 1)
    ZBackward = _exponentiating("e^iZt", PAULI_Z, "Z", -1)


class Powering:
    XForward = _powering("X^t", PAULI_X, "X", 1)
    XBackward = _powering("X^-t", PAULI_X, "X", -1)
    YForward = _powering("Y^t", PAULI_Y, "Y", 1)
    YBackward = _powering("Y^-t", PAULI_Y, "Y", -1)
    ZForward = _powering("Z^t", PAULI_Z, "Z", 1)
    ZBackward = _powering("Z^-t", PAULI_Z, "Z", -1)


FUZZ_SYMBOL = "Fuzz"


def make_fuzz_gate(rng: np.random.Generator | None = None) -> Gate:
    """A random single-qubit gate: the closest unitary to a random complex matrix.

    Args:
        rng (np.random.Generator | None): Source of randomness. Default a fresh generator.

    Returns:
        Gate: A new gate; every call gives a different one.
    """
    rng = rng or np.random.default_rng()
    entries = rng.random((2, 2)) - 0.5 + 1j * (rng.random((2, 2)) - 0.5)
    unitary, _ = polar(entries)
    return Gate(
        FUZZ_SYMBOL,
        _constant(unitary),
        "Fuzz Gate",
        "Every time you grab this, you get a different random gate.",
        DisplayKind.MATRIX_SYMBOL,
    )


class Silly:
    Clock = Gate(
        "X^⌈t⌉",
        lambda t: IDENTITY if t % 1 < 0.5 else PAULI_X,
        "Clock Pulse Gate",
        "Xors a square wave into the target wire.",
        DisplayKind.SQUARE_WAVE,
    )
    ClockQuarterPhase = Gate(
        "X^⌈t-¼⌉",
        lambda t: IDENTITY if (t + 0.75) % 1 < 0.5 else PAULI_X,
        "Clock Pulse Gate (Quarter Phase)",
        "Xors a quarter-phased square wave into the target wire.",
        DisplayKind.SQUARE_WAVE,
    )
    Spacer = Gate("…", IDENTITY, "Spacer", "A gate with no effect.", DisplayKind.SPACER)


TOOLBOX: tuple[tuple[str, tuple[Gate | None, ...]], ...] = (
    (
        "Inspection",
        (Special.Control, Displays.Chance, Special.AntiControl, Displays.Density, Displays.Bloch),
    ),
    ("Half Turns", (HalfTurns.H, None, Special.SwapHalf, HalfTurns.X, HalfTurns.Y, HalfTurns.Z)),
    (
        "Quarter Turns",
        (
            QuarterTurns.SqrtXForward,
            QuarterTurns.SqrtYForward,
            QuarterTurns.SqrtZForward,
            QuarterTurns.SqrtXBackward,
            QuarterTurns.SqrtYBackward,
            QuarterTurns.SqrtZBackward,
        ),
    ),
    (
        "Raising",
        (
            Powering.XForward,
            Powering.YForward,
            Powering.ZForward,
            Powering.XBackward,
            Powering.YBackward,
            Powering.ZBackward,
        ),
    ),
    (
        "Exponentiating",
        (
            Exponentiating.XForward,
            Exponentiating.YForward,
            Exponentiating.ZForward,
            Exponentiating.XBackward,
            Exponentiating.YBackward,
            Exponentiating.ZBackward,
        ),
    ),
    ("Other Z", (OtherZ.Z3, OtherZ.Z4, OtherZ.Z8, OtherZ.Z3i, OtherZ.Z4i, OtherZ.Z8i)),
    ("Extra", (Silly.Spacer, Silly.Clock, Silly.ClockQuarterPhase)),
)

ALL_GATES: tuple[Gate, ...] = tuple(
    gate for _, gates in TOOLBOX for gate in gates if gate is not None
)
