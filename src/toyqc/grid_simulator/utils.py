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

from functools import lru_cache

import numpy as np


def popcount(mask: int) -> int:
    """The number of set bits in a non-negative integer."""
    return bin(mask).count("1")


def is_power_of_two(value: int) -> bool:
    return value > 0 and not value & (value - 1)


@lru_cache()
def set_bit_positions(mask: int) -> tuple[int, ...]:
    """ The positions of the set bits of `mask`, lowest first.

    Args:
        mask (int): non-negative bit pattern
    Returns:
        tuple[int, ...]: the indices of the bits that are 1
    """
    return tuple(bit for bit in range(mask.bit_length()) if (mask >> bit) & 1)


@lru_cache()
def free_bit_positions(mask: int, qubit_count: int) -> np.ndarray:
    """ The positions in [0, qubit_count) whose bits are not set in `mask`, lowest first.

    Args:
        mask (int): bit pattern of the constrained qubits
        qubit_count (int): the number of qubits addressed
    Returns:
        np.ndarray: int64 array of unconstrained bit positions
    """
    positions = np.array(
        [bit for bit in range(qubit_count) if not (mask >> bit) & 1], dtype=np.int64
    )
    positions.flags.writeable = False
    return positions
