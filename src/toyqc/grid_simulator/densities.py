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

import numpy as np

from toyqc.grid_simulator.errors import ShapeMismatchError


def density_matrices(records: np.ndarray) -> np.ndarray:
    """Decodes density records into 2x2 Hermitian matrices.

    Args:
        records (np.ndarray): Flat values or an `(n, 4)` array of
            `(ρ00, Re ρ01, Im ρ01, ρ11)` records, one per qubit.

    Returns:
        np.ndarray: `(n, 2, 2)` complex array with `ρ10 = conj(ρ01)`.

    Raises:
        ShapeMismatchError: If the values do not form whole records.
    """
    records = np.asarray(records, dtype=np.float64)
    if records.size % 4:
        raise ShapeMismatchError(f"{records.size} values do not form whole density records")
    records = records.reshape(-1, 4)
    rho_01 = records[:, 1] + 1j * records[:, 2]
    matrices = np.empty((records.shape[0], 2, 2), dtype=complex)
    matrices[:, 0, 0] = records[:, 0]
    matrices[:, 0, 1] = rho_01
    matrices[:, 1, 0] = np.conj(rho_01)
    matrices[:, 1, 1] = records[:, 3]
    return matrices


def normalized(matrix: np.ndarray) -> np.ndarray:
    """Divides a density matrix by its trace; zero-trace matrices are returned unchanged."""
    matrix = np.asarray(matrix, dtype=complex)
    trace = np.trace(matrix).real
    if trace == 0:
        return matrix
    return matrix / trace


def bloch_vector(matrix: np.ndarray) -> np.ndarray:
    """The Bloch vector `(x, y, z)` of a single-qubit density matrix.

    The matrix is normalized first, so unnormalized reductions can be passed directly.
    """
    matrix = normalized(matrix)
    if matrix.shape != (2, 2):
        raise ShapeMismatchError(f"Bloch vectors need a 2x2 matrix, got {matrix.shape}")
    rho_01 = matrix[0, 1]
    return np.array(
        [2 * rho_01.real, -2 * rho_01.imag, (matrix[0, 0] - matrix[1, 1]).real]
    )
