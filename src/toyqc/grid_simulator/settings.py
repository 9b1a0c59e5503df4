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

import os
from collections.abc import Mapping
from typing import Literal

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

_ENV_PREFIX = "TOYQC_"


class SimulatorSettings(BaseModel):
    """Process-wide knobs of the grid simulator.

    Attributes:
        max_grid_dimension (int): The largest width or height a grid buffer may have.
            Mirrors the texture size limit of the platform; the qubit capacity is
            `2 * log2(max_grid_dimension)`.
        dtype (str): Precision of the float channels of every cell.
        qubit_threshold (int): Buffers with more qubits than this are processed by the
            Numba kernels; smaller buffers use vectorized NumPy.
    """

    model_config = ConfigDict(frozen=True)

    max_grid_dimension: int = Field(default=4096, ge=1)
    dtype: Literal["float32", "float64"] = "float32"
    qubit_threshold: int = Field(default=10, ge=0)

    @field_validator("max_grid_dimension")
    @classmethod
    def max_grid_dimension_is_power_of_two(cls, value: int) -> int:
        if value & (value - 1):
            raise ValueError(f"max_grid_dimension must be a power of two, got {value}")
        return value

    @property
    def numpy_dtype(self) -> np.dtype:
        return np.dtype(self.dtype)

    @property
    def max_qubit_count(self) -> int:
        """int: The number of qubits that fit in the largest allowed grid."""
        return 2 * (self.max_grid_dimension.bit_length() - 1)

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> SimulatorSettings:
        """Builds settings from `TOYQC_*` environment variables, falling back to defaults.

        Args:
            environ (Mapping[str, str] | None): The variables to read. Default `os.environ`.

        Returns:
            SimulatorSettings: The validated settings.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for field_name in cls.model_fields:
            key = _ENV_PREFIX + field_name.upper()
            if key in environ:
                values[field_name] = environ[key]
        return cls.model_validate(values)


_settings: SimulatorSettings | None = None


def get_settings() -> SimulatorSettings:
    """SimulatorSettings: The process default settings, read from the environment once."""
    global _settings
    if _settings is None:
        _settings = SimulatorSettings.from_environ()
    return _settings


def set_settings(settings: SimulatorSettings | None) -> None:
    """Replaces the process default settings; `None` re-reads the environment on next use."""
    global _settings
    _settings = settings
