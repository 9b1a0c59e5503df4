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


class GridSimulatorError(Exception):
    """Base class for precondition violations detected by the grid simulator."""


class CapacityError(GridSimulatorError, ValueError):
    """A state index, qubit index or grid dimension exceeds the addressable range."""


class InvalidSpecError(GridSimulatorError, ValueError):
    """A control specification has value bits outside of its mask."""


class ShapeMismatchError(GridSimulatorError, ValueError):
    """Buffers given to one operation have incompatible sizes or widths."""


class BufferReleasedError(GridSimulatorError, RuntimeError):
    """A buffer was used after it had been released."""
