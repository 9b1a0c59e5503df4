import numpy as np
from numba.core.errors import NumbaError


def warmup_kernels():
    """Pre-compile the Numba kernels for both supported precisions."""
    print("Warming up Numba JIT cache for toyqc-grid-simulator...")

    try:
        from toyqc.grid_simulator.kernels import KernelDispatcher, qubit_density_sums
        from toyqc.grid_simulator.utils import free_bit_positions

        n_qubits = 12
        dispatcher = KernelDispatcher(n_qubits, threshold=0)
        matrix = np.array([[1.0, 0.0], [0.0, 1.0]], dtype=complex)
        free_positions = free_bit_positions(0b11, n_qubits)

        for dtype in (np.float32, np.float64):
            cells = np.zeros((1 << n_qubits, 4), dtype=dtype)
            cells[0, 0] = 1.0
            control = np.empty_like(cells)
            out = np.empty_like(cells)

            dispatcher.control_mask(0b1, 0b1, control)
            dispatcher.qubit_operation(cells, matrix, 0, control, out)
            dispatcher.swap(cells, 0, 1, control, out)
            dispatcher.control_select(cells, 0b01, free_positions, out[: len(out) >> 2])
            dispatcher.squared_magnitude(cells, out)
            qubit_density_sums(cells, n_qubits, dispatcher)

        print("✓ Numba JIT cache warmed up successfully")
        return True

    except (ImportError, NumbaError) as e:
        print(f"Warning: Could not warm up Numba cache: {e}")
        print("This is not critical - kernels will compile on first use")
        return False


if __name__ == "__main__":
    warmup_kernels()
