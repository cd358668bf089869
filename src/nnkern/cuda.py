"""Device helpers — optional cupy support.

cupy is an optional dependency. When it cannot be imported, or no CUDA
device is usable, `gpu_enable` is False and only host (numpy) buffers
exist. Set NNKERN_DISABLE_GPU=1 to skip detection entirely.
"""

import os

import numpy as np

from nnkern.utils.logging import get_logger

gpu_enable = False
cp = None
if os.environ.get("NNKERN_DISABLE_GPU", "0") != "1":
    try:
        import cupy as cp

        cp.cuda.runtime.getDeviceCount()
        gpu_enable = True
    except Exception as e:  # ImportError, or CUDA driver/runtime errors
        cp = None
        get_logger().debug(f"cupy unavailable, device kernels disabled: {e}")


def is_device_array(x) -> bool:
    """True if x is a cupy.ndarray."""
    return gpu_enable and isinstance(x, cp.ndarray)


def device_of(x) -> str:
    """Return "gpu" for device buffers and "cpu" for everything else."""
    return "gpu" if is_device_array(x) else "cpu"


def as_numpy(x) -> np.ndarray:
    """Copy a device buffer to the host; host buffers are returned as is."""
    if is_device_array(x):
        return cp.asnumpy(x)
    return np.asarray(x)


def as_cupy(x):
    """Copy a host buffer to the current device."""
    if not gpu_enable:
        raise RuntimeError("cupy is not available; install nnkern[gpu]")
    return cp.asarray(x)


def synchronize() -> None:
    """Block until all queued work on the current device has finished."""
    if gpu_enable:
        cp.cuda.get_current_stream().synchronize()
