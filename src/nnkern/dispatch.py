"""Dispatch — kernel registry keyed on (name, device, dtype).

Kernels register themselves with the `register` decorator. `dispatch`
looks at the buffers of a call, picks the kernel matching their common
device and dtype, and runs it. A device buffer with no device kernel is
served by the CPU kernel through a host copy; the results are copied back
into the caller's device buffers, so only speed differs.
"""

from typing import Callable, Dict, List, Tuple

import numpy as np

from nnkern import cuda
from nnkern.core import Config, check_buffers
from nnkern.errors import NotImplementedForType
from nnkern.utils.logging import get_logger, log_fallback

FLOAT_TYPES = (np.dtype(np.float32), np.dtype(np.float64))

_registry: Dict[Tuple[str, str, np.dtype], Callable] = {}


def register(name: str, device: str = "cpu", dtypes=FLOAT_TYPES):
    """Decorator registering fn as kernel `name` for device and dtypes."""
    if device not in ("cpu", "gpu"):
        raise ValueError(f"unknown device {device!r}")

    def decorator(fn: Callable) -> Callable:
        for dt in dtypes:
            _registry[(name, device, np.dtype(dt))] = fn
        return fn

    return decorator


def registered(name: str) -> List[Tuple[str, np.dtype]]:
    """List the (device, dtype) pairs kernel `name` is registered for."""
    return sorted(
        ((dev, dt) for (n, dev, dt) in _registry if n == name),
        key=lambda k: (k[0], k[1].str),
    )


def _signature(name: str, buffers) -> Tuple[str, np.dtype]:
    check_buffers(name, *buffers)
    devices = {cuda.device_of(b) for b in buffers}
    dtypes = {np.dtype(b.dtype) for b in buffers}
    if len(devices) != 1 or len(dtypes) != 1:
        raise NotImplementedForType(
            f"{name} not implemented for mixed buffers "
            f"(devices {sorted(devices)}, dtypes {sorted(str(d) for d in dtypes)})"
        )
    dtype = dtypes.pop()
    if dtype not in FLOAT_TYPES:
        raise NotImplementedForType(f"{name} not implemented for type {dtype}")
    return devices.pop(), dtype


def lookup(name: str, *buffers) -> Tuple[Callable, bool]:
    """Resolve kernel `name` for buffers.

    Returns (fn, via_host); via_host is True when fn is a CPU kernel that
    must run on host copies of device buffers.
    """
    device, dtype = _signature(name, buffers)
    if device == "gpu" and Config.enable_gpu:
        fn = _registry.get((name, "gpu", dtype))
        if fn is not None:
            return fn, False
    fn = _registry.get((name, "cpu", dtype))
    if fn is None:
        raise NotImplementedForType(f"{name} not implemented for type {dtype} on {device}")
    return fn, device == "gpu"


def dispatch(name: str, *buffers, **params):
    """Run kernel `name` on buffers; params are passed through unchanged."""
    fn, via_host = lookup(name, *buffers)
    if not via_host:
        get_logger().debug(f"{name}: {fn.__module__}.{fn.__name__}")
        return fn(*buffers, **params)

    reason = "GPU kernels disabled" if not Config.enable_gpu else "no device kernel"
    log_fallback(name, reason)
    host = [cuda.as_numpy(b) for b in buffers]
    # Aliased device buffers must stay aliased on the host.
    for i, b in enumerate(buffers):
        for j in range(i):
            if buffers[j] is b:
                host[i] = host[j]
                break
    out = fn(*host, **params)
    for b, h in zip(buffers, host):
        b.set(h)
    for b, h in zip(buffers, host):
        if out is h:
            return b
    return out
