"""Core — configuration flags and buffer shape helpers.

Global Config flags in the style of a small autograd framework, plus the
batch-count/feature-dim decomposition shared by every column-wise kernel.
A buffer of ndim >= 2 is treated as a stack of samples along its leading
axis; each sample is one contiguous column of `feature_dim` values.
"""

from __future__ import annotations

import contextlib
from typing import Optional, Tuple

import numpy as np

from nnkern import cuda
from nnkern.errors import DimensionMismatch, NotImplementedForType


class Config:
    """Global config flags affecting kernel dispatch and loss checks."""

    enable_gpu = True
    check_finite = False


@contextlib.contextmanager
def using_config(name: str, value):
    """Temporarily set a Config attribute inside a context."""
    old_value = getattr(Config, name)
    setattr(Config, name, value)
    try:
        yield
    finally:
        setattr(Config, name, old_value)


def cpu_only():
    """Context manager forcing device buffers through the CPU kernels."""
    return using_config("enable_gpu", False)


def size2(x) -> Tuple[int, int]:
    """Return (feature_dim, batch_count) for buffer x.

    1-d and 0-d buffers form a single column. For ndim >= 2 the leading
    axis counts samples and the remaining axes are flattened.
    """
    if x.ndim < 2:
        return x.size, 1
    nx = x.shape[0]
    nd = x.size // nx if nx else 0
    return nd, nx


def ccount(x) -> int:
    """Number of columns (batch count) in x."""
    return size2(x)[1]


def flat(x):
    """View x as a 1-d buffer sharing its memory."""
    if not x.flags.c_contiguous:
        raise DimensionMismatch("buffer must be C-contiguous")
    return x.reshape(-1)


def columns(x, like=None):
    """View x as a (batch_count, feature_dim) matrix sharing its memory.

    The decomposition is taken from `like` when given, so buffers of equal
    size but different shapes line up column by column.
    """
    if not x.flags.c_contiguous:
        raise DimensionMismatch("buffer must be C-contiguous to be viewed as columns")
    nd, nx = size2(x if like is None else like)
    return x.reshape(nx, nd)


def is_buffer(x) -> bool:
    """True for numpy arrays and, when cupy is usable, cupy arrays."""
    return isinstance(x, np.ndarray) or cuda.is_device_array(x)


def check_buffers(name: str, *buffers) -> None:
    """Raise NotImplementedForType for anything that is not an array buffer."""
    for b in buffers:
        if not is_buffer(b):
            raise NotImplementedForType(f"{name} not implemented for type {type(b).__name__}")


def check_similar(a, b, what: Optional[str] = None) -> None:
    """Raise DimensionMismatch unless a and b hold the same number of elements.

    Non-array arguments raise NotImplementedForType first.
    """
    check_buffers(what or "check_similar", a, b)
    if a.size != b.size:
        label = f"{what}: " if what else ""
        raise DimensionMismatch(
            f"{label}buffer sizes differ ({a.size} != {b.size}, shapes {a.shape} and {b.shape})"
        )
