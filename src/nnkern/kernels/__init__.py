"""Numeric kernels.

Importing this package registers the CPU reference kernels and, when cupy
is usable, the device kernels with nnkern.dispatch.
"""

from nnkern import cuda
from nnkern.kernels import activation, loss

if cuda.gpu_enable:
    from nnkern.kernels import cuda_activation, cuda_loss  # noqa: F401
