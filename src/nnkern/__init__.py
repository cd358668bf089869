"""nnkern — activation and loss layer kernels.

Forward/backward kernels for elementwise and column-wise activations and
for the loss layers of a neural-network framework, on host (numpy) or
device (cupy) buffers owned by the caller.
"""

from nnkern.core import Config, ccount, cpu_only, size2, using_config
from nnkern.dispatch import dispatch, register, registered
from nnkern.errors import (
    DimensionMismatch,
    MissingInputError,
    NNKernError,
    NotImplementedForType,
    NumericalError,
    UninitializedError,
)
from nnkern.layers import (
    ACTIVATIONS,
    LOSSES,
    Actf,
    Axpb,
    LogpLoss,
    Logp,
    LossLayer,
    QuadLoss,
    Relu,
    Sigm,
    Soft,
    SoftLoss,
    Tanh,
    XentLoss,
    activation,
    axpb,
    logp,
    logploss,
    loss_layer,
    quadloss,
    relu,
    sigm,
    soft,
    softloss,
    tanh,
    xentloss,
)

# Explicit exports for `from nnkern import ...`
__all__ = [
    "Config",
    "ccount",
    "cpu_only",
    "size2",
    "using_config",
    "dispatch",
    "register",
    "registered",
    "DimensionMismatch",
    "MissingInputError",
    "NNKernError",
    "NotImplementedForType",
    "NumericalError",
    "UninitializedError",
    "ACTIVATIONS",
    "LOSSES",
    "Actf",
    "Axpb",
    "LogpLoss",
    "Logp",
    "LossLayer",
    "QuadLoss",
    "Relu",
    "Sigm",
    "Soft",
    "SoftLoss",
    "Tanh",
    "XentLoss",
    "activation",
    "axpb",
    "logp",
    "logploss",
    "loss_layer",
    "quadloss",
    "relu",
    "sigm",
    "soft",
    "softloss",
    "tanh",
    "xentloss",
]
