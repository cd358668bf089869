"""
Loss layers.

A loss layer differs from the other layers in its input/output behavior:
forward(y) only records the model output y, backward(z) takes the desired
output z and overwrites it with the loss gradient w.r.t. y, and loss(z)
returns the loss value. The recorded y is a borrowed reference: it stays
valid until the next forward() or until the caller reuses the buffer.
"""

import math
from typing import Dict, Type

import nnkern.kernels  # noqa: F401  (registers the kernels)
from nnkern.core import Config, check_similar
from nnkern.dispatch import dispatch
from nnkern.errors import NumericalError, UninitializedError


class LossLayer:
    """
    Base loss layer.

    Subclasses set `loss_kernel` and `back_kernel` to registered kernel
    names taking (y, z).
    """

    loss_kernel: str = ""
    back_kernel: str = ""

    def __init__(self) -> None:
        self.y = None

    def __repr__(self):
        return f"{type(self).__name__}()"

    def _recorded(self, z):
        if self.y is None:
            raise UninitializedError(
                f"{type(self).__name__}: forward() must be called before backward()/loss()"
            )
        check_similar(z, self.y, type(self).__name__)
        return self.y

    def forward(self, y):
        """Record the model output y and return it."""
        self.y = y
        return y

    def backward(self, z, return_gradient: bool = True):
        """Overwrite z with dJ/dy and return it.

        With return_gradient=False nothing is computed and None is returned.
        """
        y = self._recorded(z)
        if not return_gradient:
            return None
        return dispatch(self.back_kernel, y, z)

    def loss(self, z) -> float:
        """Loss value averaged over the batch count; z is not modified."""
        y = self._recorded(z)
        cost = dispatch(self.loss_kernel, y, z)
        if Config.check_finite and not math.isfinite(cost):
            raise NumericalError(f"{type(self).__name__}: loss is {cost}")
        return cost


class QuadLoss(LossLayer):
    """Quadratic loss: J = 0.5 * sum((y - z)**2) / N, y the raw model output."""

    loss_kernel = "quadloss"
    back_kernel = "quadlossback"


class SoftLoss(LossLayer):
    """Cross entropy loss to use after the Soft layer.

    y holds normalized probabilities, z the target probabilities, each
    column summing to 1.
    """

    loss_kernel = "softloss"
    back_kernel = "softlossback"


class LogpLoss(LossLayer):
    """Cross entropy loss to use after the Logp layer.

    y holds normalized log probabilities.
    """

    loss_kernel = "logploss"
    back_kernel = "logplossback"


class XentLoss(LossLayer):
    """Cross entropy loss to use after an unnormalized layer.

    y holds unnormalized log probabilities (logits); the softmax is taken
    internally with max subtraction.
    """

    loss_kernel = "xentloss"
    back_kernel = "xentlossback"


def quadloss() -> QuadLoss:
    return QuadLoss()


def softloss() -> SoftLoss:
    return SoftLoss()


def logploss() -> LogpLoss:
    return LogpLoss()


def xentloss() -> XentLoss:
    return XentLoss()


LOSSES: Dict[str, Type[LossLayer]] = {
    "quadloss": QuadLoss,
    "softloss": SoftLoss,
    "logploss": LogpLoss,
    "xentloss": XentLoss,
}


def loss_layer(name: str) -> LossLayer:
    """Construct the loss layer registered under name."""
    try:
        cls = LOSSES[name]
    except KeyError:
        raise ValueError(f"unknown loss {name!r}; expected one of {sorted(LOSSES)}") from None
    return cls()
