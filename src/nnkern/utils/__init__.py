from nnkern.utils.gradcheck import (
    array_allclose,
    check_activation_grad,
    check_loss_grad,
    numerical_grad,
)
from nnkern.utils.logging import get_logger, log_fallback

__all__ = [
    "array_allclose",
    "check_activation_grad",
    "check_loss_grad",
    "numerical_grad",
    "get_logger",
    "log_fallback",
]
