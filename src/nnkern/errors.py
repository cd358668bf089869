"""Errors — exception hierarchy for nnkern.

Every error raised by the kernels and layers is a contract error on the
caller's side. They are raised immediately and never retried.
"""


class NNKernError(Exception):
    """Base exception for all nnkern errors."""

    pass


class DimensionMismatch(NNKernError, ValueError):
    """Buffers passed to one call disagree in length or layout."""

    pass


class MissingInputError(NNKernError, ValueError):
    """A backward pass was called without the buffer its formula reads.

    For example PowerAffine (`axpb`) needs the pre-activation input `x`,
    while sigmoid needs the post-activation output `y`.
    """

    pass


class NotImplementedForType(NNKernError, NotImplementedError):
    """No kernel is registered for the dtype/device of the given buffers."""

    pass


class UninitializedError(NNKernError, RuntimeError):
    """A loss layer was asked for a gradient or value before forward()."""

    pass


class NumericalError(NNKernError, ArithmeticError):
    """A loss value was not finite while Config.check_finite is set."""

    pass
