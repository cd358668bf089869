from nnkern.layers.activation import (
    ACTIVATIONS,
    Actf,
    Axpb,
    Logp,
    Relu,
    Sigm,
    Soft,
    Tanh,
    activation,
    axpb,
    logp,
    relu,
    sigm,
    soft,
    tanh,
)
from nnkern.layers.loss import (
    LOSSES,
    LogpLoss,
    LossLayer,
    QuadLoss,
    SoftLoss,
    XentLoss,
    logploss,
    loss_layer,
    quadloss,
    softloss,
    xentloss,
)
