"""Log-density models consumed by the optimizers."""

from .base import DomainError, EvalResult, FunctionModel, Model
from .torch_model import TorchModel
from .utils import approx_grad, approx_hessian

__all__ = [
    "DomainError",
    "EvalResult",
    "FunctionModel",
    "Model",
    "TorchModel",
    "approx_grad",
    "approx_hessian",
]
