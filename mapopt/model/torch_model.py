"""Models whose log-density is written with PyTorch operations."""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence

import numpy as np
import torch
from torch.autograd.functional import hessian as torch_hessian

from .base import Array, DomainError, Model

TorchLogDensity = Callable[[torch.Tensor], torch.Tensor]


class TorchModel(Model):
    """
    Log-density model differentiated with ``torch.autograd``.

    The log-density callable receives a float64 tensor of shape
    ``(num_params,)`` and must return a scalar tensor. Gradients and Hessians
    come from autograd, so no finite differences are involved.

    Parameters
    ----------
    log_prob:
        Callable mapping a parameter tensor to a scalar log-density tensor.
    dim:
        Number of unconstrained parameters.
    names:
        Optional parameter names used in output headers.
    device:
        Torch device for evaluation. Defaults to CPU.

    Raises
    ------
    DomainError
        From any evaluation whose log-density is NaN, or where torch
        raises ``RuntimeError`` while evaluating or differentiating.
    """

    def __init__(
        self,
        log_prob: TorchLogDensity,
        dim: int,
        names: Optional[Sequence[str]] = None,
        device: Optional[torch.device] = None,
    ) -> None:
        if dim <= 0:
            raise ValueError("dim must be positive")
        if names is not None and len(names) != dim:
            raise ValueError(f"Expected {dim} parameter names, got {len(names)}")
        self._fn = log_prob
        self._dim = int(dim)
        self._names = list(names) if names is not None else None
        self._device = device if device is not None else torch.device("cpu")

    @property
    def num_params(self) -> int:
        return self._dim

    def _to_tensor(self, params: Array, requires_grad: bool = False) -> torch.Tensor:
        x = torch.as_tensor(
            self._check(params), dtype=torch.float64, device=self._device
        ).clone()
        return x.requires_grad_(requires_grad)

    @staticmethod
    def _call(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        # torch reports numerical failures (e.g. cholesky) as RuntimeError
        try:
            return fn(*args, **kwargs)
        except RuntimeError as exc:
            raise DomainError(str(exc)) from exc

    def _scalar(self, value: torch.Tensor) -> float:
        if value.numel() != 1:
            raise ValueError(
                f"log_prob must return a scalar tensor, got shape {tuple(value.shape)}"
            )
        lp = float(value.detach().cpu().item())
        if np.isnan(lp):
            raise DomainError("log_prob evaluated to NaN")
        return lp

    def log_prob(self, params: Array) -> float:
        with torch.no_grad():
            return self._scalar(self._call(self._fn, self._to_tensor(params)))

    def log_prob_grad(self, params: Array) -> tuple[float, Array]:
        x = self._to_tensor(params, requires_grad=True)
        value = self._call(self._fn, x)
        lp = self._scalar(value)
        (grad,) = self._call(torch.autograd.grad, value, x, allow_unused=True)
        if grad is None:
            return lp, np.zeros(self._dim)
        return lp, grad.detach().cpu().numpy().astype(float)

    def grad_hess_log_prob(self, params: Array) -> tuple[float, Array, Array]:
        lp, grad = self.log_prob_grad(params)
        hess = self._call(torch_hessian, self._fn, self._to_tensor(params))
        return lp, grad, hess.detach().cpu().numpy().reshape(self._dim, self._dim)

    def constrained_param_names(self) -> list[str]:
        if self._names is not None:
            return list(self._names)
        return super().constrained_param_names()


__all__ = ["TorchModel", "TorchLogDensity"]
