"""Model capability consumed by the optimizers.

A model exposes its unnormalized log-density over an unconstrained,
continuous parameter vector, plus the names and values used when writing
output. Evaluation may fail with :class:`DomainError`; the drivers turn such
failures into a ``-inf`` objective instead of propagating them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import numpy as np

from .utils import approx_grad, approx_hessian

Array = np.ndarray
LogDensity = Callable[[Array], float]
LogDensityGrad = Callable[[Array], Array]
LogDensityHess = Callable[[Array], Array]

# Exceptions a model evaluation may raise that count as a failed evaluation
# rather than a programming error.
EVALUATION_ERRORS = (ArithmeticError, ValueError)


class DomainError(ValueError):
    """Raised when the log-density cannot be evaluated at a point."""


@dataclass(frozen=True)
class EvalResult:
    """Outcome of one log-density evaluation.

    Exactly one of ``value`` (success) or ``message`` (failure) is
    meaningful. ``gradient`` and ``hessian`` are filled in only when they
    were requested and the evaluation succeeded.
    """

    value: float
    message: Optional[str] = None
    gradient: Optional[Array] = None
    hessian: Optional[Array] = None

    @property
    def ok(self) -> bool:
        return self.message is None

    @classmethod
    def failure(cls, message: str) -> "EvalResult":
        return cls(value=-np.inf, message=message)


class Model(ABC):
    """Abstract log-density model over ``num_params`` continuous parameters."""

    @property
    @abstractmethod
    def num_params(self) -> int:
        """Dimension of the unconstrained parameter vector."""

    @abstractmethod
    def log_prob(self, params: Array) -> float:
        """Return the log-density at ``params``."""

    def log_prob_grad(self, params: Array) -> tuple[float, Array]:
        """Return the log-density and its gradient at ``params``.

        The default uses central finite differences.
        """
        params = self._check(params)
        lp = self.log_prob(params)
        return lp, approx_grad(self.log_prob, params)

    def grad_hess_log_prob(self, params: Array) -> tuple[float, Array, Array]:
        """Return the log-density, gradient and Hessian at ``params``."""
        lp, grad = self.log_prob_grad(params)
        return lp, grad, approx_hessian(self.log_prob, self._check(params))

    def unconstrained_param_names(self) -> list[str]:
        return [f"theta.{i + 1}" for i in range(self.num_params)]

    def constrained_param_names(self) -> list[str]:
        """Names of the values produced by :meth:`write_array`."""
        return self.unconstrained_param_names()

    def write_array(
        self, rng: Optional[np.random.Generator], params: Array
    ) -> Array:
        """Map unconstrained ``params`` to the values written to output.

        ``rng`` is available for models that generate quantities; the
        default transform is the identity and ignores it.
        """
        return np.asarray(params, dtype=float).copy()

    def evaluate(
        self, params: Array, order: int = 0
    ) -> EvalResult:
        """Evaluate the model, capturing failures as an :class:`EvalResult`.

        Args:
            params: Unconstrained parameter vector.
            order: 0 for the value only, 1 to include the gradient, 2 to
                include gradient and Hessian.
        """
        try:
            if order == 0:
                return EvalResult(value=float(self.log_prob(params)))
            if order == 1:
                lp, grad = self.log_prob_grad(params)
                return EvalResult(value=float(lp), gradient=np.asarray(grad, dtype=float))
            lp, grad, hess = self.grad_hess_log_prob(params)
            return EvalResult(
                value=float(lp),
                gradient=np.asarray(grad, dtype=float),
                hessian=np.asarray(hess, dtype=float),
            )
        except EVALUATION_ERRORS as exc:
            return EvalResult.failure(str(exc))

    def _check(self, params: Array) -> Array:
        params = np.asarray(params, dtype=float)
        if params.shape != (self.num_params,):
            raise ValueError(
                f"Expected parameter vector of shape ({self.num_params},), "
                f"got {params.shape}"
            )
        return params


class FunctionModel(Model):
    """Model assembled from plain callables.

    Missing gradient or Hessian callables fall back to finite differences.

    Example:
        >>> import numpy as np
        >>> model = FunctionModel(lambda x: -float(x @ x), dim=2)
        >>> model.log_prob(np.array([1.0, 2.0]))
        -5.0
    """

    def __init__(
        self,
        log_prob: LogDensity,
        dim: int,
        grad: Optional[LogDensityGrad] = None,
        hess: Optional[LogDensityHess] = None,
        names: Optional[Sequence[str]] = None,
        transform: Optional[Callable[[Array], Array]] = None,
    ) -> None:
        if dim <= 0:
            raise ValueError("dim must be positive")
        if names is not None and len(names) != dim and transform is None:
            raise ValueError(f"Expected {dim} parameter names, got {len(names)}")
        self._log_prob = log_prob
        self._grad = grad
        self._hess = hess
        self._dim = int(dim)
        self._names = list(names) if names is not None else None
        self._transform = transform

    @property
    def num_params(self) -> int:
        return self._dim

    def log_prob(self, params: Array) -> float:
        return float(self._log_prob(self._check(params)))

    def log_prob_grad(self, params: Array) -> tuple[float, Array]:
        if self._grad is None:
            return super().log_prob_grad(params)
        params = self._check(params)
        return self.log_prob(params), np.asarray(self._grad(params), dtype=float)

    def grad_hess_log_prob(self, params: Array) -> tuple[float, Array, Array]:
        if self._hess is None:
            return super().grad_hess_log_prob(params)
        params = self._check(params)
        lp, grad = self.log_prob_grad(params)
        return lp, grad, np.asarray(self._hess(params), dtype=float)

    def constrained_param_names(self) -> list[str]:
        if self._names is not None:
            return list(self._names)
        return super().constrained_param_names()

    def write_array(
        self, rng: Optional[np.random.Generator], params: Array
    ) -> Array:
        if self._transform is None:
            return super().write_array(rng, params)
        return np.asarray(self._transform(self._check(params)), dtype=float)


__all__ = [
    "Array",
    "DomainError",
    "EVALUATION_ERRORS",
    "EvalResult",
    "FunctionModel",
    "Model",
]
