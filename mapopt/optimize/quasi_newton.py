"""Quasi-Newton line-search optimizers (BFGS and L-BFGS).

:class:`BFGSMinimizer` minimizes a generic value-and-gradient function one
step at a time; the curvature approximation is a pluggable
:class:`QNUpdate`. :class:`BFGSLineSearch` binds the minimizer to a
:class:`~mapopt.model.base.Model` by minimizing the negative log-density.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, List, Optional

import numpy as np

from mapopt.logging import get_logger
from mapopt.model.base import Model

from .core import (
    EPSILON,
    Array,
    ConvergenceOptions,
    LineSearchOptions,
    TerminationCode,
    termination_message,
)
from .line_search import ValueAndGrad, wolfe_line_search

logger = get_logger(__name__)

# Curvature pairs with s'y at or below this are skipped.
_MIN_CURVATURE = 1e-12


class QNUpdate(ABC):
    """Approximation of the inverse Hessian built from (s, y) pairs."""

    @abstractmethod
    def update(self, yk: Array, sk: Array, reset: bool = False) -> float:
        """Incorporate a new pair; return the initial Hessian scale used."""

    @abstractmethod
    def search_direction(self, grad: Array) -> Array:
        """Return the quasi-Newton direction ``-H grad``."""


class BFGSUpdateHInv(QNUpdate):
    """Dense BFGS update of the inverse Hessian."""

    def __init__(self) -> None:
        self._hinv: Optional[Array] = None

    def update(self, yk: Array, sk: Array, reset: bool = False) -> float:
        n = sk.size
        ys = float(np.dot(yk, sk))
        if ys <= _MIN_CURVATURE:
            if reset or self._hinv is None:
                self._hinv = np.eye(n)
            return 1.0
        b0 = float(np.dot(yk, yk)) / ys
        if reset or self._hinv is None:
            self._hinv = np.eye(n) / b0
        rho = 1.0 / ys
        identity = np.eye(n)
        outer_sy = np.outer(sk, yk)
        self._hinv = (
            (identity - rho * outer_sy)
            @ self._hinv
            @ (identity - rho * outer_sy.T)
            + rho * np.outer(sk, sk)
        )
        return b0

    def search_direction(self, grad: Array) -> Array:
        if self._hinv is None:
            return -grad
        return -(self._hinv @ grad)


class LBFGSUpdate(QNUpdate):
    """Limited-memory BFGS using the two-loop recursion."""

    def __init__(self, history_size: int = 5) -> None:
        self._history: Deque[tuple[Array, Array, float]] = deque()
        self._gamma = 1.0
        self.set_history_size(history_size)

    @property
    def history_size(self) -> int:
        """Maximum number of retained (s, y) pairs."""
        return self._history.maxlen

    def set_history_size(self, history_size: int) -> None:
        if history_size <= 0:
            raise ValueError("history_size must be positive.")
        self._history = deque(self._history, maxlen=int(history_size))

    def __len__(self) -> int:
        return len(self._history)

    def update(self, yk: Array, sk: Array, reset: bool = False) -> float:
        if reset:
            self._history.clear()
        ys = float(np.dot(yk, sk))
        if ys <= _MIN_CURVATURE:
            return 1.0 / self._gamma
        self._history.append((sk.copy(), yk.copy(), 1.0 / ys))
        self._gamma = ys / float(np.dot(yk, yk))
        return 1.0 / self._gamma

    def search_direction(self, grad: Array) -> Array:
        q = np.asarray(grad, dtype=float).copy()
        alphas = []
        for s, y, rho in reversed(self._history):
            alpha_i = rho * float(np.dot(s, q))
            q -= alpha_i * y
            alphas.append(alpha_i)
        r = self._gamma * q
        for (s, y, rho), alpha_i in zip(self._history, reversed(alphas)):
            beta = rho * float(np.dot(y, r))
            r += s * (alpha_i - beta)
        return -r


class BFGSMinimizer:
    """
    Step-wise quasi-Newton minimizer with a strong Wolfe line search.

    Attributes:
        ls_opts: Line-search options, read at every step.
        conv_opts: Convergence options, read at every step.
    """

    def __init__(self, func: ValueAndGrad, qn_update: QNUpdate) -> None:
        self._func = func
        self._qn = qn_update
        self.ls_opts = LineSearchOptions()
        self.conv_opts = ConvergenceOptions()
        self._xk: Array = np.zeros(0)
        self._fk = math.inf
        self._gk: Array = np.zeros(0)
        self._pk: Array = np.zeros(0)
        self._fk_1 = math.inf
        self._it_num = 0
        self._alpha = 0.0
        self._alpha0 = 0.0
        self._step_size = 0.0
        self._ls_evals = 0
        self._note = ""

    def initialize(self, x0: Array) -> bool:
        """Evaluate the starting point; return False if that failed."""
        self._xk = np.asarray(x0, dtype=float).copy()
        f, g = self._func(self._xk)
        self._it_num = 0
        self._note = ""
        if not math.isfinite(f) or g is None:
            self._fk = math.inf
            self._gk = np.full_like(self._xk, np.nan)
            return False
        self._fk = float(f)
        self._gk = np.asarray(g, dtype=float)
        self._pk = -self._gk
        return True

    def get_qnupdate(self) -> QNUpdate:
        return self._qn

    def curr_f(self) -> float:
        return self._fk

    def curr_x(self) -> Array:
        return self._xk

    def curr_g(self) -> Array:
        return self._gk

    def iter_num(self) -> int:
        return self._it_num

    def prev_step_size(self) -> float:
        return self._step_size

    def alpha(self) -> float:
        return self._alpha

    def alpha0(self) -> float:
        return self._alpha0

    def grad_evals(self) -> int:
        return self._ls_evals

    def note(self) -> str:
        return self._note

    @staticmethod
    def get_code_string(code: int) -> str:
        return termination_message(code)

    def step(self) -> TerminationCode:
        """Take one quasi-Newton step and test for convergence."""
        self._note = ""
        if not math.isfinite(self._fk):
            self._note = "Non-finite starting value"
            return TerminationCode.LSFAIL
        if self._it_num >= self.conv_opts.max_its:
            return TerminationCode.MAXIT

        self._it_num += 1
        if float(np.linalg.norm(self._gk)) < self.conv_opts.tol_abs_grad:
            # already stationary; a line search would find no descent
            return TerminationCode.ABSGRAD
        reset = self._it_num == 1
        while True:
            if reset:
                self._pk = -self._gk
            alpha0 = self.ls_opts.alpha0 if reset else 1.0
            result = wolfe_line_search(
                self._func,
                self._xk,
                self._fk,
                self._gk,
                self._pk,
                alpha0=alpha0,
                c1=self.ls_opts.c1,
                c2=self.ls_opts.c2,
                min_alpha=self.ls_opts.min_alpha,
                max_iter=self.ls_opts.max_ls_its,
            )
            self._ls_evals = result.nfev
            if result.ok:
                break
            if reset:
                logger.debug("Line search failed along steepest descent: %s", result.message)
                return TerminationCode.LSFAIL
            logger.debug("Line search failed (%s); resetting Hessian", result.message)
            reset = True
            self._note = "LS failed, Hessian reset"

        sk = result.x - self._xk
        yk = result.grad - self._gk
        self._fk_1 = self._fk
        self._xk = result.x
        self._fk = result.f
        self._gk = result.grad
        self._alpha = result.alpha
        self._alpha0 = alpha0
        self._step_size = float(np.linalg.norm(sk))

        opts = self.conv_opts
        if abs(self._fk_1 - self._fk) < opts.tol_abs_f:
            code = TerminationCode.ABSF
        elif float(np.linalg.norm(self._gk)) < opts.tol_abs_grad:
            code = TerminationCode.ABSGRAD
        elif self._step_size < opts.tol_abs_x:
            code = TerminationCode.ABSX
        elif self._it_num >= opts.max_its:
            code = TerminationCode.MAXIT
        elif (
            (self._fk_1 - self._fk)
            / max(abs(self._fk_1), abs(self._fk), opts.f_scale)
            < opts.tol_rel_f * EPSILON
        ):
            code = TerminationCode.RELF
        else:
            code = TerminationCode.SUCCESS

        self._qn.update(yk, sk, reset)
        self._pk = self._qn.search_direction(self._gk)
        if code == TerminationCode.SUCCESS:
            rel_grad = abs(float(np.dot(self._gk, self._pk))) / max(
                abs(self._fk), opts.f_scale
            )
            if rel_grad < opts.tol_rel_grad * EPSILON:
                code = TerminationCode.RELGRAD
        return code


class ModelAdaptor:
    """Present a model's negative log-density as a value-and-gradient function.

    Failed evaluations return ``(inf, None)`` and their messages are
    appended to ``msgs``.
    """

    def __init__(self, model: Model, msgs: Optional[List[str]] = None) -> None:
        self._model = model
        self.msgs = msgs if msgs is not None else []
        self.fevals = 0

    def __call__(self, x: Array) -> tuple[float, Optional[Array]]:
        self.fevals += 1
        result = self._model.evaluate(x, order=1)
        if not result.ok:
            self.msgs.append(result.message)
            return math.inf, None
        if not math.isfinite(result.value) or not np.all(np.isfinite(result.gradient)):
            self.msgs.append("Non-finite log probability or gradient")
            return math.inf, None
        return -result.value, -result.gradient


class BFGSLineSearch(BFGSMinimizer):
    """
    Quasi-Newton maximizer of a model's log-density.

    Construction evaluates the initial point. If that fails,
    ``initial_error`` holds the message, :meth:`logp` is ``-inf`` and the
    first :meth:`step` reports a line-search failure.
    """

    def __init__(
        self,
        model: Model,
        params: Array,
        qn_update: QNUpdate,
        msgs: Optional[List[str]] = None,
    ) -> None:
        self._adaptor = ModelAdaptor(model, msgs)
        super().__init__(self._adaptor, qn_update)
        self.initial_error: Optional[str] = None
        if not self.initialize(params):
            errors = self._adaptor.msgs
            self.initial_error = errors.pop() if errors else "evaluation failed"
            self._adaptor.msgs.append("Error evaluating initial BFGS point.")

    @property
    def msgs(self) -> List[str]:
        return self._adaptor.msgs

    def logp(self) -> float:
        return -self.curr_f()

    def grad_norm(self) -> float:
        return float(np.linalg.norm(self.curr_g()))

    def params_r(self) -> Array:
        return self.curr_x().copy()


__all__ = [
    "BFGSLineSearch",
    "BFGSMinimizer",
    "BFGSUpdateHInv",
    "LBFGSUpdate",
    "ModelAdaptor",
    "QNUpdate",
]
