"""Exact-Hessian Newton ascent on a model's log-density."""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from mapopt.io.writers import MessageWriter, OutputWriter, write_error_msg, write_iteration
from mapopt.logging import get_logger
from mapopt.model.base import Model

from .convergence import newton_should_continue, relative_improvement, seed_last_lp
from .core import EPSILON, Array, ErrorCode, Interrupt

logger = get_logger(__name__)

MIN_STEP_SIZE = 1e-50


def make_negative_definite_and_solve(hess: Array, grad: Array) -> Array:
    """Return ``-|H|^{-1} g`` using the eigen-decomposition of ``hess``.

    Replacing each eigenvalue by its absolute value makes the system
    negative definite, so ``x - direction`` is an ascent step even where
    the Hessian is indefinite.
    """
    hess = np.asarray(hess, dtype=float)
    grad = np.asarray(grad, dtype=float)
    sym = 0.5 * (hess + hess.T)
    eigvals, eigvecs = np.linalg.eigh(sym)
    scale = np.abs(eigvals)
    floor = EPSILON * max(1.0, float(scale.max(initial=0.0)))
    scale = np.maximum(scale, floor)
    projections = -(eigvecs.T @ grad) / scale
    return eigvecs @ projections


def newton_step(
    model: Model, params: Array, err: Optional[MessageWriter] = None
) -> float:
    """Take one Newton step on ``params`` in place and return the new lp.

    The full step is halved until the log-density does not decrease. If no
    step down to ``MIN_STEP_SIZE`` helps, ``params`` is left unchanged and
    the current value is returned. If the current point itself cannot be
    evaluated, the failure is reported to ``err`` and ``-inf`` is returned.
    """
    current = model.evaluate(params, order=2)
    if not current.ok:
        if err is not None:
            write_error_msg(err, current.message)
        return -math.inf
    f0 = current.value
    direction = make_negative_definite_and_solve(current.hessian, current.gradient)

    step_size = 1.0
    while step_size >= MIN_STEP_SIZE:
        candidate = params - step_size * direction
        trial = model.evaluate(candidate)
        # failed and NaN trials never compare >= f0
        if trial.ok and trial.value >= f0:
            logger.debug("Newton step accepted with step size %g", step_size)
            params[:] = candidate
            return trial.value
        step_size *= 0.5
    logger.debug("Newton step size underflow; keeping current point")
    return f0


def do_newton_optimize(
    model: Model,
    params: Array,
    rng: Optional[np.random.Generator],
    max_iterations: int,
    save_iterations: bool,
    info: MessageWriter,
    err: MessageWriter,
    output: OutputWriter,
    interrupt: Optional[Interrupt] = None,
) -> ErrorCode:
    """Run Newton's method from ``params`` (updated in place).

    Iterates while the relative improvement of the log-density exceeds
    ``1e-8``, for at most ``max_iterations`` steps, polling ``interrupt``
    before each step. Always returns ``ErrorCode.OK``.
    """
    initial = model.evaluate(params)
    if initial.ok:
        lp = initial.value
    else:
        write_error_msg(err, initial.message)
        lp = -math.inf

    info(f"initial log joint probability = {lp:g}")
    if save_iterations:
        write_iteration(output, model, rng, lp, params)

    last_lp = seed_last_lp(lp)
    if math.isfinite(lp):
        logger.debug(
            "(lp - lastlp) / lp > 1e-8: %g", relative_improvement(lp, last_lp)
        )
    else:
        logger.debug("Initial log joint probability is not finite; not stepping")

    m = 0
    while m < max_iterations and newton_should_continue(lp, last_lp):
        if interrupt is not None and interrupt():
            info("Optimization interrupted")
            break
        last_lp = lp
        lp = newton_step(model, params, err)
        info(
            f"Iteration {m + 1:2d}. Log joint probability = {lp:10g}. "
            f"Improved by {lp - last_lp:g}."
        )
        m += 1
        if save_iterations:
            write_iteration(output, model, rng, lp, params)

    logger.debug("Newton iteration finished after %d steps", m)
    return ErrorCode.OK


__all__ = ["do_newton_optimize", "make_negative_definite_and_solve", "newton_step"]
