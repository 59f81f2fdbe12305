"""Iteration loop shared by the BFGS and L-BFGS algorithms."""

from __future__ import annotations

from typing import Optional

import numpy as np

from mapopt.io.writers import MessageWriter, OutputWriter, write_iteration
from mapopt.logging import get_logger
from mapopt.model.base import Model

from .core import Array, ErrorCode, Interrupt, TerminationCode
from .quasi_newton import BFGSLineSearch

logger = get_logger(__name__)

PROGRESS_HEADER = (
    "    Iter      log prob        ||dx||      ||grad||       alpha"
    "      alpha0  # evals  Notes "
)


def _progress_row(bfgs: BFGSLineSearch, lp: float) -> str:
    return (
        f" {bfgs.iter_num():7d} {lp:12.6g} {bfgs.prev_step_size():12.6g}"
        f" {bfgs.grad_norm():12.6g} {bfgs.alpha():10.4g} {bfgs.alpha0():10.4g}"
        f" {bfgs.grad_evals():7d} {bfgs.note()} "
    )


def do_bfgs_optimize(
    model: Model,
    bfgs: BFGSLineSearch,
    rng: Optional[np.random.Generator],
    params: Array,
    output: OutputWriter,
    info: MessageWriter,
    save_iterations: bool,
    refresh: int,
    interrupt: Optional[Interrupt] = None,
) -> ErrorCode:
    """
    Drive a configured quasi-Newton optimizer until it stops.

    ``params`` is overwritten with the optimizer's iterate after every
    step. Progress rows are written to ``info`` on the first iteration and
    every ``refresh`` iterations thereafter (never if ``refresh <= 0``).
    When ``save_iterations`` is False only the final point is written to
    ``output``.

    Returns:
        ``ErrorCode.OK`` for convergence, the iteration cap, or a
        cooperative interrupt; ``ErrorCode.SOFTWARE`` when the line search
        could make no progress.
    """
    lp = bfgs.logp()
    info(f"initial log joint probability = {lp:g}")
    if save_iterations:
        write_iteration(output, model, rng, lp, params)

    return_code = TerminationCode.SUCCESS
    interrupted = False
    while return_code == TerminationCode.SUCCESS:
        if interrupt is not None and interrupt():
            interrupted = True
            break
        return_code = bfgs.step()
        lp = bfgs.logp()
        params[:] = bfgs.params_r()

        for message in bfgs.msgs:
            logger.debug("Iteration %d: %s", bfgs.iter_num(), message)
        bfgs.msgs.clear()

        if refresh > 0 and (
            bfgs.iter_num() <= 1 or bfgs.iter_num() % refresh == 0
        ):
            info(PROGRESS_HEADER)
            info(_progress_row(bfgs, lp))

        if save_iterations:
            write_iteration(output, model, rng, lp, params)

    if not save_iterations:
        write_iteration(output, model, rng, lp, params)

    if interrupted:
        info("Optimization interrupted")
        return ErrorCode.OK
    if return_code >= 0:
        info("Optimization terminated normally: ")
        status = ErrorCode.OK
    else:
        info("Optimization terminated with error: ")
        status = ErrorCode.SOFTWARE
    info("  " + bfgs.get_code_string(return_code))
    logger.debug("Quasi-Newton run finished after %d iterations", bfgs.iter_num())
    return status


__all__ = ["PROGRESS_HEADER", "do_bfgs_optimize"]
