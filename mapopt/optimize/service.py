"""Entry point selecting and running one optimization algorithm.

Example
-------
>>> import numpy as np
>>> from mapopt.io import RecordingWriter
>>> from mapopt.model import FunctionModel
>>> from mapopt.optimize import ErrorCode, OptimizeConfig, optimize
>>> model = FunctionModel(
...     lambda x: -float(x @ x),
...     dim=1,
...     grad=lambda x: -2 * x,
...     hess=lambda x: -2 * np.eye(1),
... )
>>> sink = RecordingWriter()
>>> x = np.array([10.0])
>>> status = optimize(x, model, None, OptimizeConfig(algorithm="newton"),
...                   info=sink.info, err=sink.error, output=sink)
>>> status == ErrorCode.OK, float(x[0])
(True, 0.0)
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

import numpy as np

from mapopt.io.writers import (
    LoggerWriter,
    MessageWriter,
    OutputWriter,
    write_error_msg,
)
from mapopt.logging import get_logger
from mapopt.model.base import Model

from .bfgs_driver import do_bfgs_optimize
from .config import (
    ALGORITHMS,
    BFGSConfig,
    ConfigurationError,
    LBFGSConfig,
    OptimizeConfig,
    resolve_config,
)
from .core import Array, ErrorCode, Interrupt
from .newton import do_newton_optimize
from .quasi_newton import BFGSLineSearch, BFGSUpdateHInv, LBFGSUpdate

logger = get_logger(__name__)


def _apply_common(
    optimizer: BFGSLineSearch, config: BFGSConfig, max_iterations: int
) -> BFGSLineSearch:
    optimizer.ls_opts.alpha0 = config.init_alpha
    optimizer.conv_opts.tol_abs_f = config.tol_obj
    optimizer.conv_opts.tol_rel_f = config.tol_rel_obj
    optimizer.conv_opts.tol_abs_grad = config.tol_grad
    optimizer.conv_opts.tol_rel_grad = config.tol_rel_grad
    optimizer.conv_opts.tol_abs_x = config.tol_param
    optimizer.conv_opts.max_its = max_iterations
    return optimizer


def configure_bfgs(
    model: Model,
    params: Array,
    config: BFGSConfig,
    max_iterations: int,
    msgs: Optional[List[str]] = None,
) -> BFGSLineSearch:
    """Build a full-memory BFGS optimizer at ``params`` from ``config``.

    Values are copied as given; range checks belong to
    :func:`~mapopt.optimize.config.resolve_config`.
    """
    optimizer = BFGSLineSearch(model, params, BFGSUpdateHInv(), msgs)
    return _apply_common(optimizer, config, max_iterations)


def configure_lbfgs(
    model: Model,
    params: Array,
    config: LBFGSConfig,
    max_iterations: int,
    msgs: Optional[List[str]] = None,
) -> BFGSLineSearch:
    """Build an L-BFGS optimizer at ``params`` from ``config``."""
    optimizer = BFGSLineSearch(model, params, LBFGSUpdate(), msgs)
    optimizer.get_qnupdate().set_history_size(config.history_size)
    return _apply_common(optimizer, config, max_iterations)


def _default_info() -> MessageWriter:
    return LoggerWriter(logger, logging.INFO)


def _default_err() -> MessageWriter:
    return LoggerWriter(logger, logging.ERROR)


def optimize(
    params: Array,
    model: Model,
    rng: Optional[np.random.Generator],
    config: OptimizeConfig,
    refresh: int = 100,
    info: Optional[MessageWriter] = None,
    err: Optional[MessageWriter] = None,
    output: Optional[OutputWriter] = None,
    interrupt: Optional[Interrupt] = None,
) -> ErrorCode:
    """
    Find a posterior mode of ``model`` starting from ``params``.

    The header (``lp__`` followed by the model's output names) is written
    to ``output`` once, then exactly one algorithm runs. ``params`` is
    updated in place with the final iterate.

    Args:
        params: Initial unconstrained parameter vector.
        model: Log-density model to maximize.
        rng: Random generator passed through to ``model.write_array``.
        config: Resolved settings; ``config.algorithm`` selects the driver.
        refresh: Progress row frequency for the quasi-Newton algorithms.
        info: Sink for progress messages. Defaults to the package logger.
        err: Sink for evaluation errors. Defaults to the package logger.
        output: Sink for the header and iterates. Required.
        interrupt: Polled once per iteration; a truthy result stops the run.

    Returns:
        ``ErrorCode.USAGE`` if the algorithm name is not recognized,
        otherwise the status of the algorithm that ran.

    Raises:
        ValueError: If ``output`` is missing or ``params`` does not match
            the model dimension.
    """
    if output is None:
        raise ValueError("An output writer is required.")
    info = info if info is not None else _default_info()
    err = err if err is not None else _default_err()

    cont_params = np.array(params, dtype=float).reshape(-1)
    if cont_params.size != model.num_params:
        raise ValueError(
            f"Expected {model.num_params} parameters, got {cont_params.size}"
        )

    output.write_header(["lp__", *model.constrained_param_names()])

    algorithm = config.algorithm
    logger.debug("Running %s for at most %d iterations", algorithm, config.max_iterations)

    if algorithm == "newton":
        status = do_newton_optimize(
            model,
            cont_params,
            rng,
            config.max_iterations,
            config.save_iterations,
            info,
            err,
            output,
            interrupt,
        )
    elif algorithm in ("bfgs", "lbfgs"):
        msgs: List[str] = []
        if algorithm == "bfgs":
            optimizer = configure_bfgs(
                model, cont_params, config.bfgs, config.max_iterations, msgs
            )
        else:
            optimizer = configure_lbfgs(
                model, cont_params, config.lbfgs, config.max_iterations, msgs
            )
        if optimizer.initial_error is not None:
            write_error_msg(err, optimizer.initial_error)
        for message in msgs:
            info(message)
        msgs.clear()
        status = do_bfgs_optimize(
            model,
            optimizer,
            rng,
            cont_params,
            output,
            info,
            config.save_iterations,
            refresh,
            interrupt,
        )
    else:
        err(
            f"Unsupported algorithm {algorithm!r}. "
            f"Supported algorithms: {list(ALGORITHMS)}"
        )
        return ErrorCode.USAGE

    if isinstance(params, np.ndarray):
        params[...] = cont_params.reshape(params.shape)
    return status


def optimize_from_settings(
    params: Array,
    model: Model,
    settings: Mapping[str, Any],
    rng: Optional[np.random.Generator] = None,
    refresh: int = 100,
    info: Optional[MessageWriter] = None,
    err: Optional[MessageWriter] = None,
    output: Optional[OutputWriter] = None,
    interrupt: Optional[Interrupt] = None,
) -> ErrorCode:
    """Resolve ``settings`` and run :func:`optimize`.

    Settings that fail to resolve are reported to ``err`` and yield
    ``ErrorCode.USAGE`` without touching the model or the output.
    """
    try:
        config = resolve_config(settings)
    except ConfigurationError as exc:
        (err if err is not None else _default_err())(str(exc))
        return ErrorCode.USAGE
    return optimize(
        params,
        model,
        rng,
        config,
        refresh=refresh,
        info=info,
        err=err,
        output=output,
        interrupt=interrupt,
    )


__all__ = ["configure_bfgs", "configure_lbfgs", "optimize", "optimize_from_settings"]
