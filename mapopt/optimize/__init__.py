"""Posterior mode optimization: Newton, BFGS and L-BFGS.

Example
-------
>>> import numpy as np
>>> from mapopt.io import RecordingWriter
>>> from mapopt.model import FunctionModel
>>> from mapopt.optimize import ErrorCode, resolve_config, optimize
>>> model = FunctionModel(lambda x: -float((x - 3.0) @ (x - 3.0)), dim=2)
>>> sink = RecordingWriter()
>>> x = np.zeros(2)
>>> cfg = resolve_config({"algorithm": "lbfgs"})
>>> optimize(x, model, None, cfg, info=sink.info, err=sink.error, output=sink) == ErrorCode.OK
True
>>> bool(np.allclose(x, 3.0, atol=1e-4))
True
"""

from .bfgs_driver import do_bfgs_optimize
from .config import (
    ALGORITHMS,
    BFGSConfig,
    ConfigurationError,
    LBFGSConfig,
    OptimizeConfig,
    resolve_config,
)
from .convergence import newton_should_continue, relative_improvement, seed_last_lp
from .core import (
    ConvergenceOptions,
    ErrorCode,
    LineSearchOptions,
    TerminationCode,
    termination_message,
)
from .line_search import LineSearchResult, wolfe_line_search
from .newton import do_newton_optimize, make_negative_definite_and_solve, newton_step
from .quasi_newton import (
    BFGSLineSearch,
    BFGSMinimizer,
    BFGSUpdateHInv,
    LBFGSUpdate,
    ModelAdaptor,
    QNUpdate,
)
from .service import configure_bfgs, configure_lbfgs, optimize, optimize_from_settings

__all__ = [
    "ALGORITHMS",
    "BFGSConfig",
    "BFGSLineSearch",
    "BFGSMinimizer",
    "BFGSUpdateHInv",
    "ConfigurationError",
    "ConvergenceOptions",
    "ErrorCode",
    "LBFGSConfig",
    "LBFGSUpdate",
    "LineSearchOptions",
    "LineSearchResult",
    "ModelAdaptor",
    "OptimizeConfig",
    "QNUpdate",
    "TerminationCode",
    "configure_bfgs",
    "configure_lbfgs",
    "do_bfgs_optimize",
    "do_newton_optimize",
    "make_negative_definite_and_solve",
    "newton_should_continue",
    "newton_step",
    "optimize",
    "optimize_from_settings",
    "relative_improvement",
    "resolve_config",
    "seed_last_lp",
    "termination_message",
    "wolfe_line_search",
]
