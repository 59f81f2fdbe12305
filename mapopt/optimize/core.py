"""Status codes and option records shared by the optimizers."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

Array = np.ndarray

# Returns a truthy value to request that the running optimizer stop.
Interrupt = Callable[[], Optional[bool]]

EPSILON = float(np.finfo(float).eps)


class ErrorCode(enum.IntEnum):
    """Exit status of an optimization run (sysexits-style values)."""

    OK = 0
    USAGE = 64
    SOFTWARE = 70


class TerminationCode(enum.IntEnum):
    """Outcome of a single quasi-Newton step.

    Non-negative codes are normal; ``SUCCESS`` means keep iterating and the
    other non-negative codes mean a convergence criterion fired.
    """

    LSFAIL = -1
    SUCCESS = 0
    ABSX = 10
    ABSF = 20
    RELF = 21
    ABSGRAD = 30
    RELGRAD = 31
    MAXIT = 40


TERMINATION_MESSAGES = {
    TerminationCode.SUCCESS: "Successful step completed",
    TerminationCode.ABSF: (
        "Convergence detected: absolute change in objective function was "
        "below tolerance"
    ),
    TerminationCode.RELF: (
        "Convergence detected: relative change in objective function was "
        "below tolerance"
    ),
    TerminationCode.ABSGRAD: "Convergence detected: gradient norm is below tolerance",
    TerminationCode.RELGRAD: (
        "Convergence detected: relative gradient magnitude is below tolerance"
    ),
    TerminationCode.ABSX: (
        "Convergence detected: absolute parameter change was below tolerance"
    ),
    TerminationCode.MAXIT: (
        "Maximum number of iterations hit, may not be at an optima"
    ),
    TerminationCode.LSFAIL: (
        "Line search failed to achieve a sufficient decrease, no more progress "
        "can be made"
    ),
}


def termination_message(code: int) -> str:
    """Return the human readable description of a step return code."""
    try:
        return TERMINATION_MESSAGES[TerminationCode(code)]
    except ValueError:
        return f"Unknown termination code {code}"


@dataclass
class ConvergenceOptions:
    """Stopping tolerances consulted after every quasi-Newton step.

    ``tol_rel_f`` and ``tol_rel_grad`` are in units of machine epsilon.
    Any single satisfied criterion stops the iteration.
    """

    max_its: int = 10000
    tol_abs_x: float = 1e-8
    tol_abs_f: float = 1e-12
    tol_rel_f: float = 1e4
    tol_abs_grad: float = 1e-8
    tol_rel_grad: float = 1e3
    f_scale: float = 1.0


@dataclass
class LineSearchOptions:
    """Parameters of the strong Wolfe line search."""

    alpha0: float = 1e-3
    c1: float = 1e-4
    c2: float = 0.9
    min_alpha: float = 1e-12
    max_ls_its: int = 20


__all__ = [
    "Array",
    "ConvergenceOptions",
    "EPSILON",
    "ErrorCode",
    "Interrupt",
    "LineSearchOptions",
    "TERMINATION_MESSAGES",
    "TerminationCode",
    "termination_message",
]
