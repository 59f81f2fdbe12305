"""Strong Wolfe line search following Nocedal & Wright, Algorithms 3.5/3.6.

The objective is minimized and is evaluated together with its gradient.
A non-finite objective value marks a failed evaluation; the search backs
off toward the last good step instead of giving up.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from .core import Array

# Returns (f, grad); f is +inf when the point could not be evaluated.
ValueAndGrad = Callable[[Array], tuple[float, Optional[Array]]]


@dataclass
class LineSearchResult:
    """Accepted step of a line search, or the reason there is none."""

    ok: bool
    alpha: float
    x: Array
    f: float
    grad: Optional[Array]
    nfev: int
    message: str = ""


@dataclass
class _Point:
    alpha: float
    f: float
    grad: Optional[Array]
    der: float


def wolfe_line_search(
    func: ValueAndGrad,
    x: Array,
    f0: float,
    grad0: Array,
    p: Array,
    alpha0: float = 1.0,
    c1: float = 1e-4,
    c2: float = 0.9,
    min_alpha: float = 1e-12,
    max_iter: int = 20,
) -> LineSearchResult:
    """Find a step length satisfying the strong Wolfe conditions along ``p``.

    Parameters
    ----------
    func:
        Callable returning the objective and its gradient at a point.
    x, f0, grad0:
        Current point, its objective value and gradient.
    p:
        Search direction; must be a descent direction.
    alpha0:
        First trial step length.
    c1, c2:
        Sufficient decrease and curvature constants, ``0 < c1 < c2 < 1``.
    min_alpha:
        Step lengths below this are treated as a failed search.
    max_iter:
        Maximum number of trial steps in each of the bracketing and zoom
        phases.
    """
    if not (0 < c1 < c2 < 1):
        raise ValueError("Require 0 < c1 < c2 < 1 for Wolfe conditions.")
    if alpha0 <= 0:
        raise ValueError("Initial step length must be positive.")

    der0 = float(np.dot(grad0, p))
    if not der0 < 0:
        return LineSearchResult(False, 0.0, x, f0, grad0, 0, "not a descent direction")

    nfev = 0

    def evaluate(alpha: float) -> _Point:
        nonlocal nfev
        nfev += 1
        f, g = func(x + alpha * p)
        if not math.isfinite(f) or g is None:
            return _Point(alpha, math.inf, None, math.nan)
        return _Point(alpha, f, g, float(np.dot(g, p)))

    def sufficient_decrease(pt: _Point) -> bool:
        return pt.f <= f0 + c1 * pt.alpha * der0

    def accept(pt: _Point) -> LineSearchResult:
        return LineSearchResult(True, pt.alpha, x + pt.alpha * p, pt.f, pt.grad, nfev)

    def zoom(lo: _Point, hi_alpha: float) -> LineSearchResult:
        for _ in range(max_iter):
            alpha = 0.5 * (lo.alpha + hi_alpha)
            if abs(hi_alpha - lo.alpha) < min_alpha * max(1.0, abs(lo.alpha)):
                break
            pt = evaluate(alpha)
            if not sufficient_decrease(pt) or pt.f >= lo.f:
                hi_alpha = alpha
                continue
            if abs(pt.der) <= -c2 * der0:
                return accept(pt)
            if pt.der * (hi_alpha - lo.alpha) >= 0:
                hi_alpha = lo.alpha
            lo = pt
        if lo.alpha > 0:
            # sufficient decrease holds at lo even though curvature does not
            return accept(lo)
        return LineSearchResult(False, 0.0, x, f0, grad0, nfev, "zoom failed")

    prev = _Point(0.0, f0, grad0, der0)
    alpha = float(alpha0)
    for _ in range(max_iter):
        if alpha < min_alpha:
            break
        pt = evaluate(alpha)
        if not math.isfinite(pt.f):
            alpha = prev.alpha + 0.5 * (alpha - prev.alpha)
            continue
        if not sufficient_decrease(pt) or (prev.alpha > 0 and pt.f >= prev.f):
            return zoom(prev, pt.alpha)
        if abs(pt.der) <= -c2 * der0:
            return accept(pt)
        if pt.der >= 0:
            return zoom(pt, prev.alpha)
        prev = pt
        alpha *= 2.0
    if prev.alpha > 0:
        return accept(prev)
    return LineSearchResult(
        False, 0.0, x, f0, grad0, nfev, "no acceptable step length found"
    )


__all__ = ["LineSearchResult", "ValueAndGrad", "wolfe_line_search"]
