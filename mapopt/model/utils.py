"""Central finite differences for models without analytic derivatives.

Both helpers evaluate ``fun`` at a fixed stencil around ``x``; they are
meant for the small dimensions where Newton's method is practical.
"""

from __future__ import annotations

from typing import Callable

import numpy as np

Array = np.ndarray
Objective = Callable[[Array], float]


def _basis(x: Array, eps: float) -> Array:
    if eps <= 0:
        raise ValueError("eps must be positive")
    return np.eye(x.size) * eps


def approx_grad(fun: Objective, x: Array, eps: float = 1e-6) -> Array:
    """Gradient of ``fun`` at ``x`` by central differences.

    Parameters
    ----------
    fun:
        Scalar function of a 1-D array.
    x:
        Point of evaluation.
    eps:
        Step along each coordinate.
    """
    x = np.asarray(x, dtype=float)
    steps = _basis(x, eps)
    return np.array(
        [(fun(x + e) - fun(x - e)) / (2.0 * eps) for e in steps], dtype=float
    )


def approx_hessian(fun: Objective, x: Array, eps: float = 1e-4) -> Array:
    """Symmetric Hessian of ``fun`` at ``x`` by central differences.

    Uses ``1 + 2n + 4 * n(n-1)/2`` evaluations for ``n`` parameters.
    """
    x = np.asarray(x, dtype=float)
    steps = _basis(x, eps)
    n = x.size
    f0 = fun(x)
    hess = np.empty((n, n), dtype=float)
    for i in range(n):
        ei = steps[i]
        hess[i, i] = (fun(x + ei) - 2.0 * f0 + fun(x - ei)) / eps**2
        for j in range(i):
            ej = steps[j]
            cross = (
                fun(x + ei + ej) - fun(x + ei - ej) - fun(x - ei + ej) + fun(x - ei - ej)
            ) / (4.0 * eps**2)
            hess[i, j] = hess[j, i] = cross
    return hess


__all__ = ["approx_grad", "approx_hessian"]
