"""Stopping rule for the exact-Newton driver."""

from __future__ import annotations

import math

NEWTON_REL_TOL = 1e-8


def seed_last_lp(lp: float) -> float:
    """Return the previous-value seed used before the first Newton step.

    The seed sits 10% of ``|lp|`` below ``lp`` (``1.1 * lp`` for negative
    values), so the first test passes for any finite, non-zero ``lp``.
    """
    return lp - 0.1 * abs(lp)


def relative_improvement(lp: float, last_lp: float) -> float:
    """Improvement from ``last_lp`` to ``lp`` scaled by ``|lp|``.

    When ``lp`` is exactly zero the unscaled difference is returned.
    """
    delta = lp - last_lp
    if lp == 0.0:
        return delta
    return delta / abs(lp)


def newton_should_continue(
    lp: float, last_lp: float, tol: float = NEWTON_REL_TOL
) -> bool:
    """Return True while the Newton iteration should take another step.

    Continues while the relative improvement is strictly greater than
    ``tol``. A non-finite ``lp`` (including the ``-inf`` failure sentinel)
    stops the iteration.
    """
    if not math.isfinite(lp) or not math.isfinite(last_lp):
        return False
    return relative_improvement(lp, last_lp) > tol


__all__ = [
    "NEWTON_REL_TOL",
    "newton_should_continue",
    "relative_improvement",
    "seed_last_lp",
]
