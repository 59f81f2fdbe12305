import numpy as np
import pytest

from mapopt.model import approx_grad, approx_hessian


class CountingQuadratic:
    def __init__(self):
        self.calls = 0

    def __call__(self, x):
        self.calls += 1
        return float(x[0] ** 2 + 3 * x[0] * x[1] + 2 * x[1] ** 2)


def test_approx_grad_quadratic():
    fun = CountingQuadratic()
    grad = approx_grad(fun, np.array([1.0, -0.5]))
    assert np.allclose(grad, [2 * 1.0 + 3 * -0.5, 3 * 1.0 + 4 * -0.5], atol=1e-6)
    assert fun.calls == 4


def test_approx_hessian_quadratic():
    fun = CountingQuadratic()
    hess = approx_hessian(fun, np.array([0.2, 0.1]))
    assert np.allclose(hess, [[2.0, 3.0], [3.0, 4.0]], atol=1e-4)
    assert np.allclose(hess, hess.T)
    assert fun.calls == 1 + 2 * 2 + 4


@pytest.mark.parametrize("fn", [approx_grad, approx_hessian])
def test_non_positive_eps_rejected(fn):
    with pytest.raises(ValueError, match="eps must be positive"):
        fn(CountingQuadratic(), np.zeros(2), eps=0.0)
