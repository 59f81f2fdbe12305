import math

import numpy as np
import pytest

from mapopt.model import DomainError, EvalResult, FunctionModel, Model


def test_default_names_are_indexed():
    model = FunctionModel(lambda x: 0.0, dim=3)
    assert model.unconstrained_param_names() == ["theta.1", "theta.2", "theta.3"]
    assert model.constrained_param_names() == model.unconstrained_param_names()


def test_explicit_names_must_match_dimension():
    with pytest.raises(ValueError, match="Expected 2 parameter names"):
        FunctionModel(lambda x: 0.0, dim=2, names=["a"])


def test_non_positive_dimension_rejected():
    with pytest.raises(ValueError, match="dim must be positive"):
        FunctionModel(lambda x: 0.0, dim=0)


def test_log_prob_checks_shape(gaussian_model):
    with pytest.raises(ValueError, match="shape"):
        gaussian_model.log_prob(np.zeros(3))


def test_finite_difference_fallback_matches_analytic(gaussian_model):
    precision = np.array([[2.0, 0.6], [0.6, 1.0]])
    fd = FunctionModel(gaussian_model.log_prob, dim=2)
    x = np.array([0.3, 0.7])
    lp, grad, hess = fd.grad_hess_log_prob(x)
    _, exact_grad = gaussian_model.log_prob_grad(x)
    assert lp == pytest.approx(gaussian_model.log_prob(x))
    assert np.allclose(grad, exact_grad, atol=1e-6)
    assert np.allclose(hess, -precision, atol=1e-4)


def test_transform_controls_written_values():
    model = FunctionModel(
        lambda x: -float(x @ x),
        dim=1,
        names=["sigma"],
        transform=np.exp,
    )
    values = model.write_array(None, np.array([0.0]))
    assert np.allclose(values, [1.0])
    assert model.constrained_param_names() == ["sigma"]


def test_write_array_default_is_a_copy():
    model = FunctionModel(lambda x: 0.0, dim=2)
    params = np.array([1.0, 2.0])
    values = model.write_array(None, params)
    values[0] = 99.0
    assert params[0] == 1.0


@pytest.mark.parametrize("order", [0, 1, 2])
def test_evaluate_success(gaussian_model, order):
    result = gaussian_model.evaluate(np.array([1.0, -2.0]), order=order)
    assert result.ok
    assert result.value == 0.0
    assert (result.gradient is not None) == (order >= 1)
    assert (result.hessian is not None) == (order == 2)


@pytest.mark.parametrize("order", [0, 1, 2])
def test_evaluate_captures_domain_errors(failing_model, order):
    result = failing_model.evaluate(np.zeros(2), order=order)
    assert not result.ok
    assert result.value == -math.inf
    assert "scale parameter is -1" in result.message


def test_evaluate_captures_arithmetic_errors():
    model = FunctionModel(lambda x: 1.0 / float(x[0]), dim=1)
    result = model.evaluate(np.zeros(1))
    assert not result.ok
    assert result.value == -math.inf


def test_evaluate_propagates_programming_errors():
    def broken(x):
        raise KeyError("missing data")

    model = FunctionModel(broken, dim=1)
    with pytest.raises(KeyError):
        model.evaluate(np.zeros(1))


def test_domain_error_is_value_error():
    assert issubclass(DomainError, ValueError)


def test_eval_result_failure():
    result = EvalResult.failure("bad point")
    assert not result.ok
    assert result.value == -math.inf
    assert result.message == "bad point"


def test_model_requires_log_prob():
    class Incomplete(Model):
        @property
        def num_params(self):
            return 1

    with pytest.raises(TypeError):
        Incomplete()
