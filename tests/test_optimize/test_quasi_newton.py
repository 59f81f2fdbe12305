import math

import numpy as np
import pytest

from mapopt.optimize import (
    BFGSLineSearch,
    BFGSMinimizer,
    BFGSUpdateHInv,
    LBFGSUpdate,
    ModelAdaptor,
    TerminationCode,
)

CONVERGED = {
    TerminationCode.ABSF,
    TerminationCode.RELF,
    TerminationCode.ABSGRAD,
    TerminationCode.RELGRAD,
    TerminationCode.ABSX,
}


def rosen(x: np.ndarray):
    f = (1 - x[0]) ** 2 + 100 * (x[1] - x[0] ** 2) ** 2
    g = np.array(
        [
            -2 * (1 - x[0]) - 400 * x[0] * (x[1] - x[0] ** 2),
            200 * (x[1] - x[0] ** 2),
        ]
    )
    return float(f), g


def run_to_completion(minimizer: BFGSMinimizer) -> TerminationCode:
    code = TerminationCode.SUCCESS
    while code == TerminationCode.SUCCESS:
        code = minimizer.step()
    return code


def test_bfgs_update_satisfies_secant_condition():
    s = np.array([0.5, -0.25, 1.0])
    y = np.array([1.0, -0.2, 2.5])
    update = BFGSUpdateHInv()
    update.update(y, s, reset=True)
    assert np.allclose(update.search_direction(y), -s)


def test_bfgs_update_skips_negative_curvature():
    update = BFGSUpdateHInv()
    update.update(np.array([-1.0, 0.0]), np.array([1.0, 0.0]), reset=True)
    grad = np.array([3.0, -1.0])
    assert np.allclose(update.search_direction(grad), -grad)


def test_lbfgs_without_pairs_is_steepest_descent():
    update = LBFGSUpdate()
    grad = np.array([1.0, -2.0])
    assert np.allclose(update.search_direction(grad), -grad)


def test_lbfgs_history_is_bounded(rng):
    update = LBFGSUpdate(history_size=3)
    for _ in range(10):
        s = rng.normal(size=4)
        update.update(2.0 * s, s)
    assert len(update) == 3
    assert update.history_size == 3


def test_lbfgs_set_history_size_keeps_newest_pairs(rng):
    update = LBFGSUpdate(history_size=6)
    for _ in range(6):
        s = rng.normal(size=2)
        update.update(s, s)
    update.set_history_size(2)
    assert update.history_size == 2
    assert len(update) == 2
    with pytest.raises(ValueError):
        update.set_history_size(0)


def test_lbfgs_reset_clears_history(rng):
    update = LBFGSUpdate(history_size=4)
    for _ in range(3):
        s = rng.normal(size=2)
        update.update(s, s)
    s = np.array([1.0, 0.0])
    update.update(s, s, reset=True)
    assert len(update) == 1


@pytest.mark.parametrize("qn_update", [BFGSUpdateHInv(), LBFGSUpdate(history_size=5)])
def test_minimizer_solves_rosenbrock(qn_update):
    minimizer = BFGSMinimizer(rosen, qn_update)
    assert minimizer.initialize(np.array([-1.2, 1.0]))
    minimizer.conv_opts.max_its = 500
    code = run_to_completion(minimizer)
    assert code in CONVERGED
    assert minimizer.curr_f() < 1e-8
    assert np.allclose(minimizer.curr_x(), np.ones(2), atol=1e-4)
    assert minimizer.iter_num() <= 500


def test_minimizer_stops_at_iteration_cap():
    minimizer = BFGSMinimizer(rosen, LBFGSUpdate())
    minimizer.initialize(np.array([-1.2, 1.0]))
    minimizer.conv_opts.max_its = 2
    code = run_to_completion(minimizer)
    assert code == TerminationCode.MAXIT
    assert minimizer.iter_num() == 2
    assert "Maximum number of iterations" in minimizer.get_code_string(code)


def test_minimizer_with_zero_iteration_cap_never_steps():
    minimizer = BFGSMinimizer(rosen, BFGSUpdateHInv())
    x0 = np.array([-1.2, 1.0])
    minimizer.initialize(x0)
    minimizer.conv_opts.max_its = 0
    assert minimizer.step() == TerminationCode.MAXIT
    assert minimizer.iter_num() == 0
    assert np.array_equal(minimizer.curr_x(), x0)


def test_minimizer_stationary_start_converges_immediately():
    minimizer = BFGSMinimizer(rosen, BFGSUpdateHInv())
    minimizer.initialize(np.ones(2))
    assert minimizer.step() == TerminationCode.ABSGRAD


def test_model_adaptor_negates_log_density(gaussian_model):
    adaptor = ModelAdaptor(gaussian_model)
    x = np.array([0.0, 0.0])
    lp, grad = gaussian_model.log_prob_grad(x)
    f, g = adaptor(x)
    assert f == pytest.approx(-lp)
    assert np.allclose(g, -grad)
    assert adaptor.fevals == 1


def test_model_adaptor_records_failures(failing_model):
    msgs = []
    adaptor = ModelAdaptor(failing_model, msgs)
    f, g = adaptor(np.zeros(2))
    assert f == math.inf
    assert g is None
    assert len(msgs) == 1
    assert "scale parameter" in msgs[0]


def test_line_search_optimizer_maximizes_model(gaussian_model):
    optimizer = BFGSLineSearch(gaussian_model, np.array([4.0, 4.0]), LBFGSUpdate())
    assert optimizer.initial_error is None
    start = optimizer.logp()
    code = run_to_completion(optimizer)
    assert code in CONVERGED
    assert optimizer.logp() > start
    assert np.allclose(optimizer.params_r(), [1.0, -2.0], atol=1e-5)


def test_line_search_optimizer_initial_failure(failing_model):
    optimizer = BFGSLineSearch(failing_model, np.zeros(2), BFGSUpdateHInv())
    assert "scale parameter" in optimizer.initial_error
    assert optimizer.msgs == ["Error evaluating initial BFGS point."]
    assert optimizer.logp() == -math.inf
    assert optimizer.step() == TerminationCode.LSFAIL
    assert optimizer.iter_num() == 0
