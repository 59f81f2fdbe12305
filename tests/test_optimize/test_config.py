import math

import pytest

from mapopt.optimize import (
    BFGSConfig,
    ConfigurationError,
    LBFGSConfig,
    OptimizeConfig,
    resolve_config,
)


def test_defaults():
    cfg = resolve_config({})
    assert cfg == OptimizeConfig()
    assert cfg.algorithm == "lbfgs"
    assert cfg.max_iterations == 2000
    assert cfg.save_iterations is False
    assert cfg.lbfgs.history_size == 5
    assert cfg.bfgs.init_alpha == 1e-3


def test_bare_algorithm_name():
    cfg = resolve_config({"algorithm": "newton", "iter": 15, "save_iterations": True})
    assert cfg.algorithm == "newton"
    assert cfg.max_iterations == 15
    assert cfg.save_iterations is True


def test_nested_bfgs_settings():
    cfg = resolve_config(
        {
            "algorithm": {
                "bfgs": {
                    "init_alpha": 0.01,
                    "tol_obj": 1e-10,
                    "tol_rel_obj": 100,
                    "tol_grad": 1e-6,
                    "tol_rel_grad": 1e5,
                    "tol_param": 1e-7,
                }
            }
        }
    )
    assert cfg.algorithm == "bfgs"
    assert cfg.bfgs == BFGSConfig(0.01, 1e-10, 100.0, 1e-6, 1e5, 1e-7)
    assert cfg.lbfgs == LBFGSConfig()


def test_nested_lbfgs_history_size():
    cfg = resolve_config({"algorithm": {"lbfgs": {"history_size": 12}}})
    assert cfg.lbfgs.history_size == 12


def test_empty_section_allowed():
    cfg = resolve_config({"algorithm": {"lbfgs": None}})
    assert cfg.lbfgs == LBFGSConfig()


@pytest.mark.parametrize(
    "settings, match",
    [
        ({"algorithm": "bogus"}, "Unsupported algorithm"),
        ({"algorithm": {"bfgs": {"history_size": 3}}}, "Unknown bfgs settings"),
        ({"algorithm": {"lbfgs": {"history_size": 0}}}, "must be positive"),
        ({"algorithm": {"lbfgs": {"history_size": 2.5}}}, "must be an integer"),
        ({"algorithm": {"bfgs": {"tol_obj": -1.0}}}, "positive and finite"),
        ({"algorithm": {"bfgs": {"tol_grad": math.inf}}}, "positive and finite"),
        ({"algorithm": {"bfgs": {"init_alpha": "big"}}}, "real number"),
        ({"algorithm": {"newton": {"iter": 3}}}, "newton takes no settings"),
        ({"algorithm": {"bfgs": {}, "lbfgs": {}}}, "exactly one entry"),
        ({"iter": 0}, "must be positive"),
        ({"iter": True}, "must be an integer"),
        ({"save_iterations": "yes"}, "must be a boolean"),
        ({"refresh": 10}, "Unknown optimize settings"),
    ],
)
def test_invalid_settings_raise(settings, match):
    with pytest.raises(ConfigurationError, match=match):
        resolve_config(settings)


def test_configuration_error_is_value_error():
    assert issubclass(ConfigurationError, ValueError)


def test_records_are_frozen():
    cfg = OptimizeConfig()
    with pytest.raises(AttributeError):
        cfg.max_iterations = 5
