"""Resolved optimizer settings.

Settings arrive as a nested mapping (for example parsed from a command line
or a JSON document) and are resolved once, here, into frozen records. The
drivers only ever see these records.

Example
-------
>>> cfg = resolve_config({"algorithm": {"lbfgs": {"history_size": 8}}, "iter": 50})
>>> cfg.algorithm, cfg.max_iterations, cfg.lbfgs.history_size
('lbfgs', 50, 8)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from typing import Any, Mapping

ALGORITHMS = ("newton", "bfgs", "lbfgs")


class ConfigurationError(ValueError):
    """Raised when a settings tree cannot be resolved."""


@dataclass(frozen=True)
class BFGSConfig:
    """
    Settings of the full-memory BFGS optimizer.

    Args:
        init_alpha: First step length tried by the line search.
        tol_obj: Absolute change in objective below which iteration stops.
        tol_rel_obj: Relative change in objective, in units of machine
            epsilon.
        tol_grad: Gradient norm below which iteration stops.
        tol_rel_grad: Relative gradient magnitude, in units of machine
            epsilon.
        tol_param: Parameter change norm below which iteration stops.
    """

    init_alpha: float = 1e-3
    tol_obj: float = 1e-12
    tol_rel_obj: float = 1e4
    tol_grad: float = 1e-8
    tol_rel_grad: float = 1e7
    tol_param: float = 1e-8


@dataclass(frozen=True)
class LBFGSConfig(BFGSConfig):
    """Settings of L-BFGS: the BFGS settings plus the curvature history size."""

    history_size: int = 5


@dataclass(frozen=True)
class OptimizeConfig:
    """Everything the dispatcher needs for one run.

    Only the record matching ``algorithm`` is consulted. Newton's method has
    no settings beyond ``max_iterations``.
    """

    algorithm: str = "lbfgs"
    max_iterations: int = 2000
    save_iterations: bool = False
    bfgs: BFGSConfig = field(default_factory=BFGSConfig)
    lbfgs: LBFGSConfig = field(default_factory=LBFGSConfig)


def _require_positive_real(section: str, key: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{section}.{key} must be a real number, got {value!r}")
    value = float(value)
    if not math.isfinite(value) or value <= 0:
        raise ConfigurationError(f"{section}.{key} must be positive and finite, got {value}")
    return value


def _require_positive_int(section: str, key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{section}.{key} must be an integer, got {value!r}")
    if value <= 0:
        raise ConfigurationError(f"{section}.{key} must be positive, got {value}")
    return value


def _resolve_section(name: str, record: BFGSConfig, values: Mapping[str, Any]) -> BFGSConfig:
    known = {f.name for f in fields(record)}
    unknown = set(values) - known
    if unknown:
        raise ConfigurationError(
            f"Unknown {name} settings: {sorted(unknown)}. Supported: {sorted(known)}"
        )
    resolved: dict[str, Any] = {}
    for key, value in values.items():
        if key == "history_size":
            resolved[key] = _require_positive_int(name, key, value)
        else:
            resolved[key] = _require_positive_real(name, key, value)
    return replace(record, **resolved)


def resolve_config(settings: Mapping[str, Any]) -> OptimizeConfig:
    """
    Resolve a nested settings mapping into an :class:`OptimizeConfig`.

    Recognized keys are ``algorithm``, ``iter`` and ``save_iterations``.
    ``algorithm`` is either a bare name or a single-entry mapping from the
    name to that algorithm's settings.

    Raises:
        ConfigurationError: On unknown keys, unknown algorithm names, or
            values outside their domain.
    """
    unknown = set(settings) - {"algorithm", "iter", "save_iterations"}
    if unknown:
        raise ConfigurationError(f"Unknown optimize settings: {sorted(unknown)}")

    algorithm = settings.get("algorithm", OptimizeConfig.algorithm)
    section: Mapping[str, Any] = {}
    if isinstance(algorithm, Mapping):
        if len(algorithm) != 1:
            raise ConfigurationError(
                "algorithm mapping must have exactly one entry, "
                f"got {sorted(algorithm)}"
            )
        ((algorithm, section),) = algorithm.items()
        if section is None:
            section = {}
        if not isinstance(section, Mapping):
            raise ConfigurationError(f"Settings for {algorithm!r} must be a mapping")
    if algorithm not in ALGORITHMS:
        raise ConfigurationError(
            f"Unsupported algorithm {algorithm!r}. Supported algorithms: {list(ALGORITHMS)}"
        )

    config = OptimizeConfig(algorithm=algorithm)
    if algorithm == "newton":
        if section:
            raise ConfigurationError(
                f"newton takes no settings, got {sorted(section)}"
            )
    elif algorithm == "bfgs":
        config = replace(config, bfgs=_resolve_section("bfgs", config.bfgs, section))
    else:
        config = replace(config, lbfgs=_resolve_section("lbfgs", config.lbfgs, section))

    if "iter" in settings:
        config = replace(
            config, max_iterations=_require_positive_int("optimize", "iter", settings["iter"])
        )
    if "save_iterations" in settings:
        save = settings["save_iterations"]
        if not isinstance(save, bool):
            raise ConfigurationError(
                f"optimize.save_iterations must be a boolean, got {save!r}"
            )
        config = replace(config, save_iterations=save)
    return config


__all__ = [
    "ALGORITHMS",
    "BFGSConfig",
    "ConfigurationError",
    "LBFGSConfig",
    "OptimizeConfig",
    "resolve_config",
]
