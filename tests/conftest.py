"""Pytest configuration and shared fixtures for mapopt tests.

This module provides:
- Deterministic RNG fixtures for numpy and torch
- Recording sinks and small log-density models used across test modules
"""

import os

import numpy as np
import pytest
import torch

from mapopt.io import RecordingWriter
from mapopt.model import DomainError, FunctionModel


@pytest.fixture(scope="function")
def rng() -> np.random.Generator:
    """Provide a deterministic numpy RNG for tests.

    Uses seed from TEST_RNG_SEED environment variable (default: 0).
    """
    seed = int(os.environ.get("TEST_RNG_SEED", "0"))
    return np.random.default_rng(seed)


@pytest.fixture(scope="function", autouse=True)
def set_random_seeds() -> None:
    """Auto-use fixture to set global random seeds for reproducibility."""
    seed = int(os.environ.get("TEST_RNG_SEED", "0"))
    np.random.seed(seed)
    torch.manual_seed(seed)


@pytest.fixture
def recorder() -> RecordingWriter:
    """Output writer that also serves as info and error sink."""
    return RecordingWriter()


@pytest.fixture
def neg_square_model() -> FunctionModel:
    """f(x) = -x^2 in one dimension, with exact derivatives."""
    return FunctionModel(
        lambda x: -float(x[0] ** 2),
        dim=1,
        grad=lambda x: np.array([-2.0 * x[0]]),
        hess=lambda x: np.array([[-2.0]]),
        names=["x"],
    )


@pytest.fixture
def gaussian_model() -> FunctionModel:
    """Correlated 2-D Gaussian log-density with mode at (1, -2)."""
    precision = np.array([[2.0, 0.6], [0.6, 1.0]])
    mode = np.array([1.0, -2.0])

    def log_prob(x: np.ndarray) -> float:
        d = x - mode
        return -0.5 * float(d @ precision @ d)

    def grad(x: np.ndarray) -> np.ndarray:
        return -precision @ (x - mode)

    def hess(_: np.ndarray) -> np.ndarray:
        return -precision

    return FunctionModel(log_prob, dim=2, grad=grad, hess=hess, names=["mu", "tau"])


@pytest.fixture
def failing_model() -> FunctionModel:
    """Model whose log-density can never be evaluated."""

    def log_prob(x: np.ndarray) -> float:
        raise DomainError("scale parameter is -1, but must be positive")

    return FunctionModel(log_prob, dim=2)
