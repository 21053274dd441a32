"""
Shared fixtures for solver and final model tests.
"""
import numpy as np
import pytest


@pytest.fixture
def regression_arrays():
    """Design matrix with 5 independent features and a sparse true model."""
    np.random.seed(42)
    n, p = 100, 5
    X = np.random.randn(n, p)
    beta = np.array([2.0, 0.0, -3.0, 0.0, 0.5])
    y = 1.5 + X @ beta + np.random.randn(n) * 0.5
    return X, y, beta


@pytest.fixture
def orthonormal_arrays():
    """Centred design with orthogonal columns of mean square one."""
    np.random.seed(1)
    n, p = 50, 3
    raw = np.random.randn(n, p)
    raw -= raw.mean(axis=0)
    q, _ = np.linalg.qr(raw)
    X = q * np.sqrt(n)
    y = X @ np.array([1.0, -0.3, 0.05]) + np.random.randn(n) * 0.1 + 4.0
    return X, y
