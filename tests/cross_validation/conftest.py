"""
Shared fixtures for resampling and tuning tests.
"""
import numpy as np
import pandas as pd
import pytest

from lassotune.data import Dataset


@pytest.fixture
def train_dataset() -> Dataset:
    """200 rows, outcome driven by x1 and x3."""
    np.random.seed(0)
    n = 200
    X = np.random.randn(n, 3)
    y = 2.0 * X[:, 0] - 3.0 * X[:, 2] + np.random.randn(n) * 0.5
    return Dataset(pd.DataFrame({
        "x1": X[:, 0],
        "x2": X[:, 1],
        "x3": X[:, 2],
        "y": y,
    }), outcome="y")
