"""
Shared fixtures for lassotune tests.
"""
import numpy as np
import pandas as pd
import pytest

from lassotune.config import LassoConfig
from lassotune.data import Dataset


@pytest.fixture
def linear_frame() -> pd.DataFrame:
    """100 rows with y = 2*x1 - 3*x3 + noise and two irrelevant predictors."""
    np.random.seed(42)
    n = 100
    X = np.random.randn(n, 4)
    y = 2.0 * X[:, 0] - 3.0 * X[:, 2] + np.random.randn(n) * 0.5
    return pd.DataFrame({
        "x1": X[:, 0],
        "x2": X[:, 1],
        "x3": X[:, 2],
        "x4": X[:, 3],
        "y": y,
    }, index=pd.Index([f"obs{i:03d}" for i in range(n)], name="id"))


@pytest.fixture
def linear_dataset(linear_frame) -> Dataset:
    return Dataset(linear_frame, outcome="y")


@pytest.fixture
def mixed_frame() -> pd.DataFrame:
    """Numeric and categorical predictors with a positive outcome."""
    np.random.seed(7)
    n = 120
    region = np.array(["north", "south", "west"])[np.arange(n) % 3]
    size = np.random.uniform(50, 250, n)
    age = np.random.uniform(0, 60, n)
    effect = np.select([region == "north", region == "south"], [20.0, -10.0], 0.0)
    price = (300 + 1.5 * size - 0.8 * age + effect + np.random.randn(n) * 5) ** 2 / 1000
    return pd.DataFrame({
        "size": size,
        "age": age,
        "region": region,
        "price": price,
    })


@pytest.fixture
def mixed_dataset(mixed_frame) -> Dataset:
    return Dataset(mixed_frame, outcome="price")


@pytest.fixture
def small_config() -> LassoConfig:
    """Fast configuration for workflow tests."""
    return LassoConfig(
        penalty_grid=[0.0, 0.01, 0.1, 1.0],
        resample_count=5,
        stratify_bins=2,
        n_jobs=1,
        seed=42,
    )
