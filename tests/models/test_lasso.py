"""
Tests for the coordinate descent lasso solver.
"""
import numpy as np
import pandas as pd
import pytest
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import ElasticNet, Lasso

from lassotune.exceptions import ConfigurationError
from lassotune.models import CoordinateDescentSolver, LassoFit, LassoPath, lambda_max
from lassotune.models.lasso import coordinate_descent_numba


class TestSolverFit:
    """Tests for single-penalty fits."""

    def test_zero_penalty_matches_ols(self, regression_arrays):
        X, y, _ = regression_arrays
        fit = CoordinateDescentSolver(tol=1e-12).fit(X, y, 0.0)

        design = np.column_stack([np.ones(len(y)), X])
        expected, *_ = np.linalg.lstsq(design, y, rcond=None)
        np.testing.assert_allclose(fit.intercept, expected[0], atol=1e-6)
        np.testing.assert_allclose(fit.coef, expected[1:], atol=1e-6)
        assert fit.converged

    def test_orthonormal_design_soft_thresholds(self, orthonormal_arrays):
        X, y = orthonormal_arrays
        penalty = 0.2
        fit = CoordinateDescentSolver(tol=1e-12).fit(X, y, penalty)

        z = X.T @ (y - y.mean()) / len(y)
        expected = np.sign(z) * np.maximum(np.abs(z) - penalty, 0.0)
        np.testing.assert_allclose(fit.coef, expected, atol=1e-10)
        assert fit.coef[2] == 0.0

    def test_matches_sklearn_lasso(self, regression_arrays):
        X, y, _ = regression_arrays
        fit = CoordinateDescentSolver(tol=1e-12).fit(X, y, 0.1)
        reference = Lasso(alpha=0.1, tol=1e-12, max_iter=100_000).fit(X, y)
        np.testing.assert_allclose(fit.coef, reference.coef_, atol=1e-6)
        np.testing.assert_allclose(fit.intercept, reference.intercept_, atol=1e-6)

    def test_matches_sklearn_elastic_net(self, regression_arrays):
        X, y, _ = regression_arrays
        fit = CoordinateDescentSolver(mixture=0.5, tol=1e-12).fit(X, y, 0.2)
        reference = ElasticNet(alpha=0.2, l1_ratio=0.5, tol=1e-12, max_iter=100_000).fit(X, y)
        np.testing.assert_allclose(fit.coef, reference.coef_, atol=1e-6)

    def test_intercept_is_unpenalized(self, regression_arrays):
        X, y, _ = regression_arrays
        fit = CoordinateDescentSolver().fit(X, y, 100.0)
        assert fit.n_nonzero == 0
        np.testing.assert_allclose(fit.intercept, y.mean())
        np.testing.assert_allclose(fit.predict(X), np.full(len(y), y.mean()))

    def test_nonzero_uses_feature_names(self, regression_arrays):
        X, y, _ = regression_arrays
        names = ["a", "b", "c", "d", "e"]
        fit = CoordinateDescentSolver().fit(X, y, 0.3, feature_names=names)
        nonzero = fit.nonzero()
        assert set(nonzero) <= set(names)
        assert nonzero["a"] > 0
        assert nonzero["c"] < 0
        assert "b" not in nonzero

    def test_non_convergence_warns(self, regression_arrays):
        X, y, _ = regression_arrays
        solver = CoordinateDescentSolver(tol=1e-15, max_iter=1)
        with pytest.warns(ConvergenceWarning, match="did not converge"):
            fit = solver.fit(X, y, 0.0)
        assert not fit.converged
        assert fit.n_iter == 1
        assert np.isfinite(fit.coef).all()

    def test_kernel_releases_gil(self):
        # Tuning runs resamples on joblib threads
        assert coordinate_descent_numba.targetoptions.get("nogil") is True


class TestSolverPath:
    """Tests for warm-started penalty paths."""

    def test_path_is_decreasing_and_keyed(self, regression_arrays):
        X, y, _ = regression_arrays
        path = CoordinateDescentSolver().fit_path(X, y, [0.01, 1.0, 0.1, 0.1])
        assert isinstance(path, LassoPath)
        assert path.penalties == [1.0, 0.1, 0.01]
        assert isinstance(path[0.1], LassoFit)

    def test_zero_count_weakly_increases_with_penalty(self, regression_arrays):
        X, y, _ = regression_arrays
        grid = 10.0 ** np.linspace(-4, 1, 30)
        path = CoordinateDescentSolver().fit_path(X, y, grid)
        # penalties run from largest to smallest, so non-zeros never decrease
        assert np.all(np.diff(path.n_nonzero.to_numpy()) >= 0)

    def test_warm_start_matches_cold_start(self, regression_arrays):
        X, y, _ = regression_arrays
        solver = CoordinateDescentSolver(tol=1e-12)
        warm = solver.fit_path(X, y, [1.0, 0.5, 0.05])[0.05]
        cold = solver.fit(X, y, 0.05)
        np.testing.assert_allclose(warm.coef, cold.coef, atol=1e-8)

    def test_coef_matrix(self, regression_arrays):
        X, y, _ = regression_arrays
        path = CoordinateDescentSolver().fit_path(X, y, [0.1, 1.0],
                                                  feature_names=list("abcde"))
        matrix = path.coef_matrix
        assert isinstance(matrix, pd.DataFrame)
        assert list(matrix.index) == [1.0, 0.1]
        assert list(matrix.columns) == list("abcde")


class TestLambdaMax:
    """Tests for lambda_max."""

    def test_all_zero_at_lambda_max(self, regression_arrays):
        X, y, _ = regression_arrays
        lmax = lambda_max(X, y)
        solver = CoordinateDescentSolver()
        assert solver.fit(X, y, lmax * 1.0001).n_nonzero == 0
        assert solver.fit(X, y, lmax * 0.99).n_nonzero >= 1

    def test_pure_ridge_has_no_lambda_max(self, regression_arrays):
        X, y, _ = regression_arrays
        assert lambda_max(X, y, mixture=0.0) == float("inf")


class TestValidation:
    """Tests for input validation."""

    def test_invalid_mixture(self):
        with pytest.raises(ConfigurationError, match="mixture"):
            CoordinateDescentSolver(mixture=1.5)

    def test_negative_penalty(self, regression_arrays):
        X, y, _ = regression_arrays
        with pytest.raises(ConfigurationError, match="non-negative"):
            CoordinateDescentSolver().fit(X, y, -0.1)

    def test_shape_mismatch(self, regression_arrays):
        X, y, _ = regression_arrays
        with pytest.raises(ConfigurationError, match="rows"):
            CoordinateDescentSolver().fit(X, y[:-1], 0.1)

    def test_predict_wrong_width(self, regression_arrays):
        X, y, _ = regression_arrays
        fit = CoordinateDescentSolver().fit(X, y, 0.1)
        with pytest.raises(ConfigurationError, match="columns"):
            fit.predict(X[:, :2])
