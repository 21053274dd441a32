"""
Tests for transform steps.

Tests:
- learn derives parameters from training data only
- apply is deterministic and never changes learned parameters
- unseen categorical levels encode as all-zero indicators
- schema changes raise SchemaMismatch
"""
import numpy as np
import pandas as pd
import pytest

from lassotune.data import Dataset
from lassotune.exceptions import ConfigurationError, SchemaMismatch
from lassotune.preprocessing import (
    StepKind,
    apply_step,
    dummy,
    invert_outcome,
    learn_step,
    normalize,
    outcome_sqrt,
    zero_variance,
)


@pytest.fixture
def train_test():
    """Train and test sets with very different predictor distributions."""
    np.random.seed(42)
    train = pd.DataFrame({
        "a": np.random.randn(50) * 2 + 5,
        "color": np.array(["red", "green", "blue"])[np.arange(50) % 3],
        "y": np.random.uniform(1, 10, 50),
    })
    test = pd.DataFrame({
        "a": np.random.randn(20) * 10 + 100,
        "color": np.array(["red", "purple"])[np.arange(20) % 2],
        "y": np.random.uniform(1, 10, 20),
    })
    return Dataset(train, "y"), Dataset(test, "y")


class TestLearn:
    """Tests for learn_step."""

    def test_learn_returns_new_parameterized_step(self, train_test):
        train, _ = train_test
        step = normalize()
        learned = learn_step(step, train)
        assert not step.is_learned
        assert learned.is_learned
        assert learned.params["input_schema"] == {"a": "numeric", "color": "categorical"}

    def test_learn_empty_dataset_raises(self, train_test):
        train, _ = train_test
        with pytest.raises(ConfigurationError, match="empty"):
            learn_step(normalize(), train.subset([]))

    def test_learn_twice_raises(self, train_test):
        train, _ = train_test
        learned = learn_step(normalize(), train)
        with pytest.raises(ConfigurationError, match="already learned"):
            learn_step(learned, train)

    def test_normalize_non_numeric_column_raises(self, train_test):
        train, _ = train_test
        with pytest.raises(ConfigurationError, match="numeric"):
            learn_step(normalize(["color"]), train)

    def test_normalize_constant_column_raises(self):
        frame = pd.DataFrame({"c": [1.0] * 10, "y": np.arange(10.0)})
        with pytest.raises(ConfigurationError, match="constant"):
            learn_step(normalize(), Dataset(frame, "y"))

    def test_sqrt_negative_outcome_raises(self):
        frame = pd.DataFrame({"x": [1.0, 2.0, 3.0], "y": [1.0, -4.0, 9.0]})
        with pytest.raises(ConfigurationError, match="non-negative"):
            learn_step(outcome_sqrt(), Dataset(frame, "y"))


class TestApply:
    """Tests for apply_step."""

    def test_normalize_uses_training_statistics(self, train_test):
        train, test = train_test
        step = learn_step(normalize(), train)
        a_train = train.frame["a"].to_numpy()

        out = apply_step(step, test)
        expected = (test.frame["a"].to_numpy() - a_train.mean()) / a_train.std(ddof=1)
        np.testing.assert_allclose(out.frame["a"].to_numpy(), expected)
        # Training data is centred and scaled, test data is far from it
        assert out.frame["a"].mean() > 10

    def test_apply_is_deterministic(self, train_test):
        train, test = train_test
        step = learn_step(normalize(), train)
        pd.testing.assert_frame_equal(apply_step(step, test).frame, apply_step(step, test).frame)

    def test_apply_does_not_modify_input(self, train_test):
        train, test = train_test
        before = test.frame.copy()
        apply_step(learn_step(normalize(), train), test)
        pd.testing.assert_frame_equal(test.frame, before)

    def test_dummy_reference_level_and_names(self, train_test):
        train, _ = train_test
        step = learn_step(dummy(), train)
        assert step.params["levels"] == {"color": ["blue", "green", "red"]}

        out = apply_step(step, train)
        assert out.predictors == ["a", "color_green", "color_red"]
        assert set(np.unique(out.frame["color_red"])) == {0.0, 1.0}

    def test_dummy_unseen_level_is_all_zero(self, train_test):
        train, test = train_test
        out = apply_step(learn_step(dummy(), train), test)
        purple = (test.frame["color"] == "purple").to_numpy()
        np.testing.assert_array_equal(out.frame.loc[purple, "color_green"], 0.0)
        np.testing.assert_array_equal(out.frame.loc[purple, "color_red"], 0.0)

    def test_dummy_handles_duplicate_ids(self, train_test):
        train, _ = train_test
        step = learn_step(dummy(), train)
        boot = train.subset([0, 0, 1, 2, 2])
        out = apply_step(step, boot)
        assert out.n_rows == 5
        assert list(out.ids) == [0, 0, 1, 2, 2]

    def test_zero_variance_removes_constant_predictor(self):
        frame = pd.DataFrame({
            "const": [3.0] * 10,
            "x": np.arange(10.0),
            "y": np.arange(10.0) * 2,
        })
        ds = Dataset(frame, "y")
        step = learn_step(zero_variance(), ds)
        assert step.params["removed"] == ["const"]

        other = ds.with_frame(frame.assign(const=np.arange(10.0)))
        assert "const" not in apply_step(step, other).predictors

    def test_unknown_column_raises_schema_mismatch(self, train_test):
        train, test = train_test
        step = learn_step(normalize(), train)
        extra = test.with_frame(test.frame.assign(extra=1.0))
        with pytest.raises(SchemaMismatch, match="unknown columns") as exc_info:
            apply_step(step, extra)
        assert exc_info.value.columns == ["extra"]

    def test_missing_column_raises_schema_mismatch(self, train_test):
        train, test = train_test
        step = learn_step(normalize(), train)
        with pytest.raises(SchemaMismatch, match="missing columns"):
            apply_step(step, test.with_frame(test.frame.drop(columns="color")))

    def test_changed_type_raises_schema_mismatch(self, train_test):
        train, test = train_test
        step = learn_step(normalize(), train)
        retyped = test.with_frame(test.frame.assign(a=test.frame["a"].astype(str)))
        with pytest.raises(SchemaMismatch, match="types changed"):
            apply_step(step, retyped)

    def test_unlearned_step_cannot_apply(self, train_test):
        train, _ = train_test
        with pytest.raises(ConfigurationError, match="must be learned"):
            apply_step(normalize(), train)

    def test_sqrt_skipped_without_outcome(self, train_test):
        train, test = train_test
        step = learn_step(outcome_sqrt(), train)
        new = Dataset.for_prediction(test.frame.drop(columns="y"), "y")
        pd.testing.assert_frame_equal(apply_step(step, new).frame, new.frame)


class TestInvertOutcome:
    """Tests for invert_outcome."""

    def test_sqrt_inverse_squares(self):
        np.testing.assert_allclose(invert_outcome([outcome_sqrt()], [2.0, 3.0]), [4.0, 9.0])

    def test_negative_predictions_clip_to_zero(self):
        np.testing.assert_allclose(invert_outcome([outcome_sqrt()], [-1.5, 0.5]), [0.0, 0.25])

    def test_identity_without_sqrt_step(self):
        np.testing.assert_allclose(invert_outcome([normalize()], [-1.5, 2.0]), [-1.5, 2.0])

    def test_step_kinds(self):
        assert outcome_sqrt().kind is StepKind.OUTCOME_SQRT
        assert zero_variance(tolerance=0.1).options == {"tolerance": 0.1}
