import numpy as np
import pandas as pd
import pytest
from sklearn.ensemble import RandomForestRegressor
from sklearn.linear_model import LinearRegression, LogisticRegression
from sklearn.neighbors import KNeighborsRegressor

from packages.xai_core.attribution.estimators import (
    correlation_scores,
    model_based_scores,
    permutation_scores,
    scale_to_max,
)
from packages.xai_core.attribution.providers import (
    LimeAttribution,
    ModelPredictionService,
    ShapAttribution,
)
from packages.xai_core.protocols import PredictionService


class TestShapAttribution:
    def test_exact_for_linear_model_with_single_background_row(self, linear_model, regression_data):
        X, _ = regression_data
        background = X.iloc[[5]]
        explainer = ShapAttribution(linear_model, background, n_samples=50)

        instance = X.iloc[0]
        contributions = explainer(instance, list(X.columns))
        expected = linear_model.coef_ * (instance.to_numpy() - background.iloc[0].to_numpy())

        for name, value in zip(X.columns, expected):
            assert contributions[name] == pytest.approx(value, abs=1e-9)

    def test_values_sum_to_prediction_gap(self, linear_model, regression_data):
        X, _ = regression_data
        background = X.iloc[[7]]
        explainer = ShapAttribution(linear_model, background, n_samples=25)

        phi = explainer.shapley_values(X.iloc[3].to_numpy())
        gap = linear_model.predict(X.iloc[[3]])[0] - linear_model.predict(background)[0]
        assert phi.sum() == pytest.approx(gap)

    def test_only_requested_features_are_returned(self, linear_model, regression_data):
        X, _ = regression_data
        explainer = ShapAttribution(linear_model, X, n_samples=25, background_size=5)
        assert set(explainer(X.iloc[0], ["x1", "nope"])) == {"x1"}

    def test_seeded(self, linear_model, regression_data):
        X, _ = regression_data
        a = ShapAttribution(linear_model, X, n_samples=50, background_size=10)
        b = ShapAttribution(linear_model, X, n_samples=50, background_size=10)
        assert a(X.iloc[1], list(X.columns)) == b(X.iloc[1], list(X.columns))

    def test_batch_of_rows(self, linear_model, regression_data):
        X, _ = regression_data
        explainer = ShapAttribution(linear_model, X, n_samples=25, background_size=5)
        assert explainer.shapley_values(X.iloc[:3].to_numpy()).shape == (3, 4)


class TestLimeAttribution:
    def test_recovers_linear_effects(self, linear_model, regression_data):
        X, _ = regression_data
        explainer = LimeAttribution(linear_model, X, n_samples=500)

        instance = X.iloc[0]
        contributions = explainer(instance, list(X.columns))
        expected = linear_model.coef_ * (instance.to_numpy() - X.mean().to_numpy())

        assert contributions["x0"] == pytest.approx(expected[0], rel=0.1)
        assert np.sign(contributions["x1"]) == np.sign(expected[1])

    def test_repeatable(self, linear_model, regression_data):
        X, _ = regression_data
        explainer = LimeAttribution(linear_model, X, n_samples=200)
        assert explainer(X.iloc[2], ["x0", "x1"]) == explainer(X.iloc[2], ["x0", "x1"])


class TestPredictionService:
    def test_regressor_reports_full_confidence(self, linear_model, regression_data):
        X, _ = regression_data
        service = ModelPredictionService(linear_model, X.columns)
        prediction, confidence = service.predict_with_confidence(X.iloc[0])

        assert isinstance(service, PredictionService)
        assert prediction == pytest.approx(linear_model.predict(X.iloc[[0]])[0])
        assert confidence == 1.0

    def test_classifier_confidence_is_top_probability(self, regression_data):
        X, y = regression_data
        model = LogisticRegression().fit(X, (y > 0).astype(int))
        prediction, confidence = ModelPredictionService(model, X.columns).predict_with_confidence(
            X.iloc[0]
        )

        assert 0.0 <= prediction <= 1.0
        assert confidence == pytest.approx(max(prediction, 1.0 - prediction))

    def test_forest_confidence_from_member_agreement(self, regression_data):
        X, y = regression_data
        model = RandomForestRegressor(n_estimators=10, random_state=0).fit(X, y)
        _, confidence = ModelPredictionService(model, X.columns).predict_with_confidence(X.iloc[0])

        assert 0.0 < confidence <= 1.0


class TestEstimators:
    def test_scale_to_max(self):
        assert scale_to_max({"a": 2.0, "b": 1.0}) == {"a": 1.0, "b": 0.5}
        assert scale_to_max({"a": 0.0, "b": -1.0}) == {"a": 0.0, "b": 0.0}
        assert scale_to_max({}) == {}

    def test_permutation_scores_rank_the_driver_first(self, linear_model, regression_data):
        X, y = regression_data
        scores = permutation_scores(linear_model, X, y, n_repeats=3, random_state=0)

        assert max(scores, key=scores.get) == "x0"
        assert all(v >= 0.0 for v in scores.values())

    def test_model_based_scores(self, linear_model, regression_data):
        X, y = regression_data
        coef_scores = model_based_scores(linear_model, X.columns)
        assert coef_scores["x0"] == pytest.approx(abs(linear_model.coef_[0]))

        forest = RandomForestRegressor(n_estimators=5, random_state=0).fit(X, y)
        assert sum(model_based_scores(forest, X.columns).values()) == pytest.approx(1.0)

        assert model_based_scores(KNeighborsRegressor().fit(X, y), X.columns) is None

    def test_constant_column_correlates_to_zero(self, regression_data):
        X, y = regression_data
        scores = correlation_scores(X.assign(flat=1.0), y)

        assert scores["flat"] == 0.0
        assert scores["x0"] > 0.9

    def test_accepts_frame_built_from_records(self, linear_model):
        frame = pd.DataFrame([{"x0": 1.0, "x1": 0.0, "x2": 0.0, "x3": 1.0}])
        explainer = ShapAttribution(linear_model, frame, n_samples=10)
        assert set(explainer(frame.iloc[0], ["x0"])) == {"x0"}
