from datetime import date, timedelta

import numpy as np
import pandas as pd
import polars as pl
import pytest

from packages.contracts.schemas import ImportanceReport
from packages.contracts.vocabulary.general import ImportanceType, Trend
from packages.lumen_lib.config import ImportanceConfig
from packages.xai_core.analysis.statistics import (
    bootstrap_stability,
    correlated_feature_groups,
    feature_p_values,
    friedman_h_statistics,
)
from packages.xai_core.analysis.temporal import TemporalImportanceAnalyzer
from packages.xai_core.importance import FeatureImportanceAnalyzer
from packages.lumen_lib.logging import component_logger


class ProductModel:
    def predict(self, X):
        X = np.asarray(X, dtype=float)
        return X[:, 0] * X[:, 1]


class AdditiveModel:
    def predict(self, X):
        X = np.asarray(X, dtype=float)
        return X[:, 0] + 2.0 * X[:, 1]


@pytest.fixture
def symmetric_frame():
    rng = np.random.default_rng(1)
    return pd.DataFrame(rng.uniform(-1, 1, size=(40, 2)), columns=["a", "b"])


@pytest.fixture
def temporal_frame():
    rng = np.random.default_rng(3)
    n = 90
    signal = rng.normal(size=n)
    return pl.DataFrame(
        {
            "time": [date(2024, 1, 1) + timedelta(days=i) for i in range(n)],
            "x0": signal,
            "x1": rng.normal(size=n),
            "target": signal + rng.normal(scale=0.5, size=n),
        }
    )


class TestStatistics:
    def test_p_values(self, regression_data):
        X, y = regression_data
        p_values = feature_p_values(X.assign(flat=0.0), y)

        assert p_values["x0"] < 0.01
        assert p_values["flat"] == 1.0
        assert all(0.0 <= p <= 1.0 for p in p_values.values())

    def test_bootstrap_stability_in_unit_interval(self, regression_data):
        X, y = regression_data
        stability = bootstrap_stability(X, y, n_bootstrap=10, random_state=0)

        assert set(stability) == set(X.columns)
        assert all(0.0 <= s <= 1.0 for s in stability.values())
        assert stability["x0"] > stability["x2"]

    def test_h_statistic_detects_pure_interaction(self, symmetric_frame):
        strengths = friedman_h_statistics(
            ProductModel(), symmetric_frame, ["a", "b"], sample_size=20, random_state=0
        )
        assert strengths[("a", "b")] > 0.5

    def test_h_statistic_is_zero_for_additive_model(self, symmetric_frame):
        strengths = friedman_h_statistics(
            AdditiveModel(), symmetric_frame, ["a", "b"], sample_size=20, random_state=0
        )
        assert strengths[("a", "b")] == pytest.approx(0.0, abs=1e-6)

    def test_h_statistic_needs_two_features(self, symmetric_frame):
        assert friedman_h_statistics(ProductModel(), symmetric_frame, ["a"], 20, 0) == {}

    def test_correlated_groups(self, regression_data):
        X, _ = regression_data
        groups = correlated_feature_groups(X, list(X.columns), threshold=0.7)

        assert list(groups.values()) == [["x0", "x3"]]
        assert list(groups) == ["group_0"]


class TestTemporal:
    @pytest.fixture
    def analyzer(self):
        return TemporalImportanceAnalyzer(ImportanceConfig(temporal_window=30), component_logger("test"))

    def test_rolling_importance_series(self, analyzer, temporal_frame):
        result = analyzer.run(temporal_frame, ["x0", "x1"])
        x0 = result["x0"]

        assert set(result) == {"x0", "x1"}
        assert len(x0.importance_series) == 90 - 30 + 1
        assert all(0.0 <= v <= 1.0 for _, v in x0.importance_series)
        assert x0.trend in set(Trend)
        assert x0.volatility >= 0.0
        assert set(x0.regime_changes) <= {t for t, _ in x0.importance_series}

    def test_accepts_pandas(self, analyzer, temporal_frame):
        result = analyzer.run(temporal_frame.to_pandas(), ["x0"])
        assert list(result) == ["x0"]

    def test_string_timestamps_are_parsed(self, analyzer, temporal_frame):
        frame = temporal_frame.with_columns(
            pl.col("time").cast(pl.Datetime).dt.strftime("%Y-%m-%d %H:%M:%S")
        )
        assert "x0" in analyzer.run(frame, ["x0"])

    def test_missing_columns_or_history(self, analyzer, temporal_frame):
        assert analyzer.run(None, ["x0"]) == {}
        assert analyzer.run(temporal_frame.drop("target"), ["x0"]) == {}
        assert analyzer.run(temporal_frame.head(20), ["x0"]) == {}

    def test_caps_feature_count(self, temporal_frame):
        analyzer = TemporalImportanceAnalyzer(
            ImportanceConfig(max_temporal_features=1), component_logger("test")
        )
        assert list(analyzer.run(temporal_frame, ["x1", "x0"])) == ["x1"]


class TestComprehensiveAnalysis:
    @pytest.fixture
    def report(self, linear_model, regression_data, fast_settings):
        X, y = regression_data
        analyzer = FeatureImportanceAnalyzer(settings=fast_settings)
        return analyzer.comprehensive_importance_analysis(linear_model, X, y, list(X.columns))

    def test_global_ranking(self, report):
        ranked = report.global_importance
        scores = [r.importance_score for r in ranked]

        assert ranked[0].feature_name == "x0"
        assert ranked[0].normalized_score == pytest.approx(1.0)
        assert scores == sorted(scores, reverse=True)
        assert all(r.importance_type == ImportanceType.GLOBAL for r in ranked)

    def test_local_rankings(self, report):
        assert list(report.local_importance) == [f"instance_{i}" for i in range(5)]
        for ranked in report.local_importance.values():
            scores = [r.importance_score for r in ranked]
            assert scores == sorted(scores, reverse=True)
            assert all(r.importance_type == ImportanceType.LOCAL for r in ranked)

    def test_statistics_sections(self, report, regression_data):
        X, _ = regression_data

        assert set(report.stability_analysis) == set(X.columns)
        assert all(0.0 <= s <= 1.0 for s in report.statistical_significance.values())
        assert report.statistical_significance["x0"] > 0.99
        # Linear models have no pairwise interactions
        assert report.interaction_network == {}
        assert report.temporal_importance == {}

    def test_feature_groups_are_disjoint(self, report):
        members = [f for group in report.feature_groups.values() for f in group]
        assert len(members) == len(set(members))
        assert ("x0", "x3") in report.feature_groups.values()

    def test_with_temporal_data(self, linear_model, regression_data, fast_settings):
        X, y = regression_data
        temporal = pl.from_pandas(X.assign(target=y)).with_columns(
            pl.Series("time", [date(2024, 1, 1) + timedelta(days=i) for i in range(len(X))])
        )
        report = FeatureImportanceAnalyzer(settings=fast_settings).comprehensive_importance_analysis(
            linear_model, X, y, list(X.columns), temporal_data=temporal
        )
        assert set(report.temporal_importance) == set(X.columns)

    def test_empty_inputs(self, linear_model, regression_data, fast_settings):
        X, y = regression_data
        analyzer = FeatureImportanceAnalyzer(settings=fast_settings)

        assert analyzer.comprehensive_importance_analysis(linear_model, X, y, []) == ImportanceReport.empty()
        assert analyzer.comprehensive_importance_analysis(
            linear_model, X.iloc[0:0], y.iloc[0:0], list(X.columns)
        ) == ImportanceReport.empty()

    def test_unknown_features_are_dropped(self, linear_model, regression_data, fast_settings):
        X, y = regression_data
        report = FeatureImportanceAnalyzer(settings=fast_settings).comprehensive_importance_analysis(
            linear_model, X, y, ["x0", "x1", "ghost"]
        )
        assert {r.feature_name for r in report.global_importance} == {"x0", "x1"}

    def test_accepts_polars_input(self, linear_model, regression_data, fast_settings):
        X, y = regression_data
        report = FeatureImportanceAnalyzer(settings=fast_settings).comprehensive_importance_analysis(
            linear_model, pl.from_pandas(X), y.to_numpy(), list(X.columns)
        )
        assert report.global_importance[0].feature_name == "x0"
