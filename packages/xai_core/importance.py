# packages/xai_core/importance.py

from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
import polars as pl

from packages.contracts.schemas import ImportanceReport, RankedFactor
from packages.contracts.vocabulary.general import ImportanceType
from packages.contracts.vocabulary.signals import AttributionMethod, Direction
from packages.lumen_lib.config import Settings, settings as default_settings
from packages.lumen_lib.logging import component_logger
from packages.xai_core.analysis.statistics import (
    bootstrap_stability,
    correlated_feature_groups,
    feature_p_values,
    friedman_h_statistics,
)
from packages.xai_core.analysis.temporal import TemporalData, TemporalImportanceAnalyzer
from packages.xai_core.attribution.aggregator import AttributionAggregator
from packages.xai_core.attribution.estimators import (
    correlation_scores,
    model_based_scores,
    mutual_info_scores,
    permutation_scores,
    scale_to_max,
    shapley_scores,
)
from packages.xai_core.attribution.providers import ShapAttribution
from packages.xai_core.calibration.calibrator import Calibrator


class FeatureImportanceAnalyzer:
    """
    Dataset-level importance report for a fitted model: blended global
    ranking, per-instance rankings, importance over time, pairwise
    interactions, bootstrap stability, significance and correlated groups.
    """

    def __init__(self, settings: Optional[Settings] = None, logger=None):
        self.settings = settings or default_settings
        self.config = self.settings.importance
        self.logger = component_logger("importance", logger)

        self.calibrator = Calibrator(self.settings.calibration)
        self.aggregator = AttributionAggregator(
            self.settings.aggregation, self.calibrator, self.settings.tables, self.logger
        )
        self.temporal = TemporalImportanceAnalyzer(self.config, self.logger)

    def comprehensive_importance_analysis(
        self,
        model,
        X: Union[pd.DataFrame, pl.DataFrame],
        y,
        feature_names: Sequence[str],
        temporal_data: Optional[TemporalData] = None,
    ) -> ImportanceReport:
        if isinstance(X, pl.DataFrame):
            X = X.to_pandas()
        if not feature_names or X.empty:
            return ImportanceReport.empty()

        features = [f for f in feature_names if f in X.columns]
        dropped = [f for f in feature_names if f not in X.columns]
        if dropped:
            self.logger.warning(f"Ignoring features missing from X: {dropped}")
        if not features:
            return ImportanceReport.empty()

        y = pd.Series(np.asarray(y).reshape(-1), index=X.index)

        try:
            self.logger.info(f"--- Running Importance Analysis ({len(features)} features) ---")

            method_scores = self._calculate_method_scores(model, X, y, features)
            p_values = feature_p_values(X[features], y)
            interaction_network = self._analyze_feature_interactions(model, X, features)

            global_importance = self.aggregator.rank(
                method_scores, features, p_values=p_values, interaction_network=interaction_network
            )
            local_importance = self._calculate_local_importance(model, X, features, p_values)
            temporal_importance = self.temporal.run(temporal_data, features)
            stability_analysis = bootstrap_stability(
                X[features],
                y,
                n_bootstrap=self.config.n_bootstrap,
                random_state=self.config.random_state,
                epsilon=self.settings.aggregation.stability_epsilon,
            )
            statistical_significance = {f: 1.0 - p for f, p in p_values.items()}
            feature_groups = correlated_feature_groups(
                X, features, self.config.group_correlation_threshold
            )

            report = ImportanceReport(
                global_importance=global_importance,
                local_importance=local_importance,
                temporal_importance=temporal_importance,
                interaction_network=interaction_network,
                stability_analysis=stability_analysis,
                statistical_significance=statistical_significance,
                feature_groups=feature_groups,
            )
        except Exception as e:
            self.logger.error(f"Feature importance analysis failed: {e}")
            raise

        self._log_summary(report, p_values)
        return report

    # --- Steps ---

    def _calculate_method_scores(
        self, model, X: pd.DataFrame, y: pd.Series, features: List[str]
    ) -> Dict[str, Dict[str, float]]:
        cfg = self.config
        raw = {
            AttributionMethod.PERMUTATION: permutation_scores(
                model, X, y, n_repeats=cfg.n_permutations, random_state=cfg.random_state
            ),
            AttributionMethod.SHAP: shapley_scores(
                model,
                X,
                n_rows=cfg.shap_rows,
                n_samples=cfg.shap_samples,
                background_size=cfg.shap_background_size,
                random_state=cfg.random_state,
            ),
            AttributionMethod.MODEL_BASED: model_based_scores(model, X.columns),
            AttributionMethod.CORRELATION: correlation_scores(X[features], y),
            AttributionMethod.MUTUAL_INFO: mutual_info_scores(
                model, X[features], y, random_state=cfg.random_state
            ),
        }

        method_scores = {}
        for method, scores in raw.items():
            if scores is None:
                self.logger.warning(f"{type(model).__name__} exposes no {method} importances; skipping.")
                continue
            subset = {f: scores[f] for f in features if f in scores}
            method_scores[str(method)] = scale_to_max(subset)
        return method_scores

    def _analyze_feature_interactions(self, model, X: pd.DataFrame, features: List[str]):
        strengths = friedman_h_statistics(
            model,
            X,
            features,
            sample_size=self.config.interaction_sample_size,
            random_state=self.config.random_state,
        )
        return {
            pair: strength
            for pair, strength in strengths.items()
            if strength >= self.config.interaction_threshold
        }

    def _calculate_local_importance(
        self, model, X: pd.DataFrame, features: List[str], p_values: Dict[str, float]
    ) -> Dict[str, List[RankedFactor]]:
        n_instances = min(self.config.max_local_instances, len(X))
        if n_instances == 0:
            return {}

        explainer = ShapAttribution(
            model,
            X,
            n_samples=self.config.shap_samples,
            background_size=self.config.shap_background_size,
            random_state=self.config.random_state,
        )

        local = {}
        for i in range(n_instances):
            contributions = explainer(X.iloc[i], features)
            directions = {f: _sign_direction(v) for f, v in contributions.items()}
            local[f"instance_{i}"] = self.aggregator.rank(
                {AttributionMethod.SHAP: {f: abs(v) for f, v in contributions.items()}},
                features,
                p_values=p_values,
                directions=directions,
                importance_type=ImportanceType.LOCAL,
            )
        return local

    def _log_summary(self, report: ImportanceReport, p_values: Dict[str, float]):
        alpha = self.config.significance_alpha
        significant = [f for f, p in p_values.items() if p < alpha]
        unstable = [
            f for f, s in report.stability_analysis.items() if s < self.config.stability_threshold
        ]

        if report.global_importance:
            top = report.global_importance[0]
            self.logger.info(
                f"Top feature: {top.feature_name} (score={top.importance_score:.4f}, "
                f"significance={top.significance})"
            )
        self.logger.info(f"{len(significant)}/{len(p_values)} features significant at alpha={alpha}.")
        if unstable:
            self.logger.warning(f"Unstable importance estimates: {unstable}")
        self.logger.success(
            f"Importance analysis complete: {len(report.interaction_network)} interactions, "
            f"{len(report.feature_groups)} feature groups."
        )


def _sign_direction(value: float) -> Direction:
    if value > 0:
        return Direction.POSITIVE
    if value < 0:
        return Direction.NEGATIVE
    return Direction.NEUTRAL
