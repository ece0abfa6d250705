# packages/xai_core/attribution/aggregator.py

import math
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from scipy.stats import norm

from packages.contracts.schemas import RankedFactor
from packages.contracts.vocabulary.general import ImportanceType
from packages.contracts.vocabulary.signals import AttributionMethod, Direction
from packages.lumen_lib.config import AggregationConfig, DomainTables
from packages.lumen_lib.logging import component_logger
from packages.xai_core.calibration.calibrator import Calibrator

MethodScores = Mapping[str, Mapping[str, float]]


class AttributionAggregator:
    """
    Combines several attribution methods into one calibrated ranking.

    Every method contributes `score * weight` for the features it covers, and
    the sum is divided by the weight actually used for that feature, so a
    method that skipped a feature does not drag its score towards zero.
    """

    def __init__(
        self,
        config: AggregationConfig,
        calibrator: Calibrator,
        tables: DomainTables,
        logger=None,
    ):
        self.config = config
        self.calibrator = calibrator
        self.tables = tables
        self.logger = component_logger("aggregator", logger)
        self._z = float(norm.ppf(0.5 + config.confidence_level / 2.0))

    # --- Public API ---

    def combine(
        self,
        method_scores: MethodScores,
        feature_names: Sequence[str],
        weights: Optional[Mapping[AttributionMethod, float]] = None,
    ) -> Dict[str, float]:
        """Signed weighted contribution per feature (no ranking, no stats)."""
        weights = weights if weights is not None else self.config.local_method_weights
        scores = self._known_methods(method_scores)

        combined = {}
        for feature_name in feature_names:
            pairs = self._collect(scores, feature_name, weights)
            total_weight = sum(w for w, _ in pairs)
            combined[feature_name] = (
                sum(w * s for w, s in pairs) / total_weight if total_weight > 0 else 0.0
            )
        return combined

    def rank(
        self,
        method_scores: MethodScores,
        feature_names: Sequence[str],
        p_values: Optional[Mapping[str, float]] = None,
        interaction_network: Optional[Mapping[Tuple[str, str], float]] = None,
        directions: Optional[Mapping[str, Direction]] = None,
        importance_type: ImportanceType = ImportanceType.GLOBAL,
    ) -> List[RankedFactor]:
        if not method_scores or not feature_names:
            return []

        scores = self._known_methods(method_scores)
        weights = self.config.method_weights
        p_values = p_values or {}
        directions = directions or {}

        rows = []
        for feature_name in feature_names:
            pairs = self._collect(scores, feature_name, weights)
            raw_scores = [s for _, s in pairs]
            total_weight = sum(w for w, _ in pairs)

            final_score = 0.0
            stability = self.config.neutral_stability
            if total_weight > 0:
                final_score = sum(w * s for w, s in pairs) / total_weight
                if len(raw_scores) > 1:
                    stability = self._stability(raw_scores)

            p_value = float(p_values.get(feature_name, self.config.missing_p_value))
            if not math.isfinite(p_value):
                p_value = self.config.missing_p_value
            p_value = min(max(p_value, 0.0), 1.0)

            rows.append(
                {
                    "feature_name": feature_name,
                    "importance_score": final_score,
                    "significance": self.calibrator.significance_level(
                        final_score, p_value, stability
                    ),
                    "confidence_interval": self._confidence_interval(raw_scores),
                    "direction": directions.get(
                        feature_name, self.tables.direction_of(feature_name)
                    ),
                    "p_value": p_value,
                    "stability_score": stability,
                    "interactions": self._interactions_for(feature_name, interaction_network),
                    "importance_type": importance_type,
                }
            )

        # Normalize against the batch maximum into [0, 1]; all zero when nothing is positive
        max_score = max(r["importance_score"] for r in rows)
        for r in rows:
            r["normalized_score"] = (
                max(0.0, r["importance_score"] / max_score) if max_score > 0 else 0.0
            )

        # Stable sort keeps input order between equal scores
        rows.sort(key=lambda r: r["importance_score"], reverse=True)
        ranked = [RankedFactor(**r) for r in rows[: self.config.max_display_features]]

        self.logger.debug(
            f"Ranked {len(rows)} features ({importance_type}), kept {len(ranked)}."
        )
        return ranked

    # --- Internals ---

    def _known_methods(self, method_scores: MethodScores) -> Dict[AttributionMethod, Mapping[str, float]]:
        known = {}
        for name, scores in method_scores.items():
            try:
                method = AttributionMethod(name)
            except ValueError:
                self.logger.debug(f"Ignoring unknown attribution method '{name}'.")
                continue
            if scores:
                known[method] = scores
        return known

    @staticmethod
    def _collect(
        scores: Mapping[AttributionMethod, Mapping[str, float]],
        feature_name: str,
        weights: Mapping[AttributionMethod, float],
    ) -> List[Tuple[float, float]]:
        pairs = []
        for method, weight in weights.items():
            method_map = scores.get(method)
            if method_map is not None and feature_name in method_map:
                pairs.append((float(weight), float(method_map[feature_name])))
        return pairs

    def _stability(self, raw_scores: List[float]) -> float:
        # 1 - coefficient of variation; unclamped, negative flags strong disagreement
        values = np.asarray(raw_scores, dtype=float)
        return float(1.0 - values.std() / (abs(values.mean()) + self.config.stability_epsilon))

    def _confidence_interval(self, raw_scores: List[float]) -> Tuple[float, float]:
        if len(raw_scores) < 2:
            return (0.0, 0.0)
        values = np.asarray(raw_scores, dtype=float)
        mean = float(values.mean())
        margin = self._z * float(values.std()) / math.sqrt(len(values))
        return (mean - margin, mean + margin)

    def _interactions_for(
        self,
        feature_name: str,
        interaction_network: Optional[Mapping[Tuple[str, str], float]],
    ) -> List[Tuple[str, float]]:
        if not interaction_network:
            return []
        partners = []
        for (a, b), strength in interaction_network.items():
            if a == feature_name:
                partners.append((b, float(strength)))
            elif b == feature_name:
                partners.append((a, float(strength)))
        partners.sort(key=lambda p: p[1], reverse=True)
        return partners[: self.config.max_interactions]
