# packages/xai_core/explainer.py

import math
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from packages.contracts.schemas import Explanation, KeyFactor
from packages.contracts.vocabulary.signals import AttributionMethod
from packages.lumen_lib.config import Settings, settings as default_settings
from packages.lumen_lib.logging import component_logger
from packages.xai_core.attribution.aggregator import AttributionAggregator
from packages.xai_core.attribution.providers import (
    LimeAttribution,
    ModelPredictionService,
    ShapAttribution,
)
from packages.xai_core.calibration.calibrator import Calibrator
from packages.xai_core.counterfactual.synthesizer import CounterfactualSynthesizer
from packages.xai_core.exceptions import CollaboratorFailure
from packages.xai_core.narrative.composer import RationaleComposer
from packages.xai_core.narrative.risk import split_risk_opportunity
from packages.xai_core.protocols import AttributionProvider, PredictionService
from packages.xai_core.retrieval.similar_cases import HistoricalData, SimilarCaseRetriever


class DecisionExplainer:
    """
    Explains a single prediction: calibrated confidence, key factors,
    counterfactual suggestions, similar historical cases, a risk/opportunity
    split and a narrative rationale.

    Collaborators are injected; the explainer itself keeps no per-request
    state, so one instance can serve concurrent requests.
    """

    def __init__(
        self,
        prediction_service: PredictionService,
        attribution_providers: Mapping[str, AttributionProvider],
        settings: Optional[Settings] = None,
        retriever: Optional[SimilarCaseRetriever] = None,
        logger=None,
    ):
        self.settings = settings or default_settings
        self.logger = component_logger("explainer", logger)

        self.prediction_service = prediction_service
        self.attribution_providers = dict(attribution_providers)

        self.calibrator = Calibrator(self.settings.calibration)
        self.aggregator = AttributionAggregator(
            self.settings.aggregation, self.calibrator, self.settings.tables, self.logger
        )
        self.synthesizer = CounterfactualSynthesizer(
            self.settings.counterfactual, self.settings.tables, self.logger
        )
        self.retriever = retriever or SimilarCaseRetriever(
            self.settings.retrieval, logger=self.logger
        )
        self.composer = RationaleComposer()

    @classmethod
    def from_model(
        cls,
        model,
        background: pd.DataFrame,
        settings: Optional[Settings] = None,
        logger=None,
    ) -> "DecisionExplainer":
        """Wires the bundled model-backed collaborators around a fitted estimator."""
        settings = settings or default_settings
        imp = settings.importance

        service = ModelPredictionService(model, background.columns)
        providers = {
            AttributionMethod.SHAP: ShapAttribution(
                model,
                background,
                n_samples=imp.shap_samples,
                background_size=imp.shap_background_size,
                random_state=imp.random_state,
            ),
            AttributionMethod.LIME: LimeAttribution(
                model,
                background,
                n_samples=imp.lime_samples,
                kernel_width=imp.lime_kernel_width,
                alpha=imp.lime_alpha,
                random_state=imp.random_state,
            ),
        }
        retriever = SimilarCaseRetriever(
            settings.retrieval, prediction_service=service, logger=component_logger("explainer", logger)
        )
        return cls(service, providers, settings=settings, retriever=retriever, logger=logger)

    # --- Entry point ---

    def explain_decision(
        self,
        instance: Mapping[str, Any],
        feature_names: Sequence[str],
        training_data: Optional[HistoricalData] = None,
        explanation_type: str = "counterfactual",
    ) -> Explanation:
        try:
            prediction, confidence = self._get_prediction_with_confidence(instance)
            confidence_level = self.calibrator.confidence_level(confidence)

            key_factors = self.analyze_key_factors(instance, prediction, feature_names)
            counterfactuals = self.synthesizer.generate(key_factors, instance)
            similar_cases = self.retriever.find(
                instance, prediction, training_data, feature_names
            )
            decision_boundary = abs(prediction - self.settings.calibration.decision_threshold)
            risk_factors, opportunity_factors = split_risk_opportunity(
                key_factors, self.settings.aggregation.risk_opportunity_limit
            )
            rationale = self.composer.compose(
                prediction, key_factors, counterfactuals, similar_cases
            )

            explanation = Explanation(
                prediction=prediction,
                confidence=confidence,
                confidence_level=confidence_level,
                key_factors=key_factors,
                counterfactuals=counterfactuals,
                similar_cases=similar_cases,
                decision_boundary=decision_boundary,
                risk_factors=risk_factors,
                opportunity_factors=opportunity_factors,
                explanation_type=explanation_type,
                rationale=rationale,
            )
        except Exception as e:
            self.logger.error(f"Decision explanation failed: {e}")
            raise

        self.logger.info(
            f"Explained prediction {prediction:.4f} ({confidence_level}): "
            f"{len(key_factors)} factors, {len(counterfactuals)} counterfactuals, "
            f"{len(similar_cases)} similar cases."
        )
        return explanation

    # --- Steps ---

    def analyze_key_factors(
        self, instance: Mapping[str, Any], prediction: float, feature_names: Sequence[str]
    ) -> List[KeyFactor]:
        """Blends local attributions and ranks them by absolute contribution."""
        if not feature_names:
            return []

        method_scores = self._get_attributions(instance, feature_names)
        combined = self.aggregator.combine(method_scores, feature_names)

        factors = [
            KeyFactor(
                feature_name=name,
                contribution=contribution,
                impact=self.calibrator.impact_label(contribution, prediction),
            )
            for name, contribution in combined.items()
        ]
        factors.sort(key=lambda f: abs(f.contribution), reverse=True)
        return factors[: self.settings.aggregation.max_key_factors]

    def _get_prediction_with_confidence(self, instance: Mapping[str, Any]) -> Tuple[float, float]:
        result = self.prediction_service.predict_with_confidence(instance)
        try:
            prediction, confidence = (float(v) for v in result)
        except (TypeError, ValueError) as e:
            raise CollaboratorFailure(
                "prediction_service", f"expected (prediction, confidence), got {result!r}"
            ) from e

        if not (math.isfinite(prediction) and math.isfinite(confidence)):
            raise CollaboratorFailure(
                "prediction_service", f"non-finite output ({prediction}, {confidence})"
            )
        if not 0.0 <= confidence <= 1.0:
            raise CollaboratorFailure(
                "prediction_service", f"confidence {confidence} outside [0, 1]"
            )
        return prediction, confidence

    def _get_attributions(
        self, instance: Mapping[str, Any], feature_names: Sequence[str]
    ) -> Dict[str, Dict[str, float]]:
        method_scores = {}
        for method, provider in self.attribution_providers.items():
            raw = provider(instance, feature_names)
            scores = {}
            for feature_name, value in dict(raw).items():
                number = float(value)
                if not math.isfinite(number):
                    raise CollaboratorFailure(
                        f"attribution:{method}", f"non-finite value for '{feature_name}'"
                    )
                scores[feature_name] = number
            method_scores[str(method)] = scores
            self.logger.debug(f"{method}: {len(scores)} attributions.")
        return method_scores
