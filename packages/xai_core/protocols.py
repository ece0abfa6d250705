# packages/xai_core/protocols.py

from typing import Any, Mapping, Protocol, Sequence, Tuple, runtime_checkable

import numpy as np


@runtime_checkable
class PredictionService(Protocol):
    """(instance) -> (prediction, confidence in [0, 1])."""

    def predict_with_confidence(self, instance: Mapping[str, Any]) -> Tuple[float, float]: ...


class AttributionProvider(Protocol):
    """(instance, feature_names) -> {feature_name: contribution}."""

    def __call__(
        self, instance: Mapping[str, Any], feature_names: Sequence[str]
    ) -> Mapping[str, float]: ...


class SimilarityFunction(Protocol):
    """
    Scores every candidate row against the instance vector.
    Must return values in [0, 1], larger meaning closer.
    """

    def __call__(self, instance: np.ndarray, candidates: np.ndarray) -> np.ndarray: ...
