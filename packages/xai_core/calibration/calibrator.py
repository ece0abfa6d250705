# packages/xai_core/calibration/calibrator.py

from typing import Hashable, Mapping, TypeVar

from packages.contracts.vocabulary.general import (
    ConfidenceLevel,
    ImpactLabel,
    SignificanceLevel,
)
from packages.lumen_lib.config import CalibrationConfig

L = TypeVar("L", bound=Hashable)


def level_of(
    value: float, thresholds: Mapping[L, float], default: L, strict: bool = False
) -> L:
    """
    Returns the label of the first band the value reaches, scanning bounds
    from highest to lowest. `strict` switches the comparison from >= to >.
    Falls back to `default` when no band matches.
    """
    for label, bound in sorted(thresholds.items(), key=lambda kv: kv[1], reverse=True):
        if value > bound if strict else value >= bound:
            return label
    return default


class Calibrator:
    """Maps raw scores to categorical levels using configured bands."""

    def __init__(self, config: CalibrationConfig):
        self.config = config

        impact = config.impact_thresholds
        self._positive_bands = {k: v for k, v in impact.items() if k.is_positive}
        # Negative bands are scanned on the negated value: x <= -0.3  <=>  -x >= 0.3
        self._negative_bands = {k: -v for k, v in impact.items() if k.is_negative}

    def confidence_level(self, confidence: float) -> ConfidenceLevel:
        return level_of(
            confidence, self.config.confidence_thresholds, self.config.confidence_default
        )

    def impact_label(self, contribution: float, prediction: float) -> ImpactLabel:
        # A zero prediction leaves the contribution unscaled
        scale = abs(prediction)
        normalized = contribution / scale if scale > 0 else contribution

        label = level_of(normalized, self._positive_bands, None)
        if label is None:
            label = level_of(-normalized, self._negative_bands, None)
        return label if label is not None else self.config.impact_default

    def significance_level(
        self, importance: float, p_value: float, stability: float
    ) -> SignificanceLevel:
        score = importance * (1.0 - p_value) * stability
        return level_of(
            score,
            self.config.significance_thresholds,
            self.config.significance_default,
            strict=True,
        )
