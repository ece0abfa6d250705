# packages/lumen_lib/config/calibration.py

from typing import Dict
from pydantic import Field
from pydantic_settings import SettingsConfigDict

from packages.contracts.vocabulary.general import (
    ConfidenceLevel,
    ImpactLabel,
    SignificanceLevel,
)
from .base import EnvConfig


class CalibrationConfig(EnvConfig):
    """
    Ordered bands that turn raw scores into categorical levels.
    A value lands in the first band (highest bound first) it reaches;
    anything below every band gets the *_default label.
    """

    model_config = SettingsConfigDict(env_prefix="LUMEN_CALIBRATION_")

    # Confidence: value >= bound
    confidence_thresholds: Dict[ConfidenceLevel, float] = {
        ConfidenceLevel.VERY_HIGH: 0.9,
        ConfidenceLevel.HIGH: 0.8,
        ConfidenceLevel.MEDIUM: 0.7,
        ConfidenceLevel.LOW: 0.6,
    }
    confidence_default: ConfidenceLevel = ConfidenceLevel.VERY_LOW

    # Impact: contribution / |prediction|, positive side uses >=, negative side <=
    impact_thresholds: Dict[ImpactLabel, float] = {
        ImpactLabel.STRONG_POSITIVE: 0.3,
        ImpactLabel.POSITIVE: 0.1,
        ImpactLabel.NEGATIVE: -0.1,
        ImpactLabel.STRONG_NEGATIVE: -0.3,
    }
    impact_default: ImpactLabel = ImpactLabel.NEUTRAL

    # Significance: importance * (1 - p_value) * stability, strictly greater than bound
    significance_thresholds: Dict[SignificanceLevel, float] = {
        SignificanceLevel.VERY_HIGH: 0.8,
        SignificanceLevel.HIGH: 0.6,
        SignificanceLevel.MEDIUM: 0.4,
        SignificanceLevel.LOW: 0.2,
    }
    significance_default: SignificanceLevel = SignificanceLevel.VERY_LOW

    # Used by the explainer to measure distance to the decision boundary
    decision_threshold: float = Field(default=0.0)
