# packages/lumen_lib/config/aggregation.py

from typing import Dict
from pydantic import Field, field_validator
from pydantic_settings import SettingsConfigDict

from packages.contracts.vocabulary.signals import AttributionMethod
from .base import EnvConfig


class AggregationConfig(EnvConfig):
    model_config = SettingsConfigDict(env_prefix="LUMEN_AGGREGATION_")

    # Global importance blend (sums to 1.0 when every method is present)
    method_weights: Dict[AttributionMethod, float] = {
        AttributionMethod.SHAP: 0.30,
        AttributionMethod.PERMUTATION: 0.25,
        AttributionMethod.MODEL_BASED: 0.20,
        AttributionMethod.MUTUAL_INFO: 0.15,
        AttributionMethod.CORRELATION: 0.10,
    }

    # Per-instance contribution blend used for key factors
    local_method_weights: Dict[AttributionMethod, float] = {
        AttributionMethod.SHAP: 0.7,
        AttributionMethod.LIME: 0.3,
    }

    max_display_features: int = Field(default=15, gt=0)
    max_key_factors: int = Field(default=10, gt=0)
    max_interactions: int = Field(default=5, ge=0)
    risk_opportunity_limit: int = Field(default=5, ge=0)

    # Two-sided level of the method-disagreement interval (0.95 -> z = 1.96)
    confidence_level: float = Field(default=0.95, gt=0.0, lt=1.0)

    # Numeric guards
    stability_epsilon: float = Field(default=1e-8, gt=0.0)
    neutral_stability: float = 0.5  # Features no method scored
    missing_p_value: float = Field(default=1.0, ge=0.0, le=1.0)

    @field_validator("method_weights", "local_method_weights")
    @classmethod
    def _non_negative(cls, weights: Dict[AttributionMethod, float]):
        negative = [m for m, w in weights.items() if w < 0]
        if negative:
            raise ValueError(f"Method weights must be non-negative: {negative}")
        return weights
