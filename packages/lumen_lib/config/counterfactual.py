# packages/lumen_lib/config/counterfactual.py

from typing import Dict, List, Tuple
from pydantic import Field
from pydantic_settings import SettingsConfigDict

from packages.contracts.vocabulary.signals import CounterfactualAction
from .base import EnvConfig


class CounterfactualConfig(EnvConfig):
    model_config = SettingsConfigDict(env_prefix="LUMEN_COUNTERFACTUAL_")

    max_counterfactuals: int = Field(default=5, ge=0)
    candidate_factors: int = Field(default=3, ge=0)  # Top-N key factors considered

    # suggested_value = current_value * multiplier
    value_multipliers: Dict[CounterfactualAction, float] = {
        CounterfactualAction.INCREASE: 1.20,
        CounterfactualAction.MAINTAIN: 1.05,
        CounterfactualAction.OPTIMIZE: 0.90,
    }
    # expected_impact = |contribution| * multiplier
    impact_multipliers: Dict[CounterfactualAction, float] = {
        CounterfactualAction.INCREASE: 0.8,
        CounterfactualAction.MAINTAIN: 0.9,
        CounterfactualAction.OPTIMIZE: 0.5,
    }

    # Counterfactual confidence is never asserted above this
    confidence_cap: float = Field(default=0.8, gt=0.0, le=0.8)

    # (relative change upper bound, feasibility multiplier), ascending
    feasibility_attenuation: List[Tuple[float, float]] = [(0.1, 0.9), (0.3, 0.7)]
    feasibility_attenuation_floor: float = Field(default=0.5, gt=0.0, le=1.0)

    # cost = min(base_cost * (1 + change_amount * factor), 1.0)
    cost_change_factor: float = Field(default=2.0, ge=0.0)

    change_epsilon: float = Field(default=1e-8, gt=0.0)
