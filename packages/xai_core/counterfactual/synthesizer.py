# packages/xai_core/counterfactual/synthesizer.py

import math
from typing import Any, List, Mapping, Optional, Sequence

from packages.contracts.schemas import Counterfactual, KeyFactor
from packages.contracts.vocabulary.general import ImpactLabel
from packages.contracts.vocabulary.signals import CounterfactualAction
from packages.lumen_lib.config import CounterfactualConfig, DomainTables
from packages.lumen_lib.logging import component_logger


_DESCRIPTIONS = {
    CounterfactualAction.INCREASE: "Increase {feature} to turn its drag into a positive effect",
    CounterfactualAction.MAINTAIN: "Maintain the current level of {feature} to keep its benefit",
    CounterfactualAction.OPTIMIZE: "Optimize {feature} for a better balance",
}


def action_for(impact: ImpactLabel) -> CounterfactualAction:
    """Negative factors get pushed up, positive ones held, neutral ones tuned."""
    if impact.is_negative:
        return CounterfactualAction.INCREASE
    if impact.is_positive:
        return CounterfactualAction.MAINTAIN
    return CounterfactualAction.OPTIMIZE


class CounterfactualSynthesizer:
    """
    Turns the top-ranked key factors into single-feature "what if" suggestions,
    each scored for expected impact, feasibility and implementation cost.
    """

    def __init__(self, config: CounterfactualConfig, tables: DomainTables, logger=None):
        self.config = config
        self.tables = tables
        self.logger = component_logger("counterfactuals", logger)

    def generate(
        self, key_factors: Sequence[KeyFactor], instance: Mapping[str, Any]
    ) -> List[Counterfactual]:
        counterfactuals = []
        for factor in list(key_factors)[: self.config.candidate_factors]:
            current_value = _as_float(instance.get(factor.feature_name))
            if current_value is None:
                self.logger.debug(
                    f"No usable current value for '{factor.feature_name}', skipping."
                )
                continue
            counterfactuals.append(
                self.create(factor.feature_name, factor.contribution, factor.impact, current_value)
            )

        # Input order is kept; no re-sorting by expected impact
        return counterfactuals[: self.config.max_counterfactuals]

    def create(
        self,
        feature_name: str,
        contribution: float,
        impact: ImpactLabel,
        current_value: float,
    ) -> Counterfactual:
        action = action_for(impact)
        suggested_value = current_value * self.config.value_multipliers[action]
        magnitude = abs(contribution)

        return Counterfactual(
            feature_changes={feature_name: (current_value, suggested_value)},
            action=action,
            expected_impact=magnitude * self.config.impact_multipliers[action],
            confidence=min(self.config.confidence_cap, magnitude),
            feasibility=self.feasibility(feature_name, current_value, suggested_value),
            implementation_cost=self.implementation_cost(
                feature_name, abs(suggested_value - current_value)
            ),
            description=_DESCRIPTIONS[action].format(feature=feature_name),
        )

    def feasibility(self, feature_name: str, current_value: float, suggested_value: float) -> float:
        base = self.tables.base_feasibility(feature_name)
        change = abs(suggested_value - current_value) / (
            abs(current_value) + self.config.change_epsilon
        )
        for upper_bound, factor in sorted(self.config.feasibility_attenuation):
            if change < upper_bound:
                return base * factor
        return base * self.config.feasibility_attenuation_floor

    def implementation_cost(self, feature_name: str, change_amount: float) -> float:
        base = self.tables.base_cost(feature_name)
        return min(base * (1.0 + change_amount * self.config.cost_change_factor), 1.0)


def _as_float(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None
