# packages/lumen_lib/config/tables.py

from typing import Dict, List
from pydantic import Field, field_validator
from pydantic_settings import SettingsConfigDict

from packages.contracts.vocabulary.columns import FeatureCol as F
from packages.contracts.vocabulary.signals import Direction
from .base import EnvConfig


class DomainTables(EnvConfig):
    """
    Static domain knowledge: how hard a feature is to move, what it costs to
    move it, and which way it usually pushes the outcome.
    """

    model_config = SettingsConfigDict(env_prefix="LUMEN_TABLES_")

    # --- Feasibility (easy / medium / hard) ---
    feasibility_tiers: Dict[str, float] = {"easy": 0.8, "medium": 0.6, "hard": 0.4}
    feasibility_default: float = Field(default=0.5, gt=0.0, le=1.0)
    feasibility_features: Dict[str, List[str]] = {
        "easy": [F.RSI, F.MOMENTUM, F.VOLUME_TREND, F.SENTIMENT],
        "medium": [F.VOLATILITY, F.BETA, F.MARKET_CAP],
        "hard": [F.PE_RATIO, F.DIVIDEND_YIELD, F.SECTOR_PERFORMANCE],
    }

    # --- Implementation cost (low / medium / high) ---
    cost_tiers: Dict[str, float] = {"low": 0.2, "medium": 0.5, "high": 0.8}
    cost_default: float = Field(default=0.5, gt=0.0, le=1.0)
    cost_features: Dict[str, List[str]] = {
        "low": [F.TECHNICAL_INDICATORS, F.SENTIMENT, F.MOMENTUM],
        "medium": [F.VOLUME, F.VOLATILITY, F.SHORT_INTEREST],
        "high": [F.FUNDAMENTAL_RATIOS, F.ANALYST_RATING, F.INSIDER_BUYING],
    }

    # --- Expected direction of effect ---
    direction: Dict[str, Direction] = {
        F.PRICE_MOMENTUM: Direction.POSITIVE,
        F.MOMENTUM: Direction.POSITIVE,
        F.VOLATILITY: Direction.NEGATIVE,
        F.VOLUME_TREND: Direction.POSITIVE,
        F.RSI: Direction.POSITIVE,
        F.MACD: Direction.POSITIVE,
        F.MARKET_CAP: Direction.POSITIVE,
        F.PE_RATIO: Direction.NEGATIVE,
    }

    @field_validator("feasibility_tiers", "cost_tiers")
    @classmethod
    def _unit_interval(cls, tiers: Dict[str, float]):
        bad = {k: v for k, v in tiers.items() if not 0.0 < v <= 1.0}
        if bad:
            raise ValueError(f"Tier values must lie in (0, 1]: {bad}")
        return tiers

    def _tier_value(
        self, feature_name: str, members: Dict[str, List[str]], tiers: Dict[str, float], default: float
    ) -> float:
        for tier, features in members.items():
            if feature_name in features and tier in tiers:
                return tiers[tier]
        return default

    def base_feasibility(self, feature_name: str) -> float:
        return self._tier_value(
            feature_name, self.feasibility_features, self.feasibility_tiers, self.feasibility_default
        )

    def base_cost(self, feature_name: str) -> float:
        return self._tier_value(feature_name, self.cost_features, self.cost_tiers, self.cost_default)

    def direction_of(self, feature_name: str) -> Direction:
        return self.direction.get(feature_name, Direction.NEUTRAL)
