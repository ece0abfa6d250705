from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Any, Dict, Tuple

from .vocabulary.general import (
    ConfidenceLevel,
    ImpactLabel,
    ImportanceType,
    SignificanceLevel,
    Trend,
)
from .vocabulary.signals import AttributionMethod, CounterfactualAction, Direction


class ValueObject(BaseModel):
    """The base contract for every record the engine returns."""

    # Immutable once returned, and every float must be finite
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)


class RankedFactor(ValueObject):
    feature_name: str
    importance_score: float
    normalized_score: float = Field(ge=0.0, le=1.0)
    significance: SignificanceLevel
    confidence_interval: Tuple[float, float] = (0.0, 0.0)
    direction: Direction = Direction.NEUTRAL
    p_value: float = Field(default=1.0, ge=0.0, le=1.0)
    stability_score: float = 0.5
    interactions: Tuple[Tuple[str, float], ...] = ()
    importance_type: ImportanceType = ImportanceType.GLOBAL
    method: AttributionMethod = AttributionMethod.ENSEMBLE

    @model_validator(mode="after")
    def _check_interval(self):
        low, high = self.confidence_interval
        if low > high:
            raise ValueError(f"confidence_interval low ({low}) exceeds high ({high})")
        return self


class KeyFactor(ValueObject):
    """A signed per-instance contribution with its calibrated impact label."""

    feature_name: str
    contribution: float
    impact: ImpactLabel

    def as_tuple(self) -> Tuple[str, float, ImpactLabel]:
        return (self.feature_name, self.contribution, self.impact)


class Counterfactual(ValueObject):
    feature_changes: Dict[str, Tuple[float, float]]  # {feature: (current, suggested)}
    action: CounterfactualAction
    expected_impact: float = Field(ge=0.0)
    confidence: float = Field(ge=0.0, le=0.8)
    feasibility: float = Field(gt=0.0, le=1.0)
    implementation_cost: float = Field(gt=0.0, le=1.0)
    description: str

    @model_validator(mode="after")
    def _single_feature(self):
        if len(self.feature_changes) != 1:
            raise ValueError("A counterfactual changes exactly one feature")
        return self

    @property
    def feature_name(self) -> str:
        return next(iter(self.feature_changes))


class FeatureDifference(ValueObject):
    feature_name: str
    instance_value: float
    case_value: float


class SimilarCase(ValueObject):
    case_id: str
    features: Dict[str, Any]  # Opaque historical record
    prediction: float
    similarity: float = Field(ge=0.0, le=1.0)
    key_differences: Tuple[FeatureDifference, ...] = ()
    outcome_difference: float = Field(ge=0.0)


class Explanation(ValueObject):
    prediction: float
    confidence: float = Field(ge=0.0, le=1.0)
    confidence_level: ConfidenceLevel
    key_factors: Tuple[KeyFactor, ...]
    counterfactuals: Tuple[Counterfactual, ...]
    similar_cases: Tuple[SimilarCase, ...]
    decision_boundary: float
    risk_factors: Tuple[Tuple[str, float], ...]
    opportunity_factors: Tuple[Tuple[str, float], ...]
    explanation_type: str = "counterfactual"
    rationale: str
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TemporalImportance(ValueObject):
    feature_name: str
    importance_series: Tuple[Tuple[datetime, float], ...]
    trend: Trend
    volatility: float = Field(ge=0.0)
    regime_changes: Tuple[datetime, ...] = ()
    seasonal_pattern: bool = False


class ImportanceReport(ValueObject):
    global_importance: Tuple[RankedFactor, ...]
    local_importance: Dict[str, Tuple[RankedFactor, ...]]
    temporal_importance: Dict[str, TemporalImportance]
    interaction_network: Dict[Tuple[str, str], float]
    stability_analysis: Dict[str, float]
    statistical_significance: Dict[str, float]
    feature_groups: Dict[str, Tuple[str, ...]]

    @model_validator(mode="after")
    def _disjoint_groups(self):
        seen: set = set()
        for group_id, members in self.feature_groups.items():
            if len(members) < 2:
                raise ValueError(f"{group_id} has fewer than two features")
            if seen.intersection(members):
                raise ValueError(f"{group_id} overlaps another feature group")
            seen.update(members)
        return self

    @classmethod
    def empty(cls) -> "ImportanceReport":
        return cls(
            global_importance=[],
            local_importance={},
            temporal_importance={},
            interaction_network={},
            stability_analysis={},
            statistical_significance={},
            feature_groups={},
        )
