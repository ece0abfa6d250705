from enum import Enum


class StrEnum(str, Enum):
    """Base class to make enums behave like strings for easy use in Pydantic/JSON."""

    def __str__(self):
        return self.value


class ConfidenceLevel(StrEnum):
    """Calibrated bands for the prediction service's confidence."""

    VERY_HIGH = "very_high"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    VERY_LOW = "very_low"


class ImpactLabel(StrEnum):
    """How strongly a factor pushes the prediction, relative to its size."""

    STRONG_POSITIVE = "strong_positive"
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    STRONG_NEGATIVE = "strong_negative"

    @property
    def is_positive(self) -> bool:
        return self in (ImpactLabel.POSITIVE, ImpactLabel.STRONG_POSITIVE)

    @property
    def is_negative(self) -> bool:
        return self in (ImpactLabel.NEGATIVE, ImpactLabel.STRONG_NEGATIVE)


class SignificanceLevel(StrEnum):
    """Composite confidence that an importance score is not noise."""

    VERY_HIGH = "very_high"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    VERY_LOW = "very_low"


class ImportanceType(StrEnum):
    GLOBAL = "global"  # Whole-dataset importance
    LOCAL = "local"  # Importance for a single instance


class Trend(StrEnum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
