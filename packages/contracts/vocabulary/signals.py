from .general import StrEnum


class AttributionMethod(StrEnum):
    """Fixed identifiers for the attribution signals the engine understands."""

    SHAP = "shap"  # Shapley-value contributions
    LIME = "lime"  # Local surrogate model
    PERMUTATION = "permutation"  # Score drop when a feature is shuffled
    MODEL_BASED = "model_based"  # Native importances (trees) or |coef| (linear)
    CORRELATION = "correlation"  # |Pearson r| with the target
    MUTUAL_INFO = "mutual_info"  # Mutual information with the target
    ENSEMBLE = "ensemble"  # Label for the aggregated score, never an input


class Direction(StrEnum):
    """Expected sign of a feature's relationship with the outcome."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class CounterfactualAction(StrEnum):
    """What a counterfactual asks the user to do with a feature."""

    INCREASE = "increase"  # Factor currently hurts the outcome
    MAINTAIN = "maintain"  # Factor currently helps the outcome
    OPTIMIZE = "optimize"  # Factor is neutral, fine-tune it
