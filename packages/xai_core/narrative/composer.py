# packages/xai_core/narrative/composer.py

from typing import List, Optional, Sequence

from packages.contracts.schemas import Counterfactual, KeyFactor, SimilarCase


def best_counterfactual(counterfactuals: Sequence[Counterfactual]) -> Optional[Counterfactual]:
    """Highest expected impact; the first one wins a tie."""
    best = None
    for cf in counterfactuals:
        if best is None or cf.expected_impact > best.expected_impact:
            best = cf
    return best


def most_similar_case(cases: Sequence[SimilarCase]) -> Optional[SimilarCase]:
    """Highest similarity; the first one wins a tie."""
    best = None
    for case in cases:
        if best is None or case.similarity > best.similarity:
            best = case
    return best


class RationaleComposer:
    """
    Builds the narrative in a fixed order: prediction, top positive factors,
    top negative factors, best counterfactual, most similar case.
    Sections without content are skipped.
    """

    def __init__(self, top_n: int = 2, precision: int = 4):
        self.top_n = top_n
        self.precision = precision

    def compose(
        self,
        prediction: float,
        key_factors: Sequence[KeyFactor],
        counterfactuals: Sequence[Counterfactual],
        similar_cases: Sequence[SimilarCase],
    ) -> str:
        parts = [f"The model predicts a value of {prediction:.{self.precision}f}."]

        positive = self._top(key_factors, positive=True)
        if positive:
            parts.append(f"Key positive factors include: {', '.join(positive)}.")

        negative = self._top(key_factors, positive=False)
        if negative:
            parts.append(f"Key negative factors include: {', '.join(negative)}.")

        cf = best_counterfactual(counterfactuals)
        if cf is not None:
            parts.append(f"To improve the outcome, consider adjusting {cf.feature_name}.")

        case = most_similar_case(similar_cases)
        if case is not None:
            parts.append(
                f"Similar historical cases show outcomes around {case.prediction:.{self.precision}f}."
            )

        return " ".join(parts)

    def _top(self, key_factors: Sequence[KeyFactor], positive: bool) -> List[str]:
        matches = [
            f.feature_name
            for f in key_factors
            if (f.impact.is_positive if positive else f.impact.is_negative)
        ]
        return matches[: self.top_n]
