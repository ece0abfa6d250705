# packages/xai_core/narrative/risk.py

from typing import List, Sequence, Tuple

from packages.contracts.schemas import KeyFactor

FactorMagnitudes = List[Tuple[str, float]]


def split_risk_opportunity(
    key_factors: Sequence[KeyFactor], limit: int = 5
) -> Tuple[FactorMagnitudes, FactorMagnitudes]:
    """
    Partitions key factors into (risk, opportunity) lists of
    (feature_name, |contribution|), each sorted by magnitude and truncated.
    Neutral factors belong to neither side.
    """
    risk, opportunity = [], []
    for factor in key_factors:
        if factor.impact.is_negative:
            risk.append((factor.feature_name, abs(factor.contribution)))
        elif factor.impact.is_positive:
            opportunity.append((factor.feature_name, abs(factor.contribution)))

    risk.sort(key=lambda p: p[1], reverse=True)
    opportunity.sort(key=lambda p: p[1], reverse=True)
    return risk[:limit], opportunity[:limit]
