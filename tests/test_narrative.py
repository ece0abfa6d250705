import pytest

from packages.contracts.schemas import Counterfactual, KeyFactor, SimilarCase
from packages.contracts.vocabulary.general import ImpactLabel
from packages.contracts.vocabulary.signals import CounterfactualAction
from packages.xai_core.narrative.composer import (
    RationaleComposer,
    best_counterfactual,
    most_similar_case,
)
from packages.xai_core.narrative.risk import split_risk_opportunity


def counterfactual(feature, impact):
    return Counterfactual(
        feature_changes={feature: (1.0, 1.2)},
        action=CounterfactualAction.INCREASE,
        expected_impact=impact,
        confidence=0.5,
        feasibility=0.5,
        implementation_cost=0.5,
        description=f"Increase {feature}",
    )


def case(case_id, similarity, outcome=0.5):
    return SimilarCase(
        case_id=case_id,
        features={},
        prediction=outcome,
        similarity=similarity,
        outcome_difference=0.0,
    )


def factor(name, contribution, impact):
    return KeyFactor(feature_name=name, contribution=contribution, impact=impact)


@pytest.fixture
def composer():
    return RationaleComposer()


class TestSelection:
    def test_best_counterfactual_first_wins_ties(self):
        candidates = [counterfactual("a", 0.2), counterfactual("b", 0.4), counterfactual("c", 0.4)]
        assert best_counterfactual(candidates).feature_name == "b"

    def test_most_similar_case_first_wins_ties(self):
        cases = [case("case_1", 0.7), case("case_2", 0.9), case("case_3", 0.9)]
        assert most_similar_case(cases).case_id == "case_2"

    def test_empty_selection(self):
        assert best_counterfactual([]) is None
        assert most_similar_case([]) is None


class TestRationale:
    def test_prediction_only(self, composer):
        assert composer.compose(0.1234, [], [], []) == "The model predicts a value of 0.1234."

    def test_sections_appear_in_fixed_order(self, composer):
        factors = [
            factor("volatility", -0.4, ImpactLabel.STRONG_NEGATIVE),
            factor("momentum", 0.3, ImpactLabel.STRONG_POSITIVE),
            factor("rsi", 0.2, ImpactLabel.POSITIVE),
            factor("macd", 0.1, ImpactLabel.POSITIVE),
            factor("beta", 0.0, ImpactLabel.NEUTRAL),
        ]
        text = composer.compose(
            0.5,
            factors,
            [counterfactual("volatility", 0.32)],
            [case("case_7", 0.8, outcome=0.61)],
        )

        assert text == (
            "The model predicts a value of 0.5000. "
            "Key positive factors include: momentum, rsi. "
            "Key negative factors include: volatility. "
            "To improve the outcome, consider adjusting volatility. "
            "Similar historical cases show outcomes around 0.6100."
        )

    def test_skips_empty_sections(self, composer):
        text = composer.compose(
            -1.0, [factor("volatility", -0.5, ImpactLabel.NEGATIVE)], [], [case("c", 0.4, 2.0)]
        )

        assert "positive factors" not in text
        assert "consider adjusting" not in text
        assert text.endswith("Similar historical cases show outcomes around 2.0000.")

    def test_neutral_factors_are_not_mentioned(self, composer):
        text = composer.compose(0.0, [factor("beta", 0.0, ImpactLabel.NEUTRAL)], [], [])
        assert "beta" not in text


class TestRiskOpportunity:
    def test_partitions_by_impact_sign(self, key_factors):
        risk, opportunity = split_risk_opportunity(key_factors)

        assert risk == [("volatility", pytest.approx(0.4))]
        assert opportunity == [("momentum", pytest.approx(0.3))]

    def test_sorted_by_magnitude_and_capped(self):
        factors = [factor(f"n{i}", -0.1 * (i + 1), ImpactLabel.NEGATIVE) for i in range(7)]
        risk, opportunity = split_risk_opportunity(factors, limit=5)

        assert [name for name, _ in risk] == ["n6", "n5", "n4", "n3", "n2"]
        assert all(magnitude > 0 for _, magnitude in risk)
        assert opportunity == []

    def test_empty(self):
        assert split_risk_opportunity([]) == ([], [])
