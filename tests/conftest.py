import numpy as np
import pandas as pd
import pytest
from sklearn.linear_model import LinearRegression

from packages.contracts.schemas import KeyFactor
from packages.contracts.vocabulary.general import ImpactLabel
from packages.lumen_lib.config import ImportanceConfig, Settings


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def fast_settings():
    """Small sample counts so model-backed tests stay quick."""
    return Settings(
        importance=ImportanceConfig(
            n_permutations=3,
            shap_samples=60,
            shap_rows=5,
            shap_background_size=10,
            lime_samples=200,
            n_bootstrap=5,
            interaction_sample_size=10,
            temporal_window=30,
        )
    )


@pytest.fixture
def regression_data():
    """y = 3*x0 + x1 + noise; x2 is noise; x3 is a near-copy of x0."""
    rng = np.random.default_rng(0)
    n = 200
    x0 = rng.normal(size=n)
    x1 = rng.normal(size=n)
    x2 = rng.normal(size=n)
    x3 = x0 + rng.normal(scale=0.1, size=n)
    X = pd.DataFrame({"x0": x0, "x1": x1, "x2": x2, "x3": x3})
    y = pd.Series(3.0 * x0 + 1.0 * x1 + rng.normal(scale=0.1, size=n), name="target")
    return X, y


@pytest.fixture
def linear_model(regression_data):
    X, y = regression_data
    return LinearRegression().fit(X, y)


@pytest.fixture
def key_factors():
    return [
        KeyFactor(feature_name="volatility", contribution=-0.4, impact=ImpactLabel.STRONG_NEGATIVE),
        KeyFactor(feature_name="momentum", contribution=0.3, impact=ImpactLabel.STRONG_POSITIVE),
        KeyFactor(feature_name="pe_ratio", contribution=0.01, impact=ImpactLabel.NEUTRAL),
        KeyFactor(feature_name="rsi", contribution=-0.005, impact=ImpactLabel.NEUTRAL),
    ]
