# packages/lumen_lib/config/importance.py

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from packages.contracts.vocabulary.columns import DataCol
from .base import EnvConfig


class ImportanceConfig(EnvConfig):
    model_config = SettingsConfigDict(env_prefix="LUMEN_IMPORTANCE_")

    # Reproducibility: every estimator draws from default_rng(random_state)
    random_state: int = 42

    # Sampling effort
    n_permutations: int = Field(default=100, gt=0)  # sklearn permutation_importance n_repeats
    shap_samples: int = Field(default=1000, gt=0)  # Model evaluations per explained row
    shap_background_size: int = Field(default=50, gt=0)
    shap_rows: int = Field(default=20, gt=0)  # Rows averaged for global Shapley importance
    lime_samples: int = Field(default=500, gt=0)
    lime_kernel_width: float = Field(default=0.75, gt=0.0)  # Scaled by sqrt(n_features)
    lime_alpha: float = Field(default=1.0, gt=0.0)

    # Statistics
    significance_alpha: float = Field(default=0.05, gt=0.0, lt=1.0)
    stability_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    n_bootstrap: int = Field(default=20, gt=1)

    # Interactions (Friedman H)
    interaction_threshold: float = Field(default=0.1, ge=0.0)
    interaction_sample_size: int = Field(default=30, gt=1)

    # Local importance
    max_local_instances: int = Field(default=5, ge=0)

    # Temporal importance
    temporal_window: int = Field(default=30, gt=2)
    max_temporal_features: int = Field(default=5, ge=0)
    trend_tolerance: float = Field(default=1e-4, ge=0.0)
    seasonality_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    time_column: str = DataCol.TIME.value
    target_column: str = DataCol.TARGET.value

    # Correlated feature groups: |corr| at or above this share a group
    group_correlation_threshold: float = Field(default=0.7, gt=0.0, le=1.0)
