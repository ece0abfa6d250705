# packages/lumen_lib/config/retrieval.py

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from packages.contracts.vocabulary.columns import DataCol
from .base import EnvConfig


class RetrievalConfig(EnvConfig):
    model_config = SettingsConfigDict(env_prefix="LUMEN_RETRIEVAL_")

    max_similar_cases: int = Field(default=3, ge=0)
    min_similarity: float = Field(default=0.0, ge=0.0, le=1.0)
    max_key_differences: int = Field(default=3, ge=0)

    # Column holding the realised outcome of a historical record, if any
    outcome_column: str = DataCol.TARGET.value
