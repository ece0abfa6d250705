# packages/lumen_lib/config/__init__.py

from pathlib import Path
import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


# Import sub-configs
from .calibration import CalibrationConfig
from .aggregation import AggregationConfig
from .counterfactual import CounterfactualConfig
from .retrieval import RetrievalConfig
from .importance import ImportanceConfig
from .tables import DomainTables
from .system import SystemConfig


# Define Project Root
PROJECT_ROOT = Path(__file__).resolve().parents[3]


class Settings(BaseSettings):
    # Composition: Grouping configs by component
    calibration: CalibrationConfig = CalibrationConfig()
    aggregation: AggregationConfig = AggregationConfig()
    counterfactual: CounterfactualConfig = CounterfactualConfig()
    retrieval: RetrievalConfig = RetrievalConfig()
    importance: ImportanceConfig = ImportanceConfig()
    tables: DomainTables = DomainTables()
    system: SystemConfig = SystemConfig()

    model_config = SettingsConfigDict(
        env_prefix="LUMEN_",
        env_nested_delimiter="__",
        extra="ignore",
        frozen=True,
    )

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Loads overrides from a YAML document; missing sections keep defaults."""
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}
        return cls.model_validate(raw)


# Singleton Instance (frozen, safe to share)
try:
    settings = Settings()
except Exception as e:
    print(f"CRITICAL: Config load failed. Details: {e}")
    raise e


__all__ = [
    "Settings",
    "settings",
    "CalibrationConfig",
    "AggregationConfig",
    "CounterfactualConfig",
    "RetrievalConfig",
    "ImportanceConfig",
    "DomainTables",
    "SystemConfig",
]
