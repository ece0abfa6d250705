# packages/lumen_lib/config/base.py

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

# Define Project Root (4 levels up from this file)
# File: /lumen/packages/lumen_lib/config/base.py -> Root: /lumen
PROJECT_ROOT = Path(__file__).resolve().parents[3]


class EnvConfig(BaseSettings):
    """
    A base config that all other configs inherit from.
    Specifies the location of the .env file and freezes every instance,
    so a config object can be shared between concurrent requests.
    """

    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )
