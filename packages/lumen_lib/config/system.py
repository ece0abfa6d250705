from pydantic import Field
from .base import EnvConfig


class SystemConfig(EnvConfig):
    """
    General system-wide configuration.
    """

    # Maps to LUMEN_ENV in .env
    environment: str = Field(validation_alias="LUMEN_ENV", default="production")

    debug: bool = Field(validation_alias="DEBUG", default=False)
    project_name: str = "Lumen"
    version: str = "0.1.0"
