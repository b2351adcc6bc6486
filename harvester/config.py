"""Configuration: logging setup, environment settings and harvest config files."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from harvester.models.harvest import HarvestConfig

# .env.local takes precedence; load_dotenv never overrides a value already set
load_dotenv(".env.local")
load_dotenv(".env")

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "format": '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
        },
    },
    "root": {"level": "INFO", "handlers": ["console"]},
}


class Settings(BaseModel):
    """CMS credentials and output location."""

    contentful_management_token: str = Field(default="", repr=False)
    contentful_space_id: str = ""
    contentful_environment: str = "master"
    harvest_output_dir: str = "output"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            contentful_management_token=os.getenv("CONTENTFUL_MANAGEMENT_TOKEN", ""),
            contentful_space_id=os.getenv("CONTENTFUL_SPACE_ID", ""),
            contentful_environment=os.getenv("CONTENTFUL_ENVIRONMENT", "master"),
            harvest_output_dir=os.getenv("HARVEST_OUTPUT_DIR", "output"),
        )


def load_settings(
    space_id: Optional[str] = None,
    environment: Optional[str] = None,
    output_dir: Optional[str] = None,
) -> Settings:
    """Environment settings with non-empty arguments taking precedence."""
    settings = Settings.from_env()
    overrides = {
        "contentful_space_id": space_id,
        "contentful_environment": environment,
        "harvest_output_dir": output_dir,
    }
    return settings.model_copy(update={key: value for key, value in overrides.items() if value})


def load_harvest_config(path: str | Path) -> HarvestConfig:
    """Read and validate a harvest config JSON file.

    Raises:
        FileNotFoundError: if *path* does not exist.
        pydantic.ValidationError: if the file does not describe a valid config.
    """
    config_path = Path(path)
    if not config_path.is_file():
        raise FileNotFoundError(f"Harvest config not found: {config_path.resolve()}")
    return HarvestConfig.model_validate_json(config_path.read_text(encoding="utf-8"))
