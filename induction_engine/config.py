# induction_engine/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from dotenv import load_dotenv
from typing import Optional
import logging
import os
import yaml
from pathlib import Path

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # MongoDB Configuration
    mongodb_url: str = Field(default="mongodb://localhost:27017/kmrl_db", env="MONGODB_URL")
    database_name: str = Field(default="kmrl_db", env="DATABASE_NAME")
    # "mongodb" for a live cluster, "memory" for the bundled in-memory fleet
    database_backend: str = Field(default="mongodb", env="DATABASE_BACKEND")

    # API Configuration
    api_host: str = Field(default="127.0.0.1", env="API_HOST")
    api_port: int = Field(default=8000, env="API_PORT")
    api_key: Optional[str] = Field(default=None, env="API_KEY")
    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    # Induction run defaults
    default_revenue_cap: Optional[int] = Field(default=None, env="DEFAULT_REVENUE_CAP")
    rule_set: str = Field(default="OPTION_B", env="RULE_SET")
    scoring_config_key: str = Field(default="default", env="SCORING_CONFIG_KEY")
    loader_timeout_seconds: float = Field(default=10.0, env="LOADER_TIMEOUT_SECONDS")
    evaluation_workers: Optional[int] = Field(default=None, env="EVALUATION_WORKERS")

    # Run history paging
    run_list_default_limit: int = Field(default=20, env="RUN_LIST_DEFAULT_LIMIT")
    run_list_max_limit: int = Field(default=100, env="RUN_LIST_MAX_LIMIT")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


load_dotenv(".env")

# Load defaults from YAML if available
_defaults_path = Path(__file__).parent / "config" / "defaults.yaml"
_defaults = {}
if _defaults_path.exists():
    try:
        with open(_defaults_path, "r") as f:
            _defaults = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load defaults.yaml: {e}")

settings = Settings()

# defaults.yaml only fills keys the environment left unset
_YAML_KEYS = {
    "DEFAULT_REVENUE_CAP": ("default_revenue_cap", int),
    "LOADER_TIMEOUT_SECONDS": ("loader_timeout_seconds", float),
    "EVALUATION_WORKERS": ("evaluation_workers", int),
    "RULE_SET": ("rule_set", str),
    "RUN_LIST_DEFAULT_LIMIT": ("run_list_default_limit", int),
    "RUN_LIST_MAX_LIMIT": ("run_list_max_limit", int),
}
for _key, (_attr, _cast) in _YAML_KEYS.items():
    if _key in _defaults and _defaults[_key] is not None and not os.getenv(_key):
        setattr(settings, _attr, _cast(_defaults[_key]))


def get_settings() -> Settings:
    return settings
