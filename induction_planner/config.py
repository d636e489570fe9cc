"""
Configuration for the Induction Planner.

Settings are read from environment variables (a local .env file is honoured)
and default scheduling constraints from a YAML file next to the services.
"""
import os
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel

from induction_planner.errors import ConfigurationMissing

# Load environment variables from .env file
load_dotenv()

SERVICES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "services")
DEFAULTS_FILE = "scheduling_defaults.yaml"

DEFAULT_MODEL_ENDPOINT = "https://api.deepseek.com/chat/completions"
DEFAULT_MODEL_NAME = "deepseek-chat"


def load_yaml_config(filename: str, required_key: str = None) -> dict:
    """Load a YAML configuration file with error handling."""
    filepath = os.path.join(SERVICES_DIR, filename)
    try:
        with open(filepath, 'r', encoding='utf-8') as file:
            config = yaml.safe_load(file)
            if config is None:
                raise ValueError(f"Empty configuration file: {filename}")
            if required_key and required_key not in config:
                raise ValueError(f"Missing required key '{required_key}' in {filename}")
            return config[required_key] if required_key else config
    except FileNotFoundError:
        raise ValueError(f"Configuration file not found: {filename}")
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {filename}: {str(e)}")


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _env_number(name: str, default: str, cast):
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationMissing(f"Invalid value for {name}: {raw!r}")


def _database_url() -> str:
    db_user = os.getenv("DB_USER", "postgres")
    db_password = os.getenv("DB_PASSWORD", "postgres")
    db_host = os.getenv("DB_HOST", "db")
    db_port = os.getenv("DB_PORT", "5432")
    db_name = os.getenv("DB_NAME", "induction_planner")
    return os.getenv(
        "DATABASE_URL",
        f"postgresql+asyncpg://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}",
    )


class Settings(BaseModel):
    """Runtime settings for one planner process."""
    database_url: str
    model_enabled: bool = True
    model_api_key: Optional[str] = None
    model_endpoint: Optional[str] = DEFAULT_MODEL_ENDPOINT
    model_name: str = DEFAULT_MODEL_NAME
    model_timeout_seconds: float = 30.0
    fallback_seed: int = 0
    max_concurrent_writes: int = 4

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=_database_url(),
            model_enabled=_env_flag("MODEL_ENABLED", "1"),
            model_api_key=os.getenv("MODEL_API_KEY") or os.getenv("DEEPSEEK_API_KEY"),
            model_endpoint=os.getenv("MODEL_ENDPOINT", DEFAULT_MODEL_ENDPOINT),
            model_name=os.getenv("MODEL_NAME", DEFAULT_MODEL_NAME),
            model_timeout_seconds=_env_number("MODEL_TIMEOUT_SECONDS", "30", float),
            fallback_seed=_env_number("FALLBACK_SEED", "0", int),
            max_concurrent_writes=_env_number("MAX_CONCURRENT_WRITES", "4", int),
        )


def load_default_constraints() -> dict:
    """Default SchedulingConstraints values used when a request omits them."""
    return load_yaml_config(DEFAULTS_FILE, "constraints")
