"""
Configuration for FSA Feedback
Evaluation defaults come from config/evaluation.yaml; service settings
come from environment variables.
"""

import os
from typing import List, Optional

import structlog
import yaml
from pydantic import BaseModel, Field

from .models import EvaluationConfig

log = structlog.get_logger(__name__)

CONFIG_FILENAME = "evaluation.yaml"


def _candidate_paths() -> List[str]:
    here = os.path.dirname(__file__)
    return [
        os.path.join(here, '..', 'config', CONFIG_FILENAME),
        os.path.join(here, '..', '..', 'config', CONFIG_FILENAME),
        os.path.join(os.getcwd(), 'config', CONFIG_FILENAME),
    ]


def find_config_file() -> Optional[str]:
    for path in _candidate_paths():
        abs_path = os.path.abspath(path)
        if os.path.exists(abs_path):
            return abs_path
    return None


def load_evaluation_config(config_path: Optional[str] = None) -> EvaluationConfig:
    """
    Load evaluation defaults from YAML.

    An explicit path must exist; without one the usual locations are
    searched and defaults are used when none has the file.
    """
    if config_path is None:
        config_path = find_config_file()
        if config_path is None:
            log.debug("evaluation_config_defaults")
            return EvaluationConfig()
    elif not os.path.exists(config_path):
        raise FileNotFoundError(f"Evaluation config not found: {config_path}")

    with open(config_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    # Accept either a bare mapping or one nested under "evaluation"
    section = data.get('evaluation', data) if isinstance(data, dict) else {}
    config = EvaluationConfig.from_mapping(section)
    log.info("evaluation_config_loaded", path=config_path, expected_type=config.expected_type.value)
    return config


class ServiceSettings(BaseModel):
    api_key: Optional[str] = None
    allowed_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"]
    )
    environment: str = "production"
    graphql_url: Optional[str] = None
    preview_debounce_ms: int = 500
    log_level: str = "INFO"
    log_dir: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "ServiceSettings":
        env = os.environ
        settings = cls(
            api_key=env.get("API_KEY"),  # Set to enable auth; unset = disabled
            environment=env.get("ENVIRONMENT", "production"),
            graphql_url=env.get("FSA_GRAPHQL_URL"),
            preview_debounce_ms=int(env.get("FSA_PREVIEW_DEBOUNCE_MS", "500")),
            log_level=env.get("LOG_LEVEL", "INFO"),
            log_dir=env.get("LOG_DIR"),
            host=env.get("API_HOST", "0.0.0.0"),
            port=int(env.get("API_PORT", "8000")),
        )
        origins = env.get("CORS_ALLOWED_ORIGINS")
        if origins:
            settings.allowed_origins = [o.strip() for o in origins.split(",") if o.strip()]
        # In development, allow all origins
        if settings.environment == "development":
            settings.allowed_origins = ["*"]
        return settings
