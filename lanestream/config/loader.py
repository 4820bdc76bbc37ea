"""Load configuration from YAML and environment variables. No hardcoded secrets."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Default config lives next to this module
_DEFAULT_CONFIG_PATH = Path(__file__).parent / "default.yaml"


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


class ApiSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LANESTREAM_API_", extra="ignore")
    url: str = "http://localhost:8000/v1/chat/completions"
    password: str = ""
    timeout_seconds: float = 120.0


class SamplingSettings(BaseSettings):
    """Generation parameters sent with every request."""

    model_config = SettingsConfigDict(env_prefix="LANESTREAM_SAMPLING_", extra="ignore")
    max_tokens: int = 100
    temperature: float = 0.95
    top_k: int = 50
    top_p: float = 0.9
    pad_zero: bool = True
    alpha_presence: float = 1.0
    alpha_frequency: float = 1.0
    alpha_decay: float = 0.996
    chunk_size: int = 128


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LANESTREAM_LOG_", extra="ignore")
    level: str = "INFO"
    use_json: bool = True


class Config(BaseSettings):
    """Application config: YAML + env. Secrets from env only."""

    model_config = SettingsConfigDict(
        env_prefix="LANESTREAM_", env_nested_delimiter="__", extra="ignore"
    )

    api: ApiSettings = Field(default_factory=ApiSettings)
    sampling: SamplingSettings = Field(default_factory=SamplingSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> "Config":
        path = Path(config_path) if config_path else _DEFAULT_CONFIG_PATH
        yaml_data = _load_yaml(path)
        env_name = os.getenv("LANESTREAM_ENV", "")
        if env_name:
            yaml_data = _deep_merge(yaml_data, _load_yaml(Path(f"config/{env_name}.yaml")))
        api_url = os.getenv("LANESTREAM_API_URL")
        if api_url:
            yaml_data.setdefault("api", {})["url"] = api_url
        password = os.getenv("LANESTREAM_API_PASSWORD")
        if password:
            yaml_data.setdefault("api", {})["password"] = password
        return cls(**yaml_data)


def get_config(config_path: str | Path | None = None) -> Config:
    return Config.load(config_path)
