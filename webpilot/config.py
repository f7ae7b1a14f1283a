"""Configuration loading (config.yaml + environment)."""
import os
from pathlib import Path
from typing import Optional, Union

import yaml
from loguru import logger
from pydantic import BaseModel, Field


# Environment variables holding the API key for each provider, in lookup order.
API_KEY_ENV = {
    "openrouter": ["OPENROUTER_API_KEY", "OPENAI_API_KEY"],
    "openai": ["OPENAI_API_KEY"],
    "together": ["TOGETHER_API_KEY"],
    "anthropic": ["ANTHROPIC_API_KEY"],
}


class LLMConfig(BaseModel):
    provider: str = "openrouter"
    model: str = "tngtech/deepseek-r1t2-chimera:free"
    base_url: Optional[str] = None
    api_key: Optional[str] = Field(None, description="Injected from the environment, never from config.yaml")
    temperature: float = 0.2
    max_tokens: int = 2048
    request_timeout_seconds: float = 30.0


class BrowserConfig(BaseModel):
    user_data_dir: str = "user_data"
    headless: bool = False
    slow_mo_ms: int = 100
    navigation_timeout_ms: int = 30000
    action_timeout_ms: int = 10000
    idle_timeout_ms: int = 5000
    max_elements: int = 60
    max_text_chars: int = 3000


class AgentSettings(BaseModel):
    max_run_seconds: float = 720.0
    observation_max_chars: int = 4000


class PathsConfig(BaseModel):
    artifacts_dir: str = "run_artifacts"
    logs_dir: str = "logs"


class Settings(BaseModel):
    llm: LLMConfig = Field(default_factory=LLMConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    agent: AgentSettings = Field(default_factory=AgentSettings)
    paths: PathsConfig = Field(default_factory=PathsConfig)


def resolve_api_key(provider: str) -> Optional[str]:
    """Look up the API key for ``provider`` in the environment."""
    for name in API_KEY_ENV.get(provider, []):
        value = os.getenv(name)
        if value:
            return value
    return None


def resolve_base_url(provider: str) -> Optional[str]:
    """Base URL override from the environment, if the provider has one."""
    if provider == "openrouter":
        return os.getenv("OPENROUTER_BASE_URL") or None
    return None


def load_settings(path: Optional[Union[str, Path]] = "config.yaml") -> Settings:
    """
    Load settings from a YAML file and the environment.

    A missing file yields the defaults. ``llm.api_key`` is always taken from
    the environment; a key written into the YAML file is ignored.
    """
    data = {}
    if path is not None:
        path = Path(path)
        if path.exists():
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
            logger.info(f"Loaded config from {path}")
        else:
            logger.warning(f"Config file {path} not found, using defaults")

    llm_section = data.get("llm") or {}
    if "api_key" in llm_section:
        logger.warning("Ignoring llm.api_key in config file; set it in the environment instead")
        llm_section.pop("api_key")

    settings = Settings(**data)
    settings.llm.api_key = resolve_api_key(settings.llm.provider)

    if not settings.llm.base_url:
        settings.llm.base_url = resolve_base_url(settings.llm.provider)

    return settings
