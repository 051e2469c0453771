from __future__ import annotations

import json
import os
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import structlog
from pydantic import BaseModel, Field, ValidationError


logger = structlog.get_logger(__name__)

CONFIG_ENV = "VOTO_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".voto-informado.json"


class ConfigError(ValueError):
    pass


class Provider(str, Enum):
    OLLAMA = "ollama"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


class OllamaSettings(BaseModel):
    base_url: str = "http://localhost:11434"
    model: str = "llama3.2"


class ApiKeySettings(BaseModel):
    api_key: Optional[str] = None
    model: str


class LLMConfig(BaseModel):
    provider: Optional[Provider] = None
    ollama: OllamaSettings = Field(default_factory=OllamaSettings)
    openai: ApiKeySettings = Field(default_factory=lambda: ApiKeySettings(model="gpt-4o-mini"))
    anthropic: ApiKeySettings = Field(default_factory=lambda: ApiKeySettings(model="claude-3-5-sonnet-20241022"))
    gemini: ApiKeySettings = Field(default_factory=lambda: ApiKeySettings(model="gemini-1.5-flash"))

    def hosted(self, provider: Provider) -> ApiKeySettings:
        if provider is Provider.OLLAMA:
            raise ConfigError("Ollama is a local provider and has no API key settings.")
        return getattr(self, provider.value)


# Read at the point of use when the saved key is empty, never persisted
API_KEY_ENV = {
    Provider.OPENAI: "OPENAI_API_KEY",
    Provider.ANTHROPIC: "ANTHROPIC_API_KEY",
    Provider.GEMINI: "GEMINI_API_KEY",
}


def config_path(path: Union[str, Path, None] = None) -> Path:
    if path:
        return Path(path)
    env = os.environ.get(CONFIG_ENV)
    return Path(env) if env else DEFAULT_CONFIG_PATH


def resolve_api_key(config: LLMConfig, provider: Provider) -> Optional[str]:
    return config.hosted(provider).api_key or os.environ.get(API_KEY_ENV[provider]) or None


def load_config(path: Union[str, Path, None] = None) -> LLMConfig:
    p = config_path(path)
    if not p.exists():
        return LLMConfig()
    try:
        saved = json.loads(p.read_text(encoding="utf-8"))
        if not isinstance(saved, dict):
            raise ConfigError(f"Invalid LLM configuration in {p}: expected a JSON object. Run 'voto config' to recreate it.")
        merged = LLMConfig().model_dump(mode="json")
        for key, value in saved.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key].update(value)
            else:
                merged[key] = value
        config = LLMConfig.model_validate(merged)
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ConfigError(f"Invalid LLM configuration in {p}: {exc}. Run 'voto config' to recreate it.") from exc
    return config


def save_config(config: LLMConfig, path: Union[str, Path, None] = None) -> Path:
    p = config_path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(config.model_dump(mode="json"), ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info("config_saved", path=str(p), provider=config.provider.value if config.provider else None)
    return p
