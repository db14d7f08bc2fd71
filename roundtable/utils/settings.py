from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from roundtable.errors import ConfigError

UNBOUNDED = -1


class LLMConfig(BaseModel):
    provider: Literal["openai", "echo"] = "openai"
    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    stream: bool = False


class AgentOptions(BaseModel):
    """Budgets and switches for one reasoning agent; ``-1`` disables a budget."""

    max_steps: int = 15
    usage_limit: int = 15
    time_to_live_ms: int = 60000
    use_reflection: bool = True
    validate_output: bool = False

    @field_validator("max_steps", "usage_limit", "time_to_live_ms")
    @classmethod
    def _budget(cls, value: int) -> int:
        if value != UNBOUNDED and value < 0:
            raise ValueError("budget must be -1 (unbounded) or >= 0")
        return value


class TeamSettings(BaseModel):
    max_rounds: int = 3
    require_all_agents: bool = False
    share_memory: bool = False

    @field_validator("max_rounds")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_rounds must be at least 1")
        return value


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: Literal["console", "json"] = "console"


class AppConfig(BaseModel):
    llm: LLMConfig = Field(default_factory=LLMConfig)
    agent: AgentOptions = Field(default_factory=AgentOptions)
    team: TeamSettings = Field(default_factory=TeamSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(env: str = "base", config_dir: str | Path = "configs") -> AppConfig:
    config_dir = Path(config_dir)
    base_path = config_dir / "base.yaml"
    if not base_path.exists():
        raise ConfigError(f"Missing base config at {base_path}")
    base = _read_yaml(base_path)
    if env != "base":
        override_path = config_dir / f"{env}.yaml"
        if override_path.exists():
            base = _merge_dicts(base, _read_yaml(override_path))
    return AppConfig(**base)


def _read_yaml(path: Path) -> Dict[str, Any]:
    return yaml.safe_load(path.read_text(encoding="utf-8")) or {}


def _merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merged[key] = _merge_dicts(base[key], value)
        else:
            merged[key] = value
    return merged
