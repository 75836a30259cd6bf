"""Configuration loader — reads config.yaml, validates with Pydantic.

Agent definitions (model/prompt) are hardcoded in agents/registry.py;
config.yaml can override the model and token budget per agent.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, field_validator, model_validator

logger = logging.getLogger(__name__)

DEFAULT_APOLOGY = "Sorry, there was an error generating a response. Please try again."


class AgentOverride(BaseModel):
    """Per-agent settings that replace the registry defaults."""

    model: str | None = None
    max_tokens: int | None = None
    extra_instructions: str | None = None  # appended to the system prompt

    @field_validator("max_tokens")
    @classmethod
    def positive_tokens(cls, v: int | None) -> int | None:
        if v is not None and v <= 0:
            raise ValueError("max_tokens must be positive")
        return v


class GatewayConfig(BaseModel):
    """Settings applied to every outbound model call."""

    timeout: float = 120.0  # seconds per request
    max_retries: int = 0    # provider-level retries; the pipeline never retries

    @field_validator("timeout")
    @classmethod
    def positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator("max_retries")
    @classmethod
    def non_negative_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_retries cannot be negative")
        return v


class IdeateConfig(BaseModel):
    """Top-level service configuration."""

    gateway: GatewayConfig = GatewayConfig()
    agents: dict[str, AgentOverride] = {}

    # Pipeline behaviour
    unknown_mode: Literal["ignore", "reject"] = "ignore"
    code_streaming: bool = True
    apology_message: str = DEFAULT_APOLOGY

    # Auth & CORS
    api_key: str | None = None
    allowed_origins: list[str] = ["*"]

    @model_validator(mode="after")
    def validate_agent_names(self) -> IdeateConfig:
        from ideate.agents.registry import AGENT_REGISTRY

        for name in self.agents:
            if name not in AGENT_REGISTRY:
                raise ValueError(
                    f"Config overrides unknown agent '{name}'. "
                    f"Available: {sorted(AGENT_REGISTRY.keys())}"
                )
        return self

    def get_override(self, agent_name: str) -> AgentOverride | None:
        """Return the override for an agent, or None if not configured."""
        return self.agents.get(agent_name)

    def public_dump(self) -> dict:
        """Config as JSON-safe dict with secrets redacted."""
        data = self.model_dump()
        if data.get("api_key"):
            data["api_key"] = "***"
        return data


# ---------------------------------------------------------------------------
# Module-level config cache
# ---------------------------------------------------------------------------

_config: IdeateConfig | None = None
_config_path: str = "config.yaml"


def default_config_path() -> str:
    return os.environ.get("IDEATE_CONFIG", "config.yaml")


def load_config(path: str | None = None) -> IdeateConfig:
    """Read config.yaml from disk, validate, and cache."""
    global _config, _config_path
    _config_path = path or default_config_path()

    config_file = Path(_config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file.resolve()}")

    raw = yaml.safe_load(config_file.read_text()) or {}
    _config = IdeateConfig(**raw)

    logger.info(
        f"Loaded config: agents_overridden={sorted(_config.agents)}, "
        f"unknown_mode={_config.unknown_mode}, code_streaming={_config.code_streaming}"
    )
    return _config


def get_config() -> IdeateConfig:
    """Return cached config. Raises if not yet loaded."""
    if _config is None:
        raise RuntimeError("Config not loaded — call load_config() first")
    return _config


def reload_config() -> IdeateConfig:
    """Re-read config from disk. Called by /reload endpoint."""
    logger.info(f"Reloading config from {_config_path}")
    return load_config(_config_path)
