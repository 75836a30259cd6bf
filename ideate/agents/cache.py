"""Model client cache — one ChatAnthropic client per agent.

Keyed by agent name; an entry is rebuilt when the resolved agent settings
or gateway settings change.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from typing import TYPE_CHECKING

from langchain_anthropic import ChatAnthropic

if TYPE_CHECKING:
    from ideate.agents.registry import ResolvedAgent
    from ideate.config import GatewayConfig

logger = logging.getLogger(__name__)

# Cache: {agent_name: (settings_hash, client)}
_cache: dict[str, tuple[str, ChatAnthropic]] = {}


def _hash_settings(agent: ResolvedAgent, gateway: GatewayConfig) -> str:
    """Hash the agent and gateway settings for change detection."""
    data = {
        "model": agent.model,
        "max_tokens": agent.max_tokens,
        "gateway": gateway.model_dump(),
    }
    settings_json = json.dumps(data, sort_keys=True)
    return hashlib.sha256(settings_json.encode()).hexdigest()[:16]


def _build_client(agent: ResolvedAgent, gateway: GatewayConfig) -> ChatAnthropic:
    api_key = os.environ.get("ANTHROPIC_API_KEY")
    if not api_key:
        raise RuntimeError("ANTHROPIC_API_KEY environment variable is not set")
    return ChatAnthropic(
        model=agent.model,
        max_tokens=agent.max_tokens,
        api_key=api_key,
        timeout=gateway.timeout,
        max_retries=gateway.max_retries,
    )


def get_or_build(agent: ResolvedAgent, gateway: GatewayConfig) -> ChatAnthropic:
    """Return the cached client for this agent, or build a new one."""
    settings_hash = _hash_settings(agent, gateway)

    if agent.name in _cache:
        cached_hash, cached_client = _cache[agent.name]
        if cached_hash == settings_hash:
            logger.debug(f"Client cache hit: {agent.name}")
            return cached_client

    logger.info(f"Building client for agent '{agent.name}' (model={agent.model})")
    client = _build_client(agent, gateway)
    _cache[agent.name] = (settings_hash, client)
    return client


def invalidate(agent_name: str | None = None) -> None:
    """Clear the cache. If agent_name given, only clear that agent."""
    if agent_name:
        _cache.pop(agent_name, None)
        logger.info(f"Client cache invalidated: {agent_name}")
    else:
        _cache.clear()
        logger.info("Client cache invalidated: all agents")
