"""Agent registry — hardcoded agent definitions.

The only place where models and system prompts are defined.
config.yaml can override the model and token budget per agent by name.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ideate.agents import prompts

if TYPE_CHECKING:
    from ideate.config import AgentOverride

PLANNER = "excalidraw_planner"
GENERATOR = "excalidraw_generator"
CODER = "coder"
MARKDOWN = "markdown"


@dataclass
class AgentDefinition:
    name: str
    description: str
    model: str
    prompt: str
    max_tokens: int = 8192


AGENT_REGISTRY: dict[str, AgentDefinition] = {
    PLANNER: AgentDefinition(
        name=PLANNER,
        description="Breaks a drawing request into a bounded number of steps.",
        model="claude-sonnet-4-20250514",
        prompt=prompts.PLANNER_PROMPT,
        max_tokens=4096,
    ),
    GENERATOR: AgentDefinition(
        name=GENERATOR,
        description="Applies one step of the plan to the Excalidraw document.",
        model="claude-sonnet-4-20250514",
        prompt=prompts.GENERATOR_PROMPT,
    ),
    CODER: AgentDefinition(
        name=CODER,
        description="Writes or edits Python code for the in-browser IDE.",
        model="claude-sonnet-4-20250514",
        prompt=prompts.CODER_PROMPT,
    ),
    MARKDOWN: AgentDefinition(
        name=MARKDOWN,
        description="Writes or rewrites markdown notes.",
        model="claude-sonnet-4-20250514",
        prompt=prompts.MARKDOWN_PROMPT,
    ),
}


@dataclass
class ResolvedAgent:
    name: str
    description: str
    model: str
    prompt: str
    max_tokens: int


def resolve_agent(name: str) -> AgentDefinition:
    """Look up an agent by name. Raises ValueError if not found."""
    if name not in AGENT_REGISTRY:
        raise ValueError(
            f"Unknown agent '{name}'. "
            f"Available agents: {list(AGENT_REGISTRY.keys())}"
        )
    return AGENT_REGISTRY[name]


def merge_agent(name: str, override: AgentOverride | None = None) -> ResolvedAgent:
    """Merge an agent definition with its config override, if any."""
    definition = resolve_agent(name)
    prompt = definition.prompt
    if override and override.extra_instructions:
        prompt = f"{prompt}\n\n{override.extra_instructions}"
    return ResolvedAgent(
        name=definition.name,
        description=definition.description,
        model=(override and override.model) or definition.model,
        prompt=prompt,
        max_tokens=(override and override.max_tokens) or definition.max_tokens,
    )
