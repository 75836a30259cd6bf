"""Request/response models — the contract between the service, its clients
and the agents."""

from __future__ import annotations

import math
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Inbound request
# ---------------------------------------------------------------------------


class PromptPayload(BaseModel):
    text: str


class ChatRequest(BaseModel):
    """Body of POST /api/chat.

    ``type`` selects the pipeline. Missing or non-string values become
    ``None`` so they reach the router as an unknown type instead of failing
    request validation. ``prompt`` is required by the pipelines, not here.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: str | None = None
    prompt: PromptPayload | None = None

    # visual
    image_bytes: str | dict[str, int] | list[int] | None = Field(default=None, alias="imageBytes")
    drawing_json: str | dict[str, Any] | None = Field(default=None, alias="drawingJSON")
    # code
    current_code: str | None = Field(default=None, alias="currentCode")
    # markdown
    markdown_data: str | None = Field(default=None, alias="markdownData")

    @field_validator("type", mode="before")
    @classmethod
    def unknown_unless_string(cls, v: Any) -> Any:
        return v if isinstance(v, str) else None

    @field_validator("prompt", mode="before")
    @classmethod
    def accept_bare_prompt(cls, v: Any) -> Any:
        if isinstance(v, str):
            return {"text": v}
        return v


# ---------------------------------------------------------------------------
# Outbound stream events
# ---------------------------------------------------------------------------


class TextStart(BaseModel):
    type: Literal["text-start"] = "text-start"
    id: str


class TextDelta(BaseModel):
    type: Literal["text-delta"] = "text-delta"
    id: str
    delta: str


class TextEnd(BaseModel):
    type: Literal["text-end"] = "text-end"
    id: str


class DataEvent(BaseModel):
    """Artifact update. ``transient`` events replace the client's live view
    and are not kept in conversation history."""

    type: str  # "data-<tag>", e.g. "data-excalidraw-json", "data-code"
    data: Any
    transient: bool = True

    @field_validator("type")
    @classmethod
    def must_be_data_tag(cls, v: str) -> str:
        if not v.startswith("data-"):
            raise ValueError("data event type must start with 'data-'")
        return v


StreamEvent = TextStart | TextDelta | TextEnd | DataEvent


# ---------------------------------------------------------------------------
# Agent output models
# ---------------------------------------------------------------------------


class _AgentOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PlannerResult(_AgentOutput):
    """A drawing plan and the number of steps needed to carry it out."""

    drawing_plan: str = Field(alias="drawingPlan", description="Markdown todo list of drawing steps")
    step_count: int = Field(alias="stepCount", description="Number of steps in the plan")

    @field_validator("step_count", mode="before")
    @classmethod
    def floor_fractional_count(cls, v: Any) -> Any:
        # 3.5 means three whole steps
        if isinstance(v, float) and math.isfinite(v):
            return math.floor(v)
        return v


class DrawingStepResult(_AgentOutput):
    """The canvas after completing the next step of the plan."""

    drawing_json: str = Field(alias="drawingJSON", description="Complete updated Excalidraw document as JSON text")
    message_to_user: str = Field(alias="messageToUser", description="Short note on what was drawn")
    updated_drawing_plan: str = Field(alias="updatedDrawingPlan", description="The plan with completed steps checked off")


class CodeResult(_AgentOutput):
    """Generated code and an explanation for the user."""

    code: str = Field(description="Complete contents of the code editor")
    message_to_user: str = Field(alias="messageToUser", description="Explanation of the code")


class MarkdownResult(_AgentOutput):
    """An updated markdown document and a note for the user."""

    markdown: str = Field(description="Complete updated markdown document")
    message_to_user: str = Field(alias="messageToUser", description="What was changed")
