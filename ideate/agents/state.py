"""Pipeline state — the per-request goal and plan, and the LangGraph state
for the drawing refinement loop."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from typing_extensions import TypedDict

if TYPE_CHECKING:
    from ideate.codec import DrawingDocument


@dataclass(frozen=True)
class Goal:
    """The user's request. Created once per request, never mutated."""

    text: str
    image: bytes = b""
    drawing: DrawingDocument | None = None
    current_code: str = ""
    markdown: str = ""


@dataclass(frozen=True)
class Plan:
    """Plan narrative plus the iteration bound for the refinement loop."""

    narrative: str
    remaining_steps: int


class RefineState(TypedDict, total=False):
    """State passed through every step of the loop.

    goal_text     — the user's original request, unchanged across steps.
    image_url     — data URL of the canvas captured at request time, or None.
    plan          — current plan narrative; replaced by each step.
    step          — number of completed steps.
    total_steps   — iteration bound, fixed when the plan is made.
    artifact      — current drawing document as JSON text.
    document      — wire form of the document produced by the last step.
    message       — message to the user from the last step.
    failed        — True once a step fails; ends the loop.
    error         — description of the failure.
    """

    goal_text: str
    image_url: str | None
    plan: str
    step: int
    total_steps: int
    artifact: str
    document: dict[str, Any] | None
    message: str | None
    failed: bool
    error: str | None
