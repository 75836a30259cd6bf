"""Artifact codec — converts artifacts to and from their wire forms.

Drawing documents travel as Excalidraw JSON (``elements``/``appState``/
``files``), canvas snapshots as base64 PNG, code and markdown as plain strings.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from collections import Counter
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ideate.errors import MalformedArtifactError

logger = logging.getLogger(__name__)

SHAPE_TYPES = {"rectangle", "ellipse", "diamond", "freedraw"}


class DrawingDocument(BaseModel):
    """An Excalidraw scene. Unknown top-level keys are kept as-is."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    elements: list[dict[str, Any]] = []
    app_state: dict[str, Any] = Field(default_factory=dict, alias="appState")
    files: dict[str, Any] = {}

    @field_validator("elements")
    @classmethod
    def elements_have_type(cls, v: list[dict[str, Any]]) -> list[dict[str, Any]]:
        for i, element in enumerate(v):
            if not isinstance(element.get("type"), str):
                raise ValueError(f"element {i} has no 'type'")
        return v


# ---------------------------------------------------------------------------
# Drawing
# ---------------------------------------------------------------------------


def decode_drawing(wire: str | dict | None) -> DrawingDocument:
    """Parse a drawing from JSON text or an already-parsed dict.

    ``None`` or an empty string gives an empty document.
    """
    if wire is None or (isinstance(wire, str) and not wire.strip()):
        return DrawingDocument()

    if isinstance(wire, str):
        try:
            wire = json.loads(wire)
        except json.JSONDecodeError as e:
            raise MalformedArtifactError(f"Drawing is not valid JSON: {e}") from e

    if not isinstance(wire, dict):
        raise MalformedArtifactError(
            f"Drawing must be a JSON object, got {type(wire).__name__}"
        )

    try:
        return DrawingDocument.model_validate(wire)
    except ValidationError as e:
        raise MalformedArtifactError(f"Invalid drawing document: {e}") from e


def encode_drawing(doc: DrawingDocument) -> dict[str, Any]:
    """Wire form of a drawing, as sent in ``data-excalidraw-json`` events."""
    return doc.model_dump(by_alias=True)


def drawing_to_text(doc: DrawingDocument) -> str:
    """JSON text of a drawing, as passed to the model."""
    return json.dumps(encode_drawing(doc))


# ---------------------------------------------------------------------------
# Canvas snapshot image
# ---------------------------------------------------------------------------


def decode_image(wire: str | dict | list | None) -> bytes:
    """Decode a canvas snapshot.

    Accepts base64 text (optionally a ``data:`` URL). Older clients serialise
    a byte buffer as ``{"0": 137, "1": 80, ...}`` or a list of ints; both are
    rebuilt into bytes.
    """
    if wire is None:
        return b""

    if isinstance(wire, str):
        if wire.startswith("data:"):
            _, _, wire = wire.partition(",")
        try:
            return base64.b64decode(wire, validate=True)
        except (binascii.Error, ValueError) as e:
            raise MalformedArtifactError(f"Image is not valid base64: {e}") from e

    if isinstance(wire, dict):
        try:
            ordered = sorted(wire.items(), key=lambda kv: int(kv[0]))
            return bytes(v for _, v in ordered)
        except (TypeError, ValueError) as e:
            raise MalformedArtifactError(f"Image byte map is invalid: {e}") from e

    if isinstance(wire, list):
        try:
            return bytes(wire)
        except (TypeError, ValueError) as e:
            raise MalformedArtifactError(f"Image byte list is invalid: {e}") from e

    raise MalformedArtifactError(f"Unsupported image payload: {type(wire).__name__}")


def encode_image(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def image_data_url(data: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{encode_image(data)}"


# ---------------------------------------------------------------------------
# Text artifacts (code, markdown)
# ---------------------------------------------------------------------------


def decode_text(wire: Any, kind: str = "text") -> str:
    """Code and markdown travel as plain strings; ``None`` means empty."""
    if wire is None:
        return ""
    if not isinstance(wire, str):
        raise MalformedArtifactError(
            f"{kind} must be a string, got {type(wire).__name__}"
        )
    return wire


def encode_text(text: str) -> str:
    return text


# ---------------------------------------------------------------------------
# Canvas analysis
# ---------------------------------------------------------------------------


def summarize_drawing(doc: DrawingDocument) -> str:
    """One-line summary of what is on the canvas."""
    if not doc.elements:
        return "Empty canvas with no elements"

    counts = Counter(el["type"] for el in doc.elements)
    parts: list[str] = []

    if counts["text"]:
        texts = ", ".join(
            str(el.get("text", "")) for el in doc.elements if el["type"] == "text"
        )
        parts.append(f'{counts["text"]} text element(s): "{texts}"')
    if counts["rectangle"]:
        parts.append(f"{counts['rectangle']} rectangle(s)")
    if counts["ellipse"]:
        parts.append(f"{counts['ellipse']} ellipse(s)")
    if counts["diamond"]:
        parts.append(f"{counts['diamond']} diamond(s)")
    if counts["arrow"]:
        parts.append(f"{counts['arrow']} arrow(s)")
    if counts["line"]:
        parts.append(f"{counts['line']} line(s)")
    if counts["freedraw"]:
        parts.append(f"{counts['freedraw']} freehand drawing(s)")

    if not parts:
        return f"Canvas contains {len(doc.elements)} element(s)"
    return f"Canvas contains: {', '.join(parts)}"


def describe_drawing(doc: DrawingDocument) -> str:
    """Canvas analysis text given to the planner alongside the raw JSON."""
    types = {el["type"] for el in doc.elements}
    has_text = "text" in types
    has_shapes = bool(types & SHAPE_TYPES)
    has_arrows = "arrow" in types

    lines = [
        "Canvas Analysis:",
        f"- Summary: {summarize_drawing(doc)}",
        f"- Total elements: {len(doc.elements)}",
        f"- Contains text: {has_text}",
        f"- Contains shapes: {has_shapes}",
        f"- Contains arrows: {has_arrows}",
    ]

    if has_text:
        lines.append("")
        lines.append("Text Content:")
        texts = [el for el in doc.elements if el["type"] == "text"]
        for i, el in enumerate(texts, start=1):
            lines.append(f'{i}. "{el.get("text", "")}"')

    visual = [el for el in doc.elements if el["type"] != "text"]
    if visual:
        lines.append("")
        lines.append("Visual Elements:")
        for i, el in enumerate(visual, start=1):
            x = round(float(el.get("x", 0) or 0))
            y = round(float(el.get("y", 0) or 0))
            lines.append(f"{i}. {el['type']} at position ({x}, {y})")

    return "\n".join(lines)
