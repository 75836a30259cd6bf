"""Error taxonomy for the orchestration pipeline."""

from __future__ import annotations


class IdeateError(Exception):
    """Base class for all pipeline errors."""


class GenerationError(IdeateError):
    """A model call through the agent gateway failed.

    Covers network and provider errors as well as payloads that do not
    validate against the requested output schema.
    """

    def __init__(self, agent: str, message: str):
        self.agent = agent
        super().__init__(f"Agent '{agent}' failed: {message}")


class MalformedArtifactError(IdeateError):
    """An artifact payload could not be decoded into domain data."""


class UnknownModeError(IdeateError):
    """The request type is not one of the supported pipelines."""

    def __init__(self, mode: str | None, available: list[str]):
        self.mode = mode
        super().__init__(f"Unknown request type '{mode}'. Available: {available}")


class StreamProtocolError(IdeateError):
    """An event was emitted out of order (e.g. a delta with no open message)."""


class InvalidRequestError(IdeateError):
    """A request for a known pipeline is missing something it needs."""
