"""Stream multiplexer — orders pipeline output into one event stream.

A pipeline writes through the multiplexer (``open``/``text_delta``/
``text_end``/``artifact_update``); ``run`` executes the pipeline as a task
and yields the events in emission order for the HTTP response.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from ideate.errors import StreamProtocolError
from ideate.schemas import DataEvent, StreamEvent, TextDelta, TextEnd, TextStart

logger = logging.getLogger(__name__)

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
    "x-vercel-ai-ui-message-stream": "v1",
}

_DONE = object()


class StreamMultiplexer:
    """Sequencing wrapper enforcing the text block protocol.

    At most one text block is open at a time; deltas, artifact updates and
    the closing event must reference it.
    """

    def __init__(self, fallback_message: str | None = None):
        self.fallback_message = fallback_message
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._open_id: str | None = None

    @property
    def open_id(self) -> str | None:
        return self._open_id

    def _check_open(self, id: str) -> None:
        if self._open_id is None:
            raise StreamProtocolError(f"No open text block (got id '{id}')")
        if id != self._open_id:
            raise StreamProtocolError(
                f"Text block '{id}' is not the open block '{self._open_id}'"
            )

    def open(self) -> str:
        if self._open_id is not None:
            raise StreamProtocolError(f"Text block '{self._open_id}' is still open")
        self._open_id = str(uuid.uuid4())
        self._queue.put_nowait(TextStart(id=self._open_id))
        return self._open_id

    def text_delta(self, id: str, delta: str) -> None:
        self._check_open(id)
        self._queue.put_nowait(TextDelta(id=id, delta=delta))

    def text_end(self, id: str) -> None:
        self._check_open(id)
        self._open_id = None
        self._queue.put_nowait(TextEnd(id=id))

    def artifact_update(self, tag: str, data: Any) -> None:
        """Push the full latest artifact as a transient ``data-<tag>`` event."""
        if self._open_id is None:
            raise StreamProtocolError("Artifact update outside of a text block")
        self._queue.put_nowait(DataEvent(type=f"data-{tag}", data=data, transient=True))

    async def _execute(self, execute: Callable[[StreamMultiplexer], Awaitable[None]]) -> None:
        try:
            await execute(self)
        except Exception as e:
            logger.error(f"Pipeline error: {e}", exc_info=True)
            if self.open_id is not None:
                if self.fallback_message:
                    self.text_delta(self.open_id, self.fallback_message)
                self.text_end(self.open_id)
        finally:
            if self.open_id is not None:
                logger.warning(f"Pipeline left text block '{self.open_id}' open, closing")
                self.text_end(self.open_id)
            self._queue.put_nowait(_DONE)

    async def run(
        self, execute: Callable[[StreamMultiplexer], Awaitable[None]]
    ) -> AsyncIterator[StreamEvent]:
        """Run ``execute(self)`` as one task and yield its events in order.

        If the consumer stops early the task is left to finish on its own;
        its remaining events are discarded.
        """
        task = asyncio.create_task(self._execute(execute))
        while True:
            event = await self._queue.get()
            if event is _DONE:
                break
            yield event
        await task


def encode_sse(event: StreamEvent) -> str:
    """One Server-Sent Events frame for an event."""
    return f"data: {json.dumps(event.model_dump())}\n\n"


SSE_DONE = "data: [DONE]\n\n"
