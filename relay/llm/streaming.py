"""
Streaming — Server-Sent-Event decoding with explicit text accumulation.

A streamed completion arrives as newline-delimited SSE lines:

    data: {"choices":[{"delta":{"content":"Hel"}}]}

    data: {"choices":[{"delta":{"content":"lo"}}]}

    data: [DONE]

StreamAccumulator turns those lines into one growing string and reports
every non-empty increment to a callback with the full text so far. The
provider-specific part (where the text fragment lives in each payload) is
the adapter's extract_stream_chunk_text.

Rules:
- blank lines and non-"data:" lines (event:, id:, comments) are ignored
- "[DONE]" ends the stream; anything after it is inert
- a payload that is not valid JSON, or whose extraction blows up, is
  logged and dropped without aborting the stream

Usage:
    acc = StreamAccumulator(adapter.extract_stream_chunk_text, on_update)
    async with client.stream("POST", url, json=body) as response:
        await acc.consume(response.aiter_lines())
    print(acc.text)
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Callable, Iterable, Optional

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class StreamAccumulator:
    """
    Accumulates incremental text from one streamed response.

    Not shared between requests: create one per streamed call.
    """

    def __init__(
        self,
        extract: Callable[[Any], str],
        on_update: Optional[Callable[[str], None]] = None,
        *,
        provider: str = "",
    ):
        self._extract = extract
        self._on_update = on_update
        self._provider = provider
        self._parts: list[str] = []

        self.done: bool = False
        self.chunk_count: int = 0
        self.dropped_frames: int = 0

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def feed_line(self, line: str) -> None:
        """Process one SSE line."""
        if self.done:
            return

        stripped = line.strip()
        if not stripped or not stripped.startswith(DATA_PREFIX):
            return

        payload = stripped[len(DATA_PREFIX):].strip()
        if payload == DONE_SENTINEL:
            self.done = True
            return

        try:
            event = json.loads(payload)
            fragment = self._extract(event)
        except Exception as e:
            self.dropped_frames += 1
            logger.warning(
                "llm_stream_frame_dropped",
                extra={"provider": self._provider, "error": str(e)[:200]},
            )
            return

        if not fragment:
            return

        self._parts.append(fragment)
        self.chunk_count += 1
        if self._on_update is not None:
            self._on_update(self.text)

    def feed_lines(self, lines: Iterable[str]) -> None:
        for line in lines:
            self.feed_line(line)

    async def consume(self, lines: AsyncIterator[str]) -> str:
        """
        Drain an async line iterator and return the accumulated text.

        Lines after the [DONE] sentinel are read but ignored, so the
        transport finishes normally rather than being cut off mid-body.
        """
        async for line in lines:
            self.feed_line(line)
        return self.text
