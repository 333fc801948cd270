"""Response bodies and a recording transport for router tests."""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx


def openai_body(text: str = "Hello from OpenAI", *, tokens: bool = True) -> dict[str, Any]:
    body: dict[str, Any] = {"choices": [{"message": {"content": text}}]}
    if tokens:
        body["usage"] = {"prompt_tokens": 12, "completion_tokens": 8, "total_tokens": 20}
    return body


def claude_body(text: str = "Hello from Claude") -> dict[str, Any]:
    return {
        "content": [{"type": "text", "text": text}],
        "usage": {"input_tokens": 10, "output_tokens": 5},
    }


def sse(*events: Any, done: bool = True) -> bytes:
    """Encode events as an SSE body; strings are sent verbatim."""
    lines = []
    for event in events:
        payload = event if isinstance(event, str) else json.dumps(event)
        lines.append(f"data: {payload}\n\n")
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode()


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it saw."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    def hosts(self) -> list[str]:
        return [r.url.host for r in self.requests]

    def json_bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]
