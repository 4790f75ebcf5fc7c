"""Root pytest configuration and fixtures.

This module provides:
- Environment setup (loads .env)
- A scripted httpx transport for provider adapters
- Environment isolation for provider keys and lattice settings
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from typing import Any

import httpx
import pytest
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


# =============================================================================
# Scripted HTTP Transport
# =============================================================================


def sse_body(events: Iterable[dict[str, Any] | str], done: bool = True) -> bytes:
    """Encode events as a server-sent event stream.

    Dict events become ``data: {json}`` records. Strings are written
    verbatim, which lets tests inject malformed lines or ``event:`` lines.
    """
    lines: list[str] = []
    for event in events:
        if isinstance(event, str):
            lines.append(event)
        else:
            lines.append(f"data: {json.dumps(event)}")
        lines.append("")
    if done:
        lines.extend(["data: [DONE]", ""])
    return "\n".join(lines).encode()


def sse_response(events: Iterable[dict[str, Any] | str], done: bool = True) -> httpx.Response:
    return httpx.Response(
        200,
        content=sse_body(events, done=done),
        headers={"content-type": "text/event-stream"},
    )


class ScriptedTransport:
    """Replays canned responses in order and records every request.

    Attributes:
        requests: Requests received, in order.
        transport: The httpx transport to hand to an adapter.
    """

    def __init__(self, responses: Iterable[httpx.Response | Exception]):
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._responses:
            return httpx.Response(500, json={"error": {"message": "unexpected request"}})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def payload(self, index: int = 0) -> dict[str, Any]:
        """Decoded JSON body of the request at ``index``."""
        return json.loads(self.requests[index].content)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def scripted() -> Callable[..., ScriptedTransport]:
    """Factory fixture building a ScriptedTransport from responses.

    Returns:
        Callable taking responses (or exceptions) in the order served.
    """

    def _build(*responses: httpx.Response | Exception) -> ScriptedTransport:
        return ScriptedTransport(responses)

    return _build


@pytest.fixture
def mock_api_key() -> str:
    """Provide a mock API key for testing.

    Returns:
        A test API key string.
    """
    return "test-api-key-12345"


@pytest.fixture
def clean_provider_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove provider keys and lattice settings from the environment."""
    for name in (
        "OPENAI_API_KEY",
        "ANTHROPIC_API_KEY",
        "GEMINI_API_KEY",
        "DEEPSEEK_API_KEY",
        "LATTICE_PROVIDER",
        "LATTICE_MODEL",
        "LATTICE_TEMPERATURE",
        "LATTICE_MAX_TOKENS",
        "LATTICE_REQUEST_TIMEOUT",
        "LATTICE_CONFIG_DIR",
        "LATTICE_SECRET_KEY",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def sse() -> Callable[..., httpx.Response]:
    """Build a streaming 200 response from a list of events.

    Returns:
        Callable taking events and an optional ``done`` flag.
    """
    return sse_response
