"""Shared test fixtures for targon-provider tests."""

import json

import httpx
import pytest


# ─────────────────────────────────────────────────────────────────────
# MOCK DATA
# ─────────────────────────────────────────────────────────────────────

MOCK_API_KEY = "test-key-123"
MOCK_BASE_URL = "https://api.targon.com/v1"
MOCK_COMPLETIONS_URL = f"{MOCK_BASE_URL}/chat/completions"

MOCK_MODEL_ID = "deepseek-ai/DeepSeek-R1"


def sse_event(payload) -> str:
    """Encode one payload as an SSE data line."""
    return f"data: {json.dumps(payload)}\n\n"


def content_chunk(content: str) -> dict:
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion.chunk",
        "choices": [{"index": 0, "delta": {"content": content}, "finish_reason": None}],
    }


def usage_chunk(prompt_tokens: int, completion_tokens: int) -> dict:
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion.chunk",
        "choices": [],
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        },
    }


def tool_call_chunk(arguments: str, name: str | None = None, index: int = 0) -> dict:
    function = {"arguments": arguments}
    if name:
        function["name"] = name
    return {
        "choices": [{
            "index": 0,
            "delta": {"tool_calls": [{"index": index, "type": "function", "function": function}]},
        }],
    }


def sse_stream(*payloads) -> str:
    """Build SSE stream response ending in [DONE]."""
    return "".join(sse_event(p) for p in payloads) + "data: [DONE]\n\n"


def error_chunk(message: str, code=None) -> dict:
    """In-stream provider error payload."""
    error = {"message": message}
    if code is not None:
        error["code"] = code
    return {"error": error}


class BrokenSSEStream(httpx.AsyncByteStream):
    """Response body that delivers some SSE events, then drops the connection."""

    def __init__(self, *payloads):
        self._body = "".join(sse_event(p) for p in payloads).encode()

    async def __aiter__(self):
        yield self._body
        raise httpx.ReadError("connection reset by peer")


# ─────────────────────────────────────────────────────────────────────
# FIXTURES
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer TARGON_* settings out of tests."""
    for key in (
        "TARGON_API_KEY",
        "TARGON_MODEL_ID",
        "TARGON_BASE_URL",
        "TARGON_TIMEOUT_SECONDS",
        "TARGON_RETRY_ATTEMPTS",
        "TARGON_RETRY_MIN_WAIT",
        "TARGON_RETRY_MAX_WAIT",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def default_formatters():
    """Reset the tool formatter registry around each test."""
    from targon_provider.tool_formatters import reset_formatters

    reset_formatters()
    yield
    reset_formatters()


@pytest.fixture
def adapter():
    from targon_provider.adapters.targon import TargonAdapter

    return TargonAdapter(api_key=MOCK_API_KEY, model_id=MOCK_MODEL_ID)


@pytest.fixture
def user_messages():
    return [{"role": "user", "content": "Hi"}]
