"""
Request/response shaping for the Targon provider.

Pure helpers kept out of the adapter so they can be tested without HTTP:
- Metrics and summary serialization (final fragment of every stream)
- System prompt conciseness rewriting
- Content extraction from loosely-shaped stream chunks
"""

import json
import logging
import time
from typing import Any, Callable, Optional

from targon_provider.adapters.schema import ApiMetrics, ApiResponse

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────
# METRICS & SUMMARY
# ─────────────────────────────────────────────────────────────────────

def get_api_metrics(start_time: float, tokens_in: int, tokens_out: int) -> ApiMetrics:
    """
    Build the metrics record for a finished call.

    Args:
        start_time: time.time() captured when the request was started
        tokens_in: Prompt tokens reported by the provider (0 if never reported)
        tokens_out: Completion tokens reported by the provider
    """
    time_total = int((time.time() - start_time) * 1000)
    return ApiMetrics(
        tokens_in=tokens_in,
        tokens_out=tokens_out,
        tokens_total=tokens_in + tokens_out,
        time_total=time_total,
    )


def format_response(response: ApiResponse) -> str:
    """Serialize a response summary to the JSON text emitted as the last fragment."""
    return json.dumps({
        "id": response.id,
        "model": response.model,
        "created": response.created,
        "content": response.content,
        "tokensIn": response.metrics.tokens_in,
        "tokensOut": response.metrics.tokens_out,
        "tokensTotal": response.metrics.tokens_total,
        "timeTotal": response.metrics.time_total,
    })


# ─────────────────────────────────────────────────────────────────────
# PROMPT REWRITING
# ─────────────────────────────────────────────────────────────────────

CONCISE_KEYWORDS: tuple[str, ...] = ("concise", "brief", "short")

CONCISE_SUFFIX: str = (
    "\n\nIMPORTANT: Keep your responses concise and to the point. "
    "Do not explain your reasoning unless asked. "
    "Avoid preamble, repetition and closing summaries."
)


def make_prompt_concise(system_prompt: str) -> str:
    """
    Append the conciseness instruction unless the prompt already asks for it.

    A prompt mentioning "concise", "brief" or "short" (any case) is returned
    unchanged.
    """
    lowered = system_prompt.lower()
    if any(keyword in lowered for keyword in CONCISE_KEYWORDS):
        logger.debug("System prompt already requests brevity, leaving unchanged")
        return system_prompt
    logger.debug("Appending conciseness instruction to system prompt")
    return system_prompt + CONCISE_SUFFIX


# ─────────────────────────────────────────────────────────────────────
# CHUNK CONTENT EXTRACTION
# ─────────────────────────────────────────────────────────────────────

def _first_choice(chunk: Any) -> dict:
    if not isinstance(chunk, dict):
        return {}
    choices = chunk.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return {}
    return choices[0]


def _delta_content(chunk: Any) -> Optional[str]:
    delta = _first_choice(chunk).get("delta") or {}
    return delta.get("content") if isinstance(delta, dict) else None


def _message_content(chunk: Any) -> Optional[str]:
    message = _first_choice(chunk).get("message") or {}
    return message.get("content") if isinstance(message, dict) else None


def _bare_string(chunk: Any) -> Optional[str]:
    return chunk if isinstance(chunk, str) else None


# Tried in order, first non-empty string wins. Provisional: Targon does not
# document its chunk schema, narrow this once it is confirmed to be plain
# OpenAI deltas.
CONTENT_EXTRACTORS: list[Callable[[Any], Optional[str]]] = [
    _delta_content,
    _message_content,
    _bare_string,
]


def extract_content(chunk: Any) -> str:
    """Return the text carried by a stream chunk, or "" if it has none."""
    for extractor in CONTENT_EXTRACTORS:
        content = extractor(chunk)
        if isinstance(content, str) and content:
            return content
    return ""
