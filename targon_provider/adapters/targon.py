"""
TargonAdapter - Targon implementation of ProviderAdapter.

Targon exposes an OpenAI-compatible chat-completions endpoint. The adapter
streams it over SSE and reshapes chunks into StreamFragments, ending every
successful call with one JSON summary fragment.

Retry ownership: this adapter retries exactly once, inline, on HTTP 503
(simplified request). Any broader retry/backoff lives above it in
targon_provider.retry and never sees 503s.
"""

import json
import logging
import re
import time
import uuid
from contextlib import aclosing
from typing import AsyncGenerator, Optional, Sequence, Union

import httpx

from targon_provider import config
from targon_provider.adapters.schema import (
    ApiResponse,
    Message,
    ModelDescriptor,
    RequestEnvelope,
    StreamFragment,
)
from targon_provider.tool_formatters import format_tool_call, tools_for_text
from targon_provider.transform import (
    extract_content,
    format_response,
    get_api_metrics,
    make_prompt_concise,
)

logger = logging.getLogger(__name__)


class TargonError(Exception):
    """Base class for Targon adapter errors."""
    pass


class TargonConfigError(TargonError):
    """Adapter is missing required configuration (API key)."""
    pass


class TargonAPIError(TargonError):
    """Targon API call failed. status_code is set when the HTTP status is known."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


# Remedy hints, matched against the error text in this order
ERROR_HINTS: dict[int, str] = {
    401: "Authentication failed. Check that your Targon API key is correct and has not been revoked.",
    403: "Access denied. Your API key may not have permission to use this model or endpoint.",
    404: "Not found. The selected model may not exist on Targon; check the model id.",
    429: "Rate limit exceeded. Wait a moment before retrying or reduce request frequency.",
    500: "Targon server error. This is a problem on the provider side; try again later.",
    502: "Bad gateway. Targon's upstream is temporarily unreachable; try again shortly.",
    503: "Service unavailable. Targon is overloaded or under maintenance; try again later or pick another model.",
}


def _status_code_of(error: BaseException) -> Optional[int]:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    if isinstance(error, TargonAPIError):
        return error.status_code
    return None


def _error_detail(error: BaseException) -> str:
    """Best-effort provider message for an error (body message for HTTP status errors)."""
    if isinstance(error, httpx.HTTPStatusError):
        body = error.response.content
        try:
            data = json.loads(body)
            err = data.get("error") if isinstance(data, dict) else None
            if isinstance(err, dict) and err.get("message"):
                return str(err["message"])
            if isinstance(err, str) and err:
                return err
        except (json.JSONDecodeError, UnicodeDecodeError):
            pass
        text = body.decode(errors="replace")[:500].strip()
        return text or str(error)
    return str(error) or type(error).__name__


def select_error_hint(text: str) -> Optional[str]:
    """Pick the remedy hint for the first known status code found in text."""
    for code, hint in ERROR_HINTS.items():
        if re.search(rf"\b{code}\b", text):
            return hint
    return None


def stream_error(payload: object) -> TargonAPIError:
    """
    Build an error from an in-stream error payload (`data: {"error": {...}}`).

    The status comes from `error.code` or `error.status` when it is numeric.
    """
    status_code = None
    if isinstance(payload, dict):
        message = payload.get("message") or json.dumps(payload)
        for key in ("code", "status"):
            try:
                status_code = int(payload.get(key))
                break
            except (TypeError, ValueError):
                continue
    else:
        message = str(payload)
    return TargonAPIError(str(message), status_code=status_code)


def is_service_unavailable(error: BaseException) -> bool:
    """True for HTTP 503 or any error whose message mentions 503."""
    return _status_code_of(error) == 503 or "503" in str(error)


def wrap_error(error: BaseException) -> TargonAPIError:
    """
    Convert a provider or transport failure into a single descriptive error.

    The message embeds the status code when known and ends with a remedy
    hint when one matches.
    """
    status_code = _status_code_of(error)
    detail = _error_detail(error)
    if status_code is not None:
        message = f"Targon API error (status {status_code}): {detail}"
    else:
        message = f"Targon API error: {detail}"

    hint = ERROR_HINTS.get(status_code) or select_error_hint(f"{detail} {error}")
    if hint:
        message = f"{message}\n{hint}"
    return TargonAPIError(message, status_code=status_code)


class TargonAdapter:
    """
    Targon implementation of ProviderAdapter protocol.

    Holds only immutable configuration; every create_message() call opens
    its own HTTP client, so concurrent calls share no mutable state.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_id: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        concise_prompts: bool = False,
    ):
        self._api_key = api_key or config.get_api_key()
        self._model_id = model_id or config.get_model_id()
        self._base_url = (base_url or config.get_base_url()).rstrip("/")
        self._timeout_seconds = timeout_seconds or config.get_timeout_seconds()
        self._concise_prompts = concise_prompts

    @property
    def base_url(self) -> str:
        return self._base_url

    def get_model(self) -> ModelDescriptor:
        """Resolve the configured model id, falling back to the default model."""
        model_id = self._model_id
        if model_id and model_id in config.TARGON_MODELS:
            return ModelDescriptor(id=model_id, info=config.TARGON_MODELS[model_id])
        return ModelDescriptor(
            id=config.TARGON_DEFAULT_MODEL_ID,
            info=config.TARGON_MODELS[config.TARGON_DEFAULT_MODEL_ID],
        )

    def build_request(
        self,
        system_prompt: str,
        messages: Sequence[Union[Message, dict]],
    ) -> RequestEnvelope:
        """
        Build the chat-completions request for a conversation.

        The system prompt is prepended as a system message (rewritten for
        brevity when concise_prompts is enabled). Structured content is
        JSON-serialized. Tools whose marker appears in any message are
        attached.
        """
        model = self.get_model()
        if self._concise_prompts:
            system_prompt = make_prompt_concise(system_prompt)

        parsed = [m if isinstance(m, Message) else Message.model_validate(m) for m in messages]
        texts = [m.content_text() for m in parsed]

        api_messages = [{"role": "system", "content": system_prompt}]
        api_messages.extend(
            {"role": m.role, "content": text} for m, text in zip(parsed, texts)
        )

        envelope = RequestEnvelope(
            model=model.id,
            messages=api_messages,
            stream=True,
            temperature=config.DEFAULT_TEMPERATURE,
            max_tokens=model.info.max_tokens or config.DEFAULT_MAX_TOKENS,
            tools=tools_for_text(texts) or None,
        )

        if logger.isEnabledFor(logging.DEBUG):
            preview = [
                {
                    "role": msg["role"],
                    "content": msg["content"][:config.LOG_PREVIEW_CHARS]
                    + ("..." if len(msg["content"]) > config.LOG_PREVIEW_CHARS else ""),
                }
                for msg in api_messages
            ]
            logger.debug(
                "Targon request: model=%s max_tokens=%s tools=%s messages=%s",
                envelope.model,
                envelope.max_tokens,
                [t["function"]["name"] for t in envelope.tools or []],
                preview,
            )
        return envelope

    async def create_message(
        self,
        system_prompt: str,
        messages: Sequence[Union[Message, dict]],
    ) -> AsyncGenerator[StreamFragment, None]:
        """
        Stream a response from Targon.

        Yields text fragments as they arrive and one final summary fragment.
        A 503 is retried once with a simplified request; every other failure
        (or a failed retry) raises TargonAPIError.

        Raises:
            TargonConfigError: No API key configured (before any request)
            TargonAPIError: Provider or transport failure
        """
        if not self._api_key:
            raise TargonConfigError(
                "Targon API key not found. "
                "Provide api_key parameter or set TARGON_API_KEY environment variable."
            )

        envelope = self.build_request(system_prompt, messages)
        request_id = str(uuid.uuid4())
        start_time = time.time()

        try:
            async with aclosing(self._consume(envelope, request_id, start_time)) as stream:
                async for fragment in stream:
                    yield fragment
            return
        except (httpx.HTTPError, TargonAPIError) as e:
            if not is_service_unavailable(e):
                raise wrap_error(e) from e
            logger.info("Targon returned 503 for %s, retrying once with simplified request", envelope.model)

        retry_envelope = envelope.model_copy(update={
            "tools": None,
            "temperature": config.RETRY_TEMPERATURE,
            "max_tokens": config.RETRY_MAX_TOKENS,
        })
        try:
            async with aclosing(self._consume(
                retry_envelope, request_id, start_time, content_only=True
            )) as stream:
                async for fragment in stream:
                    yield fragment
        except (httpx.HTTPError, TargonAPIError) as e:
            raise wrap_error(e) from e

    async def _stream_chunks(self, envelope: RequestEnvelope) -> AsyncGenerator[object, None]:
        """POST the envelope and yield decoded SSE data payloads."""
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
            async with client.stream(
                "POST",
                f"{self._base_url}/chat/completions",
                json=envelope.to_payload(),
                headers=headers,
            ) as response:
                if response.status_code >= 400:
                    await response.aread()
                    response.raise_for_status()

                async for line in response.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    data = line[5:].strip()
                    if data == "[DONE]":
                        break
                    try:
                        chunk = json.loads(data)
                    except json.JSONDecodeError:
                        logger.debug("Skipping undecodable SSE payload: %.100s", data)
                        continue
                    if isinstance(chunk, dict) and chunk.get("error"):
                        raise stream_error(chunk["error"])
                    yield chunk

    async def _consume(
        self,
        envelope: RequestEnvelope,
        request_id: str,
        start_time: float,
        content_only: bool = False,
    ) -> AsyncGenerator[StreamFragment, None]:
        """
        Turn one provider stream into fragments plus a summary fragment.

        content_only skips tool-call formatting and usage capture (used for
        the 503 retry).
        """
        response_text = ""
        tokens_in = 0
        tokens_out = 0
        tool_call_accumulator: dict[int, dict] = {}

        async with aclosing(self._stream_chunks(envelope)) as chunks:
            async for chunk in chunks:
                content = extract_content(chunk)
                if content:
                    response_text += content
                    yield StreamFragment(text=content)

                if content_only or not isinstance(chunk, dict):
                    continue

                choices = chunk.get("choices")
                first = choices[0] if isinstance(choices, list) and choices else None
                delta = first.get("delta") if isinstance(first, dict) else None
                tool_calls = delta.get("tool_calls") if isinstance(delta, dict) else None
                if isinstance(tool_calls, list):
                    for tc in tool_calls:
                        formatted = self._accumulate_tool_call(tool_call_accumulator, tc)
                        if formatted:
                            response_text += formatted
                            yield StreamFragment(text=formatted)

                usage = chunk.get("usage")
                if isinstance(usage, dict):
                    prompt_tokens = usage.get("prompt_tokens")
                    completion_tokens = usage.get("completion_tokens")
                    tokens_in = prompt_tokens if isinstance(prompt_tokens, int) else 0
                    tokens_out = completion_tokens if isinstance(completion_tokens, int) else 0

        metrics = get_api_metrics(start_time, tokens_in, tokens_out)
        summary = ApiResponse(
            id=request_id,
            model=envelope.model,
            created=int(start_time),
            content=response_text,
            metrics=metrics,
        )
        yield StreamFragment(text=format_response(summary))

    def _accumulate_tool_call(self, accumulator: dict[int, dict], tc: object) -> Optional[str]:
        """
        Add one tool-call delta to the accumulator.

        Returns formatted text the first time the call's arguments become a
        complete, usable object for a registered formatter.

        Deltas that are not shaped like OpenAI tool calls are logged and
        skipped.
        """
        if not isinstance(tc, dict):
            logger.debug("Skipping non-object tool call delta: %.100r", tc)
            return None
        idx = tc.get("index", 0)
        func = tc.get("function") or {}
        if not isinstance(idx, int) or not isinstance(func, dict):
            logger.debug("Skipping malformed tool call delta: %.100r", tc)
            return None
        name = func.get("name")
        arguments = func.get("arguments")
        if (name is not None and not isinstance(name, str)) or (
            arguments is not None and not isinstance(arguments, str)
        ):
            logger.debug("Skipping tool call delta with non-string fields: %.100r", tc)
            return None

        if idx not in accumulator:
            accumulator[idx] = {"name": "", "arguments": "", "emitted": False}
        entry = accumulator[idx]
        if name:
            entry["name"] = name
        if arguments:
            entry["arguments"] += arguments

        if entry["emitted"] or not entry["name"] or not entry["arguments"]:
            return None
        try:
            formatted = format_tool_call(entry["name"], entry["arguments"])
        except json.JSONDecodeError:
            logger.debug(
                "Incomplete or malformed arguments for tool %s: %.100s",
                entry["name"],
                entry["arguments"],
            )
            return None
        if formatted:
            entry["emitted"] = True
        return formatted
