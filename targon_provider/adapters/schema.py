import json
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from targon_provider.config import ModelInfo


class ModelDescriptor(BaseModel):
    """A resolved model: the id sent to the API plus its table metadata."""
    id: str
    info: ModelInfo


class Message(BaseModel):
    """
    A single conversation message as supplied by the caller.

    Content is either plain text or a structured value (content blocks,
    dicts) which is serialized to JSON before transmission.
    """
    role: Literal["system", "user", "assistant"]
    content: Union[str, List[Any], Dict[str, Any]]

    def content_text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        return json.dumps(self.content)


class RequestEnvelope(BaseModel):
    """
    Outbound chat-completions payload.
    Built fresh per call and never retained by the adapter.
    """
    model: str
    messages: List[Dict[str, str]]
    stream: bool = True
    temperature: float = 0.7
    max_tokens: int = 4096
    tools: Optional[List[Dict[str, Any]]] = None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class StreamFragment(BaseModel):
    """One incremental unit of output delivered to the caller."""
    type: Literal["text"] = "text"
    text: str


class ApiMetrics(BaseModel):
    tokens_in: int = 0
    tokens_out: int = 0
    tokens_total: int = 0
    time_total: int = 0  # milliseconds


class ApiResponse(BaseModel):
    """
    Summary of one completed call.
    Serialized by transform.format_response into the final fragment.
    """
    id: str
    model: str
    created: int  # unix seconds at request start
    content: str
    metrics: ApiMetrics = Field(default_factory=ApiMetrics)
