"""
Configuration constants and Pydantic models for targon-provider.
"""

import os
from pydantic import BaseModel
from typing import Optional


# ─────────────────────────────────────────────────────────────────────
# DEFAULTS
# ─────────────────────────────────────────────────────────────────────

TARGON_BASE_URL: str = "https://api.targon.com/v1"
DEFAULT_TEMPERATURE: float = 0.7
DEFAULT_MAX_TOKENS: int = 4096
DEFAULT_TIMEOUT_SECONDS: float = 120.0
DEFAULT_SYSTEM_PROMPT: str = "You are a helpful assistant."

# Simplified request used for the single retry after a 503
RETRY_TEMPERATURE: float = 0.0
RETRY_MAX_TOKENS: int = 1024

# Characters of message content shown in request debug logs
LOG_PREVIEW_CHARS: int = 50


# ─────────────────────────────────────────────────────────────────────
# MODEL TABLE
# ─────────────────────────────────────────────────────────────────────

class ModelInfo(BaseModel):
    """Static metadata for a selectable Targon model."""
    max_tokens: Optional[int] = None
    context_window: Optional[int] = None
    supports_images: bool = False
    supports_prompt_cache: bool = False
    input_price: float = 0.0
    output_price: float = 0.0
    description: Optional[str] = None


TARGON_DEFAULT_MODEL_ID: str = "deepseek-ai/DeepSeek-V3"

TARGON_MODELS: dict[str, ModelInfo] = {
    "deepseek-ai/DeepSeek-V3": ModelInfo(
        max_tokens=8192,
        context_window=64_000,
        description="DeepSeek V3 chat model served by Targon.",
    ),
    "deepseek-ai/DeepSeek-R1": ModelInfo(
        max_tokens=8192,
        context_window=64_000,
        description="DeepSeek R1 reasoning model served by Targon.",
    ),
    "deepseek-ai/DeepSeek-R1-Distill-Llama-70B": ModelInfo(
        max_tokens=8192,
        context_window=128_000,
    ),
    "NousResearch/Hermes-3-Llama-3.1-8B": ModelInfo(
        max_tokens=4096,
        context_window=32_000,
    ),
    "Qwen/Qwen2.5-Coder-32B-Instruct": ModelInfo(
        max_tokens=8192,
        context_window=32_000,
        description="Qwen 2.5 coder model served by Targon.",
    ),
}


# ─────────────────────────────────────────────────────────────────────
# ENVIRONMENT LOADING
# ─────────────────────────────────────────────────────────────────────

def get_api_key() -> str | None:
    """Get Targon API key from environment."""
    return os.environ.get("TARGON_API_KEY") or None


def get_model_id() -> str | None:
    """Get requested model id from environment (TARGON_MODEL_ID)."""
    return os.environ.get("TARGON_MODEL_ID") or None


def get_base_url() -> str:
    """
    Get API base URL from environment or default.

    Set TARGON_BASE_URL to point at a proxy or staging endpoint.
    """
    return os.environ.get("TARGON_BASE_URL", TARGON_BASE_URL).rstrip("/")


def get_timeout_seconds() -> float:
    """
    Get HTTP client timeout from environment or default.

    Set TARGON_TIMEOUT_SECONDS in .env (default: 120).
    """
    try:
        return float(os.environ.get("TARGON_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS)))
    except ValueError:
        return DEFAULT_TIMEOUT_SECONDS


# ─────────────────────────────────────────────────────────────────────
# RETRY CONFIGURATION - For the opt-in generic retry layer
# ─────────────────────────────────────────────────────────────────────

def get_retry_attempts() -> int:
    """
    Get max attempts for the generic retry layer.

    Set TARGON_RETRY_ATTEMPTS in .env (default: 3).
    """
    try:
        return int(os.environ.get("TARGON_RETRY_ATTEMPTS", "3"))
    except ValueError:
        return 3


def get_retry_min_wait() -> int:
    """
    Get minimum wait between retries in seconds.

    Set TARGON_RETRY_MIN_WAIT in .env (default: 2).
    """
    try:
        return int(os.environ.get("TARGON_RETRY_MIN_WAIT", "2"))
    except ValueError:
        return 2


def get_retry_max_wait() -> int:
    """
    Get maximum wait between retries in seconds.

    Set TARGON_RETRY_MAX_WAIT in .env (default: 30).
    """
    try:
        return int(os.environ.get("TARGON_RETRY_MAX_WAIT", "30"))
    except ValueError:
        return 30
