"""
targon-provider: streaming chat adapter for the Targon API.

Usage:
    from targon_provider import TargonAdapter

    adapter = TargonAdapter(api_key="...", model_id="deepseek-ai/DeepSeek-V3")
    async for fragment in adapter.create_message("You are helpful.", messages):
        print(fragment.text, end="")
"""

from targon_provider.adapters import (
    ProviderAdapter,
    TargonAdapter,
    TargonAPIError,
    TargonConfigError,
    TargonError,
)
from targon_provider.adapters.schema import Message, StreamFragment
from targon_provider.transform import make_prompt_concise

__all__ = [
    "Message",
    "ProviderAdapter",
    "StreamFragment",
    "TargonAdapter",
    "TargonAPIError",
    "TargonConfigError",
    "TargonError",
    "make_prompt_concise",
]
