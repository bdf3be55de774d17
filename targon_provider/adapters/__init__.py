"""
Adapters for chat providers.

Provider-agnostic architecture: Protocol defines WHAT, implementations define HOW.
"""

from .base import ProviderAdapter
from .targon import TargonAdapter, TargonAPIError, TargonConfigError, TargonError

__all__ = [
    "ProviderAdapter",
    "TargonAdapter",
    "TargonAPIError",
    "TargonConfigError",
    "TargonError",
]
