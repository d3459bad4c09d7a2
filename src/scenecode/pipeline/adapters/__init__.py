"""Provider adapters and host-side protocols."""

from .base import ChatSink, CodeHost, ProviderAdapter
from .mock import ScriptedAdapter, Stall
from .openai_compat import OpenAICompatibleAdapter

__all__ = [
    "ChatSink",
    "CodeHost",
    "OpenAICompatibleAdapter",
    "ProviderAdapter",
    "ScriptedAdapter",
    "Stall",
]
