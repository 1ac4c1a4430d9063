"""LLM provider system: abstract base + concrete providers."""

from nlcad.nlp.providers.anthropic import AnthropicProvider
from nlcad.nlp.providers.base import LLMProvider, ModelRequest, complete_with_deadline
from nlcad.nlp.providers.factory import create_provider
from nlcad.nlp.providers.offline import OfflineProvider
from nlcad.nlp.providers.ollama import OllamaProvider
from nlcad.nlp.providers.openai import OpenAIProvider

__all__ = [
    "AnthropicProvider",
    "LLMProvider",
    "ModelRequest",
    "OfflineProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "complete_with_deadline",
    "create_provider",
]
