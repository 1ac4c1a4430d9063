"""Pick a language-model provider from settings."""

from __future__ import annotations

import logging

from nlcad.nlp.providers.anthropic import AnthropicProvider
from nlcad.nlp.providers.base import LLMProvider
from nlcad.nlp.providers.offline import OfflineProvider
from nlcad.nlp.providers.ollama import OllamaProvider
from nlcad.nlp.providers.openai import OpenAIProvider
from nlcad.settings import Settings

logger = logging.getLogger(__name__)


def create_provider(settings: Settings) -> LLMProvider:
    """Return the provider named by ``settings.provider``.

    ``auto`` prefers OpenAI, then Anthropic, when a key is configured,
    then a running Ollama server, then offline.
    """
    openai = OpenAIProvider(
        api_key=settings.openai_api_key,
        base_url=settings.openai_url,
        model=settings.openai_model,
        timeout=settings.model_timeout,
    )
    anthropic = AnthropicProvider(
        api_key=settings.anthropic_api_key,
        base_url=settings.anthropic_url,
        model=settings.anthropic_model,
        timeout=settings.model_timeout,
    )
    ollama = OllamaProvider(
        base_url=settings.ollama_url,
        model=settings.ollama_model,
        timeout=settings.model_timeout,
    )

    if settings.provider == "offline":
        return OfflineProvider()
    if settings.provider == "openai":
        return openai
    if settings.provider == "anthropic":
        return anthropic
    if settings.provider == "ollama":
        return ollama

    if openai.is_available():
        logger.info("Using OpenAI provider (%s)", settings.openai_model)
        return openai
    if anthropic.is_available():
        logger.info("Using Anthropic provider (%s)", settings.anthropic_model)
        return anthropic
    if ollama.is_available():
        logger.info("Using Ollama provider (%s)", settings.ollama_model)
        return ollama
    logger.info("No language model available; using rule-based parsing only")
    return OfflineProvider()
