"""Offline provider: never available, so the rule-based parser always runs."""

from __future__ import annotations

from nlcad.nlp.providers.base import LLMProvider, ModelRequest


class OfflineProvider(LLMProvider):
    """Placeholder transport for sessions with no language model."""

    name = "offline"

    def is_available(self) -> bool:
        return False

    def complete(self, request: ModelRequest) -> str | None:
        return None
