"""Anthropic Messages API provider.

The system prompt and context travel in the top-level ``system`` field;
the user request is the single ``user`` message.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request

from nlcad.config import (
    ANTHROPIC_API_VERSION,
    ANTHROPIC_MAX_TOKENS,
    DEFAULT_ANTHROPIC_MODEL,
    DEFAULT_ANTHROPIC_URL,
    DEFAULT_MODEL_TIMEOUT,
)
from nlcad.nlp.providers.base import LLMProvider, ModelRequest

logger = logging.getLogger(__name__)

_PLACEHOLDER_KEYS = {"", "your-anthropic-api-key-here", "changeme"}


class AnthropicProvider(LLMProvider):
    name = "anthropic"

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = DEFAULT_ANTHROPIC_URL,
        model: str = DEFAULT_ANTHROPIC_MODEL,
        timeout: float = DEFAULT_MODEL_TIMEOUT,
        max_tokens: int = ANTHROPIC_MAX_TOKENS,
        temperature: float = 0.1,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature

    def is_available(self) -> bool:
        """Configured with a real key.  No network call is made."""
        return self.api_key.strip() not in _PLACEHOLDER_KEYS

    def complete(self, request: ModelRequest) -> str | None:
        system = request.system_prompt
        if request.context_summary:
            system = f"{system}\n\nCurrent context:\n{request.context_summary}"

        payload = json.dumps({
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "system": system,
            "messages": [{"role": "user", "content": request.user_input}],
        }).encode("utf-8")

        req = urllib.request.Request(
            f"{self.base_url}/messages",
            data=payload,
            headers={
                "Content-Type": "application/json",
                "x-api-key": self.api_key,
                "anthropic-version": ANTHROPIC_API_VERSION,
            },
            method="POST",
        )

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = json.loads(resp.read().decode("utf-8"))
        except (urllib.error.URLError, OSError, TimeoutError, json.JSONDecodeError) as exc:
            logger.debug("Anthropic call failed: %s", exc)
            return None

        try:
            blocks = body["content"]
            return next(block["text"] for block in blocks if block.get("type") == "text")
        except (KeyError, TypeError, AttributeError, StopIteration):
            logger.warning("Unexpected messages response shape")
            return None
