"""Local Ollama chat provider."""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request

from nlcad.config import DEFAULT_MODEL_TIMEOUT, DEFAULT_OLLAMA_MODEL, DEFAULT_OLLAMA_URL
from nlcad.nlp.providers.base import LLMProvider, ModelRequest

logger = logging.getLogger(__name__)


class OllamaProvider(LLMProvider):
    """Chat against a local Ollama server in JSON mode.

    An unreachable server yields *None*, and the interpreter then uses
    the rule-based parser for that turn.
    """

    name = "ollama"

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_OLLAMA_URL,
        model: str = DEFAULT_OLLAMA_MODEL,
        timeout: float = DEFAULT_MODEL_TIMEOUT,
        temperature: float = 0.1,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.temperature = temperature

    def is_available(self) -> bool:
        """Check if Ollama is running by hitting the tags endpoint."""
        try:
            req = urllib.request.Request(f"{self.base_url}/api/tags")
            with urllib.request.urlopen(req, timeout=2) as resp:
                return resp.status == 200
        except (urllib.error.URLError, OSError, TimeoutError):
            return False

    def complete(self, request: ModelRequest) -> str | None:
        """Send *request* to Ollama's chat endpoint in JSON mode."""
        messages = [{"role": "system", "content": request.system_prompt}]
        if request.context_summary:
            messages.append({"role": "system", "content": f"Current context:\n{request.context_summary}"})
        messages.append({"role": "user", "content": request.user_input})

        payload = json.dumps({
            "model": self.model,
            "messages": messages,
            "stream": False,
            "format": "json",
            "options": {"temperature": self.temperature},
        }).encode("utf-8")

        req = urllib.request.Request(
            f"{self.base_url}/api/chat",
            data=payload,
            headers={"Content-Type": "application/json"},
            method="POST",
        )

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = json.loads(resp.read().decode("utf-8"))
                return (body.get("message") or {}).get("content")
        except (urllib.error.URLError, OSError, TimeoutError, json.JSONDecodeError) as exc:
            logger.debug("Ollama call failed: %s", exc)
            return None
