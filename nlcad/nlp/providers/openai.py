"""OpenAI-compatible chat-completions provider.

Works against api.openai.com and any server exposing the same
``/chat/completions`` endpoint (Azure-style proxies, vLLM, LM Studio).
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request

from nlcad.config import DEFAULT_MODEL_TIMEOUT, DEFAULT_OPENAI_MODEL, DEFAULT_OPENAI_URL
from nlcad.nlp.providers.base import LLMProvider, ModelRequest

logger = logging.getLogger(__name__)

# Placeholder keys shipped in sample config files
_PLACEHOLDER_KEYS = {"", "your-openai-api-key-here", "changeme"}


class OpenAIProvider(LLMProvider):
    name = "openai"

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = DEFAULT_OPENAI_URL,
        model: str = DEFAULT_OPENAI_MODEL,
        timeout: float = DEFAULT_MODEL_TIMEOUT,
        temperature: float = 0.1,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.temperature = temperature

    def is_available(self) -> bool:
        """Configured with a real key.  No network call is made."""
        return self.api_key.strip() not in _PLACEHOLDER_KEYS

    def complete(self, request: ModelRequest) -> str | None:
        messages = [{"role": "system", "content": request.system_prompt}]
        if request.context_summary:
            messages.append({"role": "system", "content": f"Current context:\n{request.context_summary}"})
        messages.append({"role": "user", "content": request.user_input})

        payload = json.dumps({
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "response_format": {"type": "json_object"},
        }).encode("utf-8")

        req = urllib.request.Request(
            f"{self.base_url}/chat/completions",
            data=payload,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            },
            method="POST",
        )

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = json.loads(resp.read().decode("utf-8"))
        except (urllib.error.URLError, OSError, TimeoutError, json.JSONDecodeError) as exc:
            logger.debug("OpenAI call failed: %s", exc)
            return None

        try:
            return body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            logger.warning("Unexpected chat-completions response shape")
            return None
