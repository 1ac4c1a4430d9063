"""Abstract LLM provider interface."""

from __future__ import annotations

import abc
import logging
import threading
import time
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ModelRequest(BaseModel):
    """One structured-output request to a language model."""

    system_prompt: str
    context_summary: str = ""
    user_input: str

    def to_prompt(self) -> str:
        """Flatten into a single prompt for completion-style endpoints."""
        parts = [self.system_prompt.strip()]
        if self.context_summary:
            parts.append(f"Current context:\n{self.context_summary}")
        parts.append(f"User request: {self.user_input}")
        return "\n\n".join(parts)


class LLMProvider(abc.ABC):
    """Base class for language-model transports.

    Implementations must override :meth:`complete`, which returns the raw
    response text, or *None* on failure.
    """

    name: str = "llm"

    @abc.abstractmethod
    def complete(self, request: ModelRequest) -> str | None:
        """Send *request* to the model and return raw response text.

        Returns *None* if the provider is unavailable or the call fails,
        signalling the caller to fall back to the rule-based parser.
        """

    @abc.abstractmethod
    def is_available(self) -> bool:
        """Return *True* if the provider is ready to serve requests."""


def complete_with_deadline(
    provider: LLMProvider,
    request: ModelRequest,
    timeout: float | None = None,
    cancel: threading.Event | None = None,
) -> str | None:
    """Run ``provider.complete`` on a worker thread, bounded by *timeout*.

    ``provider.is_available`` runs on the same thread and counts against
    the same deadline.  Returns *None* when the provider is unavailable,
    or the call fails, times out, or *cancel* is set.
    An abandoned call keeps running on its daemon thread; its result is
    discarded.
    """
    outcome: dict[str, Any] = {}
    done = threading.Event()

    def _worker() -> None:
        try:
            if not provider.is_available():
                outcome["unavailable"] = True
                return
            outcome["text"] = provider.complete(request)
        except Exception as exc:
            outcome["error"] = exc
        finally:
            done.set()

    worker = threading.Thread(target=_worker, name="nlcad-model-call", daemon=True)
    worker.start()

    deadline = None if timeout is None else time.monotonic() + timeout
    while not done.wait(0.05):
        if cancel is not None and cancel.is_set():
            logger.debug("Model call cancelled (%s)", provider.name)
            return None
        if deadline is not None and time.monotonic() >= deadline:
            logger.debug("Model call timed out after %.1fs (%s)", timeout, provider.name)
            return None

    if outcome.get("unavailable"):
        logger.debug("Provider %s is not available", provider.name)
        return None
    if "error" in outcome:
        logger.debug("Model call failed (%s): %s", provider.name, outcome["error"])
        return None
    text = outcome.get("text")
    if text is None:
        logger.debug("Model returned no response (%s)", provider.name)
    return text
