"""Session: one conversation wired through interpretation, preview and execution.

Usage::

    from nlcad.session import Session

    session = Session()
    response = session.handle("Create a box 10 x 20 x 5 inches")
    print(response.message)
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Optional

from pydantic import BaseModel, Field

from nlcad.commands import CommandBase, CommandResult, InfoType, Redo, ShowInfo, Undo
from nlcad.context import ClarificationRequest, ClarificationType, ConversationContext
from nlcad.execution import CadHost, CommandExecutor, InMemoryCadHost
from nlcad.nlp import IntentTag, Interpretation, RuleBasedParser, StructuredInterpreter, classify_intent
from nlcad.nlp.interpreter import HELP_MESSAGE
from nlcad.nlp.providers import LLMProvider, create_provider
from nlcad.preview import CommandPreviewResult, PreviewEngine, PreviewMode, format_preview
from nlcad.settings import Settings, SettingsManager, configure_logging

logger = logging.getLogger(__name__)

SPECIAL_HELP = """\
Session commands:
  /help            Show this help
  /history [n]     Show the last n executed commands (default 10)
  /undo            Undo the last command
  /redo            Redo the last undone command
  /list            List features of the active part
  /clear           Forget the conversation and pending previews
  /context         Show what the assistant remembers
  /status          Show provider, host and undo state

Anything else is read as a modeling request, e.g.
  'Create a box 10 x 20 x 5 inches'"""

_CONFIRM_WORDS = {"yes", "y", "ok", "okay", "confirm", "do it", "go", "go ahead", "proceed"}
_CANCEL_WORDS = {"no", "n", "cancel", "stop", "never mind", "nevermind", "abort"}


class SessionResponse(BaseModel):
    """Everything one call to :meth:`Session.handle` produced."""

    message: str = ""
    interpretation: Optional[Interpretation] = None
    previews: list[CommandPreviewResult] = Field(default_factory=list)
    results: list[CommandResult] = Field(default_factory=list)
    pending: list[CommandPreviewResult] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    special: bool = False
    """True when the input was a slash command."""

    @property
    def needs_confirmation(self) -> bool:
        return bool(self.pending)

    @property
    def success(self) -> bool:
        return bool(self.results) and all(r.success for r in self.results)


class Session:
    """Per-user conversation over one CAD host.

    Parameters
    ----------
    provider:
        Language-model transport.  Built from *settings* when omitted.
    host:
        CAD host.  Defaults to :class:`InMemoryCadHost`.
    settings:
        Behaviour switches; defaults to ``Settings()``.
    """

    def __init__(
        self,
        provider: LLMProvider | None = None,
        host: CadHost | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings if settings is not None else Settings()
        self.provider = provider if provider is not None else create_provider(self.settings)
        self.context = ConversationContext(self.settings.default_unit)
        rules = RuleBasedParser(self.settings.default_unit)
        self.interpreter = StructuredInterpreter(self.provider, rules, context=self.context)
        self.previews = PreviewEngine(self.provider, rules, self.context)
        self.executor = CommandExecutor(host if host is not None else InMemoryCadHost())
        self._pending: list[CommandPreviewResult] = []
        self._lock = threading.RLock()
        self._special: dict[str, Callable[[list[str]], SessionResponse]] = {
            "/help": self._cmd_help,
            "/history": self._cmd_history,
            "/undo": self._cmd_undo,
            "/redo": self._cmd_redo,
            "/list": self._cmd_list,
            "/clear": self._cmd_clear,
            "/context": self._cmd_context,
            "/status": self._cmd_status,
        }

    @classmethod
    def from_project(
        cls,
        project_path: str | Path = ".",
        provider: LLMProvider | None = None,
        host: CadHost | None = None,
    ) -> Session:
        """Build a session from the configuration under *project_path*.

        Settings come from :meth:`SettingsManager.load_settings`, and their
        log level is applied to the ``nlcad`` loggers before anything runs.
        """
        settings = SettingsManager().load_settings(project_path)
        configure_logging(settings)
        return cls(provider=provider, host=host, settings=settings)

    @property
    def pending(self) -> tuple[CommandPreviewResult, ...]:
        with self._lock:
            return tuple(self._pending)

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def handle(
        self,
        text: str,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> SessionResponse:
        """Interpret *text*, preview the result and run what is safe to run."""
        text = (text or "").strip()
        with self._lock:
            if text.startswith("/"):
                return self._handle_special(text)

            lowered = text.lower().rstrip(".!")
            if self._pending and lowered in _CONFIRM_WORDS:
                return self.confirm()
            if self._pending and lowered in _CANCEL_WORDS:
                return self.cancel()

            text = self._merge_clarification(text)
            interpretation = self.interpreter.interpret(
                text,
                self.context,
                timeout=timeout if timeout is not None else self.settings.model_timeout,
                cancel=cancel,
            )

            if not interpretation.commands:
                if interpretation.needs_clarification and interpretation.intent is not IntentTag.UNKNOWN:
                    self.context.pending_clarification = ClarificationRequest(
                        original_input=text,
                        partial_intent=interpretation.intent.value,
                        waiting_for=interpretation.clarification_question or "",
                        expected_type=ClarificationType.DIMENSION,
                    )
                return SessionResponse(
                    message=interpretation.message,
                    interpretation=interpretation,
                    suggestions=interpretation.suggestions,
                )

            return self._preview_and_run(text, interpretation)

    def _merge_clarification(self, text: str) -> str:
        """Join a bare answer ("10 inches") to the question it answers."""
        pending = self.context.pending_clarification
        if pending is None:
            return text
        self.context.pending_clarification = None
        if classify_intent(text).intent is not IntentTag.UNKNOWN:
            return text
        merged = f"{pending.original_input} {text}"
        logger.debug("Merged clarification answer: %r", merged)
        return merged

    def _preview_and_run(self, text: str, interpretation: Interpretation) -> SessionResponse:
        response = SessionResponse(interpretation=interpretation, suggestions=interpretation.suggestions)
        lines: list[str] = []
        for command in interpretation.commands:
            preview = self.previews.preview_command(command, text, interpretation.confidence)
            response.previews.append(preview)

            if not self._may_run(preview):
                self._pending.append(preview)
                response.pending.append(preview)
                lines.append(format_preview(preview, PreviewMode.DETAILED))
                continue

            result = self._run(preview, command, text)
            response.results.append(result)
            lines.append(_result_line(result))
            if not result.success:
                break

        if response.pending:
            lines.append("Reply 'yes' to run it or 'no' to cancel.")
        response.message = "\n".join(lines)
        return response

    def _may_run(self, preview: CommandPreviewResult) -> bool:
        if not self.settings.require_confirmation:
            return True
        return self.settings.auto_execute_low_risk and preview.can_auto_execute

    def _run(self, preview: CommandPreviewResult, command: CommandBase, user_input: str) -> CommandResult:
        result = self.executor.execute(command, self.context, user_input)
        if result.success:
            self.previews.mark_executed(preview.id)
        return result

    # ------------------------------------------------------------------
    # Confirmation
    # ------------------------------------------------------------------

    def confirm(self, preview_id: str | None = None) -> SessionResponse:
        """Run the pending preview *preview_id*, or every pending preview."""
        with self._lock:
            chosen = self._take_pending(preview_id)
            if not chosen:
                return SessionResponse(message="Nothing to confirm.")

            response = SessionResponse(previews=chosen)
            lines: list[str] = []
            for preview in chosen:
                for command in preview.commands:
                    result = self._run(preview, command, preview.original_input)
                    response.results.append(result)
                    lines.append(_result_line(result))
            response.message = "\n".join(lines)
            return response

    def cancel(self, preview_id: str | None = None) -> SessionResponse:
        with self._lock:
            chosen = self._take_pending(preview_id)
            if not chosen:
                return SessionResponse(message="Nothing to cancel.")
            for preview in chosen:
                self.previews.mark_cancelled(preview.id)
            logger.info("Cancelled %d pending preview(s)", len(chosen))
            return SessionResponse(message="Cancelled.", previews=chosen)

    def _take_pending(self, preview_id: str | None) -> list[CommandPreviewResult]:
        if preview_id is None:
            chosen, self._pending = self._pending, []
            return chosen
        chosen = [p for p in self._pending if p.id == preview_id]
        self._pending = [p for p in self._pending if p.id != preview_id]
        return chosen

    def reset(self) -> None:
        """Forget the conversation, previews and execution history."""
        with self._lock:
            self._pending.clear()
            self.context.clear()
            self.previews.clear_history()
            self.executor.clear()
            logger.info("Session reset")

    # ------------------------------------------------------------------
    # Slash commands
    # ------------------------------------------------------------------

    def _handle_special(self, text: str) -> SessionResponse:
        parts = text.split()
        name, args = parts[0].lower(), parts[1:]
        handler = self._special.get(name)
        if handler is None:
            return SessionResponse(
                message=f"Unknown command: {name}. Type /help for available commands.", special=True,
            )
        logger.info("Handling special command: %s", name)
        response = handler(args)
        response.special = True
        return response

    def _cmd_help(self, args: list[str]) -> SessionResponse:
        return SessionResponse(message=f"{SPECIAL_HELP}\n\n{HELP_MESSAGE}")

    def _cmd_history(self, args: list[str]) -> SessionResponse:
        count = int(args[0]) if args and args[0].isdigit() else 10
        entries = self.executor.history[-count:] if count > 0 else ()
        if not entries:
            return SessionResponse(message="No command history.")
        lines = [f"Last {len(entries)} command(s):"]
        lines.extend(f"  {i}. {entry.display()}" for i, entry in enumerate(entries, start=1))
        return SessionResponse(message="\n".join(lines))

    def _cmd_undo(self, args: list[str]) -> SessionResponse:
        return self._run_direct(Undo())

    def _cmd_redo(self, args: list[str]) -> SessionResponse:
        return self._run_direct(Redo())

    def _cmd_list(self, args: list[str]) -> SessionResponse:
        return self._run_direct(ShowInfo(info_type=InfoType.FEATURE_LIST))

    def _run_direct(self, command: CommandBase) -> SessionResponse:
        result = self.executor.execute(command, self.context, command.description)
        return SessionResponse(message=_result_line(result), results=[result])

    def _cmd_clear(self, args: list[str]) -> SessionResponse:
        self._pending.clear()
        self.context.clear()
        self.previews.clear_history()
        return SessionResponse(message="Conversation cleared.")

    def _cmd_context(self, args: list[str]) -> SessionResponse:
        lines = [self.context.context_summary()]
        if self.context.named_references:
            lines.append(f"Named references: {', '.join(sorted(self.context.named_references))}")
        return SessionResponse(message="\n".join(lines))

    def _cmd_status(self, args: list[str]) -> SessionResponse:
        host = self.executor.host
        lines = [
            f"Environment: {self.settings.env}",
            f"Language model: {self.provider.name} ({'available' if self.provider.is_available() else 'offline'})",
            f"CAD host: {host.name}, active part: {host.active_document or 'none'}",
            f"Undo: {len(self.executor.undo_stack)}, redo: {len(self.executor.redo_stack)}",
            f"Pending previews: {len(self._pending)}",
        ]
        return SessionResponse(message="\n".join(lines))


def _result_line(result: CommandResult) -> str:
    if result.success:
        return f"Done: {result.message}"
    return f"Failed: {result.message}"
