"""CommandExecutor: run commands on a CadHost with history and undo/redo.

Usage::

    from nlcad.execution import CommandExecutor, InMemoryCadHost

    executor = CommandExecutor(InMemoryCadHost())
    result = executor.execute(command, context)
    executor.undo()
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from typing import Callable, Optional

from nlcad.commands import CommandBase, CommandKind, CommandResult, missing_kinds
from nlcad.config import EXECUTION_STATE_LIMIT
from nlcad.context import ConversationContext
from nlcad.errors import UndoUnavailable
from nlcad.execution.history import CommandHistoryEntry, ExecutionState
from nlcad.execution.host import CadHost, HostResult

logger = logging.getLogger(__name__)

Handler = Callable[[CommandBase, Optional[ConversationContext], str], CommandResult]


def _elapsed_ms(start: float) -> int:
    return int(round((time.perf_counter() - start) * 1000))


class CommandExecutor:
    """Dispatch commands to a :class:`CadHost`.

    One re-entrant lock serialises executions, undo/redo and history
    reads.  Host exceptions never escape :meth:`execute`; they come back
    as a failed :class:`CommandResult`.  A failed command leaves history,
    stacks and context untouched.  Only the latest *state_limit* command
    states are kept for :meth:`state_of`.
    """

    def __init__(self, host: CadHost, state_limit: int = EXECUTION_STATE_LIMIT) -> None:
        self._host = host
        self._state_limit = state_limit
        self._lock = threading.RLock()
        self._history: list[CommandHistoryEntry] = []
        self._undo_stack: list[CommandHistoryEntry] = []
        self._redo_stack: list[CommandHistoryEntry] = []
        self._states: dict[str, ExecutionState] = {}

        on_host = functools.partial
        self._handlers: dict[CommandKind, Handler] = {
            CommandKind.CREATE_PART: on_host(self._run_on_host, host.create_part),
            CommandKind.CREATE_BOX: on_host(self._run_on_host, host.create_box),
            CommandKind.CREATE_CYLINDER: on_host(self._run_on_host, host.create_cylinder),
            CommandKind.ADD_EXTRUSION: on_host(self._run_on_host, host.add_extrusion),
            CommandKind.ADD_FILLET: on_host(self._run_on_host, host.add_fillet),
            CommandKind.ADD_CHAMFER: on_host(self._run_on_host, host.add_chamfer),
            CommandKind.ADD_HOLE: on_host(self._run_on_host, host.add_hole),
            CommandKind.ADD_LINEAR_PATTERN: on_host(self._run_on_host, host.add_linear_pattern),
            CommandKind.ADD_CIRCULAR_PATTERN: on_host(self._run_on_host, host.add_circular_pattern),
            CommandKind.MODIFY_DIMENSION: on_host(self._run_on_host, host.modify_dimension),
            CommandKind.DELETE_FEATURE: on_host(self._run_on_host, host.delete_feature),
            CommandKind.SAVE_PART: on_host(self._run_on_host, host.save_part),
            CommandKind.EXPORT_PART: on_host(self._run_on_host, host.export_part),
            CommandKind.CLOSE_PART: on_host(self._run_on_host, host.close_part),
            CommandKind.CREATE_ASSEMBLY: on_host(self._run_on_host, host.create_assembly),
            CommandKind.INSERT_COMPONENT: on_host(self._run_on_host, host.insert_component),
            CommandKind.ADD_MATE: on_host(self._run_on_host, host.add_mate),
            CommandKind.FIX_COMPONENT: on_host(self._run_on_host, host.fix_component),
            CommandKind.SHOW_INFO: on_host(self._run_on_host, host.show_info),
            CommandKind.UNDO: self._run_undo,
            CommandKind.REDO: self._run_redo,
        }
        missing = missing_kinds(self._handlers)
        if missing:
            raise TypeError(f"No executor handler for {', '.join(k.value for k in missing)}")

    @property
    def host(self) -> CadHost:
        return self._host

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(
        self,
        command: CommandBase,
        context: ConversationContext | None = None,
        user_input: str = "",
    ) -> CommandResult:
        """Run *command*; update *context* only if it succeeds."""
        with self._lock:
            self._transition(command, ExecutionState.CREATED)
            return self._handlers[command.kind](command, context, user_input)

    def _run_on_host(
        self,
        operation: Callable[[CommandBase], HostResult],
        command: CommandBase,
        context: ConversationContext | None,
        user_input: str,
    ) -> CommandResult:
        logger.info("Executing %s: %s", command.kind.value, command.description)
        self._transition(command, ExecutionState.EXECUTING)
        start = time.perf_counter()
        try:
            outcome = operation(command)
        except Exception as exc:
            elapsed = _elapsed_ms(start)
            self._transition(command, ExecutionState.FAILED)
            logger.error("Command %s failed after %d ms", command.kind.value, elapsed, exc_info=True)
            return CommandResult.failed(
                f"Command failed: {exc}", error=f"{type(exc).__name__}: {exc}",
            ).with_timing(elapsed)

        elapsed = _elapsed_ms(start)
        if not outcome.success:
            self._transition(command, ExecutionState.FAILED)
            logger.info("Command %s reported failure: %s", command.kind.value, outcome.message)
            return CommandResult.failed(
                outcome.message or f"{command.description} failed", error=outcome.message or None,
            ).with_timing(elapsed)

        message = outcome.message or command.description
        entry = CommandHistoryEntry(
            command_id=command.id,
            user_input=user_input,
            command_kind=command.kind.value,
            description=command.description,
            result_message=message,
            execution_time_ms=elapsed,
            undoable=command.undoable,
            parameters=command.parameters(),
        )
        self._history.append(entry)
        self._transition(command, ExecutionState.SUCCEEDED)
        if command.undoable:
            self._undo_stack.append(entry)
            self._redo_stack.clear()
            entry.state = ExecutionState.PUSHED
            self._transition(command, ExecutionState.PUSHED)
        elif command.kind is CommandKind.CLOSE_PART:
            # The host discards undo history with the document
            self._undo_stack.clear()
            self._redo_stack.clear()

        data = dict(outcome.data)
        if context is not None:
            context.on_command_executed(command, data, user_input)
        logger.info("Command %s completed in %d ms", command.kind.value, elapsed)
        return CommandResult.succeeded(message, data=data).with_timing(elapsed)

    def _run_undo(self, command: CommandBase, context: ConversationContext | None, user_input: str) -> CommandResult:
        return self._route_history(self.undo, command, context, user_input)

    def _run_redo(self, command: CommandBase, context: ConversationContext | None, user_input: str) -> CommandResult:
        return self._route_history(self.redo, command, context, user_input)

    def _route_history(
        self,
        step: Callable[[int], CommandResult],
        command: CommandBase,
        context: ConversationContext | None,
        user_input: str,
    ) -> CommandResult:
        self._transition(command, ExecutionState.EXECUTING)
        result = step(getattr(command, "count", 1))
        self._transition(command, ExecutionState.SUCCEEDED if result.success else ExecutionState.FAILED)
        if result.success and context is not None:
            context.on_command_executed(command, dict(result.data or {}), user_input)
        return result

    def _transition(self, command: CommandBase, state: ExecutionState) -> None:
        self._states.pop(command.id, None)
        self._states[command.id] = state
        while len(self._states) > self._state_limit:
            del self._states[next(iter(self._states))]
        logger.debug("%s %s -> %s", command.kind.value, command.id[:8], state.value)

    # ------------------------------------------------------------------
    # Undo / redo
    # ------------------------------------------------------------------

    def undo(self, count: int = 1) -> CommandResult:
        """Step back *count* undoable commands through the host."""
        return self._step(count, self._undo_stack, self._redo_stack, self._host.undo, undone=True)

    def redo(self, count: int = 1) -> CommandResult:
        return self._step(count, self._redo_stack, self._undo_stack, self._host.redo, undone=False)

    def _step(
        self,
        count: int,
        source: list[CommandHistoryEntry],
        target: list[CommandHistoryEntry],
        host_step: Callable[[], HostResult],
        undone: bool,
    ) -> CommandResult:
        verb = "Undo" if undone else "Redo"
        with self._lock:
            start = time.perf_counter()
            if not source:
                exc = UndoUnavailable(f"Nothing to {verb.lower()}")
                logger.info("%s requested with an empty stack", verb)
                return CommandResult.failed(str(exc), error=f"{type(exc).__name__}: {exc}").with_timing(
                    _elapsed_ms(start)
                )

            moved: list[CommandHistoryEntry] = []
            failure: Optional[str] = None
            for _ in range(max(count, 1)):
                if not source:
                    break
                try:
                    outcome = host_step()
                except Exception as exc:
                    logger.error("Host %s failed", verb.lower(), exc_info=True)
                    failure = f"{type(exc).__name__}: {exc}"
                    break
                if not outcome.success:
                    failure = outcome.message or f"Host could not {verb.lower()}"
                    break
                entry = source.pop()
                entry.undone = undone
                target.append(entry)
                moved.append(entry)

            elapsed = _elapsed_ms(start)
            if not moved:
                return CommandResult.failed(f"{verb} failed: {failure}", error=failure).with_timing(elapsed)

            names = ", ".join(e.description for e in moved)
            message = f"{verb}: {names}"
            if len(moved) < count:
                message += f" ({len(moved)} of {count})"
            logger.info("%s %d command(s)", verb, len(moved))
            return CommandResult.succeeded(
                message, data={"moved": [e.command_id for e in moved]},
            ).with_timing(elapsed)

    # ------------------------------------------------------------------
    # Read access (snapshots)
    # ------------------------------------------------------------------

    @property
    def history(self) -> tuple[CommandHistoryEntry, ...]:
        with self._lock:
            return tuple(e.model_copy() for e in self._history)

    @property
    def undo_stack(self) -> tuple[CommandHistoryEntry, ...]:
        """Bottom to top."""
        with self._lock:
            return tuple(e.model_copy() for e in self._undo_stack)

    @property
    def redo_stack(self) -> tuple[CommandHistoryEntry, ...]:
        with self._lock:
            return tuple(e.model_copy() for e in self._redo_stack)

    @property
    def can_undo(self) -> bool:
        with self._lock:
            return bool(self._undo_stack)

    @property
    def can_redo(self) -> bool:
        with self._lock:
            return bool(self._redo_stack)

    def state_of(self, command_id: str) -> Optional[ExecutionState]:
        with self._lock:
            return self._states.get(command_id)

    def clear(self) -> None:
        """Forget history and both stacks.  The host is not touched."""
        with self._lock:
            self._history.clear()
            self._undo_stack.clear()
            self._redo_stack.clear()
            self._states.clear()
