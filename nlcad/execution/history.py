"""Execution history records."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExecutionState(str, Enum):
    """Lifecycle of one command in the executor."""

    CREATED = "Created"
    EXECUTING = "Executing"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    PUSHED = "Pushed"
    """Succeeded and placed on the undo stack."""


class CommandHistoryEntry(BaseModel):
    """One successful execution.  ``undone`` is the only field that changes."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    command_id: str
    executed_at: datetime = Field(default_factory=_utc_now)
    user_input: str = ""
    command_kind: str
    description: str
    success: bool = True
    result_message: str = ""
    execution_time_ms: int = 0
    undoable: bool = False
    undone: bool = False
    state: ExecutionState = ExecutionState.SUCCEEDED
    parameters: dict[str, Any] = Field(default_factory=dict)

    def display(self) -> str:
        status = "undone" if self.undone else ("ok" if self.success else "failed")
        return f"{self.executed_at.strftime('%H:%M:%S')} [{status}] {self.description} ({self.execution_time_ms} ms)"
