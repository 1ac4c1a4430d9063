"""Command execution: host contract, reference host, executor."""

from nlcad.execution.executor import CommandExecutor
from nlcad.execution.history import CommandHistoryEntry, ExecutionState
from nlcad.execution.host import CadHost, HostResult
from nlcad.execution.mock import InMemoryCadHost

__all__ = [
    "CadHost",
    "CommandExecutor",
    "CommandHistoryEntry",
    "ExecutionState",
    "HostResult",
    "InMemoryCadHost",
]
