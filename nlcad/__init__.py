"""nlcad: natural-language commands for parametric CAD."""

__version__ = "1.0.0"

from nlcad.commands import Command, CommandKind, CommandResult, command_adapter
from nlcad.context import ConversationContext
from nlcad.execution import CadHost, CommandExecutor, InMemoryCadHost
from nlcad.nlp import RuleBasedParser, StructuredInterpreter
from nlcad.nlp.providers import LLMProvider, OfflineProvider, create_provider
from nlcad.preview import CommandPreviewResult, PreviewEngine, RiskLevel, format_preview
from nlcad.session import Session, SessionResponse
from nlcad.settings import Settings, SettingsManager, configure_logging
from nlcad.units import Dimension, Unit

__all__ = [
    "__version__",
    # Units and commands
    "Command",
    "CommandKind",
    "CommandResult",
    "Dimension",
    "Unit",
    "command_adapter",
    # Interpretation
    "ConversationContext",
    "LLMProvider",
    "OfflineProvider",
    "RuleBasedParser",
    "StructuredInterpreter",
    "create_provider",
    # Preview and execution
    "CadHost",
    "CommandExecutor",
    "CommandPreviewResult",
    "InMemoryCadHost",
    "PreviewEngine",
    "RiskLevel",
    "format_preview",
    # Session and configuration
    "Session",
    "SessionResponse",
    "Settings",
    "SettingsManager",
    "configure_logging",
]
