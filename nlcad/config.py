"""Global configuration: limits, thresholds, defaults."""

# Unit used for bare numbers when no unit token is present
DEFAULT_UNIT = "in"

# Bounded stack of dimensions mentioned in conversation
MAX_RECENT_DIMENSIONS = 10

# Turns included in the context summary sent to the language model
MAX_CONTEXT_TURNS = 5

# Completed previews retained per session
PREVIEW_HISTORY_LIMIT = 10

# Per-command execution states the executor remembers, oldest dropped first
EXECUTION_STATE_LIMIT = 500

# Auto-execution gate: risk must be Low and confidence at least this
AUTO_EXECUTE_MIN_CONFIDENCE = 0.9

# Default step for "make it thicker" when no amount is given
DEFAULT_INCREMENT_FRACTION = 0.1
FALLBACK_INCREMENT_INCHES = 0.5

# Grid (meters) on which dimensions compare and hash equal
DIMENSION_TOLERANCE = 1e-9

# Language-model transport
DEFAULT_MODEL_TIMEOUT = 30.0
DEFAULT_OLLAMA_URL = "http://localhost:11434"
DEFAULT_OLLAMA_MODEL = "mistral"
DEFAULT_OPENAI_URL = "https://api.openai.com/v1"
DEFAULT_OPENAI_MODEL = "gpt-4o"
DEFAULT_ANTHROPIC_URL = "https://api.anthropic.com/v1"
DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-20250514"
ANTHROPIC_API_VERSION = "2023-06-01"
ANTHROPIC_MAX_TOKENS = 1024

# Structured responses below this confidence are not trusted
MIN_INTENT_CONFIDENCE = 0.5

# Rule-based preview confidence levels
RULE_CONFIDENCE_EXTRACTED = 0.9
RULE_CONFIDENCE_KEYWORD = 0.7
RULE_CONFIDENCE_UNKNOWN_ACTION = 0.5
