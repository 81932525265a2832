"""Application-wide constants.

This module centralizes all magic numbers and configuration constants
to ensure a single source of truth and easier maintenance.

Constants are organized by category. Most of them can be overridden
through Settings (see src/config.py).
"""

# =============================================================================
# Message Constraints
# =============================================================================

# Maximum allowed input message length (chars)
MAX_MESSAGE_LENGTH_CHARS = 1000

# =============================================================================
# Session Admission
# =============================================================================

# Maximum number of distinct sessions processed concurrently
MAX_CONCURRENT_SESSIONS = 2

# =============================================================================
# Escalation Gates
# =============================================================================

# Tool failures per (session, intent) before requests are escalated
FAILURE_ESCALATION_THRESHOLD = 2

# Allowed range for an agent's confidence threshold
MIN_CONFIDENCE_THRESHOLD = 0.5
MAX_CONFIDENCE_THRESHOLD = 0.9

# Threshold given to newly created agents
DEFAULT_CONFIDENCE_THRESHOLD = 0.7

# =============================================================================
# Completion Service
# =============================================================================

# Upper bound for a single classification or generation call (seconds)
COMPLETION_TIMEOUT_SECONDS = 30.0

# Sampling temperatures
CLASSIFICATION_TEMPERATURE = 0.3
GENERATION_TEMPERATURE = 0.7

# Maximum tokens requested from the model per completion
COMPLETION_MAX_TOKENS = 500

# =============================================================================
# Tool Simulation
# =============================================================================

# Simulated latency ranges (milliseconds, inclusive)
ORDER_LOOKUP_DELAY_MS = (100, 300)
CREATE_TICKET_DELAY_MS = (150, 400)

# Probability that order_lookup reports the service as unavailable
ORDER_LOOKUP_FAILURE_RATE = 0.2

# Minimum ticket description length accepted by create_ticket
MIN_TICKET_DESCRIPTION_CHARS = 10

# Category assigned to tickets extracted from free text
DEFAULT_TICKET_CATEGORY = "general"

# =============================================================================
# FAQ Matching
# =============================================================================

# Question words at or below this length are not treated as keywords
FAQ_KEYWORD_MIN_EXCLUSIVE_LENGTH = 3

# Fraction of keywords (rounded up) that must appear in the message
FAQ_KEYWORD_MATCH_RATIO = 0.5

# =============================================================================
# Conversation Logs
# =============================================================================

# Maximum number of log entries returned by the log query endpoint
MAX_LOG_QUERY_RESULTS = 100
