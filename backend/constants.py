"""
CONSTANTS-AS-CONTRACT
---------------------
Single source of truth for all behavioral numbers and wire names.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final, Tuple

# =============================================================================
# Presentation timeouts
# =============================================================================

# How long a finished answer stays on screen before auto-returning to IDLE
RESULT_TIMEOUT_MS: Final[int] = 5_000

# Follow-up questions get longer so the user can pick a suggestion
ASKING_TIMEOUT_MS: Final[int] = 15_000

# ERROR is not terminal: it resolves back to IDLE on its own
ERROR_AUTO_RESOLVE_DELAY_MS: Final[int] = 5_000

# =============================================================================
# Envelope wire format
# =============================================================================

ENVELOPE_AGENT_FIELD: Final[str] = "agent"
ENVELOPE_RESPONSE_FIELD: Final[str] = "response"

PRESENTATION_AGENT: Final[str] = "PresentationLayer"

PLANNER_AGENTS: Final[Tuple[str, ...]] = (
    "TacticAgent",
    "StrategyAgent",
)

# Agents whose "response" is a bare JSON string.
# Deployment may override this list (AGENT_PLAIN_TEXT_NAMES).
DEFAULT_PLAIN_TEXT_AGENTS: Final[Tuple[str, ...]] = (
    "Orchestrator",
    "ConversationAgent",
    "CalendarAgent",
    "SearchAgent",
)

PLAN_TYPE_FIELD: Final[str] = "response_type"
PLAN_TYPE_DAYS: Final[str] = "days_plan"
PLAN_TYPE_SUGGESTIONS: Final[str] = "suggestion_plan"

PREVIEW_ACTION_KEYS: Final[Tuple[str, ...]] = (
    "search",
    "update",
    "create",
    "delete",
)

# =============================================================================
# Outbound agent API
# =============================================================================

AGENT_CHAT_PATH: Final[str] = "/agent/chat"
AGENT_SESSION_PATH: Final[str] = "/agent/session"
AGENT_HTTP_TIMEOUT_S_DEFAULT: Final[float] = 30.0

# Served from the same backend root as the agent API
CALENDAR_EVENTS_RANGE_PATH: Final[str] = "/calendar/events/range"

USER_CONTEXT_TIMEZONE_KEY: Final[str] = "user:timezone"
USER_CONTEXT_OFFSET_KEY: Final[str] = "user:timezone_offset"
USER_CONTEXT_GLANCE_DATE_KEY: Final[str] = "user:glance_date"
USER_CONTEXT_LANGUAGE_KEY: Final[str] = "user:language"

# =============================================================================
# Client session
# =============================================================================

DEFAULT_TIMEZONE: Final[str] = "UTC"
DEFAULT_LANGUAGE: Final[str] = "en"

# Preview length used when logging unparseable inbound payloads
PAYLOAD_PREVIEW_CHARS: Final[int] = 100
