"""
Authoritative conversation state enumeration.

Rules:
- This enum defines ONLY the control-plane states.
- No behavior, no helper methods, no side effects.
- Transitions are defined exclusively in the reducer.
"""

from __future__ import annotations

from enum import Enum


class ConversationState(str, Enum):
    """
    Lifecycle of a single conversation with the remote agent.

    IDLE is the only rest state. RESULT, ASKING and ERROR always have an
    outbound edge back to IDLE (timeout or dismissal).
    """

    IDLE = "IDLE"
    LISTENING = "LISTENING"
    THINKING = "THINKING"
    ASKING = "ASKING"
    RESULT = "RESULT"
    ERROR = "ERROR"
