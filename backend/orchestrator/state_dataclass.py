"""
Authoritative orchestrator state container.

Rules:
- This dataclass is a pure data model.
- It contains ALL state the reducer may ever need.
- No behavior, no helpers, no derived logic.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from content.models import AgentResponseContent
from envelope.decoder import DEFAULT_REGISTRY, AgentRegistry
from orchestrator.enums.state import ConversationState
from orchestrator.run_ids import RunIds


# =============================================================================
# Orchestrator State
# =============================================================================

@dataclass(frozen=True)
class OrchestratorState:
    """Immutable snapshot of all orchestrator-owned state."""

    # ------------------------------------------------------------------
    # Control state
    # ------------------------------------------------------------------
    state: ConversationState = ConversationState.IDLE

    # Incremented on every state change. Timers are stamped with the
    # generation they were armed in and are dropped once it moves on.
    generation: int = 0

    # ------------------------------------------------------------------
    # Presented content
    # ------------------------------------------------------------------
    # Present exactly in RESULT / ASKING / ERROR (ERROR may also carry
    # decode-error content).
    content: AgentResponseContent | None = None

    # Human-readable error text while in ERROR.
    message_text: str | None = None

    # ------------------------------------------------------------------
    # Run/version tracking
    # ------------------------------------------------------------------
    active_runs: RunIds = field(default_factory=RunIds)

    # Text currently in flight to the agent (THINKING only).
    pending_user_text: str = ""

    # ------------------------------------------------------------------
    # Error handling
    # ------------------------------------------------------------------
    last_error: str | None = None

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------
    # When True, a text response that carries suggestions lands in ASKING
    # instead of RESULT.
    asking_on_suggestions: bool = True

    agent_registry: AgentRegistry = DEFAULT_REGISTRY
