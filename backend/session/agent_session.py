"""
Agent session container.

- Owns the collaborators of one connected client
- Owns the outbound control queue
- Owned and mutated by SessionGateway
- NOT a state machine
- Contains no orchestration logic
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from context.user_context import UserContext, build_user_context
from orchestrator.runtime import Runtime


# ---------------------------------------------------------------------
# AgentSession
# ---------------------------------------------------------------------


@dataclass
class AgentSession:
    """Mutable runtime container for a single client session."""

    # ------------------------------------------------------------------
    # Identity / lifecycle
    # ------------------------------------------------------------------

    session_id: str
    created_at: float = field(default_factory=time.time)

    # ------------------------------------------------------------------
    # User locale
    # ------------------------------------------------------------------

    timezone: str | None = None
    language: str | None = None

    # ------------------------------------------------------------------
    # Runtime (executes commands + owns authoritative state)
    # ------------------------------------------------------------------

    runtime: Runtime | None = None

    # ------------------------------------------------------------------
    # Collaborators (concrete, side-effectful)
    # ------------------------------------------------------------------

    agent_client: Any = None  # AgentClientProtocol in practice
    speech_source: Any = None  # SpeechSourceProtocol in practice
    calendar_source: Any = None  # CalendarSourceProtocol in practice
    calendar: Any = None  # CalendarService in practice

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def __post_init__(self) -> None:
        self._control_out: deque[dict[str, Any]] = deque()
        self._control_ready = asyncio.Event()

    # ------------------------------------------------------------------
    # Wiring helpers (called by SessionGateway)
    # ------------------------------------------------------------------

    def attach_runtime(self, runtime: Runtime) -> None:
        """
        Attach the runtime executor.

        Must be called after collaborators are attached.
        """
        self.runtime = runtime

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    def user_context(self) -> UserContext:
        """Context for the next agent message."""
        glance_date = self.calendar.glance_date if self.calendar is not None else None
        return build_user_context(
            timezone_name=self.timezone,
            glance_date=glance_date,
            language=self.language,
        )

    # ------------------------------------------------------------------
    # Control queue
    # ------------------------------------------------------------------

    def enqueue_control(self, msg: dict[str, Any]) -> None:
        """
        Enqueue a control message for gateway delivery to the client.

        Messages are buffered in FIFO order and later retrieved via
        drain_control().
        """
        self._control_out.append(msg)
        self._control_ready.set()

    def drain_control(self) -> tuple[dict[str, Any], ...]:
        """
        Atomically drain all pending control messages.

        Returns:
            A FIFO-ordered tuple of control messages. Returns an empty
            tuple if no messages are pending.

        After this call, the control queue is empty.
        """
        self._control_ready.clear()
        if not self._control_out:
            return ()
        out = tuple(self._control_out)
        self._control_out.clear()
        return out

    async def wait_control(self) -> tuple[dict[str, Any], ...]:
        """Wait until at least one control message is pending, then drain."""
        await self._control_ready.wait()
        return self.drain_control()
