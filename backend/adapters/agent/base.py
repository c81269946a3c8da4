"""
Agent client contract.

Purpose:
- Define the interface for talking to the remote conversational agent.
- Keep orchestration, decoding, retries and timing OUT of the client.

Rules:
- This file contains NO logic.
- send_message returns the parsed JSON body untouched; decoding the
  envelope is the reducer's job.
- Failures are raised as AgentTransportError subclasses.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class AgentClient(ABC):
    """
    Abstract base class for agent clients.

    The client is a *dumb pipe*:
    text + user context -> remote agent -> raw JSON envelope.
    """

    @abstractmethod
    async def send_message(self, text: str, user_context: dict[str, str]) -> Any:
        """
        Send one user message.

        Contract:
        - Returns the parsed JSON body of a 2xx response.
        - Raises AgentTransportError (or a subclass) on any failure.
        - Must NOT retry internally.
        """
        raise NotImplementedError

    @abstractmethod
    async def clear_session(self) -> None:
        """
        Ask the remote agent to forget the conversation.

        Raises AgentTransportError on failure.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release transport resources. Default: nothing to release."""
        return None
