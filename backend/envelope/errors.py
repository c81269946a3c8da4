"""
Envelope decode errors.

All decode errors are recoverable: they become ErrorContent and the
conversation enters ERROR, never a crash and never an automatic retry.
"""

from __future__ import annotations


class DecodeError(Exception):
    """Base class for envelope decode errors."""


class MalformedEnvelope(DecodeError):
    """
    Raised when the body is not an object or lacks a string "agent" field.
    """


class MalformedPayload(DecodeError):
    """
    Raised when a recognized agent's payload is missing required fields
    or carries values of the wrong type.
    """

    def __init__(self, agent_name: str, detail: str) -> None:
        super().__init__(f"{agent_name}: {detail}")
        self.agent_name = agent_name
        self.detail = detail


class MalformedPreview(DecodeError):
    """
    Raised when a preview entry carries none, or more than one, of the
    known action keys (or a non-list id collection).
    """

    def __init__(self, preview_key: str, detail: str) -> None:
        super().__init__(f"preview '{preview_key}': {detail}")
        self.preview_key = preview_key
        self.detail = detail


class UnknownAgentType(DecodeError):
    """Raised when the envelope names an agent this client cannot decode."""

    def __init__(self, agent_name: str) -> None:
        super().__init__(f"unknown agent type: {agent_name!r}")
        self.agent_name = agent_name


class UnknownPlanType(DecodeError):
    """
    Raised when a planner agent's "response_type" is absent or not one of
    the recognized plan types. plan_type is None when the field is absent.
    """

    def __init__(self, agent_name: str, plan_type: str | None) -> None:
        super().__init__(f"unknown plan type {plan_type!r} from {agent_name!r}")
        self.agent_name = agent_name
        self.plan_type = plan_type
