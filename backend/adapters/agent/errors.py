"""
Agent transport errors.

Every failure of a round trip to the remote agent is raised as an
AgentTransportError carrying its FailureType. The runtime turns these into
AgentFailure events; nothing here is retried.
"""

from __future__ import annotations

from orchestrator.failures import FailureType


class AgentTransportError(Exception):
    """Base class for agent round-trip failures."""

    failure_type: FailureType = FailureType.UNKNOWN

    def __init__(self, reason: str, *, status_code: int | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code


class NetworkFailure(AgentTransportError):
    """No HTTP response was received."""

    failure_type = FailureType.NETWORK


class ServerFailure(AgentTransportError):
    """Non-2xx HTTP response. reason holds the server's detail, if any."""

    failure_type = FailureType.SERVER

    def __init__(self, code: int, detail: str = "") -> None:
        super().__init__(detail, status_code=code)
        self.code = code


class AuthorizationRequired(AgentTransportError):
    """No backend token is configured; the request was not sent."""

    failure_type = FailureType.AUTHORIZATION

    def __init__(self) -> None:
        super().__init__("no backend token")


class UnknownFailure(AgentTransportError):
    """Anything else, such as a 2xx response whose body is not JSON."""

    failure_type = FailureType.UNKNOWN
