"""
Transport failure classification.

Purpose:
- Name the ways a network round trip to the agent can fail
- Turn a failure into the text shown in the ERROR state

This module contains NO timers, NO async, NO side effects.
Failures are surfaced, never retried here: retry is a new user
interaction.
"""
from __future__ import annotations

from enum import Enum


class FailureType(str, Enum):
    """
    Failure classification reported by the agent client.

    NETWORK:
        The request never produced an HTTP response
        (connection refused, DNS, timeout).

    SERVER:
        The server answered with a non-2xx status code.

    AUTHORIZATION:
        No backend token was available; nothing was sent.

    UNKNOWN:
        Anything else (unreadable body, unexpected client error).
    """

    NETWORK = "network"
    SERVER = "server"
    AUTHORIZATION = "authorization"
    UNKNOWN = "unknown"


def describe_failure(
    failure: FailureType,
    *,
    reason: str,
    status_code: int | None = None,
) -> str:
    """
    Human-readable failure text for the ERROR state.
    """
    if failure is FailureType.NETWORK:
        return f"Network issue: {reason}"

    if failure is FailureType.SERVER:
        code = status_code if status_code is not None else "?"
        if not reason:
            return f"Server error: {code}"
        return f"Server error: {code}. {reason}"

    if failure is FailureType.AUTHORIZATION:
        return "Authorization needed"

    return f"Unknown error: {reason}"
