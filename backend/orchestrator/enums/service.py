"""
Service enumeration for run-id versioned external work.

Rules:
- This enum identifies versioned external services only.
- It must NOT encode behavior or lifecycle rules.
- Reducer logic decides how services are started and abandoned.
"""

from __future__ import annotations

from enum import Enum


class Service(str, Enum):
    """
    External, versioned collaborators driven by the orchestrator.

    Each service:
    - Has at most one active run at a time
    - Is identified by a monotonically increasing run_id
    """

    SPEECH = "SPEECH"
    AGENT = "AGENT"
