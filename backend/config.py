"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No orchestration logic
- No protocol constants
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from constants import (
    AGENT_HTTP_TIMEOUT_S_DEFAULT,
    DEFAULT_LANGUAGE,
    DEFAULT_PLAIN_TEXT_AGENTS,
    DEFAULT_TIMEZONE,
)


def _split_names(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return DEFAULT_PLAIN_TEXT_AGENTS
    names = tuple(n.strip() for n in raw.split(",") if n.strip())
    return names or DEFAULT_PLAIN_TEXT_AGENTS


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to the gateway, which wires sessions from it.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str = "dev"
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool = True

    # ------------------------------------------------------------------
    # Remote agent
    # ------------------------------------------------------------------

    agent_base_url: str = "http://localhost:8080"
    agent_api_token: str | None = None
    agent_http_timeout_s: float = AGENT_HTTP_TIMEOUT_S_DEFAULT
    plain_text_agents: tuple[str, ...] = DEFAULT_PLAIN_TEXT_AGENTS

    # Non-empty suggestions => ASKING instead of RESULT
    asking_on_suggestions: bool = True

    # ------------------------------------------------------------------
    # User defaults (until the client reports its own)
    # ------------------------------------------------------------------

    default_timezone: str = DEFAULT_TIMEZONE
    default_language: str = DEFAULT_LANGUAGE

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Raises:
            ValueError if AGENT_HTTP_TIMEOUT_S is not a number.
        """
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),

            enable_json_logs=os.environ.get("ENABLE_JSON_LOGS", "1") == "1",

            agent_base_url=os.environ.get("AGENT_BASE_URL", "http://localhost:8080"),
            agent_api_token=os.environ.get("AGENT_API_TOKEN"),
            agent_http_timeout_s=float(
                os.environ.get("AGENT_HTTP_TIMEOUT_S", str(AGENT_HTTP_TIMEOUT_S_DEFAULT))
            ),
            plain_text_agents=_split_names(os.environ.get("AGENT_PLAIN_TEXT_NAMES")),
            asking_on_suggestions=os.environ.get("ASKING_ON_SUGGESTIONS", "1") == "1",

            default_timezone=os.environ.get("DEFAULT_TIMEZONE", DEFAULT_TIMEZONE),
            default_language=os.environ.get("DEFAULT_LANGUAGE", DEFAULT_LANGUAGE),
        )
