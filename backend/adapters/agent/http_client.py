"""HTTP agent client"""
from __future__ import annotations

import time
from typing import Any

import httpx

from adapters.agent.base import AgentClient
from adapters.agent.errors import (
    AuthorizationRequired,
    NetworkFailure,
    ServerFailure,
    UnknownFailure,
)
from constants import AGENT_CHAT_PATH, AGENT_SESSION_PATH, PAYLOAD_PREVIEW_CHARS
from observability.logger import log_event


class HttpAgentClient(AgentClient):
    """
    Concrete agent client over HTTP (httpx).

    Design notes:
    - One client instance serves one session; requests carry the
      session_id so the remote agent keeps per-conversation memory.
    - Every request is authorized with a bearer token. Without a token
      nothing is sent and AuthorizationRequired is raised.
    - Client does NOT:
        - Retry
        - Decode envelopes
        - Manage timers
        - Decide orchestration outcomes
    """

    def __init__(
        self,
        *,
        base_url: str,
        token: str | None,
        session_id: str,
        timeout_s: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            base_url:
                Root URL of the agent API.
            token:
                Bearer token; None means the user is not authorized.
            session_id:
                Session identifier sent with every request and used for
                logging/correlation.
            timeout_s:
                Total timeout per request.
            transport:
                Optional httpx transport (tests pass httpx.MockTransport).
        """
        self._token = token
        self._session_id = session_id
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_s,
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def send_message(self, text: str, user_context: dict[str, str]) -> Any:
        response = await self._request(
            "POST",
            AGENT_CHAT_PATH,
            json={
                "session_id": self._session_id,
                "message": text,
                "context": user_context,
            },
        )

        try:
            return response.json()
        except ValueError as exc:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "agent_response_not_json",
                "session_id": self._session_id,
                "body_preview": response.text[:PAYLOAD_PREVIEW_CHARS],
            }, level="warning")
            raise UnknownFailure(f"response is not JSON ({exc})") from exc

    async def clear_session(self) -> None:
        await self._request("DELETE", f"{AGENT_SESSION_PATH}/{self._session_id}")

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        if not self._token:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "agent_request_unauthorized",
                "session_id": self._session_id,
                "path": path,
            }, level="warning")
            raise AuthorizationRequired()

        try:
            response = await self._client.request(
                method,
                path,
                headers={"Authorization": f"Bearer {self._token}"},
                **kwargs,
            )
        except httpx.TransportError as exc:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "agent_network_error",
                "session_id": self._session_id,
                "path": path,
                "error": str(exc),
                "error_type": type(exc).__name__,
            }, level="error")
            raise NetworkFailure(str(exc) or type(exc).__name__) from exc
        except httpx.HTTPError as exc:
            raise UnknownFailure(str(exc) or type(exc).__name__) from exc

        if response.is_success:
            return response

        detail = _error_detail(response)
        log_event({
            "ts_ms": _now_ms(),
            "event_type": "agent_server_error",
            "session_id": self._session_id,
            "path": path,
            "status_code": response.status_code,
            "detail": detail,
        }, level="error")
        raise ServerFailure(response.status_code, detail)


def _error_detail(response: httpx.Response) -> str:
    """Return the JSON "detail" of an error body, or "" when there is none."""
    try:
        body = response.json()
    except ValueError:
        return ""
    if isinstance(body, dict) and isinstance(body.get("detail"), str):
        return body["detail"]
    return ""


def _now_ms() -> int:
    return time.time_ns() // 1_000_000
