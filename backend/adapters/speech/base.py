"""
Speech source contract.

This module defines the *interface only*: the signals a recognizer
produces and the source that streams them. No orchestration decisions
live here.

Key invariants:
- Run IDs are owned by the orchestrator. Sources never generate or mutate
  run IDs.
- A run's stream yields zero or more Listening signals and then exactly one
  terminal signal (FinalText, Cancelled or Failed), after which it ends.
- stop(run_id) asks the recognizer to finish; the terminal signal still
  arrives through the stream.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Union


# =============================================================================
# Signals
# =============================================================================

@dataclass(frozen=True)
class Listening:
    """Recognizer is ready and capturing audio."""


@dataclass(frozen=True)
class FinalText:
    """Final recognized utterance (may be blank)."""
    text: str


@dataclass(frozen=True)
class Cancelled:
    """Recognition ended without usable text."""


@dataclass(frozen=True)
class Failed:
    """Recognizer error, already turned into readable text."""
    message: str


SpeechSignal = Union[Listening, FinalText, Cancelled, Failed]

TERMINAL_SIGNALS = (FinalText, Cancelled, Failed)


# =============================================================================
# Recognizer error codes
# =============================================================================

NO_MATCH_CODE = "no_match"

SPEECH_ERROR_MESSAGES: dict[str, str] = {
    "audio": "Audio recording error.",
    "client": "Speech recognition client error.",
    "insufficient_permissions": "Microphone permission is required.",
    "network": "Network error during speech recognition.",
    "network_timeout": "Speech recognition network timeout.",
    NO_MATCH_CODE: "Nothing was recognized.",
    "recognizer_busy": "Speech recognizer is busy.",
    "server": "Speech recognition server error.",
    "speech_timeout": "No speech was heard.",
}


def describe_speech_error(code: str | None, message: str | None = None) -> str:
    """Readable text for a recognizer error code (or a free-form message)."""
    if code and code in SPEECH_ERROR_MESSAGES:
        return SPEECH_ERROR_MESSAGES[code]
    if message:
        return message
    if code:
        return f"Speech recognition error ({code})."
    return "Speech recognition error."


# =============================================================================
# Source
# =============================================================================

class SpeechSource(ABC):
    """
    Abstract interface for a speech recognition source.

    Non-responsibilities:
    - No state machine logic (IDLE/LISTENING/etc.)
    - No timers owned by the reducer
    - No direct interaction with the agent
    """

    @abstractmethod
    def listen(self, run_id: int) -> AsyncIterator[SpeechSignal]:
        """
        Start recognition for run_id and stream its signals.

        Starting a new run ends any previous run's stream with Cancelled.
        """
        raise NotImplementedError

    @abstractmethod
    async def stop(self, run_id: int) -> None:
        """
        Ask the recognizer to finish run_id.

        Contract:
        - Idempotent; unknown or finished run_ids are a no-op.
        """
        raise NotImplementedError
