"""Outbound session events.

The session never calls back into its host. It appends events to a queue
that the host drains once per tick, so ordering is kept without the core
holding on to caller closures.
"""

from collections import deque
from dataclasses import dataclass

from karaoke_core.models.chart import Phrase
from karaoke_core.models.session import NoteResult, SessionState


@dataclass(frozen=True)
class SessionEvent:
    """Base class for everything the session emits."""


@dataclass(frozen=True)
class StateChanged(SessionEvent):
    state: SessionState


@dataclass(frozen=True)
class TimeUpdated(SessionEvent):
    time_ms: float
    beat: float


@dataclass(frozen=True)
class PhraseChanged(SessionEvent):
    track: int
    phrase: Phrase | None


@dataclass(frozen=True)
class PitchUpdated(SessionEvent):
    player_id: int
    time_ms: float
    frequency_hz: float


@dataclass(frozen=True)
class NoteCompleted(SessionEvent):
    player_id: int
    track: int
    result: NoteResult


@dataclass(frozen=True)
class SessionEnded(SessionEvent):
    reason: str  # "media_ended", "stopped" or "skipped"


class EventQueue:
    """FIFO of pending events."""

    def __init__(self) -> None:
        self._events: deque[SessionEvent] = deque()

    def __len__(self) -> int:
        return len(self._events)

    def emit(self, event: SessionEvent) -> None:
        self._events.append(event)

    def drain(self) -> list[SessionEvent]:
        events = list(self._events)
        self._events.clear()
        return events
