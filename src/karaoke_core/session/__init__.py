"""Session orchestration for Karaoke Core."""

from karaoke_core.session.events import (
    NoteCompleted,
    PhraseChanged,
    PitchUpdated,
    SessionEnded,
    SessionEvent,
    StateChanged,
    TimeUpdated,
)
from karaoke_core.session.media import MediaPlayer, SimulatedMediaPlayer
from karaoke_core.session.orchestrator import Session

__all__ = [
    "MediaPlayer",
    "NoteCompleted",
    "PhraseChanged",
    "PitchUpdated",
    "Session",
    "SessionEnded",
    "SessionEvent",
    "SimulatedMediaPlayer",
    "StateChanged",
    "TimeUpdated",
]
