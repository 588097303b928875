"""Data models for Karaoke Core."""

from karaoke_core.models.chart import (
    Chart,
    GameNote,
    LineBreak,
    Note,
    NoteType,
    Phrase,
    Song,
    SongMetadata,
)
from karaoke_core.models.session import (
    NoteResult,
    PitchSample,
    PlayerState,
    PlayerSummary,
    SessionState,
)

__all__ = [
    "Chart",
    "GameNote",
    "LineBreak",
    "Note",
    "NoteResult",
    "NoteType",
    "Phrase",
    "PitchSample",
    "PlayerState",
    "PlayerSummary",
    "SessionState",
    "Song",
    "SongMetadata",
]
