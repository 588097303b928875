"""Session state models for Karaoke Core.

These models track each player's pitch samples and per-note results while a
song is being sung.
"""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum


class SessionState(str, Enum):
    """Lifecycle of a single sing-through of a song."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    PLAYING = "playing"
    PAUSED = "paused"
    FINISHED = "finished"


@dataclass(frozen=True)
class PitchSample:
    """One tracked pitch reading."""

    time_ms: float
    frequency_hz: float  # <= 0 means no pitch detected

    @property
    def is_voiced(self) -> bool:
        return self.frequency_hz > 0


@dataclass
class NoteResult:
    """Score of one note for one player."""

    note_index: int
    max_points: int
    earned_points: int
    accuracy: float  # 0.0-1.0
    samples: list[PitchSample] = field(default_factory=list)


@dataclass
class PlayerState:
    """Per-player scoring state for the lifetime of a session."""

    id: int
    input_id: str  # scorable input the player sings into
    track: int = 1
    score: int = 0
    current_pitch_hz: float = -1.0
    pitch_history: deque[PitchSample] = field(default_factory=deque)
    note_results: dict[int, NoteResult] = field(default_factory=dict)

    # Note currently collecting samples, and its buffer
    active_note_index: int | None = None
    pending_samples: list[PitchSample] = field(default_factory=list)

    def record_result(self, result: NoteResult) -> None:
        """Store a closed note's result and add it to the running score."""
        self.note_results[result.note_index] = result
        self.score += result.earned_points

    def trim_history(self, cutoff_ms: float) -> None:
        """Drop history samples at or before cutoff_ms."""
        while self.pitch_history and self.pitch_history[0].time_ms <= cutoff_ms:
            self.pitch_history.popleft()


@dataclass
class PlayerSummary:
    """Final standing of one player."""

    player_id: int
    input_id: str
    track: int
    score: int
    max_score: int
    notes_scored: int

    @property
    def percentage(self) -> float:
        if self.max_score <= 0:
            return 0.0
        return 100.0 * self.score / self.max_score
