"""Chart data models for Karaoke Core.

A chart is the beat-indexed note and lyric timeline for one singing track.
These models are immutable once loaded; the timeline derives absolute
millisecond windows from them.
"""

from dataclasses import dataclass, field
from enum import Enum


class NoteType(str, Enum):
    """How a note is judged."""

    NORMAL = "normal"
    GOLDEN = "golden"
    FREESTYLE = "freestyle"
    RAP = "rap"
    GOLDEN_RAP = "goldenrap"

    @property
    def is_golden(self) -> bool:
        return self in (NoteType.GOLDEN, NoteType.GOLDEN_RAP)

    @property
    def is_rap(self) -> bool:
        return self in (NoteType.RAP, NoteType.GOLDEN_RAP)


@dataclass(frozen=True)
class Note:
    """A pitched lyric syllable as stored in the chart."""

    note_type: NoteType
    start_beat: float
    length_beats: float
    pitch: int  # signed semitone offset, 0 = middle C
    text: str = ""


@dataclass(frozen=True)
class LineBreak:
    """Phrase boundary marker."""

    start_beat: float
    end_beat: float | None = None


@dataclass(frozen=True)
class Chart:
    """Notes and line breaks of one track plus its tempo information."""

    notes: tuple[Note, ...]
    line_breaks: tuple[LineBreak, ...]
    bpm: float  # chart units, one quarter of the nominal tempo
    gap_ms: float = 0.0  # silence before beat 0


@dataclass(frozen=True)
class GameNote:
    """A Note placed on the absolute time axis."""

    index: int  # position within its track
    note: Note
    start_time_ms: float
    end_time_ms: float

    @property
    def note_type(self) -> NoteType:
        return self.note.note_type

    @property
    def pitch(self) -> int:
        return self.note.pitch

    @property
    def length_beats(self) -> float:
        return self.note.length_beats

    @property
    def text(self) -> str:
        return self.note.text


@dataclass(frozen=True)
class Phrase:
    """A lyric line: the notes between two line breaks."""

    index: int
    notes: tuple[GameNote, ...]
    start_time_ms: float
    end_time_ms: float
    line_break: LineBreak | None = None  # the break that opened this phrase

    @property
    def text(self) -> str:
        return "".join(n.text for n in self.notes)


@dataclass(frozen=True)
class SongMetadata:
    """Catalog metadata the scoring core needs."""

    title: str
    artist: str
    bpm: float
    gap_ms: float = 0.0
    duet_singer_p1: str | None = None
    duet_singer_p2: str | None = None


@dataclass(frozen=True)
class Song:
    """A song record as delivered by the catalog."""

    id: str
    metadata: SongMetadata
    notes: tuple[Note, ...]
    line_breaks: tuple[LineBreak, ...] = ()
    notes_p2: tuple[Note, ...] | None = None
    line_breaks_p2: tuple[LineBreak, ...] | None = None
    extra: dict[str, object] = field(default_factory=dict, compare=False, hash=False)

    @property
    def is_duet(self) -> bool:
        return bool(self.notes_p2)

    def charts(self) -> dict[int, Chart]:
        """Return one Chart per track, keyed by track number (1, and 2 for duets)."""
        charts = {
            1: Chart(
                notes=self.notes,
                line_breaks=self.line_breaks,
                bpm=self.metadata.bpm,
                gap_ms=self.metadata.gap_ms,
            )
        }
        if self.notes_p2:
            charts[2] = Chart(
                notes=self.notes_p2,
                line_breaks=self.line_breaks_p2 or (),
                bpm=self.metadata.bpm,
                gap_ms=self.metadata.gap_ms,
            )
        return charts
