"""Chart timeline - places a beat-indexed chart on the millisecond axis."""

from karaoke_core.models.chart import Chart, GameNote, LineBreak, Note, Phrase
from karaoke_core.scoring.scorer import Scorer

# Phrase display window defaults (ms)
DEFAULT_PHRASE_LEAD_IN_MS = 2000.0
DEFAULT_PHRASE_LINGER_MS = 500.0


def ms_per_beat(bpm: float) -> float:
    """Milliseconds per chart beat. Chart BPM is a quarter of the nominal tempo."""
    return 60000.0 / (bpm * 4)


def beat_to_ms(beat: float, bpm: float, gap_ms: float) -> float:
    return gap_ms + beat * ms_per_beat(bpm)


def ms_to_beat(time_ms: float, bpm: float, gap_ms: float) -> float:
    return (time_ms - gap_ms) / ms_per_beat(bpm)


class ChartTimeline:
    """Answers note and phrase queries for one track against a clock reading.

    Each track of a duet gets its own timeline; timelines never look at each
    other, they only share the clock value passed in by the caller.
    """

    def __init__(
        self,
        phrase_lead_in_ms: float = DEFAULT_PHRASE_LEAD_IN_MS,
        phrase_linger_ms: float = DEFAULT_PHRASE_LINGER_MS,
    ) -> None:
        self.phrase_lead_in_ms = phrase_lead_in_ms
        self.phrase_linger_ms = phrase_linger_ms
        self.bpm = 0.0
        self.gap_ms = 0.0
        self._notes: list[GameNote] = []
        self._phrases: list[Phrase] = []

    @classmethod
    def from_chart(cls, chart: Chart, **kwargs: float) -> "ChartTimeline":
        timeline = cls(**kwargs)
        timeline.load(chart.notes, chart.line_breaks, chart.bpm, chart.gap_ms)
        return timeline

    def load(
        self,
        notes: tuple[Note, ...] | list[Note],
        line_breaks: tuple[LineBreak, ...] | list[LineBreak],
        bpm: float,
        gap_ms: float,
    ) -> None:
        """Convert notes to absolute time and group them into phrases."""
        if bpm <= 0:
            raise ValueError(f"bpm must be positive, got {bpm}")
        self.bpm = bpm
        self.gap_ms = gap_ms
        self._notes = [
            GameNote(
                index=i,
                note=note,
                start_time_ms=beat_to_ms(note.start_beat, bpm, gap_ms),
                end_time_ms=beat_to_ms(note.start_beat + note.length_beats, bpm, gap_ms),
            )
            for i, note in enumerate(notes)
        ]
        self._phrases = self._build_phrases(
            self._notes, sorted(line_breaks, key=lambda b: b.start_beat)
        )

    def _build_phrases(
        self, notes: list[GameNote], line_breaks: list[LineBreak]
    ) -> list[Phrase]:
        phrases: list[Phrase] = []
        current: list[GameNote] = []
        opened_by: LineBreak | None = None
        break_index = 0

        for game_note in notes:
            # Close the running phrase at every line break this note reaches
            while (
                break_index < len(line_breaks)
                and game_note.note.start_beat >= line_breaks[break_index].start_beat
            ):
                if current:
                    phrases.append(self._make_phrase(len(phrases), current, opened_by))
                    current = []
                opened_by = line_breaks[break_index]
                break_index += 1
            current.append(game_note)

        if current:
            phrases.append(self._make_phrase(len(phrases), current, opened_by))

        return phrases

    @staticmethod
    def _make_phrase(
        index: int, notes: list[GameNote], line_break: LineBreak | None
    ) -> Phrase:
        return Phrase(
            index=index,
            notes=tuple(notes),
            start_time_ms=notes[0].start_time_ms,
            end_time_ms=notes[-1].end_time_ms,
            line_break=line_break,
        )

    def all_notes(self) -> list[GameNote]:
        return list(self._notes)

    def all_phrases(self) -> list[Phrase]:
        return list(self._phrases)

    def note(self, index: int) -> GameNote:
        return self._notes[index]

    def current_note(self, time_ms: float) -> GameNote | None:
        """Return the first note whose window contains time_ms (bounds inclusive)."""
        for game_note in self._notes:
            if game_note.start_time_ms > time_ms:
                break
            if time_ms <= game_note.end_time_ms:
                return game_note
        return None

    def next_note(self, time_ms: float) -> GameNote | None:
        """Return the first note starting strictly after time_ms."""
        for game_note in self._notes:
            if game_note.start_time_ms > time_ms:
                return game_note
        return None

    def notes_in_range(self, start_ms: float, end_ms: float) -> list[GameNote]:
        """Return notes overlapping [start_ms, end_ms], e.g. for a scrolling view."""
        return [
            n
            for n in self._notes
            if n.end_time_ms >= start_ms and n.start_time_ms <= end_ms
        ]

    def current_phrase(self, time_ms: float) -> Phrase | None:
        """Return the phrase on screen at time_ms.

        A phrase shows up phrase_lead_in_ms before its first note and stays
        until phrase_linger_ms after its last one.
        """
        for phrase in self._phrases:
            if (
                phrase.start_time_ms - self.phrase_lead_in_ms
                <= time_ms
                <= phrase.end_time_ms + self.phrase_linger_ms
            ):
                return phrase
        return None

    def next_phrase(self, time_ms: float) -> Phrase | None:
        """Return the phrase after the current one, or the first upcoming one."""
        current = self.current_phrase(time_ms)
        if current is not None:
            following = current.index + 1
            return self._phrases[following] if following < len(self._phrases) else None
        for phrase in self._phrases:
            if phrase.start_time_ms > time_ms:
                return phrase
        return None

    def duration_ms(self) -> float:
        """End of the last note, or 0 for an empty chart."""
        if not self._notes:
            return 0.0
        return max(n.end_time_ms for n in self._notes)

    def progress(self, time_ms: float) -> float:
        duration = self.duration_ms()
        if duration == 0:
            return 0.0
        return min(1.0, max(0.0, time_ms / duration))

    def beat_at(self, time_ms: float) -> float:
        return ms_to_beat(time_ms, self.bpm, self.gap_ms)

    def max_score(self) -> int:
        return Scorer.max_score(n.note for n in self._notes)
