"""Note scorer - turns the pitch samples collected during a note into points."""

import math
from collections.abc import Iterable, Sequence

from karaoke_core.audio.pitch import chart_pitch_to_midi, frequency_to_midi
from karaoke_core.models.chart import GameNote, Note, NoteType
from karaoke_core.models.session import NoteResult, PitchSample

POINTS_PER_BEAT = 10
GOLDEN_MULTIPLIER = 2

# (max octave-folded semitone distance, accuracy weight), checked in order
TOLERANCE_BANDS = (
    (0.5, 1.0),
    (1.5, 0.9),
    (2.5, 0.7),
    (3.5, 0.4),
)

# Added to the pitch accuracy whenever at least one voiced sample exists
PARTICIPATION_BONUS = 0.1


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def semitone_distance(frequency_hz: float, chart_pitch: int) -> float:
    """Semitones between a frequency and a chart pitch, octaves folded to [0, 6]."""
    diff = abs(frequency_to_midi(frequency_hz) - chart_pitch_to_midi(chart_pitch)) % 12.0
    return min(diff, 12.0 - diff)


def tolerance_weight(distance: float) -> float:
    for limit, weight in TOLERANCE_BANDS:
        if distance <= limit:
            return weight
    return 0.0


class Scorer:
    """Pure scoring rules. Holds no state; the same input always scores the same."""

    @staticmethod
    def max_points(note: Note | GameNote) -> int:
        if note.note_type == NoteType.FREESTYLE:
            return 0
        multiplier = GOLDEN_MULTIPLIER if note.note_type.is_golden else 1
        return _round_half_up(note.length_beats * POINTS_PER_BEAT * multiplier)

    @staticmethod
    def max_score(notes: Iterable[Note | GameNote]) -> int:
        """Total points available for a track. Freestyle notes add nothing."""
        return sum(Scorer.max_points(n) for n in notes)

    def score_note(self, note: GameNote, samples: Sequence[PitchSample]) -> NoteResult:
        """Score one closed note.

        - Freestyle: never scored, never penalized.
        - Rap / golden rap: fraction of samples where any pitch was detected.
        - Normal / golden: banded pitch accuracy averaged over voiced samples,
          plus a participation bonus, capped at 1.0.
        """
        samples = list(samples)
        max_points = self.max_points(note)

        if note.note_type == NoteType.FREESTYLE:
            accuracy = 1.0
        elif note.note_type.is_rap:
            accuracy = self._presence_accuracy(samples)
        else:
            accuracy = self._pitch_accuracy(note.pitch, samples)

        return NoteResult(
            note_index=note.index,
            max_points=max_points,
            earned_points=_round_half_up(max_points * accuracy),
            accuracy=accuracy,
            samples=samples,
        )

    @staticmethod
    def _presence_accuracy(samples: list[PitchSample]) -> float:
        if not samples:
            return 0.0
        voiced = sum(1 for s in samples if s.is_voiced)
        return voiced / len(samples)

    @staticmethod
    def _pitch_accuracy(chart_pitch: int, samples: list[PitchSample]) -> float:
        voiced = [s for s in samples if s.is_voiced]
        if not voiced:
            return 0.0
        weights = [
            tolerance_weight(semitone_distance(s.frequency_hz, chart_pitch))
            for s in voiced
        ]
        accuracy = sum(weights) / len(weights) + PARTICIPATION_BONUS
        return min(1.0, accuracy)
