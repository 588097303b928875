"""Tests for the PitchTracker."""

from unittest.mock import MagicMock

import numpy as np
import pytest

from karaoke_core.audio.pitch import signal_strength
from karaoke_core.audio.tracker import PitchTracker
from karaoke_core.config import Settings

SAMPLE_RATE = 44100
LOUD = np.full(2048, 0.5, dtype=np.float32)
QUIET = np.full(2048, 0.01, dtype=np.float32)
SILENT = np.zeros(2048, dtype=np.float32)


def make_tracker(*pitches: float | None, **overrides: object) -> tuple[PitchTracker, MagicMock]:
    estimator = MagicMock()
    estimator.estimate.side_effect = list(pitches)
    settings = Settings(quiet=True, **overrides)  # type: ignore[arg-type]
    return PitchTracker(estimator, settings), estimator


class TestPitchTracker:
    """Tests for PitchTracker.sample."""

    def test_quiet_frame_without_hold_is_no_pitch(self):
        """RMS below the threshold with nothing held returns -1."""
        tracker, estimator = make_tracker()

        assert tracker.sample(QUIET, SAMPLE_RATE, now_ms=0) == -1
        estimator.estimate.assert_not_called()

    def test_estimator_no_pitch_is_invalid(self):
        """An estimator returning None counts as no pitch."""
        tracker, _ = make_tracker(None)

        assert tracker.sample(LOUD, SAMPLE_RATE, now_ms=0) == -1

    def test_first_pitch_is_taken_raw(self):
        """The first valid estimate is used as is."""
        tracker, _ = make_tracker(440.0)

        assert tracker.sample(LOUD, SAMPLE_RATE, now_ms=0) == 440.0
        assert tracker.state.hold_pitch_hz == 440.0
        assert tracker.state.last_valid_pitch_time_ms == 0

    def test_small_change_is_smoothed(self):
        """Changes within the jump limit blend 70/30."""
        tracker, _ = make_tracker(440.0, 460.0)

        tracker.sample(LOUD, SAMPLE_RATE, now_ms=0)
        assert tracker.sample(LOUD, SAMPLE_RATE, now_ms=16) == pytest.approx(446.0)

    def test_octave_jump_is_not_snapped(self):
        """A 12 semitone jump moves only part of the way."""
        tracker, _ = make_tracker(440.0, 880.0)

        tracker.sample(LOUD, SAMPLE_RATE, now_ms=0)
        assert tracker.sample(LOUD, SAMPLE_RATE, now_ms=16) == pytest.approx(572.0)

    def test_jump_factor_is_configurable(self):
        """The jump branch uses its own smoothing factor."""
        tracker, _ = make_tracker(440.0, 880.0, jump_smoothing_factor=0.5)

        tracker.sample(LOUD, SAMPLE_RATE, now_ms=0)
        assert tracker.sample(LOUD, SAMPLE_RATE, now_ms=16) == pytest.approx(660.0)

    def test_sustained_new_note_is_reached(self):
        """A real interval change converges within a few frames."""
        tracker, _ = make_tracker(440.0, *([660.0] * 15))

        tracker.sample(LOUD, SAMPLE_RATE, now_ms=0)
        pitch = 0.0
        for i in range(15):
            pitch = tracker.sample(LOUD, SAMPLE_RATE, now_ms=16 * (i + 1))
        assert pitch == pytest.approx(660.0, rel=0.01)

    def test_confidence_follows_signal_strength(self):
        """Confidence is ten times the RMS, capped at 1."""
        tracker, _ = make_tracker(440.0, 440.0)

        tracker.sample(np.full(2048, 0.05, dtype=np.float32), SAMPLE_RATE, now_ms=0)
        assert tracker.state.confidence == pytest.approx(0.5)

        tracker.sample(LOUD, SAMPLE_RATE, now_ms=10)
        assert tracker.state.confidence == 1.0

    def test_hold_bridges_short_dropout(self):
        """Silence within 180 ms of a valid pitch returns the held pitch."""
        tracker, _ = make_tracker(440.0)

        tracker.sample(LOUD, SAMPLE_RATE, now_ms=1000)
        assert tracker.sample(SILENT, SAMPLE_RATE, now_ms=1100) == 440.0
        assert tracker.state.confidence == pytest.approx(0.85)
        assert tracker.sample(SILENT, SAMPLE_RATE, now_ms=1179) == 440.0
        assert tracker.state.confidence == pytest.approx(0.85 * 0.85)

    def test_hold_expires(self):
        """After the hold window the state clears and -1 is returned."""
        tracker, _ = make_tracker(440.0, 300.0)

        tracker.sample(LOUD, SAMPLE_RATE, now_ms=1000)
        assert tracker.sample(SILENT, SAMPLE_RATE, now_ms=1180) == -1
        assert tracker.state.smoothed_pitch_hz == -1
        assert tracker.state.hold_pitch_hz == -1
        assert tracker.state.confidence == 0.0

        # Next pitch starts fresh instead of blending with the old one
        assert tracker.sample(LOUD, SAMPLE_RATE, now_ms=1200) == 300.0

    def test_snapshot_is_a_copy(self):
        """snapshot() is detached from the live state."""
        tracker, _ = make_tracker(440.0)
        before = tracker.snapshot()

        tracker.sample(LOUD, SAMPLE_RATE, now_ms=0)

        assert before.smoothed_pitch_hz == -1
        assert tracker.snapshot().smoothed_pitch_hz == 440.0

    def test_reset(self):
        tracker, _ = make_tracker(440.0)
        tracker.sample(LOUD, SAMPLE_RATE, now_ms=0)

        tracker.reset()

        assert tracker.sample(SILENT, SAMPLE_RATE, now_ms=10) == -1


def test_signal_strength_is_rms():
    """signal_strength computes the root mean square."""
    assert signal_strength(np.array([3.0, -3.0, 3.0, -3.0])) == pytest.approx(3.0)
    assert signal_strength(np.array([])) == 0.0
