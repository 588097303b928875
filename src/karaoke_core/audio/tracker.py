"""Pitch tracker - stabilizes raw per-frame pitch estimates for one input."""

from dataclasses import dataclass, replace

import numpy as np

from karaoke_core.audio.pitch import (
    NO_PITCH,
    PitchEstimator,
    frequency_to_midi,
    signal_strength,
)
from karaoke_core.config import Settings


@dataclass
class PitchState:
    """Smoothing state of one scorable input."""

    last_pitch_hz: float = NO_PITCH
    last_midi_note: float = -1.0
    smoothed_pitch_hz: float = NO_PITCH
    last_valid_pitch_time_ms: float | None = None
    hold_pitch_hz: float = NO_PITCH
    confidence: float = 0.0


class PitchTracker:
    """Wraps a PitchEstimator with gating, smoothing and a short pitch hold.

    Per frame:
    - Frames quieter than min_confidence_threshold RMS, or without an
      estimate, are invalid.
    - Valid estimates are blended into an exponential moving average. Jumps
      wider than max_semitone_jump use jump_smoothing_factor so a stray
      octave error cannot snap the output, while a real interval change is
      still followed within a few frames.
    - After an invalid frame the last smoothed pitch is held for
      pitch_hold_time_ms (sibilants, breaths) with decaying confidence, then
      the state is cleared and NO_PITCH returned.

    Times are host timestamps supplied by the caller, never the wall clock.
    """

    def __init__(self, estimator: PitchEstimator, settings: Settings) -> None:
        self.estimator = estimator
        self.settings = settings
        self.state = PitchState()

    def snapshot(self) -> PitchState:
        return replace(self.state)

    def reset(self) -> None:
        self.state = PitchState()

    def sample(self, buffer: np.ndarray, sample_rate: int, now_ms: float) -> float:
        """Process one frame and return the tracked pitch in Hz, or -1."""
        strength = signal_strength(buffer)

        raw_pitch: float | None = None
        if strength > self.settings.min_confidence_threshold:
            raw_pitch = self.estimator.estimate(buffer, sample_rate)

        if raw_pitch is not None and raw_pitch > 0:
            return self._accept(raw_pitch, strength, now_ms)

        return self._hold_or_clear(now_ms)

    def _accept(self, raw_pitch: float, strength: float, now_ms: float) -> float:
        state = self.state
        raw_midi = frequency_to_midi(raw_pitch)

        if state.last_midi_note > 0 and state.smoothed_pitch_hz > 0:
            if abs(raw_midi - state.last_midi_note) > self.settings.max_semitone_jump:
                factor = self.settings.jump_smoothing_factor
            else:
                factor = self.settings.smoothing_factor
            state.smoothed_pitch_hz = (
                state.smoothed_pitch_hz * (1 - factor) + raw_pitch * factor
            )
        else:
            # First pitch after silence
            state.smoothed_pitch_hz = raw_pitch

        state.last_pitch_hz = raw_pitch
        state.last_midi_note = raw_midi
        state.last_valid_pitch_time_ms = now_ms
        state.hold_pitch_hz = state.smoothed_pitch_hz
        state.confidence = min(1.0, strength * 10)
        return state.smoothed_pitch_hz

    def _hold_or_clear(self, now_ms: float) -> float:
        state = self.state
        if (
            state.last_valid_pitch_time_ms is not None
            and state.hold_pitch_hz > 0
            and now_ms - state.last_valid_pitch_time_ms < self.settings.pitch_hold_time_ms
        ):
            state.confidence *= self.settings.pitch_hold_decay_rate
            return state.hold_pitch_hz

        state.smoothed_pitch_hz = NO_PITCH
        state.last_midi_note = -1.0
        state.hold_pitch_hz = NO_PITCH
        state.confidence = 0.0
        return NO_PITCH
