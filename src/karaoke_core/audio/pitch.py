"""Pitch primitive boundary and pitch/frequency helpers.

The tracker consumes any object satisfying PitchEstimator. YinPitchEstimator
adapts librosa's YIN implementation to that boundary.
"""

import math
from typing import Protocol, runtime_checkable

import numpy as np

# MIDI number of the chart's pitch 0 (middle C)
MIDDLE_C_MIDI = 60

NO_PITCH = -1.0


@runtime_checkable
class PitchEstimator(Protocol):
    """Estimates the fundamental frequency of one single-channel frame."""

    def estimate(self, buffer: np.ndarray, sample_rate: int) -> float | None:
        """Return the fundamental in Hz, or None / a value <= 0 for no pitch."""
        ...


class YinPitchEstimator:
    """PitchEstimator backed by ``librosa.yin`` over exactly one frame."""

    def __init__(
        self,
        fmin: float = 60.0,
        fmax: float = 1500.0,
        trough_threshold: float = 0.1,
    ) -> None:
        self.fmin = fmin
        self.fmax = fmax
        self.trough_threshold = trough_threshold

    def estimate(self, buffer: np.ndarray, sample_rate: int) -> float | None:
        import librosa

        frame = np.asarray(buffer, dtype=np.float32)
        f0 = librosa.yin(
            frame,
            fmin=self.fmin,
            fmax=self.fmax,
            sr=sample_rate,
            frame_length=len(frame),
            hop_length=len(frame),
            center=False,
            trough_threshold=self.trough_threshold,
        )
        if len(f0) == 0 or not np.isfinite(f0[0]):
            return None
        return float(f0[0])


def frequency_to_midi(frequency_hz: float) -> float:
    """Fractional MIDI note number for a frequency (A4 = 440 Hz = 69)."""
    return 69.0 + 12.0 * math.log2(frequency_hz / 440.0)


def midi_to_frequency(midi: float) -> float:
    return 440.0 * 2.0 ** ((midi - 69.0) / 12.0)


def chart_pitch_to_midi(pitch: int) -> int:
    return MIDDLE_C_MIDI + pitch


def signal_strength(buffer: np.ndarray) -> float:
    """RMS level of a frame."""
    if len(buffer) == 0:
        return 0.0
    samples = np.asarray(buffer, dtype=np.float64)
    return float(np.sqrt(np.mean(samples * samples)))
