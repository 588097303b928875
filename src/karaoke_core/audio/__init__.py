"""Microphone input handling for Karaoke Core."""

from karaoke_core.audio.pitch import (
    NO_PITCH,
    PitchEstimator,
    YinPitchEstimator,
    frequency_to_midi,
    midi_to_frequency,
    signal_strength,
)
from karaoke_core.audio.router import (
    CaptureBackend,
    CaptureStream,
    InputChannel,
    InputChannelRouter,
    ScorableInput,
    SharedCaptureStream,
    make_input_id,
    parse_input_id,
)
from karaoke_core.audio.tracker import PitchState, PitchTracker

__all__ = [
    "NO_PITCH",
    "CaptureBackend",
    "CaptureStream",
    "InputChannel",
    "InputChannelRouter",
    "PitchEstimator",
    "PitchState",
    "PitchTracker",
    "ScorableInput",
    "SharedCaptureStream",
    "YinPitchEstimator",
    "frequency_to_midi",
    "make_input_id",
    "midi_to_frequency",
    "parse_input_id",
    "signal_strength",
]
