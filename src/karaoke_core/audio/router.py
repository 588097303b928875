"""Input channel router - maps capture devices to scorable inputs.

A mono device is one scorable input. A stereo device (e.g. a dual-mic USB
receiver) is split into a "left" and a "right" input that share a single
physical capture stream, released when the last of them disconnects.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, runtime_checkable

import numpy as np

from karaoke_core.audio.pitch import NO_PITCH, PitchEstimator
from karaoke_core.audio.tracker import PitchTracker
from karaoke_core.config import Settings


class InputChannel(str, Enum):
    MONO = "mono"
    LEFT = "left"
    RIGHT = "right"

    @property
    def is_split(self) -> bool:
        return self is not InputChannel.MONO


@runtime_checkable
class CaptureStream(Protocol):
    """An open physical capture stream."""

    sample_rate: int
    channels: int

    def latest(self, frames: int) -> np.ndarray:
        """Return the most recent `frames` frames, shape (frames, channels), without consuming them."""
        ...

    def stop(self) -> None:
        ...


@runtime_checkable
class CaptureBackend(Protocol):
    """Opens capture streams. May raise CaptureUnavailable or PermissionDenied."""

    def open(self, device_id: str, channels: int) -> CaptureStream:
        ...


def make_input_id(device_id: str, channel: InputChannel | str) -> str:
    channel = InputChannel(channel)
    return device_id if channel is InputChannel.MONO else f"{device_id}:{channel.value}"


def parse_input_id(input_id: str) -> tuple[str, InputChannel]:
    """Split an input id into (device_id, channel)."""
    for channel in (InputChannel.LEFT, InputChannel.RIGHT):
        suffix = f":{channel.value}"
        if input_id.endswith(suffix):
            return input_id[: -len(suffix)], channel
    return input_id, InputChannel.MONO


@dataclass
class SharedCaptureStream:
    """A capture stream owned by one or more scorable inputs.

    Single-threaded reference count: the last release() stops the stream.
    """

    device_id: str
    stream: CaptureStream
    refcount: int = 1

    def acquire(self) -> None:
        self.refcount += 1

    def release(self) -> bool:
        """Drop one reference. Returns True when the stream was stopped."""
        self.refcount -= 1
        if self.refcount <= 0:
            self.refcount = 0
            self.stream.stop()
            return True
        return False


@dataclass
class ScorableInput:
    """One addressable microphone signal."""

    device_id: str
    channel: InputChannel
    capture: SharedCaptureStream = field(repr=False)

    @property
    def id(self) -> str:
        return make_input_id(self.device_id, self.channel)

    @property
    def sample_rate(self) -> int:
        return self.capture.stream.sample_rate

    def read_frame(self, frames: int) -> np.ndarray:
        """Return the latest single-channel frame for pitch analysis."""
        stream = self.capture.stream
        data = np.asarray(stream.latest(frames), dtype=np.float32)
        if data.ndim == 1:
            data = data[:, np.newaxis]

        if self.channel is InputChannel.MONO:
            return data.mean(axis=1) if data.shape[1] > 1 else data[:, 0]

        index = 0 if self.channel is InputChannel.LEFT else 1
        if index >= data.shape[1]:
            # Device delivered fewer channels than requested
            return np.zeros(data.shape[0], dtype=np.float32)
        return data[:, index]


class InputChannelRouter:
    """Owns every open capture stream and the pitch tracker of each input."""

    def __init__(
        self,
        backend: CaptureBackend,
        estimator: PitchEstimator,
        settings: Settings,
    ) -> None:
        self.backend = backend
        self.estimator = estimator
        self.settings = settings
        self._inputs: dict[str, ScorableInput] = {}
        self._trackers: dict[str, PitchTracker] = {}
        # Stereo streams shared between the left and right inputs, by device
        self._shared: dict[str, SharedCaptureStream] = {}

    def connect(self, device_id: str, channel: InputChannel | str = InputChannel.MONO) -> ScorableInput:
        """Open (or return the already open) scorable input for a device channel.

        Raises:
            CaptureUnavailable: The device could not be opened.
            PermissionDenied: Microphone access was refused.
        """
        channel = InputChannel(channel)
        input_id = make_input_id(device_id, channel)
        existing = self._inputs.get(input_id)
        if existing is not None:
            return existing

        if channel.is_split:
            capture = self._shared.get(device_id)
            if capture is not None:
                capture.acquire()
            else:
                capture = SharedCaptureStream(device_id, self.backend.open(device_id, 2))
                self._shared[device_id] = capture
        else:
            capture = SharedCaptureStream(device_id, self.backend.open(device_id, 1))

        scorable = ScorableInput(device_id=device_id, channel=channel, capture=capture)
        self._inputs[input_id] = scorable
        self._trackers[input_id] = PitchTracker(self.estimator, self.settings)
        return scorable

    def connect_input_id(self, input_id: str) -> ScorableInput:
        device_id, channel = parse_input_id(input_id)
        return self.connect(device_id, channel)

    def disconnect(self, input_id: str) -> None:
        scorable = self._inputs.pop(input_id, None)
        if scorable is None:
            return
        self._trackers.pop(input_id, None)

        if scorable.capture.release() and scorable.channel.is_split:
            self._shared.pop(scorable.device_id, None)

    def disconnect_all(self) -> None:
        for input_id in list(self._inputs):
            self.disconnect(input_id)

    def read_pitch(self, input_id: str, now_ms: float) -> float:
        """Sample the tracked pitch of an input, or -1 if it is not connected."""
        scorable = self._inputs.get(input_id)
        if scorable is None:
            return NO_PITCH
        frame = scorable.read_frame(self.settings.pitch_buffer_size)
        return self._trackers[input_id].sample(frame, scorable.sample_rate, now_ms)

    def tracker(self, input_id: str) -> PitchTracker | None:
        return self._trackers.get(input_id)

    def is_connected(self, input_id: str) -> bool:
        return input_id in self._inputs

    def connected_inputs(self) -> list[str]:
        return list(self._inputs)

    def stream_refcount(self, device_id: str) -> int:
        """References held on a device's shared stereo stream (0 if none)."""
        shared = self._shared.get(device_id)
        return shared.refcount if shared is not None else 0
