"""Capture backend that plays recorded performances back from audio files.

Used to score a recorded sing-through offline: each "device" is an audio file,
and the frame handed out is the window ending at the current song position.
"""

from collections.abc import Callable
from pathlib import Path

import numpy as np
import soundfile as sf

from karaoke_core.errors import CaptureUnavailable


class WavFileStream:
    """A CaptureStream over a fully decoded audio file."""

    def __init__(self, data: np.ndarray, sample_rate: int, clock_ms: Callable[[], float]) -> None:
        self.data = data  # shape (frames, channels)
        self.sample_rate = sample_rate
        self.channels = data.shape[1]
        self.clock_ms = clock_ms
        self.stopped = False

    def latest(self, frames: int) -> np.ndarray:
        out = np.zeros((frames, self.channels), dtype=np.float32)
        if self.stopped:
            return out

        end = int(round(self.clock_ms() / 1000.0 * self.sample_rate))
        start = end - frames
        src_start = max(0, start)
        src_end = min(end, len(self.data))
        if src_end > src_start:
            offset = src_start - start
            out[offset : offset + (src_end - src_start)] = self.data[src_start:src_end]
        return out

    def stop(self) -> None:
        self.stopped = True


class WavFileCapture:
    """CaptureBackend mapping device ids to audio files."""

    def __init__(self, devices: dict[str, Path], clock_ms: Callable[[], float]) -> None:
        self.devices = devices
        self.clock_ms = clock_ms
        self.opened: list[str] = []

    def open(self, device_id: str, channels: int) -> WavFileStream:
        path = self.devices.get(device_id)
        if path is None:
            raise CaptureUnavailable(f"No recording registered for device '{device_id}'")

        try:
            data, sample_rate = sf.read(str(path), dtype="float32", always_2d=True)
        except (sf.LibsndfileError, RuntimeError, OSError) as e:
            raise CaptureUnavailable(f"Cannot read {path}: {e}") from e

        self.opened.append(device_id)
        return WavFileStream(data, int(sample_rate), self.clock_ms)
