"""Pytest fixtures for Karaoke Core tests."""

from typing import Any

import numpy as np
import pytest

from karaoke_core.audio.router import InputChannelRouter
from karaoke_core.chart.loader import song_from_dict
from karaoke_core.config import Settings
from karaoke_core.errors import CaptureUnavailable, PermissionDenied
from karaoke_core.models.chart import Song


class FakeStream:
    """Capture stream returning a constant level per channel."""

    def __init__(self, device_id: str, channels: int, levels: tuple[float, ...], sample_rate: int = 44100):
        self.device_id = device_id
        self.channels = channels
        self.sample_rate = sample_rate
        self.levels = levels
        self.stopped = False

    def latest(self, frames: int) -> np.ndarray:
        row = np.array(self.levels[: self.channels], dtype=np.float32)
        return np.tile(row, (frames, 1))

    def stop(self) -> None:
        self.stopped = True


class FakeCaptureBackend:
    """Capture backend with a configurable level per device channel.

    ``levels[device_id]`` is a tuple of per-channel constant sample values.
    The device channel count is the tuple length.
    """

    def __init__(self) -> None:
        self.levels: dict[str, tuple[float, ...]] = {}
        self.unavailable: set[str] = set()
        self.denied = False
        self.opened: list[FakeStream] = []

    def open(self, device_id: str, channels: int) -> FakeStream:
        if self.denied:
            raise PermissionDenied("microphone access refused")
        if device_id in self.unavailable or device_id not in self.levels:
            raise CaptureUnavailable(f"device {device_id} cannot be opened")
        levels = self.levels[device_id]
        stream = FakeStream(device_id, len(levels), levels)
        self.opened.append(stream)
        return stream


class LevelEstimator:
    """Pitch estimator reading the pitch off the buffer level: 0.44 -> 440 Hz."""

    def __init__(self) -> None:
        self.calls = 0

    def estimate(self, buffer: np.ndarray, sample_rate: int) -> float | None:
        self.calls += 1
        level = float(buffer[0])
        return level * 1000 if level > 0 else None


@pytest.fixture
def settings() -> Settings:
    """Settings with console output silenced."""
    return Settings(quiet=True)


@pytest.fixture
def backend() -> FakeCaptureBackend:
    return FakeCaptureBackend()


@pytest.fixture
def estimator() -> LevelEstimator:
    return LevelEstimator()


@pytest.fixture
def router(backend: FakeCaptureBackend, estimator: LevelEstimator, settings: Settings) -> InputChannelRouter:
    return InputChannelRouter(backend, estimator, settings)


def note(start: float, length: float, pitch: int = 9, note_type: str = "normal", text: str = "la") -> dict[str, Any]:
    return {
        "note_type": note_type,
        "start_beat": start,
        "length": length,
        "pitch": pitch,
        "text": text,
    }


@pytest.fixture
def song_data() -> dict[str, Any]:
    """Solo song: 100 ms per beat (bpm 150), no gap.

    n0  0-400 ms  normal, A4
    n1  600-800 ms  rap
    n2  1000-1400 ms  golden, A4 (after a line break at beat 8)
    """
    return {
        "id": "solo",
        "metadata": {"title": "Test Song", "artist": "Test Artist", "bpm": 150, "gap": 0},
        "notes": [
            note(0, 4),
            note(6, 2, note_type="rap"),
            note(10, 4, note_type="golden"),
        ],
        "line_breaks": [{"start_beat": 8}],
    }


@pytest.fixture
def song(song_data: dict[str, Any]) -> Song:
    return song_from_dict(song_data)


@pytest.fixture
def duet_song(song_data: dict[str, Any]) -> Song:
    data = dict(song_data)
    data["id"] = "duet"
    data["notes_p2"] = [note(0, 2, pitch=4), note(20, 2, pitch=4)]
    data["line_breaks_p2"] = []
    return song_from_dict(data)
