"""Media playback boundary - the session's authoritative clock."""

from typing import Protocol, runtime_checkable

from karaoke_core.chart.timeline import ChartTimeline
from karaoke_core.errors import MediaLoadError
from karaoke_core.models.chart import Song


@runtime_checkable
class MediaPlayer(Protocol):
    """What the session needs from audio/video playback.

    ``load`` returns once the media can play through and raises
    MediaLoadError otherwise. ``ended`` turns True at end of media.
    """

    @property
    def ended(self) -> bool:
        ...

    def load(self, song: Song) -> None:
        ...

    def current_position_ms(self) -> float:
        ...

    def play(self) -> None:
        ...

    def pause(self) -> None:
        ...

    def seek(self, position_ms: float) -> None:
        ...

    def close(self) -> None:
        ...


class SimulatedMediaPlayer:
    """A deterministic MediaPlayer whose clock moves only when told to.

    Used for replaying recordings and in tests. Without an explicit duration
    the media lasts until the last note of the longest track plus tail_ms.
    """

    def __init__(
        self,
        duration_ms: float | None = None,
        tail_ms: float = 1000.0,
        fail_to_load: bool = False,
    ) -> None:
        self.duration_ms = duration_ms
        self.tail_ms = tail_ms
        self.fail_to_load = fail_to_load
        self.position_ms = 0.0
        self.playing = False
        self.loaded = False
        self.closed = False
        self._ended = False

    @property
    def ended(self) -> bool:
        return self._ended

    def load(self, song: Song) -> None:
        if self.fail_to_load:
            raise MediaLoadError(f"Failed to load audio for '{song.metadata.title}'")
        if self.duration_ms is None:
            longest = max(
                ChartTimeline.from_chart(chart).duration_ms()
                for chart in song.charts().values()
            )
            self.duration_ms = longest + self.tail_ms
        self.position_ms = 0.0
        self._ended = False
        self.loaded = True

    def current_position_ms(self) -> float:
        return self.position_ms

    def play(self) -> None:
        self.playing = True

    def pause(self) -> None:
        self.playing = False

    def seek(self, position_ms: float) -> None:
        self.position_ms = max(0.0, position_ms)
        self._check_end()

    def advance(self, delta_ms: float) -> None:
        """Move the clock forward while playing."""
        if self.playing and not self._ended:
            self.position_ms += delta_ms
            self._check_end()

    def close(self) -> None:
        self.playing = False
        self.closed = True

    def _check_end(self) -> None:
        if self.duration_ms is not None and self.position_ms >= self.duration_ms:
            self.position_ms = self.duration_ms
            self.playing = False
            self._ended = True
