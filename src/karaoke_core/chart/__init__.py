"""Chart loading and timing for Karaoke Core."""

from karaoke_core.chart.loader import load_song, song_from_dict
from karaoke_core.chart.timeline import ChartTimeline, beat_to_ms, ms_per_beat, ms_to_beat

__all__ = [
    "ChartTimeline",
    "beat_to_ms",
    "load_song",
    "ms_per_beat",
    "ms_to_beat",
    "song_from_dict",
]
