"""Karaoke Core - pitch tracking and note scoring for sing-along games."""

__version__ = "0.1.0"
