"""Command line interface for Karaoke Core."""
