"""Parse catalog song records into chart models."""

import json
from pathlib import Path
from typing import Any

from karaoke_core.errors import ChartFormatError
from karaoke_core.models.chart import LineBreak, Note, NoteType, Song, SongMetadata


def load_song(path: Path) -> Song:
    """Load a song record from a JSON file."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ChartFormatError(f"{path}: invalid JSON: {e}") from e
    return song_from_dict(data)


def song_from_dict(data: dict[str, Any]) -> Song:
    """Build a Song from the catalog's JSON shape.

    Expected keys: ``metadata.{title, artist, bpm, gap}``, ``notes``,
    ``line_breaks`` and, for duets, ``notes_p2`` / ``line_breaks_p2``.

    Raises:
        ChartFormatError: If a required field is missing or out of range.
    """
    if not isinstance(data, dict):
        raise ChartFormatError("Song record must be a JSON object")

    metadata = _parse_metadata(data.get("metadata"))

    notes = _parse_notes(data.get("notes"), "notes")
    line_breaks = _parse_line_breaks(data.get("line_breaks") or [], "line_breaks")

    notes_p2 = None
    line_breaks_p2 = None
    if data.get("notes_p2"):
        notes_p2 = _parse_notes(data["notes_p2"], "notes_p2")
        line_breaks_p2 = _parse_line_breaks(
            data.get("line_breaks_p2") or [], "line_breaks_p2"
        )

    known = {"id", "metadata", "notes", "line_breaks", "notes_p2", "line_breaks_p2"}
    return Song(
        id=str(data.get("id", "")),
        metadata=metadata,
        notes=notes,
        line_breaks=line_breaks,
        notes_p2=notes_p2,
        line_breaks_p2=line_breaks_p2,
        extra={k: v for k, v in data.items() if k not in known},
    )


def _parse_metadata(raw: Any) -> SongMetadata:
    if not isinstance(raw, dict):
        raise ChartFormatError("Missing 'metadata' object")
    try:
        bpm = float(raw["bpm"])
        gap = float(raw.get("gap") or 0.0)
    except KeyError as e:
        raise ChartFormatError(f"metadata is missing {e}") from e
    except (TypeError, ValueError) as e:
        raise ChartFormatError(f"metadata has a non-numeric bpm/gap: {e}") from e
    if bpm <= 0:
        raise ChartFormatError(f"bpm must be positive, got {bpm}")

    return SongMetadata(
        title=str(raw.get("title", "")),
        artist=str(raw.get("artist", "")),
        bpm=bpm,
        gap_ms=gap,
        duet_singer_p1=raw.get("duet_singer_p1"),
        duet_singer_p2=raw.get("duet_singer_p2"),
    )


def _parse_notes(raw: Any, key: str) -> tuple[Note, ...]:
    if not isinstance(raw, list):
        raise ChartFormatError(f"'{key}' must be a list")

    notes: list[Note] = []
    for i, item in enumerate(raw):
        try:
            note = Note(
                note_type=NoteType(str(item.get("note_type", "normal")).lower()),
                start_beat=float(item["start_beat"]),
                length_beats=float(item["length"]),
                pitch=int(item["pitch"]),
                text=str(item.get("text", "")),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ChartFormatError(f"{key}[{i}] is malformed: {e}") from e

        if note.length_beats < 0:
            raise ChartFormatError(f"{key}[{i}] has negative length")
        if notes and note.start_beat < notes[-1].start_beat:
            raise ChartFormatError(
                f"{key}[{i}] starts at beat {note.start_beat}, "
                f"before the previous note at {notes[-1].start_beat}"
            )
        notes.append(note)

    return tuple(notes)


def _parse_line_breaks(raw: Any, key: str) -> tuple[LineBreak, ...]:
    if not isinstance(raw, list):
        raise ChartFormatError(f"'{key}' must be a list")

    breaks: list[LineBreak] = []
    for i, item in enumerate(raw):
        try:
            end = item.get("end_beat")
            breaks.append(
                LineBreak(
                    start_beat=float(item["start_beat"]),
                    end_beat=float(end) if end is not None else None,
                )
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ChartFormatError(f"{key}[{i}] is malformed: {e}") from e

    breaks.sort(key=lambda b: b.start_beat)
    return tuple(breaks)
