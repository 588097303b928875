"""Main CLI entry point for Karaoke Core."""

from pathlib import Path

import click
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

from karaoke_core import __version__
from karaoke_core.config import get_settings

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="karaoke-core")
def main() -> None:
    """Karaoke Core - pitch tracking and scoring for sing-along games.

    Inspect song charts and score recorded performances against them.
    """
    pass


@main.command()
def info() -> None:
    """Show the current configuration."""
    settings = get_settings()

    console.print("[bold]Pitch tracking[/bold]")
    console.print(f"  Buffer size: {settings.pitch_buffer_size} samples")
    console.print(f"  Min signal strength (RMS): {settings.min_confidence_threshold}")
    console.print(f"  Max semitone jump: {settings.max_semitone_jump}")
    console.print(f"  Smoothing factor: {settings.smoothing_factor}")
    console.print(f"  Jump smoothing factor: {settings.jump_smoothing_factor}")
    console.print(f"  Pitch hold: {settings.pitch_hold_time_ms} ms (decay {settings.pitch_hold_decay_rate})")
    console.print(f"  YIN range: {settings.pitch_fmin_hz}-{settings.pitch_fmax_hz} Hz")
    console.print()
    console.print("[bold]Session[/bold]")
    console.print(f"  Pitch history: {settings.pitch_history_ms} ms")
    console.print(f"  Phrase window: -{settings.phrase_lead_in_ms} / +{settings.phrase_linger_ms} ms")
    console.print(f"  Skip lead: {settings.skip_lead_ms} ms")
    console.print(f"  Replay rate: {settings.replay_fps} fps")


@main.command()
@click.argument("song_file", type=click.Path(exists=True, path_type=Path))
def inspect(song_file: Path) -> None:
    """Summarize the tracks of SONG_FILE (catalog song JSON)."""
    from karaoke_core.chart import ChartTimeline, load_song
    from karaoke_core.errors import ChartFormatError

    try:
        song = load_song(song_file)
    except ChartFormatError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    settings = get_settings()
    console.print(f"[bold blue]{song.metadata.title}[/bold blue] - {song.metadata.artist}")
    console.print(f"BPM: {song.metadata.bpm}, gap: {song.metadata.gap_ms} ms")

    table = Table()
    table.add_column("Track", justify="right")
    table.add_column("Notes", justify="right")
    table.add_column("Phrases", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Max score", justify="right")

    for track, chart in song.charts().items():
        timeline = ChartTimeline.from_chart(
            chart,
            phrase_lead_in_ms=settings.phrase_lead_in_ms,
            phrase_linger_ms=settings.phrase_linger_ms,
        )
        table.add_row(
            str(track),
            str(len(timeline.all_notes())),
            str(len(timeline.all_phrases())),
            f"{timeline.duration_ms() / 1000:.1f}s",
            str(timeline.max_score()),
        )

    console.print(table)


@main.command()
@click.argument("song_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-i",
    "--input",
    "inputs",
    multiple=True,
    required=True,
    help="DEVICE=AUDIO_FILE: register a recording as a capture device",
)
@click.option(
    "-p",
    "--player",
    "players",
    multiple=True,
    help="INPUT_ID[@TRACK], e.g. mic1 or usbmic:left@2 (default: one mono player per device)",
)
@click.option(
    "--fps",
    type=float,
    help="Simulated frame rate (default from settings)",
)
def replay(
    song_file: Path,
    inputs: tuple[str, ...],
    players: tuple[str, ...],
    fps: float | None,
) -> None:
    """Score recorded performances against SONG_FILE.

    Each recording stands in for a microphone. A stereo recording can be
    split into two singers with DEVICE:left and DEVICE:right player inputs.
    """
    from karaoke_core.audio import InputChannelRouter, YinPitchEstimator
    from karaoke_core.audio.wavfile import WavFileCapture
    from karaoke_core.chart import load_song
    from karaoke_core.errors import ChartFormatError, KaraokeError
    from karaoke_core.models.session import SessionState
    from karaoke_core.session import NoteCompleted, Session, SimulatedMediaPlayer

    settings = get_settings()
    if fps is not None:
        settings = settings.model_copy(update={"replay_fps": fps})

    devices: dict[str, Path] = {}
    for spec in inputs:
        device_id, sep, path = spec.partition("=")
        if not sep or not device_id or not path:
            console.print(f"[red]Error: --input expects DEVICE=AUDIO_FILE, got '{spec}'[/red]")
            raise SystemExit(1)
        devices[device_id] = Path(path)

    player_specs = list(players) or list(devices)

    try:
        song = load_song(song_file)
    except ChartFormatError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    media = SimulatedMediaPlayer()
    backend = WavFileCapture(devices, clock_ms=media.current_position_ms)
    estimator = YinPitchEstimator(fmin=settings.pitch_fmin_hz, fmax=settings.pitch_fmax_hz)
    router = InputChannelRouter(backend, estimator, settings)
    session = Session(media, router, settings)

    console.print(f"[bold blue]Karaoke Core[/bold blue] v{__version__}")
    try:
        session.load(song)
        for player_id, spec in enumerate(player_specs, start=1):
            input_id, _, track = spec.partition("@")
            session.add_player(player_id, input_id, int(track) if track else None)
        session.start()
    except (KaraokeError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    frame_ms = 1000.0 / settings.replay_fps
    duration_ms = media.duration_ms or 0.0
    notes_completed = 0
    tick = 0

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TimeElapsedColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("[cyan]Scoring[/cyan]", total=duration_ms)
        while session.state is SessionState.PLAYING:
            session.tick(tick * frame_ms)
            notes_completed += sum(
                1 for e in session.drain_events() if isinstance(e, NoteCompleted)
            )
            media.advance(frame_ms)
            tick += 1
            progress.update(task, completed=media.current_position_ms())
        session.dispose()

    for warning in session.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")

    table = Table(title=f"{song.metadata.title} - {song.metadata.artist}")
    table.add_column("Player", justify="right")
    table.add_column("Input")
    table.add_column("Track", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Max", justify="right")
    table.add_column("%", justify="right")
    for summary in session.results():
        table.add_row(
            str(summary.player_id),
            summary.input_id,
            str(summary.track),
            str(summary.score),
            str(summary.max_score),
            f"{summary.percentage:.0f}",
        )
    console.print(table)
    console.print(f"{notes_completed} notes scored")


if __name__ == "__main__":
    main()
