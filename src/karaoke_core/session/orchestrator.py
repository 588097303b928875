"""Session orchestrator - runs one sing-through of a song."""

from rich.console import Console

from karaoke_core.audio.router import InputChannelRouter
from karaoke_core.chart.timeline import ChartTimeline
from karaoke_core.config import Settings, get_settings
from karaoke_core.errors import CaptureUnavailable, IllegalState, PermissionDenied
from karaoke_core.models.chart import GameNote, Phrase, Song
from karaoke_core.models.session import (
    PitchSample,
    PlayerState,
    PlayerSummary,
    SessionState,
)
from karaoke_core.scoring.scorer import Scorer
from karaoke_core.session.events import (
    EventQueue,
    NoteCompleted,
    PhraseChanged,
    PitchUpdated,
    SessionEnded,
    SessionEvent,
    StateChanged,
    TimeUpdated,
)
from karaoke_core.session.media import MediaPlayer


class Session:
    """Drives the scoring loop for one song and its players.

    States: idle -> loading -> ready -> playing <-> paused -> finished.
    ``finished`` is terminal; a replay needs a new Session.

    The host calls ``tick(now_ms)`` once per frame at whatever cadence it
    has. Each tick reads the media clock first, then evaluates every
    track's current note and every player's tracked pitch, and closes notes
    whose window has ended. Results are reported through ``drain_events()``.
    """

    def __init__(
        self,
        media: MediaPlayer,
        router: InputChannelRouter,
        settings: Settings | None = None,
        scorer: Scorer | None = None,
    ) -> None:
        self.media = media
        self.router = router
        self.settings = settings or get_settings()
        self.scorer = scorer or Scorer()
        self.console = Console(stderr=True, quiet=self.settings.quiet)

        self.state = SessionState.IDLE
        self.song: Song | None = None
        self.warnings: list[str] = []

        self._timelines: dict[int, ChartTimeline] = {}
        self._players: dict[int, PlayerState] = {}
        self._events = EventQueue()
        self._current_phrases: dict[int, Phrase | None] = {}
        self._last_now_ms: float | None = None
        self._disposed = False

    # Lifecycle

    def load(self, song: Song) -> None:
        """Bind the song's charts and wait for its media to become playable.

        Raises:
            IllegalState: The session has already loaded a song.
            MediaLoadError: The media failed to load. The session stays in
                ``loading`` and cannot be started.
        """
        if self.state is not SessionState.IDLE:
            raise IllegalState(f"Cannot load a song while {self.state.value}")

        self._set_state(SessionState.LOADING)
        self.song = song
        self.media.load(song)

        self._timelines = {
            track: ChartTimeline.from_chart(
                chart,
                phrase_lead_in_ms=self.settings.phrase_lead_in_ms,
                phrase_linger_ms=self.settings.phrase_linger_ms,
            )
            for track, chart in song.charts().items()
        }
        self._current_phrases = {track: None for track in self._timelines}

        self._set_state(SessionState.READY)
        self.console.print(
            f"Loaded [green]{song.metadata.title}[/green] "
            f"({len(self._timelines)} track{'s' if len(self._timelines) > 1 else ''})"
        )

    def start(self) -> None:
        """Open every player's input and start playback.

        Valid from ``ready`` or ``paused``. A player whose microphone fails to
        open stays silent; the others are unaffected.

        Raises:
            IllegalState: Called from any other state.
            PermissionDenied: Microphone access was refused. All inputs opened
                by this call are released and the state is unchanged.
        """
        if self.state not in (SessionState.READY, SessionState.PAUSED):
            raise IllegalState(f"Cannot start while {self.state.value}")

        opened: list[str] = []
        try:
            for player in self._players.values():
                if self._connect_input(player):
                    opened.append(player.input_id)
        except PermissionDenied:
            # Inputs already open from before a pause stay open
            for input_id in opened:
                self.router.disconnect(input_id)
            raise

        self.media.play()
        self._set_state(SessionState.PLAYING)

    def pause(self) -> None:
        if self.state is not SessionState.PLAYING:
            raise IllegalState(f"Cannot pause while {self.state.value}")
        self.media.pause()
        self._set_state(SessionState.PAUSED)

    def resume(self) -> None:
        if self.state is not SessionState.PAUSED:
            raise IllegalState(f"Cannot resume while {self.state.value}")
        self.media.play()
        self._set_state(SessionState.PLAYING)

    def stop(self) -> None:
        """End the session now. Notes still in flight are not scored."""
        if self.state is SessionState.FINISHED:
            return
        for player in self._players.values():
            player.active_note_index = None
            player.pending_samples = []
        self.media.pause()
        self._finish("stopped", close_in_flight=False)

    def dispose(self) -> None:
        """Stop, release every capture stream and close the media. Idempotent."""
        if self._disposed:
            return
        self.stop()
        self.router.disconnect_all()
        self.media.close()
        self._disposed = True

    def handle_media_ended(self) -> None:
        """End-of-media notification for hosts that push it instead of polling."""
        if self.state in (SessionState.PLAYING, SessionState.PAUSED):
            self._finish("media_ended", close_in_flight=True)

    # Players

    def add_player(self, player_id: int, input_id: str, track: int | None = None) -> PlayerState:
        """Add a player singing into ``input_id``.

        Without an explicit track the first player sings track 1, the next one
        takes track 2 of a duet while nobody sings it, everyone else track 1.
        """
        if self.state in (SessionState.IDLE, SessionState.LOADING):
            raise IllegalState("Load a song before adding players")
        if self.state is SessionState.FINISHED:
            raise IllegalState("Cannot add players to a finished session")
        if player_id in self._players:
            raise ValueError(f"Player {player_id} already exists")
        if track is None:
            track = self._default_track()
        elif track not in self._timelines:
            raise ValueError(f"Track {track} is not available for this song")

        player = PlayerState(id=player_id, input_id=input_id, track=track)
        if self.state in (SessionState.PLAYING, SessionState.PAUSED):
            # PermissionDenied propagates before the player is registered
            self._connect_input(player)
        self._players[player_id] = player
        return player

    def remove_player(self, player_id: int) -> None:
        player = self._players.pop(player_id, None)
        if player is None:
            return
        if not any(p.input_id == player.input_id for p in self._players.values()):
            self.router.disconnect(player.input_id)

    def _default_track(self) -> int:
        if not self._players:
            return 1
        if 2 in self._timelines and not any(p.track == 2 for p in self._players.values()):
            return 2
        return 1

    def _connect_input(self, player: PlayerState) -> bool:
        """Connect a player's input. Returns True if this call opened it."""
        if self.router.is_connected(player.input_id):
            return False
        try:
            self.router.connect_input_id(player.input_id)
        except CaptureUnavailable as e:
            message = f"Player {player.id}: input {player.input_id} unavailable ({e})"
            self.warnings.append(message)
            self.console.print(f"  [yellow]{message}[/yellow]")
            return False
        return True

    # Game loop

    def tick(self, now_ms: float | None = None) -> None:
        """Advance the session by one frame.

        Args:
            now_ms: Host timestamp of this frame, used for the pitch hold
                window. Must not decrease between calls. Defaults to the
                media position.
        """
        if self.state is not SessionState.PLAYING:
            return

        position_ms = self.media.current_position_ms()
        if now_ms is None:
            now_ms = position_ms
        if self._last_now_ms is not None and now_ms < self._last_now_ms:
            raise ValueError(f"tick time went backwards: {now_ms} < {self._last_now_ms}")
        self._last_now_ms = now_ms

        if self.media.ended:
            self._finish("media_ended", close_in_flight=True)
            return

        self._events.emit(TimeUpdated(position_ms, self._timelines[1].beat_at(position_ms)))

        current_notes: dict[int, GameNote | None] = {}
        for track, timeline in self._timelines.items():
            current_notes[track] = timeline.current_note(position_ms)
            phrase = timeline.current_phrase(position_ms)
            if phrase is not self._current_phrases.get(track):
                self._current_phrases[track] = phrase
                self._events.emit(PhraseChanged(track, phrase))

        # One tracker step per input, shared by every player singing into it
        pitches: dict[str, float] = {}
        for player in self._players.values():
            if player.input_id not in pitches:
                pitches[player.input_id] = self.router.read_pitch(player.input_id, now_ms)

        for player in self._players.values():
            self._update_player(
                player, current_notes[player.track], pitches[player.input_id], position_ms
            )

    def _update_player(
        self,
        player: PlayerState,
        note: GameNote | None,
        pitch: float,
        position_ms: float,
    ) -> None:
        player.current_pitch_hz = pitch
        sample = PitchSample(time_ms=position_ms, frequency_hz=pitch)

        if sample.is_voiced:
            player.pitch_history.append(sample)
        player.trim_history(position_ms - self.settings.pitch_history_ms)
        self._events.emit(PitchUpdated(player.id, position_ms, pitch))

        in_flight = self._in_flight_note(player)
        if in_flight is not None and (note is None or note.index != in_flight.index):
            self._close_note(player, in_flight)

        if note is None or note.index in player.note_results:
            return
        if player.active_note_index is None:
            player.active_note_index = note.index
            player.pending_samples = []
        player.pending_samples.append(sample)

    def _in_flight_note(self, player: PlayerState) -> GameNote | None:
        if player.active_note_index is None:
            return None
        return self._timelines[player.track].note(player.active_note_index)

    def _close_note(self, player: PlayerState, note: GameNote) -> None:
        result = self.scorer.score_note(note, player.pending_samples)
        player.record_result(result)
        player.active_note_index = None
        player.pending_samples = []
        self._events.emit(NoteCompleted(player.id, player.track, result))

    def _finish(self, reason: str, close_in_flight: bool) -> None:
        if close_in_flight:
            for player in self._players.values():
                in_flight = self._in_flight_note(player)
                if in_flight is not None:
                    self._close_note(player, in_flight)
        self.router.disconnect_all()
        self._set_state(SessionState.FINISHED)
        self._events.emit(SessionEnded(reason))
        self.console.print(f"[bold green]Session finished[/bold green] ({reason})")

    # Seeking

    def seek(self, position_ms: float) -> bool:
        """Jump forward to position_ms. Backward seeks are ignored.

        Notes in flight that end before the target are closed and scored
        with the samples collected so far. Notes jumped over entirely get
        no result but still count towards the maximum score.

        Returns:
            True if the clock moved.
        """
        if self.state not in (SessionState.PLAYING, SessionState.PAUSED):
            raise IllegalState(f"Cannot seek while {self.state.value}")

        current_ms = self.media.current_position_ms()
        if position_ms <= current_ms:
            return False

        for player in self._players.values():
            in_flight = self._in_flight_note(player)
            if in_flight is not None and in_flight.end_time_ms < position_ms:
                self._close_note(player, in_flight)

        self.media.seek(position_ms)
        return True

    def skip(self) -> bool:
        """Skip to shortly before the next note on any track.

        When no note is left the session finishes instead.

        Returns:
            True if the clock moved or the session finished.
        """
        if self.state not in (SessionState.PLAYING, SessionState.PAUSED):
            raise IllegalState(f"Cannot skip while {self.state.value}")

        current_ms = self.media.current_position_ms()
        upcoming = [
            n for n in (t.next_note(current_ms) for t in self._timelines.values()) if n
        ]
        if not upcoming:
            self.media.pause()
            self._finish("skipped", close_in_flight=True)
            return True

        next_start = min(n.start_time_ms for n in upcoming)
        return self.seek(max(0.0, next_start - self.settings.skip_lead_ms))

    # Queries

    def drain_events(self) -> list[SessionEvent]:
        """Return and clear every event emitted since the last drain."""
        return self._events.drain()

    def current_time_ms(self) -> float:
        return self.media.current_position_ms()

    def tracks(self) -> list[int]:
        return sorted(self._timelines)

    def timeline(self, track: int = 1) -> ChartTimeline:
        return self._timelines[track]

    def players(self) -> list[PlayerState]:
        return list(self._players.values())

    def player(self, player_id: int) -> PlayerState:
        return self._players[player_id]

    def max_score_for(self, player_id: int) -> int:
        return self._timelines[self._players[player_id].track].max_score()

    def results(self) -> list[PlayerSummary]:
        return [
            PlayerSummary(
                player_id=p.id,
                input_id=p.input_id,
                track=p.track,
                score=p.score,
                max_score=self.max_score_for(p.id),
                notes_scored=len(p.note_results),
            )
            for p in self._players.values()
        ]

    def _set_state(self, state: SessionState) -> None:
        self.state = state
        self._events.emit(StateChanged(state))
