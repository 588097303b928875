"""Error taxonomy for Karaoke Core."""


class KaraokeError(Exception):
    """Base class for all errors raised by this package."""


class MediaLoadError(KaraokeError):
    """The song's audio could not be loaded. Fatal to the session."""


class CaptureUnavailable(KaraokeError):
    """A single microphone input failed to open.

    Isolated to that input: the player stays silent and the session goes on.
    """


class PermissionDenied(KaraokeError):
    """Microphone access was refused outright. Surfaced to the caller."""


class IllegalState(KaraokeError):
    """An operation was called in a session state that does not allow it."""


class ChartFormatError(KaraokeError, ValueError):
    """A song record could not be parsed into charts."""
