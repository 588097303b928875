"""Configuration management for Karaoke Core."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="KARAOKE_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Pitch tracking
    pitch_buffer_size: int = Field(
        default=2048,
        description="Samples per frame handed to the pitch estimator",
    )
    min_confidence_threshold: float = Field(
        default=0.02,
        description="Minimum RMS signal strength for a frame to count as voiced",
    )
    max_semitone_jump: float = Field(
        default=3.0,
        description="Jumps larger than this (in semitones) use the jump smoothing factor",
    )
    smoothing_factor: float = Field(
        default=0.3,
        description="Exponential smoothing weight of a new estimate (lower = smoother)",
    )
    jump_smoothing_factor: float = Field(
        default=0.3,
        description="Smoothing weight applied when the estimate jumps past max_semitone_jump",
    )
    pitch_hold_time_ms: float = Field(
        default=180.0,
        description="How long the last pitch is held after detection drops out",
    )
    pitch_hold_decay_rate: float = Field(
        default=0.85,
        description="Per-frame confidence decay while a pitch is held",
    )
    pitch_fmin_hz: float = Field(
        default=60.0,
        description="Lowest fundamental the YIN estimator searches for",
    )
    pitch_fmax_hz: float = Field(
        default=1500.0,
        description="Highest fundamental the YIN estimator searches for",
    )

    # Session
    pitch_history_ms: float = Field(
        default=5000.0,
        description="Rolling window of pitch samples kept per player",
    )
    phrase_lead_in_ms: float = Field(
        default=2000.0,
        description="A phrase becomes current this long before its first note",
    )
    phrase_linger_ms: float = Field(
        default=500.0,
        description="A phrase stays current this long after its last note",
    )
    skip_lead_ms: float = Field(
        default=5000.0,
        description="skip() lands this long before the next note",
    )

    # Replay
    replay_fps: float = Field(
        default=60.0,
        description="Tick rate of the simulated clock used by `karaoke-core replay`",
    )

    quiet: bool = Field(
        default=False,
        description="Suppress console diagnostics",
    )


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def configure(**overrides: object) -> Settings:
    """Configure settings with overrides. Useful for testing."""
    global _settings
    _settings = Settings(**overrides)  # type: ignore[arg-type]
    return _settings
