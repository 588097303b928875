"""Note scoring for Karaoke Core."""

from karaoke_core.scoring.scorer import (
    GOLDEN_MULTIPLIER,
    POINTS_PER_BEAT,
    Scorer,
    semitone_distance,
    tolerance_weight,
)

__all__ = [
    "GOLDEN_MULTIPLIER",
    "POINTS_PER_BEAT",
    "Scorer",
    "semitone_distance",
    "tolerance_weight",
]
