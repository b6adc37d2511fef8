"""Final score: fixed 70/30 blend of technical and radiance scores."""

from __future__ import annotations

from skinmaxx.scoring.utils import round_half_up

TECHNICAL_WEIGHT = 0.7
RADIANCE_WEIGHT = 0.3


def compose_score(technical_score: float, radiance_score: float) -> int:
    """Blend technical and radiance scores into the reported score.

    Both inputs are bounded to [0, 100], so the result is as well.
    """
    return round_half_up(
        technical_score * TECHNICAL_WEIGHT + radiance_score * RADIANCE_WEIGHT
    )
