"""Radiance pass: beauty score with a smile-gated bonus multiplier."""

from __future__ import annotations

from skinmaxx.scoring.types import RadianceScore
from skinmaxx.scoring.utils import round_half_up

SMILE_THRESHOLD = 80.0  # happiness must be strictly above this
BONUS_MULTIPLIER = 1.1
DEFAULT_BEAUTY = 70.0


def radiance_multiplier(happiness: float | None) -> float:
    """1.1 for a clear smile (happiness > 80), otherwise 1.0."""
    if (happiness or 0.0) > SMILE_THRESHOLD:
        return BONUS_MULTIPLIER
    return 1.0


def compute_radiance(
    happiness: float | None,
    female_beauty: float | None = None,
    male_beauty: float | None = None,
) -> RadianceScore:
    """Evaluate radiance for one face.

    Beauty prefers the female score, then the male score, then 70.
    A zero reading counts as absent.
    """
    happiness = happiness or 0.0
    multiplier = radiance_multiplier(happiness)
    beauty = female_beauty or male_beauty or DEFAULT_BEAUTY
    raw = min(beauty * multiplier, 100.0)

    return RadianceScore(
        multiplier=multiplier,
        has_bonus=multiplier > 1.0,
        raw_score=raw,
        score=round_half_up(raw),
        smile_probability=happiness / 100.0,
    )
