"""Category aggregation: normalized metrics grouped into four records.

Each category field reads exactly one named skinstatus attribute with a
fixed normalization policy. Several fields share a source attribute
(stain, health, dark_circle).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

import numpy as np

from skinmaxx.scoring.normalize import normalize
from skinmaxx.scoring.types import (
    AgingStructure,
    CategoryScores,
    Clarity,
    PigmentationTone,
    SkinType,
    SurfaceTexture,
)
from skinmaxx.scoring.utils import round_half_up

DEFAULT_TECHNICAL_SCORE = 75


@dataclass(frozen=True)
class MetricRule:
    """Where a category field comes from and how it is normalized."""

    source: str
    inverse: bool
    fallback: int
    max_value: float = 100.0

    def apply(self, skin_status: Mapping[str, float]) -> int:
        return normalize(
            skin_status.get(self.source), self.max_value, self.inverse, self.fallback
        )


SURFACE_TEXTURE_RULES = {
    "texture": MetricRule("health", inverse=False, fallback=75),
    "pores": MetricRule("pore", inverse=True, fallback=50),
    "oiliness": MetricRule("oily", inverse=True, fallback=50),
    "moisture": MetricRule("moisture", inverse=False, fallback=50),
}

PIGMENTATION_TONE_RULES = {
    "spots": MetricRule("stain", inverse=True, fallback=50),
    "redness": MetricRule("stain", inverse=True, fallback=50),
    "dark_circles": MetricRule("dark_circle", inverse=True, fallback=50),
}

CLARITY_RULES = {
    "acne": MetricRule("acne", inverse=True, fallback=50),
    "tear_trough": MetricRule("dark_circle", inverse=True, fallback=50),
}

AGING_STRUCTURE_RULES = {
    "wrinkles": MetricRule("wrinkle", inverse=True, fallback=50),
    "firmness": MetricRule("health", inverse=False, fallback=75),
    "eyebags": MetricRule("dark_circle", inverse=True, fallback=50),
    "droopy_upper_eyelid": MetricRule("health", inverse=False, fallback=75),
    "droopy_lower_eyelid": MetricRule("dark_circle", inverse=True, fallback=50),
}


def _apply_rules(
    rules: Mapping[str, MetricRule], skin_status: Mapping[str, float]
) -> dict[str, int]:
    return {name: rule.apply(skin_status) for name, rule in rules.items()}


def compute_categories(skin_status: Mapping[str, float]) -> CategoryScores:
    """Normalize raw skinstatus attributes into the four category records."""
    return CategoryScores(
        surface_texture=SurfaceTexture(
            **_apply_rules(SURFACE_TEXTURE_RULES, skin_status)
        ),
        pigmentation_tone=PigmentationTone(
            **_apply_rules(PIGMENTATION_TONE_RULES, skin_status)
        ),
        clarity=Clarity(**_apply_rules(CLARITY_RULES, skin_status)),
        aging_structure=AgingStructure(
            **_apply_rules(AGING_STRUCTURE_RULES, skin_status)
        ),
    )


def compute_technical_score(categories: CategoryScores) -> int:
    """Mean of all category metrics, ignoring NaN. 75 if none remain."""
    values = np.asarray(categories.all_metrics(), dtype=np.float64)
    values = values[~np.isnan(values)]
    if values.size == 0:
        return DEFAULT_TECHNICAL_SCORE
    return round_half_up(float(values.mean()))


def derive_skin_type(skin_status: Mapping[str, float]) -> SkinType:
    """Classify skin type from raw (unnormalized) values.

    Missing or zero readings are substituted: oily and moisture with 50,
    acne with 0. Rules are checked in order; first match wins.
    """
    oily = skin_status.get("oily") or 50
    moisture = skin_status.get("moisture") or 50
    acne = skin_status.get("acne") or 0

    if oily > 60:
        return SkinType.OILY
    if moisture < 40:
        return SkinType.DRY
    if oily > 40 and moisture < 50:
        return SkinType.COMBINATION
    if acne > 50:
        return SkinType.SENSITIVE
    return SkinType.NORMAL
