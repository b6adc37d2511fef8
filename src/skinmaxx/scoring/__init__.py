"""Multi-pass scoring of face-analysis attributes into a skin-health score.

Scoring Passes:
    1. Normalize - each raw skinstatus attribute to a 0-100 metric,
       with a fixed fallback when the provider omits it
    2. Categories - 14 metrics grouped into surface texture,
       pigmentation/tone, clarity and aging structure
    3. Technical - mean of all category metrics
    4. Radiance - beauty score with a smile bonus
    5. Composite - 70/30 blend of technical and radiance

Every pass is a pure function of the provider attributes, so the same
detection always yields the same result.
"""

from __future__ import annotations

# Re-export types for convenience
from skinmaxx.scoring.types import (
    AgingStructure,
    AnalysisResult,
    CategoryScores,
    Clarity,
    PigmentationTone,
    RadianceScore,
    RawDetectionAttributes,
    SkinType,
    SurfaceTexture,
)

# Import pass functions for direct use
from skinmaxx.scoring.categories import (
    compute_categories,
    compute_technical_score,
    derive_skin_type,
)
from skinmaxx.scoring.composite import (
    RADIANCE_WEIGHT,
    TECHNICAL_WEIGHT,
    compose_score,
)
from skinmaxx.scoring.normalize import extract_value, normalize
from skinmaxx.scoring.radiance import compute_radiance, radiance_multiplier
from skinmaxx.scoring.utils import round_half_up

__all__ = [
    # Types
    "RawDetectionAttributes",
    "SurfaceTexture",
    "PigmentationTone",
    "Clarity",
    "AgingStructure",
    "CategoryScores",
    "RadianceScore",
    "SkinType",
    "AnalysisResult",
    # Main scoring
    "score_attributes",
    "DEFAULT_SKIN_AGE",
    # Pass functions
    "extract_value",
    "normalize",
    "compute_categories",
    "compute_technical_score",
    "derive_skin_type",
    "compute_radiance",
    "radiance_multiplier",
    "compose_score",
    "TECHNICAL_WEIGHT",
    "RADIANCE_WEIGHT",
    "round_half_up",
]

# Used when the provider returns no age estimate
DEFAULT_SKIN_AGE = 32


def score_attributes(raw: RawDetectionAttributes) -> AnalysisResult:
    """Compute the full analysis result for one detected face.

    Args:
        raw: Attributes of the first detected face.

    Returns:
        AnalysisResult with all passes computed.
    """
    categories = compute_categories(raw.skin_status)
    technical = compute_technical_score(categories)
    radiance = compute_radiance(raw.happiness, raw.female_beauty, raw.male_beauty)

    return AnalysisResult(
        score=compose_score(technical, radiance.raw_score),
        skin_age=int(raw.age or DEFAULT_SKIN_AGE),
        skin_type=derive_skin_type(raw.skin_status),
        surface_texture=categories.surface_texture,
        pigmentation_tone=categories.pigmentation_tone,
        clarity=categories.clarity,
        aging_structure=categories.aging_structure,
        radiance_score=radiance.score,
        has_radiance_bonus=radiance.has_bonus,
        smile_probability=radiance.smile_probability,
    )
