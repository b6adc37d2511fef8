"""Score dataclasses for the skin analysis pipeline."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any

from skinmaxx.scoring.normalize import extract_value


class SkinType(str, Enum):
    """Derived skin type (never supplied by the provider)."""

    OILY = "Oily"
    DRY = "Dry"
    NORMAL = "Normal"
    COMBINATION = "Combination"
    SENSITIVE = "Sensitive"


def _section(parent: Any, key: str) -> Mapping[str, Any]:
    if not isinstance(parent, Mapping):
        return {}
    value = parent.get(key)
    return value if isinstance(value, Mapping) else {}


@dataclass(frozen=True)
class RawDetectionAttributes:
    """Provider attributes for one face, before normalization.

    Absent attributes are None; skin_status only holds attributes
    that were present and numeric.
    """

    age: float | None = None
    happiness: float | None = None  # 0-100
    female_beauty: float | None = None  # 0-100
    male_beauty: float | None = None  # 0-100
    skin_status: Mapping[str, float] = field(default_factory=dict)

    @classmethod
    def from_face(cls, face: Mapping[str, Any]) -> RawDetectionAttributes:
        """Build from one entry of the provider's ``faces`` list.

        Sections that are not objects are treated as absent.
        """
        attributes = _section(face, "attributes")
        emotion = _section(attributes, "emotion")
        beauty = _section(attributes, "beauty")
        skin = _section(attributes, "skinstatus")

        skin_status = {}
        for name, raw in skin.items():
            value = extract_value(raw)
            if value is not None:
                skin_status[name] = value

        return cls(
            age=extract_value(attributes.get("age")),
            happiness=extract_value(emotion.get("happiness")),
            female_beauty=extract_value(beauty.get("female_score")),
            male_beauty=extract_value(beauty.get("male_score")),
            skin_status=skin_status,
        )

    def skin(self, name: str) -> float | None:
        """Raw skin status attribute, or None if absent."""
        return self.skin_status.get(name)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


class _Category:
    """Mixin for fixed-shape category records."""

    def values(self) -> list[int]:
        return [getattr(self, f.name) for f in fields(self)]  # type: ignore[arg-type]

    def to_wire(self) -> dict[str, int]:
        return {_camel(k): v for k, v in asdict(self).items()}  # type: ignore[call-overload]

    @classmethod
    def from_wire(cls, data: Mapping[str, Any]):  # type: ignore[no-untyped-def]
        return cls(**{f.name: int(data[_camel(f.name)]) for f in fields(cls)})  # type: ignore[arg-type]


@dataclass(frozen=True)
class SurfaceTexture(_Category):
    texture: int = 0
    pores: int = 0
    oiliness: int = 0
    moisture: int = 0


@dataclass(frozen=True)
class PigmentationTone(_Category):
    spots: int = 0
    redness: int = 0
    dark_circles: int = 0


@dataclass(frozen=True)
class Clarity(_Category):
    acne: int = 0
    tear_trough: int = 0


@dataclass(frozen=True)
class AgingStructure(_Category):
    wrinkles: int = 0
    firmness: int = 0
    eyebags: int = 0
    droopy_upper_eyelid: int = 0
    droopy_lower_eyelid: int = 0


@dataclass(frozen=True)
class CategoryScores:
    """The four category records of one analysis."""

    surface_texture: SurfaceTexture = field(default_factory=SurfaceTexture)
    pigmentation_tone: PigmentationTone = field(default_factory=PigmentationTone)
    clarity: Clarity = field(default_factory=Clarity)
    aging_structure: AgingStructure = field(default_factory=AgingStructure)

    def all_metrics(self) -> list[int]:
        """All 14 normalized metrics, category by category."""
        return (
            self.surface_texture.values()
            + self.pigmentation_tone.values()
            + self.clarity.values()
            + self.aging_structure.values()
        )


@dataclass(frozen=True)
class RadianceScore:
    """Radiance evaluation of one face."""

    multiplier: float = 1.0
    has_bonus: bool = False
    raw_score: float = 0.0  # unrounded, used for blending
    score: int = 0
    smile_probability: float = 0.0  # 0-1


@dataclass(frozen=True)
class AnalysisResult:
    """Final result of one analysis. Constructed once, never mutated."""

    score: int
    skin_age: int
    skin_type: SkinType
    surface_texture: SurfaceTexture
    pigmentation_tone: PigmentationTone
    clarity: Clarity
    aging_structure: AgingStructure
    radiance_score: int
    has_radiance_bonus: bool
    smile_probability: float

    @property
    def categories(self) -> CategoryScores:
        return CategoryScores(
            surface_texture=self.surface_texture,
            pigmentation_tone=self.pigmentation_tone,
            clarity=self.clarity,
            aging_structure=self.aging_structure,
        )

    def to_wire(self) -> dict[str, Any]:
        """camelCase JSON shape used on the RPC surface."""
        return {
            "score": self.score,
            "skinAge": self.skin_age,
            "skinType": self.skin_type.value,
            "surfaceTexture": self.surface_texture.to_wire(),
            "pigmentationTone": self.pigmentation_tone.to_wire(),
            "clarity": self.clarity.to_wire(),
            "agingStructure": self.aging_structure.to_wire(),
            "radianceScore": self.radiance_score,
            "hasRadianceBonus": self.has_radiance_bonus,
            "smileProbability": self.smile_probability,
        }

    @classmethod
    def from_wire(cls, data: Mapping[str, Any]) -> AnalysisResult:
        return cls(
            score=int(data["score"]),
            skin_age=int(data["skinAge"]),
            skin_type=SkinType(data["skinType"]),
            surface_texture=SurfaceTexture.from_wire(data["surfaceTexture"]),
            pigmentation_tone=PigmentationTone.from_wire(data["pigmentationTone"]),
            clarity=Clarity.from_wire(data["clarity"]),
            aging_structure=AgingStructure.from_wire(data["agingStructure"]),
            radiance_score=int(data["radianceScore"]),
            has_radiance_bonus=bool(data["hasRadianceBonus"]),
            smile_probability=float(data.get("smileProbability", 0.0)),
        )
