"""
Configuration and data model for the photoredact engine.

Defines data classes and enums for regions, effects and configuration
management with type hints.
"""

import json
import math
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union
from pathlib import Path

from .errors import UnsupportedEffectError


class EffectType(Enum):
    """Redaction effect kinds."""
    GAUSSIAN = "gaussian"
    PIXELATION = "pixelation"
    BLACK_BOX = "black_box"


class DetectionSource(Enum):
    """Where a region came from. Informational only to the engine."""
    AUTO_FACE = "auto_face"
    AUTO_ID_CARD = "auto_id_card"
    AUTO_LICENSE_PLATE = "auto_license_plate"
    MANUAL = "manual"


DEFAULT_GAUSSIAN_RADIUS = 25
DEFAULT_PIXEL_SIZE = 20
DEFAULT_HISTORY_LIMIT = 50


@dataclass(frozen=True)
class Rect:
    """Axis-aligned integer box, right/bottom exclusive."""
    left: int
    top: int
    right: int
    bottom: int

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    @property
    def area(self) -> int:
        return 0 if self.is_empty else self.width * self.height

    def clamp(self, width: int, height: int) -> "Rect":
        """Intersect with the [0, width] x [0, height] image bounds."""
        return Rect(
            max(0, self.left),
            max(0, self.top),
            min(width, self.right),
            min(height, self.bottom),
        )

    def scaled(self, scale_x: float, scale_y: float) -> "Rect":
        """Scale into another resolution; edges round outward."""
        return Rect(
            int(math.floor(self.left * scale_x)),
            int(math.floor(self.top * scale_y)),
            int(math.ceil(self.right * scale_x)),
            int(math.ceil(self.bottom * scale_y)),
        )

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.left, self.top, self.right, self.bottom)

    @classmethod
    def from_tuple(cls, bbox) -> "Rect":
        """Create from an (x1, y1, x2, y2) sequence."""
        x1, y1, x2, y2 = bbox
        return cls(int(x1), int(y1), int(x2), int(y2))


def _require_positive_int(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < 1:
        raise ValueError(f"{name} must be >= 1, got {value}")


@dataclass(frozen=True)
class GaussianBlur:
    """Stack blur approximation of a Gaussian blur."""
    radius: int = DEFAULT_GAUSSIAN_RADIUS

    effect_type: ClassVar[EffectType] = EffectType.GAUSSIAN

    def __post_init__(self):
        _require_positive_int("radius", self.radius)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.effect_type.value, "radius": self.radius}


@dataclass(frozen=True)
class Pixelation:
    """Mosaic made of block_size x block_size cells."""
    block_size: int = DEFAULT_PIXEL_SIZE

    effect_type: ClassVar[EffectType] = EffectType.PIXELATION

    def __post_init__(self):
        _require_positive_int("block_size", self.block_size)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.effect_type.value, "block_size": self.block_size}


@dataclass(frozen=True)
class BlackBox:
    """Solid fill over the whole region."""

    effect_type: ClassVar[EffectType] = EffectType.BLACK_BOX

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.effect_type.value}


Effect = Union[GaussianBlur, Pixelation, BlackBox]
EFFECT_CLASSES = (GaussianBlur, Pixelation, BlackBox)


def validate_effect(effect: Any) -> Effect:
    """Return ``effect`` if it is a supported effect, raise otherwise."""
    if not isinstance(effect, EFFECT_CLASSES):
        raise UnsupportedEffectError(
            f"Unsupported effect: {effect!r}. "
            f"Valid effects: {', '.join(t.value for t in EffectType)}"
        )
    return effect


def effect_from_dict(data: Dict[str, Any]) -> Effect:
    """Create an effect from its dictionary form."""
    try:
        effect_type = EffectType(data.get("type"))
    except ValueError:
        raise UnsupportedEffectError(f"Unknown effect type: {data.get('type')!r}") from None

    if effect_type is EffectType.GAUSSIAN:
        return GaussianBlur(radius=data.get("radius", DEFAULT_GAUSSIAN_RADIUS))
    if effect_type is EffectType.PIXELATION:
        return Pixelation(block_size=data.get("block_size", DEFAULT_PIXEL_SIZE))
    return BlackBox()


@dataclass(frozen=True)
class Region:
    """A bounding box with its effect assignment and provenance tag."""
    id: str
    bbox: Rect
    effect: Effect
    source: DetectionSource = DetectionSource.MANUAL

    def __post_init__(self):
        validate_effect(self.effect)

    @classmethod
    def create(
        cls,
        bbox: Union[Rect, Tuple[int, int, int, int]],
        effect: Optional[Effect] = None,
        source: DetectionSource = DetectionSource.MANUAL
    ) -> "Region":
        """Create a region with a fresh unique id."""
        if not isinstance(bbox, Rect):
            bbox = Rect.from_tuple(bbox)
        return cls(
            id=str(uuid.uuid4()),
            bbox=bbox,
            effect=effect if effect is not None else GaussianBlur(),
            source=source,
        )

    def with_effect(self, effect: Effect) -> "Region":
        return replace(self, effect=effect)

    def with_bbox(self, bbox: Rect) -> "Region":
        return replace(self, bbox=bbox)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "bbox": list(self.bbox.as_tuple()),
            "effect": self.effect.to_dict(),
            "source": self.source.value
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Region":
        """Create from dictionary. A missing id gets a generated one."""
        return cls(
            id=str(data.get("id") or uuid.uuid4()),
            bbox=Rect.from_tuple(data["bbox"]),
            effect=effect_from_dict(data.get("effect", {"type": EffectType.GAUSSIAN.value})),
            source=DetectionSource(data.get("source", DetectionSource.MANUAL.value))
        )


@dataclass
class RedactionConfig:
    """Configuration for redaction rendering."""
    default_effect: EffectType = EffectType.GAUSSIAN
    gaussian_radius: int = DEFAULT_GAUSSIAN_RADIUS
    pixel_size: int = DEFAULT_PIXEL_SIZE
    fill_color: Tuple[int, int, int] = (0, 0, 0)  # RGB black
    history_limit: int = DEFAULT_HISTORY_LIMIT

    def make_effect(self, effect_type: Optional[EffectType] = None) -> Effect:
        """Build an effect of the given type using the configured defaults."""
        effect_type = effect_type or self.default_effect
        if effect_type is EffectType.GAUSSIAN:
            return GaussianBlur(radius=self.gaussian_radius)
        if effect_type is EffectType.PIXELATION:
            return Pixelation(block_size=self.pixel_size)
        if effect_type is EffectType.BLACK_BOX:
            return BlackBox()
        raise UnsupportedEffectError(f"Unknown effect type: {effect_type!r}")


@dataclass
class ImageIOConfig:
    """Configuration for image loading and export."""
    max_dimension: int = 2048  # Longest edge after loading
    jpeg_quality: int = 95
    export_prefix: str = "Redacted"


@dataclass
class PhotoRedactConfig:
    """Main configuration class for photoredact."""
    redaction: RedactionConfig = field(default_factory=RedactionConfig)
    io: ImageIOConfig = field(default_factory=ImageIOConfig)

    # General settings
    output_dir: Path = field(default_factory=lambda: Path.cwd() / "output")
    log_level: str = "INFO"
    save_metadata: bool = True

    def __post_init__(self):
        self.output_dir = Path(self.output_dir)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "redaction": {
                "default_effect": self.redaction.default_effect.value,
                "gaussian_radius": self.redaction.gaussian_radius,
                "pixel_size": self.redaction.pixel_size,
                "fill_color": list(self.redaction.fill_color),
                "history_limit": self.redaction.history_limit,
            },
            "io": {
                "max_dimension": self.io.max_dimension,
                "jpeg_quality": self.io.jpeg_quality,
                "export_prefix": self.io.export_prefix,
            },
            "output_dir": str(self.output_dir),
            "log_level": self.log_level,
            "save_metadata": self.save_metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PhotoRedactConfig":
        """Create from dictionary. Unknown keys are ignored."""
        redaction_data = dict(data.get("redaction", {}))
        if "default_effect" in redaction_data:
            redaction_data["default_effect"] = EffectType(redaction_data["default_effect"])
        if "fill_color" in redaction_data:
            redaction_data["fill_color"] = tuple(redaction_data["fill_color"])

        config = cls(
            redaction=RedactionConfig(**_known_fields(RedactionConfig, redaction_data)),
            io=ImageIOConfig(**_known_fields(ImageIOConfig, data.get("io", {}))),
        )
        if "output_dir" in data:
            config.output_dir = Path(data["output_dir"])
        config.log_level = data.get("log_level", config.log_level)
        config.save_metadata = data.get("save_metadata", config.save_metadata)
        return config


def _known_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k in cls.__dataclass_fields__}


def load_config(config_path: Optional[Union[str, Path]] = None) -> PhotoRedactConfig:
    """Load configuration from a JSON file or use defaults."""
    if not config_path:
        return PhotoRedactConfig()

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        return PhotoRedactConfig.from_dict(json.load(f))


@dataclass
class ProcessingMetadata:
    """Metadata about one redacted image."""
    input_file: str
    output_file: str
    processing_time_ms: float
    regions: List[Region]
    image_size: Tuple[int, int]  # (width, height)
    timestamp: str
    applied_regions: int = 0
    skipped_regions: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "input_file": self.input_file,
            "output_file": self.output_file,
            "processing_time_ms": self.processing_time_ms,
            "regions": [r.to_dict() for r in self.regions],
            "image_size": list(self.image_size),
            "timestamp": self.timestamp,
            "applied_regions": self.applied_regions,
            "skipped_regions": self.skipped_regions
        }
