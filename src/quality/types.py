"""
Data structures for the Quality Analyzer.

The quality profile is derived once per image and drives which enhancement
steps run.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple


class QualityTier(Enum):
    """Coarse suitability of an image for text recognition."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


@dataclass(frozen=True)
class QualityProfile:
    """
    Measured quality of a decoded image.

    Attributes:
        width: Image width in pixels
        height: Image height in pixels
        pixel_density: Total pixel count (width * height)
        sharpness: Variance of the Laplacian of the grayscale image
        contrast: Standard deviation of grayscale intensities
        tier: Assigned quality tier
    """

    width: int
    height: int
    pixel_density: int
    sharpness: float
    contrast: float
    tier: QualityTier

    def to_dict(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "pixelDensity": self.pixel_density,
            "sharpness": round(self.sharpness, 2),
            "contrast": round(self.contrast, 2),
            "tier": self.tier.value,
        }


@dataclass(frozen=True)
class DocumentLikeness:
    """
    Image-only estimate of whether a photo shows a printed certificate.

    Attributes:
        score: Heuristic score in [0, 100]
        is_likely_document: True when score reaches the acceptance mark
        warnings: Human-readable reasons that lowered the score
    """

    score: float
    is_likely_document: bool
    warnings: Tuple[str, ...] = field(default_factory=tuple)
