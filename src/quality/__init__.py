"""
Quality Analyzer.

Measures resolution, sharpness and contrast of a decoded image and assigns
the quality tier that drives the enhancement policy.
"""

from src.quality.analyzer import (
    analyze_quality,
    assign_tier,
    calculate_contrast,
    calculate_sharpness,
)
from src.quality.document_likeness import assess_document_likeness
from src.quality.types import DocumentLikeness, QualityProfile, QualityTier

__all__ = [
    "analyze_quality",
    "assign_tier",
    "calculate_contrast",
    "calculate_sharpness",
    "assess_document_likeness",
    "DocumentLikeness",
    "QualityProfile",
    "QualityTier",
]
