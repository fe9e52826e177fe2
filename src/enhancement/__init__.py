"""
Enhancement Pipeline.

Pure pixel-buffer transforms and the quality-tier-driven policy that picks
which of them run.
"""

from src.enhancement.filters import (
    adaptive_binarize,
    adaptive_equalize,
    clahe_grid,
    edge_preserving_smooth,
    otsu_threshold,
    unsharp_mask,
    upscale,
    upscale_factor_for,
)
from src.enhancement.pipeline import EnhancementPipeline
from src.enhancement.types import EnhancementRecord

__all__ = [
    "EnhancementPipeline",
    "EnhancementRecord",
    "adaptive_binarize",
    "adaptive_equalize",
    "clahe_grid",
    "edge_preserving_smooth",
    "otsu_threshold",
    "unsharp_mask",
    "upscale",
    "upscale_factor_for",
]
