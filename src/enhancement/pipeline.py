"""
Tier-driven enhancement pipeline.

Chooses and runs enhancement stages from the quality profile:

- Low tier: smoothing → equalization → sharpening → upscaling → binarization
- Medium tier: equalization and sharpening only while the measured
  contrast / sharpness of the current buffer is below threshold, then
  binarization
- High tier: binarization only

A stage that cannot run (upscale above the pixel ceiling, an OpenCV error)
is skipped and recorded; it never fails the pipeline.
"""

import logging
from typing import Callable, Optional, Tuple

import cv2

from src.common.cancellation import CancellationToken, check_cancelled
from src.common.errors import EnhancementSkipped
from src.common.types import RasterImage
from src.enhancement.filters import (
    adaptive_binarize,
    adaptive_equalize,
    edge_preserving_smooth,
    unsharp_mask,
    upscale,
    upscale_factor_for,
)
from src.enhancement.types import (
    STEP_BINARIZATION,
    STEP_EQUALIZATION,
    STEP_SHARPENING,
    STEP_SMOOTHING,
    STEP_UPSCALE,
    EnhancementRecord,
)
from src.pipeline.config_loader import EnhancementConfig
from src.quality.analyzer import calculate_contrast, calculate_sharpness
from src.quality.types import QualityProfile, QualityTier

logger = logging.getLogger(__name__)

StepCallback = Callable[[str], None]


class EnhancementPipeline:
    """
    Adaptive image enhancement driven by a QualityProfile.

    Example:
        >>> pipeline = EnhancementPipeline()
        >>> enhanced, record = pipeline.enhance(image, analyze_quality(image))
        >>> print(record.applied)
        ('edge-preserving-smoothing', ..., 'adaptive-threshold')
    """

    def __init__(self, config: Optional[EnhancementConfig] = None):
        self.config = config or EnhancementConfig()

    def enhance(
        self,
        image: RasterImage,
        profile: QualityProfile,
        token: Optional[CancellationToken] = None,
        on_step: Optional[StepCallback] = None,
    ) -> Tuple[RasterImage, EnhancementRecord]:
        """
        Run the enhancement stages selected for the profile's tier.

        Args:
            image: Decoded image (any channel layout); left untouched
            profile: Quality profile of ``image``
            token: Optional cancellation token checked before every stage
            on_step: Optional callback invoked with each stage name before it runs

        Returns:
            Tuple of (enhanced grayscale image, frozen EnhancementRecord)

        Raises:
            PipelineCancelledError: If the token is cancelled between stages
        """
        record = EnhancementRecord()
        current = image.to_gray()
        cfg = self.config

        logger.info(f"Enhancing {profile.tier.value} tier image")

        def run(name: str, transform: Callable[[RasterImage], RasterImage]) -> None:
            nonlocal current
            check_cancelled(token, name)
            if on_step is not None:
                on_step(name)
            try:
                current = transform(current)
            except EnhancementSkipped as e:
                logger.warning(f"Enhancement step {e.step} skipped: {e.reason}")
                record.add_skipped(e.step, e.reason)
                return
            except (cv2.error, ValueError) as e:
                logger.warning(f"Enhancement step {name} failed: {e}", exc_info=True)
                record.add_skipped(name, str(e))
                return
            record.add_step(name)

        if profile.tier == QualityTier.LOW:
            run(STEP_SMOOTHING, self._smooth)
            run(STEP_EQUALIZATION, self._equalize)
            run(
                STEP_SHARPENING,
                lambda img: self._sharpen(img, cfg.low_tier_sharpen_amount),
            )
            factor = upscale_factor_for(profile.pixel_density, cfg.upscale_steps)
            if factor is not None:
                run(STEP_UPSCALE.format(factor=factor), self._make_upscale(factor))

        elif profile.tier == QualityTier.MEDIUM:
            if calculate_contrast(current.to_numpy()) < cfg.medium_contrast_threshold:
                run(STEP_EQUALIZATION, self._equalize)
            if calculate_sharpness(current.to_numpy()) < cfg.medium_sharpness_threshold:
                run(
                    STEP_SHARPENING,
                    lambda img: self._sharpen(img, cfg.medium_tier_sharpen_amount),
                )

        run(STEP_BINARIZATION, self._binarize)

        record.freeze()
        logger.info(
            f"Enhancement applied: {', '.join(record.steps) or 'none'}"
            + (f"; skipped: {'; '.join(record.skipped)}" if record.skipped else "")
        )
        return current, record

    # ═══════════════════════════════════════════════════════════════════
    # Stage adapters
    # ═══════════════════════════════════════════════════════════════════

    def _smooth(self, image: RasterImage) -> RasterImage:
        cfg = self.config
        return edge_preserving_smooth(
            image,
            diameter=cfg.bilateral_diameter,
            sigma_color=cfg.bilateral_sigma_color,
            sigma_space=cfg.bilateral_sigma_space,
        )

    def _equalize(self, image: RasterImage) -> RasterImage:
        cfg = self.config
        return adaptive_equalize(
            image,
            clip_limit=cfg.clahe_clip_limit,
            min_tile=cfg.clahe_min_tile,
            max_tile=cfg.clahe_max_tile,
        )

    def _sharpen(self, image: RasterImage, amount: float) -> RasterImage:
        cfg = self.config
        return unsharp_mask(
            image,
            amount=amount,
            threshold=cfg.unsharp_threshold,
            sigma=cfg.unsharp_sigma,
        )

    def _make_upscale(self, factor: int) -> Callable[[RasterImage], RasterImage]:
        def _upscale(image: RasterImage) -> RasterImage:
            target = image.pixel_count * factor * factor
            if target > self.config.max_pixels:
                raise EnhancementSkipped(
                    STEP_UPSCALE.format(factor=factor),
                    f"{target} px exceeds pixel ceiling {self.config.max_pixels}",
                )
            return upscale(image, factor)

        return _upscale

    def _binarize(self, image: RasterImage) -> RasterImage:
        cfg = self.config
        return adaptive_binarize(
            image,
            block_size=cfg.binarize_block_size,
            low_factor=cfg.binarize_low_factor,
            high_factor=cfg.binarize_high_factor,
        )
