"""
Quality analysis for certificate photos and scans.

Evaluates an image's suitability for text recognition using:
1. Pixel density (resolution)
2. Sharpness (variance of the Laplacian)
3. Contrast (standard deviation of grayscale intensities)

and maps the three measurements onto a Low / Medium / High tier.
"""

import logging
from typing import Optional

import cv2
import numpy as np

from src.common.errors import ImageDecodeError
from src.common.types import RasterImage
from src.pipeline.config_loader import QualityThresholdsConfig
from src.quality.types import QualityProfile, QualityTier

logger = logging.getLogger(__name__)


def _gray_array(image: RasterImage) -> np.ndarray:
    if image is None or image.data is None or image.data.size == 0:
        raise ImageDecodeError("Invalid image: image is None or empty")
    return image.to_gray().to_numpy()


def calculate_sharpness(gray: np.ndarray) -> float:
    """
    Calculate sharpness as the variance of the Laplacian.

    Args:
        gray: Single-channel uint8 image

    Returns:
        Laplacian variance. Higher values indicate sharper edges.

    Raises:
        ImageDecodeError: If image is None or empty

    Example:
        >>> sharpness = calculate_sharpness(gray)
        >>> print(f"Sharpness: {sharpness:.1f}")
        Sharpness: 142.7
    """
    if gray is None or gray.size == 0:
        raise ImageDecodeError("Invalid image: image is None or empty")

    laplacian = cv2.Laplacian(gray, cv2.CV_64F)
    sharpness = float(laplacian.var())

    logger.debug(f"Sharpness (Laplacian variance): {sharpness:.2f}")
    return sharpness


def calculate_contrast(gray: np.ndarray) -> float:
    """
    Calculate global contrast as the standard deviation of intensities.

    Args:
        gray: Single-channel uint8 image

    Returns:
        Intensity standard deviation in [0, 127.5].

    Raises:
        ImageDecodeError: If image is None or empty
    """
    if gray is None or gray.size == 0:
        raise ImageDecodeError("Invalid image: image is None or empty")

    contrast = float(np.std(gray, dtype=np.float64))

    logger.debug(f"Contrast (intensity std-dev): {contrast:.2f}")
    return contrast


def assign_tier(
    pixel_density: int,
    sharpness: float,
    contrast: float,
    thresholds: Optional[QualityThresholdsConfig] = None,
) -> QualityTier:
    """
    Map measurements onto a quality tier.

    Low if any measurement misses its low threshold, High only if all
    measurements exceed their high thresholds, Medium otherwise.
    """
    t = thresholds or QualityThresholdsConfig()

    if (
        pixel_density < t.low_pixel_density
        or sharpness < t.low_sharpness
        or contrast < t.low_contrast
    ):
        return QualityTier.LOW

    if (
        pixel_density > t.high_pixel_density
        and sharpness > t.high_sharpness
        and contrast > t.high_contrast
    ):
        return QualityTier.HIGH

    return QualityTier.MEDIUM


def analyze_quality(
    image: RasterImage, thresholds: Optional[QualityThresholdsConfig] = None
) -> QualityProfile:
    """
    Build the quality profile of a decoded image.

    Pure function of the pixel data; the input is never modified.

    Args:
        image: Decoded raster image (gray, BGR or BGRA)
        thresholds: Tier thresholds (defaults from QualityThresholdsConfig)

    Returns:
        Immutable QualityProfile

    Raises:
        ImageDecodeError: If image is None or has zero size

    Example:
        >>> profile = analyze_quality(decode_image("ielts.jpg"))
        >>> print(profile.tier)
        QualityTier.HIGH
    """
    gray = _gray_array(image)

    pixel_density = image.pixel_count
    sharpness = calculate_sharpness(gray)
    contrast = calculate_contrast(gray)
    tier = assign_tier(pixel_density, sharpness, contrast, thresholds)

    logger.info(
        f"Quality {tier.value}: {image.width}x{image.height} "
        f"({pixel_density} px), sharpness={sharpness:.1f}, contrast={contrast:.1f}"
    )

    return QualityProfile(
        width=image.width,
        height=image.height,
        pixel_density=pixel_density,
        sharpness=sharpness,
        contrast=contrast,
        tier=tier,
    )
