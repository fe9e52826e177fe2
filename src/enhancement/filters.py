"""
Pixel-level enhancement stages.

Every stage is a pure transform ``(RasterImage) -> RasterImage`` over a
single-channel image and returns a newly allocated buffer. Stages share no
state besides the buffer, so each one can be tested in isolation.

Stages:
1. edge_preserving_smooth: bilateral filter
2. adaptive_equalize: tile-based histogram equalization with clip limit (CLAHE)
3. unsharp_mask: thresholded unsharp masking
4. upscale: cubic-convolution interpolation
5. adaptive_binarize: Otsu global threshold refined per block
"""

import logging
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from src.common.types import RasterImage
from src.pipeline.config_loader import UpscaleStepConfig

logger = logging.getLogger(__name__)


def _gray(image: RasterImage) -> np.ndarray:
    if not image.is_grayscale:
        raise ValueError(
            f"Enhancement stages expect a grayscale image, got {image.channels} channels"
        )
    return image.to_numpy().reshape(image.height, image.width)


def edge_preserving_smooth(
    image: RasterImage,
    diameter: int = 5,
    sigma_color: float = 30.0,
    sigma_space: float = 30.0,
) -> RasterImage:
    """
    Suppress noise while keeping character edges.

    Neighbours are weighted by both spatial distance and intensity
    similarity, so pixels across a strong edge barely contribute.

    Args:
        image: Grayscale image
        diameter: Neighbourhood diameter in pixels
        sigma_color: Intensity-similarity sigma
        sigma_space: Spatial-distance sigma

    Returns:
        New smoothed image
    """
    gray = _gray(image)
    smoothed = cv2.bilateralFilter(gray, diameter, sigma_color, sigma_space)
    return RasterImage(data=smoothed)


def clahe_grid(
    width: int, height: int, min_tile: int = 32, max_tile: int = 64
) -> Tuple[int, int]:
    """
    Tile grid (columns, rows) for adaptive equalization.

    The tile edge is a quarter of the short side, clamped to
    [min_tile, max_tile] pixels.
    """
    tile = int(min(max(min(width, height) // 4, min_tile), max_tile))
    cols = max(1, int(round(width / tile)))
    rows = max(1, int(round(height / tile)))
    return cols, rows


def adaptive_equalize(
    image: RasterImage,
    clip_limit: float = 3.0,
    min_tile: int = 32,
    max_tile: int = 64,
) -> RasterImage:
    """
    Localized contrast normalization (CLAHE).

    Args:
        image: Grayscale image
        clip_limit: Histogram clip limit bounding noise amplification
        min_tile: Minimum tile edge in pixels
        max_tile: Maximum tile edge in pixels

    Returns:
        New equalized image
    """
    gray = _gray(image)
    grid = clahe_grid(image.width, image.height, min_tile, max_tile)
    clahe = cv2.createCLAHE(clipLimit=clip_limit, tileGridSize=grid)
    logger.debug(f"CLAHE clip={clip_limit} grid={grid}")
    return RasterImage(data=clahe.apply(gray))


def unsharp_mask(
    image: RasterImage,
    amount: float = 1.5,
    threshold: float = 10.0,
    sigma: float = 1.0,
) -> RasterImage:
    """
    Thresholded unsharp masking.

    residual = original - gaussian_blur(original); pixels whose
    |residual| exceeds ``threshold`` get ``amount * residual`` added back,
    all other pixels are copied unchanged so flat noisy areas stay flat.

    Args:
        image: Grayscale image
        amount: Fraction of the residual added back
        threshold: Minimum residual magnitude considered an edge
        sigma: Gaussian blur sigma

    Returns:
        New sharpened image
    """
    gray = _gray(image)
    original = gray.astype(np.float32)
    blurred = cv2.GaussianBlur(original, (0, 0), sigma)
    residual = original - blurred

    sharpened = np.where(
        np.abs(residual) > threshold, original + amount * residual, original
    )
    result = np.clip(np.rint(sharpened), 0, 255).astype(np.uint8)
    return RasterImage(data=result)


def upscale(image: RasterImage, factor: int) -> RasterImage:
    """
    Enlarge by an integer factor with cubic-convolution interpolation.

    Args:
        image: Grayscale image
        factor: Integer scale factor (>= 2)

    Returns:
        New image of size (width * factor, height * factor)
    """
    if factor < 2:
        raise ValueError(f"Upscale factor must be >= 2, got {factor}")
    gray = _gray(image)
    size = (image.width * factor, image.height * factor)
    return RasterImage(data=cv2.resize(gray, size, interpolation=cv2.INTER_CUBIC))


def upscale_factor_for(
    pixel_density: int, steps: Optional[Sequence[UpscaleStepConfig]] = None
) -> Optional[int]:
    """
    Pick an upscale factor from the image size.

    Steps are checked in ascending ``max_pixels`` order; the first step whose
    limit the image falls below wins. Returns None when no upscale applies.

    Example:
        >>> upscale_factor_for(90_000)
        4
        >>> upscale_factor_for(2_000_000) is None
        True
    """
    if steps is None:
        steps = [
            UpscaleStepConfig(max_pixels=200_000, factor=4),
            UpscaleStepConfig(max_pixels=500_000, factor=3),
            UpscaleStepConfig(max_pixels=1_000_000, factor=2),
        ]
    for step in sorted(steps, key=lambda s: s.max_pixels):
        if pixel_density < step.max_pixels:
            return step.factor
    return None


def otsu_threshold(gray: np.ndarray) -> float:
    """Global threshold maximizing inter-class variance of the histogram."""
    threshold, _ = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    return float(threshold)


def adaptive_binarize(
    image: RasterImage,
    block_size: int = 16,
    low_factor: float = 0.7,
    high_factor: float = 1.3,
) -> RasterImage:
    """
    Two-level binarization: Otsu global threshold refined per block.

    For every ``block_size`` square the local threshold is the block mean
    clipped to ``[low_factor * T, high_factor * T]`` where T is the global
    Otsu threshold. Pixels strictly above the local threshold become 255,
    all others 0.

    Args:
        image: Grayscale image
        block_size: Edge of the refinement blocks in pixels
        low_factor: Lower bound of the local threshold relative to T
        high_factor: Upper bound of the local threshold relative to T

    Returns:
        New binary image (values 0 and 255 only)
    """
    gray = _gray(image)
    global_threshold = otsu_threshold(gray)
    low = low_factor * global_threshold
    high = high_factor * global_threshold

    height, width = gray.shape
    local = np.empty((height, width), dtype=np.float32)
    for y in range(0, height, block_size):
        for x in range(0, width, block_size):
            block = gray[y : y + block_size, x : x + block_size]
            local[y : y + block_size, x : x + block_size] = np.clip(
                block.mean(), low, high
            )

    binary = np.where(gray > local, 255, 0).astype(np.uint8)
    logger.debug(f"Binarized with global threshold {global_threshold:.0f}")
    return RasterImage(data=binary)
